"""Text normalization helpers shared by the analysis services."""
from pathlib import Path
from typing import Optional


UNKNOWN_DOCUMENT_TITLE = "Unknown Document"

# ~8000 tokens at ~3 characters per token
MAX_CONTENT_CHARS = 24000


def clean_text(text: str) -> str:
    """Normalize CRLF/CR line endings to LF and strip surrounding whitespace."""
    return (text or "").replace("\r\n", "\n").replace("\r", "\n").strip()


def truncate_text(text: str, max_chars: int = MAX_CONTENT_CHARS) -> str:
    """Keep the first ``max_chars`` characters (the prompt token budget)."""
    return text if len(text) <= max_chars else text[:max_chars]


def title_from_filename(filename: Optional[str]) -> str:
    """Derive a document title from a filename by dropping its extension."""
    if not filename:
        return UNKNOWN_DOCUMENT_TITLE
    stem = Path(filename).stem.strip()
    return stem or UNKNOWN_DOCUMENT_TITLE


def preview_snippet(text: str, length: int = 300) -> str:
    """First ``length`` characters of ``text`` on a single line."""
    return text[:length].replace("\n", " ").strip()

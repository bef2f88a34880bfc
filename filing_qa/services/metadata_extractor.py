"""Classify an extracted filing into the DocumentInfo metadata schema."""
import logging
import time
from typing import Optional
from pydantic import BaseModel

from filing_qa.services.response_parser import parse_labeled_lines
from filing_qa.utils.text_utils import clean_text, truncate_text, title_from_filename, preview_snippet


logger = logging.getLogger(__name__)

METADATA_MAX_OUTPUT_TOKENS = 500
MIN_CONTENT_CHARS = 100

# Text produced by the upload/extraction fallbacks; it carries no filing data.
PLACEHOLDER_MARKERS = (
    "uploaded successfully",
    "document content extracted from pdf",
    "extraction failed",
    "error reading text file",
)

TITLE_LABEL = "Title"
TICKER_LABEL = "Company Ticker"
TYPE_LABEL = "Document Type"
DATE_LABEL = "Filing Date"
PREVIEW_LABEL = "Preview"

SYSTEM_PROMPT = "You are a financial document expert specializing in SEC filings."

USER_PROMPT_TEMPLATE = """You are a financial document expert. Analyze the following SEC filing document and extract key information. Return your response in this exact format:

Title: [Document title or company name]
Company Ticker: [Stock ticker symbol if found, otherwise leave empty]
Document Type: [10-K, 10-Q, 8-K, or other filing type]
Filing Date: [Date in YYYY-MM-DD format if found, otherwise leave empty]
Preview: [A 2-3 sentence summary of the document's key content and purpose]

Document content:
{content}
"""


class DocumentInfo(BaseModel):
    """Metadata describing a filing. Every field is always a string."""
    title: str
    company_ticker: str = ""
    document_type: str
    filing_date: str = ""
    content_preview: str


def has_real_content(cleaned_text: str) -> bool:
    """True when the text is long enough and is not a known placeholder."""
    if len(cleaned_text) <= MIN_CONTENT_CHARS:
        return False
    lowered = cleaned_text.lower()
    return not any(marker in lowered for marker in PLACEHOLDER_MARKERS)


def _placeholder_info(filename: Optional[str]) -> DocumentInfo:
    title = title_from_filename(filename)
    return DocumentInfo(
        title=title,
        company_ticker="",
        document_type="10-Q",
        filing_date="",
        content_preview=(
            f"This is a {title} document. The document has been uploaded successfully "
            f"and is available for analysis. Please review the original file for complete details."
        )
    )


def _error_info(filename: Optional[str]) -> DocumentInfo:
    title = title_from_filename(filename)
    if filename:
        preview = (
            f"This is a {title} document. The document has been uploaded successfully "
            f"and is available for analysis."
        )
    else:
        preview = "Document content extracted from PDF. Please review the original file for complete details."
    return DocumentInfo(
        title=title,
        company_ticker="",
        document_type="10-Q",
        filing_date="",
        content_preview=preview
    )


def build_metadata_prompt(content: str) -> str:
    return USER_PROMPT_TEMPLATE.format(content=content)


def parse_document_info(response: str, cleaned_text: str, filename: Optional[str] = None) -> DocumentInfo:
    """Turn a metadata completion into DocumentInfo, defaulting each missing field."""
    fields = parse_labeled_lines(
        response, (TITLE_LABEL, TICKER_LABEL, TYPE_LABEL, DATE_LABEL, PREVIEW_LABEL)
    )

    preview = fields[PREVIEW_LABEL]
    if preview and len(preview) > 20:
        final_preview = preview
    else:
        snippet = preview_snippet(cleaned_text)
        if len(snippet) > 50:
            final_preview = f"{snippet}..."
        else:
            final_preview = "Document content extracted successfully. Please review the original file for complete details."

    return DocumentInfo(
        title=fields[TITLE_LABEL] or title_from_filename(filename),
        company_ticker=fields[TICKER_LABEL] or "",
        document_type=fields[TYPE_LABEL] or "10-K",
        filing_date=fields[DATE_LABEL] or "",
        content_preview=final_preview
    )


def extract_document_info(client, file_content: str, filename: Optional[str] = None) -> DocumentInfo:
    """
    Extract filing metadata from document text.

    Args:
        client: Completion client exposing ``complete(system_prompt, user_prompt,
            max_output_tokens, temperature)``
        file_content: Extracted text, possibly placeholder text
        filename: Original filename, used for title fallbacks

    Returns:
        DocumentInfo. Never raises; failures yield a filename-derived record.
    """
    start = time.perf_counter()

    try:
        cleaned = clean_text(file_content)

        if not has_real_content(cleaned):
            logger.info("No meaningful content (%d chars), using filename-based metadata", len(cleaned))
            return _placeholder_info(filename)

        truncated = truncate_text(cleaned)
        logger.info(
            "Extracting document info: %d chars (truncated=%s)",
            len(cleaned), len(truncated) < len(cleaned)
        )

        response = client.complete(
            system_prompt=SYSTEM_PROMPT,
            user_prompt=build_metadata_prompt(truncated),
            max_output_tokens=METADATA_MAX_OUTPUT_TOKENS,
            temperature=0.1
        )
        info = parse_document_info(response, cleaned, filename)

        logger.info(
            "Document info extracted in %d ms: type=%s ticker=%s",
            int((time.perf_counter() - start) * 1000), info.document_type, info.company_ticker or "-"
        )
        return info

    except Exception:
        logger.exception("Error extracting document info for %s", filename or "<unnamed>")
        return _error_info(filename)

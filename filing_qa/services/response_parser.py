"""Parsing of the line-oriented ``Label: value`` responses the prompts ask for."""
import re
from typing import Dict, Iterable, List, Optional, Tuple


ANSWER_PREFIX = "ANSWER:"
CITATIONS_PREFIX = "CITATIONS:"

_NUMBERED_LINE = re.compile(r"^\d+\.\s*")
_QUOTE_PAIRS = (('"', '"'), ("“", "”"), ("'", "'"))


def parse_labeled_lines(response: str, labels: Iterable[str]) -> Dict[str, Optional[str]]:
    """
    Find the value of each ``Label:`` line in a model response.

    Args:
        response: Raw completion text
        labels: Labels to look for, without the trailing colon

    Returns:
        Mapping label -> stripped value. The first line carrying a label wins;
        labels that are absent or have an empty value map to None.
    """
    lines = [line.strip() for line in (response or "").split("\n")]
    values: Dict[str, Optional[str]] = {}

    for label in labels:
        prefix = f"{label}:"
        values[label] = None
        for line in lines:
            if line.startswith(prefix):
                value = line[len(prefix):].strip()
                values[label] = value or None
                break

    return values


def _strip_quotes(text: str) -> str:
    for opening, closing in _QUOTE_PAIRS:
        if len(text) >= 2 and text.startswith(opening) and text.endswith(closing):
            return text[1:-1].strip()
    return text


def parse_answer_response(response: str) -> Tuple[str, List[str]]:
    """
    Split an ``ANSWER:`` / ``CITATIONS:`` response into answer and citations.

    Returns:
        (answer, citations). ``answer`` is empty when no ``ANSWER:`` line
        exists; citations are the numbered lines after ``CITATIONS:`` with
        the numbering and any wrapping quotes removed.
    """
    answer = ""
    citations: List[str] = []
    in_citations = False

    for raw_line in (response or "").split("\n"):
        line = raw_line.strip()
        if line.startswith(ANSWER_PREFIX):
            answer = line[len(ANSWER_PREFIX):].strip()
        elif line.startswith(CITATIONS_PREFIX):
            in_citations = True
        elif in_citations and _NUMBERED_LINE.match(line):
            citation = _strip_quotes(_NUMBERED_LINE.sub("", line, count=1).strip())
            if citation:
                citations.append(citation)

    return answer, citations

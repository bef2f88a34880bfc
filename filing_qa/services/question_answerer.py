"""Grounded question answering over a filing's text."""
import logging
import time
from typing import List
from pydantic import BaseModel

from filing_qa.services.response_parser import parse_answer_response
from filing_qa.utils.text_utils import clean_text, truncate_text


logger = logging.getLogger(__name__)

ANSWER_MAX_OUTPUT_TOKENS = 1500
FALLBACK_CITATION = "Document content analysis"
ERROR_ANSWER = (
    "I apologize, but I encountered an error while analyzing the document. "
    "Please try again or contact support if the issue persists."
)

SYSTEM_PROMPT = (
    "You are a financial document expert specializing in SEC filings and financial analysis. "
    "Always provide specific citations from the document content."
)


class AnalysisResult(BaseModel):
    """Answer to one question. ``processing_time`` is in milliseconds."""
    answer: str
    citations: List[str]
    processing_time: int


def build_question_prompt(question: str, document_content: str, conversation_history: str = "") -> str:
    """Assemble the user prompt; the history block is omitted when empty."""
    parts = [
        "You are a financial document expert. Answer the following question about the SEC filing "
        "document below. Provide a clear, accurate answer based on the document content. If the "
        "information is not available in the document, say so clearly."
    ]

    if conversation_history and conversation_history.strip():
        parts.append(
            f"Previous conversation context:\n{conversation_history.strip()}\n\n"
            "Please consider the previous questions and answers when responding to this follow-up question."
        )

    parts.append(
        "Additionally, provide 1-3 specific citations from the document that support your answer. "
        "Each citation should be a direct quote or specific reference from the document content."
    )
    parts.append(f"Question: {question}")
    parts.append(f"Document content:\n{document_content}")
    parts.append(
        "Please format your response as follows:\n"
        "ANSWER: [Your answer here]\n"
        "\n"
        "CITATIONS:\n"
        "1. [First citation - direct quote or specific reference]\n"
        "2. [Second citation if applicable]\n"
        "3. [Third citation if applicable]"
    )

    return "\n\n".join(parts) + "\n"


def analyze_document(
    client,
    question: str,
    document_content: str,
    conversation_history: str = ""
) -> AnalysisResult:
    """
    Answer a question about a document, with citations.

    Args:
        client: Completion client exposing ``complete(...)``
        question: The user's question
        document_content: Full document text (or the preview fallback text)
        conversation_history: Prior turns as ``Q: ...\\nA: ...`` pairs

    Returns:
        AnalysisResult. Never raises; on failure the answer is an apology
        and citations are empty.
    """
    start = time.perf_counter()

    try:
        cleaned = clean_text(document_content)
        truncated = truncate_text(cleaned)
        logger.info(
            "Analyzing document: %d chars (truncated=%s), history=%s",
            len(cleaned), len(truncated) < len(cleaned), bool(conversation_history)
        )

        response = client.complete(
            system_prompt=SYSTEM_PROMPT,
            user_prompt=build_question_prompt(question, truncated, conversation_history),
            max_output_tokens=ANSWER_MAX_OUTPUT_TOKENS,
            temperature=0.1
        )

        answer, citations = parse_answer_response(response)
        if not answer:
            logger.warning("Completion had no ANSWER: line, using raw response")
            answer = response
            citations = [FALLBACK_CITATION]

        elapsed_ms = int((time.perf_counter() - start) * 1000)
        logger.info("Answer produced in %d ms with %d citations", elapsed_ms, len(citations))
        return AnalysisResult(answer=answer, citations=citations, processing_time=elapsed_ms)

    except Exception:
        logger.exception("Error analyzing document")
        return AnalysisResult(
            answer=ERROR_ANSWER,
            citations=[],
            processing_time=int((time.perf_counter() - start) * 1000)
        )

"""Question answering route."""
import logging
import uuid
from typing import Optional
from fastapi import APIRouter, Depends, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field

from filing_qa.db.sessions import get_db
from filing_qa.models.user import User
from filing_qa.models.document import Document
from filing_qa.models.question import Question
from filing_qa.core.security import get_current_user
from filing_qa.routes.documents import get_owned_document
from filing_qa.routes.questions import QuestionResponse, question_to_response
from filing_qa.services.conversation import load_conversation_turns, build_conversation_history
from filing_qa.services.openai_service import OpenAIService, get_completion_client
from filing_qa.services.question_answerer import analyze_document, FALLBACK_CITATION


logger = logging.getLogger(__name__)

router = APIRouter(tags=["Analysis"])


class AnalyzeRequest(BaseModel):
    document_id: uuid.UUID
    question: str = Field(..., min_length=1)
    conversation_id: Optional[str] = Field(None, max_length=100)


def document_text_for_analysis(document: Document) -> str:
    """Full content when extracted, otherwise a block built from the preview fields."""
    if document.content:
        return document.content

    return (
        f"Document: {document.title}\n"
        f"Type: {document.document_type}\n"
        f"Company: {document.company_ticker}\n"
        f"Preview: {document.content_preview}\n"
        f"\n"
        f"Note: Full document content is not available. "
        f"This analysis is based on the document preview only."
    )


@router.post("/analyze", response_model=QuestionResponse, status_code=status.HTTP_201_CREATED)
async def analyze(
    request: AnalyzeRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    client: OpenAIService = Depends(get_completion_client)
):
    """
    Answer a question about a document and record it in its conversation.

    Prior turns sharing ``conversation_id`` are sent as context. The stored
    ``processing_time`` is in seconds.

    Protected endpoint - requires JWT authentication.
    """
    document = get_owned_document(db, request.document_id, current_user)

    # History is read before the new turn is stored
    turns = load_conversation_turns(db, current_user.id, document.id, request.conversation_id)
    history = build_conversation_history(turns)

    logger.info(
        "Analyzing document %s (has_content=%s, prior turns=%d)",
        document.id, document.content is not None, len(turns)
    )

    result = await run_in_threadpool(
        analyze_document, client, request.question, document_text_for_analysis(document), history
    )

    question = Question(
        user_id=current_user.id,
        document_id=document.id,
        question_text=request.question,
        answer=result.answer,
        citations=result.citations or [FALLBACK_CITATION],
        processing_time=result.processing_time / 1000.0,
        conversation_id=request.conversation_id or None
    )
    db.add(question)
    db.commit()
    db.refresh(question)

    return question_to_response(question)

"""Question history routes."""
import logging
import uuid
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field

from filing_qa.db.sessions import get_db
from filing_qa.models.user import User
from filing_qa.models.question import Question
from filing_qa.core.security import get_current_user
from filing_qa.routes.documents import get_owned_document


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/questions", tags=["Questions"])


# Request/Response schemas
class CreateQuestionRequest(BaseModel):
    document_id: uuid.UUID
    question_text: str = Field(..., min_length=1)
    answer: str = ""
    citations: List[str] = Field(default_factory=list)
    processing_time: float = Field(0.0, ge=0, description="Seconds")
    conversation_id: Optional[str] = Field(None, max_length=100)


class QuestionResponse(BaseModel):
    id: str
    document_id: str
    question_text: str
    answer: str
    citations: List[str]
    processing_time: float
    conversation_id: Optional[str]
    created_at: str


def question_to_response(question: Question) -> QuestionResponse:
    return QuestionResponse(
        id=str(question.id),
        document_id=str(question.document_id),
        question_text=question.question_text,
        answer=question.answer or "",
        citations=list(question.citations or []),
        processing_time=question.processing_time or 0.0,
        conversation_id=question.conversation_id,
        created_at=question.created_at.isoformat()
    )


@router.get("", response_model=List[QuestionResponse])
def list_questions(
    document_id: Optional[uuid.UUID] = None,
    conversation_id: Optional[str] = None,
    limit: Optional[int] = Query(None, ge=1, le=500),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    List the current user's questions, newest first.

    Filter by ``document_id`` and, within a document, by ``conversation_id``.
    """
    query = db.query(Question).filter(
        Question.user_id == current_user.id
    ).order_by(Question.created_at.desc())

    if document_id:
        query = query.filter(Question.document_id == document_id)
        if conversation_id:
            query = query.filter(Question.conversation_id == conversation_id)

    if limit:
        query = query.limit(limit)

    return [question_to_response(question) for question in query.all()]


@router.post("", response_model=QuestionResponse, status_code=status.HTTP_201_CREATED)
def create_question(
    request: CreateQuestionRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Record an answered question against a document.

    Protected endpoint - requires JWT authentication.
    """
    document = get_owned_document(db, request.document_id, current_user)

    question = Question(
        user_id=current_user.id,
        document_id=document.id,
        question_text=request.question_text,
        answer=request.answer,
        citations=request.citations,
        processing_time=request.processing_time,
        conversation_id=request.conversation_id or None
    )
    db.add(question)
    db.commit()
    db.refresh(question)

    return question_to_response(question)

"""Conversation threading: load prior turns and render them as a transcript."""
import uuid
from typing import Iterable, List, Optional
from sqlalchemy.orm import Session

from filing_qa.models.question import Question


def load_conversation_turns(
    db: Session,
    user_id: uuid.UUID,
    document_id: uuid.UUID,
    conversation_id: Optional[str]
) -> List[Question]:
    """Prior questions of a thread, oldest first. Empty for standalone questions."""
    if not conversation_id:
        return []

    return db.query(Question).filter(
        Question.user_id == user_id,
        Question.document_id == document_id,
        Question.conversation_id == conversation_id
    ).order_by(Question.created_at.asc()).all()


def build_conversation_history(turns: Iterable[Question]) -> str:
    """Join turns as ``Q: ...\\nA: ...`` pairs separated by a blank line."""
    return "\n\n".join(
        f"Q: {turn.question_text}\nA: {turn.answer or ''}" for turn in turns
    )

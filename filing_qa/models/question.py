"""Question model."""
import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Text, Float, JSON, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from filing_qa.db.base import Base


class Question(Base):
    """A single answered turn about a document.

    Turns sharing a ``conversation_id`` form one conversation thread.
    ``processing_time`` is stored in seconds.
    """

    __tablename__ = "questions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    document_id = Column(Uuid, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True)
    question_text = Column(Text, nullable=False)
    answer = Column(Text, nullable=False, default="")
    citations = Column(JSON, nullable=False, default=list)
    processing_time = Column(Float, nullable=False, default=0.0)
    conversation_id = Column(String(100), index=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    # Relationships
    user = relationship("User", back_populates="questions")
    document = relationship("Document", back_populates="questions")

"""Document model."""
import uuid
from datetime import datetime
from typing import Literal, get_args
from sqlalchemy import Column, String, DateTime, Text, Integer, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from filing_qa.db.base import Base


DocumentStatus = Literal["processing", "ready", "error"]
STATUS_PROCESSING, STATUS_READY, STATUS_ERROR = get_args(DocumentStatus)


class Document(Base):
    """An uploaded SEC filing.

    ``content`` stays NULL until extraction completes; callers fall back to
    the preview fields in that case.
    """

    __tablename__ = "documents"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False, default="Unknown Document")
    company_ticker = Column(String(20), nullable=False, default="")
    document_type = Column(String(50), nullable=False, default="Other")
    filing_date = Column(String(20), nullable=False, default="")
    content_preview = Column(Text, nullable=False, default="")
    content = Column(Text)
    file_url = Column(Text, nullable=False)
    file_name = Column(String(255), nullable=False)
    file_size = Column(Integer, nullable=False, default=0)
    storage_key = Column(Text, nullable=False)
    page_count = Column(Integer)
    status = Column(String(20), nullable=False, default=STATUS_PROCESSING)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("User", back_populates="documents")
    questions = relationship("Question", back_populates="document", cascade="all, delete-orphan")

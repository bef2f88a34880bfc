"""Database models."""
from filing_qa.models.user import User
from filing_qa.models.document import Document
from filing_qa.models.question import Question

__all__ = [
    "User",
    "Document",
    "Question",
]

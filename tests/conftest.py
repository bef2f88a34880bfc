# tests/conftest.py

"""
Pytest Fixtures - shared database, auth and fake LLM client for all tests.

The environment is configured before any filing_qa module is imported so the
settings object picks up a throwaway SQLite database and upload directory.
"""

import os
import tempfile

_TEST_DIR = tempfile.mkdtemp(prefix="filing_qa_tests_")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TEST_DIR, 'test.db')}"
os.environ["UPLOAD_DIR"] = os.path.join(_TEST_DIR, "uploads")
os.environ["OPENAI_API_KEY"] = "test-key"

import pytest
from fastapi.testclient import TestClient

from filing_qa.main import app
from filing_qa.db.base import Base
from filing_qa.db.sessions import engine, SessionLocal
from filing_qa.core.security import create_access_token
from filing_qa.models.user import User
from filing_qa.models.document import Document, STATUS_READY
from filing_qa.services.openai_service import get_completion_client


# =============================================================================
# FAKE COMPLETION CLIENT
# =============================================================================

class FakeCompletionClient:
    """Stand-in for OpenAIService returning scripted responses."""

    def __init__(self, responses=None, error=None):
        self.responses = list(responses or [])
        self.error = error
        self.calls = []

    def complete(self, system_prompt, user_prompt, max_output_tokens, temperature=0.1):
        self.calls.append({
            "system_prompt": system_prompt,
            "user_prompt": user_prompt,
            "max_output_tokens": max_output_tokens,
            "temperature": temperature,
        })
        if self.error is not None:
            raise self.error
        return self.responses.pop(0) if self.responses else ""


@pytest.fixture
def fake_llm():
    return FakeCompletionClient()


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture
def db_session():
    """Fresh tables for every test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


# =============================================================================
# FASTAPI TEST CLIENT FIXTURE
# =============================================================================

@pytest.fixture
def client(db_session, fake_llm):
    """TestClient with the completion client replaced by the fake."""
    app.dependency_overrides[get_completion_client] = lambda: fake_llm
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# =============================================================================
# USER / AUTH FIXTURES
# =============================================================================

def _make_user(db_session, name, email):
    user = User(name=name, email=email, password_hash="not-a-real-hash")
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def user(db_session):
    return _make_user(db_session, "Ada Analyst", "ada@example.com")


@pytest.fixture
def other_user(db_session):
    return _make_user(db_session, "Other Owner", "other@example.com")


@pytest.fixture
def auth_headers(user):
    token = create_access_token({"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_auth_headers(other_user):
    token = create_access_token({"sub": str(other_user.id)})
    return {"Authorization": f"Bearer {token}"}


# =============================================================================
# DOCUMENT FIXTURES
# =============================================================================

@pytest.fixture
def make_document(db_session):
    """Factory inserting a document row directly."""
    def _make(owner, content="Acme Corp reported revenue of $10 million.", **overrides):
        fields = {
            "user_id": owner.id,
            "title": "Acme Corp Annual Report",
            "company_ticker": "ACME",
            "document_type": "10-K",
            "filing_date": "2024-02-15",
            "content_preview": "Annual report for Acme Corp.",
            "content": content,
            "file_url": "file:///tmp/acme.txt",
            "file_name": "acme.txt",
            "file_size": 42,
            "storage_key": f"{owner.id}/acme.txt",
            "status": STATUS_READY,
        }
        fields.update(overrides)
        document = Document(**fields)
        db_session.add(document)
        db_session.commit()
        db_session.refresh(document)
        return document
    return _make

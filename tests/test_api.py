# tests/test_api.py

"""
API Endpoint Tests - upload, document CRUD, analysis and question history
"""

import asyncio
from datetime import datetime, timedelta
from pathlib import Path
from typing import get_args

from fastapi import status
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from filing_qa.main import app
from filing_qa.core.config import settings
from filing_qa.db.sessions import engine, get_db
from filing_qa.models.document import Document, DocumentStatus, STATUS_PROCESSING, STATUS_READY, STATUS_ERROR
from filing_qa.models.question import Question
from filing_qa.utils.file_processor import FileProcessor


FILING_TEXT = (
    "UNITED STATES SECURITIES AND EXCHANGE COMMISSION\n"
    "FORM 10-K\n"
    "Acme Corporation (NASDAQ: ACME). Revenue increased by 10% year over year, "
    "driven by strong demand for industrial widgets."
)

METADATA_RESPONSE = (
    "Title: Acme Corporation Annual Report\n"
    "Company Ticker: ACME\n"
    "Document Type: 10-K\n"
    "Filing Date: 2024-02-20\n"
    "Preview: Acme's annual report describing revenue growth and widget demand."
)

ANSWER_RESPONSE = (
    "ANSWER: Revenue grew 10%.\n"
    "\n"
    "CITATIONS:\n"
    "1. \"Revenue increased by 10% year over year\""
)


class TestHealthAndAuth:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"status": "ok"}

    def test_register_login_me(self, client):
        response = client.post(
            "/auth/register",
            json={"name": "Bea", "email": "bea@acme-filings.com", "password": "s3cret-pass"}
        )
        assert response.status_code == status.HTTP_201_CREATED

        response = client.post("/auth/login", json={"email": "bea@acme-filings.com", "password": "s3cret-pass"})
        assert response.status_code == status.HTTP_200_OK
        token = response.json()["access_token"]

        response = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.json()["email"] == "bea@acme-filings.com"

    def test_login_wrong_password(self, client):
        client.post("/auth/register", json={"name": "Bea", "email": "bea@acme-filings.com", "password": "s3cret-pass"})
        response = client.post("/auth/login", json={"email": "bea@acme-filings.com", "password": "wrong-pass"})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_documents_require_auth(self, client):
        response = client.get("/documents")
        assert response.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN)

    def test_invalid_token_rejected(self, client):
        response = client.get("/documents", headers={"Authorization": "Bearer garbage"})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestUpload:

    def test_upload_text_filing(self, client, auth_headers, fake_llm, db_session):
        fake_llm.responses = [METADATA_RESPONSE]

        response = client.post(
            "/documents/upload",
            files={"file": ("acme-10k.txt", FILING_TEXT.encode("utf-8"), "text/plain")},
            headers=auth_headers
        )

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["status"] == "ready"
        assert data["title"] == "Acme Corporation Annual Report"
        assert data["company_ticker"] == "ACME"
        assert data["document_type"] == "10-K"
        assert data["filing_date"] == "2024-02-20"
        assert data["file_name"] == "acme-10k.txt"
        assert data["file_size"] == len(FILING_TEXT.encode("utf-8"))
        assert data["has_content"] is True
        assert data["content_length"] == len(FILING_TEXT)
        assert data["page_count"] == 1
        assert len(fake_llm.calls) == 1

        stored = db_session.query(Document).one()
        assert stored.content == FILING_TEXT

    def test_upload_short_file_uses_filename_metadata(self, client, auth_headers, fake_llm):
        response = client.post(
            "/documents/upload",
            files={"file": ("acme-q3.txt", b"tiny", "text/plain")},
            headers=auth_headers
        )

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["title"] == "acme-q3"
        assert data["document_type"] == "10-Q"
        assert fake_llm.calls == []

    def test_upload_unparseable_pdf_still_ready(self, client, auth_headers, fake_llm):
        response = client.post(
            "/documents/upload",
            files={"file": ("broken.pdf", b"%PDF-garbage", "application/pdf")},
            headers=auth_headers
        )

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["status"] == "ready"
        assert data["title"] == "broken"
        assert fake_llm.calls == []

    def test_upload_unsupported_type(self, client, auth_headers):
        response = client.post(
            "/documents/upload",
            files={"file": ("sheet.xlsx", b"data", "application/octet-stream")},
            headers=auth_headers
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_upload_empty_file(self, client, auth_headers):
        response = client.post(
            "/documents/upload",
            files={"file": ("empty.txt", b"", "text/plain")},
            headers=auth_headers
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_upload_then_download(self, client, auth_headers, fake_llm):
        fake_llm.responses = [METADATA_RESPONSE]
        document = client.post(
            "/documents/upload",
            files={"file": ("acme.txt", FILING_TEXT.encode("utf-8"), "text/plain")},
            headers=auth_headers
        ).json()

        response = client.get(document["download_url"], headers=auth_headers)

        assert response.status_code == status.HTTP_200_OK
        assert response.content == FILING_TEXT.encode("utf-8")

    def test_failed_document_insert_removes_stored_file(self, client, auth_headers, user, fake_llm, db_session):
        class FailingSession(Session):
            def commit(self):
                raise OperationalError("INSERT INTO documents", {}, Exception("database is locked"))

        def failing_db():
            session = FailingSession(bind=engine)
            try:
                yield session
            finally:
                session.close()

        app.dependency_overrides[get_db] = failing_db

        response = client.post(
            "/documents/upload",
            files={"file": ("acme.txt", FILING_TEXT.encode("utf-8"), "text/plain")},
            headers=auth_headers
        )

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert "Failed to create document" in response.json()["detail"]
        assert list((Path(settings.UPLOAD_DIR) / str(user.id)).glob("*")) == []
        assert db_session.query(Document).count() == 0
        assert fake_llm.calls == []

    def test_extraction_runs_off_the_event_loop(self, client, auth_headers, fake_llm, monkeypatch):
        original = FileProcessor.extract_text
        seen = []

        def recording_extract(data, filename):
            try:
                asyncio.get_running_loop()
                seen.append("event loop")
            except RuntimeError:
                seen.append("worker thread")
            return original(data, filename)

        monkeypatch.setattr(FileProcessor, "extract_text", staticmethod(recording_extract))
        fake_llm.responses = [METADATA_RESPONSE]

        response = client.post(
            "/documents/upload",
            files={"file": ("acme.txt", FILING_TEXT.encode("utf-8"), "text/plain")},
            headers=auth_headers
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert seen == ["worker thread"]


class TestDocumentCrud:

    def test_list_is_owner_scoped_and_filterable(self, client, auth_headers, user, other_user, make_document):
        make_document(user, title="Ready doc")
        make_document(user, title="Pending doc", status="processing", content=None)
        make_document(other_user, title="Someone else's")

        response = client.get("/documents", headers=auth_headers)
        titles = {doc["title"] for doc in response.json()}
        assert titles == {"Ready doc", "Pending doc"}

        response = client.get("/documents", params={"status": "processing"}, headers=auth_headers)
        assert [doc["title"] for doc in response.json()] == ["Pending doc"]

        response = client.get("/documents", params={"limit": 1}, headers=auth_headers)
        assert len(response.json()) == 1

    def test_get_other_users_document_is_404(self, client, other_auth_headers, user, make_document):
        document = make_document(user)
        response = client.get(f"/documents/{document.id}", headers=other_auth_headers)
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_get_with_content(self, client, auth_headers, user, make_document):
        document = make_document(user, content="full text")

        response = client.get(f"/documents/{document.id}", headers=auth_headers)
        assert response.json()["content"] is None

        response = client.get(
            f"/documents/{document.id}", params={"include_content": "true"}, headers=auth_headers
        )
        assert response.json()["content"] == "full text"

    def test_patch_metadata(self, client, auth_headers, user, make_document):
        document = make_document(user)
        response = client.patch(
            f"/documents/{document.id}",
            json={"company_ticker": "ACMX", "document_type": "8-K"},
            headers=auth_headers
        )

        data = response.json()
        assert data["company_ticker"] == "ACMX"
        assert data["document_type"] == "8-K"
        assert data["title"] == document.title

    def test_patch_rejects_unknown_status(self, client, auth_headers, user, make_document):
        document = make_document(user)
        response = client.patch(f"/documents/{document.id}", json={"status": "done"}, headers=auth_headers)
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_list_rejects_unknown_status(self, client, auth_headers, user, make_document):
        make_document(user)
        response = client.get("/documents", params={"status": "archived"}, headers=auth_headers)
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_status_constants_match_allowed_values(self):
        assert (STATUS_PROCESSING, STATUS_READY, STATUS_ERROR) == get_args(DocumentStatus)
        assert Document.__table__.c.status.default.arg == STATUS_PROCESSING

    def test_add_content_marks_ready(self, client, auth_headers, user, make_document):
        document = make_document(user, content=None, status="processing")
        response = client.post(
            f"/documents/{document.id}/content", json={"content": "pasted text"}, headers=auth_headers
        )

        data = response.json()
        assert data["status"] == "ready"
        assert data["content_length"] == len("pasted text")

    def test_extract_content_from_stored_file(self, client, auth_headers, fake_llm, db_session):
        fake_llm.responses = [METADATA_RESPONSE]
        document_id = client.post(
            "/documents/upload",
            files={"file": ("acme.txt", FILING_TEXT.encode("utf-8"), "text/plain")},
            headers=auth_headers
        ).json()["id"]

        stored = db_session.query(Document).one()
        stored.content = None
        stored.status = "processing"
        db_session.commit()

        response = client.post(f"/documents/{document_id}/extract-content", headers=auth_headers)
        assert response.json()["message"] == "Content extracted and stored"
        assert response.json()["content_length"] == len(FILING_TEXT)

        response = client.post(f"/documents/{document_id}/extract-content", headers=auth_headers)
        assert response.json()["message"] == "Document already has content"

    def test_extract_content_missing_file(self, client, auth_headers, user, make_document):
        document = make_document(user, content=None, storage_key="missing/file.txt")
        response = client.post(f"/documents/{document.id}/extract-content", headers=auth_headers)
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_delete_cascades_questions(self, client, auth_headers, user, make_document, db_session):
        document = make_document(user)
        db_session.add(Question(
            user_id=user.id, document_id=document.id, question_text="Q?", answer="A", citations=[]
        ))
        db_session.commit()

        response = client.delete(f"/documents/{document.id}", headers=auth_headers)

        assert response.status_code == status.HTTP_204_NO_CONTENT
        db_session.expire_all()
        assert db_session.query(Document).count() == 0
        assert db_session.query(Question).count() == 0


class TestAnalyze:

    def test_analyze_persists_question(self, client, auth_headers, user, make_document, fake_llm, db_session):
        document = make_document(user, content=FILING_TEXT)
        fake_llm.responses = [ANSWER_RESPONSE]

        response = client.post(
            "/analyze",
            json={"document_id": str(document.id), "question": "How did revenue change?"},
            headers=auth_headers
        )

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["answer"] == "Revenue grew 10%."
        assert data["citations"] == ["Revenue increased by 10% year over year"]
        assert data["conversation_id"] is None
        assert FILING_TEXT in fake_llm.calls[0]["user_prompt"]
        assert "Previous conversation context" not in fake_llm.calls[0]["user_prompt"]

        stored = db_session.query(Question).one()
        assert stored.processing_time < 60

    def test_follow_up_includes_prior_turns_in_order(self, client, auth_headers, user, make_document,
                                                     fake_llm, db_session):
        document = make_document(user)
        start = datetime(2024, 3, 1, 12, 0, 0)
        for offset, (text, answer) in enumerate([("Q1?", "A1"), ("Q2?", "A2"), ("Q3?", "A3")]):
            db_session.add(Question(
                user_id=user.id, document_id=document.id, question_text=text, answer=answer,
                citations=[], conversation_id="conv-1", created_at=start + timedelta(seconds=offset)
            ))
        db_session.commit()
        fake_llm.responses = [ANSWER_RESPONSE]

        client.post(
            "/analyze",
            json={"document_id": str(document.id), "question": "Q4?", "conversation_id": "conv-1"},
            headers=auth_headers
        )

        prompt = fake_llm.calls[0]["user_prompt"]
        assert "Q: Q1?\nA: A1\n\nQ: Q2?\nA: A2\n\nQ: Q3?\nA: A3" in prompt
        assert "Q: Q4?" not in prompt

        response = client.get(
            "/questions",
            params={"document_id": str(document.id), "conversation_id": "conv-1"},
            headers=auth_headers
        )
        assert [q["question_text"] for q in response.json()][0] == "Q4?"
        assert len(response.json()) == 4

    def test_document_without_content_uses_preview(self, client, auth_headers, user, make_document, fake_llm):
        document = make_document(user, content=None, content_preview="Quarterly results for Acme.")
        fake_llm.responses = [ANSWER_RESPONSE]

        client.post(
            "/analyze",
            json={"document_id": str(document.id), "question": "Results?"},
            headers=auth_headers
        )

        prompt = fake_llm.calls[0]["user_prompt"]
        assert "Preview: Quarterly results for Acme." in prompt
        assert "Full document content is not available" in prompt

    def test_empty_citations_get_sentinel_when_persisted(self, client, auth_headers, user, make_document, fake_llm):
        document = make_document(user)
        fake_llm.responses = ["ANSWER: Not disclosed."]

        response = client.post(
            "/analyze",
            json={"document_id": str(document.id), "question": "Dividends?"},
            headers=auth_headers
        )

        assert response.json()["citations"] == ["Document content analysis"]

    def test_llm_failure_returns_apology_not_error(self, client, auth_headers, user, make_document, fake_llm):
        document = make_document(user)
        fake_llm.error = RuntimeError("quota exceeded")

        response = client.post(
            "/analyze",
            json={"document_id": str(document.id), "question": "Anything?"},
            headers=auth_headers
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["answer"].startswith("I apologize")

    def test_unknown_document_is_404(self, client, auth_headers, fake_llm):
        response = client.post(
            "/analyze",
            json={"document_id": "00000000-0000-0000-0000-000000000000", "question": "Q?"},
            headers=auth_headers
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert fake_llm.calls == []

    def test_blank_question_rejected(self, client, auth_headers, user, make_document):
        document = make_document(user)
        response = client.post(
            "/analyze", json={"document_id": str(document.id), "question": ""}, headers=auth_headers
        )
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


class TestQuestions:

    def test_create_and_list_questions(self, client, auth_headers, user, make_document):
        document = make_document(user)

        response = client.post(
            "/questions",
            json={
                "document_id": str(document.id),
                "question_text": "What is the ticker?",
                "answer": "ACME",
                "citations": ["Acme Corporation (NASDAQ: ACME)"],
                "processing_time": 1.25,
            },
            headers=auth_headers
        )
        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["processing_time"] == 1.25

        response = client.get("/questions", params={"document_id": str(document.id)}, headers=auth_headers)
        assert len(response.json()) == 1

    def test_cannot_attach_question_to_foreign_document(self, client, other_auth_headers, user, make_document):
        document = make_document(user)
        response = client.post(
            "/questions",
            json={"document_id": str(document.id), "question_text": "Q?"},
            headers=other_auth_headers
        )
        assert response.status_code == status.HTTP_404_NOT_FOUND

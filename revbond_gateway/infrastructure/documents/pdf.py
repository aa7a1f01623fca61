"""PDF text-layer rendering with pdfplumber"""

import io
import logging

import pdfplumber

from revbond_gateway.domain.exceptions import DocumentReadError

logger = logging.getLogger(__name__)


def extract_pdf_text(content: bytes) -> str:
    """
    Concatenate the text layer of every page, one page per block.

    Raises:
        DocumentReadError: When the bytes are not a readable PDF
    """
    try:
        with pdfplumber.open(io.BytesIO(content)) as pdf:
            pages = [page.extract_text() or "" for page in pdf.pages]
    except Exception as e:
        raise DocumentReadError(f"Unable to read PDF: {e}") from e

    logger.info("PDF rendered", extra={"pages": len(pages)})
    return "\n".join(pages)

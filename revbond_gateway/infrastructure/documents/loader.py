"""Upload ingestion - decode bytes and tag them as a CSV or free-text source"""

from typing import Optional

from revbond_gateway.domain.extraction import detect_source
from revbond_gateway.domain.models import StatementSource, TextSource
from revbond_gateway.infrastructure.documents.pdf import extract_pdf_text
from revbond_gateway.utils.text_utils import split_lines

PDF_CONTENT_TYPE = "application/pdf"
PDF_MAGIC = b"%PDF"


def is_pdf(content: bytes, content_type: Optional[str] = None, filename: Optional[str] = None) -> bool:
    if content_type == PDF_CONTENT_TYPE:
        return True
    if filename and filename.lower().endswith(".pdf"):
        return True
    return content.startswith(PDF_MAGIC)


def load_statement(
    content: bytes,
    content_type: Optional[str] = None,
    filename: Optional[str] = None,
) -> StatementSource:
    """
    Turn an uploaded file into a tagged statement source.

    PDFs always go through keyword extraction; text uploads are CSV when
    their first line is delimited.
    """
    if is_pdf(content, content_type, filename):
        return TextSource(lines=split_lines(extract_pdf_text(content)))

    text = content.decode("utf-8-sig", errors="replace")
    return detect_source(split_lines(text))

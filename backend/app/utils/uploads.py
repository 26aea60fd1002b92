"""
Validation of uploaded PDF documents and headers for serving them back.
"""
from urllib.parse import quote

from fastapi import UploadFile

from app.core.config import settings
from app.core.exceptions import InvalidFileTypeError, ValidationError

PDF_CONTENT_TYPES = ("application/pdf",)
PDF_MAGIC = b"%PDF"


async def read_pdf_upload(file: UploadFile) -> bytes:
    """Read an upload, rejecting non-PDFs and files over MAX_PDF_SIZE_MB"""
    filename = (file.filename or "").lower()
    if file.content_type not in PDF_CONTENT_TYPES and not filename.endswith(".pdf"):
        raise InvalidFileTypeError(file.content_type or "unknown", list(PDF_CONTENT_TYPES))

    content = await file.read()
    if not content:
        raise ValidationError("Uploaded file is empty.", field="pdfFile")
    if len(content) > settings.MAX_PDF_SIZE_BYTES:
        raise ValidationError(
            f"File size must be less than {settings.MAX_PDF_SIZE_MB}MB.",
            field="pdfFile",
        )
    if not content.startswith(PDF_MAGIC):
        raise InvalidFileTypeError(file.content_type or "unknown", list(PDF_CONTENT_TYPES))
    return content


def pdf_content_disposition(title: str) -> str:
    """Attachment header for a PDF named after a user-supplied title.

    The quoted filename is an ASCII fallback; filename* carries the real
    title percent-encoded as UTF-8 (RFC 6266).
    """
    fallback = "".join(c for c in title if c.isascii() and c.isprintable() and c not in '"\\').strip()
    fallback = fallback or "document"
    encoded = quote(f"{title}.pdf", safe="")
    return f"attachment; filename=\"{fallback}.pdf\"; filename*=UTF-8''{encoded}"

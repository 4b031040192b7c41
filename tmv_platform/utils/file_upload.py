"""
File Upload Utility - validate, store and extract text from uploaded documents.

Each document type has its own allowed extensions. CVs additionally have
their text extracted so employers can search candidates by CV content:
- PDF (.pdf) using PyPDF2
- Word (.docx) using python-docx
- Plain Text (.txt)

Max file size comes from settings (default 5MB).
"""

import io
import os
import uuid
from typing import Optional
from fastapi import UploadFile, HTTPException
from PyPDF2 import PdfReader
from docx import Document

from tmv_platform.core.config import get_settings
from tmv_platform.utils.logger import get_logger

settings = get_settings()
logger = get_logger(__name__)

DOC_EXTENSIONS = {'.pdf', '.doc', '.docx', '.txt'}
IMAGE_EXTENSIONS = {'.jpg', '.jpeg', '.png'}

ALLOWED_EXTENSIONS = {
    # job seekers
    "cv": {'.pdf', '.docx', '.txt'},
    "id_copy": DOC_EXTENSIONS | IMAGE_EXTENSIONS,
    "qualification": DOC_EXTENSIONS | IMAGE_EXTENSIONS,
    # company registrations
    "registration_doc": DOC_EXTENSIONS | IMAGE_EXTENSIONS,
    "tax_clearance": DOC_EXTENSIONS | IMAGE_EXTENSIONS,
    "other": DOC_EXTENSIONS | IMAGE_EXTENSIONS,
    # architecture projects
    "site_photo": IMAGE_EXTENSIONS,
    "existing_plan": {'.pdf', '.dwg'} | IMAGE_EXTENSIONS,
    "approval": {'.pdf'} | IMAGE_EXTENSIONS,
}

TEXT_EXTRACTED_TYPES = {"cv"}


def max_file_size_bytes() -> int:
    return settings.max_upload_mb * 1024 * 1024


def get_file_extension(filename: str) -> str:
    """Get lowercase file extension."""
    if '.' not in filename:
        return ''
    return '.' + filename.rsplit('.', 1)[1].lower()


async def store_upload(file: UploadFile, document_type: str, owner_type: str, owner_id: int) -> dict:
    """
    Validate an upload and write it under the upload directory.

    Args:
        file: FastAPI UploadFile
        document_type: one of ALLOWED_EXTENSIONS' keys
        owner_type / owner_id: what the document belongs to

    Returns:
        dict with original_filename, stored_path, content_type, size_bytes
        and extracted_text (CVs only, may be None)

    Raises:
        HTTPException on validation/extraction errors
    """
    if not file.filename:
        raise HTTPException(status_code=400, detail="No filename provided")

    allowed = ALLOWED_EXTENSIONS.get(document_type)
    if allowed is None:
        raise HTTPException(status_code=400, detail=f"Unknown document type '{document_type}'")

    ext = get_file_extension(file.filename)
    if ext not in allowed:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type '{ext}' for {document_type}. Allowed: {', '.join(sorted(allowed))}"
        )

    content = await file.read()

    if not content:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")

    if len(content) > max_file_size_bytes():
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size: {settings.max_upload_mb}MB"
        )

    extracted = None
    if document_type in TEXT_EXTRACTED_TYPES:
        extracted = extract_text(content, ext) or None

    folder = os.path.join(settings.upload_dir, owner_type, str(owner_id))
    os.makedirs(folder, exist_ok=True)
    stored_path = os.path.join(folder, f"{uuid.uuid4().hex}{ext}")
    with open(stored_path, "wb") as fh:
        fh.write(content)

    logger.info(f"Stored {document_type} for {owner_type} {owner_id} at {stored_path} ({len(content)} bytes)")

    return {
        "original_filename": file.filename,
        "stored_path": stored_path,
        "content_type": file.content_type,
        "size_bytes": len(content),
        "extracted_text": extracted,
    }


def remove_stored_file(path: Optional[str]) -> None:
    """Delete a stored upload; a file that is already gone is ignored."""
    if not path:
        return
    try:
        os.remove(path)
    except FileNotFoundError:
        logger.warning(f"Stored file already missing: {path}")


def extract_text(content: bytes, ext: str) -> str:
    if ext == '.pdf':
        return extract_from_pdf(content)
    if ext == '.docx':
        return extract_from_docx(content)
    return extract_from_txt(content)


def extract_from_pdf(content: bytes) -> str:
    """Extract text from PDF bytes."""
    try:
        reader = PdfReader(io.BytesIO(content))
        text_parts = []
        for page in reader.pages:
            page_text = page.extract_text()
            if page_text:
                text_parts.append(page_text)
        return '\n'.join(text_parts)
    except Exception as e:
        raise HTTPException(status_code=400, detail=f"Error reading PDF: {str(e)}")


def extract_from_docx(content: bytes) -> str:
    """Extract text from DOCX bytes."""
    try:
        doc = Document(io.BytesIO(content))
        text_parts = []

        for para in doc.paragraphs:
            if para.text.strip():
                text_parts.append(para.text)

        for table in doc.tables:
            for row in table.rows:
                row_text = [cell.text.strip() for cell in row.cells if cell.text.strip()]
                if row_text:
                    text_parts.append(' | '.join(row_text))

        return '\n'.join(text_parts)
    except Exception as e:
        raise HTTPException(status_code=400, detail=f"Error reading DOCX: {str(e)}")


def extract_from_txt(content: bytes) -> str:
    """Extract text from TXT bytes."""
    for encoding in ['utf-8', 'cp1252']:
        try:
            return content.decode(encoding)
        except UnicodeDecodeError:
            continue
    return content.decode('latin-1')

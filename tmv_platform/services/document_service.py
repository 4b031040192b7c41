"""
Document records for uploads owned by job seekers, company registrations
and architecture projects.
"""

from typing import List, Optional

from fastapi import UploadFile
from sqlalchemy import text
from sqlalchemy.orm import Session

from tmv_platform.db.database import fetch_all, fetch_one, insert_row, utcnow
from tmv_platform.utils.file_upload import store_upload, remove_stored_file

DOCUMENT_COLUMNS = "id, owner_type, owner_id, document_type, original_filename, content_type, size_bytes, uploaded_at"


async def save_document(db: Session, upload: UploadFile, document_type: str, owner_type: str,
                        owner_id: int, uploaded_by: int) -> dict:
    """Store the upload on disk and record it; the file is removed again if the insert fails."""
    stored = await store_upload(upload, document_type, owner_type, owner_id)
    try:
        doc_id = insert_row(
            db,
            """
            INSERT INTO documents (owner_type, owner_id, document_type, original_filename, stored_path,
                                   content_type, size_bytes, extracted_text, uploaded_by, uploaded_at)
            VALUES (:owner_type, :owner_id, :document_type, :original_filename, :stored_path,
                    :content_type, :size_bytes, :extracted_text, :uploaded_by, :uploaded_at)
            """,
            {
                "owner_type": owner_type,
                "owner_id": owner_id,
                "document_type": document_type,
                "uploaded_by": uploaded_by,
                "uploaded_at": utcnow(),
                **stored,
            }
        )
    except Exception:
        remove_stored_file(stored["stored_path"])
        raise
    return get_document(db, doc_id, owner_type, owner_id)


def list_documents(db: Session, owner_type: str, owner_id: int, document_type: str = None) -> List[dict]:
    sql = f"SELECT {DOCUMENT_COLUMNS} FROM documents WHERE owner_type = :owner_type AND owner_id = :owner_id"
    params = {"owner_type": owner_type, "owner_id": owner_id}
    if document_type:
        sql += " AND document_type = :document_type"
        params["document_type"] = document_type
    return fetch_all(db, sql + " ORDER BY uploaded_at, id", params)


def get_document(db: Session, doc_id: int, owner_type: str, owner_id: int) -> Optional[dict]:
    return fetch_one(
        db,
        f"SELECT {DOCUMENT_COLUMNS}, stored_path FROM documents WHERE id = :id AND owner_type = :owner_type AND owner_id = :owner_id",
        {"id": doc_id, "owner_type": owner_type, "owner_id": owner_id}
    )


def delete_documents_of(db: Session, owner_type: str, owner_id: int) -> List[str]:
    """Delete every document row of an owner; returns the stored paths to clean up."""
    rows = fetch_all(
        db,
        "SELECT stored_path FROM documents WHERE owner_type = :owner_type AND owner_id = :owner_id",
        {"owner_type": owner_type, "owner_id": owner_id}
    )
    db.execute(
        text("DELETE FROM documents WHERE owner_type = :owner_type AND owner_id = :owner_id"),
        {"owner_type": owner_type, "owner_id": owner_id}
    )
    return [r["stored_path"] for r in rows]

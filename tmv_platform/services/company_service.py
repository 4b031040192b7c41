"""
Company registrations for business-services clients.

Flat contact/address columns are reshaped into nested objects; requested
services and uploaded documents are child rows loaded per batch.
"""

from typing import List, Optional

from sqlalchemy import text
from sqlalchemy.orm import Session

from tmv_platform.db.database import fetch_all, fetch_all_in
from tmv_platform.services.document_service import DOCUMENT_COLUMNS

COMPANY_OWNER = "company"


def _shape(row: dict, services: List[str], documents: List[dict]) -> dict:
    return {
        "id": row["id"],
        "client_id": row["client_id"],
        "company_name": row["company_name"],
        "registration_number": row["registration_number"],
        "contact_person": {
            "name": row["contact_person_name"],
            "position": row["contact_person_position"],
            "email": row["contact_person_email"],
            "phone": row["contact_person_phone"],
        },
        "address": {
            "street": row["address_street"],
            "city": row["address_city"],
            "postal_code": row["address_postal_code"],
            "country": row["address_country"],
        },
        "services": services,
        "documents": documents,
        "status": row["status"],
        "review_notes": row["review_notes"],
        "created_at": row["created_at"],
        "updated_at": row["updated_at"],
    }


def load_companies(db: Session, where: str = "", params: dict = None) -> List[dict]:
    sql = "SELECT c.* FROM company_registrations c"
    if where:
        sql += f" WHERE {where}"
    rows = fetch_all(db, sql + " ORDER BY c.created_at DESC, c.id DESC", params)
    ids = [r["id"] for r in rows]

    services = {}
    for s in fetch_all_in(
        db, "SELECT company_id, service_type FROM company_services WHERE company_id IN :ids ORDER BY id", ids
    ):
        services.setdefault(s["company_id"], []).append(s["service_type"])

    documents = {}
    for d in fetch_all_in(
        db,
        f"SELECT {DOCUMENT_COLUMNS} FROM documents WHERE owner_type = :owner_type AND owner_id IN :ids ORDER BY uploaded_at, id",
        ids,
        {"owner_type": COMPANY_OWNER}
    ):
        documents.setdefault(d["owner_id"], []).append(d)

    return [_shape(r, services.get(r["id"], []), documents.get(r["id"], [])) for r in rows]


def load_company(db: Session, company_id: int) -> Optional[dict]:
    companies = load_companies(db, "c.id = :id", {"id": company_id})
    return companies[0] if companies else None


def flatten_registration(contact_person: Optional[dict], address: Optional[dict]) -> dict:
    """Nested request objects to column values (only the groups that were sent)."""
    columns = {}
    if contact_person is not None:
        columns.update({
            "contact_person_name": contact_person["name"],
            "contact_person_position": contact_person.get("position"),
            "contact_person_email": contact_person["email"],
            "contact_person_phone": contact_person.get("phone"),
        })
    if address is not None:
        columns.update({
            "address_street": address.get("street"),
            "address_city": address.get("city"),
            "address_postal_code": address.get("postal_code"),
            "address_country": address.get("country"),
        })
    return columns


def replace_services(db: Session, company_id: int, services: List[str]) -> None:
    db.execute(text("DELETE FROM company_services WHERE company_id = :id"), {"id": company_id})
    for service in services:
        if service and service.strip():
            db.execute(
                text("INSERT INTO company_services (company_id, service_type) VALUES (:id, :service)"),
                {"id": company_id, "service": service.strip()}
            )

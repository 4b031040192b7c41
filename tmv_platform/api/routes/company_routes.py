"""
Company Registration Routes (business-services clients)

POST /companies/register - Register a company with contact, address and services
GET /companies/mine - My registrations
GET /companies/{company_id} - Registration details (owner or admin)
PUT /companies/{company_id} - Update a pending registration
DELETE /companies/{company_id} - Delete registration
POST /companies/{company_id}/documents - Upload a supporting document
GET /companies/{company_id}/documents - List documents
"""

from fastapi import APIRouter, HTTPException, Depends, UploadFile, File, Form
from sqlalchemy import text
from typing import List

from tmv_platform.db.database import get_db_session, insert_row, utcnow
from tmv_platform.core.auth import get_current_client
from tmv_platform.core.permissions import ADMIN
from tmv_platform.services.company_service import (
    load_companies, load_company, flatten_registration, replace_services, COMPANY_OWNER
)
from tmv_platform.services.document_service import save_document, list_documents, delete_documents_of
from tmv_platform.utils.file_upload import remove_stored_file
from tmv_platform.schemas.schemas import (
    CompanyRegistrationCreate, CompanyRegistrationUpdate, CompanyRegistrationResponse,
    CompanyDocumentType, DocumentResponse, MessageResponse
)
from tmv_platform.utils.logger import get_logger

router = APIRouter(prefix="/companies", tags=["Companies"])
logger = get_logger(__name__)


def _visible_company(db, company_id: int, user: dict) -> dict:
    """The registration if the caller owns it (admins see all); 404 otherwise."""
    company = load_company(db, company_id)
    if not company or (user["role"] != ADMIN and company["client_id"] != user["user_id"]):
        raise HTTPException(status_code=404, detail="Company registration not found")
    return company


def _own_company(db, company_id: int, user: dict) -> dict:
    company = load_company(db, company_id)
    if not company or company["client_id"] != user["user_id"]:
        raise HTTPException(status_code=404, detail="Company registration not found")
    return company


@router.post("/register", response_model=CompanyRegistrationResponse, status_code=201)
async def register_company(data: CompanyRegistrationCreate, client: dict = Depends(get_current_client)):
    """Create the registration and its requested services in one transaction."""
    columns = flatten_registration(data.contact_person.model_dump(), data.address.model_dump())
    now = utcnow()

    with get_db_session() as db:
        company_id = insert_row(
            db,
            """
            INSERT INTO company_registrations (client_id, company_name, registration_number,
                contact_person_name, contact_person_position, contact_person_email, contact_person_phone,
                address_street, address_city, address_postal_code, address_country,
                status, created_at, updated_at)
            VALUES (:client_id, :company_name, :registration_number,
                :contact_person_name, :contact_person_position, :contact_person_email, :contact_person_phone,
                :address_street, :address_city, :address_postal_code, :address_country,
                'pending', :now, :now)
            """,
            {
                "client_id": client["user_id"],
                "company_name": data.company_name,
                "registration_number": data.registration_number,
                "now": now,
                **columns,
            }
        )
        replace_services(db, company_id, data.services)
        company = load_company(db, company_id)

    logger.info(f"Company registration {company_id} submitted by user {client['user_id']}")
    return company


@router.get("/mine", response_model=List[CompanyRegistrationResponse])
async def my_companies(client: dict = Depends(get_current_client)):
    with get_db_session() as db:
        return load_companies(db, "c.client_id = :uid", {"uid": client["user_id"]})


@router.get("/{company_id}", response_model=CompanyRegistrationResponse)
async def get_company(company_id: int, client: dict = Depends(get_current_client)):
    with get_db_session() as db:
        return _visible_company(db, company_id, client)


@router.put("/{company_id}", response_model=CompanyRegistrationResponse)
async def update_company(company_id: int, data: CompanyRegistrationUpdate, client: dict = Depends(get_current_client)):
    """Only pending registrations can be edited; services are replaced when sent."""
    changes = data.model_dump(exclude_unset=True)
    services = changes.pop("services", None)
    columns = flatten_registration(changes.pop("contact_person", None), changes.pop("address", None))
    columns.update({k: v for k, v in changes.items() if v is not None})

    with get_db_session() as db:
        company = _own_company(db, company_id, client)
        if company["status"] != "pending":
            raise HTTPException(status_code=400, detail=f"Registration is already {company['status']}")

        if columns:
            columns["updated_at"] = utcnow()
            set_clause = ", ".join(f"{k} = :{k}" for k in columns)
            db.execute(
                text(f"UPDATE company_registrations SET {set_clause} WHERE id = :id"),
                {**columns, "id": company_id}
            )
        if services is not None:
            replace_services(db, company_id, services)
        return load_company(db, company_id)


@router.delete("/{company_id}", response_model=MessageResponse)
async def delete_company(company_id: int, client: dict = Depends(get_current_client)):
    with get_db_session() as db:
        _own_company(db, company_id, client)
        paths = delete_documents_of(db, COMPANY_OWNER, company_id)
        db.execute(text("DELETE FROM company_registrations WHERE id = :id"), {"id": company_id})

    for path in paths:
        remove_stored_file(path)
    logger.info(f"Company registration {company_id} deleted by user {client['user_id']}")
    return MessageResponse(message="Company registration deleted")


@router.post("/{company_id}/documents", response_model=DocumentResponse, status_code=201)
async def upload_company_document(
    company_id: int,
    document_type: CompanyDocumentType = Form(...),
    file: UploadFile = File(...),
    client: dict = Depends(get_current_client)
):
    with get_db_session() as db:
        _own_company(db, company_id, client)
        return await save_document(db, file, document_type.value, COMPANY_OWNER, company_id, client["user_id"])


@router.get("/{company_id}/documents", response_model=List[DocumentResponse])
async def get_company_documents(company_id: int, client: dict = Depends(get_current_client)):
    with get_db_session() as db:
        _visible_company(db, company_id, client)
        return list_documents(db, COMPANY_OWNER, company_id)

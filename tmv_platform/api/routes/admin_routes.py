"""
Admin Routes

GET /admin/users - List users (filter by role, search name/email)
PUT /admin/users/{user_id}/toggle-status - Activate / deactivate account
POST /admin/users/{user_id}/reset-password - Set a new password
DELETE /admin/users/{user_id} - Delete account
GET /admin/analytics - Platform-wide counts and revenue
GET /admin/companies - Company registrations (filter by status)
PUT /admin/companies/{company_id}/approve - Approve registration
PUT /admin/companies/{company_id}/reject - Reject registration
POST /admin/services - Add catalog service
PUT /admin/services/{service_id} - Edit catalog service
DELETE /admin/services/{service_id} - Retire catalog service
"""

from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy import text
from typing import List, Optional

from tmv_platform.db.database import get_db_session, fetch_all, fetch_one, insert_row, utcnow
from tmv_platform.core.auth import get_current_admin, hash_password
from tmv_platform.services.company_service import load_companies, load_company
from tmv_platform.schemas.schemas import (
    UserResponse, UserRole, AdminPasswordReset, AnalyticsResponse, CompanyStatus,
    CompanyRegistrationResponse, ReviewRequest, ServiceCreate, ServiceUpdate, ServiceResponse,
    MessageResponse
)
from tmv_platform.utils.logger import get_logger

router = APIRouter(prefix="/admin", tags=["Admin"])
logger = get_logger(__name__)


def _not_self(user_id: int, admin: dict) -> None:
    if user_id == admin["user_id"]:
        raise HTTPException(status_code=400, detail="You cannot do this to your own account")


def _counts(db, sql: str, params: dict = None) -> dict:
    return {r["k"]: int(r["n"]) for r in fetch_all(db, sql, params)}


# ============================================================
# USERS
# ============================================================

@router.get("/users", response_model=List[UserResponse])
async def list_users(
    role: Optional[UserRole] = None,
    search: Optional[str] = None,
    admin: dict = Depends(get_current_admin)
):
    conditions, params = [], {}
    if role:
        conditions.append("role = :role")
        params["role"] = role.value
    if search:
        conditions.append(
            "(LOWER(email) LIKE LOWER(:q) OR LOWER(first_name) LIKE LOWER(:q) OR LOWER(last_name) LIKE LOWER(:q))"
        )
        params["q"] = f"%{search.strip()}%"

    sql = "SELECT id, email, first_name, last_name, phone, role, is_active, created_at FROM users"
    if conditions:
        sql += " WHERE " + " AND ".join(conditions)

    with get_db_session() as db:
        return fetch_all(db, sql + " ORDER BY created_at DESC, id DESC", params)


@router.put("/users/{user_id}/toggle-status", response_model=MessageResponse)
async def toggle_user_status(user_id: int, admin: dict = Depends(get_current_admin)):
    _not_self(user_id, admin)

    with get_db_session() as db:
        user = fetch_one(db, "SELECT id, is_active FROM users WHERE id = :id", {"id": user_id})
        if not user:
            raise HTTPException(status_code=404, detail="User not found")
        active = not bool(user["is_active"])
        db.execute(
            text("UPDATE users SET is_active = :active, updated_at = :now WHERE id = :id"),
            {"active": active, "now": utcnow(), "id": user_id}
        )

    state = "activated" if active else "deactivated"
    logger.info(f"User {user_id} {state} by admin {admin['user_id']}")
    return MessageResponse(message=f"User {state}")


@router.post("/users/{user_id}/reset-password", response_model=MessageResponse)
async def admin_reset_password(user_id: int, data: AdminPasswordReset, admin: dict = Depends(get_current_admin)):
    with get_db_session() as db:
        result = db.execute(
            text("""
                UPDATE users
                SET password_hash = :hash, reset_token = NULL, reset_token_expires = NULL, updated_at = :now
                WHERE id = :id
            """),
            {"hash": hash_password(data.new_password), "now": utcnow(), "id": user_id}
        )
        if result.rowcount == 0:
            raise HTTPException(status_code=404, detail="User not found")

    logger.info(f"Password of user {user_id} reset by admin {admin['user_id']}")
    return MessageResponse(message="Password reset")


@router.delete("/users/{user_id}", response_model=MessageResponse)
async def delete_user(user_id: int, admin: dict = Depends(get_current_admin)):
    _not_self(user_id, admin)

    with get_db_session() as db:
        result = db.execute(text("DELETE FROM users WHERE id = :id"), {"id": user_id})
        if result.rowcount == 0:
            raise HTTPException(status_code=404, detail="User not found")

    logger.info(f"User {user_id} deleted by admin {admin['user_id']}")
    return MessageResponse(message="User deleted")


@router.get("/analytics", response_model=AnalyticsResponse)
async def analytics(admin: dict = Depends(get_current_admin)):
    with get_db_session() as db:
        revenue = fetch_one(
            db, "SELECT COALESCE(SUM(amount), 0) AS total FROM transactions WHERE status = 'completed'"
        )
        return AnalyticsResponse(
            users_by_role=_counts(db, "SELECT role AS k, COUNT(*) AS n FROM users GROUP BY role"),
            jobs_by_approval_status=_counts(
                db, "SELECT approval_status AS k, COUNT(*) AS n FROM jobs GROUP BY approval_status"
            ),
            applications_by_status=_counts(
                db, "SELECT status AS k, COUNT(*) AS n FROM job_applications GROUP BY status"
            ),
            orders_by_status=_counts(db, "SELECT status AS k, COUNT(*) AS n FROM orders GROUP BY status"),
            completed_revenue=round(float(revenue["total"] or 0), 2),
        )


# ============================================================
# COMPANY REGISTRATIONS
# ============================================================

@router.get("/companies", response_model=List[CompanyRegistrationResponse])
async def list_companies(status: Optional[CompanyStatus] = None, admin: dict = Depends(get_current_admin)):
    with get_db_session() as db:
        if status:
            return load_companies(db, "c.status = :status", {"status": status.value})
        return load_companies(db)


def _review_company(company_id: int, status: str, notes: Optional[str], admin: dict) -> dict:
    with get_db_session() as db:
        if not load_company(db, company_id):
            raise HTTPException(status_code=404, detail="Company registration not found")
        db.execute(
            text("UPDATE company_registrations SET status = :status, review_notes = :notes, updated_at = :now WHERE id = :id"),
            {"status": status, "notes": notes, "now": utcnow(), "id": company_id}
        )
        company = load_company(db, company_id)

    logger.info(f"Company registration {company_id} {status} by admin {admin['user_id']}")
    return company


@router.put("/companies/{company_id}/approve", response_model=CompanyRegistrationResponse)
async def approve_company(company_id: int, data: ReviewRequest = ReviewRequest(), admin: dict = Depends(get_current_admin)):
    return _review_company(company_id, "approved", data.notes, admin)


@router.put("/companies/{company_id}/reject", response_model=CompanyRegistrationResponse)
async def reject_company(company_id: int, data: ReviewRequest = ReviewRequest(), admin: dict = Depends(get_current_admin)):
    return _review_company(company_id, "rejected", data.notes, admin)


# ============================================================
# SERVICES CATALOG
# ============================================================

@router.post("/services", response_model=ServiceResponse, status_code=201)
async def create_service(data: ServiceCreate, admin: dict = Depends(get_current_admin)):
    with get_db_session() as db:
        service_id = insert_row(
            db,
            """
            INSERT INTO services (name, description, price, category, status)
            VALUES (:name, :description, :price, :category, 'active')
            """,
            data.model_dump()
        )
        return fetch_one(db, "SELECT * FROM services WHERE id = :id", {"id": service_id})


@router.put("/services/{service_id}", response_model=ServiceResponse)
async def update_service(service_id: int, data: ServiceUpdate, admin: dict = Depends(get_current_admin)):
    changes = data.model_dump(exclude_unset=True)

    with get_db_session() as db:
        if not fetch_one(db, "SELECT id FROM services WHERE id = :id", {"id": service_id}):
            raise HTTPException(status_code=404, detail="Service not found")
        if changes:
            set_clause = ", ".join(f"{k} = :{k}" for k in changes)
            db.execute(text(f"UPDATE services SET {set_clause} WHERE id = :id"), {**changes, "id": service_id})
        return fetch_one(db, "SELECT * FROM services WHERE id = :id", {"id": service_id})


@router.delete("/services/{service_id}", response_model=MessageResponse)
async def retire_service(service_id: int, admin: dict = Depends(get_current_admin)):
    """Soft delete: the service leaves the catalog but past orders keep their reference."""
    with get_db_session() as db:
        result = db.execute(
            text("UPDATE services SET status = 'inactive' WHERE id = :id"),
            {"id": service_id}
        )
        if result.rowcount == 0:
            raise HTTPException(status_code=404, detail="Service not found")

    return MessageResponse(message="Service removed from catalog")

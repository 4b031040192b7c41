"""
Account helpers shared by registration, employer team management and
management promotion.
"""

from fastapi import HTTPException
from sqlalchemy import text
from sqlalchemy.orm import Session

from tmv_platform.core.auth import hash_password
from tmv_platform.core.permissions import ALL_PERMISSIONS, MANAGEMENT
from tmv_platform.db.database import fetch_one, insert_row, utcnow


def email_taken(db: Session, email: str) -> bool:
    return fetch_one(db, "SELECT id FROM users WHERE LOWER(email) = LOWER(:email)", {"email": email}) is not None


def create_user(db: Session, email: str, password: str, first_name: str, last_name: str, phone, role: str) -> int:
    """Insert a users row; 400 when the email is already registered."""
    if email_taken(db, email):
        raise HTTPException(status_code=400, detail="Email already registered")
    now = utcnow()
    return insert_row(
        db,
        """
        INSERT INTO users (email, password_hash, first_name, last_name, phone, role, is_active, created_at, updated_at)
        VALUES (:email, :password_hash, :first_name, :last_name, :phone, :role, :active, :now, :now)
        """,
        {
            "email": email.lower(),
            "password_hash": hash_password(password),
            "first_name": first_name,
            "last_name": last_name,
            "phone": phone,
            "role": role,
            "active": True,
            "now": now,
        }
    )


def create_employer_profile(db: Session, user_id: int, company_name: str, role: str,
                            owner_id: int = None, department: str = None, phone: str = None) -> None:
    now = utcnow()
    db.execute(
        text("""
            INSERT INTO employer_profiles (user_id, owner_id, company_name, role, department, phone, created_at, updated_at)
            VALUES (:user_id, :owner_id, :company_name, :role, :department, :phone, :now, :now)
        """),
        {
            "user_id": user_id,
            "owner_id": owner_id,
            "company_name": company_name,
            "role": role,
            "department": department,
            "phone": phone,
            "now": now,
        }
    )


def grant_permissions(db: Session, user_id: int, permissions) -> None:
    """Replace a user's permission rows with the given set."""
    db.execute(text("DELETE FROM employer_permissions WHERE user_id = :id"), {"id": user_id})
    for permission in sorted(set(permissions)):
        db.execute(
            text("INSERT INTO employer_permissions (user_id, permission) VALUES (:id, :p)"),
            {"id": user_id, "p": permission}
        )


def set_team_status(db: Session, user_id: int, status: str, reason: str, changed_by: int) -> None:
    """Upsert the user_status row for a team member."""
    params = {"uid": user_id, "status": status, "reason": reason, "by": changed_by, "now": utcnow()}
    existing = fetch_one(db, "SELECT id FROM user_status WHERE user_id = :uid", {"uid": user_id})
    if existing:
        db.execute(
            text("""
                UPDATE user_status SET status = :status, reason = :reason, changed_by = :by, changed_at = :now
                WHERE user_id = :uid
            """),
            params
        )
    else:
        db.execute(
            text("""
                INSERT INTO user_status (user_id, status, reason, changed_by, changed_at)
                VALUES (:uid, :status, :reason, :by, :now)
            """),
            params
        )


def promote_to_management(db: Session, email: str) -> int:
    """
    Turn an employer-side account into a management account holding every
    permission. Returns the user id.

    Raises:
        HTTPException 404 when no such user, 400 when it has no employer profile
    """
    user = fetch_one(db, "SELECT id, role FROM users WHERE LOWER(email) = LOWER(:email)", {"email": email})
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    profile = fetch_one(db, "SELECT id FROM employer_profiles WHERE user_id = :id", {"id": user["id"]})
    if not profile:
        raise HTTPException(status_code=400, detail="Only employer accounts can be promoted to management")

    now = utcnow()
    db.execute(text("UPDATE users SET role = :role, updated_at = :now WHERE id = :id"),
               {"role": MANAGEMENT, "now": now, "id": user["id"]})
    db.execute(text("UPDATE employer_profiles SET role = :role, updated_at = :now WHERE user_id = :id"),
               {"role": MANAGEMENT, "now": now, "id": user["id"]})
    grant_permissions(db, user["id"], ALL_PERMISSIONS)
    return user["id"]

"""
Authentication Utility - JWT and Password handling.

Provides:
- Password hashing with bcrypt
- JWT token creation/verification
- FastAPI dependencies for protected routes (role and permission gates)
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from tmv_platform.core.config import get_settings
from tmv_platform.core.permissions import (
    ADMIN, MANAGEMENT, JOBSEEKER, CLIENT, EMPLOYER_SIDE_ROLES,
    ALL_PERMISSIONS, BLOCKED_TEAM_STATUSES
)
from tmv_platform.db.database import get_db_session, fetch_one, fetch_all

settings = get_settings()

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Bearer token extractor
bearer_scheme = HTTPBearer()


def hash_password(password: str) -> str:
    """Hash password with bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against hash."""
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[dict]:
    """Decode and verify JWT token."""
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


def load_permissions(db, user_id: int, role: str) -> list:
    """Permissions held by an employer-side user; management holds all of them."""
    if role == MANAGEMENT:
        return list(ALL_PERMISSIONS)
    rows = fetch_all(
        db,
        "SELECT permission FROM employer_permissions WHERE user_id = :id ORDER BY permission",
        {"id": user_id}
    )
    return [r["permission"] for r in rows]


def team_status_of(db, user_id: int) -> str:
    row = fetch_one(db, "SELECT status FROM user_status WHERE user_id = :id", {"id": user_id})
    return row["status"] if row else "active"


async def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme)) -> dict:
    """
    FastAPI dependency - Get current authenticated user.

    Usage:
        @router.get("/protected")
        async def route(user: dict = Depends(get_current_user)):
            return user
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired token",
        headers={"WWW-Authenticate": "Bearer"},
    )

    payload = decode_token(credentials.credentials)
    if not payload or payload.get("type", "access") != "access":
        raise credentials_exception

    user_id = payload.get("sub")
    if not user_id:
        raise credentials_exception

    # Verify user exists and is allowed in
    with get_db_session() as db:
        user = fetch_one(
            db,
            """
            SELECT id, email, role, first_name, last_name, is_active
            FROM users WHERE id = :id
            """,
            {"id": int(user_id)}
        )
        team_status = team_status_of(db, int(user_id)) if user else None

    if not user:
        raise credentials_exception

    if not user["is_active"]:
        raise HTTPException(status_code=403, detail="Account deactivated")

    if team_status in BLOCKED_TEAM_STATUSES:
        raise HTTPException(status_code=403, detail=f"Account {team_status}")

    return {
        "user_id": user["id"],
        "email": user["email"],
        "role": user["role"],
        "first_name": user["first_name"],
        "last_name": user["last_name"],
    }


def require_roles(*roles: str, detail: str = "Access denied for this role"):
    """Dependency factory - allow only the given user roles."""
    async def dependency(user: dict = Depends(get_current_user)) -> dict:
        if user["role"] not in roles:
            raise HTTPException(status_code=403, detail=detail)
        return user
    return dependency


async def get_current_jobseeker(user: dict = Depends(get_current_user)) -> dict:
    """Dependency - Require jobseeker role and attach profile_id."""
    if user["role"] != JOBSEEKER:
        raise HTTPException(status_code=403, detail="Job seekers only")

    with get_db_session() as db:
        row = fetch_one(db, "SELECT id FROM jobseeker_profiles WHERE user_id = :id", {"id": user["user_id"]})

    if not row:
        raise HTTPException(status_code=404, detail="Job seeker profile not found")

    user["profile_id"] = row["id"]
    return user


async def get_current_employer(user: dict = Depends(get_current_user)) -> dict:
    """
    Dependency - Require an employer-side account.

    Attaches the employer profile, the company scope (owner's id for team
    members, own id for owners) and the effective permission list.
    """
    if user["role"] not in EMPLOYER_SIDE_ROLES:
        raise HTTPException(status_code=403, detail="Employer access only")

    with get_db_session() as db:
        profile = fetch_one(
            db,
            "SELECT owner_id, company_name, role, department FROM employer_profiles WHERE user_id = :id",
            {"id": user["user_id"]}
        )
        if not profile:
            raise HTTPException(status_code=403, detail="Employer profile not found")
        permissions = load_permissions(db, user["user_id"], user["role"])

    user["owner_id"] = profile["owner_id"]
    user["scope_id"] = profile["owner_id"] or user["user_id"]
    user["company_name"] = profile["company_name"]
    user["profile_role"] = profile["role"]
    user["department"] = profile["department"]
    user["permissions"] = permissions
    return user


async def get_current_manager(user: dict = Depends(get_current_employer)) -> dict:
    """Dependency - Require a management account (user role and profile role)."""
    if user["role"] != MANAGEMENT or user["profile_role"] != MANAGEMENT:
        raise HTTPException(status_code=403, detail="Management access only")
    return user


get_current_admin = require_roles(ADMIN, detail="Admins only")

# Business-services customers (admins may act as clients too)
get_current_client = require_roles(CLIENT, ADMIN, detail="Clients only")


def require_permission(permission: str):
    """Dependency factory - employer-side user holding the given permission."""
    async def dependency(user: dict = Depends(get_current_employer)) -> dict:
        if permission not in user["permissions"]:
            raise HTTPException(status_code=403, detail=f"Missing permission: {permission}")
        return user
    return dependency


def require_manager_permission(permission: str):
    """Dependency factory - management account holding the given permission."""
    async def dependency(user: dict = Depends(get_current_manager)) -> dict:
        if permission not in user["permissions"]:
            raise HTTPException(status_code=403, detail=f"Missing permission: {permission}")
        return user
    return dependency

"""
Authentication Routes

POST /auth/register/jobseeker - Register job seeker account + profile
POST /auth/register/employer - Register employer (company owner) account
POST /auth/register/client - Register business-services client
POST /auth/login - Login and get JWT token
GET /auth/me - Get current user info
POST /auth/forgot-password - Issue a password reset token
POST /auth/reset-password - Set a new password with a reset token
PUT /auth/change-password - Change own password
"""

from datetime import timedelta

from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy import text

from tmv_platform.db.database import get_db_session, fetch_one, utcnow, as_datetime
from tmv_platform.core.auth import (
    hash_password, verify_password, create_access_token, decode_token,
    get_current_user, load_permissions, team_status_of
)
from tmv_platform.core.config import get_settings
from tmv_platform.core.permissions import (
    JOBSEEKER, EMPLOYER, CLIENT, OWNER_PERMISSIONS, BLOCKED_TEAM_STATUSES, EMPLOYER_SIDE_ROLES
)
from tmv_platform.services.account_service import create_user, create_employer_profile, grant_permissions
from tmv_platform.schemas.schemas import (
    JobseekerRegisterRequest, EmployerRegisterRequest, ClientRegisterRequest, LoginRequest,
    TokenResponse, UserResponse, ForgotPasswordRequest, ForgotPasswordResponse,
    ResetPasswordRequest, ChangePasswordRequest, MessageResponse, CreatedResponse
)
from tmv_platform.utils.logger import get_logger

router = APIRouter(prefix="/auth", tags=["Authentication"])
settings = get_settings()
logger = get_logger(__name__)

RESET_TOKEN_TYPE = "password_reset"


@router.post("/register/jobseeker", response_model=CreatedResponse, status_code=201)
async def register_jobseeker(request: JobseekerRegisterRequest):
    """Register a job seeker. The profile is created with the account."""
    with get_db_session() as db:
        if fetch_one(db, "SELECT id FROM jobseeker_profiles WHERE id_passport_no = :no", {"no": request.id_passport_no}):
            raise HTTPException(status_code=400, detail="ID/Passport number already registered")

        user_id = create_user(
            db, request.email, request.password, request.first_name,
            request.last_name, request.phone, JOBSEEKER
        )
        now = utcnow()
        db.execute(
            text("""
                INSERT INTO jobseeker_profiles (user_id, first_name, last_name, id_passport_no, created_at, updated_at)
                VALUES (:user_id, :first_name, :last_name, :id_no, :now, :now)
            """),
            {
                "user_id": user_id,
                "first_name": request.first_name,
                "last_name": request.last_name,
                "id_no": request.id_passport_no,
                "now": now,
            }
        )

    logger.info(f"Registered job seeker {user_id}")
    return CreatedResponse(message="Registered successfully as jobseeker. Please login.", id=user_id)


@router.post("/register/employer", response_model=CreatedResponse, status_code=201)
async def register_employer(request: EmployerRegisterRequest):
    """Register a company owner account with the default owner permissions."""
    with get_db_session() as db:
        user_id = create_user(
            db, request.email, request.password, request.first_name,
            request.last_name, request.phone, EMPLOYER
        )
        create_employer_profile(
            db, user_id, request.company_name, EMPLOYER,
            department=request.department.value if request.department else None,
            phone=request.phone
        )
        grant_permissions(db, user_id, OWNER_PERMISSIONS)

    logger.info(f"Registered employer {user_id} ({request.company_name})")
    return CreatedResponse(message="Registered successfully as employer. Please login.", id=user_id)


@router.post("/register/client", response_model=CreatedResponse, status_code=201)
async def register_client(request: ClientRegisterRequest):
    with get_db_session() as db:
        user_id = create_user(
            db, request.email, request.password, request.first_name,
            request.last_name, request.phone, CLIENT
        )

    logger.info(f"Registered client {user_id}")
    return CreatedResponse(message="Registered successfully as client. Please login.", id=user_id)


@router.post("/login", response_model=TokenResponse)
async def login(request: LoginRequest):
    """
    Login and receive JWT access token.

    remember_me extends the token lifetime to jwt_remember_me_days.
    Include token in requests: Authorization: Bearer <token>
    """
    with get_db_session() as db:
        user = fetch_one(
            db,
            "SELECT id, password_hash, role, is_active FROM users WHERE LOWER(email) = LOWER(:email)",
            {"email": request.email}
        )

        if not user or not verify_password(request.password, user["password_hash"]):
            raise HTTPException(status_code=401, detail="Invalid email or password")

        if not user["is_active"]:
            raise HTTPException(status_code=403, detail="Account deactivated")

        team_status = team_status_of(db, user["id"])
        if team_status in BLOCKED_TEAM_STATUSES:
            raise HTTPException(status_code=403, detail=f"Account {team_status}")

        db.execute(text("UPDATE users SET last_login_at = :now WHERE id = :id"), {"now": utcnow(), "id": user["id"]})

    if request.remember_me:
        lifetime = timedelta(days=settings.jwt_remember_me_days)
    else:
        lifetime = timedelta(minutes=settings.jwt_expire_minutes)

    token = create_access_token(data={"sub": str(user["id"]), "role": user["role"]}, expires_delta=lifetime)

    return TokenResponse(
        access_token=token,
        user_id=user["id"],
        role=user["role"],
        expires_in=int(lifetime.total_seconds())
    )


@router.get("/me", response_model=UserResponse)
async def get_me(user: dict = Depends(get_current_user)):
    """Get current authenticated user's info, with employer profile and permissions when present."""
    with get_db_session() as db:
        row = fetch_one(
            db,
            "SELECT id, email, first_name, last_name, phone, role, is_active, created_at FROM users WHERE id = :id",
            {"id": user["user_id"]}
        )
        response = dict(row)
        response["team_status"] = team_status_of(db, user["user_id"])
        if row["role"] in EMPLOYER_SIDE_ROLES:
            profile = fetch_one(
                db,
                "SELECT company_name, role FROM employer_profiles WHERE user_id = :id",
                {"id": user["user_id"]}
            )
            if profile:
                response["company_name"] = profile["company_name"]
                response["profile_role"] = profile["role"]
            response["permissions"] = load_permissions(db, user["user_id"], row["role"])

    return UserResponse(**response)


@router.post("/forgot-password", response_model=ForgotPasswordResponse)
async def forgot_password(request: ForgotPasswordRequest):
    """
    Start a password reset.

    The answer is identical whether or not the email exists. The token is
    only echoed back in debug mode; otherwise it goes to the log.
    """
    message = "If that email is registered, a password reset link has been sent"
    token = None

    with get_db_session() as db:
        user = fetch_one(db, "SELECT id FROM users WHERE LOWER(email) = LOWER(:email)", {"email": request.email})
        if user:
            lifetime = timedelta(minutes=settings.password_reset_expire_minutes)
            token = create_access_token({"sub": str(user["id"]), "type": RESET_TOKEN_TYPE}, expires_delta=lifetime)
            db.execute(
                text("UPDATE users SET reset_token = :token, reset_token_expires = :expires WHERE id = :id"),
                {"token": token, "expires": utcnow() + lifetime, "id": user["id"]}
            )
            logger.info(f"Password reset requested for user {user['id']}")
            logger.debug(f"Reset token for user {user['id']}: {token}")

    return ForgotPasswordResponse(message=message, reset_token=token if settings.debug else None)


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(request: ResetPasswordRequest):
    invalid = HTTPException(status_code=400, detail="Invalid or expired reset token")

    payload = decode_token(request.token)
    if not payload or payload.get("type") != RESET_TOKEN_TYPE or not payload.get("sub"):
        raise invalid

    with get_db_session() as db:
        user = fetch_one(
            db,
            "SELECT id, reset_token, reset_token_expires FROM users WHERE id = :id",
            {"id": int(payload["sub"])}
        )
        if not user or user["reset_token"] != request.token:
            raise invalid
        expires = as_datetime(user["reset_token_expires"])
        if expires is None or expires < utcnow():
            raise invalid

        db.execute(
            text("""
                UPDATE users
                SET password_hash = :hash, reset_token = NULL, reset_token_expires = NULL, updated_at = :now
                WHERE id = :id
            """),
            {"hash": hash_password(request.new_password), "now": utcnow(), "id": user["id"]}
        )

    logger.info(f"Password reset completed for user {user['id']}")
    return MessageResponse(message="Password has been reset. Please login.")


@router.put("/change-password", response_model=MessageResponse)
async def change_password(request: ChangePasswordRequest, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        row = fetch_one(db, "SELECT password_hash FROM users WHERE id = :id", {"id": user["user_id"]})
        if not verify_password(request.current_password, row["password_hash"]):
            raise HTTPException(status_code=400, detail="Current password is incorrect")
        db.execute(
            text("UPDATE users SET password_hash = :hash, updated_at = :now WHERE id = :id"),
            {"hash": hash_password(request.new_password), "now": utcnow(), "id": user["user_id"]}
        )

    return MessageResponse(message="Password changed successfully")

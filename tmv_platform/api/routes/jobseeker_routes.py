"""
Job Seeker Routes

GET /jobseeker/profile - Get own profile (work history, references, skills, documents)
PUT /jobseeker/profile - Update profile fields
PUT /jobseeker/profile/work-experience - Replace work history
PUT /jobseeker/profile/references - Replace references
GET /jobseeker/skills - Get skills
POST /jobseeker/skills - Add or update a skill
DELETE /jobseeker/skills/{skill_id} - Remove skill
POST /jobseeker/documents - Upload CV / ID copy / qualification
GET /jobseeker/documents - List uploaded documents
DELETE /jobseeker/documents/{document_id} - Delete a document
GET /jobseeker/applications - Get my applications
POST /jobseeker/applications/{application_id}/withdraw - Withdraw an application
GET /jobseeker/wishlist - Saved jobs
POST /jobseeker/wishlist - Save a job
DELETE /jobseeker/wishlist/{job_id} - Unsave a job
"""

from fastapi import APIRouter, HTTPException, Depends, UploadFile, File, Form
from sqlalchemy import text
from typing import List

from tmv_platform.db.database import get_db_session, fetch_one, insert_row, utcnow
from tmv_platform.core.auth import get_current_jobseeker
from tmv_platform.services.profile_service import load_jobseeker_profile, load_skills, JOBSEEKER_OWNER
from tmv_platform.services.document_service import save_document, list_documents, get_document
from tmv_platform.services.application_service import load_applications, set_application_status, FINAL_STATUSES
from tmv_platform.services.job_service import load_jobs, is_public_job, PUBLIC_WHERE
from tmv_platform.utils.file_upload import remove_stored_file
from tmv_platform.schemas.schemas import (
    JobseekerProfileUpdate, JobseekerProfileResponse, WorkExperienceItem, ReferenceItem,
    SkillAdd, SkillResponse, DocumentResponse, JobseekerDocumentType, ApplicationResponse,
    WishlistAdd, JobResponse, MessageResponse
)
from tmv_platform.utils.logger import get_logger

router = APIRouter(prefix="/jobseeker", tags=["Job Seekers"])
logger = get_logger(__name__)


@router.get("/profile", response_model=JobseekerProfileResponse)
async def get_profile(seeker: dict = Depends(get_current_jobseeker)):
    with get_db_session() as db:
        profile = load_jobseeker_profile(db, seeker["user_id"])
    return JobseekerProfileResponse(**profile)


@router.put("/profile", response_model=JobseekerProfileResponse)
async def update_profile(data: JobseekerProfileUpdate, seeker: dict = Depends(get_current_jobseeker)):
    """Update only the fields that were sent."""
    update_data = data.model_dump(exclude_unset=True)

    with get_db_session() as db:
        if update_data:
            update_data["updated_at"] = utcnow()
            set_clause = ", ".join(f"{k} = :{k}" for k in update_data)
            db.execute(
                text(f"UPDATE jobseeker_profiles SET {set_clause} WHERE id = :pid"),
                {**update_data, "pid": seeker["profile_id"]}
            )
            # Keep the account name in sync with the profile
            if "first_name" in update_data or "last_name" in update_data:
                names = fetch_one(
                    db, "SELECT first_name, last_name FROM jobseeker_profiles WHERE id = :pid", {"pid": seeker["profile_id"]}
                )
                db.execute(
                    text("UPDATE users SET first_name = :first_name, last_name = :last_name WHERE id = :uid"),
                    {**names, "uid": seeker["user_id"]}
                )
        profile = load_jobseeker_profile(db, seeker["user_id"])

    return JobseekerProfileResponse(**profile)


@router.put("/profile/work-experience", response_model=List[WorkExperienceItem])
async def replace_work_experience(items: List[WorkExperienceItem], seeker: dict = Depends(get_current_jobseeker)):
    """Replace the whole work history in one transaction."""
    for item in items:
        if item.end_date and item.end_date < item.start_date:
            raise HTTPException(status_code=400, detail=f"End date before start date at {item.company_name}")

    with get_db_session() as db:
        db.execute(text("DELETE FROM work_experience WHERE profile_id = :pid"), {"pid": seeker["profile_id"]})
        for item in items:
            db.execute(
                text("""
                    INSERT INTO work_experience (profile_id, company_name, job_title, start_date, end_date,
                        current_job, responsibilities, achievements, reason_for_leaving)
                    VALUES (:pid, :company_name, :job_title, :start_date, :end_date,
                        :current_job, :responsibilities, :achievements, :reason_for_leaving)
                """),
                {
                    "pid": seeker["profile_id"],
                    **item.model_dump(),
                    "end_date": None if item.current_job else item.end_date,
                }
            )
        profile = load_jobseeker_profile(db, seeker["user_id"])

    return profile["work_experience"]


@router.put("/profile/references", response_model=List[ReferenceItem])
async def replace_references(items: List[ReferenceItem], seeker: dict = Depends(get_current_jobseeker)):
    with get_db_session() as db:
        db.execute(text("DELETE FROM seeker_references WHERE profile_id = :pid"), {"pid": seeker["profile_id"]})
        for item in items:
            db.execute(
                text("""
                    INSERT INTO seeker_references (profile_id, ref_name, ref_contact, ref_relationship)
                    VALUES (:pid, :name, :contact, :relationship)
                """),
                {"pid": seeker["profile_id"], **item.model_dump()}
            )

    return items


# ============================================================
# SKILLS
# ============================================================

@router.get("/skills", response_model=List[SkillResponse])
async def get_skills(seeker: dict = Depends(get_current_jobseeker)):
    with get_db_session() as db:
        return load_skills(db, seeker["profile_id"])


@router.post("/skills", response_model=List[SkillResponse], status_code=201)
async def add_skill(skill: SkillAdd, seeker: dict = Depends(get_current_jobseeker)):
    """Add a skill (creates it in the catalog when new); re-adding updates the proficiency."""
    name = skill.skill_name.strip()

    with get_db_session() as db:
        row = fetch_one(db, "SELECT id FROM skills WHERE LOWER(name) = LOWER(:name)", {"name": name})
        skill_id = row["id"] if row else insert_row(db, "INSERT INTO skills (name) VALUES (:name)", {"name": name})

        existing = fetch_one(
            db,
            "SELECT skill_id FROM jobseeker_skills WHERE profile_id = :pid AND skill_id = :sid",
            {"pid": seeker["profile_id"], "sid": skill_id}
        )
        if existing:
            db.execute(
                text("UPDATE jobseeker_skills SET proficiency_level = :level WHERE profile_id = :pid AND skill_id = :sid"),
                {"level": skill.proficiency_level.value, "pid": seeker["profile_id"], "sid": skill_id}
            )
        else:
            db.execute(
                text("INSERT INTO jobseeker_skills (profile_id, skill_id, proficiency_level) VALUES (:pid, :sid, :level)"),
                {"level": skill.proficiency_level.value, "pid": seeker["profile_id"], "sid": skill_id}
            )
        return load_skills(db, seeker["profile_id"])


@router.delete("/skills/{skill_id}", response_model=MessageResponse)
async def remove_skill(skill_id: int, seeker: dict = Depends(get_current_jobseeker)):
    with get_db_session() as db:
        result = db.execute(
            text("DELETE FROM jobseeker_skills WHERE profile_id = :pid AND skill_id = :sid"),
            {"pid": seeker["profile_id"], "sid": skill_id}
        )
        if result.rowcount == 0:
            raise HTTPException(status_code=404, detail="Skill not found on your profile")

    return MessageResponse(message="Skill removed")


# ============================================================
# DOCUMENTS
# ============================================================

@router.post("/documents", response_model=DocumentResponse, status_code=201)
async def upload_document(
    document_type: JobseekerDocumentType = Form(...),
    file: UploadFile = File(...),
    seeker: dict = Depends(get_current_jobseeker)
):
    """
    Upload a CV, ID copy or qualification.

    A new CV replaces the previous one; CV text is extracted for employer search.
    """
    with get_db_session() as db:
        replaced = []
        if document_type == JobseekerDocumentType.cv:
            for old in list_documents(db, JOBSEEKER_OWNER, seeker["user_id"], "cv"):
                old_row = get_document(db, old["id"], JOBSEEKER_OWNER, seeker["user_id"])
                replaced.append(old_row["stored_path"])
                db.execute(text("DELETE FROM documents WHERE id = :id"), {"id": old["id"]})

        doc = await save_document(
            db, file, document_type.value, JOBSEEKER_OWNER, seeker["user_id"], seeker["user_id"]
        )

    for path in replaced:
        remove_stored_file(path)

    return DocumentResponse(**doc)


@router.get("/documents", response_model=List[DocumentResponse])
async def get_documents(seeker: dict = Depends(get_current_jobseeker)):
    with get_db_session() as db:
        return list_documents(db, JOBSEEKER_OWNER, seeker["user_id"])


@router.delete("/documents/{document_id}", response_model=MessageResponse)
async def delete_document(document_id: int, seeker: dict = Depends(get_current_jobseeker)):
    with get_db_session() as db:
        doc = get_document(db, document_id, JOBSEEKER_OWNER, seeker["user_id"])
        if not doc:
            raise HTTPException(status_code=404, detail="Document not found")
        db.execute(text("DELETE FROM documents WHERE id = :id"), {"id": document_id})

    remove_stored_file(doc["stored_path"])
    return MessageResponse(message="Document deleted")


# ============================================================
# APPLICATIONS
# ============================================================

@router.get("/applications", response_model=List[ApplicationResponse])
async def get_my_applications(seeker: dict = Depends(get_current_jobseeker)):
    """All jobs I have applied to, newest first."""
    with get_db_session() as db:
        return load_applications(db, "a.jobseeker_id = :uid", {"uid": seeker["user_id"]})


@router.post("/applications/{application_id}/withdraw", response_model=MessageResponse)
async def withdraw_application(application_id: int, seeker: dict = Depends(get_current_jobseeker)):
    with get_db_session() as db:
        app_row = fetch_one(
            db,
            "SELECT id, status FROM job_applications WHERE id = :id AND jobseeker_id = :uid",
            {"id": application_id, "uid": seeker["user_id"]}
        )
        if not app_row:
            raise HTTPException(status_code=404, detail="Application not found")
        if app_row["status"] in FINAL_STATUSES:
            raise HTTPException(status_code=400, detail=f"Cannot withdraw an application that is {app_row['status']}")

        changed = set_application_status(db, application_id, "withdrawn")

    if changed:
        logger.info(f"Application {application_id} withdrawn by job seeker {seeker['user_id']}")
    return MessageResponse(message="Application withdrawn")


# ============================================================
# WISHLIST
# ============================================================

@router.get("/wishlist", response_model=List[JobResponse])
async def get_wishlist(seeker: dict = Depends(get_current_jobseeker)):
    """Saved jobs that are still published."""
    with get_db_session() as db:
        return load_jobs(
            db,
            f"j.id IN (SELECT job_id FROM saved_jobs WHERE jobseeker_id = :uid) AND {PUBLIC_WHERE}",
            {"uid": seeker["user_id"]}
        )


@router.post("/wishlist", response_model=MessageResponse, status_code=201)
async def save_job(data: WishlistAdd, seeker: dict = Depends(get_current_jobseeker)):
    """Save a job. Saving it again is a no-op."""
    with get_db_session() as db:
        if not is_public_job(db, data.job_id):
            raise HTTPException(status_code=404, detail="Job not found")
        existing = fetch_one(
            db,
            "SELECT job_id FROM saved_jobs WHERE jobseeker_id = :uid AND job_id = :jid",
            {"uid": seeker["user_id"], "jid": data.job_id}
        )
        if not existing:
            db.execute(
                text("INSERT INTO saved_jobs (jobseeker_id, job_id, saved_at) VALUES (:uid, :jid, :now)"),
                {"uid": seeker["user_id"], "jid": data.job_id, "now": utcnow()}
            )

    return MessageResponse(message="Job saved to wishlist")


@router.delete("/wishlist/{job_id}", response_model=MessageResponse)
async def unsave_job(job_id: int, seeker: dict = Depends(get_current_jobseeker)):
    with get_db_session() as db:
        db.execute(
            text("DELETE FROM saved_jobs WHERE jobseeker_id = :uid AND job_id = :jid"),
            {"uid": seeker["user_id"], "jid": job_id}
        )
    return MessageResponse(message="Job removed from wishlist")

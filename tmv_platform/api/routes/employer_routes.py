"""
Employer Routes

All endpoints require an employer-side account (employer, management,
hr_recruitment, hr_admin); most are additionally gated by a permission.
Jobs and applications are scoped to the user's company.

GET /employer/stats - Company dashboard counts
GET /employer/jobs - Company jobs
POST /employer/jobs - Create job (create_post)
GET /employer/jobs/{job_id} - Job details with statistics
PUT /employer/jobs/{job_id} - Update job (edit_post)
DELETE /employer/jobs/{job_id} - Delete job (delete_post)
GET /employer/applications - Applications to company jobs (view_applications)
GET /employer/applications/{application_id} - Application with applicant profile
PUT /employer/applications/{application_id}/status - Set status (review_applications)
POST /employer/applications/{application_id}/shortlist - Shortlist
POST /employer/applications/{application_id}/reject - Reject with reason
POST /employer/applications/{application_id}/invite - Invite to interview (schedule_interviews)
GET /employer/candidates - Search applicants (view_applications)
GET /employer/jobseekers/{user_id} - Applicant profile
GET /employer/users - Team members (manage_users)
POST /employer/users - Add team member (manage_users)
PUT /employer/users/{user_id}/permissions - Set team member permissions (manage_users)
PUT /employer/users/{user_id}/toggle-status - Activate/deactivate team member (manage_users)
PUT /employer/profile - Update own employer profile
GET /employer/tasks/my-tasks - Tasks assigned to me
PUT /employer/tasks/{task_id}/status - Move task status
PUT /employer/tasks/{task_id}/checklist - Replace checklist
PUT /employer/tasks/{task_id}/notes - Set notes
GET /employer/messages/unread - Unread management messages
PUT /employer/messages/{message_id}/read - Mark message read
"""

from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy import text
from typing import List, Optional

from tmv_platform.db.database import get_db_session, fetch_all, fetch_all_in, fetch_one, utcnow
from tmv_platform.core.auth import get_current_employer, require_permission, load_permissions
from tmv_platform.core.permissions import MANAGEMENT, TEAM_ROLES
from tmv_platform.services.account_service import create_user, create_employer_profile, grant_permissions
from tmv_platform.services.application_service import (
    load_applications, load_company_application, set_application_status
)
from tmv_platform.services.job_service import load_jobs, company_job, insert_job, update_job
from tmv_platform.services.profile_service import load_jobseeker_profile
from tmv_platform.services.task_service import load_tasks, load_task, apply_status, replace_checklist
from tmv_platform.schemas.schemas import (
    EmployerStatsResponse, JobCreate, JobUpdate, JobResponse, JobMutationResponse,
    JobStatus, ApprovalStatus, ApplicationStatus, ApplicationResponse, ApplicationDetailResponse,
    ApplicationStatusUpdate, ReasonRequest, ApplicationInviteRequest, CandidateResponse,
    JobseekerProfileResponse, TeamUserCreate, TeamUserResponse, PermissionsUpdate,
    EmployerProfileUpdate, TaskStatus, TaskResponse, TaskStatusUpdate, ChecklistUpdate,
    NotesUpdate, InboxMessageResponse, MessageResponse, UserResponse
)
from tmv_platform.utils.logger import get_logger

router = APIRouter(prefix="/employer", tags=["Employer"])
logger = get_logger(__name__)


# ============================================================
# DASHBOARD
# ============================================================

@router.get("/stats", response_model=EmployerStatsResponse)
async def get_stats(employer: dict = Depends(get_current_employer)):
    with get_db_session() as db:
        jobs = fetch_one(
            db,
            """
            SELECT COUNT(*) AS total_jobs,
                   SUM(CASE WHEN status = 'active' AND approval_status = 'approved' THEN 1 ELSE 0 END) AS active_jobs,
                   SUM(CASE WHEN approval_status = 'pending' THEN 1 ELSE 0 END) AS pending_approval
            FROM jobs WHERE employer_id = :scope
            """,
            {"scope": employer["scope_id"]}
        )
        by_status = fetch_all(
            db,
            """
            SELECT a.status, COUNT(*) AS total
            FROM job_applications a JOIN jobs j ON j.id = a.job_id
            WHERE j.employer_id = :scope
            GROUP BY a.status
            """,
            {"scope": employer["scope_id"]}
        )

    applications_by_status = {s.value: 0 for s in ApplicationStatus}
    applications_by_status.update({r["status"]: int(r["total"]) for r in by_status})

    return EmployerStatsResponse(
        total_jobs=int(jobs["total_jobs"] or 0),
        active_jobs=int(jobs["active_jobs"] or 0),
        pending_approval=int(jobs["pending_approval"] or 0),
        total_applications=sum(applications_by_status.values()),
        applications_by_status=applications_by_status
    )


# ============================================================
# JOBS
# ============================================================

@router.get("/jobs", response_model=List[JobResponse])
async def list_company_jobs(
    status: Optional[JobStatus] = None,
    approval_status: Optional[ApprovalStatus] = None,
    employer: dict = Depends(get_current_employer)
):
    conditions = ["j.employer_id = :scope"]
    params = {"scope": employer["scope_id"]}
    if status:
        conditions.append("j.status = :status")
        params["status"] = status.value
    if approval_status:
        conditions.append("j.approval_status = :approval_status")
        params["approval_status"] = approval_status.value

    with get_db_session() as db:
        return load_jobs(db, " AND ".join(conditions), params)


@router.post("/jobs", response_model=JobMutationResponse, status_code=201)
async def create_job(job: JobCreate, employer: dict = Depends(require_permission("create_post"))):
    """
    Create a job posting.

    Postings by management go live immediately; everyone else's wait for
    management approval.
    """
    auto_approved = employer["role"] == MANAGEMENT

    with get_db_session() as db:
        job_id = insert_job(db, job.model_dump(), employer, approved=auto_approved)
        created = company_job(db, job_id, employer["scope_id"])

    logger.info(f"Job {job_id} created by user {employer['user_id']} (auto_approved={auto_approved})")
    message = "Job created and published" if auto_approved else "Job created and submitted for approval"
    return JobMutationResponse(message=message, job=JobResponse(**created), auto_approved=auto_approved)


@router.get("/jobs/{job_id}", response_model=JobResponse)
async def get_company_job(job_id: int, employer: dict = Depends(get_current_employer)):
    with get_db_session() as db:
        job = company_job(db, job_id, employer["scope_id"])
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return JobResponse(**job)


@router.put("/jobs/{job_id}", response_model=JobResponse)
async def update_company_job(job_id: int, data: JobUpdate, employer: dict = Depends(require_permission("edit_post"))):
    """Update a job. Content edits to an approved job send it back for approval."""
    changes = data.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")

    with get_db_session() as db:
        job = company_job(db, job_id, employer["scope_id"])
        if not job:
            raise HTTPException(status_code=404, detail="Job not found")

        merged_min = changes.get("salary_min", job["salary_min"])
        merged_max = changes.get("salary_max", job["salary_max"])
        if merged_min is not None and merged_max is not None and float(merged_min) > float(merged_max):
            raise HTTPException(status_code=400, detail="salary_min cannot exceed salary_max")

        reset = update_job(db, job, changes, employer)
        updated = company_job(db, job_id, employer["scope_id"])

    if reset:
        logger.info(f"Job {job_id} edited by user {employer['user_id']}; approval reset to pending")
    return JobResponse(**updated)


@router.delete("/jobs/{job_id}", response_model=MessageResponse)
async def delete_company_job(job_id: int, employer: dict = Depends(require_permission("delete_post"))):
    """Delete a job. Its applications and requirements go with it."""
    with get_db_session() as db:
        result = db.execute(
            text("DELETE FROM jobs WHERE id = :id AND employer_id = :scope"),
            {"id": job_id, "scope": employer["scope_id"]}
        )
        if result.rowcount == 0:
            raise HTTPException(status_code=404, detail="Job not found")

    logger.info(f"Job {job_id} deleted by user {employer['user_id']}")
    return MessageResponse(message="Job deleted successfully")


# ============================================================
# APPLICATIONS
# ============================================================

@router.get("/applications", response_model=List[ApplicationResponse])
async def list_applications(
    job_id: Optional[int] = None,
    status: Optional[ApplicationStatus] = None,
    employer: dict = Depends(require_permission("view_applications"))
):
    conditions = ["j.employer_id = :scope"]
    params = {"scope": employer["scope_id"]}
    if job_id is not None:
        conditions.append("a.job_id = :job_id")
        params["job_id"] = job_id
    if status:
        conditions.append("a.status = :status")
        params["status"] = status.value

    with get_db_session() as db:
        return load_applications(db, " AND ".join(conditions), params)


@router.get("/applications/{application_id}", response_model=ApplicationDetailResponse)
async def get_application(application_id: int, employer: dict = Depends(require_permission("view_applications"))):
    """Application with the applicant's full profile and documents."""
    with get_db_session() as db:
        application = load_company_application(db, application_id, employer["scope_id"])
        application["applicant"] = load_jobseeker_profile(db, application["jobseeker_id"])
    return ApplicationDetailResponse(**application)


@router.put("/applications/{application_id}/status", response_model=ApplicationResponse)
async def update_application_status(
    application_id: int,
    data: ApplicationStatusUpdate,
    employer: dict = Depends(require_permission("review_applications"))
):
    if data.status == ApplicationStatus.withdrawn:
        raise HTTPException(status_code=400, detail="Only the applicant can withdraw an application")

    with get_db_session() as db:
        application = load_company_application(db, application_id, employer["scope_id"])
        if application["status"] == "withdrawn":
            raise HTTPException(status_code=400, detail="Application was withdrawn by the applicant")
        fields = {"notes": data.notes} if data.notes is not None else {}
        changed = set_application_status(db, application_id, data.status.value, **fields)
        if not changed and fields:
            db.execute(text("UPDATE job_applications SET notes = :notes WHERE id = :id"), {**fields, "id": application_id})
        updated = load_company_application(db, application_id, employer["scope_id"])

    if changed:
        logger.info(f"Application {application_id}: {application['status']} -> {data.status.value}")
    return ApplicationResponse(**updated)


def _move_application(application_id: int, employer: dict, status: str, **fields) -> dict:
    with get_db_session() as db:
        application = load_company_application(db, application_id, employer["scope_id"])
        if application["status"] == "withdrawn":
            raise HTTPException(status_code=400, detail="Application was withdrawn by the applicant")
        if set_application_status(db, application_id, status, **fields):
            logger.info(f"Application {application_id}: {application['status']} -> {status}")
        return load_company_application(db, application_id, employer["scope_id"])


@router.post("/applications/{application_id}/shortlist", response_model=ApplicationResponse)
async def shortlist_application(application_id: int, employer: dict = Depends(require_permission("review_applications"))):
    return _move_application(application_id, employer, "shortlisted")


@router.post("/applications/{application_id}/reject", response_model=ApplicationResponse)
async def reject_application(
    application_id: int,
    data: ReasonRequest = ReasonRequest(),
    employer: dict = Depends(require_permission("review_applications"))
):
    """Reject an application. Rejecting it again changes nothing."""
    return _move_application(application_id, employer, "rejected", rejection_reason=data.reason)


@router.post("/applications/{application_id}/invite", response_model=ApplicationResponse)
async def invite_application(
    application_id: int,
    data: ApplicationInviteRequest,
    employer: dict = Depends(require_permission("schedule_interviews"))
):
    return _move_application(
        application_id, employer, "invited",
        invitation_details=data.invitation_details,
        interview_date=data.interview_date,
        invited_at=utcnow()
    )


# ============================================================
# CANDIDATES
# ============================================================

@router.get("/candidates", response_model=List[CandidateResponse])
async def search_candidates(
    q: Optional[str] = None,
    skill: Optional[str] = None,
    location: Optional[str] = None,
    min_experience: Optional[int] = Query(None, ge=0),
    employer: dict = Depends(require_permission("view_applications"))
):
    """Search among people who applied to the company's jobs (name, qualification, CV text, skill)."""
    conditions = ["j.employer_id = :scope"]
    params = {"scope": employer["scope_id"]}

    if q:
        conditions.append("""(
            LOWER(p.first_name) LIKE LOWER(:q) OR LOWER(p.last_name) LIKE LOWER(:q)
            OR LOWER(p.highest_qualification) LIKE LOWER(:q) OR LOWER(p.field_of_study) LIKE LOWER(:q)
            OR EXISTS (
                SELECT 1 FROM documents d
                WHERE d.owner_type = 'jobseeker' AND d.owner_id = p.user_id
                  AND d.document_type = 'cv' AND LOWER(d.extracted_text) LIKE LOWER(:q)
            )
        )""")
        params["q"] = f"%{q}%"
    if skill:
        conditions.append("""EXISTS (
            SELECT 1 FROM jobseeker_skills js JOIN skills s ON s.id = js.skill_id
            WHERE js.profile_id = p.id AND LOWER(s.name) LIKE LOWER(:skill)
        )""")
        params["skill"] = f"%{skill}%"
    if location:
        conditions.append("LOWER(p.current_location) LIKE LOWER(:location)")
        params["location"] = f"%{location}%"
    if min_experience is not None:
        conditions.append("p.years_of_experience >= :min_exp")
        params["min_exp"] = min_experience

    with get_db_session() as db:
        rows = fetch_all(
            db,
            f"""
            SELECT p.id AS profile_id, p.user_id, p.first_name, p.last_name, u.email,
                   p.current_location, p.highest_qualification, p.years_of_experience,
                   COUNT(DISTINCT a.id) AS applications
            FROM jobseeker_profiles p
            JOIN users u ON u.id = p.user_id
            JOIN job_applications a ON a.jobseeker_id = p.user_id
            JOIN jobs j ON j.id = a.job_id
            WHERE {" AND ".join(conditions)}
            GROUP BY p.id, p.user_id, p.first_name, p.last_name, u.email,
                     p.current_location, p.highest_qualification, p.years_of_experience
            ORDER BY p.last_name, p.first_name
            """,
            params
        )
        skills = {}
        for s in fetch_all_in(
            db,
            """
            SELECT js.profile_id, s.name FROM jobseeker_skills js JOIN skills s ON s.id = js.skill_id
            WHERE js.profile_id IN :ids ORDER BY s.name
            """,
            [r["profile_id"] for r in rows]
        ):
            skills.setdefault(s["profile_id"], []).append(s["name"])

    for r in rows:
        r["skills"] = skills.get(r["profile_id"], [])
    return rows


@router.get("/jobseekers/{user_id}", response_model=JobseekerProfileResponse)
async def get_applicant_profile(user_id: int, employer: dict = Depends(require_permission("view_applications"))):
    """A job seeker's profile, visible only if they applied to one of the company's jobs."""
    with get_db_session() as db:
        applied = fetch_one(
            db,
            """
            SELECT a.id FROM job_applications a JOIN jobs j ON j.id = a.job_id
            WHERE a.jobseeker_id = :uid AND j.employer_id = :scope
            """,
            {"uid": user_id, "scope": employer["scope_id"]}
        )
        profile = load_jobseeker_profile(db, user_id) if applied else None

    if not profile:
        raise HTTPException(status_code=404, detail="Applicant not found")
    return JobseekerProfileResponse(**profile)


# ============================================================
# TEAM
# ============================================================

def _team_members(db, scope_id: int) -> List[dict]:
    rows = fetch_all(
        db,
        """
        SELECT u.id, u.email, u.first_name, u.last_name, u.role, u.is_active,
               ep.department, COALESCE(us.status, 'active') AS team_status
        FROM employer_profiles ep
        JOIN users u ON u.id = ep.user_id
        LEFT JOIN user_status us ON us.user_id = u.id
        WHERE ep.owner_id = :scope
        ORDER BY u.first_name, u.last_name
        """,
        {"scope": scope_id}
    )
    for r in rows:
        r["permissions"] = load_permissions(db, r["id"], r["role"])
    return rows


def _team_member(db, user_id: int, scope_id: int) -> dict:
    member = next((m for m in _team_members(db, scope_id) if m["id"] == user_id), None)
    if not member:
        raise HTTPException(status_code=404, detail="Team member not found")
    return member


@router.get("/users", response_model=List[TeamUserResponse])
async def list_team(employer: dict = Depends(require_permission("manage_users"))):
    with get_db_session() as db:
        return _team_members(db, employer["scope_id"])


@router.post("/users", response_model=TeamUserResponse, status_code=201)
async def add_team_member(data: TeamUserCreate, employer: dict = Depends(require_permission("manage_users"))):
    """Create an HR account under the company. Only permissions the creator holds can be granted."""
    requested = {p.value for p in data.permissions}
    not_held = requested - set(employer["permissions"])
    if not_held:
        raise HTTPException(status_code=400, detail=f"Cannot grant permissions you do not hold: {', '.join(sorted(not_held))}")

    with get_db_session() as db:
        user_id = create_user(db, data.email, data.password, data.first_name, data.last_name, data.phone, data.role.value)
        create_employer_profile(
            db, user_id, employer["company_name"], data.role.value,
            owner_id=employer["scope_id"], department=employer["department"], phone=data.phone
        )
        grant_permissions(db, user_id, requested)
        member = _team_member(db, user_id, employer["scope_id"])

    logger.info(f"Team member {user_id} ({data.role.value}) added by user {employer['user_id']}")
    return TeamUserResponse(**member)


@router.put("/users/{user_id}/permissions", response_model=TeamUserResponse)
async def set_team_permissions(
    user_id: int,
    data: PermissionsUpdate,
    employer: dict = Depends(require_permission("manage_users"))
):
    requested = {p.value for p in data.permissions}
    not_held = requested - set(employer["permissions"])
    if not_held:
        raise HTTPException(status_code=400, detail=f"Cannot grant permissions you do not hold: {', '.join(sorted(not_held))}")

    with get_db_session() as db:
        member = _team_member(db, user_id, employer["scope_id"])
        if member["role"] not in TEAM_ROLES:
            raise HTTPException(status_code=400, detail="Permissions can only be set for HR team members")
        grant_permissions(db, user_id, requested)
        member = _team_member(db, user_id, employer["scope_id"])

    return TeamUserResponse(**member)


@router.put("/users/{user_id}/toggle-status", response_model=TeamUserResponse)
async def toggle_team_member(user_id: int, employer: dict = Depends(require_permission("manage_users"))):
    if user_id == employer["user_id"]:
        raise HTTPException(status_code=400, detail="You cannot deactivate your own account")

    with get_db_session() as db:
        member = _team_member(db, user_id, employer["scope_id"])
        db.execute(
            text("UPDATE users SET is_active = :active, updated_at = :now WHERE id = :id"),
            {"active": not member["is_active"], "now": utcnow(), "id": user_id}
        )
        member = _team_member(db, user_id, employer["scope_id"])

    logger.info(f"Team member {user_id} is_active={bool(member['is_active'])} (by user {employer['user_id']})")
    return TeamUserResponse(**member)


@router.put("/profile", response_model=UserResponse)
async def update_employer_profile(data: EmployerProfileUpdate, employer: dict = Depends(get_current_employer)):
    changes = data.model_dump(exclude_unset=True)
    if "department" in changes and changes["department"] is not None:
        changes["department"] = changes["department"].value

    with get_db_session() as db:
        if changes:
            changes["updated_at"] = utcnow()
            set_clause = ", ".join(f"{k} = :{k}" for k in changes)
            db.execute(text(f"UPDATE employer_profiles SET {set_clause} WHERE user_id = :uid"), {**changes, "uid": employer["user_id"]})
            if "phone" in changes:
                db.execute(text("UPDATE users SET phone = :phone WHERE id = :uid"), {"phone": changes["phone"], "uid": employer["user_id"]})
        user = fetch_one(
            db,
            """
            SELECT u.id, u.email, u.first_name, u.last_name, u.phone, u.role, u.is_active, u.created_at,
                   ep.company_name, ep.role AS profile_role
            FROM users u JOIN employer_profiles ep ON ep.user_id = u.id
            WHERE u.id = :uid
            """,
            {"uid": employer["user_id"]}
        )

    return UserResponse(**user, permissions=employer["permissions"])


# ============================================================
# TASKS
# ============================================================

def _my_task(db, task_id: int, user_id: int) -> dict:
    task = load_task(db, task_id)
    if not task or task["assigned_to_id"] != user_id:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


@router.get("/tasks/my-tasks", response_model=List[TaskResponse])
async def my_tasks(status: Optional[TaskStatus] = None, employer: dict = Depends(get_current_employer)):
    where = "t.assigned_to_id = :uid"
    params = {"uid": employer["user_id"]}
    if status:
        where += " AND t.status = :status"
        params["status"] = status.value

    with get_db_session() as db:
        return load_tasks(db, where, params)


@router.put("/tasks/{task_id}/status", response_model=TaskResponse)
async def update_task_status(task_id: int, data: TaskStatusUpdate, employer: dict = Depends(get_current_employer)):
    """Move one of my tasks. Returning a task requires a reason."""
    if data.status == TaskStatus.pending:
        raise HTTPException(status_code=400, detail="A task cannot be moved back to pending")

    with get_db_session() as db:
        task = _my_task(db, task_id, employer["user_id"])
        if apply_status(db, task, data.status.value, data.reason):
            logger.info(f"Task {task_id}: {task['status']} -> {data.status.value} by user {employer['user_id']}")
        return load_task(db, task_id)


@router.put("/tasks/{task_id}/checklist", response_model=TaskResponse)
async def update_task_checklist(task_id: int, data: ChecklistUpdate, employer: dict = Depends(get_current_employer)):
    with get_db_session() as db:
        _my_task(db, task_id, employer["user_id"])
        replace_checklist(db, task_id, [item.model_dump() for item in data.checklist])
        db.execute(text("UPDATE tasks SET updated_at = :now WHERE id = :id"), {"now": utcnow(), "id": task_id})
        return load_task(db, task_id)


@router.put("/tasks/{task_id}/notes", response_model=TaskResponse)
async def update_task_notes(task_id: int, data: NotesUpdate, employer: dict = Depends(get_current_employer)):
    with get_db_session() as db:
        _my_task(db, task_id, employer["user_id"])
        db.execute(
            text("UPDATE tasks SET notes = :notes, updated_at = :now WHERE id = :id"),
            {"notes": data.notes, "now": utcnow(), "id": task_id}
        )
        return load_task(db, task_id)


# ============================================================
# MESSAGES
# ============================================================

@router.get("/messages/unread", response_model=List[InboxMessageResponse])
async def unread_messages(employer: dict = Depends(get_current_employer)):
    with get_db_session() as db:
        rows = fetch_all(
            db,
            """
            SELECT m.id, m.sender_id, s.first_name, s.last_name,
                   m.message_type, m.priority, m.subject, m.content, m.due_date, m.created_at, r.read_at
            FROM message_receipts r
            JOIN manager_messages m ON m.id = r.message_id
            JOIN users s ON s.id = m.sender_id
            WHERE r.user_id = :uid AND r.read_at IS NULL
            ORDER BY m.created_at DESC, m.id DESC
            """,
            {"uid": employer["user_id"]}
        )

    for r in rows:
        r["sender_name"] = f"{r['first_name']} {r['last_name']}".strip()
    return rows


@router.put("/messages/{message_id}/read", response_model=MessageResponse)
async def mark_message_read(message_id: int, employer: dict = Depends(get_current_employer)):
    with get_db_session() as db:
        receipt = fetch_one(
            db,
            "SELECT read_at FROM message_receipts WHERE message_id = :mid AND user_id = :uid",
            {"mid": message_id, "uid": employer["user_id"]}
        )
        if not receipt:
            raise HTTPException(status_code=404, detail="Message not found")
        if receipt["read_at"] is None:
            now = utcnow()
            db.execute(
                text("UPDATE message_receipts SET read_at = :now WHERE message_id = :mid AND user_id = :uid"),
                {"now": now, "mid": message_id, "uid": employer["user_id"]}
            )
            db.execute(
                text("UPDATE manager_messages SET status = 'read' WHERE id = :mid AND recipient_id = :uid"),
                {"mid": message_id, "uid": employer["user_id"]}
            )

    return MessageResponse(message="Message marked as read")

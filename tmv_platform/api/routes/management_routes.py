"""
Management Routes

Managers review every company's postings, run the HR team and assign work.
All endpoints require a management account except /promote (admin only).

POST /management/jobs/create - Create an auto-approved job
GET /management/jobs/all?tab=active|pending|drafts|team - Job board tabs
GET /management/jobs/pending-approval - Approval queue (oldest first)
GET /management/jobs/review-history - Approved/rejected jobs by review time
PUT /management/jobs/{job_id}/edit - Edit any job
DELETE /management/jobs/{job_id}/delete - Delete any job
POST /management/jobs/{job_id}/withdraw - Move job to drafts and close it (withdraw_post)
PUT /management/jobs/{job_id}/approve - Approve job (approve_jobs)
PUT /management/jobs/{job_id}/reject - Reject job (approve_jobs)
POST /management/drafts/{draft_id}/restore - Republish a withdrawn job
POST /management/messages/send - Message one user or all HR recruiters
GET /management/messages - Sent messages with read counts
GET /management/team/hr-users - HR team members
POST /management/team/{user_id}/suspend|freeze|activate - Team status
POST /management/tasks - Assign task (assign_tasks)
GET /management/tasks - List tasks
PUT /management/tasks/{task_id} - Edit task (assign_tasks)
DELETE /management/tasks/{task_id} - Delete task (assign_tasks)
POST /management/interviews/schedule - Schedule interview for an application (schedule_interviews)
GET /management/overview/stats - Dashboard counts (view_analytics)
GET /management/reports/applications - Application report (pull_reports; csv needs export_reports)
POST /management/promote - Promote employer to management (admin)
"""

import csv
import io
import json
from datetime import timedelta
from enum import Enum

from fastapi import APIRouter, HTTPException, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy import text
from typing import List, Optional

from tmv_platform.db.database import get_db_session, fetch_all, fetch_one, insert_row, utcnow
from tmv_platform.core.auth import get_current_manager, get_current_admin, load_permissions, require_manager_permission
from tmv_platform.core.permissions import EMPLOYER_SIDE_ROLES, MANAGEMENT, EMPLOYER, HR_RECRUITMENT, HR_ADMIN
from tmv_platform.services.account_service import set_team_status, promote_to_management
from tmv_platform.services.application_service import load_applications
from tmv_platform.services.job_service import load_jobs, load_job, insert_job, update_job
from tmv_platform.services.task_service import load_tasks, load_task, replace_checklist
from tmv_platform.schemas.schemas import (
    JobCreate, JobUpdate, JobResponse, JobMutationResponse, JobCollectionResponse, JobDraftResponse,
    ReasonRequest, MessageSend, ManagerMessageResponse, TeamUserResponse, TaskCreate, TaskUpdate,
    TaskResponse, TaskStatus, InterviewScheduleRequest, OverviewStatsResponse, ApplicationResponse,
    ApplicationStatus, PromoteRequest, MessageResponse, CreatedResponse
)
from tmv_platform.utils.logger import get_logger

router = APIRouter(prefix="/management", tags=["Management"])
logger = get_logger(__name__)

HR_TEAM_ROLES = (HR_RECRUITMENT, HR_ADMIN, EMPLOYER)
DEFAULT_REJECTION_REASON = "Rejected by manager"
# Applications an interview can still be (re)scheduled for
SCHEDULABLE_STATUSES = ("pending", "reviewed", "shortlisted", "invited", "interviewed")


class JobTab(str, Enum):
    active = "active"
    pending = "pending"
    drafts = "drafts"
    team = "team"


class TeamAction(str, Enum):
    suspend = "suspend"
    freeze = "freeze"
    activate = "activate"


TEAM_ACTION_STATUS = {
    TeamAction.suspend: "suspended",
    TeamAction.freeze: "frozen",
    TeamAction.activate: "active",
}


def _get_job_or_404(db, job_id: int) -> dict:
    job = load_job(db, job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return job


def _load_drafts(db) -> List[dict]:
    rows = fetch_all(db, "SELECT * FROM job_drafts ORDER BY withdrawn_at DESC, id DESC")
    for r in rows:
        r["requirements"] = json.loads(r["requirements"]) if r["requirements"] else []
    return rows


# ============================================================
# JOBS
# ============================================================

@router.post("/jobs/create", response_model=JobMutationResponse, status_code=201)
async def create_job(job: JobCreate, manager: dict = Depends(get_current_manager)):
    """Create a job that is approved on creation (active unless a draft was requested)."""
    with get_db_session() as db:
        job_id = insert_job(db, job.model_dump(), manager, approved=True)
        created = load_job(db, job_id)

    logger.info(f"Manager {manager['user_id']} created job {job_id} (auto-approved)")
    return JobMutationResponse(message="Job created and published", job=JobResponse(**created), auto_approved=True)


@router.get("/jobs/all", response_model=JobCollectionResponse)
async def list_job_tab(tab: JobTab = JobTab.active, manager: dict = Depends(get_current_manager)):
    """
    Job board tabs:
    - active: live, approved postings
    - pending: awaiting approval
    - drafts: withdrawn postings kept in job_drafts
    - team: postings created by the HR team
    """
    with get_db_session() as db:
        if tab == JobTab.drafts:
            jobs = [JobDraftResponse(**d) for d in _load_drafts(db)]
        elif tab == JobTab.pending:
            jobs = [JobResponse(**j) for j in load_jobs(db, "j.approval_status = 'pending'")]
        elif tab == JobTab.team:
            jobs = [JobResponse(**j) for j in load_jobs(
                db,
                "j.created_by IN (SELECT id FROM users WHERE role IN (:r1, :r2, :r3))",
                {"r1": HR_RECRUITMENT, "r2": HR_ADMIN, "r3": EMPLOYER}
            )]
        else:
            jobs = [JobResponse(**j) for j in load_jobs(db, "j.status = 'active' AND j.approval_status = 'approved'")]

    return JobCollectionResponse(jobs=jobs, count=len(jobs))


@router.get("/jobs/pending-approval", response_model=List[JobResponse])
async def pending_approval(manager: dict = Depends(get_current_manager)):
    with get_db_session() as db:
        return load_jobs(db, "j.approval_status = 'pending'", order_by="j.created_at ASC, j.id ASC")


@router.get("/jobs/review-history", response_model=List[JobResponse])
async def review_history(manager: dict = Depends(get_current_manager)):
    with get_db_session() as db:
        return load_jobs(
            db,
            "j.approval_status IN ('approved', 'rejected') AND j.reviewed_at IS NOT NULL",
            order_by="j.reviewed_at DESC, j.id DESC"
        )


@router.put("/jobs/{job_id}/edit", response_model=JobResponse)
async def edit_job(job_id: int, data: JobUpdate, manager: dict = Depends(get_current_manager)):
    changes = data.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")

    with get_db_session() as db:
        job = _get_job_or_404(db, job_id)
        update_job(db, job, changes, manager)
        return load_job(db, job_id)


@router.delete("/jobs/{job_id}/delete", response_model=MessageResponse)
async def delete_job(job_id: int, manager: dict = Depends(get_current_manager)):
    with get_db_session() as db:
        result = db.execute(text("DELETE FROM jobs WHERE id = :id"), {"id": job_id})
        if result.rowcount == 0:
            raise HTTPException(status_code=404, detail="Job not found")

    logger.info(f"Manager {manager['user_id']} deleted job {job_id}")
    return MessageResponse(message="Job deleted successfully")


@router.post("/jobs/{job_id}/withdraw", response_model=CreatedResponse)
async def withdraw_job(
    job_id: int,
    data: ReasonRequest = ReasonRequest(),
    manager: dict = Depends(require_manager_permission("withdraw_post"))
):
    """Copy a job into drafts with the withdrawal reason and close it (one transaction)."""
    with get_db_session() as db:
        job = _get_job_or_404(db, job_id)
        if job["status"] == "closed":
            raise HTTPException(status_code=400, detail="Job is already closed")

        now = utcnow()
        draft_id = insert_row(
            db,
            """
            INSERT INTO job_drafts (job_id, user_id, employer_id, company_name, title, job_type, department,
                                    location, salary_min, salary_max, closing_date, description,
                                    responsibilities, requirements, status, withdrawn_reason, withdrawn_at, created_at)
            VALUES (:job_id, :user_id, :employer_id, :company_name, :title, :job_type, :department,
                    :location, :salary_min, :salary_max, :closing_date, :description,
                    :responsibilities, :requirements, 'withdrawn', :reason, :now, :now)
            """,
            {
                "job_id": job_id,
                "user_id": job["created_by"] or manager["user_id"],
                "employer_id": job["employer_id"],
                "company_name": job["company_name"],
                "title": job["title"],
                "job_type": job["job_type"],
                "department": job["department"],
                "location": job["location"],
                "salary_min": job["salary_min"],
                "salary_max": job["salary_max"],
                "closing_date": job["closing_date"],
                "description": job["description"],
                "responsibilities": job["responsibilities"],
                "requirements": json.dumps(job["requirements"]),
                "reason": data.reason,
                "now": now,
            }
        )
        db.execute(
            text("UPDATE jobs SET status = 'closed', updated_at = :now WHERE id = :id"),
            {"now": now, "id": job_id}
        )

    logger.info(f"Manager {manager['user_id']} withdrew job {job_id} into draft {draft_id}")
    return CreatedResponse(message="Job withdrawn to drafts", id=draft_id)


@router.post("/drafts/{draft_id}/restore", response_model=JobMutationResponse, status_code=201)
async def restore_draft(draft_id: int, manager: dict = Depends(get_current_manager)):
    """Publish a new approved, active job from a draft and delete the draft (one transaction)."""
    with get_db_session() as db:
        draft = fetch_one(db, "SELECT * FROM job_drafts WHERE id = :id", {"id": draft_id})
        if not draft:
            raise HTTPException(status_code=404, detail="Draft not found")

        owner = {
            "user_id": draft["user_id"],
            "scope_id": draft["employer_id"],
            "company_name": draft["company_name"],
        }
        data = {k: draft[k] for k in (
            "title", "job_type", "department", "location", "salary_min",
            "salary_max", "closing_date", "description", "responsibilities",
        )}
        data["requirements"] = json.loads(draft["requirements"]) if draft["requirements"] else []
        data["status"] = "active"

        job_id = insert_job(db, data, owner, approved=True, reviewer_id=manager["user_id"])
        db.execute(text("DELETE FROM job_drafts WHERE id = :id"), {"id": draft_id})
        restored = load_job(db, job_id)

    logger.info(f"Manager {manager['user_id']} restored draft {draft_id} as job {job_id}")
    return JobMutationResponse(message="Draft restored and published", job=JobResponse(**restored), auto_approved=True)


@router.put("/jobs/{job_id}/approve", response_model=JobResponse)
async def approve_job(job_id: int, manager: dict = Depends(require_manager_permission("approve_jobs"))):
    """Approve and publish a job. Approving an approved job changes nothing."""
    with get_db_session() as db:
        _get_job_or_404(db, job_id)
        result = db.execute(
            text("""
                UPDATE jobs
                SET approval_status = 'approved', status = 'active', reviewed_by = :by,
                    reviewed_at = :now, rejection_reason = NULL, updated_at = :now
                WHERE id = :id AND approval_status <> 'approved'
            """),
            {"by": manager["user_id"], "now": utcnow(), "id": job_id}
        )
        job = load_job(db, job_id)

    if result.rowcount:
        logger.info(f"Job {job_id} approved by manager {manager['user_id']}")
    return JobResponse(**job)


@router.put("/jobs/{job_id}/reject", response_model=JobResponse)
async def reject_job(
    job_id: int,
    data: ReasonRequest = ReasonRequest(),
    manager: dict = Depends(require_manager_permission("approve_jobs"))
):
    """Reject and close a job. Rejecting a rejected job changes nothing."""
    with get_db_session() as db:
        _get_job_or_404(db, job_id)
        result = db.execute(
            text("""
                UPDATE jobs
                SET approval_status = 'rejected', status = 'closed', reviewed_by = :by,
                    reviewed_at = :now, rejection_reason = :reason, updated_at = :now
                WHERE id = :id AND approval_status <> 'rejected'
            """),
            {"by": manager["user_id"], "now": utcnow(), "reason": data.reason or DEFAULT_REJECTION_REASON, "id": job_id}
        )
        job = load_job(db, job_id)

    if result.rowcount:
        logger.info(f"Job {job_id} rejected by manager {manager['user_id']}")
    return JobResponse(**job)


# ============================================================
# MESSAGES
# ============================================================

@router.post("/messages/send", response_model=CreatedResponse, status_code=201)
async def send_message(data: MessageSend, manager: dict = Depends(get_current_manager)):
    """Send to one employer-side user, or to every active HR recruiter with recipient_id="all"."""
    with get_db_session() as db:
        if data.recipient_id == "all":
            recipients = [r["id"] for r in fetch_all(
                db,
                "SELECT id FROM users WHERE role = :role AND is_active = :active",
                {"role": HR_RECRUITMENT, "active": True}
            )]
            recipient_id = None
        else:
            target = fetch_one(db, "SELECT id, role FROM users WHERE id = :id", {"id": data.recipient_id})
            if not target or target["role"] not in EMPLOYER_SIDE_ROLES:
                raise HTTPException(status_code=400, detail="Recipient must be a team member")
            recipients = [target["id"]]
            recipient_id = target["id"]

        message_id = insert_row(
            db,
            """
            INSERT INTO manager_messages (sender_id, recipient_id, message_type, priority, subject,
                                          content, due_date, status, created_at)
            VALUES (:sender, :recipient, :type, :priority, :subject, :content, :due, 'unread', :now)
            """,
            {
                "sender": manager["user_id"],
                "recipient": recipient_id,
                "type": data.message_type.value,
                "priority": data.priority.value,
                "subject": data.subject,
                "content": data.content,
                "due": data.due_date,
                "now": utcnow(),
            }
        )
        for user_id in recipients:
            db.execute(
                text("INSERT INTO message_receipts (message_id, user_id) VALUES (:mid, :uid)"),
                {"mid": message_id, "uid": user_id}
            )

    logger.info(f"Manager {manager['user_id']} sent message {message_id} to {len(recipients)} recipient(s)")
    return CreatedResponse(message=f"Message sent to {len(recipients)} recipient(s)", id=message_id)


@router.get("/messages", response_model=List[ManagerMessageResponse])
async def list_messages(manager: dict = Depends(get_current_manager)):
    with get_db_session() as db:
        rows = fetch_all(
            db,
            """
            SELECT m.*, s.first_name, s.last_name,
                   (SELECT COUNT(*) FROM message_receipts r WHERE r.message_id = m.id) AS total_recipients,
                   (SELECT COUNT(*) FROM message_receipts r
                    WHERE r.message_id = m.id AND r.read_at IS NOT NULL) AS read_count
            FROM manager_messages m
            JOIN users s ON s.id = m.sender_id
            WHERE m.sender_id = :uid
            ORDER BY m.created_at DESC, m.id DESC
            """,
            {"uid": manager["user_id"]}
        )
    for r in rows:
        r["sender_name"] = f"{r['first_name']} {r['last_name']}".strip()
    return rows


# ============================================================
# TEAM
# ============================================================

@router.get("/team/hr-users", response_model=List[TeamUserResponse])
async def list_hr_users(manager: dict = Depends(get_current_manager)):
    with get_db_session() as db:
        rows = fetch_all(
            db,
            """
            SELECT u.id, u.email, u.first_name, u.last_name, u.role, u.is_active,
                   ep.department, COALESCE(us.status, 'active') AS team_status
            FROM users u
            LEFT JOIN employer_profiles ep ON ep.user_id = u.id
            LEFT JOIN user_status us ON us.user_id = u.id
            WHERE u.role IN (:r1, :r2, :r3)
            ORDER BY u.first_name, u.last_name
            """,
            {"r1": HR_RECRUITMENT, "r2": HR_ADMIN, "r3": EMPLOYER}
        )
        for r in rows:
            r["permissions"] = load_permissions(db, r["id"], r["role"])
    return rows


@router.post("/team/{user_id}/{action}", response_model=MessageResponse)
async def change_team_status(
    user_id: int,
    action: TeamAction,
    data: ReasonRequest = ReasonRequest(),
    manager: dict = Depends(get_current_manager)
):
    """Suspend, freeze or reactivate a team member. Suspended and frozen accounts cannot sign in."""
    if user_id == manager["user_id"]:
        raise HTTPException(status_code=400, detail="You cannot change your own status")

    with get_db_session() as db:
        target = fetch_one(db, "SELECT id, role FROM users WHERE id = :id", {"id": user_id})
        if not target or target["role"] not in HR_TEAM_ROLES:
            raise HTTPException(status_code=404, detail="Team member not found")
        new_status = TEAM_ACTION_STATUS[action]
        set_team_status(db, user_id, new_status, data.reason, manager["user_id"])

    logger.info(f"Team member {user_id} set to {new_status} by manager {manager['user_id']}")
    return MessageResponse(message=f"Team member is now {new_status}")


# ============================================================
# TASKS
# ============================================================

def _check_assignee(db, user_id: int) -> None:
    target = fetch_one(db, "SELECT role FROM users WHERE id = :id", {"id": user_id})
    if not target or target["role"] not in EMPLOYER_SIDE_ROLES:
        raise HTTPException(status_code=400, detail="Tasks can only be assigned to team members")


@router.post("/tasks", response_model=TaskResponse, status_code=201)
async def create_task(data: TaskCreate, manager: dict = Depends(require_manager_permission("assign_tasks"))):
    with get_db_session() as db:
        _check_assignee(db, data.assigned_to_id)
        now = utcnow()
        task_id = insert_row(
            db,
            """
            INSERT INTO tasks (title, description, assigned_to_id, assigned_by_id, priority, status,
                               due_date, created_at, updated_at)
            VALUES (:title, :description, :to, :by, :priority, 'pending', :due, :now, :now)
            """,
            {
                "title": data.title,
                "description": data.description,
                "to": data.assigned_to_id,
                "by": manager["user_id"],
                "priority": data.priority.value,
                "due": data.due_date,
                "now": now,
            }
        )
        replace_checklist(db, task_id, [{"label": label, "done": False} for label in data.checklist])
        task = load_task(db, task_id)

    logger.info(f"Task {task_id} assigned to user {data.assigned_to_id} by manager {manager['user_id']}")
    return TaskResponse(**task)


@router.get("/tasks", response_model=List[TaskResponse])
async def list_tasks(
    status: Optional[TaskStatus] = None,
    assigned_to_id: Optional[int] = None,
    manager: dict = Depends(get_current_manager)
):
    conditions, params = [], {}
    if status:
        conditions.append("t.status = :status")
        params["status"] = status.value
    if assigned_to_id is not None:
        conditions.append("t.assigned_to_id = :to")
        params["to"] = assigned_to_id

    with get_db_session() as db:
        return load_tasks(db, " AND ".join(conditions), params)


@router.put("/tasks/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: int,
    data: TaskUpdate,
    manager: dict = Depends(require_manager_permission("assign_tasks"))
):
    changes = data.model_dump(exclude_unset=True)
    if "priority" in changes and changes["priority"] is not None:
        changes["priority"] = changes["priority"].value

    with get_db_session() as db:
        if not load_task(db, task_id):
            raise HTTPException(status_code=404, detail="Task not found")
        if changes.get("assigned_to_id") is not None:
            _check_assignee(db, changes["assigned_to_id"])
        if changes:
            changes["updated_at"] = utcnow()
            set_clause = ", ".join(f"{k} = :{k}" for k in changes)
            db.execute(text(f"UPDATE tasks SET {set_clause} WHERE id = :id"), {**changes, "id": task_id})
        return load_task(db, task_id)


@router.delete("/tasks/{task_id}", response_model=MessageResponse)
async def delete_task(task_id: int, manager: dict = Depends(require_manager_permission("assign_tasks"))):
    with get_db_session() as db:
        result = db.execute(text("DELETE FROM tasks WHERE id = :id"), {"id": task_id})
        if result.rowcount == 0:
            raise HTTPException(status_code=404, detail="Task not found")
    return MessageResponse(message="Task deleted")


# ============================================================
# INTERVIEWS, STATS & REPORTS
# ============================================================

@router.post("/interviews/schedule", response_model=CreatedResponse, status_code=201)
async def schedule_interview(
    data: InterviewScheduleRequest,
    manager: dict = Depends(require_manager_permission("schedule_interviews"))
):
    """Record an interview and mark the application invited (one transaction)."""
    with get_db_session() as db:
        application = fetch_one(
            db,
            "SELECT id, job_id, jobseeker_id, status FROM job_applications WHERE id = :id",
            {"id": data.application_id}
        )
        if not application:
            raise HTTPException(status_code=404, detail="Application not found")
        if application["status"] not in SCHEDULABLE_STATUSES:
            raise HTTPException(status_code=400, detail=f"Application is {application['status']}")

        now = utcnow()
        interview_id = insert_row(
            db,
            """
            INSERT INTO interview_schedules (application_id, job_id, jobseeker_id, scheduled_by,
                                             interview_date, location, notes, status, created_at, updated_at)
            VALUES (:app, :job, :seeker, :by, :date, :location, :notes, 'scheduled', :now, :now)
            """,
            {
                "app": application["id"],
                "job": application["job_id"],
                "seeker": application["jobseeker_id"],
                "by": manager["user_id"],
                "date": data.interview_date,
                "location": data.location,
                "notes": data.notes,
                "now": now,
            }
        )
        db.execute(
            text("""
                UPDATE job_applications
                SET status = 'invited', interview_date = :date, invited_at = COALESCE(invited_at, :now), updated_at = :now
                WHERE id = :id
            """),
            {"date": data.interview_date, "now": now, "id": application["id"]}
        )

    logger.info(f"Interview {interview_id} scheduled for application {data.application_id}")
    return CreatedResponse(message="Interview scheduled", id=interview_id)


@router.get("/overview/stats", response_model=OverviewStatsResponse)
async def overview_stats(manager: dict = Depends(require_manager_permission("view_analytics"))):
    week_ago = utcnow() - timedelta(days=7)
    with get_db_session() as db:
        row = fetch_one(
            db,
            """
            SELECT
                (SELECT COUNT(*) FROM tasks WHERE status IN ('pending', 'in_progress')) AS active_tasks,
                (SELECT COUNT(*) FROM jobs WHERE approval_status = 'pending') AS pending_approvals,
                (SELECT COUNT(*) FROM users WHERE role IN (:r1, :r2)) AS team_members,
                (SELECT COUNT(*) FROM tasks WHERE status = 'completed' AND completed_at >= :since) AS completed_this_week
            """,
            {"r1": HR_RECRUITMENT, "r2": HR_ADMIN, "since": week_ago}
        )
    return OverviewStatsResponse(**row)


REPORT_COLUMNS = (
    "id", "job_id", "job_title", "company_name", "applicant_name", "applicant_email",
    "status", "applied_at", "updated_at",
)


@router.get("/reports/applications")
async def application_report(
    status: Optional[ApplicationStatus] = None,
    job_id: Optional[int] = None,
    format: str = Query("json", pattern="^(json|csv)$"),
    manager: dict = Depends(require_manager_permission("pull_reports"))
):
    """Applications across all jobs; format=csv streams a CSV file with a header row."""
    if format == "csv" and "export_reports" not in manager["permissions"]:
        raise HTTPException(status_code=403, detail="Missing permission: export_reports")
    conditions, params = [], {}
    if status:
        conditions.append("a.status = :status")
        params["status"] = status.value
    if job_id is not None:
        conditions.append("a.job_id = :job_id")
        params["job_id"] = job_id

    with get_db_session() as db:
        rows = load_applications(db, " AND ".join(conditions), params)

    if format == "json":
        return [ApplicationResponse(**r) for r in rows]

    def generate():
        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow(REPORT_COLUMNS)
        yield buffer.getvalue()
        for r in rows:
            buffer.seek(0)
            buffer.truncate(0)
            writer.writerow([r[c] for c in REPORT_COLUMNS])
            yield buffer.getvalue()

    return StreamingResponse(
        generate(),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=applications_report.csv"}
    )


@router.post("/promote", response_model=MessageResponse)
async def promote(data: PromoteRequest, admin: dict = Depends(get_current_admin)):
    """Promote an employer account to management with every permission."""
    with get_db_session() as db:
        user_id = promote_to_management(db, data.email)

    logger.info(f"User {user_id} promoted to {MANAGEMENT} by admin {admin['user_id']}")
    return MessageResponse(message=f"{data.email} is now a management account")

"""
Job Routes (public listing + job seeker applications)

GET /jobs - List open, approved jobs with filters
GET /jobs/departments - Department vocabulary
GET /jobs/{job_id} - Get job details (counts a view)
POST /jobs/{job_id}/apply - Apply to job (job seeker only)
"""

from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy import text
from typing import List, Optional

from tmv_platform.db.database import get_db_session, fetch_one, insert_row, utcnow
from tmv_platform.core.auth import get_current_jobseeker
from tmv_platform.services.job_service import load_jobs, load_job, as_date, PUBLIC_WHERE
from tmv_platform.schemas.schemas import (
    JobResponse, JobListResponse, ApplicationCreate, CreatedResponse,
    Department, JobType
)
from tmv_platform.utils.logger import get_logger

router = APIRouter(prefix="/jobs", tags=["Jobs"])
logger = get_logger(__name__)


@router.get("", response_model=JobListResponse)
async def list_jobs(
    search: Optional[str] = None,
    location: Optional[str] = None,
    department: Optional[Department] = None,
    job_type: Optional[JobType] = None,
    min_salary: Optional[float] = Query(None, ge=0),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=50)
):
    """List active, approved jobs, newest first."""
    conditions = [PUBLIC_WHERE]
    params = {}

    if search:
        conditions.append("(LOWER(j.title) LIKE LOWER(:search) OR LOWER(j.description) LIKE LOWER(:search))")
        params["search"] = f"%{search}%"
    if location:
        conditions.append(
            "(LOWER(j.location) LIKE LOWER(:loc) OR LOWER(j.city) LIKE LOWER(:loc) OR LOWER(j.province) LIKE LOWER(:loc))"
        )
        params["loc"] = f"%{location}%"
    if department:
        conditions.append("j.department = :department")
        params["department"] = department.value
    if job_type:
        conditions.append("j.job_type = :job_type")
        params["job_type"] = job_type.value
    if min_salary is not None:
        conditions.append("COALESCE(j.salary_max, j.salary_min) >= :min_salary")
        params["min_salary"] = min_salary

    where = " AND ".join(conditions)

    with get_db_session() as db:
        total = fetch_one(db, f"SELECT COUNT(*) AS total FROM jobs j WHERE {where}", params)["total"]
        jobs = load_jobs(db, where, params, limit=page_size, offset=(page - 1) * page_size)

    return JobListResponse(
        jobs=[JobResponse(**j) for j in jobs],
        total=total,
        page=page,
        page_size=page_size
    )


@router.get("/departments", response_model=List[str])
async def list_departments():
    return [d.value for d in Department]


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(job_id: int):
    """Get a published job's details. Every fetch counts as a view."""
    with get_db_session() as db:
        result = db.execute(
            text("UPDATE jobs SET view_count = view_count + 1 WHERE id = :id AND status = 'active' AND approval_status = 'approved'"),
            {"id": job_id}
        )
        if result.rowcount == 0:
            raise HTTPException(status_code=404, detail="Job not found")
        job = load_job(db, job_id)

    return JobResponse(**job)


@router.post("/{job_id}/apply", response_model=CreatedResponse, status_code=201)
async def apply_to_job(job_id: int, data: ApplicationCreate, seeker: dict = Depends(get_current_jobseeker)):
    """Apply to an open job. One application per job seeker per job."""
    with get_db_session() as db:
        job = fetch_one(
            db,
            "SELECT id, title, status, approval_status, closing_date FROM jobs WHERE id = :id",
            {"id": job_id}
        )
        if not job or job["status"] != "active" or job["approval_status"] != "approved":
            raise HTTPException(status_code=404, detail="Job not found or not accepting applications")

        closing = as_date(job["closing_date"])
        if closing and closing < utcnow().date():
            raise HTTPException(status_code=400, detail="Applications for this job have closed")

        existing = fetch_one(
            db,
            "SELECT id FROM job_applications WHERE job_id = :jid AND jobseeker_id = :uid",
            {"jid": job_id, "uid": seeker["user_id"]}
        )
        if existing:
            raise HTTPException(status_code=400, detail="You have already applied to this job")

        now = utcnow()
        application_id = insert_row(
            db,
            """
            INSERT INTO job_applications (job_id, jobseeker_id, cover_letter, status, applied_at, updated_at)
            VALUES (:jid, :uid, :cover, 'pending', :now, :now)
            """,
            {"jid": job_id, "uid": seeker["user_id"], "cover": data.cover_letter, "now": now}
        )

    logger.info(f"Job seeker {seeker['user_id']} applied to job {job_id}")
    return CreatedResponse(message="Application submitted successfully", id=application_id)

"""
Job Posting Service

Loads job rows together with their applicant statistics and requirement
lists, and writes jobs plus their requirements in one go.

Statistics are aggregated in SQL (COUNT / SUM(CASE ...)); requirements are
child rows fetched with one extra query per batch of jobs.
"""

from datetime import date
from typing import List, Optional

from sqlalchemy import text
from sqlalchemy.orm import Session

from tmv_platform.db.database import fetch_all, fetch_all_in, fetch_one, insert_row, utcnow
from tmv_platform.core.permissions import MANAGEMENT

STAT_KEYS = ("total_applicants", "pending", "shortlisted", "invited", "interviewed", "offered", "rejected")

# Jobs visible to the public and to job seekers
PUBLIC_WHERE = "j.status = 'active' AND j.approval_status = 'approved'"

JOB_SELECT = """
    SELECT j.*,
           s.total_applicants, s.pending, s.shortlisted, s.invited,
           s.interviewed, s.offered, s.rejected
    FROM jobs j
    LEFT JOIN (
        SELECT job_id,
               COUNT(*) AS total_applicants,
               SUM(CASE WHEN status = 'pending' THEN 1 ELSE 0 END) AS pending,
               SUM(CASE WHEN status = 'shortlisted' THEN 1 ELSE 0 END) AS shortlisted,
               SUM(CASE WHEN status = 'invited' THEN 1 ELSE 0 END) AS invited,
               SUM(CASE WHEN status = 'interviewed' THEN 1 ELSE 0 END) AS interviewed,
               SUM(CASE WHEN status = 'offered' THEN 1 ELSE 0 END) AS offered,
               SUM(CASE WHEN status = 'rejected' THEN 1 ELSE 0 END) AS rejected
        FROM job_applications
        GROUP BY job_id
    ) s ON s.job_id = j.id
"""

# Columns a job create/update may write directly
CONTENT_FIELDS = (
    "title", "job_type", "department", "location", "city", "province", "description",
    "responsibilities", "benefits", "experience", "education", "salary_min",
    "salary_max", "salary_period", "closing_date",
)


def as_date(value) -> Optional[date]:
    """DATE columns come back as date objects (MySQL) or ISO strings (SQLite)."""
    if value is None or isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def enum_value(value):
    return value.value if hasattr(value, "value") else value


def _shape(row: dict, requirements: List[str]) -> dict:
    job = {k: v for k, v in row.items() if k not in STAT_KEYS}
    job["statistics"] = {k: int(row.get(k) or 0) for k in STAT_KEYS}
    job["requirements"] = requirements
    return job


def load_jobs(db: Session, where: str = "", params: dict = None, order_by: str = "j.created_at DESC, j.id DESC",
              limit: int = None, offset: int = None) -> List[dict]:
    """Fetch jobs matching a WHERE clause with statistics and requirements attached."""
    sql = JOB_SELECT
    if where:
        sql += f" WHERE {where}"
    sql += f" ORDER BY {order_by}"
    params = dict(params or {})
    if limit is not None:
        sql += " LIMIT :limit OFFSET :offset"
        params["limit"] = limit
        params["offset"] = offset or 0

    rows = fetch_all(db, sql, params)
    requirements = load_requirements(db, [r["id"] for r in rows])
    return [_shape(r, requirements.get(r["id"], [])) for r in rows]


def load_job(db: Session, job_id: int, where: str = "", params: dict = None) -> Optional[dict]:
    clause = "j.id = :job_id" + (f" AND {where}" if where else "")
    jobs = load_jobs(db, clause, {**(params or {}), "job_id": job_id})
    return jobs[0] if jobs else None


def load_requirements(db: Session, job_ids) -> dict:
    rows = fetch_all_in(
        db,
        "SELECT job_id, requirement FROM job_requirements WHERE job_id IN :ids ORDER BY job_id, position, id",
        job_ids
    )
    grouped = {}
    for r in rows:
        grouped.setdefault(r["job_id"], []).append(r["requirement"])
    return grouped


def replace_requirements(db: Session, job_id: int, requirements: List[str]) -> None:
    cleaned = [r.strip() for r in requirements if r and r.strip()]
    db.execute(text("DELETE FROM job_requirements WHERE job_id = :id"), {"id": job_id})
    for position, requirement in enumerate(cleaned):
        db.execute(
            text("INSERT INTO job_requirements (job_id, position, requirement) VALUES (:job_id, :pos, :req)"),
            {"job_id": job_id, "pos": position, "req": requirement}
        )


def insert_job(db: Session, data: dict, employer: dict, approved: bool, reviewer_id: int = None) -> int:
    """
    Insert a job for the employer's company.

    approved=True stamps the posting approved, reviewed by reviewer_id or the
    acting user (management creations); otherwise it waits in the approval queue.
    """
    now = utcnow()
    params = {f: enum_value(data.get(f)) for f in CONTENT_FIELDS}
    params["salary_period"] = params["salary_period"] or "month"
    params.update({
        "employer_id": employer["scope_id"],
        "created_by": employer["user_id"],
        "company_name": employer["company_name"],
        "status": enum_value(data.get("status")) or "active",
        "approval_status": "approved" if approved else "pending",
        "reviewed_by": (reviewer_id or employer["user_id"]) if approved else None,
        "reviewed_at": now if approved else None,
        "now": now,
    })
    job_id = insert_row(
        db,
        """
        INSERT INTO jobs (employer_id, created_by, company_name, title, job_type, department,
                          location, city, province, description, responsibilities, benefits,
                          experience, education, salary_min, salary_max, salary_period,
                          closing_date, status, approval_status, reviewed_by, reviewed_at,
                          created_at, updated_at)
        VALUES (:employer_id, :created_by, :company_name, :title, :job_type, :department,
                :location, :city, :province, :description, :responsibilities, :benefits,
                :experience, :education, :salary_min, :salary_max, :salary_period,
                :closing_date, :status, :approval_status, :reviewed_by, :reviewed_at,
                :now, :now)
        """,
        params
    )
    replace_requirements(db, job_id, data.get("requirements") or [])
    return job_id


def update_job(db: Session, job: dict, changes: dict, actor: dict) -> bool:
    """
    Apply a partial update to a job.

    A non-management edit to the content of an approved job sends it back
    to the approval queue. Returns True when approval was reset.
    """
    requirements = changes.pop("requirements", None)
    fields = {k: enum_value(v) for k, v in changes.items() if k in CONTENT_FIELDS or k == "status"}

    reset_approval = (
        actor["role"] != MANAGEMENT
        and job["approval_status"] == "approved"
        and (requirements is not None or any(k in CONTENT_FIELDS for k in fields))
    )
    if reset_approval:
        fields["approval_status"] = "pending"
        fields["reviewed_by"] = None
        fields["reviewed_at"] = None

    fields["updated_at"] = utcnow()
    assignments = ", ".join(f"{k} = :{k}" for k in fields)
    db.execute(text(f"UPDATE jobs SET {assignments} WHERE id = :job_id"), {**fields, "job_id": job["id"]})

    if requirements is not None:
        replace_requirements(db, job["id"], requirements)
    return reset_approval


def company_job(db: Session, job_id: int, scope_id: int) -> Optional[dict]:
    """A job owned by the given company scope, or None."""
    return load_job(db, job_id, "j.employer_id = :scope_id", {"scope_id": scope_id})


def is_public_job(db: Session, job_id: int) -> bool:
    return fetch_one(db, f"SELECT j.id FROM jobs j WHERE j.id = :id AND {PUBLIC_WHERE}", {"id": job_id}) is not None

"""
Application Service

Applicant tracking: listing applications with job and applicant details and
moving an application through its statuses. Each move is a single UPDATE
guarded by the current status, so repeating it changes nothing.
"""

from typing import List

from fastapi import HTTPException
from sqlalchemy import text
from sqlalchemy.orm import Session

from tmv_platform.db.database import fetch_all, utcnow

APPLICATION_SELECT = """
    SELECT a.id, a.job_id, j.title AS job_title, j.company_name, j.employer_id,
           a.jobseeker_id, u.first_name, u.last_name, u.email AS applicant_email,
           a.status, a.cover_letter, a.notes, a.rejection_reason, a.invitation_details,
           a.invited_at, a.interview_date, a.applied_at, a.updated_at
    FROM job_applications a
    JOIN jobs j ON j.id = a.job_id
    JOIN users u ON u.id = a.jobseeker_id
"""

# Statuses after which a job seeker can no longer withdraw
FINAL_STATUSES = ("offered", "rejected")


def load_applications(db: Session, where: str = "", params: dict = None) -> List[dict]:
    sql = APPLICATION_SELECT
    if where:
        sql += f" WHERE {where}"
    sql += " ORDER BY a.applied_at DESC, a.id DESC"
    rows = fetch_all(db, sql, params)
    for r in rows:
        r["applicant_name"] = f"{r['first_name']} {r['last_name']}".strip()
    return rows


def load_company_application(db: Session, application_id: int, scope_id: int) -> dict:
    rows = load_applications(db, "a.id = :id AND j.employer_id = :scope", {"id": application_id, "scope": scope_id})
    if not rows:
        raise HTTPException(status_code=404, detail="Application not found")
    return rows[0]


def set_application_status(db: Session, application_id: int, status: str, **fields) -> bool:
    """
    Set an application's status (plus optional columns) unless it already
    has that status. Returns True when a row changed.
    """
    assignments = ["status = :status", "updated_at = :now"]
    params = {"id": application_id, "status": status, "now": utcnow()}
    for column, value in fields.items():
        assignments.append(f"{column} = :{column}")
        params[column] = value

    result = db.execute(
        text(f"UPDATE job_applications SET {', '.join(assignments)} WHERE id = :id AND status <> :status"),
        params
    )
    return result.rowcount > 0

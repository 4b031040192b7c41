"""
Job seeker profile loader: the profile row plus work history, references,
skills and uploaded documents, each fetched with its own query.
"""

from typing import Optional

from sqlalchemy.orm import Session

from tmv_platform.db.database import fetch_all, fetch_one
from tmv_platform.services.document_service import list_documents

JOBSEEKER_OWNER = "jobseeker"


def load_jobseeker_profile(db: Session, user_id: int) -> Optional[dict]:
    profile = fetch_one(
        db,
        """
        SELECT p.*, u.email, u.phone
        FROM jobseeker_profiles p
        JOIN users u ON u.id = p.user_id
        WHERE p.user_id = :id
        """,
        {"id": user_id}
    )
    if not profile:
        return None

    profile["work_experience"] = fetch_all(
        db,
        """
        SELECT company_name, job_title, start_date, end_date, current_job,
               responsibilities, achievements, reason_for_leaving
        FROM work_experience WHERE profile_id = :pid
        ORDER BY start_date DESC, id
        """,
        {"pid": profile["id"]}
    )
    profile["references"] = fetch_all(
        db,
        """
        SELECT ref_name AS name, ref_contact AS contact, ref_relationship AS relationship
        FROM seeker_references WHERE profile_id = :pid ORDER BY id
        """,
        {"pid": profile["id"]}
    )
    profile["skills"] = load_skills(db, profile["id"])
    profile["documents"] = list_documents(db, JOBSEEKER_OWNER, user_id)
    return profile


def load_skills(db: Session, profile_id: int) -> list:
    return fetch_all(
        db,
        """
        SELECT s.id AS skill_id, s.name AS skill_name, js.proficiency_level
        FROM jobseeker_skills js
        JOIN skills s ON s.id = js.skill_id
        WHERE js.profile_id = :pid
        ORDER BY s.name
        """,
        {"pid": profile_id}
    )

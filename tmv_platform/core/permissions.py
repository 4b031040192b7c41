"""
Role and permission vocabulary.
"""

ADMIN = "admin"
MANAGEMENT = "management"
EMPLOYER = "employer"
HR_RECRUITMENT = "hr_recruitment"
HR_ADMIN = "hr_admin"
JOBSEEKER = "jobseeker"
CLIENT = "client"

# Roles that carry an employer_profiles row
EMPLOYER_SIDE_ROLES = (EMPLOYER, MANAGEMENT, HR_RECRUITMENT, HR_ADMIN)
TEAM_ROLES = (HR_RECRUITMENT, HR_ADMIN)

ALL_PERMISSIONS = (
    "create_post",
    "edit_post",
    "delete_post",
    "withdraw_post",
    "view_applications",
    "review_applications",
    "schedule_interviews",
    "pull_reports",
    "export_reports",
    "view_analytics",
    "manage_users",
    "assign_tasks",
    "approve_jobs",
)

OWNER_PERMISSIONS = tuple(p for p in ALL_PERMISSIONS if p not in ("approve_jobs", "assign_tasks"))

BLOCKED_TEAM_STATUSES = ("suspended", "frozen")

"""
Relational schema - SQLAlchemy Core table definitions.

Queries elsewhere are written as raw parameterized SQL (sqlalchemy.text);
these definitions exist so the schema can be created on MySQL (production)
and SQLite (tests) from one place.

Child collections (requirements, features, documents, items) live in their
own tables and are loaded with separate queries, never packed into a
delimited string.
"""

from sqlalchemy import (
    MetaData, Table, Column, Integer, String, Text, Boolean, Numeric, Date,
    DateTime, ForeignKey, UniqueConstraint, Index, text
)

metadata = MetaData()

NOW = text("CURRENT_TIMESTAMP")


def _created_at():
    return Column("created_at", DateTime, nullable=False, server_default=NOW)


def _updated_at():
    return Column("updated_at", DateTime, nullable=False, server_default=NOW)


# ============================================================
# USERS & ROLES
# ============================================================

users = Table(
    "users", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", String(255), nullable=False),
    Column("first_name", String(100), nullable=False),
    Column("last_name", String(100), nullable=False, server_default=""),
    Column("phone", String(30)),
    Column("role", String(32), nullable=False),
    Column("is_active", Boolean, nullable=False, server_default=text("1")),
    Column("reset_token", String(512)),
    Column("reset_token_expires", DateTime),
    Column("last_login_at", DateTime),
    _created_at(),
    _updated_at(),
)

user_status = Table(
    "user_status", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True),
    Column("status", String(20), nullable=False),
    Column("reason", String(500)),
    Column("changed_by", Integer, ForeignKey("users.id", ondelete="SET NULL")),
    Column("changed_at", DateTime, nullable=False, server_default=NOW),
)

employer_profiles = Table(
    "employer_profiles", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True),
    Column("owner_id", Integer, ForeignKey("users.id", ondelete="CASCADE")),
    Column("company_name", String(255), nullable=False),
    Column("role", String(32), nullable=False),
    Column("department", String(100)),
    Column("phone", String(30)),
    _created_at(),
    _updated_at(),
)

employer_permissions = Table(
    "employer_permissions", metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("permission", String(50), primary_key=True),
)


# ============================================================
# JOBSEEKERS
# ============================================================

jobseeker_profiles = Table(
    "jobseeker_profiles", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True),
    Column("first_name", String(100), nullable=False),
    Column("last_name", String(100), nullable=False),
    Column("id_passport_no", String(50), nullable=False, unique=True),
    Column("date_of_birth", Date),
    Column("address", Text),
    Column("current_location", String(255)),
    Column("highest_qualification", String(255)),
    Column("field_of_study", String(255)),
    Column("institution_name", String(255)),
    Column("graduation_year", Integer),
    Column("years_of_experience", Integer),
    Column("current_salary", Numeric(10, 2)),
    Column("expected_salary", Numeric(10, 2)),
    Column("notice_period", String(50)),
    Column("linkedin_url", String(255)),
    Column("portfolio_url", String(255)),
    _created_at(),
    _updated_at(),
)

work_experience = Table(
    "work_experience", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("profile_id", Integer, ForeignKey("jobseeker_profiles.id", ondelete="CASCADE"), nullable=False),
    Column("company_name", String(255), nullable=False),
    Column("job_title", String(255), nullable=False),
    Column("start_date", Date, nullable=False),
    Column("end_date", Date),
    Column("current_job", Boolean, nullable=False, server_default=text("0")),
    Column("responsibilities", Text),
    Column("achievements", Text),
    Column("reason_for_leaving", String(255)),
)

skills = Table(
    "skills", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False, unique=True),
)

jobseeker_skills = Table(
    "jobseeker_skills", metadata,
    Column("profile_id", Integer, ForeignKey("jobseeker_profiles.id", ondelete="CASCADE"), primary_key=True),
    Column("skill_id", Integer, ForeignKey("skills.id", ondelete="CASCADE"), primary_key=True),
    Column("proficiency_level", String(20)),
)

seeker_references = Table(
    "seeker_references", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("profile_id", Integer, ForeignKey("jobseeker_profiles.id", ondelete="CASCADE"), nullable=False),
    Column("ref_name", String(255), nullable=False),
    Column("ref_contact", String(255), nullable=False),
    Column("ref_relationship", String(100)),
)


# ============================================================
# JOBS & APPLICATIONS
# ============================================================

jobs = Table(
    "jobs", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("employer_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("created_by", Integer, ForeignKey("users.id", ondelete="SET NULL")),
    Column("company_name", String(255)),
    Column("title", String(255), nullable=False),
    Column("job_type", String(20), nullable=False),
    Column("department", String(100)),
    Column("location", String(255)),
    Column("city", String(100)),
    Column("province", String(100)),
    Column("description", Text),
    Column("responsibilities", Text),
    Column("benefits", Text),
    Column("experience", String(100)),
    Column("education", String(255)),
    Column("salary_min", Numeric(10, 2)),
    Column("salary_max", Numeric(10, 2)),
    Column("salary_period", String(20), nullable=False, server_default="month"),
    Column("closing_date", Date),
    Column("status", String(20), nullable=False, server_default="draft"),
    Column("approval_status", String(20), nullable=False, server_default="pending"),
    Column("reviewed_by", Integer, ForeignKey("users.id", ondelete="SET NULL")),
    Column("reviewed_at", DateTime),
    Column("rejection_reason", String(500)),
    Column("view_count", Integer, nullable=False, server_default=text("0")),
    _created_at(),
    _updated_at(),
    Index("ix_jobs_status_approval", "status", "approval_status"),
)

job_requirements = Table(
    "job_requirements", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("job_id", Integer, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False),
    Column("position", Integer, nullable=False, server_default=text("0")),
    Column("requirement", String(500), nullable=False),
)

job_drafts = Table(
    "job_drafts", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("job_id", Integer, ForeignKey("jobs.id", ondelete="SET NULL")),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("employer_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("company_name", String(255)),
    Column("title", String(255), nullable=False),
    Column("job_type", String(20), nullable=False),
    Column("department", String(100)),
    Column("location", String(255)),
    Column("salary_min", Numeric(10, 2)),
    Column("salary_max", Numeric(10, 2)),
    Column("closing_date", Date),
    Column("description", Text),
    Column("responsibilities", Text),
    Column("requirements", Text),
    Column("status", String(20), nullable=False, server_default="withdrawn"),
    Column("withdrawn_reason", String(500)),
    Column("withdrawn_at", DateTime),
    _created_at(),
)

job_applications = Table(
    "job_applications", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("job_id", Integer, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False),
    Column("jobseeker_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("cover_letter", Text),
    Column("status", String(20), nullable=False, server_default="pending"),
    Column("notes", Text),
    Column("rejection_reason", String(500)),
    Column("invitation_details", Text),
    Column("invited_at", DateTime),
    Column("interview_date", DateTime),
    Column("applied_at", DateTime, nullable=False, server_default=NOW),
    _updated_at(),
    UniqueConstraint("job_id", "jobseeker_id", name="uq_application_job_seeker"),
)

saved_jobs = Table(
    "saved_jobs", metadata,
    Column("jobseeker_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("job_id", Integer, ForeignKey("jobs.id", ondelete="CASCADE"), primary_key=True),
    Column("saved_at", DateTime, nullable=False, server_default=NOW),
)

interview_schedules = Table(
    "interview_schedules", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("application_id", Integer, ForeignKey("job_applications.id", ondelete="CASCADE"), nullable=False),
    Column("job_id", Integer, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False),
    Column("jobseeker_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("scheduled_by", Integer, ForeignKey("users.id", ondelete="SET NULL")),
    Column("interview_date", DateTime, nullable=False),
    Column("location", String(255)),
    Column("notes", Text),
    Column("status", String(20), nullable=False, server_default="scheduled"),
    _created_at(),
    _updated_at(),
)


# ============================================================
# MANAGEMENT: MESSAGES & TASKS
# ============================================================

manager_messages = Table(
    "manager_messages", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("sender_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("recipient_id", Integer, ForeignKey("users.id", ondelete="CASCADE")),
    Column("message_type", String(30), nullable=False),
    Column("priority", String(20), nullable=False, server_default="normal"),
    Column("subject", String(255), nullable=False),
    Column("content", Text, nullable=False),
    Column("due_date", Date),
    Column("status", String(20), nullable=False, server_default="unread"),
    _created_at(),
)

message_receipts = Table(
    "message_receipts", metadata,
    Column("message_id", Integer, ForeignKey("manager_messages.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("read_at", DateTime),
)

tasks = Table(
    "tasks", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(255), nullable=False),
    Column("description", Text),
    Column("assigned_to_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("assigned_by_id", Integer, ForeignKey("users.id", ondelete="SET NULL")),
    Column("priority", String(20), nullable=False, server_default="medium"),
    Column("status", String(20), nullable=False, server_default="pending"),
    Column("due_date", Date),
    Column("notes", Text),
    Column("return_reason", String(500)),
    Column("completed_at", DateTime),
    _created_at(),
    _updated_at(),
)

task_checklist_items = Table(
    "task_checklist_items", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("task_id", Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False),
    Column("position", Integer, nullable=False),
    Column("label", String(500), nullable=False),
    Column("done", Boolean, nullable=False, server_default=text("0")),
)


# ============================================================
# BUSINESS SERVICES: COMPANIES & ARCHITECTURE PROJECTS
# ============================================================

company_registrations = Table(
    "company_registrations", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("client_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("company_name", String(255), nullable=False),
    Column("registration_number", String(100), nullable=False),
    Column("contact_person_name", String(255), nullable=False),
    Column("contact_person_position", String(255)),
    Column("contact_person_email", String(255), nullable=False),
    Column("contact_person_phone", String(30)),
    Column("address_street", String(255)),
    Column("address_city", String(100)),
    Column("address_postal_code", String(20)),
    Column("address_country", String(100)),
    Column("status", String(20), nullable=False, server_default="pending"),
    Column("review_notes", String(500)),
    _created_at(),
    _updated_at(),
)

company_services = Table(
    "company_services", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("company_id", Integer, ForeignKey("company_registrations.id", ondelete="CASCADE"), nullable=False),
    Column("service_type", String(255), nullable=False),
)

architecture_projects = Table(
    "architecture_projects", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("client_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("project_type", String(50), nullable=False),
    Column("project_name", String(255), nullable=False),
    Column("location", String(255)),
    Column("size", String(100)),
    Column("budget", Numeric(12, 2)),
    Column("timeline", String(100)),
    Column("floors", Integer),
    Column("rooms", Integer),
    Column("additional_notes", Text),
    Column("status", String(20), nullable=False, server_default="draft"),
    Column("payment_amount", Numeric(10, 2), nullable=False, server_default=text("0")),
    Column("payment_status", String(20), nullable=False, server_default="pending"),
    _created_at(),
    _updated_at(),
)

project_features = Table(
    "project_features", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("project_id", Integer, ForeignKey("architecture_projects.id", ondelete="CASCADE"), nullable=False),
    Column("feature_name", String(255), nullable=False),
)

documents = Table(
    "documents", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("owner_type", String(20), nullable=False),
    Column("owner_id", Integer, nullable=False),
    Column("document_type", String(30), nullable=False),
    Column("original_filename", String(255), nullable=False),
    Column("stored_path", String(500), nullable=False),
    Column("content_type", String(100)),
    Column("size_bytes", Integer, nullable=False),
    Column("extracted_text", Text),
    Column("uploaded_by", Integer, ForeignKey("users.id", ondelete="SET NULL")),
    Column("uploaded_at", DateTime, nullable=False, server_default=NOW),
    Index("ix_documents_owner", "owner_type", "owner_id"),
)


# ============================================================
# CATALOG, CART & ORDERS
# ============================================================

services = Table(
    "services", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("description", Text),
    Column("price", Numeric(10, 2), nullable=False),
    Column("category", String(255)),
    Column("status", String(20), nullable=False, server_default="active"),
)

cart_items = Table(
    "cart_items", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("service_id", Integer, ForeignKey("services.id", ondelete="CASCADE"), nullable=False),
    Column("quantity", Integer, nullable=False, server_default=text("1")),
    Column("added_at", DateTime, nullable=False, server_default=NOW),
    UniqueConstraint("user_id", "service_id", name="uq_cart_user_service"),
)

orders = Table(
    "orders", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("subtotal", Numeric(10, 2), nullable=False, server_default=text("0")),
    Column("vat", Numeric(10, 2), nullable=False, server_default=text("0")),
    Column("total_amount", Numeric(10, 2), nullable=False, server_default=text("0")),
    Column("status", String(20), nullable=False, server_default="pending"),
    Column("payment_method", String(50)),
    Column("payment_status", String(20), nullable=False, server_default="pending"),
    Column("order_date", DateTime, nullable=False, server_default=NOW),
)

order_items = Table(
    "order_items", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("order_id", Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False),
    Column("service_id", Integer, ForeignKey("services.id", ondelete="CASCADE"), nullable=False),
    Column("service_name", String(255), nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("price", Numeric(10, 2), nullable=False),
    Column("vat", Numeric(10, 2), nullable=False),
    Column("total", Numeric(10, 2), nullable=False),
)


# ============================================================
# PAYMENTS
# ============================================================

transactions = Table(
    "transactions", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("order_id", Integer, ForeignKey("orders.id", ondelete="SET NULL")),
    Column("project_id", Integer, ForeignKey("architecture_projects.id", ondelete="SET NULL")),
    Column("amount", Numeric(10, 2), nullable=False),
    Column("currency", String(3), nullable=False, server_default="ZAR"),
    Column("description", String(500)),
    Column("payment_method", String(30), nullable=False, server_default="yoco"),
    Column("provider_checkout_id", String(100)),
    Column("provider_payment_id", String(100)),
    Column("status", String(20), nullable=False, server_default="pending"),
    Column("checkout_url", String(500)),
    _created_at(),
    _updated_at(),
    Index("ix_transactions_checkout", "provider_checkout_id"),
)

transaction_items = Table(
    "transaction_items", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("transaction_id", Integer, ForeignKey("transactions.id", ondelete="CASCADE"), nullable=False),
    Column("item_type", String(30), nullable=False),
    Column("item_reference_id", String(100)),
    Column("item_name", String(255), nullable=False),
    Column("price", Numeric(10, 2), nullable=False),
    Column("quantity", Integer, nullable=False, server_default=text("1")),
)

transaction_events = Table(
    "transaction_events", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("transaction_id", Integer, ForeignKey("transactions.id", ondelete="CASCADE"), nullable=False),
    Column("provider_event_id", String(100)),
    Column("event_type", String(50), nullable=False),
    Column("event_data", Text, nullable=False),
    _created_at(),
)

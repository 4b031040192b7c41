"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.
"""

from pydantic import BaseModel, EmailStr, Field, model_validator
from typing import Optional, List, Dict, Any, Union, Literal
from datetime import datetime, date
from enum import Enum


# ============================================================
# ENUMS
# ============================================================

class UserRole(str, Enum):
    admin = "admin"
    management = "management"
    employer = "employer"
    hr_recruitment = "hr_recruitment"
    hr_admin = "hr_admin"
    jobseeker = "jobseeker"
    client = "client"


class TeamRole(str, Enum):
    hr_recruitment = "hr_recruitment"
    hr_admin = "hr_admin"


class Permission(str, Enum):
    create_post = "create_post"
    edit_post = "edit_post"
    delete_post = "delete_post"
    withdraw_post = "withdraw_post"
    view_applications = "view_applications"
    review_applications = "review_applications"
    schedule_interviews = "schedule_interviews"
    pull_reports = "pull_reports"
    export_reports = "export_reports"
    view_analytics = "view_analytics"
    manage_users = "manage_users"
    assign_tasks = "assign_tasks"
    approve_jobs = "approve_jobs"


class JobType(str, Enum):
    full_time = "full-time"
    part_time = "part-time"
    contract = "contract"
    temporary = "temporary"
    internship = "internship"


class JobStatus(str, Enum):
    draft = "draft"
    active = "active"
    closed = "closed"


class ApprovalStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class Department(str, Enum):
    admin = "Admin"
    architecture = "Architecture"
    consulting = "Consulting"
    finance = "Finance & Accounts"
    it = "Information Technology (IT)"
    innovation = "Innovation & Design"
    marketing = "Marketing & Branding"
    security = "Security & Automation"


class ApplicationStatus(str, Enum):
    pending = "pending"
    reviewed = "reviewed"
    shortlisted = "shortlisted"
    invited = "invited"
    interviewed = "interviewed"
    offered = "offered"
    rejected = "rejected"
    withdrawn = "withdrawn"


class ProficiencyLevel(str, Enum):
    beginner = "Beginner"
    intermediate = "Intermediate"
    advanced = "Advanced"
    expert = "Expert"


class JobseekerDocumentType(str, Enum):
    cv = "cv"
    id_copy = "id_copy"
    qualification = "qualification"


class CompanyDocumentType(str, Enum):
    registration_doc = "registration_doc"
    tax_clearance = "tax_clearance"
    other = "other"


class ProjectDocumentType(str, Enum):
    site_photo = "site_photo"
    existing_plan = "existing_plan"
    approval = "approval"


class CompanyStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class TaskStatus(str, Enum):
    pending = "pending"
    in_progress = "in_progress"
    completed = "completed"
    returned = "returned"


class TaskPriority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
    urgent = "urgent"


class MessageType(str, Enum):
    instruction = "instruction"
    announcement = "announcement"
    reminder = "reminder"
    feedback = "feedback"


class MessagePriority(str, Enum):
    low = "low"
    normal = "normal"
    high = "high"
    urgent = "urgent"


def _passwords_match(password: str, confirm: str) -> None:
    if password != confirm:
        raise ValueError("Passwords do not match")


# ============================================================
# AUTH SCHEMAS
# ============================================================

class _RegisterBase(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    confirm_password: str
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: Optional[str] = None

    @model_validator(mode="after")
    def check_passwords(self):
        _passwords_match(self.password, self.confirm_password)
        return self

class JobseekerRegisterRequest(_RegisterBase):
    id_passport_no: str = Field(..., min_length=4, max_length=50)

class EmployerRegisterRequest(_RegisterBase):
    company_name: str = Field(..., min_length=2, max_length=255)
    department: Optional[Department] = None

class ClientRegisterRequest(_RegisterBase):
    pass

class LoginRequest(BaseModel):
    email: EmailStr
    password: str
    remember_me: bool = False

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: int
    role: str
    expires_in: int

class UserResponse(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    role: str
    is_active: bool
    team_status: str = "active"
    profile_role: Optional[str] = None
    company_name: Optional[str] = None
    permissions: List[str] = []
    created_at: datetime

class ForgotPasswordRequest(BaseModel):
    email: EmailStr

class ForgotPasswordResponse(BaseModel):
    message: str
    success: bool = True
    reset_token: Optional[str] = None

class ResetPasswordRequest(BaseModel):
    token: str
    new_password: str = Field(..., min_length=8)
    confirm_password: str

    @model_validator(mode="after")
    def check_passwords(self):
        _passwords_match(self.new_password, self.confirm_password)
        return self

class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=8)


# ============================================================
# JOB SCHEMAS
# ============================================================

class JobCreate(BaseModel):
    title: str = Field(..., min_length=3, max_length=255)
    job_type: JobType = JobType.full_time
    department: Optional[Department] = None
    location: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    description: Optional[str] = None
    requirements: List[str] = []
    responsibilities: Optional[str] = None
    benefits: Optional[str] = None
    experience: Optional[str] = None
    education: Optional[str] = None
    salary_min: Optional[float] = Field(None, ge=0)
    salary_max: Optional[float] = Field(None, ge=0)
    salary_period: str = "month"
    closing_date: Optional[date] = None
    status: JobStatus = JobStatus.active

    @model_validator(mode="after")
    def check_salary_range(self):
        if self.salary_min is not None and self.salary_max is not None and self.salary_min > self.salary_max:
            raise ValueError("salary_min cannot exceed salary_max")
        return self

class JobUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=3, max_length=255)
    job_type: Optional[JobType] = None
    department: Optional[Department] = None
    location: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    description: Optional[str] = None
    requirements: Optional[List[str]] = None
    responsibilities: Optional[str] = None
    benefits: Optional[str] = None
    experience: Optional[str] = None
    education: Optional[str] = None
    salary_min: Optional[float] = Field(None, ge=0)
    salary_max: Optional[float] = Field(None, ge=0)
    salary_period: Optional[str] = None
    closing_date: Optional[date] = None
    status: Optional[JobStatus] = None

class JobStatistics(BaseModel):
    total_applicants: int = 0
    pending: int = 0
    shortlisted: int = 0
    invited: int = 0
    interviewed: int = 0
    offered: int = 0
    rejected: int = 0

class JobResponse(BaseModel):
    id: int
    employer_id: int
    created_by: Optional[int] = None
    company_name: Optional[str] = None
    title: str
    job_type: str
    department: Optional[str] = None
    location: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    description: Optional[str] = None
    requirements: List[str] = []
    responsibilities: Optional[str] = None
    benefits: Optional[str] = None
    experience: Optional[str] = None
    education: Optional[str] = None
    salary_min: Optional[float] = None
    salary_max: Optional[float] = None
    salary_period: str
    closing_date: Optional[date] = None
    status: str
    approval_status: str
    reviewed_by: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    view_count: int = 0
    statistics: JobStatistics = JobStatistics()
    created_at: datetime
    updated_at: datetime

class JobListResponse(BaseModel):
    jobs: List[JobResponse]
    total: int
    page: int
    page_size: int

class JobCollectionResponse(BaseModel):
    jobs: List[Any]
    count: int

class JobMutationResponse(BaseModel):
    message: str
    job: JobResponse
    auto_approved: bool = False

class ReasonRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)

class JobDraftResponse(BaseModel):
    id: int
    job_id: Optional[int] = None
    user_id: int
    employer_id: int
    company_name: Optional[str] = None
    title: str
    job_type: str
    department: Optional[str] = None
    location: Optional[str] = None
    salary_min: Optional[float] = None
    salary_max: Optional[float] = None
    closing_date: Optional[date] = None
    description: Optional[str] = None
    responsibilities: Optional[str] = None
    requirements: List[str] = []
    status: str
    withdrawn_reason: Optional[str] = None
    withdrawn_at: Optional[datetime] = None
    created_at: datetime


# ============================================================
# APPLICATION SCHEMAS
# ============================================================

class ApplicationCreate(BaseModel):
    cover_letter: Optional[str] = None

class ApplicationStatusUpdate(BaseModel):
    status: ApplicationStatus
    notes: Optional[str] = None

class ApplicationInviteRequest(BaseModel):
    invitation_details: Optional[str] = None
    interview_date: Optional[datetime] = None

class ApplicationResponse(BaseModel):
    id: int
    job_id: int
    job_title: str
    company_name: Optional[str] = None
    jobseeker_id: int
    applicant_name: str
    applicant_email: str
    status: str
    cover_letter: Optional[str] = None
    notes: Optional[str] = None
    rejection_reason: Optional[str] = None
    invitation_details: Optional[str] = None
    invited_at: Optional[datetime] = None
    interview_date: Optional[datetime] = None
    applied_at: datetime
    updated_at: datetime


# ============================================================
# JOBSEEKER SCHEMAS
# ============================================================

class JobseekerProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    date_of_birth: Optional[date] = None
    address: Optional[str] = None
    current_location: Optional[str] = None
    highest_qualification: Optional[str] = None
    field_of_study: Optional[str] = None
    institution_name: Optional[str] = None
    graduation_year: Optional[int] = Field(None, ge=1950, le=2100)
    years_of_experience: Optional[int] = Field(None, ge=0, le=70)
    current_salary: Optional[float] = Field(None, ge=0)
    expected_salary: Optional[float] = Field(None, ge=0)
    notice_period: Optional[str] = None
    linkedin_url: Optional[str] = None
    portfolio_url: Optional[str] = None

class WorkExperienceItem(BaseModel):
    company_name: str = Field(..., min_length=1)
    job_title: str = Field(..., min_length=1)
    start_date: date
    end_date: Optional[date] = None
    current_job: bool = False
    responsibilities: Optional[str] = None
    achievements: Optional[str] = None
    reason_for_leaving: Optional[str] = None

class ReferenceItem(BaseModel):
    name: str = Field(..., min_length=1)
    contact: str = Field(..., min_length=3)
    relationship: Optional[str] = None

class SkillAdd(BaseModel):
    skill_name: str = Field(..., min_length=1, max_length=255)
    proficiency_level: ProficiencyLevel = ProficiencyLevel.intermediate

class SkillResponse(BaseModel):
    skill_id: int
    skill_name: str
    proficiency_level: Optional[str] = None

class DocumentResponse(BaseModel):
    id: int
    document_type: str
    original_filename: str
    content_type: Optional[str] = None
    size_bytes: int
    uploaded_at: datetime

class JobseekerProfileResponse(BaseModel):
    user_id: int
    email: str
    phone: Optional[str] = None
    first_name: str
    last_name: str
    id_passport_no: str
    date_of_birth: Optional[date] = None
    address: Optional[str] = None
    current_location: Optional[str] = None
    highest_qualification: Optional[str] = None
    field_of_study: Optional[str] = None
    institution_name: Optional[str] = None
    graduation_year: Optional[int] = None
    years_of_experience: Optional[int] = None
    current_salary: Optional[float] = None
    expected_salary: Optional[float] = None
    notice_period: Optional[str] = None
    linkedin_url: Optional[str] = None
    portfolio_url: Optional[str] = None
    work_experience: List[WorkExperienceItem] = []
    references: List[ReferenceItem] = []
    skills: List[SkillResponse] = []
    documents: List[DocumentResponse] = []
    created_at: datetime
    updated_at: datetime

class WishlistAdd(BaseModel):
    job_id: int

class ApplicationDetailResponse(ApplicationResponse):
    applicant: Optional[JobseekerProfileResponse] = None


# ============================================================
# EMPLOYER SCHEMAS
# ============================================================

class EmployerProfileUpdate(BaseModel):
    company_name: Optional[str] = Field(None, min_length=2, max_length=255)
    department: Optional[Department] = None
    phone: Optional[str] = None

class TeamUserCreate(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: Optional[str] = None
    role: TeamRole = TeamRole.hr_recruitment
    permissions: List[Permission] = []

class PermissionsUpdate(BaseModel):
    permissions: List[Permission]

class TeamUserResponse(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str
    role: str
    is_active: bool
    team_status: str = "active"
    department: Optional[str] = None
    permissions: List[str] = []

class EmployerStatsResponse(BaseModel):
    total_jobs: int
    active_jobs: int
    pending_approval: int
    total_applications: int
    applications_by_status: Dict[str, int]

class CandidateResponse(BaseModel):
    user_id: int
    first_name: str
    last_name: str
    email: str
    current_location: Optional[str] = None
    highest_qualification: Optional[str] = None
    years_of_experience: Optional[int] = None
    skills: List[str] = []
    applications: int


# ============================================================
# TASK SCHEMAS
# ============================================================

class ChecklistItem(BaseModel):
    label: str = Field(..., min_length=1, max_length=500)
    done: bool = False

class TaskCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    assigned_to_id: int
    priority: TaskPriority = TaskPriority.medium
    due_date: Optional[date] = None
    checklist: List[str] = []

class TaskUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    assigned_to_id: Optional[int] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[date] = None

class TaskStatusUpdate(BaseModel):
    status: TaskStatus
    reason: Optional[str] = Field(None, max_length=500)

class ChecklistUpdate(BaseModel):
    checklist: List[ChecklistItem]

class NotesUpdate(BaseModel):
    notes: str

class TaskResponse(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    assigned_to_id: int
    assigned_to_name: str
    assigned_by_id: Optional[int] = None
    priority: str
    status: str
    due_date: Optional[date] = None
    notes: Optional[str] = None
    return_reason: Optional[str] = None
    completed_at: Optional[datetime] = None
    checklist: List[ChecklistItem] = []
    created_at: datetime
    updated_at: datetime


# ============================================================
# MANAGEMENT SCHEMAS
# ============================================================

class MessageSend(BaseModel):
    recipient_id: Union[int, Literal["all"]] = "all"
    message_type: MessageType = MessageType.instruction
    priority: MessagePriority = MessagePriority.normal
    subject: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1)
    due_date: Optional[date] = None

class ManagerMessageResponse(BaseModel):
    id: int
    sender_id: int
    sender_name: Optional[str] = None
    recipient_id: Optional[int] = None
    message_type: str
    priority: str
    subject: str
    content: str
    due_date: Optional[date] = None
    status: str
    created_at: datetime
    read_count: int = 0
    total_recipients: int = 0

class InboxMessageResponse(BaseModel):
    id: int
    sender_id: int
    sender_name: Optional[str] = None
    message_type: str
    priority: str
    subject: str
    content: str
    due_date: Optional[date] = None
    created_at: datetime
    read_at: Optional[datetime] = None

class InterviewScheduleRequest(BaseModel):
    application_id: int
    interview_date: datetime
    location: Optional[str] = None
    notes: Optional[str] = None

class OverviewStatsResponse(BaseModel):
    active_tasks: int
    pending_approvals: int
    team_members: int
    completed_this_week: int

class PromoteRequest(BaseModel):
    email: EmailStr


# ============================================================
# ADMIN SCHEMAS
# ============================================================

class AdminPasswordReset(BaseModel):
    new_password: str = Field(..., min_length=8)

class AnalyticsResponse(BaseModel):
    users_by_role: Dict[str, int]
    jobs_by_approval_status: Dict[str, int]
    applications_by_status: Dict[str, int]
    orders_by_status: Dict[str, int]
    completed_revenue: float

class ReviewRequest(BaseModel):
    notes: Optional[str] = Field(None, max_length=500)

class ServiceCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=255)
    description: Optional[str] = None
    price: float = Field(..., gt=0)
    category: Optional[str] = None

class ServiceUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=255)
    description: Optional[str] = None
    price: Optional[float] = Field(None, gt=0)
    category: Optional[str] = None

class ServiceResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    price: float
    category: Optional[str] = None
    status: str


# ============================================================
# COMPANY REGISTRATION SCHEMAS
# ============================================================

class ContactPerson(BaseModel):
    name: str = Field(..., min_length=2)
    position: Optional[str] = None
    email: EmailStr
    phone: Optional[str] = None

class Address(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None

class CompanyRegistrationCreate(BaseModel):
    company_name: str = Field(..., min_length=2, max_length=255)
    registration_number: str = Field(..., min_length=2, max_length=100)
    contact_person: ContactPerson
    address: Address = Address()
    services: List[str] = []

class CompanyRegistrationUpdate(BaseModel):
    company_name: Optional[str] = Field(None, min_length=2, max_length=255)
    registration_number: Optional[str] = Field(None, min_length=2, max_length=100)
    contact_person: Optional[ContactPerson] = None
    address: Optional[Address] = None
    services: Optional[List[str]] = None

class CompanyRegistrationResponse(BaseModel):
    id: int
    client_id: int
    company_name: str
    registration_number: str
    contact_person: ContactPerson
    address: Address
    services: List[str] = []
    documents: List[DocumentResponse] = []
    status: str
    review_notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


# ============================================================
# ARCHITECTURE PROJECT SCHEMAS
# ============================================================

class ProjectCreate(BaseModel):
    project_type: str = Field(..., min_length=2, max_length=50)
    project_name: str = Field(..., min_length=2, max_length=255)
    location: Optional[str] = None
    size: Optional[str] = None
    budget: Optional[float] = Field(None, ge=0)
    timeline: Optional[str] = None
    floors: Optional[int] = Field(None, ge=0)
    rooms: Optional[int] = Field(None, ge=0)
    additional_notes: Optional[str] = None
    special_features: List[str] = []
    payment_amount: float = Field(0, ge=0)

class ProjectUpdate(BaseModel):
    project_type: Optional[str] = Field(None, min_length=2, max_length=50)
    project_name: Optional[str] = Field(None, min_length=2, max_length=255)
    location: Optional[str] = None
    size: Optional[str] = None
    budget: Optional[float] = Field(None, ge=0)
    timeline: Optional[str] = None
    floors: Optional[int] = Field(None, ge=0)
    rooms: Optional[int] = Field(None, ge=0)
    additional_notes: Optional[str] = None
    special_features: Optional[List[str]] = None

class FeaturesAdd(BaseModel):
    features: List[str] = Field(..., min_length=1)

class ProjectDocuments(BaseModel):
    site_photos: List[DocumentResponse] = []
    existing_plans: List[DocumentResponse] = []
    approvals: List[DocumentResponse] = []

class ProjectResponse(BaseModel):
    id: int
    client_id: int
    project_type: str
    project_name: str
    location: Optional[str] = None
    size: Optional[str] = None
    budget: Optional[float] = None
    timeline: Optional[str] = None
    floors: Optional[int] = None
    rooms: Optional[int] = None
    additional_notes: Optional[str] = None
    special_features: List[str] = []
    documents: ProjectDocuments = ProjectDocuments()
    status: str
    payment_amount: float
    payment_status: str
    created_at: datetime
    updated_at: datetime


# ============================================================
# CART & ORDER SCHEMAS
# ============================================================

class CartAdd(BaseModel):
    service_id: int
    quantity: int = Field(1, ge=1, le=100)

class CartQuantityUpdate(BaseModel):
    quantity: int = Field(..., ge=1, le=100)

class CartLine(BaseModel):
    service_id: int
    name: str
    category: Optional[str] = None
    price: float
    quantity: int
    subtotal: float
    vat: float
    total: float

class CartResponse(BaseModel):
    items: List[CartLine]
    subtotal: float
    vat: float
    total: float

class OrderItemResponse(BaseModel):
    service_id: int
    service_name: str
    quantity: int
    price: float
    vat: float
    total: float

class OrderResponse(BaseModel):
    id: int
    subtotal: float
    vat: float
    total_amount: float
    status: str
    payment_status: str
    payment_method: Optional[str] = None
    order_date: datetime
    items: List[OrderItemResponse] = []


# ============================================================
# PAYMENT SCHEMAS
# ============================================================

class PaymentItem(BaseModel):
    type: str = "service"
    item_id: Optional[str] = None
    name: str
    price: float = Field(..., ge=0)
    quantity: int = Field(1, ge=1)

class PaymentInitRequest(BaseModel):
    amount: Optional[float] = Field(None, gt=0)
    description: Optional[str] = None
    items: List[PaymentItem] = []
    order_id: Optional[int] = None
    project_id: Optional[int] = None

    @model_validator(mode="after")
    def check_source(self):
        sources = [s for s in (self.amount, self.order_id, self.project_id) if s is not None]
        if len(sources) != 1:
            raise ValueError("Provide exactly one of amount, order_id or project_id")
        return self

class PaymentInitResponse(BaseModel):
    transaction_id: int
    checkout_url: str
    status: str

class TransactionResponse(BaseModel):
    id: int
    amount: float
    currency: str
    description: Optional[str] = None
    status: str
    payment_method: str
    checkout_url: Optional[str] = None
    order_id: Optional[int] = None
    project_id: Optional[int] = None
    items: List[PaymentItem] = []
    created_at: datetime
    updated_at: datetime

class TransactionEventResponse(BaseModel):
    id: int
    event_type: str
    provider_event_id: Optional[str] = None
    event_data: Dict[str, Any]
    created_at: datetime

class WebhookAck(BaseModel):
    received: bool = True
    duplicate: bool = False


# ============================================================
# GENERIC SCHEMAS
# ============================================================

class MessageResponse(BaseModel):
    message: str
    success: bool = True

class CreatedResponse(BaseModel):
    message: str
    id: int
    success: bool = True

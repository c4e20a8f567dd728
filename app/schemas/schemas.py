"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.
"""

import re
from pydantic import (
    AliasChoices, AfterValidator, BaseModel, ConfigDict, EmailStr, Field,
    field_validator, model_validator
)
from typing import Optional, List, Any, Dict, Literal, Annotated
from datetime import datetime, date, timezone
from enum import Enum


def as_naive_utc(value: datetime) -> datetime:
    # Stored datetimes are naive UTC, like everything pymongo hands back
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


UTCDateTime = Annotated[datetime, AfterValidator(as_naive_utc)]

TIME_PATTERN = r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$"
URL_PATTERN = r"^https?://.+"
PHONE_PATTERN = r"^[0-9]{10}$"


def minutes_of(hhmm: str) -> int:
    hours, minutes = hhmm.split(":")
    return int(hours) * 60 + int(minutes)


def normalize_roll_number(value: str) -> str:
    value = value.strip().upper()
    if not re.match(r"^[A-Z0-9]+$", value):
        raise ValueError("Roll number can only contain letters and numbers")
    return value


# ============================================================
# ENUMS
# ============================================================

class UserRole(str, Enum):
    admin = "admin"
    recruiter = "recruiter"
    student = "student"


class Branch(str, Enum):
    computer_science = "Computer Science"
    information_technology = "Information Technology"
    electronics = "Electronics and Communication"
    electrical = "Electrical Engineering"
    mechanical = "Mechanical Engineering"
    civil = "Civil Engineering"
    chemical = "Chemical Engineering"
    biotechnology = "Biotechnology"
    other = "Other"


class Industry(str, Enum):
    information_technology = "Information Technology"
    software_development = "Software Development"
    consulting = "Consulting"
    banking = "Banking and Finance"
    manufacturing = "Manufacturing"
    healthcare = "Healthcare"
    education = "Education"
    ecommerce = "E-commerce"
    telecom = "Telecommunications"
    automotive = "Automotive"
    other = "Other"


class OpportunityIndustry(str, Enum):
    information_technology = "Information Technology"
    software_development = "Software Development"
    consulting = "Consulting"
    banking = "Banking and Finance"
    manufacturing = "Manufacturing"
    healthcare = "Healthcare"
    education = "Education"
    ecommerce = "E-commerce"
    telecom = "Telecommunications"
    automotive = "Automotive"
    marketing = "Marketing"
    design = "Design"
    other = "Other"


class CompanyStatus(str, Enum):
    active = "active"
    inactive = "inactive"
    completed = "completed"


class ApplicationStatus(str, Enum):
    submitted = "submitted"
    under_review = "under-review"
    shortlisted = "shortlisted"
    rejected = "rejected"
    selected = "selected"


class ReviewType(str, Enum):
    status_change = "status_change"
    score_update = "score_update"
    both = "both"


class RoundStatus(str, Enum):
    upcoming = "upcoming"
    ongoing = "ongoing"
    completed = "completed"
    cancelled = "cancelled"


class RoundType(str, Enum):
    online_test = "online_test"
    technical_interview = "technical_interview"
    hr_interview = "hr_interview"
    group_discussion = "group_discussion"
    aptitude_test = "aptitude_test"
    case_study = "case_study"
    coding_challenge = "coding_challenge"
    behavioral_interview = "behavioral_interview"
    final_interview = "final_interview"


class OpportunityType(str, Enum):
    internship = "internship"
    full_time = "full-time"
    freelance = "freelance"
    remote = "remote"
    part_time = "part-time"


class ExperienceLevel(str, Enum):
    fresher = "fresher"
    experienced = "experienced"
    any = "any"


class NotificationType(str, Enum):
    application_status = "application_status"
    new_company = "new_company"
    deadline_reminder = "deadline_reminder"
    system_update = "system_update"


class RecipientType(str, Enum):
    student = "student"
    user = "user"


class BulkAction(str, Enum):
    shortlist = "shortlist"
    reject = "reject"
    select = "select"


class AnalyticsPeriod(str, Enum):
    week = "week"
    month = "month"
    quarter = "quarter"
    year = "year"


class RecruiterPeriod(str, Enum):
    d7 = "7d"
    d30 = "30d"
    d90 = "90d"
    y1 = "1y"


# ============================================================
# COMMON
# ============================================================

class Schema(BaseModel):
    """Request bodies store enum values as plain strings."""
    model_config = ConfigDict(use_enum_values=True)


class APIResponse(BaseModel):
    """Uniform response envelope."""
    success: bool = True
    message: Optional[str] = None
    data: Optional[Any] = None


# ============================================================
# USER SCHEMAS
# ============================================================

class UserCreate(Schema):
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: UserRole = UserRole.student
    company_id: Optional[str] = None
    is_active: bool = True

    @model_validator(mode="after")
    def recruiter_needs_company(self):
        if self.role == UserRole.recruiter and not self.company_id:
            raise ValueError("Company ID is required for recruiters")
        return self


class UserUpdate(Schema):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    email: Optional[EmailStr] = None
    role: Optional[UserRole] = None
    company_id: Optional[str] = None
    is_active: Optional[bool] = None


# ============================================================
# STUDENT SCHEMAS
# ============================================================

class StudentCreate(Schema):
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    password: Optional[str] = Field(None, min_length=6)
    roll_number: str = Field(..., min_length=1, max_length=20)
    branch: Branch
    cgpa: float = Field(..., ge=0, le=10)
    phone: str = Field(..., pattern=PHONE_PATTERN)
    batch: int = Field(..., ge=2000, le=2030)
    backlogs: int = Field(0, ge=0)
    skills: List[str] = []
    resume_url: Optional[str] = None

    @field_validator("roll_number")
    @classmethod
    def normalize_roll_number(cls, v: str) -> str:
        return normalize_roll_number(v)

    @field_validator("skills")
    @classmethod
    def strip_skills(cls, v: List[str]) -> List[str]:
        return [s.strip() for s in v if s and s.strip()]


class StudentUpdate(Schema):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    skills: Optional[List[str]] = None
    roll_number: Optional[str] = None
    branch: Optional[Branch] = None
    cgpa: Optional[float] = Field(None, ge=0, le=10)
    batch: Optional[int] = Field(None, ge=2000, le=2030)
    backlogs: Optional[int] = Field(None, ge=0)
    resume_url: Optional[str] = None
    placed: Optional[bool] = None
    placed_company: Optional[str] = None
    package: Optional[str] = None

    @field_validator("roll_number")
    @classmethod
    def normalize_roll_number(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return normalize_roll_number(v)


class StudentBulkRequest(Schema):
    students: List[Dict[str, Any]] = Field(..., min_length=1)


# ============================================================
# COMPANY SCHEMAS
# ============================================================

class EligibilityCriteria(Schema):
    min_cgpa: Optional[float] = Field(None, ge=0, le=10)
    max_backlogs: Optional[int] = Field(None, ge=0)
    eligible_branches: List[Branch] = Field(
        default_factory=list,
        validation_alias=AliasChoices("eligible_branches", "allowed_branches")
    )
    allowed_batches: List[int] = []
    allow_placed: bool = False


class RecruitmentStep(Schema):
    round_name: str
    description: Optional[str] = None
    duration: Optional[str] = None


class CompanyCreate(Schema):
    name: str = Field(..., min_length=2, max_length=200)
    description: str = Field(..., min_length=1, max_length=2000)
    industry: Industry
    location: str = Field(..., min_length=1)
    package_offered: str = Field(..., min_length=1)
    total_positions: int = Field(..., ge=1)
    application_deadline: UTCDateTime
    status: CompanyStatus = CompanyStatus.active
    requirements: List[str] = []
    skills: List[str] = []
    job_description: Optional[str] = Field(None, max_length=5000)
    eligibility_criteria: EligibilityCriteria = Field(default_factory=EligibilityCriteria)
    recruitment_process: List[RecruitmentStep] = []
    website: Optional[str] = Field(None, pattern=URL_PATTERN)
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = None
    logo_url: Optional[str] = None


class CompanyUpdate(Schema):
    name: Optional[str] = Field(None, min_length=2, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    industry: Optional[Industry] = None
    location: Optional[str] = None
    package_offered: Optional[str] = None
    total_positions: Optional[int] = Field(None, ge=1)
    application_deadline: Optional[UTCDateTime] = None
    status: Optional[CompanyStatus] = None
    requirements: Optional[List[str]] = None
    skills: Optional[List[str]] = None
    job_description: Optional[str] = Field(None, max_length=5000)
    eligibility_criteria: Optional[EligibilityCriteria] = None
    recruitment_process: Optional[List[RecruitmentStep]] = None
    website: Optional[str] = Field(None, pattern=URL_PATTERN)
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = None
    logo_url: Optional[str] = None


# ============================================================
# APPLICATION SCHEMAS
# ============================================================

class ApplicationCreate(Schema):
    company_id: str
    student_id: Optional[str] = None
    resume_url: Optional[str] = None
    form_data: Dict[str, Any] = {}


class StatusUpdate(Schema):
    status: ApplicationStatus
    notes: Optional[str] = Field(None, max_length=1000)
    score: Optional[float] = Field(None, ge=0, le=100)


class ScoreUpdate(Schema):
    score: float = Field(..., ge=0, le=100)
    notes: Optional[str] = Field(None, max_length=1000)


class BulkStatusUpdate(Schema):
    application_ids: List[str] = Field(..., min_length=1)
    status: ApplicationStatus
    notes: Optional[str] = Field(None, max_length=1000)


class BulkActionRequest(Schema):
    application_ids: List[str] = Field(..., min_length=1)
    action: BulkAction
    notes: Optional[str] = Field(None, max_length=1000)


# ============================================================
# APPLICATION WINDOW SCHEMAS
# ============================================================

class WindowCreate(Schema):
    company_id: str
    start_date: date
    end_date: date
    start_time: str = Field("09:00", pattern=TIME_PATTERN)
    end_time: str = Field("17:00", pattern=TIME_PATTERN)
    min_cgpa: Optional[float] = Field(None, ge=0, le=10)
    max_backlogs: int = Field(0, ge=0)
    eligible_branches: List[Branch] = []
    passing_year: Optional[int] = Field(None, ge=2000, le=2030)
    is_active: bool = True
    description: Optional[str] = Field(None, max_length=1000)

    @model_validator(mode="after")
    def end_after_start(self):
        if self.end_date < self.start_date:
            raise ValueError("End date must be after start date")
        if self.end_date == self.start_date and minutes_of(self.end_time) <= minutes_of(self.start_time):
            raise ValueError("End time must be after start time")
        return self


class WindowUpdate(Schema):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    start_time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    end_time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    min_cgpa: Optional[float] = Field(None, ge=0, le=10)
    max_backlogs: Optional[int] = Field(None, ge=0)
    eligible_branches: Optional[List[Branch]] = None
    passing_year: Optional[int] = Field(None, ge=2000, le=2030)
    is_active: Optional[bool] = None
    description: Optional[str] = Field(None, max_length=1000)


# ============================================================
# OFF-CAMPUS OPPORTUNITY SCHEMAS
# ============================================================

class OpportunityCreate(Schema):
    title: str = Field(..., min_length=2, max_length=200)
    company: str = Field(..., min_length=1, max_length=200)
    company_logo_url: Optional[str] = None
    type: OpportunityType
    location: str = Field(..., min_length=1)
    is_remote: bool = False
    duration: Optional[str] = None
    stipend: Optional[str] = None
    salary: Optional[str] = None
    description: str = Field(..., min_length=1, max_length=5000)
    requirements: List[str] = []
    skills: List[str] = []
    application_deadline: UTCDateTime
    application_link: str = Field(..., pattern=URL_PATTERN)
    industry: OpportunityIndustry = OpportunityIndustry.other
    experience: ExperienceLevel = ExperienceLevel.any
    min_experience: int = Field(0, ge=0)
    max_experience: Optional[int] = Field(None, ge=0)
    tags: List[str] = []
    is_active: bool = True

    @model_validator(mode="after")
    def experience_range(self):
        if self.max_experience is not None and self.min_experience > self.max_experience:
            raise ValueError("Minimum experience cannot be greater than maximum experience")
        return self


class OpportunityUpdate(Schema):
    title: Optional[str] = Field(None, min_length=2, max_length=200)
    company: Optional[str] = Field(None, max_length=200)
    company_logo_url: Optional[str] = None
    type: Optional[OpportunityType] = None
    location: Optional[str] = None
    is_remote: Optional[bool] = None
    duration: Optional[str] = None
    stipend: Optional[str] = None
    salary: Optional[str] = None
    description: Optional[str] = Field(None, max_length=5000)
    requirements: Optional[List[str]] = None
    skills: Optional[List[str]] = None
    application_deadline: Optional[UTCDateTime] = None
    application_link: Optional[str] = Field(None, pattern=URL_PATTERN)
    industry: Optional[OpportunityIndustry] = None
    experience: Optional[ExperienceLevel] = None
    min_experience: Optional[int] = Field(None, ge=0)
    max_experience: Optional[int] = Field(None, ge=0)
    tags: Optional[List[str]] = None
    is_active: Optional[bool] = None


# ============================================================
# RECRUITMENT ROUND SCHEMAS
# ============================================================

class EvaluationCriterion(Schema):
    name: str
    weight: float = Field(..., ge=0, le=100)
    description: Optional[str] = None


class RoundCreate(Schema):
    company_id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=100)
    type: Optional[RoundType] = None
    description: Optional[str] = Field(None, max_length=1000)
    round_number: Optional[int] = Field(None, ge=1)
    scheduled_date: UTCDateTime
    status: RoundStatus = RoundStatus.upcoming
    duration: Optional[str] = None
    location: Optional[str] = None
    is_online: bool = False
    meeting_link: Optional[str] = None
    instructions: Optional[str] = None
    max_candidates: Optional[int] = Field(None, ge=1)
    max_score: float = Field(100, ge=1)
    passing_score: Optional[float] = Field(None, ge=0)
    required_documents: List[str] = []
    evaluation_criteria: List[EvaluationCriterion] = []

    @model_validator(mode="after")
    def passing_within_max(self):
        if self.passing_score is not None and self.passing_score > self.max_score:
            raise ValueError("Passing score cannot be greater than max score")
        return self


class RoundUpdate(Schema):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    type: Optional[RoundType] = None
    description: Optional[str] = Field(None, max_length=1000)
    scheduled_date: Optional[UTCDateTime] = None
    status: Optional[RoundStatus] = None
    duration: Optional[str] = None
    location: Optional[str] = None
    is_online: Optional[bool] = None
    meeting_link: Optional[str] = None
    instructions: Optional[str] = None
    max_candidates: Optional[int] = Field(None, ge=1)
    max_score: Optional[float] = Field(None, ge=1)
    passing_score: Optional[float] = Field(None, ge=0)
    required_documents: Optional[List[str]] = None
    evaluation_criteria: Optional[List[EvaluationCriterion]] = None
    is_active: Optional[bool] = None


class RoundReorder(Schema):
    new_sequence: int = Field(..., ge=1)


class RoundStatusUpdate(Schema):
    status: RoundStatus


class RoundCandidateAdd(Schema):
    application_id: str


# ============================================================
# ELIGIBILITY SCHEMAS
# ============================================================

class EligibilityCheckRequest(Schema):
    student_id: str
    company_id: str


class BulkEligibilityRequest(Schema):
    student_ids: List[str] = Field(..., min_length=1, max_length=50)
    company_ids: List[str] = Field(..., min_length=1, max_length=20)


# ============================================================
# NOTIFICATION SCHEMAS
# ============================================================

class NotificationCreate(Schema):
    recipient_id: str
    recipient_type: RecipientType = RecipientType.student
    type: NotificationType
    message: str = Field(..., min_length=1, max_length=500)
    metadata: Dict[str, Any] = {}


class MarkReadRequest(Schema):
    notification_ids: List[str] = []
    mark_all: bool = False


class ApplicationUpdateNotice(Schema):
    application_id: str
    status: ApplicationStatus


# ============================================================
# SEARCH SCHEMAS
# ============================================================

class AdvancedSearchRequest(Schema):
    entity: Literal["students", "companies", "opportunities", "applications"]
    filters: Dict[str, Any] = {}
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=100)
    sort_by: str = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"

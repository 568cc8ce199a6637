"""
Pydantic Schemas - Records and Request/Response Validation

Record models (AlumniRecord, JobRecord, ApplicationRecord) are what the
eligibility core reads. They are built from database rows by the
repositories and are fully populated before evaluation (no lazy joins).
"""

from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, List, FrozenSet, Union
from datetime import datetime
from enum import Enum


# ============================================================
# ENUMS
# ============================================================

class UserRole(str, Enum):
    alumni = "alumni"
    admin = "admin"


class JobCategory(str, Enum):
    internship = "Internship"
    fte = "FTE"


class Classification(str, Enum):
    """FTE job tiers. Meaningful only for FTE jobs."""
    none = "none"
    A2 = "A2"
    A1 = "A1"
    X = "X"


class PlacedStatus(str, Enum):
    """Off-campus placement declared on the alumni record."""
    placed_x = "placed_x"
    placed_a1 = "placed_a1"
    placed_a2 = "placed_a2"


class ApprovalStatus(str, Enum):
    approved = "approved"
    pending = "pending"
    rejected = "rejected"


class JobStatus(str, Enum):
    open = "open"
    ongoing = "ongoing"
    results_declared = "results_declared"
    abandoned = "abandoned"


class ApplicationStatus(str, Enum):
    applied = "applied"
    selected = "selected"
    rejected = "rejected"


# ============================================================
# RECORDS (read by the eligibility core)
# ============================================================

class Course(BaseModel):
    id: int
    name: Optional[str] = None


class AlumniRecord(BaseModel):
    # Mandatory for evaluation, but nullable here so that a half-populated
    # record reaches the evaluator and fails there with InvalidInputError.
    id: Optional[int] = None
    roll: Optional[str] = None
    name: Optional[str] = None
    X_marks: Optional[float] = None
    XII_marks: Optional[float] = None
    cpi: Optional[float] = None
    registered_for: Optional[JobCategory] = None

    category: str = "normal"
    pwd: bool = False
    gender: Optional[str] = None
    course: Optional[Course] = None

    placed_status: Optional[PlacedStatus] = None
    # Raw value; only meaningful when placed off-campus. Parsed by the evaluator.
    placed_status_updated: Optional[Union[datetime, str]] = None
    internship_status: bool = False

    approved: ApprovalStatus = ApprovalStatus.pending


class JobRecord(BaseModel):
    id: int
    company_name: Optional[str] = None
    job_title: Optional[str] = None

    approval_status: ApprovalStatus = ApprovalStatus.pending
    job_status: JobStatus = JobStatus.open

    min_X_marks: float = 0
    min_XII_marks: float = 0
    min_cpi: float = 0

    category: JobCategory
    classification: Classification = Classification.none

    # Empty set means every course is eligible
    eligible_courses: FrozenSet[int] = frozenset()

    only_for_ews: bool = False
    only_for_pwd: bool = False
    only_for_female: bool = False

    # Kept raw: a malformed date must not reject the record at ingestion
    start_date: Optional[Union[datetime, str]] = None
    last_date: Optional[Union[datetime, str]] = None

    @field_validator("eligible_courses", mode="before")
    @classmethod
    def parse_eligible_courses(cls, value):
        """Accept "1, 2,5" style strings (as stored) as well as iterables."""
        if value is None:
            return frozenset()
        if isinstance(value, str):
            value = value.split(",")
        return frozenset(int(str(v).strip()) for v in value if str(v).strip())

    @field_validator("classification", mode="before")
    @classmethod
    def default_classification(cls, value):
        return value or Classification.none


class ApplicationRecord(BaseModel):
    id: int
    alumni_id: Optional[int] = None
    status: ApplicationStatus = ApplicationStatus.applied
    created_at: datetime
    job: JobRecord


# ============================================================
# AUTH SCHEMAS
# ============================================================

class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: int
    role: str

class UserResponse(BaseModel):
    user_id: int
    email: str
    role: str
    is_active: bool
    created_at: datetime


# ============================================================
# ALUMNI SCHEMAS
# ============================================================

class AlumniProfileResponse(BaseModel):
    alumni_id: int
    roll: str
    name: Optional[str] = None
    course: Optional[str] = None
    registered_for: Optional[str] = None
    X_marks: Optional[float] = None
    XII_marks: Optional[float] = None
    cpi: Optional[float] = None
    category: str
    gender: Optional[str] = None
    pwd: bool = False
    placed_status: Optional[str] = None
    internship_status: bool = False
    approved: str


# ============================================================
# JOB / APPLICATION SCHEMAS
# ============================================================

class JobResponse(BaseModel):
    job_id: int
    company_name: Optional[str] = None
    job_title: Optional[str] = None
    category: str
    classification: str
    job_status: str
    min_X_marks: float
    min_XII_marks: float
    min_cpi: float
    start_date: Optional[Union[datetime, str]] = None
    last_date: Optional[Union[datetime, str]] = None

    @classmethod
    def from_record(cls, job: JobRecord) -> "JobResponse":
        return cls(
            job_id=job.id, company_name=job.company_name, job_title=job.job_title,
            category=job.category.value, classification=job.classification.value,
            job_status=job.job_status.value, min_X_marks=job.min_X_marks,
            min_XII_marks=job.min_XII_marks, min_cpi=job.min_cpi,
            start_date=job.start_date, last_date=job.last_date
        )

class JobListResponse(BaseModel):
    jobs: List[JobResponse]
    total: int

class AppliedJobResponse(BaseModel):
    application_id: int
    alumni_id: int
    roll: str
    status: str
    created_at: datetime
    job_id: int
    job_title: Optional[str] = None
    company_id: Optional[int] = None
    company_name: Optional[str] = None
    category: str
    classification: str
    job_status: str
    jaf: Optional[str] = None

class EligibilityResponse(BaseModel):
    roll: str
    job_id: int
    eligible: bool
    reason: Optional[str] = None


# ============================================================
# GENERIC SCHEMAS
# ============================================================

class MessageResponse(BaseModel):
    message: str
    success: bool = True

class ErrorResponse(BaseModel):
    detail: str

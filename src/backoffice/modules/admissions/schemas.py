"""
Admissions Schemas

Pydantic schemas for request validation and response serialization.

The public form posts three JSON sections (``studentInfo``, ``contactInfo``,
``academicInfo``). They are validated together as one ``ApplicationCreate`` so
every violation is reported at once, named by its dotted wire path
(``studentInfo.birthDate``).
"""

import re
from datetime import UTC, date, datetime
from typing import Literal
from uuid import UUID

from pydantic import EmailStr, Field, field_validator

from backoffice.modules.admissions.models import (
    Application,
    ApplicationStatus,
    DocumentKind,
    Gender,
    GradeLevel,
    LanguageProficiency,
)
from backoffice.modules.shared import CamelModel, Pagination

PHONE_PATTERN = re.compile(r"^[0-9+\-() ]{7,20}$")
MIN_PHONE_DIGITS = 7


# ============================================
# Submission
# ============================================


class StudentInfo(CamelModel):
    """Student identity and demographics."""

    first_name: str = Field(..., min_length=2, max_length=50)
    last_name: str = Field(..., min_length=2, max_length=50)
    birth_date: date
    gender: Gender
    nationality: str = Field(..., min_length=2, max_length=50)

    @field_validator("birth_date")
    @classmethod
    def birth_date_not_in_future(cls, value: date) -> date:
        if value > datetime.now(UTC).date():
            raise ValueError("Birth date cannot be in the future")
        return value


class ContactInfo(CamelModel):
    """Parent or guardian contact details."""

    parent_name: str = Field(..., min_length=2, max_length=100)
    parent_email: EmailStr
    parent_phone: str
    address: str = Field(..., min_length=10, max_length=200)
    city: str = Field(..., min_length=2, max_length=50)

    @field_validator("parent_email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.lower()

    @field_validator("parent_phone")
    @classmethod
    def validate_phone(cls, value: str) -> str:
        if not PHONE_PATTERN.match(value):
            raise ValueError("Phone number must be 7-20 characters of digits, spaces, +, -, ( or )")
        if sum(ch.isdigit() for ch in value) < MIN_PHONE_DIGITS:
            raise ValueError(f"Phone number must contain at least {MIN_PHONE_DIGITS} digits")
        return value


class AcademicInfo(CamelModel):
    """Requested placement and background."""

    grade_level: GradeLevel
    previous_school: str = Field(..., min_length=2, max_length=100)
    language_proficiency: LanguageProficiency
    special_needs: str | None = Field(None, max_length=500)


class ApplicationCreate(CamelModel):
    """The three form sections of a public submission."""

    student_info: StudentInfo
    contact_info: ContactInfo
    academic_info: AcademicInfo


class ApplicationReceipt(CamelModel):
    """
    What an anonymous submitter gets back.

    Deliberately excludes everything they sent us.
    """

    id: UUID
    application_number: str
    status: ApplicationStatus
    submitted_at: datetime


class ApplicationReceiptResponse(CamelModel):
    success: bool = True
    message: str = "Application submitted successfully"
    data: ApplicationReceipt


# ============================================
# Staff views
# ============================================


class ApplicationListItem(CamelModel):
    """Application summary for the staff list. Omits documents and contact details."""

    id: UUID
    application_number: str
    first_name: str
    last_name: str
    grade_level: GradeLevel
    parent_name: str
    parent_email: str
    status: ApplicationStatus
    submitted_at: datetime
    reviewed_at: datetime | None = None


class ApplicationListResponse(CamelModel):
    success: bool = True
    data: list[ApplicationListItem]
    pagination: Pagination


class ApplicationDetail(CamelModel):
    """Complete application for staff review."""

    id: UUID
    application_number: str
    student_info: StudentInfo
    contact_info: ContactInfo
    academic_info: AcademicInfo
    documents: dict[str, str] = Field(
        default_factory=dict,
        description="Attached document kinds mapped to their download path",
    )
    status: ApplicationStatus
    notes: str | None = None
    reviewed_by: UUID | None = None
    reviewed_at: datetime | None = None
    submitted_at: datetime
    ip_address: str | None = None
    user_agent: str | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, application: Application, download_base: str) -> "ApplicationDetail":
        """Build the nested view from the flat ORM row."""
        return cls(
            id=application.id,
            application_number=application.application_number,
            student_info=StudentInfo(
                first_name=application.first_name,
                last_name=application.last_name,
                birth_date=application.birth_date,
                gender=application.gender,
                nationality=application.nationality,
            ),
            contact_info=ContactInfo(
                parent_name=application.parent_name,
                parent_email=application.parent_email,
                parent_phone=application.parent_phone,
                address=application.address,
                city=application.city,
            ),
            academic_info=AcademicInfo(
                grade_level=application.grade_level,
                previous_school=application.previous_school,
                language_proficiency=application.language_proficiency,
                special_needs=application.special_needs,
            ),
            documents={
                kind: f"{download_base}/{application.id}/documents/{kind}"
                for kind in sorted(application.documents or {})
            },
            status=application.status,
            notes=application.notes,
            reviewed_by=application.reviewed_by,
            reviewed_at=application.reviewed_at,
            submitted_at=application.submitted_at,
            ip_address=application.ip_address,
            user_agent=application.user_agent,
            created_at=application.created_at,
            updated_at=application.updated_at,
        )


class ApplicationDetailResponse(CamelModel):
    success: bool = True
    data: ApplicationDetail


class StatusUpdateRequest(CamelModel):
    """Request body for PATCH /admin/applications/{id}/status."""

    status: ApplicationStatus
    notes: str | None = Field(None, max_length=1000)


class ApplicationFilters(CamelModel):
    """Query options for the staff list."""

    status: ApplicationStatus | None = None
    grade_level: GradeLevel | None = None
    search: str | None = Field(None, max_length=100)
    sort_by: Literal["submittedAt", "createdAt", "applicationNumber", "lastName"] = "submittedAt"
    sort_order: Literal["asc", "desc"] = "desc"
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)


class MonthlyCount(CamelModel):
    month: int = Field(..., ge=1, le=12)
    count: int


class ApplicationStats(CamelModel):
    """Dashboard counts."""

    total: int
    by_status: dict[str, int]
    by_grade: dict[str, int]
    monthly: list[MonthlyCount]
    year: int


class ApplicationStatsResponse(CamelModel):
    success: bool = True
    data: ApplicationStats


__all__ = [
    "AcademicInfo",
    "ApplicationCreate",
    "ApplicationDetail",
    "ApplicationDetailResponse",
    "ApplicationFilters",
    "ApplicationListItem",
    "ApplicationListResponse",
    "ApplicationReceipt",
    "ApplicationReceiptResponse",
    "ApplicationStats",
    "ApplicationStatsResponse",
    "ContactInfo",
    "DocumentKind",
    "MonthlyCount",
    "StatusUpdateRequest",
    "StudentInfo",
]

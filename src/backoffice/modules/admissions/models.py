"""
Admissions Models

Admission applications submitted by parents, and the counter row the
application numbers are allocated from.
"""

import enum
import uuid
from datetime import date, datetime

from sqlalchemy import (
    JSON,
    BigInteger,
    Date,
    DateTime,
    Enum,
    Index,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.core.database import Base
from backoffice.modules.shared import BaseModel


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class ApplicationStatus(str, enum.Enum):
    """Review status. Any value may follow any other."""

    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    WAITING_LIST = "waiting_list"


class Gender(str, enum.Enum):
    MALE = "male"
    FEMALE = "female"


class GradeLevel(str, enum.Enum):
    """Grade the student is applying for."""

    NURSERY = "nursery"
    PRIMARY1 = "primary1"
    PRIMARY2 = "primary2"
    PRIMARY3 = "primary3"
    PRIMARY4 = "primary4"
    PRIMARY5 = "primary5"
    MIDDLE1 = "middle1"
    MIDDLE2 = "middle2"
    MIDDLE3 = "middle3"
    MIDDLE4 = "middle4"
    HIGH1 = "high1"
    HIGH2 = "high2"
    HIGH3 = "high3"


class LanguageProficiency(str, enum.Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    FLUENT = "fluent"


class DocumentKind(str, enum.Enum):
    """Attachment slots. At most one file per kind."""

    BIRTH_CERTIFICATE = "birthCertificate"
    PREVIOUS_REPORTS = "previousReports"
    PHOTO = "photo"
    VACCINATION_CERTIFICATE = "vaccinationCertificate"
    TRANSFER_CERTIFICATE = "transferCertificate"


class Application(BaseModel):
    """
    Admission application.

    ``application_number`` is assigned once at creation from the
    ``application_sequences`` counter and never changes. The unique
    constraint on it is the backstop against a duplicate allocation.

    ``documents`` maps a DocumentKind value to a storage reference.
    """

    __tablename__ = "applications"

    application_number: Mapped[str] = mapped_column(String(9), nullable=False)

    # Student information
    first_name: Mapped[str] = mapped_column(String(50), nullable=False)
    last_name: Mapped[str] = mapped_column(String(50), nullable=False)
    birth_date: Mapped[date] = mapped_column(Date, nullable=False)
    gender: Mapped[Gender] = mapped_column(
        Enum(Gender, name="gender", values_callable=_enum_values), nullable=False
    )
    nationality: Mapped[str] = mapped_column(String(50), nullable=False)

    # Contact information
    parent_name: Mapped[str] = mapped_column(String(100), nullable=False)
    parent_email: Mapped[str] = mapped_column(String(255), nullable=False)
    parent_phone: Mapped[str] = mapped_column(String(20), nullable=False)
    address: Mapped[str] = mapped_column(String(200), nullable=False)
    city: Mapped[str] = mapped_column(String(50), nullable=False)

    # Academic information
    grade_level: Mapped[GradeLevel] = mapped_column(
        Enum(GradeLevel, name="grade_level", values_callable=_enum_values), nullable=False
    )
    previous_school: Mapped[str] = mapped_column(String(100), nullable=False)
    language_proficiency: Mapped[LanguageProficiency] = mapped_column(
        Enum(LanguageProficiency, name="language_proficiency", values_callable=_enum_values),
        nullable=False,
    )
    special_needs: Mapped[str | None] = mapped_column(String(500), nullable=True)

    documents: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    # Review
    status: Mapped[ApplicationStatus] = mapped_column(
        Enum(ApplicationStatus, name="application_status", values_callable=_enum_values),
        nullable=False,
        default=ApplicationStatus.SUBMITTED,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    reviewed_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Request provenance
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(500), nullable=True)

    __table_args__ = (
        UniqueConstraint("application_number", name="uq_applications_application_number"),
        Index("ix_applications_status", "status"),
        Index("ix_applications_grade_level", "grade_level"),
        Index("ix_applications_parent_email", "parent_email"),
        Index("ix_applications_submitted_at", "submitted_at"),
    )

    @property
    def student_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return f"<Application(id={self.id}, number={self.application_number}, status={self.status.value})>"


class ApplicationSequence(Base):
    """
    Named monotonic counter.

    ``value`` is the last number handed out. It only moves forward, so
    deleting applications never frees a number for reuse.
    """

    __tablename__ = "application_sequences"

    name: Mapped[str] = mapped_column(String(50), primary_key=True)
    value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

"""
Contact Message Models

Messages sent through the public contact form.
"""

import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.modules.shared import BaseModel


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class MessageStatus(str, enum.Enum):
    NEW = "new"
    READ = "read"
    REPLIED = "replied"
    ARCHIVED = "archived"


class MessagePriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class StudentGrade(str, enum.Enum):
    """Coarse grade band the enquiry is about."""

    PRESCHOOL = "preschool"
    PRIMARY = "primary"
    JHS = "jhs"
    SHS = "shs"
    OTHER = "other"


class InquiryType(str, enum.Enum):
    ADMISSION = "admission"
    INFORMATION = "information"
    VISIT = "visit"
    PARTNERSHIP = "partnership"
    OTHER = "other"


class ContactMessage(BaseModel):
    """A contact form submission and its triage state."""

    __tablename__ = "contact_messages"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    subject: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)

    student_grade: Mapped[StudentGrade] = mapped_column(
        Enum(StudentGrade, name="student_grade", values_callable=_enum_values), nullable=False
    )
    inquiry_type: Mapped[InquiryType] = mapped_column(
        Enum(InquiryType, name="inquiry_type", values_callable=_enum_values), nullable=False
    )

    status: Mapped[MessageStatus] = mapped_column(
        Enum(MessageStatus, name="message_status", values_callable=_enum_values),
        nullable=False,
        default=MessageStatus.NEW,
    )
    priority: Mapped[MessagePriority] = mapped_column(
        Enum(MessagePriority, name="message_priority", values_callable=_enum_values),
        nullable=False,
        default=MessagePriority.MEDIUM,
    )

    admin_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    reply_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    replied_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(500), nullable=True)

    __table_args__ = (
        Index("ix_contact_messages_status", "status"),
        Index("ix_contact_messages_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<ContactMessage(id={self.id}, status={self.status.value})>"

"""
Contact Message Schemas
"""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import EmailStr, Field, field_validator

from backoffice.modules.messages.models import (
    InquiryType,
    MessagePriority,
    MessageStatus,
    StudentGrade,
)
from backoffice.modules.shared import CamelModel, Pagination


class MessageCreate(CamelModel):
    """Public contact form."""

    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    phone: str | None = Field(None, max_length=20)
    subject: str = Field(..., min_length=5, max_length=200)
    message: str = Field(..., min_length=10, max_length=2000)
    student_grade: StudentGrade
    inquiry_type: InquiryType

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.lower()

    @field_validator("phone")
    @classmethod
    def blank_phone_is_none(cls, value: str | None) -> str | None:
        return value or None


class MessageOut(CamelModel):
    id: UUID
    name: str
    email: str
    phone: str | None = None
    subject: str
    message: str
    student_grade: StudentGrade
    inquiry_type: InquiryType
    status: MessageStatus
    priority: MessagePriority
    admin_notes: str | None = None
    reply_message: str | None = None
    replied_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class MessageCreatedResponse(CamelModel):
    success: bool = True
    message: str = "Message sent successfully"
    data: MessageOut


class MessageResponse(CamelModel):
    success: bool = True
    message: str | None = None
    data: MessageOut


class MessageListResponse(CamelModel):
    success: bool = True
    data: list[MessageOut]
    pagination: Pagination


class MessageFilters(CamelModel):
    status: MessageStatus | None = None
    inquiry_type: InquiryType | None = None
    priority: MessagePriority | None = None
    search: str | None = Field(None, max_length=100)
    sort_by: Literal["createdAt", "updatedAt", "priority", "status"] = "createdAt"
    sort_order: Literal["asc", "desc"] = "desc"
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)


class MessageStatusUpdate(CamelModel):
    """PATCH body. Fields left out are not changed."""

    status: MessageStatus | None = None
    priority: MessagePriority | None = None
    admin_notes: str | None = Field(None, max_length=1000)


class MessageReplyRequest(CamelModel):
    reply_message: str = Field(..., min_length=10, max_length=2000)


class MessageStats(CamelModel):
    total: int
    new: int
    read: int
    replied: int
    archived: int
    by_type: dict[str, int]
    by_priority: dict[str, int]


class MessageStatsResponse(CamelModel):
    success: bool = True
    data: MessageStats


class DeleteResponse(CamelModel):
    success: bool = True
    message: str = "Message deleted successfully"

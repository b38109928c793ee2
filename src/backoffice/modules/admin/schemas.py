"""
Staff Dashboard and Profile Schemas
"""

from datetime import datetime
from uuid import UUID

from pydantic import Field, model_validator

from backoffice.modules.admissions.schemas import ApplicationListItem
from backoffice.modules.messages.models import MessageStatus
from backoffice.modules.shared import CamelModel
from backoffice.modules.users.models import StaffRole


class MessageCounts(CamelModel):
    total: int
    new: int
    by_status: dict[str, int]
    by_type: dict[str, int]


class ApplicationCounts(CamelModel):
    total: int
    pending: int = Field(..., description="Applications still in 'submitted'")
    by_status: dict[str, int]
    by_grade: dict[str, int]


class RecentMessage(CamelModel):
    id: UUID
    name: str
    email: str
    subject: str
    status: MessageStatus
    created_at: datetime


class Dashboard(CamelModel):
    messages: MessageCounts
    applications: ApplicationCounts
    recent_messages: list[RecentMessage]
    recent_applications: list[ApplicationListItem]


class DashboardResponse(CamelModel):
    success: bool = True
    data: Dashboard


class Profile(CamelModel):
    id: UUID
    email: str
    name: str
    role: StaffRole
    is_active: bool
    last_login_at: datetime | None = None
    created_at: datetime


class ProfileResponse(CamelModel):
    success: bool = True
    message: str | None = None
    data: Profile


class ProfileUpdate(CamelModel):
    """
    PUT body. Changing the password needs the current one as well.
    """

    name: str | None = Field(None, min_length=2, max_length=100)
    current_password: str | None = Field(None, min_length=1, max_length=128)
    new_password: str | None = Field(None, min_length=8, max_length=128)

    @model_validator(mode="after")
    def something_to_change(self) -> "ProfileUpdate":
        if self.name is None and self.new_password is None:
            raise ValueError("Provide a new name or a new password")
        return self

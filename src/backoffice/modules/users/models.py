"""
User Models

Staff accounts that can sign in to the back office.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, String, Text
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.modules.shared import BaseModel


class StaffRole(str, Enum):
    """Staff roles. Both may use the staff endpoints."""

    ADMIN = "admin"
    STAFF = "staff"


class StaffUserAccount(BaseModel):
    """A back-office login."""

    __tablename__ = "staff_users"

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)

    role: Mapped[StaffRole] = mapped_column(
        SAEnum(
            StaffRole,
            name="staff_role",
            values_callable=lambda roles: [role.value for role in roles],
        ),
        nullable=False,
        default=StaffRole.STAFF,
    )

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<StaffUserAccount(id={self.id}, email={self.email}, role={self.role.value})>"

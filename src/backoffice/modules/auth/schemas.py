"""Authentication schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class LoginRequest(BaseModel):
    """Login request schema."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)


class StaffProfile(BaseModel):
    """The signed-in staff member."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    name: str | None = None
    role: str
    last_login_at: datetime | None = None


class LoginResponse(BaseModel):
    """Login response schema."""

    success: bool = True
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: StaffProfile


class MeResponse(BaseModel):
    success: bool = True
    user: StaffProfile

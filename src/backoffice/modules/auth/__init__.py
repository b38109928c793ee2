"""Authentication module."""

from backoffice.modules.auth.router import router
from backoffice.modules.auth.schemas import LoginRequest, LoginResponse, StaffProfile

__all__ = ["router", "LoginRequest", "LoginResponse", "StaffProfile"]

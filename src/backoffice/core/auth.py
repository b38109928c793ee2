"""
Authentication and Authorization Module

Provides authentication dependencies for FastAPI endpoints.
This module handles JWT token validation and role-based access control
using the security utilities defined in security.py.

Staff tokens carry the user's id in ``sub`` plus ``email``, ``role`` and
``name`` claims, so the dependencies here never touch the database.
"""

import logging
from dataclasses import dataclass
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from backoffice.core.security import decode_token

logger = logging.getLogger(__name__)

STAFF_ROLES = frozenset({"admin", "staff"})

# Security scheme for OpenAPI documentation. auto_error is off so a missing
# header produces the same 401 envelope as a bad token.
security = HTTPBearer(
    auto_error=False,
    description="JWT Bearer token for authentication",
)


@dataclass
class StaffUser:
    """
    Represents an authenticated staff member.

    Populated from JWT claims after token validation.

    Attributes:
        id: User's unique identifier (UUID)
        email: User's email address
        role: 'admin' or 'staff'
        name: User's display name (optional)
    """

    id: UUID
    email: str
    role: str
    name: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def __str__(self) -> str:
        return f"StaffUser(id={self.id}, email={self.email}, role={self.role})"


def _unauthorized(error: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error": error, "message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )


def validate_access_token(token: str) -> StaffUser:
    """
    Validate JWT token and extract user claims.

    Args:
        token: JWT token string from Authorization header

    Returns:
        StaffUser built from the token claims

    Raises:
        HTTPException 401: If token is invalid, expired, or not an access token
    """
    payload = decode_token(token)

    if payload is None:
        logger.warning("Invalid or expired JWT token")
        raise _unauthorized("INVALID_TOKEN", "Invalid or expired authentication token.")

    token_type = payload.get("type", "access")
    if token_type != "access":
        logger.warning(f"Invalid token type: {token_type}")
        raise _unauthorized("INVALID_TOKEN_TYPE", "This endpoint requires an access token.")

    try:
        user_id_str = payload.get("sub")
        if not user_id_str:
            raise ValueError("Missing 'sub' claim in token")

        return StaffUser(
            id=UUID(user_id_str),
            email=payload.get("email", ""),
            role=payload.get("role", ""),
            name=payload.get("name"),
        )
    except (ValueError, KeyError) as e:
        logger.warning(f"Invalid token claims: {e}")
        raise _unauthorized(
            "INVALID_TOKEN_CLAIMS", "Token contains invalid or missing claims."
        ) from e


async def get_current_staff_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> StaffUser:
    """
    FastAPI dependency that validates the bearer token and returns the staff user.

    Usage:
        @router.get("/admin/endpoint")
        async def admin_endpoint(
            staff: StaffUser = Depends(get_current_staff_user)
        ):
            ...

    Raises:
        HTTPException 401: If token is missing, invalid, or expired
        HTTPException 403: If the role is not a staff role
    """
    if credentials is None or not credentials.credentials:
        raise _unauthorized("NOT_AUTHENTICATED", "Authentication is required.")

    user = validate_access_token(credentials.credentials)

    if user.role not in STAFF_ROLES:
        logger.warning(f"Access denied: User {user.id} ({user.email}) has role '{user.role}'")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "error": "STAFF_ACCESS_REQUIRED",
                "message": "Staff access is required for this endpoint.",
            },
        )

    logger.debug(f"Authenticated staff user: {user.id} ({user.email})")
    return user


async def require_admin(
    user: StaffUser = Depends(get_current_staff_user),
) -> StaffUser:
    """Like get_current_staff_user, but only for the 'admin' role."""
    if not user.is_admin:
        logger.warning(f"Access denied: User {user.id} ({user.email}) is not an admin")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "error": "ADMIN_ACCESS_REQUIRED",
                "message": "Admin access is required for this endpoint.",
            },
        )
    return user


__all__ = [
    "STAFF_ROLES",
    "StaffUser",
    "get_current_staff_user",
    "require_admin",
    "validate_access_token",
]

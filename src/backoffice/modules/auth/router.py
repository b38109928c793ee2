"""Authentication router."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.auth import StaffUser, get_current_staff_user
from backoffice.core.config import settings
from backoffice.core.database import get_db
from backoffice.core.rate_limit import rate_limit
from backoffice.core.security import create_access_token, verify_password
from backoffice.modules.auth.schemas import LoginRequest, LoginResponse, MeResponse, StaffProfile
from backoffice.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

router = APIRouter()

INVALID_CREDENTIALS = {
    "error": "INVALID_CREDENTIALS",
    "message": "Invalid email or password.",
}


@router.post("/login", response_model=LoginResponse)
@rate_limit(limit=10, window_seconds=15 * 60)
async def login(
    request: Request,
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> LoginResponse:
    """
    Authenticate a staff member and return an access token.

    Raises:
        HTTPException 401: Invalid credentials
        HTTPException 403: Account deactivated
    """
    user = await UserRepository.get_by_email(db, credentials.email)

    if not user:
        logger.warning(f"Login attempt for non-existent email: {credentials.email}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=INVALID_CREDENTIALS)

    if not verify_password(credentials.password, user.password_hash):
        logger.warning(f"Invalid password for user: {credentials.email}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=INVALID_CREDENTIALS)

    if not user.is_active:
        logger.warning(f"Login attempt for inactive account: {credentials.email}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "error": "ACCOUNT_INACTIVE",
                "message": "Your account has been deactivated.",
            },
        )

    access_token = create_access_token(
        subject=str(user.id),
        additional_claims={
            "email": user.email,
            "role": user.role.value,
            "name": user.full_name,
        },
    )

    await UserRepository.record_login(db, user)
    logger.info(f"Staff user logged in: {user.email} (role: {user.role.value})")

    return LoginResponse(
        access_token=access_token,
        expires_in=settings.access_token_expire_minutes * 60,
        user=StaffProfile(
            id=str(user.id),
            email=user.email,
            name=user.full_name,
            role=user.role.value,
            last_login_at=user.last_login_at,
        ),
    )


@router.get("/me", response_model=MeResponse)
async def me(
    staff: StaffUser = Depends(get_current_staff_user),
    db: AsyncSession = Depends(get_db),
) -> MeResponse:
    """Return the profile behind the bearer token."""
    user = await UserRepository.get_by_id(db, staff.id)

    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error": "ACCOUNT_NOT_FOUND",
                "message": "This account no longer exists or has been deactivated.",
            },
            headers={"WWW-Authenticate": "Bearer"},
        )

    return MeResponse(
        user=StaffProfile(
            id=str(user.id),
            email=user.email,
            name=user.full_name,
            role=user.role.value,
            last_login_at=user.last_login_at,
        )
    )

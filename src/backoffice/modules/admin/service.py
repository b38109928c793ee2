"""
Staff Dashboard and Profile Service

- Dashboard: message and application counts plus the latest five of each,
  built from the messages and admissions repositories
- Profile: the signed-in staff member's own account, including a password
  change that requires the current password
"""

import logging

from fastapi import status
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.auth import StaffUser
from backoffice.core.exceptions import ServiceError
from backoffice.core.security import hash_password, verify_password
from backoffice.modules.admissions import repository as applications_repository
from backoffice.modules.admissions.models import ApplicationStatus
from backoffice.modules.messages import repository as messages_repository
from backoffice.modules.messages.models import MessageStatus
from backoffice.modules.users.models import StaffUserAccount
from backoffice.modules.users.repository import UserRepository

from .schemas import ProfileUpdate

logger = logging.getLogger(__name__)

RECENT_LIMIT = 5


class AccountNotFoundError(ServiceError):
    """The token is valid but its account is gone or deactivated."""

    def __init__(self):
        super().__init__(
            message="This account no longer exists or has been deactivated.",
            error_code="ACCOUNT_NOT_FOUND",
            status_code=status.HTTP_401_UNAUTHORIZED,
        )


class InvalidCurrentPasswordError(ServiceError):
    def __init__(self, message: str = "Current password is incorrect."):
        super().__init__(
            message=message,
            error_code="INVALID_CURRENT_PASSWORD",
            status_code=status.HTTP_400_BAD_REQUEST,
        )


async def get_dashboard(db: AsyncSession) -> dict:
    message_stats = await messages_repository.get_stats(db)
    application_stats = await applications_repository.get_stats(db)

    by_message_status = {member.value: message_stats[member.value] for member in MessageStatus}

    return {
        "messages": {
            "total": message_stats["total"],
            "new": message_stats[MessageStatus.NEW.value],
            "by_status": by_message_status,
            "by_type": message_stats["by_type"],
        },
        "applications": {
            "total": application_stats["total"],
            "pending": application_stats["by_status"][ApplicationStatus.SUBMITTED.value],
            "by_status": application_stats["by_status"],
            "by_grade": application_stats["by_grade"],
        },
        "recent_messages": await messages_repository.list_recent(db, RECENT_LIMIT),
        "recent_applications": await applications_repository.list_recent(db, RECENT_LIMIT),
    }


async def get_profile(db: AsyncSession, staff: StaffUser) -> StaffUserAccount:
    """
    Raises:
        AccountNotFoundError: If the account was deleted or deactivated
    """
    user = await UserRepository.get_by_id(db, staff.id)
    if not user or not user.is_active:
        logger.warning(f"Profile requested for missing or inactive account {staff.id}")
        raise AccountNotFoundError()
    return user


async def update_profile(
    db: AsyncSession,
    staff: StaffUser,
    update: ProfileUpdate,
) -> StaffUserAccount:
    """
    Change the staff member's name and/or password.

    Raises:
        AccountNotFoundError: If the account was deleted or deactivated
        InvalidCurrentPasswordError: If a new password is given without the
            correct current password
    """
    user = await get_profile(db, staff)

    password_hash = None
    if update.new_password is not None:
        if not update.current_password:
            raise InvalidCurrentPasswordError("Current password is required to set a new one.")
        if not verify_password(update.current_password, user.password_hash):
            logger.warning(f"Wrong current password on profile update for {user.id}")
            raise InvalidCurrentPasswordError()
        password_hash = hash_password(update.new_password)

    user = await UserRepository.update_profile(
        db, user, full_name=update.name, password_hash=password_hash
    )

    if password_hash:
        logger.info(f"AUDIT: Staff {user.id} changed their password")
    return user

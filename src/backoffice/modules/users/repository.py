"""
User Repository

Database operations for staff accounts.
"""

import logging
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.modules.users.models import StaffRole, StaffUserAccount

logger = logging.getLogger(__name__)


class UserRepository:
    """Repository for staff account database operations."""

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        email: str,
        password_hash: str,
        full_name: str,
        role: StaffRole = StaffRole.STAFF,
        is_active: bool = True,
    ) -> StaffUserAccount:
        """
        Create a new staff account.

        The email is stored lower-cased. The caller owns the transaction.
        """
        user = StaffUserAccount(
            email=email.lower(),
            password_hash=password_hash,
            full_name=full_name,
            role=role,
            is_active=is_active,
        )

        db.add(user)
        await db.flush()
        await db.refresh(user)

        logger.info(f"Created staff user: {user.id} - {user.email} ({user.role.value})")
        return user

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: UUID) -> StaffUserAccount | None:
        return await db.get(StaffUserAccount, user_id)

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> StaffUserAccount | None:
        result = await db.execute(
            select(StaffUserAccount).where(StaffUserAccount.email == email.lower())
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def update_profile(
        db: AsyncSession,
        user: StaffUserAccount,
        *,
        full_name: str | None = None,
        password_hash: str | None = None,
    ) -> StaffUserAccount:
        """Change the name and/or password hash and commit. None leaves a field alone."""
        if full_name is not None:
            user.full_name = full_name
        if password_hash is not None:
            user.password_hash = password_hash

        await db.commit()
        await db.refresh(user)

        logger.info(f"Updated staff user profile: {user.id}")
        return user

    @staticmethod
    async def record_login(db: AsyncSession, user: StaffUserAccount) -> None:
        """Stamp last_login_at and commit."""
        user.last_login_at = datetime.now(UTC)
        await db.commit()

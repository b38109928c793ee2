"""
Unit tests for the staff dashboard and profile service.
"""

from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from backoffice.core.auth import StaffUser
from backoffice.core.security import hash_password, verify_password
from backoffice.modules.admin.schemas import ProfileUpdate
from backoffice.modules.admin.service import (
    AccountNotFoundError,
    InvalidCurrentPasswordError,
    get_dashboard,
    update_profile,
)

SERVICE = "backoffice.modules.admin.service"


@pytest.fixture
def staff():
    return StaffUser(id=uuid4(), email="staff@school.org", role="staff", name="Staff")


@pytest.fixture
def account():
    user = MagicMock()
    user.id = uuid4()
    user.is_active = True
    user.password_hash = hash_password("old-password")
    return user


@pytest.mark.asyncio
async def test_dashboard_combines_both_modules(mock_db):
    message_stats = {
        "total": 4,
        "new": 3,
        "read": 1,
        "replied": 0,
        "archived": 0,
        "by_type": {"visit": 4},
        "by_priority": {"low": 0, "medium": 4, "high": 0},
    }
    application_stats = {
        "total": 2,
        "by_status": {"submitted": 1, "under_review": 1},
        "by_grade": {"nursery": 2},
        "monthly": [],
        "year": 2026,
    }

    with (
        patch(f"{SERVICE}.messages_repository") as messages_repo,
        patch(f"{SERVICE}.applications_repository") as applications_repo,
    ):
        messages_repo.get_stats = AsyncMock(return_value=message_stats)
        messages_repo.list_recent = AsyncMock(return_value=["m1"])
        applications_repo.get_stats = AsyncMock(return_value=application_stats)
        applications_repo.list_recent = AsyncMock(return_value=["a1"])

        dashboard = await get_dashboard(mock_db)

    assert dashboard["messages"]["new"] == 3
    assert dashboard["messages"]["by_status"] == {
        "new": 3,
        "read": 1,
        "replied": 0,
        "archived": 0,
    }
    assert dashboard["applications"]["pending"] == 1
    assert dashboard["recent_messages"] == ["m1"]
    messages_repo.list_recent.assert_awaited_once_with(mock_db, 5)
    applications_repo.list_recent.assert_awaited_once_with(mock_db, 5)


@pytest.mark.asyncio
async def test_rename_does_not_touch_password(mock_db, staff, account):
    with patch(f"{SERVICE}.UserRepository") as mock_repo:
        mock_repo.get_by_id = AsyncMock(return_value=account)
        mock_repo.update_profile = AsyncMock(return_value=account)

        await update_profile(mock_db, staff, ProfileUpdate(name="New Name"))

    mock_repo.update_profile.assert_awaited_once_with(
        mock_db, account, full_name="New Name", password_hash=None
    )


@pytest.mark.asyncio
async def test_password_change_stores_new_hash(mock_db, staff, account):
    with patch(f"{SERVICE}.UserRepository") as mock_repo:
        mock_repo.get_by_id = AsyncMock(return_value=account)
        mock_repo.update_profile = AsyncMock(return_value=account)

        await update_profile(
            mock_db,
            staff,
            ProfileUpdate(current_password="old-password", new_password="new-password-42"),
        )

    new_hash = mock_repo.update_profile.call_args.kwargs["password_hash"]
    assert verify_password("new-password-42", new_hash)


@pytest.mark.asyncio
async def test_wrong_current_password_changes_nothing(mock_db, staff, account):
    with patch(f"{SERVICE}.UserRepository") as mock_repo:
        mock_repo.get_by_id = AsyncMock(return_value=account)
        mock_repo.update_profile = AsyncMock()

        with pytest.raises(InvalidCurrentPasswordError) as exc_info:
            await update_profile(
                mock_db,
                staff,
                ProfileUpdate(current_password="guess", new_password="new-password-42"),
            )

    assert exc_info.value.status_code == 400
    mock_repo.update_profile.assert_not_awaited()


@pytest.mark.asyncio
async def test_inactive_account(mock_db, staff, account):
    account.is_active = False

    with patch(f"{SERVICE}.UserRepository") as mock_repo:
        mock_repo.get_by_id = AsyncMock(return_value=account)

        with pytest.raises(AccountNotFoundError) as exc_info:
            await update_profile(mock_db, staff, ProfileUpdate(name="New Name"))

    assert exc_info.value.status_code == 401

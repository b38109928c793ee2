"""
Tests for password hashing, access tokens and the staff auth dependencies.
"""

from uuid import uuid4

import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from backoffice.core.auth import get_current_staff_user, require_admin, validate_access_token
from backoffice.core.security import (
    create_access_token,
    decode_token,
    hash_password,
    verify_password,
)


class TestPasswords:
    def test_hash_and_verify(self):
        hashed = hash_password("correct horse battery")
        assert hashed != "correct horse battery"
        assert verify_password("correct horse battery", hashed)
        assert not verify_password("wrong password", hashed)

    def test_malformed_hash_is_rejected_not_raised(self):
        assert verify_password("anything", "not-a-bcrypt-hash") is False


class TestTokens:
    def test_round_trip_claims(self):
        user_id = uuid4()
        token = create_access_token(str(user_id), {"email": "a@school.org", "role": "staff"})

        payload = decode_token(token)

        assert payload["sub"] == str(user_id)
        assert payload["type"] == "access"
        assert payload["role"] == "staff"

    def test_expired_token_decodes_to_none(self):
        token = create_access_token(str(uuid4()), expires_minutes=-1)
        assert decode_token(token) is None

    def test_tampered_token_decodes_to_none(self):
        token = create_access_token(str(uuid4()))
        assert decode_token(token[:-2] + "xx") is None


def _credentials(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


class TestStaffDependencies:
    def test_validate_access_token_builds_staff_user(self):
        user_id = uuid4()
        token = create_access_token(
            str(user_id), {"email": "head@school.org", "role": "admin", "name": "Head"}
        )

        user = validate_access_token(token)

        assert user.id == user_id
        assert user.email == "head@school.org"
        assert user.is_admin

    def test_rejects_non_access_token(self):
        token = create_access_token(str(uuid4()), {"type": "refresh"})

        with pytest.raises(HTTPException) as exc_info:
            validate_access_token(token)

        assert exc_info.value.status_code == 401
        assert exc_info.value.detail["error"] == "INVALID_TOKEN_TYPE"

    def test_rejects_bad_subject(self):
        token = create_access_token("not-a-uuid", {"role": "staff"})

        with pytest.raises(HTTPException) as exc_info:
            validate_access_token(token)

        assert exc_info.value.detail["error"] == "INVALID_TOKEN_CLAIMS"

    @pytest.mark.asyncio
    async def test_missing_credentials_is_401(self):
        with pytest.raises(HTTPException) as exc_info:
            await get_current_staff_user(None)

        assert exc_info.value.status_code == 401
        assert exc_info.value.detail["error"] == "NOT_AUTHENTICATED"

    @pytest.mark.asyncio
    async def test_unknown_role_is_403(self):
        token = create_access_token(str(uuid4()), {"role": "parent"})

        with pytest.raises(HTTPException) as exc_info:
            await get_current_staff_user(_credentials(token))

        assert exc_info.value.status_code == 403
        assert exc_info.value.detail["error"] == "STAFF_ACCESS_REQUIRED"

    @pytest.mark.asyncio
    async def test_require_admin_rejects_staff(self):
        token = create_access_token(str(uuid4()), {"role": "staff"})
        staff = await get_current_staff_user(_credentials(token))

        with pytest.raises(HTTPException) as exc_info:
            await require_admin(staff)

        assert exc_info.value.status_code == 403
        assert exc_info.value.detail["error"] == "ADMIN_ACCESS_REQUIRED"

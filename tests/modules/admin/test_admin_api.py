"""
End-to-end tests for the staff dashboard and own-profile endpoints.
"""

from uuid import uuid4

import pytest
import pytest_asyncio

from backoffice.core.security import hash_password
from backoffice.modules.users import StaffRole, UserRepository

DASHBOARD_URL = "/api/v1/admin/dashboard"
PROFILE_URL = "/api/v1/admin/profile"
LOGIN_URL = "/api/v1/auth/login"


@pytest_asyncio.fixture
async def staff_account(db_session):
    account = await UserRepository.create(
        db_session,
        email="bursar@school.org",
        password_hash=hash_password("old-password"),
        full_name="Ada Bursar",
        role=StaffRole.STAFF,
    )
    await db_session.commit()
    return account


@pytest.fixture
def account_headers(auth_headers, staff_account):
    return auth_headers(user_id=staff_account.id, name=staff_account.full_name)


def _contact_form(**overrides) -> dict:
    form = {
        "name": "Efua Asante",
        "email": "efua@example.com",
        "subject": "School visit",
        "message": "Could we visit the school next week?",
        "studentGrade": "primary",
        "inquiryType": "visit",
    }
    form.update(overrides)
    return form


class TestDashboard:
    @pytest.mark.asyncio
    async def test_requires_token(self, client):
        response = await client.get(DASHBOARD_URL)
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_empty_dashboard(self, client, staff_headers):
        response = await client.get(DASHBOARD_URL, headers=staff_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["messages"]["total"] == 0
        assert data["messages"]["new"] == 0
        assert data["applications"]["pending"] == 0
        assert data["recentMessages"] == []
        assert data["recentApplications"] == []

    @pytest.mark.asyncio
    async def test_counts_and_recent_items(self, client, application_form, staff_headers):
        for subject in ("First question", "Second question"):
            await client.post("/api/v1/messages", json=_contact_form(subject=subject))
        admission = await client.post(
            "/api/v1/messages",
            json=_contact_form(subject="Admission query", inquiryType="admission"),
        )
        await client.get(
            f"/api/v1/admin/messages/{admission.json()['data']['id']}", headers=staff_headers
        )

        submitted = []
        for _ in range(3):
            response = await client.post("/api/v1/applications", data=application_form)
            submitted.append(response.json()["data"])
        await client.patch(
            f"/api/v1/admin/applications/{submitted[0]['id']}/status",
            json={"status": "under_review"},
            headers=staff_headers,
        )

        response = await client.get(DASHBOARD_URL, headers=staff_headers)

        data = response.json()["data"]
        assert data["messages"]["total"] == 3
        assert data["messages"]["new"] == 2
        assert data["messages"]["byStatus"]["read"] == 1
        assert data["messages"]["byType"]["visit"] == 2
        assert data["applications"]["total"] == 3
        assert data["applications"]["pending"] == 2
        assert data["applications"]["byGrade"] == {"primary3": 3}
        assert len(data["recentMessages"]) == 3
        assert set(data["recentMessages"][0]) == {
            "id",
            "name",
            "email",
            "subject",
            "status",
            "createdAt",
        }
        assert [a["applicationNumber"] for a in data["recentApplications"]] == [
            "APP000003",
            "APP000002",
            "APP000001",
        ]

    @pytest.mark.asyncio
    async def test_recent_lists_are_capped_at_five(self, client, staff_headers):
        for n in range(7):
            await client.post("/api/v1/messages", json=_contact_form(subject=f"Question {n + 1}"))

        response = await client.get(DASHBOARD_URL, headers=staff_headers)

        data = response.json()["data"]
        assert data["messages"]["total"] == 7
        assert len(data["recentMessages"]) == 5


class TestProfile:
    @pytest.mark.asyncio
    async def test_get_profile(self, client, staff_account, account_headers):
        response = await client.get(PROFILE_URL, headers=account_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["email"] == "bursar@school.org"
        assert data["name"] == "Ada Bursar"
        assert data["role"] == "staff"
        assert data["isActive"] is True
        assert "passwordHash" not in data

    @pytest.mark.asyncio
    async def test_profile_of_deleted_account(self, client, auth_headers):
        response = await client.get(PROFILE_URL, headers=auth_headers(user_id=uuid4()))

        assert response.status_code == 401
        assert response.json()["error"] == "ACCOUNT_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_rename(self, client, staff_account, account_headers):
        response = await client.put(
            PROFILE_URL, json={"name": "Ada Mensah-Bursar"}, headers=account_headers
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Profile updated successfully"
        assert response.json()["data"]["name"] == "Ada Mensah-Bursar"

    @pytest.mark.asyncio
    async def test_change_password_then_log_in(self, client, staff_account, account_headers):
        response = await client.put(
            PROFILE_URL,
            json={"currentPassword": "old-password", "newPassword": "new-password-42"},
            headers=account_headers,
        )
        assert response.status_code == 200

        old = await client.post(
            LOGIN_URL, json={"email": "bursar@school.org", "password": "old-password"}
        )
        new = await client.post(
            LOGIN_URL, json={"email": "bursar@school.org", "password": "new-password-42"}
        )
        assert old.status_code == 401
        assert new.status_code == 200

    @pytest.mark.asyncio
    async def test_wrong_current_password(self, client, staff_account, account_headers):
        response = await client.put(
            PROFILE_URL,
            json={"currentPassword": "guess", "newPassword": "new-password-42"},
            headers=account_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_CURRENT_PASSWORD"

        login = await client.post(
            LOGIN_URL, json={"email": "bursar@school.org", "password": "old-password"}
        )
        assert login.status_code == 200

    @pytest.mark.asyncio
    async def test_new_password_needs_current_password(
        self, client, staff_account, account_headers
    ):
        response = await client.put(
            PROFILE_URL, json={"newPassword": "new-password-42"}, headers=account_headers
        )

        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_CURRENT_PASSWORD"

    @pytest.mark.asyncio
    async def test_validation(self, client, staff_account, account_headers):
        empty = await client.put(PROFILE_URL, json={}, headers=account_headers)
        short = await client.put(
            PROFILE_URL,
            json={"currentPassword": "old-password", "newPassword": "short"},
            headers=account_headers,
        )

        assert empty.status_code == 400
        assert empty.json()["error"] == "VALIDATION_ERROR"
        assert short.status_code == 400
        assert {e["field"] for e in short.json()["errors"]} == {"newPassword"}

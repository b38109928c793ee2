"""
Tests for the admissions repository: allocation retries, status stamping,
listing and stats.
"""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError

from backoffice.modules.admissions import repository
from backoffice.modules.admissions.models import Application, ApplicationStatus, GradeLevel
from backoffice.modules.admissions.repository import (
    MAX_ALLOCATION_ATTEMPTS,
    DuplicateApplicationNumberError,
    build_application,
)
from backoffice.modules.admissions.schemas import ApplicationCreate, ApplicationFilters


@pytest.fixture
def application_data(student_info, contact_info, academic_info):
    return ApplicationCreate(
        student_info=student_info, contact_info=contact_info, academic_info=academic_info
    )


def _conflict() -> IntegrityError:
    return IntegrityError(
        "INSERT INTO applications",
        {},
        Exception("UNIQUE constraint failed: applications.application_number"),
    )


class TestCreate:
    @pytest.mark.asyncio
    async def test_numbers_increase(self, db_session, application_data):
        first = await repository.create(db_session, application_data, documents={})
        second = await repository.create(db_session, application_data, documents={})

        assert first.application_number == "APP000001"
        assert second.application_number == "APP000002"
        assert first.status == ApplicationStatus.SUBMITTED
        assert first.reviewed_at is None

    @pytest.mark.asyncio
    async def test_stores_flattened_sections_and_documents(self, db_session, application_data):
        application = await repository.create(
            db_session,
            application_data,
            documents={"photo": "applications/abc-photo.png"},
            ip_address="203.0.113.7",
            user_agent="x" * 600,
        )

        assert application.first_name == "Ama"
        assert application.parent_email == "kofi.mensah@example.com"
        assert application.documents == {"photo": "applications/abc-photo.png"}
        assert len(application.user_agent) == 500

        found = await repository.get_by_application_number(
            db_session, application.application_number
        )
        assert found.id == application.id

    @pytest.mark.asyncio
    async def test_collision_with_unsequenced_rows_resyncs_and_retries(
        self, db_session, application_data
    ):
        # Rows written without the counter (an import, a restore)
        for number in ("APP000001", "APP000002"):
            db_session.add(build_application(application_data, number, {}, None, None))
        await db_session.commit()

        application = await repository.create(db_session, application_data, documents={})

        assert application.application_number == "APP000003"

    @pytest.mark.asyncio
    async def test_deleting_rows_never_reuses_numbers(self, db_session, application_data):
        await repository.create(db_session, application_data, documents={})
        await repository.create(db_session, application_data, documents={})

        await db_session.execute(delete(Application))
        await db_session.commit()

        application = await repository.create(db_session, application_data, documents={})
        assert application.application_number == "APP000003"

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, mock_db, application_data):
        # Every insert collides; the commit after each resync succeeds
        mock_db.commit = AsyncMock(side_effect=[_conflict(), None] * MAX_ALLOCATION_ATTEMPTS)

        with (
            patch(
                "backoffice.modules.admissions.repository.allocate_application_number",
                AsyncMock(return_value="APP000001"),
            ),
            patch(
                "backoffice.modules.admissions.repository.resync_sequence", AsyncMock()
            ) as mock_resync,
        ):
            with pytest.raises(DuplicateApplicationNumberError) as exc_info:
                await repository.create(mock_db, application_data, documents={})

        assert exc_info.value.attempts == MAX_ALLOCATION_ATTEMPTS
        assert exc_info.value.status_code == 500
        assert mock_resync.await_count == MAX_ALLOCATION_ATTEMPTS
        assert mock_db.rollback.await_count == MAX_ALLOCATION_ATTEMPTS

    @pytest.mark.asyncio
    async def test_other_integrity_errors_are_not_retried(self, mock_db, application_data):
        other = IntegrityError(
            "INSERT", {}, Exception("NOT NULL constraint failed: applications.city")
        )
        mock_db.commit = AsyncMock(side_effect=other)

        with (
            patch(
                "backoffice.modules.admissions.repository.allocate_application_number",
                AsyncMock(return_value="APP000001"),
            ),
            patch(
                "backoffice.modules.admissions.repository.resync_sequence", AsyncMock()
            ) as mock_resync,
        ):
            with pytest.raises(IntegrityError):
                await repository.create(mock_db, application_data, documents={})

        mock_resync.assert_not_awaited()
        mock_db.rollback.assert_awaited_once()


class TestUpdateStatus:
    @pytest.mark.asyncio
    async def test_first_review_is_stamped_once(self, db_session, application_data):
        application = await repository.create(db_session, application_data, documents={})
        first_reviewer, second_reviewer = uuid4(), uuid4()

        updated = await repository.update_status(
            db_session, application.id, ApplicationStatus.UNDER_REVIEW, reviewer_id=first_reviewer
        )
        stamped_at = updated.reviewed_at
        assert updated.reviewed_by == first_reviewer
        assert stamped_at is not None

        updated = await repository.update_status(
            db_session,
            application.id,
            ApplicationStatus.ACCEPTED,
            notes="Strong interview",
            reviewer_id=second_reviewer,
        )

        assert updated.status == ApplicationStatus.ACCEPTED
        assert updated.notes == "Strong interview"
        assert updated.reviewed_by == first_reviewer
        assert updated.reviewed_at == stamped_at

    @pytest.mark.asyncio
    async def test_staying_submitted_does_not_stamp(self, db_session, application_data):
        application = await repository.create(db_session, application_data, documents={})

        updated = await repository.update_status(
            db_session,
            application.id,
            ApplicationStatus.SUBMITTED,
            notes="Called parent",
            reviewer_id=uuid4(),
        )

        assert updated.reviewed_at is None
        assert updated.reviewed_by is None
        assert updated.notes == "Called parent"

    @pytest.mark.asyncio
    async def test_returning_to_submitted_keeps_stamp(self, db_session, application_data):
        application = await repository.create(db_session, application_data, documents={})
        reviewer = uuid4()
        await repository.update_status(
            db_session, application.id, ApplicationStatus.REJECTED, reviewer_id=reviewer
        )

        updated = await repository.update_status(
            db_session, application.id, ApplicationStatus.SUBMITTED, reviewer_id=uuid4()
        )

        assert updated.status == ApplicationStatus.SUBMITTED
        assert updated.reviewed_by == reviewer

    @pytest.mark.asyncio
    async def test_unknown_id_returns_none(self, db_session):
        updated = await repository.update_status(db_session, uuid4(), ApplicationStatus.ACCEPTED)
        assert updated is None


class TestListAndStats:
    @pytest.mark.asyncio
    async def test_filter_search_and_paginate(self, db_session, application_data):
        for _ in range(3):
            await repository.create(db_session, application_data, documents={})
        other = application_data.model_copy(deep=True)
        other.student_info.last_name = "Owusu"
        other.academic_info.grade_level = GradeLevel.HIGH1
        await repository.create(db_session, other, documents={})

        items, total = await repository.list_applications(
            db_session, ApplicationFilters(search="owusu")
        )
        assert total == 1
        assert items[0].last_name == "Owusu"

        items, total = await repository.list_applications(
            db_session,
            ApplicationFilters(
                grade_level="primary3", sort_by="applicationNumber", sort_order="asc", limit=2
            ),
        )
        assert total == 3
        assert [a.application_number for a in items] == ["APP000001", "APP000002"]

        items, _ = await repository.list_applications(
            db_session, ApplicationFilters(search="APP000004")
        )
        assert [a.application_number for a in items] == ["APP000004"]

    @pytest.mark.asyncio
    async def test_search_wildcards_match_literally(self, db_session, application_data):
        await repository.create(db_session, application_data, documents={})
        await repository.create(db_session, application_data, documents={})

        for search in ("%", "_", "APP00000_"):
            items, total = await repository.list_applications(
                db_session, ApplicationFilters(search=search)
            )
            assert (items, total) == ([], 0)

    @pytest.mark.asyncio
    async def test_stats(self, db_session, application_data):
        first = await repository.create(db_session, application_data, documents={})
        await repository.create(db_session, application_data, documents={})
        await repository.update_status(db_session, first.id, ApplicationStatus.ACCEPTED)

        stats = await repository.get_stats(db_session, year=datetime.now(UTC).year)

        assert stats["total"] == 2
        assert stats["by_status"] == {
            "submitted": 1,
            "under_review": 0,
            "accepted": 1,
            "rejected": 0,
            "waiting_list": 0,
        }
        assert stats["by_grade"] == {"primary3": 2}
        assert sum(month["count"] for month in stats["monthly"]) == 2

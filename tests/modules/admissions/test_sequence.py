"""
Tests for application number formatting and the counter table.
"""

import pytest
from sqlalchemy import select

from backoffice.modules.admissions.models import ApplicationSequence
from backoffice.modules.admissions.repository import build_application
from backoffice.modules.admissions.schemas import ApplicationCreate
from backoffice.modules.admissions.sequence import (
    APPLICATION_SEQUENCE,
    SequenceExhaustedError,
    allocate_application_number,
    format_application_number,
    next_sequence_value,
    parse_application_number,
    resync_sequence,
)


class TestFormatting:
    def test_first_number(self):
        assert format_application_number(1) == "APP000001"

    def test_last_number(self):
        assert format_application_number(999999) == "APP999999"

    def test_past_the_last_number(self):
        with pytest.raises(SequenceExhaustedError) as exc_info:
            format_application_number(1_000_000)
        assert exc_info.value.error_code == "SEQUENCE_EXHAUSTED"

    def test_zero_is_invalid(self):
        with pytest.raises(ValueError):
            format_application_number(0)

    def test_parse(self):
        assert parse_application_number("APP000123") == 123

    @pytest.mark.parametrize("value", ["APP12345", "APP1234567", "app000001", "XYZ000001"])
    def test_parse_rejects_malformed(self, value):
        with pytest.raises(ValueError):
            parse_application_number(value)


async def _counter(db) -> int | None:
    result = await db.execute(
        select(ApplicationSequence.value).where(ApplicationSequence.name == APPLICATION_SEQUENCE)
    )
    return result.scalar_one_or_none()


class TestCounter:
    @pytest.mark.asyncio
    async def test_first_use_starts_at_one(self, db_session):
        assert await next_sequence_value(db_session) == 1
        assert await next_sequence_value(db_session) == 2
        await db_session.commit()

        assert await _counter(db_session) == 2

    @pytest.mark.asyncio
    async def test_rollback_undoes_the_increment(self, db_session):
        await next_sequence_value(db_session)
        await db_session.commit()

        await next_sequence_value(db_session)
        await db_session.rollback()

        assert await allocate_application_number(db_session) == "APP000002"

    @pytest.mark.asyncio
    async def test_named_counters_are_independent(self, db_session):
        await next_sequence_value(db_session, "applications")
        await next_sequence_value(db_session, "applications")

        assert await next_sequence_value(db_session, "other") == 1

    @pytest.mark.asyncio
    async def test_exhausted_counter_raises(self, db_session):
        db_session.add(ApplicationSequence(name=APPLICATION_SEQUENCE, value=999_999))
        await db_session.commit()

        with pytest.raises(SequenceExhaustedError):
            await allocate_application_number(db_session)

    @pytest.mark.asyncio
    async def test_resync_moves_forward_to_highest_stored(
        self, db_session, student_info, contact_info, academic_info
    ):
        data = ApplicationCreate(
            student_info=student_info, contact_info=contact_info, academic_info=academic_info
        )
        for number in ("APP000007", "APP000042"):
            db_session.add(build_application(data, number, {}, None, None))
        await db_session.commit()

        assert await resync_sequence(db_session) == 42
        assert await allocate_application_number(db_session) == "APP000043"

    @pytest.mark.asyncio
    async def test_resync_never_moves_backwards(self, db_session):
        db_session.add(ApplicationSequence(name=APPLICATION_SEQUENCE, value=500))
        await db_session.commit()

        assert await resync_sequence(db_session) == 500

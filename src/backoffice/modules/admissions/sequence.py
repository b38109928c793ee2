"""
Application Number Allocation

Application numbers look like ``APP000123``: a fixed prefix and a six digit,
zero-padded value taken from a named counter row in ``application_sequences``.

The counter is advanced with a single ``INSERT ... ON CONFLICT DO UPDATE ...
RETURNING`` statement executed in the caller's transaction:

- the statement is atomic, so two sessions can never read the same value;
- the counter row stays locked until the caller commits or rolls back, so a
  failed insert rolls the increment back with it (gaps are possible, duplicates
  are not);
- the counter is independent of how many applications exist, so deleting
  applications never causes a number to be handed out twice.

Nothing here caches a value between calls.
"""

import logging
import re

from fastapi import status
from sqlalchemy import case, func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.exceptions import ServiceError

from .models import Application, ApplicationSequence

logger = logging.getLogger(__name__)

APPLICATION_SEQUENCE = "applications"
APPLICATION_NUMBER_PREFIX = "APP"
APPLICATION_NUMBER_DIGITS = 6
MAX_APPLICATION_SEQUENCE = 10**APPLICATION_NUMBER_DIGITS - 1

APPLICATION_NUMBER_PATTERN = re.compile(
    rf"^{APPLICATION_NUMBER_PREFIX}\d{{{APPLICATION_NUMBER_DIGITS}}}$"
)


class SequenceExhaustedError(ServiceError):
    """The counter has passed the largest number the six digit format can hold."""

    def __init__(self, value: int):
        self.value = value
        super().__init__(
            message="Unable to assign an application number. Please contact the school.",
            error_code="SEQUENCE_EXHAUSTED",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


def _dialect_insert(db: AsyncSession):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    raise NotImplementedError(f"Sequence allocation is not supported on {dialect}")


def format_application_number(value: int) -> str:
    """
    Format a counter value as an application number.

    Raises:
        SequenceExhaustedError: If the value does not fit in six digits
        ValueError: If the value is not positive
    """
    if value < 1:
        raise ValueError(f"Application sequence values start at 1, got {value}")
    if value > MAX_APPLICATION_SEQUENCE:
        raise SequenceExhaustedError(value)
    return f"{APPLICATION_NUMBER_PREFIX}{value:0{APPLICATION_NUMBER_DIGITS}d}"


def parse_application_number(application_number: str) -> int:
    """Inverse of format_application_number."""
    if not APPLICATION_NUMBER_PATTERN.match(application_number):
        raise ValueError(f"Not an application number: {application_number!r}")
    return int(application_number[len(APPLICATION_NUMBER_PREFIX) :])


async def next_sequence_value(db: AsyncSession, name: str = APPLICATION_SEQUENCE) -> int:
    """
    Atomically advance the named counter and return the new value.

    Creates the counter at 1 the first time it is used. Does not commit.
    """
    insert = _dialect_insert(db)
    stmt = insert(ApplicationSequence).values(name=name, value=1)
    stmt = stmt.on_conflict_do_update(
        index_elements=[ApplicationSequence.name],
        set_={
            "value": ApplicationSequence.value + 1,
            "updated_at": func.now(),
        },
    ).returning(ApplicationSequence.value)

    result = await db.execute(stmt)
    return result.scalar_one()


async def allocate_application_number(db: AsyncSession) -> str:
    """Reserve the next application number inside the caller's transaction."""
    value = await next_sequence_value(db, APPLICATION_SEQUENCE)
    if value > MAX_APPLICATION_SEQUENCE:
        logger.error(f"Application sequence exhausted at {value}")
    return format_application_number(value)


async def resync_sequence(db: AsyncSession, name: str = APPLICATION_SEQUENCE) -> int:
    """
    Move the counter forward to the highest application number on record.

    Used after a uniqueness violation, which means rows were written without
    going through the counter (imports, restores). Never moves the counter
    backwards. Does not commit.

    Returns:
        The counter value after the resync
    """
    # Numbers are fixed width, so the lexical maximum is the numeric maximum
    result = await db.execute(select(func.max(Application.application_number)))
    highest_number = result.scalar_one_or_none()
    highest = parse_application_number(highest_number) if highest_number else 0

    insert = _dialect_insert(db)
    stmt = insert(ApplicationSequence).values(name=name, value=highest)
    stmt = stmt.on_conflict_do_update(
        index_elements=[ApplicationSequence.name],
        set_={
            "value": case(
                (ApplicationSequence.value < highest, highest),
                else_=ApplicationSequence.value,
            ),
            "updated_at": func.now(),
        },
    ).returning(ApplicationSequence.value)

    result = await db.execute(stmt)
    value = result.scalar_one()
    logger.warning(f"Resynced sequence '{name}' to {value} (highest stored number: {highest})")
    return value

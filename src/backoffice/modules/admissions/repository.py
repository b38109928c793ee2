"""
Admissions Repository

Database operations for admission applications.
All operations are async and follow the repository pattern for clean separation
of concerns between data access and business logic.

Design Principles:
- All queries are parameterized (no SQL injection)
- Number allocation and the insert share one transaction
- Timezone-aware datetime handling (UTC)
"""

import asyncio
import logging
from datetime import UTC, datetime
from uuid import UUID, uuid4

from fastapi import status as http_status
from sqlalchemy import asc, desc, extract, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.exceptions import ServiceError
from backoffice.modules.shared import LIKE_ESCAPE, contains_pattern

from .models import Application, ApplicationStatus
from .schemas import ApplicationCreate, ApplicationFilters
from .sequence import allocate_application_number, resync_sequence

logger = logging.getLogger(__name__)

MAX_ALLOCATION_ATTEMPTS = 5

SORT_COLUMNS = {
    "submittedAt": Application.submitted_at,
    "createdAt": Application.created_at,
    "applicationNumber": Application.application_number,
    "lastName": Application.last_name,
}


class DuplicateApplicationNumberError(ServiceError):
    """Every allocation attempt collided with an existing application number."""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(
            message="Unable to assign an application number. Please try again.",
            error_code="APPLICATION_NUMBER_CONFLICT",
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


def _is_application_number_conflict(error: IntegrityError) -> bool:
    return "application_number" in str(error.orig)


async def _commit_through_cancellation(db: AsyncSession) -> None:
    """Commit, waiting for an in-flight commit to settle if the caller is cancelled."""
    commit = asyncio.ensure_future(db.commit())
    try:
        await asyncio.shield(commit)
    except asyncio.CancelledError:
        await asyncio.wait({commit})
        if not commit.cancelled():
            commit.exception()
        raise


def build_application(
    data: ApplicationCreate,
    application_number: str,
    documents: dict[str, str],
    ip_address: str | None,
    user_agent: str | None,
    application_id: UUID | None = None,
) -> Application:
    """Flatten the three form sections into a new row."""
    student, contact, academic = data.student_info, data.contact_info, data.academic_info
    return Application(
        id=application_id or uuid4(),
        application_number=application_number,
        # Student
        first_name=student.first_name,
        last_name=student.last_name,
        birth_date=student.birth_date,
        gender=student.gender,
        nationality=student.nationality,
        # Contact
        parent_name=contact.parent_name,
        parent_email=contact.parent_email,
        parent_phone=contact.parent_phone,
        address=contact.address,
        city=contact.city,
        # Academic
        grade_level=academic.grade_level,
        previous_school=academic.previous_school,
        language_proficiency=academic.language_proficiency,
        special_needs=academic.special_needs,
        # Everything else
        documents=dict(documents),
        status=ApplicationStatus.SUBMITTED,
        submitted_at=datetime.now(UTC),
        ip_address=ip_address,
        user_agent=user_agent[:500] if user_agent else None,
    )


async def create(
    db: AsyncSession,
    data: ApplicationCreate,
    documents: dict[str, str],
    ip_address: str | None = None,
    user_agent: str | None = None,
    application_id: UUID | None = None,
) -> Application:
    """
    Allocate an application number and insert the application.

    Each attempt runs in its own transaction: the counter increment and the
    insert commit together or not at all. A unique violation on
    ``application_number`` means rows exist that the counter does not know
    about, so the counter is resynced and the attempt repeated.

    If the caller is cancelled during the commit, the commit still runs to
    completion before ``CancelledError`` propagates. Pass ``application_id``
    to find out afterwards with ``exists`` whether the row was stored.

    Raises:
        DuplicateApplicationNumberError: If every attempt collided
        SequenceExhaustedError: If the counter is past 999999
        IntegrityError: For any other constraint violation
    """
    for attempt in range(1, MAX_ALLOCATION_ATTEMPTS + 1):
        try:
            application_number = await allocate_application_number(db)
            application = build_application(
                data, application_number, documents, ip_address, user_agent, application_id
            )
            db.add(application)
            await _commit_through_cancellation(db)
        except IntegrityError as e:
            await db.rollback()
            if not _is_application_number_conflict(e):
                raise
            logger.warning(
                f"Application number collision on attempt {attempt}/{MAX_ALLOCATION_ATTEMPTS}"
            )
            await resync_sequence(db)
            await db.commit()
            continue
        except Exception:
            await db.rollback()
            raise

        # Callers hand staged files over to the row as soon as this returns, so
        # nothing after the commit may await.
        logger.info(f"Created application {application.application_number} ({application.id})")
        return application

    raise DuplicateApplicationNumberError(MAX_ALLOCATION_ATTEMPTS)


async def get_by_id(db: AsyncSession, id: UUID) -> Application | None:
    """Get application by ID."""
    return await db.get(Application, id)


async def exists(db: AsyncSession, id: UUID) -> bool:
    """Whether a committed application with this ID exists."""
    result = await db.execute(select(Application.id).where(Application.id == id))
    return result.scalar_one_or_none() is not None


async def get_by_application_number(
    db: AsyncSession, application_number: str
) -> Application | None:
    result = await db.execute(
        select(Application).where(Application.application_number == application_number)
    )
    return result.scalar_one_or_none()


async def list_applications(
    db: AsyncSession,
    filters: ApplicationFilters,
) -> tuple[list[Application], int]:
    """
    Get applications with filters, sorting, and pagination for the staff list.

    Search is case-insensitive across student name, parent name, parent email
    and application number.

    Returns:
        Tuple of (page of applications, total count matching filters)
    """
    query = select(Application)

    if filters.status:
        query = query.where(Application.status == filters.status)

    if filters.grade_level:
        query = query.where(Application.grade_level == filters.grade_level)

    if filters.search:
        search_pattern = contains_pattern(filters.search)
        query = query.where(
            or_(
                Application.first_name.ilike(search_pattern, escape=LIKE_ESCAPE),
                Application.last_name.ilike(search_pattern, escape=LIKE_ESCAPE),
                Application.parent_name.ilike(search_pattern, escape=LIKE_ESCAPE),
                Application.parent_email.ilike(search_pattern, escape=LIKE_ESCAPE),
                Application.application_number.ilike(search_pattern, escape=LIKE_ESCAPE),
            )
        )

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar() or 0

    sort_column = SORT_COLUMNS.get(filters.sort_by, Application.submitted_at)
    direction = desc if filters.sort_order == "desc" else asc
    # Tie-break on the number so pages are stable
    query = query.order_by(direction(sort_column), direction(Application.application_number))

    query = query.offset((filters.page - 1) * filters.limit).limit(filters.limit)

    result = await db.execute(query)
    return list(result.scalars().all()), total


async def list_recent(db: AsyncSession, limit: int = 5) -> list[Application]:
    """Most recently submitted applications."""
    result = await db.execute(
        select(Application)
        .order_by(desc(Application.submitted_at), desc(Application.application_number))
        .limit(limit)
    )
    return list(result.scalars().all())


async def update_status(
    db: AsyncSession,
    id: UUID,
    status: ApplicationStatus,
    notes: str | None = None,
    reviewer_id: UUID | None = None,
) -> Application | None:
    """
    Set the status (and notes, when given).

    Any status may follow any other. The first time the status leaves
    ``submitted`` the reviewer and review time are stamped; later changes
    leave them alone. The row is locked for the read-modify-write so two
    reviewers cannot both stamp it.

    Returns:
        The updated application, or None if not found
    """
    result = await db.execute(
        select(Application)
        .where(Application.id == id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    application = result.scalar_one_or_none()
    if application is None:
        return None

    previous_status = application.status
    application.status = status
    if notes is not None:
        application.notes = notes

    if status != ApplicationStatus.SUBMITTED and application.reviewed_at is None:
        application.reviewed_by = reviewer_id
        application.reviewed_at = datetime.now(UTC)

    await db.commit()
    await db.refresh(application)

    logger.info(
        f"Application {application.application_number} status "
        f"{previous_status.value} -> {status.value}"
    )
    return application


async def get_stats(db: AsyncSession, year: int | None = None) -> dict:
    """
    Aggregate counts for the staff dashboard.

    Returns:
        Dict with total, by_status, by_grade, monthly (current year) and year
    """
    year = year or datetime.now(UTC).year

    total = (await db.execute(select(func.count(Application.id)))).scalar() or 0

    status_rows = await db.execute(
        select(Application.status, func.count(Application.id)).group_by(Application.status)
    )
    by_status = {status.value: 0 for status in ApplicationStatus}
    for status, count in status_rows.all():
        by_status[status.value] = count

    grade_rows = await db.execute(
        select(Application.grade_level, func.count(Application.id))
        .group_by(Application.grade_level)
        .order_by(Application.grade_level)
    )
    by_grade = {grade.value: count for grade, count in grade_rows.all()}

    month = extract("month", Application.submitted_at)
    year_start = datetime(year, 1, 1, tzinfo=UTC)
    next_year_start = datetime(year + 1, 1, 1, tzinfo=UTC)
    monthly_rows = await db.execute(
        select(month, func.count(Application.id))
        .where(
            Application.submitted_at >= year_start,
            Application.submitted_at < next_year_start,
        )
        .group_by(month)
        .order_by(month)
    )
    monthly = [{"month": int(m), "count": count} for m, count in monthly_rows.all()]

    return {
        "total": total,
        "by_status": by_status,
        "by_grade": by_grade,
        "monthly": monthly,
        "year": year,
    }

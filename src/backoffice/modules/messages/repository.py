"""
Contact Message Repository

Database operations for contact messages. No business rules here.
"""

from uuid import UUID

from sqlalchemy import asc, desc, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.modules.shared import LIKE_ESCAPE, contains_pattern

from .models import ContactMessage, InquiryType, MessagePriority, MessageStatus
from .schemas import MessageCreate, MessageFilters

SORT_COLUMNS = {
    "createdAt": ContactMessage.created_at,
    "updatedAt": ContactMessage.updated_at,
    "priority": ContactMessage.priority,
    "status": ContactMessage.status,
}


async def create(
    db: AsyncSession,
    data: MessageCreate,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> ContactMessage:
    message = ContactMessage(
        name=data.name,
        email=data.email,
        phone=data.phone,
        subject=data.subject,
        message=data.message,
        student_grade=data.student_grade,
        inquiry_type=data.inquiry_type,
        status=MessageStatus.NEW,
        priority=MessagePriority.MEDIUM,
        ip_address=ip_address,
        user_agent=user_agent[:500] if user_agent else None,
    )

    db.add(message)
    await db.commit()
    await db.refresh(message)

    return message


async def get_by_id(db: AsyncSession, id: UUID) -> ContactMessage | None:
    return await db.get(ContactMessage, id)


async def list_messages(
    db: AsyncSession,
    filters: MessageFilters,
) -> tuple[list[ContactMessage], int]:
    """
    Filtered, sorted page of messages.

    Search is case-insensitive across name, email, subject and body.

    Returns:
        Tuple of (page of messages, total count matching filters)
    """
    query = select(ContactMessage)

    if filters.status:
        query = query.where(ContactMessage.status == filters.status)
    if filters.inquiry_type:
        query = query.where(ContactMessage.inquiry_type == filters.inquiry_type)
    if filters.priority:
        query = query.where(ContactMessage.priority == filters.priority)

    if filters.search:
        search_pattern = contains_pattern(filters.search)
        query = query.where(
            or_(
                ContactMessage.name.ilike(search_pattern, escape=LIKE_ESCAPE),
                ContactMessage.email.ilike(search_pattern, escape=LIKE_ESCAPE),
                ContactMessage.subject.ilike(search_pattern, escape=LIKE_ESCAPE),
                ContactMessage.message.ilike(search_pattern, escape=LIKE_ESCAPE),
            )
        )

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar() or 0

    sort_column = SORT_COLUMNS.get(filters.sort_by, ContactMessage.created_at)
    direction = desc if filters.sort_order == "desc" else asc
    query = query.order_by(direction(sort_column), direction(ContactMessage.id))
    query = query.offset((filters.page - 1) * filters.limit).limit(filters.limit)

    result = await db.execute(query)
    return list(result.scalars().all()), total


async def list_recent(db: AsyncSession, limit: int = 5) -> list[ContactMessage]:
    result = await db.execute(
        select(ContactMessage)
        .order_by(desc(ContactMessage.created_at), desc(ContactMessage.id))
        .limit(limit)
    )
    return list(result.scalars().all())


async def save(db: AsyncSession, message: ContactMessage) -> ContactMessage:
    """Commit pending changes to a message and reload it."""
    await db.commit()
    await db.refresh(message)
    return message


async def delete(db: AsyncSession, message: ContactMessage) -> None:
    await db.delete(message)
    await db.commit()


async def get_stats(db: AsyncSession) -> dict:
    """Totals per status, inquiry type and priority."""
    total = (await db.execute(select(func.count(ContactMessage.id)))).scalar() or 0

    async def _group_counts(column, enum_cls) -> dict[str, int]:
        rows = await db.execute(select(column, func.count(ContactMessage.id)).group_by(column))
        counts = {member.value: 0 for member in enum_cls}
        for value, count in rows.all():
            counts[value.value] = count
        return counts

    by_status = await _group_counts(ContactMessage.status, MessageStatus)

    return {
        "total": total,
        **by_status,
        "by_type": await _group_counts(ContactMessage.inquiry_type, InquiryType),
        "by_priority": await _group_counts(ContactMessage.priority, MessagePriority),
    }

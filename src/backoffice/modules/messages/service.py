"""
Contact Message Service Layer

Triage of contact form messages by staff:
- Opening a new message marks it read
- The first time a message becomes "replied" its reply time is stamped
- Replying stores the reply, marks the message replied and emails the sender
"""

import logging
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.auth import StaffUser
from backoffice.core.email import send_message_reply
from backoffice.core.exceptions import NotFoundError

from . import repository
from .models import ContactMessage, MessageStatus
from .schemas import MessageCreate, MessageFilters, MessageReplyRequest, MessageStatusUpdate

logger = logging.getLogger(__name__)


class MessageNotFoundError(NotFoundError):
    def __init__(self, message_id: UUID | None = None):
        message = f"Message {message_id} not found" if message_id else "Message not found"
        super().__init__(message=message, error_code="MESSAGE_NOT_FOUND")


async def create_message(
    db: AsyncSession,
    data: MessageCreate,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> ContactMessage:
    message = await repository.create(db, data, ip_address=ip_address, user_agent=user_agent)
    logger.info(f"Contact message {message.id} received ({message.inquiry_type.value})")
    return message


async def _get_or_404(db: AsyncSession, message_id: UUID) -> ContactMessage:
    message = await repository.get_by_id(db, message_id)
    if not message:
        logger.warning(f"Message not found: {message_id}")
        raise MessageNotFoundError(message_id)
    return message


async def get_message(db: AsyncSession, message_id: UUID) -> ContactMessage:
    """
    Fetch a message for staff, marking it read if it was new.

    Raises:
        MessageNotFoundError: If the message doesn't exist
    """
    message = await _get_or_404(db, message_id)

    if message.status == MessageStatus.NEW:
        message.status = MessageStatus.READ
        message = await repository.save(db, message)

    return message


async def list_messages(
    db: AsyncSession,
    filters: MessageFilters,
) -> tuple[list[ContactMessage], int]:
    logger.info(
        f"Staff listing messages: status={filters.status}, type={filters.inquiry_type}, "
        f"priority={filters.priority}, search={filters.search}, "
        f"page={filters.page}, limit={filters.limit}"
    )
    return await repository.list_messages(db, filters)


def _mark_replied(message: ContactMessage) -> None:
    message.status = MessageStatus.REPLIED
    if message.replied_at is None:
        message.replied_at = datetime.now(UTC)


async def update_message_status(
    db: AsyncSession,
    message_id: UUID,
    update: MessageStatusUpdate,
) -> ContactMessage:
    """
    Apply a staff status, priority and notes change.

    Raises:
        MessageNotFoundError: If the message doesn't exist
    """
    message = await _get_or_404(db, message_id)

    if update.status == MessageStatus.REPLIED:
        _mark_replied(message)
    elif update.status is not None:
        message.status = update.status

    if update.priority is not None:
        message.priority = update.priority

    if "admin_notes" in update.model_fields_set:
        message.admin_notes = update.admin_notes

    return await repository.save(db, message)


async def reply_to_message(
    db: AsyncSession,
    message_id: UUID,
    reply: MessageReplyRequest,
    staff: StaffUser,
) -> ContactMessage:
    """
    Record a reply and email it to the sender.

    The email is best effort; a failed send is logged and the reply stays saved.

    Raises:
        MessageNotFoundError: If the message doesn't exist
    """
    message = await _get_or_404(db, message_id)

    message.reply_message = reply.reply_message
    _mark_replied(message)
    message = await repository.save(db, message)

    logger.info(f"Staff {staff.id} replied to message {message.id}")

    try:
        sent = await send_message_reply(
            to_email=message.email,
            original_subject=message.subject,
            reply_message=reply.reply_message,
            staff_name=staff.name or "School Administration",
        )
        if not sent:
            logger.error(f"Failed to send reply email for message {message.id}")
    except Exception as e:
        logger.error(f"Exception sending reply email for message {message.id}: {e}")

    return message


async def delete_message(db: AsyncSession, message_id: UUID, staff: StaffUser) -> None:
    """
    Raises:
        MessageNotFoundError: If the message doesn't exist
    """
    message = await _get_or_404(db, message_id)
    await repository.delete(db, message)
    logger.info(f"Staff {staff.id} deleted message {message_id}")


async def get_message_stats(db: AsyncSession) -> dict:
    return await repository.get_stats(db)

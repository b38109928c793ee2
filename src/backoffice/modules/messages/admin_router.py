"""
Contact Messages Admin Router

Staff endpoints for triaging contact messages.
All endpoints require a valid staff bearer token; deleting requires an admin.

Endpoints:
- GET /admin/messages - List messages with filters and pagination
- GET /admin/messages/stats - Counts by status, type and priority
- GET /admin/messages/{id} - Message details (marks new messages read)
- PATCH /admin/messages/{id}/status - Update status, priority, notes
- POST /admin/messages/{id}/reply - Reply to the sender by email
- DELETE /admin/messages/{id} - Delete a message
"""

import logging
from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.auth import StaffUser, get_current_staff_user, require_admin
from backoffice.core.database import get_db
from backoffice.modules.messages import service
from backoffice.modules.messages.models import InquiryType, MessagePriority, MessageStatus
from backoffice.modules.messages.schemas import (
    DeleteResponse,
    MessageFilters,
    MessageListResponse,
    MessageOut,
    MessageReplyRequest,
    MessageResponse,
    MessageStats,
    MessageStatsResponse,
    MessageStatusUpdate,
)
from backoffice.modules.messages.service import MessageNotFoundError
from backoffice.modules.shared import Pagination

logger = logging.getLogger(__name__)

router = APIRouter()


def _not_found(e: MessageNotFoundError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get("", response_model=MessageListResponse, summary="List Messages")
async def list_messages(
    status: MessageStatus | None = Query(None),
    inquiry_type: InquiryType | None = Query(None, alias="type"),
    priority: MessagePriority | None = Query(None),
    search: str | None = Query(None, max_length=100),
    sort_by: Literal["createdAt", "updatedAt", "priority", "status"] = Query(
        "createdAt", alias="sortBy"
    ),
    sort_order: Literal["asc", "desc"] = Query("desc", alias="sortOrder"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    staff: StaffUser = Depends(get_current_staff_user),
    db: AsyncSession = Depends(get_db),
) -> MessageListResponse:
    filters = MessageFilters(
        status=status,
        inquiry_type=inquiry_type,
        priority=priority,
        search=search or None,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )
    messages, total = await service.list_messages(db, filters)

    return MessageListResponse(
        data=[MessageOut.model_validate(message) for message in messages],
        pagination=Pagination.build(page=page, limit=limit, total=total),
    )


@router.get("/stats", response_model=MessageStatsResponse, summary="Message Statistics")
async def get_stats(
    staff: StaffUser = Depends(get_current_staff_user),
    db: AsyncSession = Depends(get_db),
) -> MessageStatsResponse:
    stats = await service.get_message_stats(db)
    return MessageStatsResponse(data=MessageStats(**stats))


@router.get("/{message_id}", response_model=MessageResponse, summary="Get Message")
async def get_message(
    message_id: UUID,
    staff: StaffUser = Depends(get_current_staff_user),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    try:
        message = await service.get_message(db, message_id)
    except MessageNotFoundError as e:
        raise _not_found(e) from e

    return MessageResponse(data=MessageOut.model_validate(message))


@router.patch("/{message_id}/status", response_model=MessageResponse, summary="Update Message")
async def update_status(
    message_id: UUID,
    body: MessageStatusUpdate,
    staff: StaffUser = Depends(get_current_staff_user),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    try:
        message = await service.update_message_status(db, message_id, body)
    except MessageNotFoundError as e:
        raise _not_found(e) from e

    logger.info(f"AUDIT: Staff {staff.id} updated message {message_id}")
    return MessageResponse(
        message="Message updated successfully", data=MessageOut.model_validate(message)
    )


@router.post("/{message_id}/reply", response_model=MessageResponse, summary="Reply to Message")
async def reply(
    message_id: UUID,
    body: MessageReplyRequest,
    staff: StaffUser = Depends(get_current_staff_user),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    try:
        message = await service.reply_to_message(db, message_id, body, staff)
    except MessageNotFoundError as e:
        raise _not_found(e) from e

    return MessageResponse(message="Reply sent successfully", data=MessageOut.model_validate(message))


@router.delete("/{message_id}", response_model=DeleteResponse, summary="Delete Message")
async def delete_message(
    message_id: UUID,
    staff: StaffUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> DeleteResponse:
    try:
        await service.delete_message(db, message_id, staff)
    except MessageNotFoundError as e:
        raise _not_found(e) from e

    return DeleteResponse()

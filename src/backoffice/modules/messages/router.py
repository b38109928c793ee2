"""
Contact Messages Router

Public endpoint for the website contact form.

Endpoints:
- POST /messages - Send a message to the school

Security:
- Rate limited per client IP (20 messages per 15 minutes)
"""

import logging

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.database import get_db
from backoffice.core.rate_limit import client_ip, rate_limit
from backoffice.modules.messages import service
from backoffice.modules.messages.schemas import MessageCreate, MessageCreatedResponse, MessageOut

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "",
    response_model=MessageCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Send Contact Message",
)
@rate_limit(limit=20, window_seconds=15 * 60)
async def create_message(
    request: Request,
    body: MessageCreate,
    db: AsyncSession = Depends(get_db),
) -> MessageCreatedResponse:
    message = await service.create_message(
        db,
        body,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    return MessageCreatedResponse(data=MessageOut.model_validate(message))

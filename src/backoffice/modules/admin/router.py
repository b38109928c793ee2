"""
Staff Dashboard and Profile Router

All endpoints require a valid staff bearer token.

Endpoints:
- GET /admin/dashboard - Message and application counts with the latest of each
- GET /admin/profile - The signed-in staff member's account
- PUT /admin/profile - Change own name and/or password
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.auth import StaffUser, get_current_staff_user
from backoffice.core.database import get_db
from backoffice.core.exceptions import ServiceError
from backoffice.modules.admin import service
from backoffice.modules.admin.schemas import (
    ApplicationCounts,
    Dashboard,
    DashboardResponse,
    MessageCounts,
    Profile,
    ProfileResponse,
    ProfileUpdate,
    RecentMessage,
)
from backoffice.modules.admissions.schemas import ApplicationListItem
from backoffice.modules.users.models import StaffUserAccount

logger = logging.getLogger(__name__)

router = APIRouter()


def _profile(user: StaffUserAccount) -> Profile:
    return Profile(
        id=user.id,
        email=user.email,
        name=user.full_name,
        role=user.role,
        is_active=user.is_active,
        last_login_at=user.last_login_at,
        created_at=user.created_at,
    )


@router.get("/dashboard", response_model=DashboardResponse, summary="Dashboard Overview")
async def get_dashboard(
    staff: StaffUser = Depends(get_current_staff_user),
    db: AsyncSession = Depends(get_db),
) -> DashboardResponse:
    overview = await service.get_dashboard(db)

    return DashboardResponse(
        data=Dashboard(
            messages=MessageCounts(**overview["messages"]),
            applications=ApplicationCounts(**overview["applications"]),
            recent_messages=[
                RecentMessage.model_validate(message) for message in overview["recent_messages"]
            ],
            recent_applications=[
                ApplicationListItem.model_validate(application)
                for application in overview["recent_applications"]
            ],
        )
    )


@router.get("/profile", response_model=ProfileResponse, summary="Get Own Profile")
async def get_profile(
    staff: StaffUser = Depends(get_current_staff_user),
    db: AsyncSession = Depends(get_db),
) -> ProfileResponse:
    try:
        user = await service.get_profile(db, staff)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail()) from e

    return ProfileResponse(data=_profile(user))


@router.put("/profile", response_model=ProfileResponse, summary="Update Own Profile")
async def update_profile(
    body: ProfileUpdate,
    staff: StaffUser = Depends(get_current_staff_user),
    db: AsyncSession = Depends(get_db),
) -> ProfileResponse:
    try:
        user = await service.update_profile(db, staff, body)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail()) from e

    return ProfileResponse(message="Profile updated successfully", data=_profile(user))

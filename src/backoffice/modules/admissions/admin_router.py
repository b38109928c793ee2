"""
Admissions Admin Router

API endpoints for school staff to review admission applications.
All endpoints require a valid staff bearer token.

Endpoints:
- GET /admin/applications - List applications with filters and pagination
- GET /admin/applications/stats - Dashboard statistics
- GET /admin/applications/{id} - Application details
- PATCH /admin/applications/{id}/status - Update status and notes
- GET /admin/applications/{id}/documents/{kind} - Download an attached document
"""

import logging
from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.auth import StaffUser, get_current_staff_user
from backoffice.core.database import get_db
from backoffice.core.exceptions import ServiceError
from backoffice.core.storage import FileStorage, get_storage
from backoffice.modules.admissions import service
from backoffice.modules.admissions.models import ApplicationStatus, GradeLevel
from backoffice.modules.admissions.schemas import (
    ApplicationDetail,
    ApplicationDetailResponse,
    ApplicationFilters,
    ApplicationListItem,
    ApplicationListResponse,
    ApplicationStats,
    ApplicationStatsResponse,
    StatusUpdateRequest,
)
from backoffice.modules.shared import Pagination

logger = logging.getLogger(__name__)

router = APIRouter()

DOWNLOAD_BASE = "/api/v1/admin/applications"


def _handle_service_error(e: ServiceError) -> None:
    """Convert service errors to HTTPExceptions."""
    raise HTTPException(status_code=e.status_code, detail=e.to_detail()) from e


@router.get(
    "",
    response_model=ApplicationListResponse,
    summary="List Applications",
)
async def list_applications(
    status: ApplicationStatus | None = Query(None, description="Filter by status"),
    grade_level: GradeLevel | None = Query(None, alias="gradeLevel"),
    search: str | None = Query(
        None,
        max_length=100,
        description="Search student name, parent name or email, or application number",
    ),
    sort_by: Literal["submittedAt", "createdAt", "applicationNumber", "lastName"] = Query(
        "submittedAt", alias="sortBy"
    ),
    sort_order: Literal["asc", "desc"] = Query("desc", alias="sortOrder"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    staff: StaffUser = Depends(get_current_staff_user),
    db: AsyncSession = Depends(get_db),
) -> ApplicationListResponse:
    filters = ApplicationFilters(
        status=status,
        grade_level=grade_level,
        search=search or None,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )
    applications, total = await service.list_applications(db, filters)

    return ApplicationListResponse(
        data=[ApplicationListItem.model_validate(app) for app in applications],
        pagination=Pagination.build(page=page, limit=limit, total=total),
    )


@router.get(
    "/stats",
    response_model=ApplicationStatsResponse,
    summary="Application Statistics",
)
async def get_stats(
    staff: StaffUser = Depends(get_current_staff_user),
    db: AsyncSession = Depends(get_db),
) -> ApplicationStatsResponse:
    """Totals by status and grade, and this year's submissions per month."""
    stats = await service.get_application_stats(db)
    return ApplicationStatsResponse(data=ApplicationStats(**stats))


@router.get(
    "/{application_id}",
    response_model=ApplicationDetailResponse,
    summary="Get Application Details",
)
async def get_application(
    application_id: UUID,
    staff: StaffUser = Depends(get_current_staff_user),
    db: AsyncSession = Depends(get_db),
) -> ApplicationDetailResponse:
    try:
        application = await service.get_application(db, application_id)
    except service.ApplicationNotFoundError as e:
        _handle_service_error(e)

    return ApplicationDetailResponse(data=ApplicationDetail.from_model(application, DOWNLOAD_BASE))


@router.patch(
    "/{application_id}/status",
    response_model=ApplicationDetailResponse,
    summary="Update Application Status",
)
async def update_status(
    application_id: UUID,
    body: StatusUpdateRequest,
    staff: StaffUser = Depends(get_current_staff_user),
    db: AsyncSession = Depends(get_db),
) -> ApplicationDetailResponse:
    """
    Set the status (any of the five values) and optionally the notes.

    The reviewer and review time are recorded only the first time the
    application leaves "submitted".
    """
    try:
        application = await service.update_application_status(db, application_id, body, staff)
    except service.ApplicationNotFoundError as e:
        _handle_service_error(e)

    logger.info(
        f"AUDIT: Staff {staff.id} ({staff.email}) set application "
        f"{application.application_number} to {application.status.value}"
    )
    return ApplicationDetailResponse(data=ApplicationDetail.from_model(application, DOWNLOAD_BASE))


@router.get(
    "/{application_id}/documents/{kind}",
    response_class=FileResponse,
    summary="Download Application Document",
    responses={404: {"description": "Unknown application or document, or file missing"}},
)
async def download_document(
    application_id: UUID,
    kind: str,
    staff: StaffUser = Depends(get_current_staff_user),
    db: AsyncSession = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
) -> FileResponse:
    try:
        document = await service.get_document(db, storage, application_id, kind)
    except (service.ApplicationNotFoundError, service.DocumentNotFoundError) as e:
        _handle_service_error(e)

    logger.info(f"Staff {staff.id} downloaded {kind} of application {application_id}")
    return FileResponse(document.path, media_type=document.media_type, filename=document.filename)

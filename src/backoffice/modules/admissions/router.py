"""
Admissions Router

Public endpoint for submitting an admission application. No authentication:
parents apply before they have any account.

Endpoints:
- POST /applications - Submit a new application (multipart form)

The form carries three JSON-encoded sections (studentInfo, contactInfo,
academicInfo) and up to five optional files, one per document kind:
birthCertificate, previousReports, photo, vaccinationCertificate,
transferCertificate.

Security:
- Rate limited per client IP (10 submissions per 15 minutes)
- Only an id, number, status and timestamp are echoed back
"""

import logging

from fastapi import APIRouter, Depends, Form, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.database import get_db
from backoffice.core.rate_limit import RateLimitExceeded, check_rate_limit, client_ip
from backoffice.core.storage import FileStorage, get_storage
from backoffice.modules.admissions import service
from backoffice.modules.admissions.schemas import ApplicationReceiptResponse
from backoffice.modules.admissions.service import (
    DuplicateApplicationNumberError,
    SequenceExhaustedError,
    StorageFailureError,
    ValidationError,
)

logger = logging.getLogger(__name__)

router = APIRouter()

RATE_LIMIT_SUBMIT = (10, 15 * 60)  # 10 submissions per 15 minutes per IP


async def _check_submission_rate_limit(request: Request) -> None:
    limit, window_seconds = RATE_LIMIT_SUBMIT
    ip = client_ip(request)
    allowed = await check_rate_limit(f"applications:submit:{ip}", limit, window_seconds)

    if not allowed:
        logger.warning(f"Application rate limit exceeded for {ip}: {limit}/{window_seconds}s")
        raise RateLimitExceeded(limit, window_seconds)


@router.post(
    "",
    response_model=ApplicationReceiptResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit Admission Application",
    description="""
Submit a new admission application as a multipart form.

**Form fields:**
- `studentInfo`, `contactInfo`, `academicInfo`: JSON objects (as strings)
- `birthCertificate`, `previousReports`, `photo`, `vaccinationCertificate`,
  `transferCertificate`: optional files (pdf, png, jpg, jpeg)

**Response:**
The application id, its application number (`APP` + 6 digits), status and
submission time. Every invalid field is reported at once with HTTP 400.
""",
    responses={
        400: {
            "description": "Validation error",
            "content": {
                "application/json": {
                    "example": {
                        "success": False,
                        "error": "VALIDATION_ERROR",
                        "message": "Validation failed",
                        "errors": [
                            {"field": "studentInfo.birthDate", "message": "Field required"}
                        ],
                    }
                }
            },
        },
        429: {"description": "Too many submissions from this address"},
        500: {"description": "The application could not be stored"},
    },
)
async def submit_application(
    request: Request,
    student_info: str | None = Form(None, alias="studentInfo"),
    contact_info: str | None = Form(None, alias="contactInfo"),
    academic_info: str | None = Form(None, alias="academicInfo"),
    db: AsyncSession = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
) -> ApplicationReceiptResponse:
    await _check_submission_rate_limit(request)

    # Already parsed by FastAPI for the Form fields above; this returns the cached form
    form = await request.form()

    try:
        data, uploads = service.validate_submission(
            student_info, contact_info, academic_info, form, storage
        )
        receipt = await service.submit_application(
            db,
            storage,
            data,
            uploads,
            ip_address=client_ip(request),
            user_agent=request.headers.get("user-agent"),
        )
    except ValidationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail()) from e
    except (StorageFailureError, DuplicateApplicationNumberError, SequenceExhaustedError) as e:
        logger.error(f"Application submission failed: {e.error_code}")
        raise HTTPException(status_code=e.status_code, detail=e.to_detail()) from e

    logger.info(f"Application {receipt.application_number} submitted from {client_ip(request)}")
    return ApplicationReceiptResponse(data=receipt)

"""
Admissions Service Layer

Business logic for admission applications.
Orchestrates validation, file staging, persistence and notification emails.

This module implements:
1. Intake (public):
   - Parse the three JSON form sections and the document uploads
   - Report every validation problem in one ValidationError
   - Stage uploads to durable storage, insert the application with a freshly
     allocated application number, and return a short receipt
   - Delete staged uploads on every failure path, including cancellation

2. Review (staff):
   - List, detail, stats and document download
   - Status updates, stamping the reviewer the first time an application
     leaves "submitted"

Emails are best effort: a failed send is logged and never fails the request.
"""

import asyncio
import json
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from uuid import UUID, uuid4

from fastapi import status
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import FormData, UploadFile

from backoffice.core.auth import StaffUser
from backoffice.core.email import send_application_confirmation, send_application_status_update
from backoffice.core.exceptions import NotFoundError, ServiceError, field_errors_from_pydantic
from backoffice.core.storage import FileStorage, FileTooLargeError, StagedFiles, StorageError

from . import repository
from .models import Application, DocumentKind
from .repository import DuplicateApplicationNumberError
from .schemas import (
    ApplicationCreate,
    ApplicationFilters,
    ApplicationReceipt,
    StatusUpdateRequest,
)
from .sequence import SequenceExhaustedError

logger = logging.getLogger(__name__)

FORM_SECTIONS = ("studentInfo", "contactInfo", "academicInfo")
DOCUMENT_KINDS = tuple(kind.value for kind in DocumentKind)

_MALFORMED = object()


# ============================================
# Exceptions
# ============================================


class ValidationError(ServiceError):
    """One or more submitted fields are invalid. Carries every violation."""

    def __init__(self, errors: list[dict[str, str]]):
        self.errors = errors
        super().__init__(
            message="Validation failed",
            error_code="VALIDATION_ERROR",
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    def to_detail(self) -> dict[str, Any]:
        return {**super().to_detail(), "errors": self.errors}


class StorageFailureError(ServiceError):
    """A file or database write failed. The message never includes the cause."""

    def __init__(self):
        super().__init__(
            message="We could not save your application. Please try again later.",
            error_code="STORAGE_FAILURE",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


class ApplicationNotFoundError(NotFoundError):
    def __init__(self, application_id: UUID | None = None):
        message = (
            f"Application {application_id} not found" if application_id else "Application not found"
        )
        super().__init__(message=message, error_code="APPLICATION_NOT_FOUND")


class DocumentNotFoundError(NotFoundError):
    def __init__(self, kind: str):
        super().__init__(message=f"Document '{kind}' not found", error_code="DOCUMENT_NOT_FOUND")


@dataclass(frozen=True)
class DocumentDownload:
    """A stored document ready to be streamed back to staff."""

    path: Path
    filename: str
    media_type: str


# ============================================
# Parsing and validation
# ============================================


def _load_section(name: str, raw: Any, errors: list[dict[str, str]]) -> Any:
    """
    Decode one JSON form section.

    Returns None when the section is absent (the schema reports it as
    required). Records an error and returns _MALFORMED when it is not a
    JSON object.
    """
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return None
    if isinstance(raw, dict):
        return raw

    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        errors.append({"field": name, "message": "Must be valid JSON"})
        return _MALFORMED

    if not isinstance(value, dict):
        errors.append({"field": name, "message": "Must be a JSON object"})
        return _MALFORMED
    return value


def parse_submission(
    student_info: Any,
    contact_info: Any,
    academic_info: Any,
) -> tuple[ApplicationCreate | None, list[dict[str, str]]]:
    """
    Parse and validate the three form sections.

    Returns:
        (parsed data, []) when valid, otherwise (None, every field error)
    """
    errors: list[dict[str, str]] = []
    payload: dict[str, Any] = {}
    malformed: set[str] = set()

    for name, raw in zip(FORM_SECTIONS, (student_info, contact_info, academic_info), strict=True):
        value = _load_section(name, raw, errors)
        if value is _MALFORMED:
            malformed.add(name)
        elif value is not None:
            payload[name] = value

    try:
        data = ApplicationCreate.model_validate(payload)
    except PydanticValidationError as e:
        # A malformed section was already reported; skip its "Field required"
        pydantic_errors = [
            err for err in e.errors() if not (err["loc"] and err["loc"][0] in malformed)
        ]
        errors.extend(field_errors_from_pydantic(pydantic_errors))
        return None, errors

    if errors:
        return None, errors
    return data, errors


def collect_uploads(
    form: FormData,
    storage: FileStorage,
) -> tuple[dict[str, UploadFile], list[dict[str, str]]]:
    """
    Pick the document uploads out of a multipart form.

    Empty file parts are ignored. Each kind may appear once, must be a file,
    and must have an allowed extension and size.

    Returns:
        (uploads keyed by document kind, field errors)
    """
    uploads: dict[str, UploadFile] = {}
    errors: list[dict[str, str]] = []

    for kind in DOCUMENT_KINDS:
        field = f"documents.{kind}"
        parts = [
            part
            for part in form.getlist(kind)
            if not (isinstance(part, str) and part == "")
            and not (isinstance(part, UploadFile) and not part.filename)
        ]
        if not parts:
            continue

        if len(parts) > 1:
            errors.append({"field": field, "message": "Only one file may be uploaded per document"})
            continue

        upload = parts[0]
        if not isinstance(upload, UploadFile):
            errors.append({"field": field, "message": "Must be a file upload"})
            continue

        if not storage.is_allowed(upload.filename):
            allowed = ", ".join(sorted(storage.allowed_extensions))
            errors.append({"field": field, "message": f"File type not allowed (allowed: {allowed})"})
            continue

        if upload.size is not None and upload.size > storage.max_bytes:
            errors.append({"field": field, "message": str(FileTooLargeError(storage.max_bytes))})
            continue

        uploads[kind] = upload

    return uploads, errors


def validate_submission(
    student_info: Any,
    contact_info: Any,
    academic_info: Any,
    form: FormData,
    storage: FileStorage,
) -> tuple[ApplicationCreate, dict[str, UploadFile]]:
    """
    Validate a whole submission before anything is written.

    Raises:
        ValidationError: With every section and document error found
    """
    data, errors = parse_submission(student_info, contact_info, academic_info)
    uploads, upload_errors = collect_uploads(form, storage)
    errors.extend(upload_errors)

    if errors or data is None:
        logger.info(f"Application submission rejected with {len(errors)} field error(s)")
        raise ValidationError(errors)

    return data, uploads


# ============================================
# Intake
# ============================================


async def submit_application(
    db: AsyncSession,
    storage: FileStorage,
    data: ApplicationCreate,
    uploads: dict[str, UploadFile],
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> ApplicationReceipt:
    """
    Stage the uploads, persist the application and return its receipt.

    Staged files live inside a ``StagedFiles`` scope: they are removed if
    staging, persistence or number allocation fails, or if the request is
    cancelled, and handed to the application only once it is committed.

    Raises:
        ValidationError: If an upload turns out to exceed the size limit
        StorageFailureError: If a file or database write fails
        DuplicateApplicationNumberError: If number allocation kept colliding
        SequenceExhaustedError: If application numbers have run out
    """
    logger.info(
        f"Processing application submission: grade={data.academic_info.grade_level.value}, "
        f"documents={sorted(uploads)}"
    )

    async with StagedFiles(storage) as staged:
        for kind, upload in uploads.items():
            try:
                await staged.stage(upload, kind)
            except FileTooLargeError as e:
                raise ValidationError([{"field": f"documents.{kind}", "message": str(e)}]) from e
            except StorageError as e:
                logger.error(f"Failed to stage {kind} upload: {e}")
                raise StorageFailureError() from e

        application_id = uuid4()
        try:
            application = await repository.create(
                db,
                data,
                documents=staged.refs,
                ip_address=ip_address,
                user_agent=user_agent,
                application_id=application_id,
            )
        except asyncio.CancelledError:
            # The commit may have landed before the cancel; the row then owns the files.
            if await _was_committed(db, application_id):
                staged.release()
            raise
        except (DuplicateApplicationNumberError, SequenceExhaustedError):
            raise
        except SQLAlchemyError as e:
            logger.exception(f"Failed to persist application: {e}")
            raise StorageFailureError() from e

        staged.release()

    await _send_confirmation_email(application)

    return ApplicationReceipt(
        id=application.id,
        application_number=application.application_number,
        status=application.status,
        submitted_at=application.submitted_at,
    )


async def _was_committed(db: AsyncSession, application_id: UUID) -> bool:
    """
    Whether an interrupted insert was stored.

    Answers True when the database cannot be asked, so the files are kept.
    """
    try:
        await db.rollback()
        committed = await repository.exists(db, application_id)
    except SQLAlchemyError as e:
        logger.error(f"Could not check interrupted application {application_id}: {e}")
        return True

    logger.warning(
        f"Application submission cancelled during commit "
        f"({application_id} {'stored' if committed else 'not stored'})"
    )
    return committed


async def _send_confirmation_email(application: Application) -> None:
    try:
        sent = await send_application_confirmation(
            to_email=application.parent_email,
            student_name=application.student_name,
            application_number=application.application_number,
            submitted_at=application.submitted_at,
        )
        if not sent:
            logger.error(f"Failed to send confirmation email for {application.application_number}")
    except Exception as e:
        logger.error(
            f"Exception sending confirmation email for {application.application_number}: {e}"
        )


# ============================================
# Staff operations
# ============================================


async def get_application(db: AsyncSession, application_id: UUID) -> Application:
    """
    Raises:
        ApplicationNotFoundError: If application doesn't exist
    """
    application = await repository.get_by_id(db, application_id)

    if not application:
        logger.warning(f"Application not found: {application_id}")
        raise ApplicationNotFoundError(application_id)

    return application


async def list_applications(
    db: AsyncSession,
    filters: ApplicationFilters,
) -> tuple[list[Application], int]:
    logger.info(
        f"Staff listing applications: status={filters.status}, grade={filters.grade_level}, "
        f"search={filters.search}, sort={filters.sort_by}:{filters.sort_order}, "
        f"page={filters.page}, limit={filters.limit}"
    )
    return await repository.list_applications(db, filters)


async def update_application_status(
    db: AsyncSession,
    application_id: UUID,
    update: StatusUpdateRequest,
    reviewer: StaffUser,
) -> Application:
    """
    Change an application's status and notes.

    Any status may follow any other. The reviewer and review time are
    stamped only the first time the status leaves "submitted". The parent
    is emailed when the status actually changes.

    Raises:
        ApplicationNotFoundError: If application doesn't exist
    """
    logger.info(f"Staff {reviewer.id} setting application {application_id} to {update.status.value}")

    current = await get_application(db, application_id)
    previous_status = current.status

    application = await repository.update_status(
        db,
        application_id,
        update.status,
        notes=update.notes,
        reviewer_id=reviewer.id,
    )
    if application is None:
        raise ApplicationNotFoundError(application_id)

    if previous_status != application.status:
        await _send_status_email(application)

    return application


async def _send_status_email(application: Application) -> None:
    try:
        sent = await send_application_status_update(
            to_email=application.parent_email,
            student_name=application.student_name,
            application_number=application.application_number,
            status=application.status.value,
        )
        if not sent:
            logger.error(f"Failed to send status email for {application.application_number}")
    except Exception as e:
        logger.error(f"Exception sending status email for {application.application_number}: {e}")


async def get_document(
    db: AsyncSession,
    storage: FileStorage,
    application_id: UUID,
    kind: str,
) -> DocumentDownload:
    """
    Locate an application's stored document.

    Raises:
        ApplicationNotFoundError: If application doesn't exist
        DocumentNotFoundError: If the kind is unknown, was not uploaded, or the
            file is no longer in storage
    """
    application = await get_application(db, application_id)

    if kind not in DOCUMENT_KINDS:
        raise DocumentNotFoundError(kind)

    ref = (application.documents or {}).get(kind)
    if not ref:
        raise DocumentNotFoundError(kind)

    if not await storage.exists(ref):
        logger.error(f"Document {ref} of application {application.application_number} is missing")
        raise DocumentNotFoundError(kind)

    path = storage.resolve(ref)
    filename = f"{application.application_number}-{kind}{path.suffix}"
    media_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    return DocumentDownload(path=path, filename=filename, media_type=media_type)


async def get_application_stats(db: AsyncSession) -> dict:
    logger.info("Getting application stats")
    return await repository.get_stats(db)


__all__ = [
    "ApplicationNotFoundError",
    "DocumentDownload",
    "DocumentNotFoundError",
    "DuplicateApplicationNumberError",
    "SequenceExhaustedError",
    "StorageFailureError",
    "ValidationError",
    "collect_uploads",
    "get_application",
    "get_application_stats",
    "get_document",
    "list_applications",
    "parse_submission",
    "submit_application",
    "update_application_status",
    "validate_submission",
]

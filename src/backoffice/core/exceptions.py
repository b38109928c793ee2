"""
Error Envelope

Base service exception and the FastAPI exception handlers that render every
failure in the same shape:

    {"success": false, "error": "CODE", "message": "Human readable text"}

Validation failures additionally carry ``errors``: a list of
``{"field": "studentInfo.birthDate", "message": "..."}`` objects so clients
can show per-field messages without parsing a string.
"""

import logging
from collections.abc import Sequence
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "SERVICE_ERROR",
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)

    def to_detail(self) -> dict[str, Any]:
        """Detail dict for HTTPException, rendered by the envelope handler."""
        return {"error": self.error_code, "message": self.message}


class NotFoundError(ServiceError):
    """Unknown record or sub-resource."""

    def __init__(self, message: str, error_code: str = "NOT_FOUND"):
        super().__init__(message=message, error_code=error_code, status_code=404)


def format_error_location(loc: Sequence[Any]) -> str:
    """
    Turn a Pydantic error location into a dotted field name.

    ("body", "studentInfo", "birthDate") -> "studentInfo.birthDate"
    """
    parts = [str(part) for part in loc if part not in ("body", "query", "path", "form")]
    return ".".join(parts) if parts else "__root__"


def _clean_message(message: str) -> str:
    # Pydantic prefixes messages raised from custom validators
    return message.removeprefix("Value error, ")


def field_errors_from_pydantic(errors: Sequence[dict[str, Any]]) -> list[dict[str, str]]:
    """Convert Pydantic error dicts into the envelope's per-field error list."""
    return [
        {
            "field": format_error_location(error.get("loc", ())),
            "message": _clean_message(error.get("msg", "")),
        }
        for error in errors
    ]


def error_response(
    status_code: int,
    error_code: str,
    message: str,
    errors: list[dict[str, str]] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    content: dict[str, Any] = {"success": False, "error": error_code, "message": message}
    if errors is not None:
        content["errors"] = errors
    return JSONResponse(status_code=status_code, content=content, headers=headers)


async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    detail = exc.detail
    if isinstance(detail, dict):
        return error_response(
            exc.status_code,
            detail.get("error", "HTTP_ERROR"),
            detail.get("message", ""),
            errors=detail.get("errors"),
            headers=getattr(exc, "headers", None),
        )
    return error_response(
        exc.status_code,
        "HTTP_ERROR",
        str(detail),
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(
        status.HTTP_400_BAD_REQUEST,
        "VALIDATION_ERROR",
        "Validation failed",
        errors=field_errors_from_pydantic(exc.errors()),
    )


async def service_error_handler(_request: Request, exc: ServiceError) -> JSONResponse:
    detail = exc.to_detail()
    return error_response(
        exc.status_code,
        exc.error_code,
        exc.message,
        errors=detail.get("errors"),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "INTERNAL_ERROR",
        "An unexpected error occurred. Please try again later.",
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the envelope handlers on the application."""
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

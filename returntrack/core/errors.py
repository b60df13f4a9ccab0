from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

UNPROCESSABLE = 422


class ReturnsError(Exception):
    """Base class for failures surfaced to the operator."""

    code = "returns_error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, *, details: Any | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class StoreNotConfigured(ReturnsError):
    """Backend credentials are absent; every data operation is disabled."""

    code = "store_not_configured"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class StoreError(ReturnsError):
    """The backend rejected or failed a read/write."""

    code = "store_error"
    status_code = status.HTTP_502_BAD_GATEWAY


class ImportEmpty(ReturnsError):
    """An import produced no row with a usable barcode."""

    code = "import_empty"
    status_code = UNPROCESSABLE


class SpreadsheetError(ReturnsError):
    code = "spreadsheet_unreadable"
    status_code = UNPROCESSABLE


class CameraUnavailable(ReturnsError):
    """No camera, no permission, or the decoding libraries are missing."""

    code = "camera_unavailable"
    status_code = status.HTTP_409_CONFLICT


class ErrorEnvelope(JSONResponse):
    def __init__(
        self,
        *,
        status_code: int,
        code: str,
        message: str,
        details: Any | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        payload: dict[str, Any] = {"code": code, "message": message}
        if details is not None:
            payload["details"] = details
        super().__init__(payload, status_code=status_code, headers=headers)


async def returns_error_handler(request: Request, exc: ReturnsError):
    logger.warning(
        "request.failed",
        extra={"extra_data": {"code": exc.code, "path": request.url.path, "error": exc.message}},
    )
    return ErrorEnvelope(
        status_code=exc.status_code,
        code=exc.code,
        message=exc.message,
        details=exc.details,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail
    if isinstance(detail, str):
        message = detail
    else:
        message = "Error"
    details = detail if isinstance(detail, dict) else None
    return ErrorEnvelope(status_code=exc.status_code, code="http_error", message=message, details=details)


async def validation_exception_handler(request: Request, exc):  # type: ignore[override]
    from fastapi.exceptions import RequestValidationError

    if isinstance(exc, RequestValidationError):
        return ErrorEnvelope(
            status_code=UNPROCESSABLE,
            code="validation_error",
            message="Validation failed",
            details={"errors": exc.errors()},
        )
    raise exc

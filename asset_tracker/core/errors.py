from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class AssetTrackerError(Exception):
    """Base class for domain errors that map onto an HTTP response."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "asset_tracker_error"

    def __init__(self, message: str, *, details: Any | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class NotFoundError(AssetTrackerError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class ConflictError(AssetTrackerError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"


class InvalidTransitionError(ConflictError):
    code = "invalid_transition"


class StaleStateError(ConflictError):
    """The row changed between read and write; the caller should re-read."""

    code = "stale_state"


class DomainValidationError(AssetTrackerError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "validation_error"


class SequenceError(AssetTrackerError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "sequence_error"


class SequenceExhaustedError(SequenceError):
    status_code = status.HTTP_409_CONFLICT
    code = "sequence_exhausted"


class PermissionDeniedError(AssetTrackerError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"


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


def _status_phrase(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Error"


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail
    message = detail if isinstance(detail, str) else _status_phrase(exc.status_code)
    details = detail if isinstance(detail, dict) else None
    return ErrorEnvelope(
        status_code=exc.status_code,
        code="http_error",
        message=message,
        details=details,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return ErrorEnvelope(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        code="validation_error",
        message="Validation failed",
        details={"errors": jsonable_encoder(exc.errors())},
    )


async def domain_exception_handler(request: Request, exc: AssetTrackerError):
    level = logging.ERROR if exc.status_code >= 500 else logging.INFO
    logger.log(
        level,
        "request.domain_error",
        extra={"extra_data": {"code": exc.code, "error": exc.message, "path": request.url.path}},
    )
    details = exc.details if exc.details is None or isinstance(exc.details, dict) else {"info": exc.details}
    return ErrorEnvelope(
        status_code=exc.status_code,
        code=exc.code,
        message=exc.message,
        details=details,
    )

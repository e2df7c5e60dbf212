"""Domain error taxonomy and its HTTP rendering."""
from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class SubTrackerError(Exception):
    """Base class for errors that carry a client-safe message."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Unexpected error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(SubTrackerError):
    """Malformed or out-of-range input."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid input"


class DuplicateNameError(SubTrackerError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Name already exists"


class NotFoundError(SubTrackerError):
    """Row missing or owned by someone else; the two cases are not distinguished."""

    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class UnauthorizedError(SubTrackerError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Not authenticated"


class CancellationConflictError(SubTrackerError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Cancellation is not allowed in the current state"


class StorageError(SubTrackerError):
    """Unexpected persistence failure. The message never includes driver details."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Storage failure"


async def subtracker_error_handler(request: Request, exc: SubTrackerError) -> JSONResponse:
    if isinstance(exc, StorageError):
        logger.error(
            "Storage failure on %s %s [request_id=%s]",
            request.method,
            request.url.path,
            getattr(request.state, "request_id", "-"),
        )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render body validation failures as 400 with the first readable message."""
    errors = exc.errors()
    message = "Invalid request body"
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        raw = str(first.get("msg", "")).removeprefix("Value error, ")
        message = f"Invalid {field}: {raw}" if field else raw or message
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": message})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(SubTrackerError, subtracker_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)


__all__ = [
    "CancellationConflictError",
    "DuplicateNameError",
    "NotFoundError",
    "StorageError",
    "SubTrackerError",
    "UnauthorizedError",
    "ValidationError",
    "register_error_handlers",
]

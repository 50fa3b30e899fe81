"""
Error taxonomy for the messaging core.

Services raise these typed errors; the HTTP layer maps them to status codes
and the realtime gateway maps them to scoped `error` events.
"""
import logging
from typing import Any, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

logger = logging.getLogger(__name__)


class MessagingError(Exception):
    """Base class for business-rule failures."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, errors: Optional[List[Any]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors


class ValidationError(MessagingError):
    """Malformed or out-of-range input."""
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(MessagingError):
    """Referenced user or message does not exist."""
    status_code = status.HTTP_404_NOT_FOUND


class ForbiddenError(MessagingError):
    """Actor lacks rights over the resource."""
    status_code = status.HTTP_403_FORBIDDEN


class InvalidStateError(MessagingError):
    """Operation not permitted in the resource's current lifecycle state."""
    status_code = status.HTTP_400_BAD_REQUEST


class InternalError(MessagingError):
    """Unexpected failure."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


def error_body(message: str, errors: Optional[List[Any]] = None) -> dict:
    """Build the structured error envelope returned to HTTP callers."""
    body = {"status": "error", "message": message}
    if errors:
        body["errors"] = errors
    return body


async def messaging_error_handler(request: Request, exc: MessagingError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message, exc.errors))


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"field": ".".join(str(part) for part in err.get("loc", ())), "message": err.get("msg")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body("Validation failed", errors),
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {type(exc).__name__}: {exc}", exc_info=exc)
    # Internal details never reach the client
    return await messaging_error_handler(request, InternalError("Internal server error"))


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the error envelope handlers to a FastAPI application."""
    app.add_exception_handler(MessagingError, messaging_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

"""
Custom exceptions. Every error leaves the API as {"detail": {"code", "message"}}.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class ConsoleError(HTTPException):
    """Base exception for the chat console."""

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        headers: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            status_code=status_code,
            detail={"code": code, "message": message},
            headers=headers,
        )
        self.code = code
        self.message = message


class ValidationError(ConsoleError):
    def __init__(self, message: str, code: str = "VALIDATION_ERROR"):
        super().__init__(status.HTTP_400_BAD_REQUEST, code, message)


class NotAuthenticated(ConsoleError):
    def __init__(self):
        super().__init__(
            status.HTTP_401_UNAUTHORIZED,
            "NOT_AUTHENTICATED",
            "Authentication required.",
            headers={"WWW-Authenticate": "Bearer"},
        )


class SessionExpired(ConsoleError):
    def __init__(self):
        super().__init__(
            status.HTTP_401_UNAUTHORIZED,
            "SESSION_EXPIRED",
            "Session expired or invalid. Please log in again.",
            headers={"WWW-Authenticate": "Bearer"},
        )


class Forbidden(ConsoleError):
    def __init__(self, message: str = "You don't have permission to perform this action."):
        super().__init__(status.HTTP_403_FORBIDDEN, "FORBIDDEN", message)


class NotFound(ConsoleError):
    def __init__(self, resource: str = "Resource"):
        super().__init__(
            status.HTTP_404_NOT_FOUND,
            "NOT_FOUND",
            f"{resource} not found.",
        )
        self.resource = resource


class Conflict(ConsoleError):
    def __init__(self, message: str, code: str = "CONFLICT"):
        super().__init__(status.HTTP_409_CONFLICT, code, message)


class AlreadyParticipant(Conflict):
    def __init__(self):
        super().__init__("Operator is already a participant.", code="ALREADY_PARTICIPANT")


class NotParticipant(Conflict):
    def __init__(self):
        super().__init__("Operator is not an active participant.", code="NOT_PARTICIPANT")


class Gone(ConsoleError):
    def __init__(self, message: str = "This chat has been deleted."):
        super().__init__(status.HTTP_410_GONE, "ROOM_DELETED", message)


class StorageError(ConsoleError):
    def __init__(self, message: str = "Failed to save changes. Please try again."):
        super().__init__(status.HTTP_500_INTERNAL_SERVER_ERROR, "STORAGE_ERROR", message)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Missing or malformed request fields are a 400, not FastAPI's default 422."""
    errors = exc.errors()
    logger.info(f"Validation failed on {request.url.path}: {len(errors)} error(s)")
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = first.get("msg", "Invalid request.")
    if field:
        message = f"{field}: {message}"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": {"code": "VALIDATION_ERROR", "message": message}},
    )


async def storage_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Database errors that escaped a service (mostly reads) leave as STORAGE_ERROR."""
    logger.exception(f"Storage failure on {request.method} {request.url.path}: {exc}")
    error = StorageError()
    return JSONResponse(status_code=error.status_code, content={"detail": error.detail})

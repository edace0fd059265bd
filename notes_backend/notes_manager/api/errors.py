"""Typed errors raised by the services and their mapping to HTTP responses.

Each error carries its own status code; the handlers registered by
`register_exception_handlers` turn them into `{"message": ...}` bodies.
Anything that is not one of these errors becomes a generic 500.
"""
import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred"


class NotesManagerError(Exception):
    """Base class for errors that map onto a client-visible status code."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = UNEXPECTED_ERROR_MESSAGE

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(NotesManagerError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class DuplicateEmail(ValidationError):
    default_message = "This email is already registered"


class WeakCredential(ValidationError):
    default_message = "Password does not meet the password policy"


class InvalidCredentials(ValidationError):
    default_message = "Invalid credentials"


class EmptySearchTerm(ValidationError):
    default_message = "Search term cannot be empty"


class MissingDateRange(ValidationError):
    default_message = "At least one date must be provided"


class InvalidRange(ValidationError):
    default_message = "Start date must be before end date"


class InvalidDate(ValidationError):
    default_message = "Date is out of the supported range"


class AuthenticationError(NotesManagerError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Could not validate credentials or session expired"


class NotFoundError(NotesManagerError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class NoteNotFound(NotFoundError):
    default_message = "Note not found"


class UserNotFound(NotFoundError):
    default_message = "User not found"


def _message_from_validation(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(p) for p in error.get("loc", ()) if p not in ("body", "query", "path"))
        parts.append(f"{location}: {error.get('msg')}" if location else error.get("msg", ""))
    return "; ".join(parts) or ValidationError.default_message


# PUBLIC_INTERFACE
def register_exception_handlers(app: FastAPI) -> None:
    """Attach the error-to-response handlers to the application."""

    @app.exception_handler(NotesManagerError)
    async def notes_manager_error_handler(request: Request, exc: NotesManagerError) -> JSONResponse:
        headers = None
        if isinstance(exc, AuthenticationError):
            headers = {"WWW-Authenticate": "Bearer"}
        logger.info("%s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"message": exc.message}, headers=headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        message = _message_from_validation(exc)
        logger.info("%s %s -> 400 %s", request.method, request.url.path, message)
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"message": message})

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"message": UNEXPECTED_ERROR_MESSAGE},
        )

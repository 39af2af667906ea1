"""
Error Handling

Operational errors (AppError and subclasses) carry a status code and a safe
message and are returned to the caller as-is. Store faults are translated
into operational 400/409 errors. Anything else is logged and reported as a
generic 500; development mode adds the error detail and stack.
"""

import logging
import re
import traceback
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings
from .responses import json_response

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Expected, user-facing failure"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Something went wrong"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        self.message = message or self.default_message
        super().__init__(self.message)
        if status_code is not None:
            self.status_code = status_code
        self.status = "fail" if 400 <= self.status_code < 500 else "error"
        self.is_operational = True


class BadRequest(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Bad request"


class InvalidId(BadRequest):
    def __init__(self, field: str, value):
        super().__init__(f"Invalid {field}: {value}")


class InvalidOrExpiredToken(BadRequest):
    default_message = "Token is invalid or has expired"


class Unauthenticated(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "You are not logged in. Please log in to get access."


class InvalidCredentials(Unauthenticated):
    default_message = "Incorrect email or password"


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "You do not have permission to perform this action."


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class Conflict(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"


# --- Store fault translation ---

_PG_DUPLICATE_RE = re.compile(r"Key \((?P<field>[^)]+)\)=\((?P<value>[^)]*)\) already exists")
_SQLITE_DUPLICATE_RE = re.compile(r"UNIQUE constraint failed: [\w]+\.(?P<field>\w+)")


def handle_duplicate_fields(err: IntegrityError) -> AppError:
    text = str(err.orig)
    match = _PG_DUPLICATE_RE.search(text) or _SQLITE_DUPLICATE_RE.search(text)
    if match is None:
        return BadRequest("Invalid input data. Constraint violated")
    value = match.groupdict().get("value") or match.group("field")
    return BadRequest(f"Duplicate field value: {value}, Please use another value!")


def handle_validation_error(errors) -> AppError:
    messages = []
    for error in errors:
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        message = error.get("msg", "invalid value")
        messages.append(f"{location}: {message}" if location else message)
    return BadRequest(f"Invalid input data. {'. '.join(messages)}")


def translate_error(exc: Exception) -> Optional[AppError]:
    """Map store/validation faults to operational errors, None if not one of them."""
    if isinstance(exc, AppError):
        return exc
    if isinstance(exc, IntegrityError):
        return handle_duplicate_fields(exc)
    if isinstance(exc, (ValidationError, RequestValidationError)):
        return handle_validation_error(exc.errors())
    if isinstance(exc, StaleDataError):
        return Conflict("The document was modified concurrently. Please try again.")
    return None


# --- Handlers ---

def _error_payload(error: AppError, exc: Exception, settings: Settings) -> dict:
    payload = {"status": error.status, "message": error.message}
    if settings.is_development:
        payload["error"] = repr(exc)
        payload["stack"] = traceback.format_exception(type(exc), exc, exc.__traceback__)
    return payload


def register_error_handlers(app: FastAPI, settings: Settings) -> None:
    """Attach the envelope-producing exception handlers to the app."""

    async def operational_error_handler(request: Request, exc: Exception) -> JSONResponse:
        error = translate_error(exc)
        if error.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, error.message)
        return json_response(error.status_code, False, error.message, _error_payload(error, exc, settings))

    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
            error = NotFound(f"Can't find {request.url.path} on this server!")
        else:
            error = AppError(str(exc.detail), exc.status_code)
        return json_response(error.status_code, False, error.message, _error_payload(error, exc, settings))

    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        if settings.is_development:
            error = AppError(str(exc) or type(exc).__name__)
        else:
            error = AppError("Something went very wrong!")
        return json_response(error.status_code, False, error.message, _error_payload(error, exc, settings))

    for exc_class in (AppError, IntegrityError, ValidationError, RequestValidationError, StaleDataError):
        app.add_exception_handler(exc_class, operational_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)

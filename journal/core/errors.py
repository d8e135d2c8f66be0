"""Error taxonomy for the Journal API and the handlers that render it.

Every failure a client can trigger is an ``ApiError`` subclass carrying its
HTTP status and the exact message returned in the ``{"error": ...}`` body.
Handlers are registered by ``journal.create_app``.
"""

from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException


class ApiError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, *, headers: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.headers = headers


class MissingField(ApiError):
    def __init__(self, field: str) -> None:
        super().__init__(f"Your request body did not specify a '{field}'")
        self.field = field


class InvalidField(ApiError):
    def __init__(self, field: str, message: str | None = None) -> None:
        super().__init__(message or f"The '{field}' in your request body must be a string")
        self.field = field


class UnsupportedMediaType(ApiError):
    def __init__(self) -> None:
        super().__init__("Your request did not include a 'Content-Type: application/json' header")


class MalformedBody(ApiError):
    pass


class DuplicateUsername(ApiError):
    pass


class DuplicateEmail(ApiError):
    pass


class AuthenticationRequired(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED


class Forbidden(ApiError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(ApiError):
    status_code = status.HTTP_404_NOT_FOUND


class InvalidPagination(ApiError):
    pass


class ErrorEnvelope(JSONResponse):
    def __init__(
        self,
        *,
        status_code: int,
        message: str,
        headers: dict[str, str] | None = None,
    ) -> None:
        payload: dict[str, Any] = {"error": message}
        super().__init__(payload, status_code=status_code, headers=headers)


async def api_error_handler(request: Request, exc: ApiError):
    return ErrorEnvelope(status_code=exc.status_code, message=exc.message, headers=exc.headers)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail
    message = detail if isinstance(detail, str) and detail else "Error"
    return ErrorEnvelope(
        status_code=exc.status_code,
        message=message,
        headers=getattr(exc, "headers", None),
    )


def _describe_validation_error(error: dict[str, Any]) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()) if part not in ("path", "query", "body"))
    message = error.get("msg") or "is invalid"
    return f"'{location}' {message}" if location else str(message)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = _describe_validation_error(errors[0]) if errors else "Validation failed"
    return ErrorEnvelope(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, message=message)


__all__ = [
    "ApiError",
    "AuthenticationRequired",
    "DuplicateEmail",
    "DuplicateUsername",
    "ErrorEnvelope",
    "Forbidden",
    "InvalidField",
    "InvalidPagination",
    "MalformedBody",
    "MissingField",
    "NotFound",
    "UnsupportedMediaType",
    "api_error_handler",
    "http_exception_handler",
    "validation_exception_handler",
]

"""
Uniform service response envelope.

Every public service coroutine returns a ``ServiceResponse``:

    {"success": true, "data": ...}
    {"success": false, "error": {"code": "...", "message": "...", "details": ...}}

Business-rule rejections are raised inside a service as ``ServiceError`` and
converted by ``service_boundary``; anything else that escapes the service body
(provider failures, bugs) becomes the operation's generic ``*_ERROR`` code.
"""

from __future__ import annotations

import functools
from collections.abc import Awaitable, Callable
from typing import Any, ParamSpec

import structlog
from fastapi.responses import JSONResponse
from pydantic import BaseModel

logger = structlog.get_logger()

P = ParamSpec("P")


class ErrorBody(BaseModel):
    code: str
    message: str
    details: Any | None = None


class ServiceResponse(BaseModel):
    success: bool
    data: Any | None = None
    error: ErrorBody | None = None

    @property
    def code(self) -> str | None:
        """Error code, or None on success."""
        return self.error.code if self.error else None


class ServiceError(Exception):
    """A rejected operation with a stable, client-facing error code."""

    def __init__(self, code: str, message: str, details: Any | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details


def ok(data: Any | None = None) -> ServiceResponse:
    """Success envelope."""
    return ServiceResponse(success=True, data=data)


def fail(code: str, message: str, details: Any | None = None) -> ServiceResponse:
    """Error envelope."""
    return ServiceResponse(success=False, error=ErrorBody(code=code, message=message, details=details))


def describe(exc: BaseException) -> str:
    """Human-readable message for a provider or runtime error."""
    message = getattr(exc, "message", None)
    if isinstance(message, str) and message:
        return message
    return str(exc)


def service_boundary(
    error_code: str,
    fallback_message: str,
) -> Callable[[Callable[P, Awaitable[ServiceResponse]]], Callable[P, Awaitable[ServiceResponse]]]:
    """Wrap a service coroutine so that no exception escapes it."""

    def decorator(fn: Callable[P, Awaitable[ServiceResponse]]) -> Callable[P, Awaitable[ServiceResponse]]:
        @functools.wraps(fn)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> ServiceResponse:
            try:
                return await fn(*args, **kwargs)
            except ServiceError as e:
                return fail(e.code, e.message, e.details)
            except Exception as exc:
                logger.warning(
                    "service_call_failed",
                    operation=fn.__qualname__,
                    code=error_code,
                    error=describe(exc),
                )
                return fail(error_code, describe(exc) or fallback_message)

        return wrapper

    return decorator


# Error code -> HTTP status for the route layer.
_STATUS_BY_CODE = {
    "UNAUTHORIZED": 401,
    "SESSION_EXPIRED": 401,
    "INVALID_CREDENTIALS": 401,
    "FORBIDDEN": 403,
    "USER_BLOCKED": 403,
    "NOT_PARTICIPATING": 404,
    "INVALID_EMAIL": 400,
    "WEAK_PASSWORD": 400,
    "INVALID_INPUT": 400,
    "INVALID_DATES": 400,
    "INVALID_TIME_FORMAT": 400,
    "NO_PARTICIPANTS": 400,
    "INVALID_HABIT": 400,
    "INVALID_MFA_CODE": 400,
    "OAUTH_ERROR": 400,
    "CHALLENGE_NOT_ACTIVE": 409,
    "EMAIL_EXISTS": 409,
    "USERNAME_TAKEN": 409,
    "REQUEST_EXISTS": 409,
    "ALREADY_BLOCKED": 409,
    "ALREADY_PARTICIPATING": 409,
    "HABIT_LIMIT_REACHED": 409,
    "RATE_LIMITED": 429,
    "NOTIFICATIONS_DISABLED": 422,
}


def status_for(response: ServiceResponse, success_status: int = 200) -> int:
    """HTTP status for an envelope."""
    if response.success:
        return success_status
    code = response.code or ""
    if code in _STATUS_BY_CODE:
        return _STATUS_BY_CODE[code]
    if code.endswith("_NOT_FOUND"):
        return 404
    return 500


def as_json(response: ServiceResponse, success_status: int = 200) -> JSONResponse:
    """Render an envelope with the status derived from its error code."""
    return JSONResponse(
        status_code=status_for(response, success_status),
        content=response.model_dump(mode="json", exclude_none=True),
    )

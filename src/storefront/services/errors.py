"""Typed service errors and the uniform result shape.

Services raise a `ServiceError` subclass for every expected failure. The
API layer turns them into ``{"success": false, "message": ...}`` bodies,
so messages here are the only text a client ever sees.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from functools import wraps
from typing import Any, ParamSpec, TypeVar

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")


class ErrorKind(str, Enum):
    """Failure categories exposed by the services."""

    VALIDATION = "ValidationError"
    NOT_FOUND = "NotFound"
    INVALID_OR_EXPIRED = "InvalidOrExpired"
    CONFLICT = "Conflict"
    UPDATE_FAILED = "UpdateFailed"
    UNAVAILABLE = "Unavailable"
    INVALID_CREDENTIALS = "InvalidCredentials"


class ServiceError(Exception):
    """Base class for expected service failures."""

    kind: ErrorKind = ErrorKind.UNAVAILABLE
    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_result(self) -> "ServiceResult":
        return ServiceResult(success=False, message=self.message)


class InvalidInputError(ServiceError):
    """Missing or malformed input."""

    kind = ErrorKind.VALIDATION
    status_code = 400
    default_message = "Invalid input"


class NotFoundError(ServiceError):
    kind = ErrorKind.NOT_FOUND
    status_code = 404
    default_message = "Account not found"


class InvalidCodeError(ServiceError):
    """Verification code absent, mismatched or expired.

    Expiry reports the same message as a wrong code.
    """

    kind = ErrorKind.INVALID_OR_EXPIRED
    status_code = 400
    default_message = "Invalid or expired code"


class ConflictError(ServiceError):
    kind = ErrorKind.CONFLICT
    status_code = 409
    default_message = "Email already registered"


class UpdateFailedError(ServiceError):
    """A store mutation affected zero rows."""

    kind = ErrorKind.UPDATE_FAILED
    status_code = 500
    default_message = "Update failed"


class UnavailableError(ServiceError):
    """A collaborator (database, code store, email) could not be reached."""

    kind = ErrorKind.UNAVAILABLE
    status_code = 500
    default_message = "Internal server error"


class InvalidCredentialsError(ServiceError):
    kind = ErrorKind.INVALID_CREDENTIALS
    status_code = 401
    default_message = "Invalid email or password"


@dataclass
class ServiceResult:
    """Uniform operation result: ``{success, message, ...payload}``."""

    success: bool
    message: str
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"success": self.success, "message": self.message, **self.data}


def service_boundary(
    operation: str,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Translate unexpected collaborator failures into `UnavailableError`.

    `ServiceError` subclasses pass through untouched. Anything else is
    logged with full detail and replaced by a generic error, so store or
    email error text never reaches the caller.
    """

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            try:
                return await func(*args, **kwargs)
            except ServiceError:
                raise
            except Exception as e:
                logger.exception(f"{operation} failed: {e!r}")
                raise UnavailableError() from e

        return wrapper

    return decorator

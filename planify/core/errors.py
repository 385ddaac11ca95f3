"""
Application error taxonomy.

Domain code raises these typed errors; ``planify.api.errors`` is the single
place that turns them into HTTP responses.
"""

from typing import Any, Iterable, Mapping, Optional


class AppError(Exception):
    """Base class for errors that carry an HTTP status and a client-safe message."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        status_code: Optional[int] = None,
        is_operational: bool = True,
        errors: Optional[list[dict[str, str]]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        self.is_operational = is_operational
        self.errors = errors
        self.headers = headers
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, status_code={self.status_code})"


class BadRequestError(AppError):
    status_code = 400
    default_message = "Bad request"


class UnauthorizedError(AppError):
    status_code = 401
    default_message = "Unauthorized access"


class ForbiddenError(AppError):
    status_code = 403
    default_message = "You do not have permission to access this resource"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Resource not found"


class ConflictError(AppError):
    status_code = 409
    default_message = "Resource already exists"


class ValidationError(AppError):
    """Malformed or disallowed input. ``errors`` lists every failing field."""

    status_code = 422
    default_message = "Validation failed"

    @classmethod
    def for_fields(cls, errors: list[dict[str, str]], message: Optional[str] = None) -> "ValidationError":
        return cls(message, errors=errors)


class RateLimitError(AppError):
    status_code = 429
    default_message = "Too many requests from this IP, please try again later."


class InternalError(AppError):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, **kwargs: Any) -> None:
        kwargs.setdefault("is_operational", False)
        super().__init__(message, **kwargs)


class ServiceUnavailableError(AppError):
    """A dependency (usually the credential store) did not answer in time. Safe to retry."""

    status_code = 503
    default_message = "Service temporarily unavailable, please retry"


def field_error(field: str, message: str) -> dict[str, str]:
    return {"field": field, "message": message}


_LOCATION_PREFIXES = ("body", "query", "path", "header", "cookie")


def field_errors_from_pydantic(errors: Iterable[Mapping[str, Any]]) -> list[dict[str, str]]:
    """Flatten pydantic error dicts into ``{field, message}`` pairs."""
    result = []
    for error in errors:
        location = [str(part) for part in error.get("loc", ())]
        if location and location[0] in _LOCATION_PREFIXES:
            location = location[1:]
        result.append(field_error(".".join(location) or "body", error.get("msg", "Invalid value")))
    return result

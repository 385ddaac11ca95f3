"""
Response envelope shared by every endpoint.
"""

from typing import Any, Optional

from pydantic import BaseModel


class FieldError(BaseModel):
    """One failing input, named the way the client sent it."""

    field: str
    message: str


class ApiResponse(BaseModel):
    """Uniform response envelope: ``{success, message, data?, errors?}``."""

    success: bool
    message: str
    data: Optional[dict[str, Any]] = None
    errors: Optional[list[FieldError]] = None


def ok(message: str, data: Optional[dict[str, Any]] = None) -> ApiResponse:
    """Success envelope. ``data`` is left unset (and so omitted) when not given."""
    if data is None:
        return ApiResponse(success=True, message=message)
    return ApiResponse(success=True, message=message, data=data)

"""Pydantic schemas for request/response validation."""

from planify.schemas.common import ApiResponse, FieldError, ok
from planify.schemas.token import RefreshRequest, TokenClaims
from planify.schemas.user import (
    MUTABLE_PROFILE_FIELDS,
    PasswordChange,
    ProfileUpdate,
    UserCreate,
    UserLogin,
    UserPublic,
    UserStatusUpdate,
    public_profile,
)

__all__ = [
    "ApiResponse",
    "FieldError",
    "MUTABLE_PROFILE_FIELDS",
    "PasswordChange",
    "ProfileUpdate",
    "RefreshRequest",
    "TokenClaims",
    "UserCreate",
    "UserLogin",
    "UserPublic",
    "UserStatusUpdate",
    "ok",
    "public_profile",
]

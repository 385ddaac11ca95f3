"""
User schemas for API request/response validation.
Separates internal models from API contracts using Pydantic.

Wire names are camelCase (``firstName``); attribute names stay snake_case.
"""

from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from planify.models.user import User, UserRole

# Keys a client may send to PUT /auth/profile. Anything else is rejected.
MUTABLE_PROFILE_FIELDS = frozenset({"firstName", "lastName", "bio", "phone", "dateOfBirth"})


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UserCreate(CamelModel):
    """
    Schema for user registration.

    Only the role is checked here (unknown roles never get past parsing);
    the remaining field rules run in the credential store so that every
    failing field is reported together.
    """

    email: Optional[str] = None
    password: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: UserRole = UserRole.USER


class UserLogin(BaseModel):
    """Schema for user login."""

    email: str
    password: str


class ProfileUpdate(CamelModel):
    """Schema for the whitelisted profile fields."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    bio: Optional[str] = None
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None


class PasswordChange(CamelModel):
    """Schema for PUT /auth/change-password."""

    current_password: str
    new_password: str


class UserStatusUpdate(CamelModel):
    """Schema for the administrative block/unblock switch."""

    is_blocked: bool


class UserPublic(CamelModel):
    """
    Schema for user data in API responses.
    Excludes sensitive information like the password hash.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: int
    email: str
    first_name: str
    last_name: str
    full_name: str
    role: UserRole
    bio: Optional[str] = None
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    profile_picture: Optional[str] = None
    community_id: Optional[str] = None
    club_id: Optional[str] = None
    is_active: bool
    is_blocked: bool
    is_email_verified: bool
    last_login: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


def public_profile(user: User) -> dict[str, Any]:
    """Serialize a user for the wire (camelCase, JSON types, no password hash)."""
    return UserPublic.model_validate(user).model_dump(mode="json", by_alias=True)

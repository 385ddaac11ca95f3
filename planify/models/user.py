"""
User model with role-based access control.

The user record is the only persisted entity. Field rules live next to the
model so the credential store can check every field at write time and report
all failures at once.
"""

import re
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Mapping, Optional

from email_validator import EmailNotValidError, validate_email
from sqlmodel import Field, SQLModel

from planify.core.errors import field_error

EMAIL_MAX_LENGTH = 255
NAME_MAX_LENGTH = 50
BIO_MAX_LENGTH = 500
PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_BYTES = 72  # bcrypt ignores anything past this

PHONE_PATTERN = re.compile(r"^\+?[\d\s\-()]{10,}$")


class UserRole(str, Enum):
    """User role enumeration for RBAC."""

    USER = "user"
    COMMUNITY_LEAD = "community_lead"
    CLUB_LEAD = "club_lead"
    CLUB_MEMBER = "club_member"
    ADMIN = "admin"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(SQLModel, table=True):
    """
    User account.

    Attributes:
        id: Primary key
        email: Unique, lower-cased email address (used for login, never updated)
        password_hash: Bcrypt digest, never serialized
        first_name / last_name: Required display names
        bio, phone, date_of_birth, profile_picture: Optional profile fields
        role: One of ``UserRole``
        community_id / club_id: Weak references to other services' records
        is_active: False once the account is deactivated (soft delete)
        is_blocked: Administrative lock
        is_email_verified: Not used by any flow yet
        last_login: Set on login and on every authenticated request
    """

    __tablename__ = "users"  # type: ignore

    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(unique=True, index=True, max_length=EMAIL_MAX_LENGTH)
    password_hash: str
    first_name: str = Field(max_length=NAME_MAX_LENGTH)
    last_name: str = Field(max_length=NAME_MAX_LENGTH)
    bio: Optional[str] = Field(default=None, max_length=BIO_MAX_LENGTH)
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    profile_picture: Optional[str] = None
    role: UserRole = Field(default=UserRole.USER, index=True)
    community_id: Optional[str] = Field(default=None, index=True)
    club_id: Optional[str] = Field(default=None, index=True)
    is_active: bool = Field(default=True)
    is_blocked: bool = Field(default=False)
    is_email_verified: bool = Field(default=False)
    last_login: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


def normalize_email(email: str) -> str:
    return email.strip().lower()


def is_valid_email(email: str) -> bool:
    """Syntax check only; the domain is not looked up."""
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def validate_password(password: Optional[str], field: str = "password") -> list[dict[str, str]]:
    """Return one error per password rule the value breaks."""
    if not password:
        return [field_error(field, "Password is required")]

    errors = []
    if len(password) < PASSWORD_MIN_LENGTH:
        errors.append(field_error(field, f"Password must be at least {PASSWORD_MIN_LENGTH} characters long"))
    if len(password.encode("utf-8")) > PASSWORD_MAX_BYTES:
        errors.append(field_error(field, f"Password cannot exceed {PASSWORD_MAX_BYTES} bytes"))
    if not re.search(r"[a-z]", password):
        errors.append(field_error(field, "Password must contain at least one lowercase letter"))
    if not re.search(r"[A-Z]", password):
        errors.append(field_error(field, "Password must contain at least one uppercase letter"))
    if not re.search(r"\d", password):
        errors.append(field_error(field, "Password must contain at least one number"))
    return errors


def validate_user_fields(values: Mapping[str, Any]) -> list[dict[str, str]]:
    """
    Check a set of user attributes against the field rules.

    ``values`` is keyed by attribute name. Errors use the camelCase names the
    client sent so each input can be highlighted. When a ``password`` key is
    present the password rules are checked too.
    """
    errors: list[dict[str, str]] = []

    email = values.get("email")
    if not email:
        errors.append(field_error("email", "Email is required"))
    elif len(email) > EMAIL_MAX_LENGTH or not is_valid_email(email):
        errors.append(field_error("email", "Please provide a valid email address"))

    for attr, wire_name, label in (
        ("first_name", "firstName", "First name"),
        ("last_name", "lastName", "Last name"),
    ):
        value = values.get(attr)
        if not value or not str(value).strip():
            errors.append(field_error(wire_name, f"{label} is required"))
        elif len(value) > NAME_MAX_LENGTH:
            errors.append(field_error(wire_name, f"{label} cannot exceed {NAME_MAX_LENGTH} characters"))

    bio = values.get("bio")
    if bio is not None and len(bio) > BIO_MAX_LENGTH:
        errors.append(field_error("bio", f"Bio cannot exceed {BIO_MAX_LENGTH} characters"))

    phone = values.get("phone")
    if phone and not PHONE_PATTERN.match(phone):
        errors.append(field_error("phone", "Please provide a valid phone number"))

    role = values.get("role", UserRole.USER)
    try:
        UserRole(role)
    except ValueError:
        allowed = ", ".join(r.value for r in UserRole)
        errors.append(field_error("role", f"Role must be one of: {allowed}"))

    if "password" in values:
        errors.extend(validate_password(values.get("password")))

    return errors

"""
Account service layer implementing the registration, login and profile flows.
Separates business logic from API routes and database operations.
"""

from dataclasses import dataclass
from typing import Any, Mapping

from pydantic import ValidationError as PydanticValidationError
from sqlmodel import Session

from planify.core.errors import (
    BadRequestError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
    field_error,
    field_errors_from_pydantic,
)
from planify.core.logging import get_logger
from planify.core.security import (
    create_access_token,
    create_refresh_token,
    dummy_verify,
    get_password_hash,
    refresh_tokens,
    verify_password,
)
from planify.models.user import User, validate_password
from planify.schemas.user import MUTABLE_PROFILE_FIELDS, ProfileUpdate, UserCreate
from planify.services.credential_store import CredentialStore

logger = get_logger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"
DEACTIVATED_MESSAGE = "Your account has been deactivated"
BLOCKED_MESSAGE = "Your account has been blocked"
USER_GONE_MESSAGE = "User associated with this token no longer exists"


@dataclass
class AuthResult:
    """A user together with freshly issued tokens."""

    user: User
    token: str
    refresh_token: str


def check_account_status(user: User) -> None:
    """
    Reject deactivated or blocked accounts.

    Raises:
        UnauthorizedError: The account may not be used
    """
    if not user.is_active:
        raise UnauthorizedError(DEACTIVATED_MESSAGE)
    if user.is_blocked:
        raise UnauthorizedError(BLOCKED_MESSAGE)


def issue_tokens(user: User) -> tuple[str, str]:
    assert user.id is not None
    token = create_access_token(user.id, email=user.email, role=user.role.value)
    return token, create_refresh_token(user.id)


class AccountService:
    """
    Orchestrates the account flows on top of the credential store.
    """

    def __init__(self, session: Session):
        self.store = CredentialStore(session)

    def register(self, user_in: UserCreate) -> AuthResult:
        """
        Create an account and log it in.

        Raises:
            ValidationError: Field rules failed
            ConflictError: Email already registered
        """
        user = self.store.create(user_in.model_dump())
        token, refresh_token = issue_tokens(user)
        logger.info(f"New user registered: {user.email} (ID: {user.id}, role: {user.role.value})")
        return AuthResult(user=user, token=token, refresh_token=refresh_token)

    def login(self, email: str, password: str) -> AuthResult:
        """
        Check credentials and issue tokens.

        An unknown email and a wrong password fail with the same message.
        Account status is only revealed once the password has matched.

        Raises:
            UnauthorizedError: Bad credentials, or deactivated/blocked account
        """
        user = self.store.find_by_email(email, include_password=True)
        if user is None:
            dummy_verify()
            logger.warning("Failed login attempt for unknown email")
            raise UnauthorizedError(INVALID_CREDENTIALS_MESSAGE)

        if not verify_password(password, user.password_hash):
            logger.warning(f"Failed login attempt for user {user.id}")
            raise UnauthorizedError(INVALID_CREDENTIALS_MESSAGE)

        try:
            check_account_status(user)
        except UnauthorizedError:
            logger.warning(f"Login refused for unusable account {user.id}")
            raise

        self.store.touch_last_login(user)
        token, refresh_token = issue_tokens(user)
        logger.info(f"User logged in: {user.email} (ID: {user.id})")
        return AuthResult(user=user, token=token, refresh_token=refresh_token)

    def refresh(self, refresh_token: str) -> str:
        """
        Exchange a refresh token for a new access token.

        Raises:
            InvalidTokenError / ExpiredTokenError: Token rejected
            UnauthorizedError: Account gone, deactivated or blocked
        """
        claims = refresh_tokens.verify(refresh_token)
        user = self.store.find_by_id(claims.user_id)
        if user is None:
            raise UnauthorizedError(USER_GONE_MESSAGE)
        check_account_status(user)
        token, _ = issue_tokens(user)
        return token

    def update_profile(self, user: User, payload: Mapping[str, Any]) -> User:
        """
        Apply a profile update restricted to the whitelisted fields.

        Raises:
            ValidationError: Unknown keys ("Invalid updates detected") or bad values
        """
        unknown = sorted(set(payload) - MUTABLE_PROFILE_FIELDS)
        if unknown:
            raise ValidationError(
                "Invalid updates detected",
                errors=[field_error(key, "This field cannot be updated") for key in unknown],
            )

        try:
            update = ProfileUpdate.model_validate(payload)
        except PydanticValidationError as e:
            raise ValidationError.for_fields(field_errors_from_pydantic(e.errors())) from e

        for attr, value in update.model_dump(exclude_unset=True).items():
            if attr in ("first_name", "last_name") and isinstance(value, str):
                value = value.strip()
            setattr(user, attr, value)

        return self.store.save(user)

    def change_password(self, user: User, current_password: str, new_password: str) -> None:
        """
        Replace the password hash after checking the current password.
        Issued tokens stay valid.

        Raises:
            BadRequestError: Current password is wrong
            ValidationError: New password breaks the password rules
        """
        assert user.id is not None
        record = self.store.find_by_id(user.id, include_password=True)
        if record is None:
            raise NotFoundError("User not found")

        if not verify_password(current_password, record.password_hash):
            logger.warning(f"Password change with wrong current password for user {user.id}")
            raise BadRequestError("Current password is incorrect")

        errors = validate_password(new_password, field="newPassword")
        if errors:
            raise ValidationError.for_fields(errors)

        record.password_hash = get_password_hash(new_password)
        self.store.save(record)
        logger.info(f"Password changed for user {user.id}")

    def deactivate(self, user: User) -> User:
        """Soft delete: the record stays, the account can no longer authenticate."""
        user.is_active = False
        user = self.store.save(user, validate=False)
        logger.info(f"Account deactivated: {user.id}")
        return user

    def logout(self, user: User) -> None:
        """
        Nothing to revoke server-side: the bearer token stays valid until it
        expires and the client is expected to discard it.
        """
        logger.info(f"User logged out: {user.id}")

    def list_users(self, offset: int = 0, limit: int = 100) -> list[User]:
        return self.store.list_users(offset=offset, limit=limit)

    def get_user(self, user_id: int) -> User:
        user = self.store.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def set_blocked(self, user_id: int, blocked: bool) -> User:
        """Administrative lock. Blocked users are refused at login and on every request."""
        user = self.get_user(user_id)
        user.is_blocked = blocked
        user = self.store.save(user, validate=False)
        logger.info(f"User {user.id} {'blocked' if blocked else 'unblocked'}")
        return user

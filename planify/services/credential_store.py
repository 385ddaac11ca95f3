"""
Credential store: persistence for user records.

Wraps a SQLModel session. Every write checks all field rules and reports the
full list of failures; reads leave the password hash out of the SELECT unless
the caller asks for it.
"""

from contextlib import contextmanager
from typing import Any, Iterator, Mapping, Optional

from sqlalchemy.exc import DisconnectionError, IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import defer
from sqlmodel import Session, col, select

from planify.core.errors import ConflictError, ServiceUnavailableError, ValidationError
from planify.core.logging import get_logger
from planify.core.security import get_password_hash
from planify.models.user import User, UserRole, normalize_email, utcnow, validate_user_fields

logger = get_logger(__name__)

DUPLICATE_EMAIL_MESSAGE = "User with this email already exists"

# Attributes a caller may pass to ``create``.
CREATABLE_FIELDS = frozenset(
    {
        "email",
        "password",
        "first_name",
        "last_name",
        "role",
        "bio",
        "phone",
        "date_of_birth",
        "profile_picture",
        "community_id",
        "club_id",
    }
)


class CredentialStore:
    """Data access for ``User`` records."""

    def __init__(self, session: Session):
        self.session = session

    @contextmanager
    def _guard(self, operation: str) -> Iterator[None]:
        """Turn store outages into a retryable ``ServiceUnavailableError``."""
        try:
            yield
        except (PoolTimeoutError, OperationalError, DisconnectionError) as e:
            self.session.rollback()
            logger.error(f"Credential store {operation} failed: {type(e).__name__}: {e}")
            raise ServiceUnavailableError() from e

    def find_by_email(self, email: str, include_password: bool = False) -> Optional[User]:
        """
        Retrieve a user by email address (case-insensitive).

        Args:
            email: Email address to search for
            include_password: Load the password hash as well

        Returns:
            User if found, None otherwise
        """
        statement = select(User).where(User.email == normalize_email(email))
        if not include_password:
            statement = statement.options(defer(User.password_hash))  # type: ignore[arg-type]
        with self._guard("read"):
            return self.session.exec(statement).first()

    def find_by_id(self, user_id: int, include_password: bool = False) -> Optional[User]:
        """
        Retrieve a user by ID.

        Args:
            user_id: User ID to search for
            include_password: Load the password hash as well

        Returns:
            User if found, None otherwise
        """
        statement = select(User).where(User.id == user_id)
        if not include_password:
            statement = statement.options(defer(User.password_hash))  # type: ignore[arg-type]
        with self._guard("read"):
            return self.session.exec(statement).first()

    def list_users(self, offset: int = 0, limit: int = 100) -> list[User]:
        statement = (
            select(User)
            .options(defer(User.password_hash))  # type: ignore[arg-type]
            .order_by(col(User.created_at).desc(), col(User.id).desc())
            .offset(offset)
            .limit(limit)
        )
        with self._guard("read"):
            return list(self.session.exec(statement).all())

    def create(self, fields: Mapping[str, Any]) -> User:
        """
        Create a new user, hashing the plaintext password before it is stored.

        Args:
            fields: Attribute values, including the plaintext ``password``

        Returns:
            Created user instance

        Raises:
            ValidationError: One or more fields break the rules
            ConflictError: The email is already registered
        """
        unknown = set(fields) - CREATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown user fields: {sorted(unknown)}")

        values = {key: value for key, value in fields.items() if value is not None}
        values.setdefault("role", UserRole.USER)
        values["password"] = fields.get("password")
        for key in ("email", "first_name", "last_name"):
            if isinstance(values.get(key), str):
                values[key] = values[key].strip()
        if values.get("email"):
            values["email"] = normalize_email(values["email"])

        errors = validate_user_fields(values)
        if errors:
            raise ValidationError.for_fields(errors)

        if self.find_by_email(values["email"]) is not None:
            raise ConflictError(DUPLICATE_EMAIL_MESSAGE)

        password = values.pop("password")
        values["role"] = UserRole(values["role"])
        user = User(**values, password_hash=get_password_hash(password))

        with self._guard("create"):
            self.session.add(user)
            try:
                self.session.commit()
            except IntegrityError as e:
                # Lost a race with a concurrent registration of the same email
                self.session.rollback()
                raise ConflictError(DUPLICATE_EMAIL_MESSAGE) from e
            self.session.refresh(user)
        return user

    def save(self, user: User, validate: bool = True) -> User:
        """
        Validate and persist changes to an existing user.

        Last write wins: there is no version check between concurrent updates.
        Status flips (deactivate, block) pass ``validate=False`` so a record
        with a legacy field value can still be locked.
        """
        if validate:
            errors = validate_user_fields(
                {
                    "email": user.email,
                    "first_name": user.first_name,
                    "last_name": user.last_name,
                    "bio": user.bio,
                    "phone": user.phone,
                    "role": user.role,
                }
            )
            if errors:
                self.session.rollback()
                raise ValidationError.for_fields(errors)

        user.updated_at = utcnow()
        with self._guard("update"):
            self.session.add(user)
            self.session.commit()
            self.session.refresh(user)
        return user

    def touch_last_login(self, user: User) -> bool:
        """
        Record a login time without failing the caller.

        Returns:
            True if the timestamp was written
        """
        try:
            user.last_login = utcnow()
            self.session.add(user)
            self.session.commit()
            self.session.refresh(user)
            return True
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.warning(f"Could not update last login for user {user.id}: {type(e).__name__}")
            return False

"""
Security utilities for password hashing and JWT token management.

Passwords are hashed with bcrypt through passlib. The cost factor comes from
``BCRYPT_ROUNDS`` (12 by default).

Two token families are issued: short-lived access tokens and long-lived
refresh tokens. Each family has its own secret and stamps its name in the
``type`` claim, so a token from one family never verifies as the other.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from pydantic import ValidationError as PydanticValidationError

from planify.core.config import settings
from planify.core.errors import UnauthorizedError
from planify.core.logging import get_logger
from planify.schemas.token import TokenClaims

logger = get_logger(__name__)

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


class InvalidTokenError(UnauthorizedError):
    """Bad signature, malformed payload or wrong token family."""

    default_message = "Invalid token"


class ExpiredTokenError(UnauthorizedError):
    """Signature is fine but the token is past its expiry."""

    default_message = "Token has expired"


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """
    Verify a plain password against a hashed password.

    Never raises: an absent or unrecognised digest is simply a mismatch.

    Args:
        plain_password: The plain text password
        hashed_password: The stored digest, possibly None

    Returns:
        True if password matches, False otherwise
    """
    if not hashed_password or not plain_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError) as e:
        logger.warning(f"Password digest could not be verified: {type(e).__name__}")
        return False


def get_password_hash(password: str) -> str:
    """
    Hash a password using bcrypt with a per-hash random salt.

    Args:
        password: Plain text password

    Returns:
        Hashed password string
    """
    return pwd_context.hash(password)


def dummy_verify() -> None:
    """Spend the same time as a real verification (used when the email is unknown)."""
    pwd_context.dummy_verify()


class TokenService:
    """Issues and verifies one family of signed, time-limited bearer tokens."""

    def __init__(
        self,
        secret_key: str,
        expires_delta: timedelta,
        token_type: str,
        algorithm: str = "HS256",
    ) -> None:
        self.secret_key = secret_key
        self.expires_delta = expires_delta
        self.token_type = token_type
        self.algorithm = algorithm

    def issue(self, subject: str | int, expires_delta: Optional[timedelta] = None, **claims: Any) -> str:
        """
        Create a signed token.

        Args:
            subject: The subject (the user ID) stored in ``sub``
            expires_delta: Optional custom lifetime
            **claims: Extra claims such as ``email`` and ``role``

        Returns:
            Encoded JWT string
        """
        now = datetime.now(timezone.utc)
        expire = now + (expires_delta if expires_delta is not None else self.expires_delta)

        to_encode = {
            **claims,
            "sub": str(subject),
            "type": self.token_type,
            "iat": now,
            "exp": expire,
        }
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenClaims:
        """
        Check signature, expiry and family, then return the claims.

        Raises:
            ExpiredTokenError: The token is past its expiry
            InvalidTokenError: Any other signature or payload problem
        """
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except ExpiredSignatureError as e:
            raise ExpiredTokenError() from e
        except JWTError as e:
            raise InvalidTokenError() from e

        if payload.get("type") != self.token_type:
            raise InvalidTokenError()

        try:
            return TokenClaims.model_validate(payload)
        except PydanticValidationError as e:
            raise InvalidTokenError() from e

    @staticmethod
    def decode_unsafe(token: str) -> Optional[dict[str, Any]]:
        """
        Read the claims without checking the signature or expiry.

        For debugging and inspection only. Never use the result to make an
        authorization decision. Returns None when the token cannot be decoded.
        """
        try:
            return jwt.get_unverified_claims(token)
        except (JWTError, ValueError, TypeError):
            return None


access_tokens = TokenService(
    secret_key=settings.JWT_SECRET,
    expires_delta=timedelta(minutes=settings.JWT_EXPIRES_MINUTES),
    token_type=ACCESS_TOKEN_TYPE,
    algorithm=settings.JWT_ALGORITHM,
)

refresh_tokens = TokenService(
    secret_key=settings.JWT_REFRESH_SECRET,
    expires_delta=timedelta(minutes=settings.JWT_REFRESH_EXPIRES_MINUTES),
    token_type=REFRESH_TOKEN_TYPE,
    algorithm=settings.JWT_ALGORITHM,
)


def create_access_token(user_id: int, email: str, role: str) -> str:
    """Issue an access token carrying the identity and role."""
    return access_tokens.issue(user_id, email=email, role=role)


def create_refresh_token(user_id: int) -> str:
    """Issue a refresh token carrying only the user ID."""
    return refresh_tokens.issue(user_id)

"""
API dependencies for FastAPI dependency injection.
Provides reusable dependencies for authentication and authorization.

Authentication walks one request through
``no token -> token present -> verified -> user loaded -> admitted``
and stops with a 401 at the first step that fails. Authorization
dependencies build on top of it, so a missing identity is always a 401
and never a 403.
"""

from json import JSONDecodeError
from typing import Annotated, Any, Callable, Coroutine, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from planify.core.errors import ForbiddenError, UnauthorizedError
from planify.core.logging import get_logger
from planify.core.security import access_tokens
from planify.db.session import get_session
from planify.models.user import User, UserRole
from planify.services.account_service import USER_GONE_MESSAGE, AccountService, check_account_status
from planify.services.credential_store import CredentialStore

logger = get_logger(__name__)

# Bearer scheme for token authentication; errors are raised by us, not by FastAPI
bearer_scheme = HTTPBearer(auto_error=False)

OWNERSHIP_MESSAGE = "You can only access your own resources"


def get_account_service(session: Annotated[Session, Depends(get_session)]) -> AccountService:
    return AccountService(session)


def _load_user(session: Session, token: str) -> User:
    """Verify the token and load a usable account, raising 401 kinds on failure."""
    claims = access_tokens.verify(token)

    user = CredentialStore(session).find_by_id(claims.user_id)
    if user is None:
        logger.warning(f"User {claims.user_id} not found for a valid token")
        raise UnauthorizedError(USER_GONE_MESSAGE)

    check_account_status(user)
    return user


def get_current_user(
    request: Request,
    session: Annotated[Session, Depends(get_session)],
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
) -> User:
    """
    Dependency to get the current authenticated user from the bearer token.

    Args:
        request: Incoming request; the user is attached to ``request.state.user``
        session: Database session
        credentials: Parsed ``Authorization: Bearer`` header, if any

    Returns:
        Current user

    Raises:
        UnauthorizedError: Missing, invalid or expired token, missing user,
            or deactivated/blocked account
    """
    if credentials is None:
        raise UnauthorizedError("Access token is required")

    try:
        user = _load_user(session, credentials.credentials)
    except UnauthorizedError as e:
        logger.warning(f"Request rejected on {request.url.path}: {e.message}")
        raise

    # Best-effort: a failed write here must not fail the request
    CredentialStore(session).touch_last_login(user)

    request.state.user = user
    return user


def get_optional_user(
    request: Request,
    session: Annotated[Session, Depends(get_session)],
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
) -> Optional[User]:
    """
    Same checks as ``get_current_user`` but any failure means "anonymous".

    Returns:
        The authenticated user, or None
    """
    if credentials is None:
        return None

    try:
        user = _load_user(session, credentials.credentials)
    except Exception as e:
        logger.debug(f"Optional authentication ignored: {type(e).__name__}: {e}")
        session.rollback()
        return None

    request.state.user = user
    return user


def require_roles(*roles: str | UserRole) -> Callable[..., User]:
    """
    Build a dependency admitting only users whose role is in ``roles``.

    Roles are compared by name, so roles added later only need configuration.
    """
    allowed = frozenset(role.value if isinstance(role, UserRole) else role for role in roles)

    def role_gate(current_user: Annotated[User, Depends(get_current_user)]) -> User:
        if current_user.role.value not in allowed:
            logger.warning(
                f"User {current_user.id} with role {current_user.role.value} denied; requires one of {sorted(allowed)}"
            )
            raise ForbiddenError()
        return current_user

    return role_gate


def admin_roles(request: Request) -> frozenset[str]:
    """Admin role names of the running app (``ADMIN_ROLES``)."""
    return request.app.state.settings.admin_roles


def get_current_admin_user(
    request: Request,
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Admit only users holding one of the configured admin roles."""
    if current_user.role.value not in admin_roles(request):
        logger.warning(f"User {current_user.id} with role {current_user.role.value} denied admin access")
        raise ForbiddenError()
    return current_user


async def _json_body(request: Request) -> dict[str, Any]:
    try:
        body = await request.json()
    except (JSONDecodeError, UnicodeDecodeError):
        return {}
    return body if isinstance(body, dict) else {}


def require_owner(field: str = "userId") -> Callable[..., Coroutine[Any, Any, User]]:
    """
    Build a dependency admitting admins, or the user whose ID is the resource owner.

    The owner ID is read from the path parameter ``field``, falling back to
    the same key in the JSON body.
    """

    async def ownership_gate(
        request: Request,
        current_user: Annotated[User, Depends(get_current_user)],
    ) -> User:
        if current_user.role.value in admin_roles(request):
            return current_user

        owner_id = request.path_params.get(field)
        if owner_id is None and request.method not in ("GET", "HEAD", "DELETE"):
            owner_id = (await _json_body(request)).get(field)

        if owner_id is not None and str(owner_id) == str(current_user.id):
            return current_user

        logger.warning(f"User {current_user.id} denied access to resource owned by {owner_id}")
        raise ForbiddenError(OWNERSHIP_MESSAGE)

    return ownership_gate

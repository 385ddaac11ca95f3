"""
Authentication routes: registration, login, token refresh and the
signed-in user's own account.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, status

from planify.api.deps import get_account_service, get_current_user
from planify.models.user import User
from planify.schemas.common import ApiResponse, ok
from planify.schemas.token import RefreshRequest
from planify.schemas.user import PasswordChange, UserCreate, UserLogin, public_profile
from planify.services.account_service import AccountService, AuthResult

router = APIRouter(prefix="/auth", tags=["auth"])

CurrentUser = Annotated[User, Depends(get_current_user)]
Accounts = Annotated[AccountService, Depends(get_account_service)]


def _auth_payload(result: AuthResult) -> dict[str, Any]:
    return {
        "user": public_profile(result.user),
        "token": result.token,
        "refreshToken": result.refresh_token,
    }


@router.post(
    "/register",
    response_model=ApiResponse,
    response_model_exclude_unset=True,
    status_code=status.HTTP_201_CREATED,
)
def register(user_in: UserCreate, accounts: Accounts) -> ApiResponse:
    """
    Register a new user and return it with an access token.

    Raises:
        ConflictError: Email already registered (409)
        ValidationError: Invalid fields (422)
    """
    result = accounts.register(user_in)
    return ok("User registered successfully", _auth_payload(result))


@router.post("/login", response_model=ApiResponse, response_model_exclude_unset=True)
def login(credentials: UserLogin, accounts: Accounts) -> ApiResponse:
    """
    Exchange email and password for an access token.

    Raises:
        UnauthorizedError: Invalid credentials, deactivated or blocked (401)
    """
    result = accounts.login(credentials.email, credentials.password)
    return ok("Login successful", _auth_payload(result))


@router.post("/refresh", response_model=ApiResponse, response_model_exclude_unset=True)
def refresh(body: RefreshRequest, accounts: Accounts) -> ApiResponse:
    """Exchange a refresh token for a new access token."""
    token = accounts.refresh(body.refresh_token)
    return ok("Token refreshed successfully", {"token": token})


@router.get("/profile", response_model=ApiResponse, response_model_exclude_unset=True)
def get_profile(current_user: CurrentUser) -> ApiResponse:
    """Get current user's profile."""
    return ok("Profile retrieved successfully", {"user": public_profile(current_user)})


@router.put("/profile", response_model=ApiResponse, response_model_exclude_unset=True)
def update_profile(
    current_user: CurrentUser,
    accounts: Accounts,
    updates: Annotated[dict[str, Any], Body()],
) -> ApiResponse:
    """
    Update the whitelisted profile fields.

    Raises:
        ValidationError: Unknown fields or invalid values (422)
    """
    user = accounts.update_profile(current_user, updates)
    return ok("Profile updated successfully", {"user": public_profile(user)})


@router.put("/change-password", response_model=ApiResponse, response_model_exclude_unset=True)
def change_password(body: PasswordChange, current_user: CurrentUser, accounts: Accounts) -> ApiResponse:
    """
    Change the password after checking the current one.

    Raises:
        BadRequestError: Current password is incorrect (400)
    """
    accounts.change_password(current_user, body.current_password, body.new_password)
    return ok("Password changed successfully")


@router.post("/logout", response_model=ApiResponse, response_model_exclude_unset=True)
def logout(current_user: CurrentUser, accounts: Accounts) -> ApiResponse:
    """Acknowledge a logout; the client drops its token."""
    accounts.logout(current_user)
    return ok("Logged out successfully")


@router.delete("/account", response_model=ApiResponse, response_model_exclude_unset=True)
def delete_account(current_user: CurrentUser, accounts: Accounts) -> ApiResponse:
    """Deactivate the current account (soft delete)."""
    accounts.deactivate(current_user)
    return ok("Account deactivated successfully")

"""
User administration routes.
Demonstrates the role gate (admin-only listing and blocking) and the
ownership gate (a user may read their own record, admins any record).
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from planify.api.deps import get_account_service, get_current_admin_user, require_owner
from planify.models.user import User
from planify.schemas.common import ApiResponse, ok
from planify.schemas.user import UserStatusUpdate, public_profile
from planify.services.account_service import AccountService

router = APIRouter(prefix="/users", tags=["users"])

AdminUser = Annotated[User, Depends(get_current_admin_user)]
Accounts = Annotated[AccountService, Depends(get_account_service)]


@router.get("", response_model=ApiResponse, response_model_exclude_unset=True)
def list_users(
    _: AdminUser,
    accounts: Accounts,
    offset: Annotated[int, Query(ge=0)] = 0,
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
) -> ApiResponse:
    """List users, newest first. Admin only."""
    users = accounts.list_users(offset=offset, limit=limit)
    return ok("Users retrieved successfully", {"users": [public_profile(u) for u in users]})


@router.get("/{userId}", response_model=ApiResponse, response_model_exclude_unset=True)
def get_user(
    userId: int,
    _: Annotated[User, Depends(require_owner("userId"))],
    accounts: Accounts,
) -> ApiResponse:
    """Read one user's public profile. Owner or admin."""
    user = accounts.get_user(userId)
    return ok("User retrieved successfully", {"user": public_profile(user)})


@router.patch("/{userId}/status", response_model=ApiResponse, response_model_exclude_unset=True)
def update_user_status(
    userId: int,
    body: UserStatusUpdate,
    _: AdminUser,
    accounts: Accounts,
) -> ApiResponse:
    """Block or unblock an account. Admin only."""
    user = accounts.set_blocked(userId, body.is_blocked)
    return ok("User status updated successfully", {"user": public_profile(user)})

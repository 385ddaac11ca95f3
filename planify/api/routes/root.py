"""
Welcome route. Works for anonymous callers and greets signed-in ones.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends

from planify.api.deps import get_optional_user
from planify.core.config import settings
from planify.models.user import User
from planify.schemas.common import ApiResponse, ok
from planify.schemas.user import public_profile

router = APIRouter(tags=["root"])


@router.get("/", response_model=ApiResponse, response_model_exclude_unset=True)
def root(user: Annotated[Optional[User], Depends(get_optional_user)]) -> ApiResponse:
    """API root endpoint."""
    data = {
        "version": settings.VERSION,
        "documentation": f"{settings.API_PREFIX}/docs",
        "health": f"{settings.API_PREFIX}/health",
        "authenticated": user is not None,
    }
    if user is not None:
        data["user"] = public_profile(user)
    return ok(f"Welcome to {settings.PROJECT_NAME}", data)

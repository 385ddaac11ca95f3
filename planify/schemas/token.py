"""
Token schemas for JWT authentication.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel


class TokenClaims(BaseModel):
    """Schema for a verified JWT payload."""

    sub: str
    type: str
    iat: int
    exp: int
    email: Optional[str] = None
    role: Optional[str] = None

    @field_validator("sub")
    @classmethod
    def validate_subject(cls, v: str) -> str:
        if not v.isdigit():
            raise ValueError("subject must be a user ID")
        return v

    @property
    def user_id(self) -> int:
        return int(self.sub)


class RefreshRequest(BaseModel):
    """Schema for exchanging a refresh token for a new access token."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    refresh_token: str

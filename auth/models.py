"""Public user representation and the per-request identity attached by the auth dependencies.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from auth.jwt import TokenClaims
from database.models import User
from utils.uploads import to_relative_upload_path

__all__ = ["AuthContext", "User", "UserOut"]


class UserOut(BaseModel):
    """Everything about a user that may leave the server. There is no hash field."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    display_name: Optional[str] = None
    profile_image: Optional[str] = None
    created_at: datetime

    @field_validator("profile_image")
    @classmethod
    def _relative_image(cls, value: Optional[str]) -> Optional[str]:
        return to_relative_upload_path(value)


@dataclass(frozen=True)
class AuthContext:
    user_id: int
    claims: TokenClaims

"""Schemas for user accounts and profile pages."""
from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, field_validator

USERNAME_PATTERN = r"^[A-Za-z0-9_.]*[A-Za-z0-9_]$"


class UserSummary(BaseModel):
    """Compact author/issuer representation embedded in other payloads."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    username: str | None = None
    name: str | None = None
    avatar_url: str | None = None


class UserResponse(UserSummary):
    """The signed-in account. Never carries the password hash."""

    email: str
    bio: str | None = None
    website: str | None = None
    created_at: datetime


class ProfileResponse(UserSummary):
    bio: str | None = None
    website: str | None = None
    post_count: int = 0
    follower_count: int = 0
    following_count: int = 0
    is_following: bool = False
    is_self: bool = False


class ProfileUpdateRequest(BaseModel):
    name: str | None = Field(default=None, max_length=150)
    username: str | None = Field(default=None, min_length=1, max_length=30, pattern=USERNAME_PATTERN)
    bio: str | None = Field(default=None, max_length=500)
    website: HttpUrl | None = None
    avatar_url: HttpUrl | str | None = None

    @field_validator("website", mode="before")
    @classmethod
    def clean_website(cls, v):
        if v in (None, "", "None"):
            return None
        return v


class UserListResponse(BaseModel):
    items: list[UserSummary]


class AvatarUploadResponse(BaseModel):
    success: bool = True
    avatar_url: str


__all__ = [
    "USERNAME_PATTERN",
    "AvatarUploadResponse",
    "ProfileResponse",
    "ProfileUpdateRequest",
    "UserListResponse",
    "UserResponse",
    "UserSummary",
]

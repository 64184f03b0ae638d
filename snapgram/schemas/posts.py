"""Pydantic schemas for posts, feeds and comments."""
from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .users import UserSummary

CAPTION_MAX_LENGTH = 2200


class PostGridItem(BaseModel):
    """Thumbnail tile used by the explore, tag and profile grids."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    images: list[str]
    caption: str | None = None
    like_count: int = 0
    comment_count: int = 0


class PostResponse(PostGridItem):
    """A post as rendered in the home feed, annotated for the viewer."""

    user_id: UUID
    username: str | None = None
    name: str | None = None
    user_image: str | None = None
    tags: list[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime | None = None
    is_liked: bool = False
    is_following: bool = False
    is_saved: bool = False


class PostPage(BaseModel):
    items: list[PostResponse]
    next_cursor: UUID | None = None


class PostGridPage(BaseModel):
    items: list[PostGridItem]
    next_cursor: UUID | None = None


class PostUpdateRequest(BaseModel):
    caption: str | None = Field(default=None, max_length=CAPTION_MAX_LENGTH)


class CommentCreate(BaseModel):
    body: str = Field(..., min_length=1, max_length=CAPTION_MAX_LENGTH)
    parent_id: UUID | None = None


class CommentResponse(BaseModel):
    id: UUID
    post_id: UUID
    parent_id: UUID | None = None
    body: str
    created_at: datetime
    author: UserSummary
    like_count: int = 0
    is_liked: bool = False
    replies: list["CommentResponse"] = Field(default_factory=list)


class CommentListResponse(BaseModel):
    items: list[CommentResponse]


class PostDetailResponse(PostResponse):
    comments: list[CommentResponse] = Field(default_factory=list)


class TagInfoResponse(BaseModel):
    name: str
    post_count: int


CommentResponse.model_rebuild()


__all__ = [
    "CAPTION_MAX_LENGTH",
    "CommentCreate",
    "CommentListResponse",
    "CommentResponse",
    "PostDetailResponse",
    "PostGridItem",
    "PostGridPage",
    "PostPage",
    "PostResponse",
    "PostUpdateRequest",
    "TagInfoResponse",
]

"""Schemas for notifications."""
from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from .users import UserSummary


class NotificationPostPreview(BaseModel):
    id: UUID
    image: str | None = None


class NotificationResponse(BaseModel):
    id: UUID
    type: str
    read: bool
    created_at: datetime
    issuer: UserSummary
    post: NotificationPostPreview | None = None
    comment_id: UUID | None = None


class NotificationListResponse(BaseModel):
    items: list[NotificationResponse]


class NotificationSummaryResponse(BaseModel):
    unread_count: int = 0


__all__ = [
    "NotificationListResponse",
    "NotificationPostPreview",
    "NotificationResponse",
    "NotificationSummaryResponse",
]

"""SQLAlchemy ORM model for notifications."""
from __future__ import annotations

import uuid
from enum import StrEnum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import expression, func

from snapgram.database import Base
from .base import utcnow


class NotificationType(StrEnum):
    LIKE = "LIKE"
    COMMENT = "COMMENT"
    COMMENT_LIKE = "COMMENT_LIKE"
    FOLLOW = "FOLLOW"
    MENTION = "MENTION"
    NEW_POST = "NEW_POST"


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    recipient_id = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    issuer_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(32), nullable=False)
    post_id = Column(UUID(as_uuid=True), ForeignKey("posts.id", ondelete="CASCADE"), nullable=True)
    comment_id = Column(UUID(as_uuid=True), ForeignKey("comments.id", ondelete="CASCADE"), nullable=True)
    read = Column(Boolean, nullable=False, server_default=expression.false(), default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    recipient = relationship("User", foreign_keys=[recipient_id], back_populates="notifications_received")
    issuer = relationship("User", foreign_keys=[issuer_id], back_populates="notifications_sent")
    post = relationship("Post", back_populates="notifications")
    comment = relationship("Comment", back_populates="notifications")

    __table_args__ = (Index("ix_notifications_dedup", "recipient_id", "issuer_id", "type", "post_id"),)


__all__ = ["Notification", "NotificationType"]

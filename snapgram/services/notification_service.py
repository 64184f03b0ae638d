"""Notification write path and inbox queries."""
from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ..config import get_settings
from ..models import Notification, NotificationType, User
from ..models.base import utcnow
from .auth_service import require_actor

logger = logging.getLogger(__name__)

# High-frequency events refresh a single row instead of piling up duplicates.
DEDUPLICATED_TYPES: frozenset[NotificationType] = frozenset({NotificationType.LIKE, NotificationType.FOLLOW})


def emit_notification(
    db: Session,
    *,
    recipient_id: UUID,
    issuer_id: UUID,
    type_: NotificationType | str,
    post_id: UUID | None = None,
    comment_id: UUID | None = None,
) -> Notification | None:
    """Record that ``issuer_id`` did something ``recipient_id`` should hear about.

    Best effort: failures are logged and swallowed so the interaction that
    triggered the notification is never undone. Returns the stored row, or
    ``None`` when nothing was written.
    """

    if recipient_id == issuer_id:
        return None

    kind = NotificationType(type_)
    try:
        if kind in DEDUPLICATED_TYPES:
            stmt = select(Notification).where(
                Notification.recipient_id == recipient_id,
                Notification.issuer_id == issuer_id,
                Notification.type == kind.value,
                Notification.post_id == post_id if post_id is not None else Notification.post_id.is_(None),
            )
            existing = db.scalars(stmt.order_by(Notification.created_at.desc()).limit(1)).first()
            if existing is not None:
                existing.created_at = utcnow()
                existing.read = False
                db.commit()
                return existing

        notification = Notification(
            recipient_id=recipient_id,
            issuer_id=issuer_id,
            type=kind.value,
            post_id=post_id,
            comment_id=comment_id,
            created_at=utcnow(),
        )
        db.add(notification)
        db.commit()
        return notification
    except SQLAlchemyError:
        db.rollback()
        logger.exception(
            "Notification %s from %s to %s could not be stored",
            kind.value,
            issuer_id,
            recipient_id,
        )
        return None


def _notification_record(notification: Notification) -> dict[str, Any]:
    post = notification.post
    post_preview = None
    if post is not None:
        images = list(post.images or [])
        post_preview = {"id": post.id, "image": images[0] if images else None}
    return {
        "id": notification.id,
        "type": notification.type,
        "read": notification.read,
        "created_at": notification.created_at,
        "issuer": notification.issuer,
        "post": post_preview,
        "comment_id": notification.comment_id,
    }


def list_notifications(db: Session, *, actor: User | None, limit: int | None = None) -> list[dict[str, Any]]:
    """Return the actor's most recent notifications, newest first."""

    user = require_actor(actor)
    stmt = (
        select(Notification)
        .options(selectinload(Notification.issuer), selectinload(Notification.post))
        .where(Notification.recipient_id == user.id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit or get_settings().notification_page_size)
    )
    return [_notification_record(item) for item in db.scalars(stmt)]


def count_unread_notifications(db: Session, *, actor: User | None) -> int:
    """Return the unread notification total for the actor."""

    user = require_actor(actor)
    stmt = (
        select(func.count())
        .select_from(Notification)
        .where(Notification.recipient_id == user.id, Notification.read.is_(False))
    )
    return int(db.scalar(stmt) or 0)


def mark_all_read(db: Session, *, actor: User | None) -> int:
    """Mark every unread notification of the actor as read."""

    user = require_actor(actor)
    stmt = (
        update(Notification)
        .where(Notification.recipient_id == user.id, Notification.read.is_(False))
        .values(read=True)
        .execution_options(synchronize_session=False)
    )
    result = db.execute(stmt)
    db.commit()
    return int(result.rowcount or 0)


__all__ = [
    "DEDUPLICATED_TYPES",
    "count_unread_notifications",
    "emit_notification",
    "list_notifications",
    "mark_all_read",
]

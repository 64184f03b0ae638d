"""Like, follow, save and comment-like toggles."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Literal, cast
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import Comment, CommentLike, Follow, Like, NotificationType, Post, SavedPost, User
from .auth_service import require_actor
from .notification_service import emit_notification

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ToggleResult:
    active: bool
    count: int

    @property
    def status(self) -> Literal["followed", "unfollowed"]:
        return "followed" if self.active else "unfollowed"


def _flip_edge(db: Session, model: type[Any], *, failure_detail: str, **key: UUID) -> tuple[bool, bool]:
    """Atomically flip the presence of the edge identified by ``key``.

    Returns ``(active, created)``. The delete is conditional, so two
    concurrent requests cannot both observe "absent"; an insert that loses
    a race against another insert hits the primary key and the edge is
    reported as present without being created here.
    """

    criteria = [getattr(model, column) == value for column, value in key.items()]
    try:
        result = db.execute(delete(model).where(*criteria))
        if result.rowcount:
            db.commit()
            return False, False

        db.add(model(**key))
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info("%s already present for %s", model.__name__, key)
        return True, False
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=failure_detail) from exc
    return True, True


def _count(db: Session, column: Any, value: UUID) -> int:
    return int(db.scalar(select(func.count()).where(column == value)) or 0)


def _get_post_or_404(db: Session, post_id: UUID) -> Post:
    post = db.get(Post, post_id)
    if post is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    return post


def toggle_like(db: Session, *, actor: User | None, post_id: UUID) -> ToggleResult:
    user = require_actor(actor)
    post = _get_post_or_404(db, post_id)

    active, created = _flip_edge(db, Like, failure_detail="Unable to update like", user_id=user.id, post_id=post.id)
    if created:
        emit_notification(
            db,
            recipient_id=cast(UUID, post.user_id),
            issuer_id=cast(UUID, user.id),
            type_=NotificationType.LIKE,
            post_id=cast(UUID, post.id),
        )
    return ToggleResult(active=active, count=_count(db, Like.post_id, post.id))


def toggle_save(db: Session, *, actor: User | None, post_id: UUID) -> ToggleResult:
    user = require_actor(actor)
    post = _get_post_or_404(db, post_id)

    active, _ = _flip_edge(db, SavedPost, failure_detail="Unable to update saved posts", user_id=user.id, post_id=post.id)
    return ToggleResult(active=active, count=_count(db, SavedPost.post_id, post.id))


def toggle_follow(db: Session, *, actor: User | None, target_id: UUID) -> ToggleResult:
    """Follow ``target_id`` if not yet followed, otherwise unfollow.

    ``count`` is the target's follower total after the change.
    """

    user = require_actor(actor)
    if user.id == target_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot follow yourself")
    if db.get(User, target_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    active, created = _flip_edge(
        db,
        Follow,
        failure_detail="Unable to update follow",
        follower_id=user.id,
        following_id=target_id,
    )
    if created:
        emit_notification(
            db,
            recipient_id=target_id,
            issuer_id=cast(UUID, user.id),
            type_=NotificationType.FOLLOW,
        )
    return ToggleResult(active=active, count=_count(db, Follow.following_id, target_id))


def toggle_comment_like(db: Session, *, actor: User | None, comment_id: UUID) -> ToggleResult:
    user = require_actor(actor)
    comment = db.get(Comment, comment_id)
    if comment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Comment not found")

    active, created = _flip_edge(
        db,
        CommentLike,
        failure_detail="Unable to update comment like",
        user_id=user.id,
        comment_id=comment.id,
    )
    if created:
        emit_notification(
            db,
            recipient_id=cast(UUID, comment.user_id),
            issuer_id=cast(UUID, user.id),
            type_=NotificationType.COMMENT_LIKE,
            post_id=cast(UUID, comment.post_id),
            comment_id=cast(UUID, comment.id),
        )
    return ToggleResult(active=active, count=_count(db, CommentLike.comment_id, comment.id))


__all__ = ["ToggleResult", "toggle_comment_like", "toggle_follow", "toggle_like", "toggle_save"]

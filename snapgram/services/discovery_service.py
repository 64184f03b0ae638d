"""People to look at: story row, follow suggestions and user search."""
from __future__ import annotations

import random
from typing import cast
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from ..config import get_settings
from ..models import Follow, Post, User

STORY_POST_WINDOW = 20
STORY_USER_LIMIT = 3
SUGGESTION_POOL_SIZE = 50


def list_story_users(db: Session, *, viewer: User | None) -> list[User]:
    """Authors of the most recent posts, newest first, excluding the viewer."""

    if viewer is None:
        return []

    stmt = (
        select(Post.user_id)
        .where(Post.user_id != viewer.id)
        .order_by(Post.created_at.desc(), Post.id.desc())
        .limit(STORY_POST_WINDOW)
    )
    author_ids: list[UUID] = []
    for author_id in db.scalars(stmt):
        if author_id not in author_ids:
            author_ids.append(author_id)
        if len(author_ids) == STORY_USER_LIMIT:
            break
    if not author_ids:
        return []

    users = {user.id: user for user in db.scalars(select(User).where(User.id.in_(author_ids)))}
    return [users[author_id] for author_id in author_ids if author_id in users]


def list_suggested_users(db: Session, *, viewer: User | None, limit: int | None = None) -> list[User]:
    """A random handful of accounts the viewer does not follow yet."""

    if viewer is None:
        return []

    viewer_id = cast(UUID, viewer.id)
    followed = select(Follow.following_id).where(Follow.follower_id == viewer_id)
    pool = list(
        db.scalars(
            select(User)
            .where(User.id != viewer_id, User.id.not_in(followed))
            .order_by(User.created_at.desc())
            .limit(SUGGESTION_POOL_SIZE)
        )
    )
    random.shuffle(pool)
    return pool[: limit or get_settings().suggested_users_limit]


def search_users(db: Session, *, query: str | None, limit: int | None = None) -> list[User]:
    """Case-insensitive substring match on username or display name."""

    needle = (query or "").strip()
    if not needle:
        return []

    stmt = (
        select(User)
        .where(
            User.username.is_not(None),
            or_(
                User.username.icontains(needle, autoescape=True),
                User.name.icontains(needle, autoescape=True),
            ),
        )
        .order_by(User.username)
        .limit(limit or get_settings().search_results_limit)
    )
    return list(db.scalars(stmt))


__all__ = ["list_story_users", "list_suggested_users", "search_users"]

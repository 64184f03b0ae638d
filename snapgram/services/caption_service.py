"""Hashtag and @mention parsing for captions and comments."""
from __future__ import annotations

import logging
import re
from typing import Iterable
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import Post, Tag, User

logger = logging.getLogger(__name__)

HASHTAG_PATTERN = re.compile(r"#([^\s#@]+)")
MENTION_PATTERN = re.compile(r"@([A-Za-z0-9_.]+)")


def extract_hashtags(text: str | None) -> set[str]:
    """Return the distinct lower-cased tag names found in ``text``."""

    return {name.lower() for name in HASHTAG_PATTERN.findall(text or "")}


def extract_mentions(text: str | None) -> set[str]:
    """Return the distinct usernames mentioned in ``text``.

    A dot directly after a mention ("thanks @bob.") is sentence punctuation,
    so trailing dots are dropped; dots inside a name are kept.
    """

    usernames: set[str] = set()
    for raw in MENTION_PATTERN.findall(text or ""):
        candidate = raw.rstrip(".")
        if candidate:
            usernames.add(candidate)
    return usernames


def resolve_mentions(db: Session, usernames: Iterable[str]) -> list[User]:
    """Look up mentioned usernames; unknown names are silently dropped."""

    names = sorted(set(usernames))
    if not names:
        return []
    return list(db.scalars(select(User).where(User.username.in_(names)).order_by(User.username)))


def connect_or_create_tags(db: Session, names: Iterable[str]) -> list[Tag]:
    """Return a ``Tag`` row for every name, creating the missing ones.

    Must run before any other pending change in the session: new tags are
    committed immediately so a concurrent insert of the same name can be
    absorbed by re-reading.
    """

    wanted = sorted(set(names))
    if not wanted:
        return []

    existing = {tag.name: tag for tag in db.scalars(select(Tag).where(Tag.name.in_(wanted)))}
    missing = [name for name in wanted if name not in existing]
    if missing:
        db.add_all(Tag(name=name) for name in missing)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.info("Tag created concurrently; reloading %s", missing)
        except SQLAlchemyError as exc:
            db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to save tags",
            ) from exc
        existing = {tag.name: tag for tag in db.scalars(select(Tag).where(Tag.name.in_(wanted)))}

    return [existing[name] for name in wanted if name in existing]


def sync_tags(db: Session, post: Post, text: str | None) -> list[Tag]:
    """Replace the post's tags with the hashtags currently in ``text``."""

    tags = connect_or_create_tags(db, extract_hashtags(text))
    post.tags = tags
    return tags


def sync_mentions(db: Session, post: Post, text: str | None) -> list[User]:
    """Replace the post's mentioned users with those resolved from ``text``.

    The relation is recomputed from scratch, so stale mentions disappear and a
    caption without mentions clears it. Returns the users that were not
    mentioned before. The caller commits.
    """

    previous = {user.id for user in post.mentioned_users}
    resolved = resolve_mentions(db, extract_mentions(text))
    post.mentioned_users = resolved
    return [user for user in resolved if user.id not in previous]


def sync_post_mentions(db: Session, post_id: UUID, text: str | None) -> list[User]:
    """Re-derive and persist the mentioned users of an existing post."""

    post = db.get(Post, post_id)
    if post is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")

    sync_mentions(db, post, text)
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update mentions",
        ) from exc
    return list(post.mentioned_users)


__all__ = [
    "HASHTAG_PATTERN",
    "MENTION_PATTERN",
    "connect_or_create_tags",
    "extract_hashtags",
    "extract_mentions",
    "resolve_mentions",
    "sync_mentions",
    "sync_post_mentions",
    "sync_tags",
]

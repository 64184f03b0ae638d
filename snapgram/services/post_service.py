"""Business logic for publishing posts and threading comments."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Sequence, cast
from uuid import UUID

from fastapi import HTTPException, UploadFile, status
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ..models import Comment, CommentLike, Follow, NotificationType, Post, User
from ..schemas.posts import CAPTION_MAX_LENGTH
from . import storage_service
from .auth_service import require_actor
from .caption_service import connect_or_create_tags, extract_hashtags, extract_mentions, resolve_mentions, sync_mentions
from .feed_service import annotate_posts
from .notification_service import emit_notification

logger = logging.getLogger(__name__)


def _normalize_caption(caption: str | None) -> str | None:
    text = (caption or "").strip()
    if len(text) > CAPTION_MAX_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Caption must be at most {CAPTION_MAX_LENGTH} characters",
        )
    return text or None


def _get_post_or_404(db: Session, post_id: UUID) -> Post:
    post = db.get(Post, post_id)
    if post is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    return post


def _get_owned_post(db: Session, *, actor: User, post_id: UUID, action: str) -> Post:
    post = _get_post_or_404(db, post_id)
    if post.user_id != actor.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"Not allowed to {action} this post")
    return post


def _notify_mentions(db: Session, *, issuer: User, users: Sequence[User], post_id: UUID, comment_id: UUID | None = None) -> None:
    for user in users:
        emit_notification(
            db,
            recipient_id=cast(UUID, user.id),
            issuer_id=cast(UUID, issuer.id),
            type_=NotificationType.MENTION,
            post_id=post_id,
            comment_id=comment_id,
        )


def publish_post(db: Session, *, actor: User | None, caption: str | None, image_urls: Sequence[str]) -> Post:
    """Persist a post whose images are already in object storage.

    Tags are connected or created, mentioned users resolved, and every
    mentioned user and follower of the author is notified.
    """

    user = require_actor(actor)
    images = [url.strip() for url in image_urls if url and url.strip()]
    if not images:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="At least one image is required")
    text = _normalize_caption(caption)

    # Tags commit on their own, before the post is pending in the session.
    tags = connect_or_create_tags(db, extract_hashtags(text))

    post = Post(user_id=user.id, images=images, caption=text)
    post.tags = tags
    db.add(post)
    mentioned = sync_mentions(db, post, text)
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to create post for %s", user.id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create post") from exc

    post_id = cast(UUID, post.id)
    logger.info("User %s published post %s", user.id, post_id)

    _notify_mentions(db, issuer=user, users=mentioned, post_id=post_id)
    follower_ids = list(db.scalars(select(Follow.follower_id).where(Follow.following_id == user.id)))
    for follower_id in follower_ids:
        emit_notification(
            db,
            recipient_id=follower_id,
            issuer_id=cast(UUID, user.id),
            type_=NotificationType.NEW_POST,
            post_id=post_id,
        )
    return post


async def _discard_uploads(urls: Sequence[str]) -> None:
    for url in urls:
        try:
            await storage_service.delete_image(url)
        except (storage_service.StorageConfigurationError, storage_service.StorageDeletionError):
            logger.warning("Could not remove orphaned upload %s", url)


async def create_post(
    db: Session,
    *,
    actor: User | None,
    caption: str | None,
    files: Sequence[UploadFile],
) -> Post:
    """Upload every image concurrently, then publish the post."""

    user = require_actor(actor)
    if not files:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="At least one image is required")
    if not all(storage_service.is_image_upload(file) for file in files):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Only image uploads are allowed")
    _normalize_caption(caption)

    folder = f"posts/{user.id}"
    results = await asyncio.gather(
        *(storage_service.upload_image(file, folder=folder) for file in files),
        return_exceptions=True,
    )
    urls = [result for result in results if isinstance(result, str)]
    failures = [result for result in results if isinstance(result, BaseException)]
    if failures:
        await _discard_uploads(urls)
        raise failures[0]

    try:
        return publish_post(db, actor=user, caption=caption, image_urls=urls)
    except HTTPException:
        await _discard_uploads(urls)
        raise


def update_post(db: Session, *, actor: User | None, post_id: UUID, caption: str | None) -> Post:
    """Replace the caption and re-derive tags and mentions from it."""

    user = require_actor(actor)
    post = _get_owned_post(db, actor=user, post_id=post_id, action="edit")
    text = _normalize_caption(caption)

    tags = connect_or_create_tags(db, extract_hashtags(text))
    post.caption = text
    post.tags = tags
    added = sync_mentions(db, post, text)
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to update post") from exc

    _notify_mentions(db, issuer=user, users=added, post_id=cast(UUID, post.id))
    db.refresh(post)
    return post


async def delete_post(db: Session, *, actor: User | None, post_id: UUID) -> None:
    """Delete a post and everything hanging off it; image removal is best effort."""

    user = require_actor(actor)
    post = _get_owned_post(db, actor=user, post_id=post_id, action="delete")
    images = list(post.images or [])
    try:
        db.delete(post)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to delete post") from exc

    logger.info("User %s deleted post %s", user.id, post_id)
    await _discard_uploads(images)


def _comment_node(comment: Comment, like_counts: dict[UUID, int], liked: set[UUID]) -> dict[str, Any]:
    return {
        "id": comment.id,
        "post_id": comment.post_id,
        "parent_id": comment.parent_id,
        "body": comment.body,
        "created_at": comment.created_at,
        "author": comment.author,
        "like_count": like_counts.get(comment.id, 0),
        "is_liked": comment.id in liked,
        "replies": [],
    }


def list_comments(db: Session, *, post_id: UUID, viewer: User | None = None) -> list[dict[str, Any]]:
    """Top-level comments oldest first, each carrying its replies."""

    _get_post_or_404(db, post_id)
    comments = list(
        db.scalars(
            select(Comment)
            .options(selectinload(Comment.author))
            .where(Comment.post_id == post_id)
            .order_by(Comment.created_at.asc(), Comment.id.asc())
        )
    )
    if not comments:
        return []

    comment_ids = [cast(UUID, comment.id) for comment in comments]
    like_rows = db.execute(
        select(CommentLike.comment_id, func.count())
        .where(CommentLike.comment_id.in_(comment_ids))
        .group_by(CommentLike.comment_id)
    ).all()
    like_counts = {row[0]: int(row[1]) for row in like_rows}
    liked: set[UUID] = set()
    if viewer is not None:
        liked = set(
            db.scalars(
                select(CommentLike.comment_id).where(
                    CommentLike.user_id == viewer.id,
                    CommentLike.comment_id.in_(comment_ids),
                )
            )
        )

    nodes = {comment.id: _comment_node(comment, like_counts, liked) for comment in comments}
    roots: list[dict[str, Any]] = []
    for comment in comments:
        node = nodes[comment.id]
        if comment.parent_id is not None and comment.parent_id in nodes:
            nodes[comment.parent_id]["replies"].append(node)
        else:
            roots.append(node)
    return roots


def get_post_detail(db: Session, *, post_id: UUID, viewer: User | None = None) -> dict[str, Any]:
    post = db.scalar(
        select(Post)
        .options(selectinload(Post.author), selectinload(Post.tags))
        .where(Post.id == post_id)
    )
    if post is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    record = annotate_posts(db, [post], viewer)[0]
    record["comments"] = list_comments(db, post_id=post_id, viewer=viewer)
    return record


def create_comment(
    db: Session,
    *,
    actor: User | None,
    post_id: UUID,
    body: str,
    parent_id: UUID | None = None,
) -> dict[str, Any]:
    """Add a comment or a reply.

    Replies nest one level deep: answering a reply attaches to its top-level
    comment.
    """

    user = require_actor(actor)
    post = _get_post_or_404(db, post_id)
    text = (body or "").strip()
    if not text:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Comment cannot be empty")
    if len(text) > CAPTION_MAX_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Comment must be at most {CAPTION_MAX_LENGTH} characters",
        )

    parent: Comment | None = None
    if parent_id is not None:
        parent = db.get(Comment, parent_id)
        if parent is None or parent.post_id != post.id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid parent comment")
        if parent.parent_id is not None:
            parent = db.get(Comment, parent.parent_id)

    comment = Comment(post_id=post.id, user_id=user.id, body=text, parent_id=parent.id if parent else None)
    db.add(comment)
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to add comment") from exc

    db.refresh(comment)
    comment_id = cast(UUID, comment.id)
    recipients = [cast(UUID, post.user_id)]
    if parent is not None and parent.user_id not in recipients:
        recipients.append(cast(UUID, parent.user_id))
    for recipient_id in recipients:
        emit_notification(
            db,
            recipient_id=recipient_id,
            issuer_id=cast(UUID, user.id),
            type_=NotificationType.COMMENT,
            post_id=cast(UUID, post.id),
            comment_id=comment_id,
        )
    _notify_mentions(
        db,
        issuer=user,
        users=resolve_mentions(db, extract_mentions(text)),
        post_id=cast(UUID, post.id),
        comment_id=comment_id,
    )

    return {
        "id": comment_id,
        "post_id": comment.post_id,
        "parent_id": comment.parent_id,
        "body": comment.body,
        "created_at": comment.created_at,
        "author": user,
        "like_count": 0,
        "is_liked": False,
        "replies": [],
    }


__all__ = [
    "create_comment",
    "create_post",
    "delete_post",
    "get_post_detail",
    "list_comments",
    "publish_post",
    "update_post",
]

"""Post listings: home feed, explore grid, tag pages and profile grids."""
from __future__ import annotations

from typing import Any, Iterable, Sequence, cast
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session, selectinload

from ..config import get_settings
from ..models import Comment, Follow, Like, Post, SavedPost, Tag, User, post_tags
from .pagination import CursorKey, Page, fetch_page, parse_cursor
from .profile_service import get_user_by_username_or_404


def normalize_tag_name(raw: str) -> str:
    return raw.strip().lstrip("#").lower()


def _post_statement() -> Select[Any]:
    return select(Post).options(selectinload(Post.author), selectinload(Post.tags))


def _grouped_counts(db: Session, column: Any, ids: Sequence[UUID]) -> dict[UUID, int]:
    rows = db.execute(select(column, func.count()).where(column.in_(ids)).group_by(column)).all()
    return {row[0]: int(row[1]) for row in rows}


def _viewer_memberships(db: Session, column: Any, owner_column: Any, viewer_id: UUID, ids: Iterable[UUID]) -> set[UUID]:
    wanted = list(ids)
    if not wanted:
        return set()
    return set(db.scalars(select(column).where(owner_column == viewer_id, column.in_(wanted))))


def annotate_posts(db: Session, posts: Sequence[Post], viewer: User | None) -> list[dict[str, Any]]:
    """Render posts as feed records with counts and the viewer's relation to each.

    Every lookup is restricted to the ids on the page, so the cost does not
    grow with the viewer's history.
    """

    if not posts:
        return []

    post_ids = [cast(UUID, post.id) for post in posts]
    like_counts = _grouped_counts(db, Like.post_id, post_ids)
    comment_counts = _grouped_counts(db, Comment.post_id, post_ids)

    liked: set[UUID] = set()
    saved: set[UUID] = set()
    following: set[UUID] = set()
    if viewer is not None:
        viewer_id = cast(UUID, viewer.id)
        liked = _viewer_memberships(db, Like.post_id, Like.user_id, viewer_id, post_ids)
        saved = _viewer_memberships(db, SavedPost.post_id, SavedPost.user_id, viewer_id, post_ids)
        author_ids = {cast(UUID, post.user_id) for post in posts}
        following = _viewer_memberships(db, Follow.following_id, Follow.follower_id, viewer_id, author_ids)

    records: list[dict[str, Any]] = []
    for post in posts:
        author = post.author
        records.append(
            {
                "id": post.id,
                "user_id": post.user_id,
                "username": author.username if author else None,
                "name": author.name if author else None,
                "user_image": author.avatar_url if author else None,
                "caption": post.caption,
                "images": list(post.images or []),
                "tags": sorted(tag.name for tag in post.tags),
                "like_count": like_counts.get(post.id, 0),
                "comment_count": comment_counts.get(post.id, 0),
                "created_at": post.created_at,
                "updated_at": post.updated_at,
                "is_liked": post.id in liked,
                "is_following": post.user_id in following,
                "is_saved": post.id in saved,
            }
        )
    return records


def _post_cursor_key(db: Session, cursor: str | UUID | None) -> tuple[bool, CursorKey | None]:
    """Resolve a post-id cursor. The flag is False when the anchor post is gone."""

    cursor_id = parse_cursor(cursor)
    if cursor_id is None:
        return True, None
    anchor = db.get(Post, cursor_id)
    if anchor is None:
        return False, None
    return True, (anchor.created_at, cursor_id)


def _annotated_page(
    db: Session,
    statement: Select[Any],
    *,
    viewer: User | None,
    cursor: str | UUID | None,
    page_size: int,
) -> Page[dict[str, Any]]:
    valid, cursor_key = _post_cursor_key(db, cursor)
    if not valid:
        return Page()
    page = fetch_page(
        db,
        statement,
        sort_column=Post.created_at,
        id_column=Post.id,
        cursor_key=cursor_key,
        page_size=page_size,
    )
    return Page(items=annotate_posts(db, page.items, viewer), next_cursor=page.next_cursor)


def list_home_feed(db: Session, *, viewer: User | None, cursor: str | UUID | None = None) -> Page[dict[str, Any]]:
    """Most recent posts of everyone, annotated for the viewer."""

    return _annotated_page(db, _post_statement(), viewer=viewer, cursor=cursor, page_size=get_settings().feed_page_size)


def list_explore_posts(db: Session, *, viewer: User | None, cursor: str | UUID | None = None) -> Page[dict[str, Any]]:
    return _annotated_page(db, _post_statement(), viewer=viewer, cursor=cursor, page_size=get_settings().grid_page_size)


def list_tag_posts(
    db: Session,
    *,
    viewer: User | None,
    tag_name: str,
    cursor: str | UUID | None = None,
) -> Page[dict[str, Any]]:
    name = normalize_tag_name(tag_name)
    if not name:
        return Page()
    statement = _post_statement().where(Post.tags.any(Tag.name == name))
    return _annotated_page(db, statement, viewer=viewer, cursor=cursor, page_size=get_settings().grid_page_size)


def get_tag_info(db: Session, *, tag_name: str) -> dict[str, Any]:
    name = normalize_tag_name(tag_name)
    tag = db.scalar(select(Tag).where(Tag.name == name)) if name else None
    if tag is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tag not found")
    post_count = db.scalar(select(func.count()).select_from(post_tags).where(post_tags.c.tag_id == tag.id)) or 0
    return {"name": tag.name, "post_count": int(post_count)}


def list_profile_posts(
    db: Session,
    *,
    viewer: User | None,
    username: str,
    cursor: str | UUID | None = None,
) -> Page[dict[str, Any]]:
    owner = get_user_by_username_or_404(db, username)
    statement = _post_statement().where(Post.user_id == owner.id)
    return _annotated_page(db, statement, viewer=viewer, cursor=cursor, page_size=get_settings().grid_page_size)


def list_mentioned_posts(
    db: Session,
    *,
    viewer: User | None,
    username: str,
    cursor: str | UUID | None = None,
) -> Page[dict[str, Any]]:
    """Posts whose caption mentions ``username`` (the profile's "tagged" tab)."""

    user = get_user_by_username_or_404(db, username)
    statement = _post_statement().where(Post.mentioned_users.any(User.id == user.id))
    return _annotated_page(db, statement, viewer=viewer, cursor=cursor, page_size=get_settings().grid_page_size)


def list_saved_posts(
    db: Session,
    *,
    viewer: User | None,
    username: str,
    cursor: str | UUID | None = None,
) -> Page[dict[str, Any]]:
    """Posts saved by ``username``, most recently saved first.

    Saved collections are private: anyone but the owner receives an empty page.
    """

    owner = get_user_by_username_or_404(db, username)
    if viewer is None or viewer.id != owner.id:
        return Page()

    cursor_key: CursorKey | None = None
    cursor_id = parse_cursor(cursor)
    if cursor_id is not None:
        anchor = db.get(SavedPost, (owner.id, cursor_id))
        if anchor is None:
            return Page()
        cursor_key = (anchor.created_at, cursor_id)

    statement = (
        _post_statement()
        .join(SavedPost, SavedPost.post_id == Post.id)
        .where(SavedPost.user_id == owner.id)
    )
    page = fetch_page(
        db,
        statement,
        sort_column=SavedPost.created_at,
        id_column=Post.id,
        cursor_key=cursor_key,
        page_size=get_settings().grid_page_size,
    )
    return Page(items=annotate_posts(db, page.items, viewer), next_cursor=page.next_cursor)


__all__ = [
    "annotate_posts",
    "get_tag_info",
    "list_explore_posts",
    "list_home_feed",
    "list_mentioned_posts",
    "list_profile_posts",
    "list_saved_posts",
    "list_tag_posts",
    "normalize_tag_name",
]

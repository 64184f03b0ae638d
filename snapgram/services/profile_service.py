"""Profile lookups and self-service account edits."""
from __future__ import annotations

import logging
from typing import Any, cast
from uuid import UUID

from fastapi import HTTPException, UploadFile, status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import Follow, Post, User
from ..schemas import ProfileUpdateRequest
from . import storage_service
from .auth_service import require_actor

logger = logging.getLogger(__name__)


def get_user_by_username_or_404(db: Session, username: str) -> User:
    user = db.scalar(select(User).where(User.username == username.strip()))
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


def get_profile(db: Session, *, username: str, viewer: User | None = None) -> dict[str, Any]:
    """Return the public profile of ``username`` with counters and the viewer's relation."""

    user = get_user_by_username_or_404(db, username)
    user_id = cast(UUID, user.id)

    post_count = db.scalar(select(func.count()).select_from(Post).where(Post.user_id == user_id)) or 0
    follower_count = db.scalar(select(func.count()).select_from(Follow).where(Follow.following_id == user_id)) or 0
    following_count = db.scalar(select(func.count()).select_from(Follow).where(Follow.follower_id == user_id)) or 0

    is_self = viewer is not None and viewer.id == user_id
    is_following = False
    if viewer is not None and not is_self:
        is_following = (
            db.scalar(
                select(Follow.follower_id).where(
                    Follow.follower_id == viewer.id,
                    Follow.following_id == user_id,
                )
            )
            is not None
        )

    return {
        "id": user.id,
        "username": user.username,
        "name": user.name,
        "avatar_url": user.avatar_url,
        "bio": user.bio,
        "website": user.website,
        "post_count": int(post_count),
        "follower_count": int(follower_count),
        "following_count": int(following_count),
        "is_following": is_following,
        "is_self": is_self,
    }


def update_profile(db: Session, *, actor: User | None, payload: ProfileUpdateRequest) -> User:
    """Apply the fields the client actually sent to the actor's account."""

    user = require_actor(actor)
    update_data = payload.model_dump(exclude_unset=True)

    # A blank avatar keeps the current one.
    if "avatar_url" in update_data:
        avatar = update_data["avatar_url"]
        if avatar in (None, "", "None"):
            update_data.pop("avatar_url")
        else:
            update_data["avatar_url"] = str(avatar)

    if "website" in update_data and update_data["website"] is not None:
        update_data["website"] = str(update_data["website"])

    username = update_data.get("username")
    if username is not None and username != user.username:
        taken = db.scalar(select(User.id).where(User.username == username, User.id != user.id))
        if taken is not None:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Username already taken")
    elif "username" in update_data and username is None:
        update_data.pop("username")

    for field, value in update_data.items():
        setattr(user, field, value)

    try:
        db.add(user)
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Username already taken") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update profile",
        ) from exc

    db.refresh(user)
    return user


async def upload_avatar(db: Session, *, actor: User | None, file: UploadFile) -> User:
    """Store a new avatar image and point the actor's profile at it."""

    user = require_actor(actor)
    if not storage_service.is_image_upload(file):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Avatar must be an image")

    previous = user.avatar_url
    uploaded = await storage_service.upload_image(file, folder=f"avatars/{user.id}")
    user.avatar_url = uploaded
    try:
        db.add(user)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        await _discard_avatar(uploaded)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update avatar",
        ) from exc

    if previous:
        await _discard_avatar(previous)

    db.refresh(user)
    return user


async def _discard_avatar(url: str) -> None:
    try:
        await storage_service.delete_image(url)
    except (storage_service.StorageConfigurationError, storage_service.StorageDeletionError):
        logger.warning("Could not remove avatar %s", url)


__all__ = ["get_profile", "get_user_by_username_or_404", "update_profile", "upload_avatar"]

"""User discovery, profile and follow routes."""
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.orm import Session

from ..database import get_session
from ..models import User
from ..schemas import (
    AvatarUploadResponse,
    FollowToggleResponse,
    PostGridPage,
    ProfileResponse,
    ProfileUpdateRequest,
    UserListResponse,
    UserResponse,
)
from ..services import (
    get_current_user,
    get_optional_user,
    get_profile,
    list_mentioned_posts,
    list_profile_posts,
    list_saved_posts,
    list_story_users,
    list_suggested_users,
    search_users,
    toggle_follow,
    update_profile,
    upload_avatar,
)
from ..services.pagination import Page

router = APIRouter(prefix="/users", tags=["users"])


def _grid(page: Page) -> PostGridPage:
    return PostGridPage.model_validate({"items": page.items, "next_cursor": page.next_cursor})


def _user_list(users: list[User]) -> UserListResponse:
    return UserListResponse.model_validate({"items": users}, from_attributes=True)


# Fixed paths are declared before the ``/{username}`` catch-all.
@router.get("/stories", response_model=UserListResponse)
async def story_users_endpoint(
    db: Session = Depends(get_session),
    viewer: User | None = Depends(get_optional_user),
) -> UserListResponse:
    return _user_list(list_story_users(db, viewer=viewer))


@router.get("/suggested", response_model=UserListResponse)
async def suggested_users_endpoint(
    db: Session = Depends(get_session),
    viewer: User | None = Depends(get_optional_user),
) -> UserListResponse:
    return _user_list(list_suggested_users(db, viewer=viewer))


@router.get("/search", response_model=UserListResponse)
async def search_users_endpoint(
    q: str = Query(default=""),
    db: Session = Depends(get_session),
) -> UserListResponse:
    return _user_list(search_users(db, query=q))


@router.patch("/me", response_model=UserResponse)
async def update_my_profile(
    payload: ProfileUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> UserResponse:
    updated = update_profile(db, actor=current_user, payload=payload)
    return UserResponse.model_validate(updated)


@router.post("/me/avatar", response_model=AvatarUploadResponse)
async def upload_my_avatar(
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> AvatarUploadResponse:
    updated = await upload_avatar(db, actor=current_user, file=file)
    return AvatarUploadResponse(avatar_url=updated.avatar_url)


@router.post("/{user_id}/follow", response_model=FollowToggleResponse)
async def toggle_follow_endpoint(
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> FollowToggleResponse:
    result = toggle_follow(db, actor=current_user, target_id=user_id)
    return FollowToggleResponse(active=result.active, count=result.count, status=result.status)


@router.get("/{username}", response_model=ProfileResponse)
async def retrieve_profile(
    username: str,
    db: Session = Depends(get_session),
    viewer: User | None = Depends(get_optional_user),
) -> ProfileResponse:
    return ProfileResponse(**get_profile(db, username=username, viewer=viewer))


@router.get("/{username}/posts", response_model=PostGridPage)
async def profile_posts_endpoint(
    username: str,
    cursor: str | None = Query(default=None),
    db: Session = Depends(get_session),
    viewer: User | None = Depends(get_optional_user),
) -> PostGridPage:
    return _grid(list_profile_posts(db, viewer=viewer, username=username, cursor=cursor))


@router.get("/{username}/saved", response_model=PostGridPage)
async def saved_posts_endpoint(
    username: str,
    cursor: str | None = Query(default=None),
    db: Session = Depends(get_session),
    viewer: User | None = Depends(get_optional_user),
) -> PostGridPage:
    return _grid(list_saved_posts(db, viewer=viewer, username=username, cursor=cursor))


@router.get("/{username}/tagged", response_model=PostGridPage)
async def tagged_posts_endpoint(
    username: str,
    cursor: str | None = Query(default=None),
    db: Session = Depends(get_session),
    viewer: User | None = Depends(get_optional_user),
) -> PostGridPage:
    return _grid(list_mentioned_posts(db, viewer=viewer, username=username, cursor=cursor))

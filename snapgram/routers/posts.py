"""Post, comment and interaction API routes."""
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.orm import Session

from ..database import get_session
from ..models import User
from ..schemas import (
    CommentCreate,
    CommentListResponse,
    CommentResponse,
    PostDetailResponse,
    PostResponse,
    PostUpdateRequest,
    SuccessResponse,
    ToggleResponse,
)
from ..services import (
    annotate_posts,
    create_comment,
    create_post,
    delete_post,
    get_current_user,
    get_optional_user,
    get_post_detail,
    list_comments,
    toggle_comment_like,
    toggle_like,
    toggle_save,
    update_post,
)

router = APIRouter(prefix="/posts", tags=["posts"])
comments_router = APIRouter(prefix="/comments", tags=["posts"])


@router.post("", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post_endpoint(
    caption: str | None = Form(default=None),
    images: list[UploadFile] = File(...),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> PostResponse:
    post = await create_post(db, actor=current_user, caption=caption, files=images)
    return PostResponse.model_validate(annotate_posts(db, [post], current_user)[0])


@router.get("/{post_id}", response_model=PostDetailResponse)
async def get_post_endpoint(
    post_id: UUID,
    db: Session = Depends(get_session),
    viewer: User | None = Depends(get_optional_user),
) -> PostDetailResponse:
    record = get_post_detail(db, post_id=post_id, viewer=viewer)
    return PostDetailResponse.model_validate(record, from_attributes=True)


@router.patch("/{post_id}", response_model=PostResponse)
async def update_post_endpoint(
    post_id: UUID,
    payload: PostUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> PostResponse:
    post = update_post(db, actor=current_user, post_id=post_id, caption=payload.caption)
    return PostResponse.model_validate(annotate_posts(db, [post], current_user)[0])


@router.delete("/{post_id}", response_model=SuccessResponse)
async def delete_post_endpoint(
    post_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> SuccessResponse:
    await delete_post(db, actor=current_user, post_id=post_id)
    return SuccessResponse()


@router.get("/{post_id}/comments", response_model=CommentListResponse)
async def list_comments_endpoint(
    post_id: UUID,
    db: Session = Depends(get_session),
    viewer: User | None = Depends(get_optional_user),
) -> CommentListResponse:
    items = list_comments(db, post_id=post_id, viewer=viewer)
    return CommentListResponse.model_validate({"items": items}, from_attributes=True)


@router.post("/{post_id}/comments", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def create_comment_endpoint(
    post_id: UUID,
    payload: CommentCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> CommentResponse:
    record = create_comment(db, actor=current_user, post_id=post_id, body=payload.body, parent_id=payload.parent_id)
    return CommentResponse.model_validate(record, from_attributes=True)


@router.post("/{post_id}/like", response_model=ToggleResponse)
async def toggle_like_endpoint(
    post_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> ToggleResponse:
    result = toggle_like(db, actor=current_user, post_id=post_id)
    return ToggleResponse(active=result.active, count=result.count)


@router.post("/{post_id}/save", response_model=ToggleResponse)
async def toggle_save_endpoint(
    post_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> ToggleResponse:
    result = toggle_save(db, actor=current_user, post_id=post_id)
    return ToggleResponse(active=result.active, count=result.count)


@comments_router.post("/{comment_id}/like", response_model=ToggleResponse)
async def toggle_comment_like_endpoint(
    comment_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> ToggleResponse:
    result = toggle_comment_like(db, actor=current_user, comment_id=comment_id)
    return ToggleResponse(active=result.active, count=result.count)

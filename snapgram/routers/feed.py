"""Home feed, explore grid and hashtag pages."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..database import get_session
from ..models import User
from ..schemas import PostGridPage, PostPage, TagInfoResponse
from ..services import get_optional_user, get_tag_info, list_explore_posts, list_home_feed, list_tag_posts

router = APIRouter(tags=["feed"])


@router.get("/feed", response_model=PostPage)
async def home_feed_endpoint(
    cursor: str | None = Query(default=None),
    db: Session = Depends(get_session),
    viewer: User | None = Depends(get_optional_user),
) -> PostPage:
    page = list_home_feed(db, viewer=viewer, cursor=cursor)
    return PostPage.model_validate({"items": page.items, "next_cursor": page.next_cursor})


@router.get("/explore", response_model=PostGridPage)
async def explore_endpoint(
    cursor: str | None = Query(default=None),
    db: Session = Depends(get_session),
    viewer: User | None = Depends(get_optional_user),
) -> PostGridPage:
    page = list_explore_posts(db, viewer=viewer, cursor=cursor)
    return PostGridPage.model_validate({"items": page.items, "next_cursor": page.next_cursor})


@router.get("/tags/{name}", response_model=TagInfoResponse)
async def tag_info_endpoint(name: str, db: Session = Depends(get_session)) -> TagInfoResponse:
    return TagInfoResponse(**get_tag_info(db, tag_name=name))


@router.get("/tags/{name}/posts", response_model=PostGridPage)
async def tag_posts_endpoint(
    name: str,
    cursor: str | None = Query(default=None),
    db: Session = Depends(get_session),
    viewer: User | None = Depends(get_optional_user),
) -> PostGridPage:
    page = list_tag_posts(db, viewer=viewer, tag_name=name, cursor=cursor)
    return PostGridPage.model_validate({"items": page.items, "next_cursor": page.next_cursor})

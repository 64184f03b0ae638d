"""Aggregate router exports."""
from .auth import router as auth_router
from .feed import router as feed_router
from .notifications import router as notifications_router
from .posts import comments_router
from .posts import router as posts_router
from .users import router as users_router

__all__ = [
    "auth_router",
    "comments_router",
    "feed_router",
    "notifications_router",
    "posts_router",
    "users_router",
]

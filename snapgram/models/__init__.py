"""Convenience exports for ORM models."""
from .associations import post_mentions, post_tags
from .follow import Follow
from .notification import Notification, NotificationType
from .post import Comment, CommentLike, Like, Post, SavedPost
from .tag import Tag
from .user import User

__all__ = [
    "post_mentions",
    "post_tags",
    "Comment",
    "CommentLike",
    "Follow",
    "Like",
    "Notification",
    "NotificationType",
    "Post",
    "SavedPost",
    "Tag",
    "User",
]

"""Convenience exports for schema layer."""
from .auth import AuthResponse, LoginRequest, RegisterRequest, SuccessResponse
from .interactions import FollowToggleResponse, ToggleResponse
from .notifications import (
    NotificationListResponse,
    NotificationPostPreview,
    NotificationResponse,
    NotificationSummaryResponse,
)
from .posts import (
    CommentCreate,
    CommentListResponse,
    CommentResponse,
    PostDetailResponse,
    PostGridItem,
    PostGridPage,
    PostPage,
    PostResponse,
    PostUpdateRequest,
    TagInfoResponse,
)
from .users import (
    AvatarUploadResponse,
    ProfileResponse,
    ProfileUpdateRequest,
    UserListResponse,
    UserResponse,
    UserSummary,
)

__all__ = [
    "AuthResponse",
    "LoginRequest",
    "RegisterRequest",
    "SuccessResponse",
    "FollowToggleResponse",
    "ToggleResponse",
    "NotificationListResponse",
    "NotificationPostPreview",
    "NotificationResponse",
    "NotificationSummaryResponse",
    "CommentCreate",
    "CommentListResponse",
    "CommentResponse",
    "PostDetailResponse",
    "PostGridItem",
    "PostGridPage",
    "PostPage",
    "PostResponse",
    "PostUpdateRequest",
    "TagInfoResponse",
    "AvatarUploadResponse",
    "ProfileResponse",
    "ProfileUpdateRequest",
    "UserListResponse",
    "UserResponse",
    "UserSummary",
]

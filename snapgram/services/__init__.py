"""Convenience exports for service layer."""
from .auth_service import (
    authenticate_user,
    clear_session_cookie,
    create_session_token,
    decode_session_token,
    get_current_user,
    get_optional_user,
    hash_password,
    register_user,
    require_actor,
    resolve_session_user,
    set_session_cookie,
    verify_password,
)
from .caption_service import extract_hashtags, extract_mentions, sync_mentions, sync_post_mentions, sync_tags
from .discovery_service import list_story_users, list_suggested_users, search_users
from .feed_service import (
    annotate_posts,
    get_tag_info,
    list_explore_posts,
    list_home_feed,
    list_mentioned_posts,
    list_profile_posts,
    list_saved_posts,
    list_tag_posts,
)
from .interaction_service import ToggleResult, toggle_comment_like, toggle_follow, toggle_like, toggle_save
from .notification_service import count_unread_notifications, emit_notification, list_notifications, mark_all_read
from .pagination import Page, fetch_page, parse_cursor
from .post_service import (
    create_comment,
    create_post,
    delete_post,
    get_post_detail,
    list_comments,
    publish_post,
    update_post,
)
from .profile_service import get_profile, get_user_by_username_or_404, update_profile, upload_avatar
from .storage_service import StorageConfigurationError, StorageDeletionError, StorageUploadError

__all__ = [
    "authenticate_user",
    "clear_session_cookie",
    "create_session_token",
    "decode_session_token",
    "get_current_user",
    "get_optional_user",
    "hash_password",
    "register_user",
    "require_actor",
    "resolve_session_user",
    "set_session_cookie",
    "verify_password",
    "extract_hashtags",
    "extract_mentions",
    "sync_mentions",
    "sync_post_mentions",
    "sync_tags",
    "list_story_users",
    "list_suggested_users",
    "search_users",
    "annotate_posts",
    "get_tag_info",
    "list_explore_posts",
    "list_home_feed",
    "list_mentioned_posts",
    "list_profile_posts",
    "list_saved_posts",
    "list_tag_posts",
    "ToggleResult",
    "toggle_comment_like",
    "toggle_follow",
    "toggle_like",
    "toggle_save",
    "count_unread_notifications",
    "emit_notification",
    "list_notifications",
    "mark_all_read",
    "Page",
    "fetch_page",
    "parse_cursor",
    "create_comment",
    "create_post",
    "delete_post",
    "get_post_detail",
    "list_comments",
    "publish_post",
    "update_post",
    "get_profile",
    "get_user_by_username_or_404",
    "update_profile",
    "upload_avatar",
    "StorageConfigurationError",
    "StorageDeletionError",
    "StorageUploadError",
]

"""
Runtime configuration helpers for the Snapgram backend.

Loads DATABASE_URL, the session signing secret and the object storage
credentials from the environment, falling back to the .env file located in
the project root.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Final

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the project root
BASE_DIR = Path(__file__).resolve().parents[1]

# Absolute path to .env
ENV_PATH = BASE_DIR / ".env"

# Load .env defaults without overriding environment variables provided by the platform
load_dotenv(dotenv_path=ENV_PATH, override=False)


_PLACEHOLDER_VALUES: Final[set[str]] = {
    "changeme",
    "change-me",
    "placeholder",
    "example",
    "sample",
    "your-key-here",
}


def is_placeholder(value: str | None) -> bool:
    if not value:
        return True
    normalized = value.strip().lower()
    return not normalized or normalized in _PLACEHOLDER_VALUES


class Settings(BaseSettings):
    # Required fields: must come from the environment or .env
    database_url: str = Field(..., alias="DATABASE_URL")
    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")

    app_name: str = Field(default="Snapgram", alias="APP_NAME")
    api_version: str = Field(default="0.1.0", alias="API_VERSION")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    cors_origins: str | None = Field(default=None, alias="CORS_ORIGINS")

    # Sessions
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    session_max_age_days: int = Field(default=7, alias="SESSION_MAX_AGE_DAYS")
    session_cookie_name: str = Field(default="auth-token", alias="SESSION_COOKIE_NAME")
    session_cookie_secure: bool = Field(default=False, alias="SESSION_COOKIE_SECURE")
    bcrypt_rounds: int = Field(default=12, alias="BCRYPT_ROUNDS")

    # Feed sizes
    feed_page_size: int = Field(default=5, alias="FEED_PAGE_SIZE")
    grid_page_size: int = Field(default=12, alias="GRID_PAGE_SIZE")
    notification_page_size: int = Field(default=20, alias="NOTIFICATION_PAGE_SIZE")
    suggested_users_limit: int = Field(default=5, alias="SUGGESTED_USERS_LIMIT")
    search_results_limit: int = Field(default=20, alias="SEARCH_RESULTS_LIMIT")

    # S3-compatible object storage
    storage_endpoint: str | None = Field(default=None, alias="STORAGE_ENDPOINT")
    storage_region: str | None = Field(default=None, alias="STORAGE_REGION")
    storage_bucket: str | None = Field(default=None, alias="STORAGE_BUCKET")
    storage_access_key: str | None = Field(default=None, alias="STORAGE_ACCESS_KEY")
    storage_secret_key: str | None = Field(default=None, alias="STORAGE_SECRET_KEY")
    storage_public_url: str | None = Field(default=None, alias="STORAGE_PUBLIC_URL")

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("jwt_secret_key")
    @classmethod
    def _reject_placeholder_secret(cls, value: str) -> str:
        if is_placeholder(value):
            raise ValueError("JWT_SECRET_KEY must be set and must not use placeholder defaults")
        return value.strip()

    @field_validator("feed_page_size", "grid_page_size", "notification_page_size")
    @classmethod
    def _positive_page_size(cls, value: int) -> int:
        if value < 1:
            raise ValueError("page sizes must be positive")
        return value

    @property
    def session_max_age_seconds(self) -> int:
        return self.session_max_age_days * 24 * 60 * 60


@lru_cache()
def get_settings() -> Settings:
    return Settings()


__all__ = ["Settings", "get_settings", "is_placeholder"]

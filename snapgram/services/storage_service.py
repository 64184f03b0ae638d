"""S3-compatible object storage for post images and avatars."""
from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Iterable
from urllib.parse import urlparse

from boto3.session import Session
from botocore.client import BaseClient
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import UploadFile
from fastapi.concurrency import run_in_threadpool

from ..config import get_settings, is_placeholder

logger = logging.getLogger(__name__)

_EXTENSION_PATTERN = re.compile(r"\.[A-Za-z0-9]{1,10}")


@dataclass(frozen=True)
class StorageConfig:
    """Runtime configuration extracted from settings."""

    access_key: str
    secret_key: str
    bucket: str
    region: str | None
    endpoint: str | None
    public_url: str


class StorageConfigurationError(RuntimeError):
    """Raised when required object storage settings are missing or invalid."""


class StorageUploadError(RuntimeError):
    """Raised when an upload to object storage fails."""


class StorageDeletionError(RuntimeError):
    """Raised when deleting an object from storage fails."""


def _normalize_endpoint(raw: str | None) -> str | None:
    value = (raw or "").strip().rstrip("/")
    if not value:
        return None
    if not urlparse(value).scheme:
        value = f"https://{value.lstrip(':/')}"
    if not urlparse(value).netloc:
        raise StorageConfigurationError("STORAGE_ENDPOINT must include a hostname.")
    return value


@lru_cache(maxsize=1)
def load_storage_config() -> StorageConfig:
    """Read and validate object storage configuration."""

    settings = get_settings()
    required: dict[str, str | None] = {
        "STORAGE_ACCESS_KEY": settings.storage_access_key,
        "STORAGE_SECRET_KEY": settings.storage_secret_key,
        "STORAGE_BUCKET": settings.storage_bucket,
    }
    missing = [name for name, value in required.items() if is_placeholder(value)]
    if missing:
        raise StorageConfigurationError("Missing required object storage configuration: " + ", ".join(sorted(missing)))

    bucket = (settings.storage_bucket or "").strip()
    region = (settings.storage_region or "").strip() or None
    endpoint = _normalize_endpoint(settings.storage_endpoint)

    public_url = _normalize_endpoint(settings.storage_public_url)
    if public_url is None:
        if endpoint is not None:
            public_url = f"{endpoint}/{bucket}"
        else:
            public_url = f"https://{bucket}.s3.{region or 'us-east-1'}.amazonaws.com"

    return StorageConfig(
        access_key=(settings.storage_access_key or "").strip(),
        secret_key=(settings.storage_secret_key or "").strip(),
        bucket=bucket,
        region=region,
        endpoint=endpoint,
        public_url=public_url,
    )


@lru_cache(maxsize=1)
def get_storage_client() -> BaseClient:
    """Create a singleton boto3 client for storage interactions."""

    config = load_storage_config()
    session = Session()
    return session.client(
        "s3",
        region_name=config.region,
        endpoint_url=config.endpoint,
        aws_access_key_id=config.access_key,
        aws_secret_access_key=config.secret_key,
    )


def _sanitize_segments(parts: Iterable[str]) -> list[str]:
    """Sanitize path segments to be safe for object keys."""

    sanitized: list[str] = []
    for part in parts:
        if part in {"", ".", ".."}:
            continue
        cleaned = re.sub(r"[^A-Za-z0-9._-]", "-", part.strip())
        cleaned = re.sub(r"-+", "-", cleaned).strip("-._")
        if cleaned:
            sanitized.append(cleaned)
    return sanitized


def object_key(filename: str | None, folder: str) -> str:
    """Generate a unique object key inside ``folder`` keeping the file extension."""

    extension = Path(filename or "").suffix.lower()
    if extension and not _EXTENSION_PATTERN.fullmatch(extension):
        extension = ""

    safe_folder = "/".join(_sanitize_segments((folder or "uploads").replace("\\", "/").split("/"))) or "uploads"
    return f"{safe_folder}/{uuid.uuid4().hex}{extension}"


def build_public_url(key: str) -> str:
    config = load_storage_config()
    return f"{config.public_url.rstrip('/')}/{key.lstrip('/')}"


def key_from_url(url: str) -> str | None:
    """Return the object key for a URL produced by :func:`build_public_url`."""

    prefix = load_storage_config().public_url.rstrip("/") + "/"
    if not url.startswith(prefix):
        return None
    return url[len(prefix):] or None


def is_image_upload(file: UploadFile) -> bool:
    return (file.content_type or "").lower().startswith("image/")


async def upload_image(file: UploadFile, *, folder: str, client: BaseClient | None = None) -> str:
    """Upload ``file`` under ``folder`` and return its public URL."""

    config = load_storage_config()
    s3_client = client or get_storage_client()
    key = object_key(file.filename, folder)
    content_type = (file.content_type or "application/octet-stream").strip() or "application/octet-stream"
    file_obj = getattr(file, "file", None)
    if file_obj is None:
        raise StorageUploadError("UploadFile is missing an underlying file buffer.")

    def _upload() -> None:
        try:
            file_obj.seek(0)
            s3_client.upload_fileobj(file_obj, config.bucket, key, ExtraArgs={"ContentType": content_type})
        except (ClientError, BotoCoreError) as exc:  # pragma: no cover - network bound
            logger.exception("Upload of %s failed", key)
            raise StorageUploadError("Upload to object storage failed") from exc

    await run_in_threadpool(_upload)
    logger.debug("Uploaded %s (%s)", key, content_type)
    return build_public_url(key)


async def delete_image(url: str, *, client: BaseClient | None = None) -> bool:
    """Remove the object behind ``url``. Returns False for foreign URLs."""

    key = key_from_url(url)
    if key is None:
        return False

    config = load_storage_config()
    s3_client = client or get_storage_client()

    def _delete() -> None:
        try:
            s3_client.delete_object(Bucket=config.bucket, Key=key)
        except (ClientError, BotoCoreError) as exc:  # pragma: no cover - network bound
            logger.exception("Failed to delete storage object %s", key)
            raise StorageDeletionError("Unable to delete media from storage") from exc

    await run_in_threadpool(_delete)
    return True


__all__ = [
    "StorageConfig",
    "StorageConfigurationError",
    "StorageDeletionError",
    "StorageUploadError",
    "build_public_url",
    "delete_image",
    "get_storage_client",
    "is_image_upload",
    "key_from_url",
    "load_storage_config",
    "object_key",
    "upload_image",
]

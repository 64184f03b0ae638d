"""Tests for object storage keys, URLs and the upload/delete flows."""
from __future__ import annotations

import asyncio
from io import BytesIO
from typing import Iterator

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from snapgram.config import get_settings
from snapgram.services import storage_service


class _RecordingClient:
    """Stand-in for a boto3 S3 client."""

    def __init__(self) -> None:
        self.uploads: list[tuple[str, str, dict]] = []
        self.deleted: list[tuple[str, str]] = []

    def upload_fileobj(self, file_obj, bucket, key, ExtraArgs=None):  # noqa: N803 - boto3 signature
        self.uploads.append((bucket, key, ExtraArgs or {}))

    def delete_object(self, Bucket, Key):  # noqa: N803 - boto3 signature
        self.deleted.append((Bucket, Key))


@pytest.fixture(autouse=True)
def _reset_storage_cache() -> Iterator[None]:
    storage_service.load_storage_config.cache_clear()
    storage_service.get_storage_client.cache_clear()
    yield
    storage_service.load_storage_config.cache_clear()
    storage_service.get_storage_client.cache_clear()


@pytest.fixture
def configured_storage(monkeypatch):
    settings = get_settings()
    monkeypatch.setattr(settings, "storage_access_key", "key")
    monkeypatch.setattr(settings, "storage_secret_key", "secret")
    monkeypatch.setattr(settings, "storage_bucket", "snapgram-media")
    monkeypatch.setattr(settings, "storage_region", "nyc3")
    monkeypatch.setattr(settings, "storage_endpoint", "nyc3.digitaloceanspaces.com")
    monkeypatch.setattr(settings, "storage_public_url", None)
    return settings


def _upload_file(name: str, content_type: str = "image/jpeg") -> UploadFile:
    return UploadFile(file=BytesIO(b"\xff\xd8\xff"), filename=name, headers=Headers({"content-type": content_type}))


def test_object_key_keeps_extension_and_sanitizes_folder():
    key = storage_service.object_key("Holiday Photo.JPG", "posts/../we ird//user")

    folder, _, name = key.rpartition("/")
    assert folder == "posts/we-ird/user"
    assert name.endswith(".jpg")
    assert len(name) == 32 + len(".jpg")


def test_object_key_drops_suspicious_extension():
    assert "." not in storage_service.object_key("payload.j$p", "posts").rpartition("/")[2]


def test_missing_configuration_is_reported(monkeypatch):
    settings = get_settings()
    monkeypatch.setattr(settings, "storage_access_key", None)
    monkeypatch.setattr(settings, "storage_secret_key", "changeme")
    monkeypatch.setattr(settings, "storage_bucket", "bucket")

    with pytest.raises(storage_service.StorageConfigurationError) as excinfo:
        storage_service.load_storage_config()

    assert "STORAGE_ACCESS_KEY" in str(excinfo.value)
    assert "STORAGE_SECRET_KEY" in str(excinfo.value)


def test_public_urls_round_trip_to_keys(configured_storage):
    url = storage_service.build_public_url("posts/abc.jpg")

    assert url == "https://nyc3.digitaloceanspaces.com/snapgram-media/posts/abc.jpg"
    assert storage_service.key_from_url(url) == "posts/abc.jpg"
    assert storage_service.key_from_url("https://elsewhere.example.com/posts/abc.jpg") is None


def test_explicit_public_url_wins(configured_storage, monkeypatch):
    monkeypatch.setattr(configured_storage, "storage_public_url", "cdn.example.test/media/")

    assert storage_service.build_public_url("a.png") == "https://cdn.example.test/media/a.png"


def test_upload_and_delete_use_the_bucket(configured_storage):
    client = _RecordingClient()

    url = asyncio.run(storage_service.upload_image(_upload_file("cat.png", "image/png"), folder="avatars/1", client=client))
    removed = asyncio.run(storage_service.delete_image(url, client=client))
    foreign = asyncio.run(storage_service.delete_image("https://elsewhere.example.com/x.png", client=client))

    [(bucket, key, extra)] = client.uploads
    assert bucket == "snapgram-media"
    assert key.startswith("avatars/1/") and key.endswith(".png")
    assert extra == {"ContentType": "image/png"}
    assert url.endswith(key)
    assert removed is True
    assert foreign is False
    assert client.deleted == [("snapgram-media", key)]


def test_is_image_upload():
    assert storage_service.is_image_upload(_upload_file("a.jpg"))
    assert not storage_service.is_image_upload(_upload_file("a.txt", "text/plain"))


def test_unconfigured_storage_fails_post_creation(client, user_factory, auth_headers, monkeypatch):
    settings = get_settings()
    monkeypatch.setattr(settings, "storage_access_key", None)
    monkeypatch.setattr(settings, "storage_secret_key", None)
    monkeypatch.setattr(settings, "storage_bucket", None)
    alice = user_factory("alice")

    response = client.post(
        "/posts",
        files=[("images", ("one.jpg", BytesIO(b"\xff\xd8\xff"), "image/jpeg"))],
        headers=auth_headers(alice),
    )

    assert response.status_code == 500
    assert response.json()["success"] is False
    assert response.json()["error"].startswith("Missing required object storage configuration")

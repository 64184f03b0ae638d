"""Tests for profiles, discovery lists and user search."""
from __future__ import annotations

import asyncio
from io import BytesIO

import pytest
from fastapi import HTTPException, UploadFile
from sqlalchemy.exc import OperationalError
from starlette.datastructures import Headers

from snapgram.models import Follow
from snapgram.services import storage_service
from snapgram.services.discovery_service import list_story_users, list_suggested_users, search_users
from snapgram.services.profile_service import get_profile, upload_avatar


def test_profile_counts_and_relation(db, user_factory, post_factory):
    alice = user_factory("alice")
    bob = user_factory("bob")
    carol = user_factory("carol")
    post_factory(alice)
    post_factory(alice)
    db.add_all(
        [
            Follow(follower_id=bob.id, following_id=alice.id),
            Follow(follower_id=carol.id, following_id=alice.id),
            Follow(follower_id=alice.id, following_id=bob.id),
        ]
    )
    db.commit()

    seen_by_bob = get_profile(db, username="alice", viewer=bob)
    assert (seen_by_bob["post_count"], seen_by_bob["follower_count"], seen_by_bob["following_count"]) == (2, 2, 1)
    assert seen_by_bob["is_following"] is True
    assert seen_by_bob["is_self"] is False

    own = get_profile(db, username="alice", viewer=alice)
    assert own["is_self"] is True
    assert own["is_following"] is False

    anonymous = get_profile(db, username="alice")
    assert anonymous["is_following"] is False


def test_profile_routes(client, user_factory, auth_headers):
    user_factory("alice")

    found = client.get("/users/alice")
    missing = client.get("/users/ghost")

    assert found.status_code == 200
    assert found.json()["username"] == "alice"
    assert "email" not in found.json()
    assert missing.status_code == 404
    assert missing.json() == {"success": False, "error": "User not found"}


def test_update_profile(client, user_factory, auth_headers):
    alice = user_factory("alice")
    user_factory("bob")
    headers = auth_headers(alice)

    updated = client.patch(
        "/users/me",
        json={"name": "Alice A.", "bio": "hello", "website": "https://alice.example.com"},
        headers=headers,
    )
    taken = client.patch("/users/me", json={"username": "bob"}, headers=headers)
    renamed = client.patch("/users/me", json={"username": "alice.a"}, headers=headers)

    assert updated.status_code == 200, updated.text
    assert updated.json()["bio"] == "hello"
    assert updated.json()["website"].startswith("https://alice.example.com")
    assert taken.status_code == 409
    assert taken.json()["error"] == "Username already taken"
    assert renamed.json()["username"] == "alice.a"
    assert client.get("/users/alice.a").status_code == 200


def test_upload_avatar(client, user_factory, auth_headers, monkeypatch):
    alice = user_factory("alice")

    async def _upload(file, *, folder, client=None):
        return f"https://cdn.example.test/{folder}/{file.filename}"

    monkeypatch.setattr(storage_service, "upload_image", _upload)

    response = client.post(
        "/users/me/avatar",
        files={"file": ("me.png", BytesIO(b"\x89PNG"), "image/png")},
        headers=auth_headers(alice),
    )

    assert response.status_code == 200, response.text
    assert response.json() == {"success": True, "avatar_url": f"https://cdn.example.test/avatars/{alice.id}/me.png"}
    assert client.get("/users/alice").json()["avatar_url"].endswith("/me.png")


def test_story_users_are_recent_distinct_authors(db, user_factory, post_factory):
    viewer = user_factory("viewer")
    authors = [user_factory(f"author{index}") for index in range(4)]
    for author in authors:
        post_factory(author)
        post_factory(author)
    post_factory(viewer)

    stories = list_story_users(db, viewer=viewer)

    assert [user.username for user in stories] == ["author3", "author2", "author1"]
    assert list_story_users(db, viewer=None) == []


def test_suggestions_exclude_self_and_followed(db, user_factory):
    viewer = user_factory("viewer")
    followed = user_factory("followed")
    candidates = {user_factory(f"candidate{index}").id for index in range(3)}
    db.add(Follow(follower_id=viewer.id, following_id=followed.id))
    db.commit()

    suggested = list_suggested_users(db, viewer=viewer)

    assert {user.id for user in suggested} == candidates
    assert list_suggested_users(db, viewer=None) == []


def test_suggestions_are_capped(db, user_factory):
    viewer = user_factory("viewer")
    for index in range(8):
        user_factory(f"candidate{index}")

    assert len(list_suggested_users(db, viewer=viewer)) == 5


def test_search_matches_username_or_name(db, user_factory):
    user_factory("sunny_day", name="Dana")
    user_factory("moon", name="Sunita")
    user_factory("other", name="Nobody")

    names = [user.username for user in search_users(db, query="SUN")]

    assert names == ["moon", "sunny_day"]
    assert search_users(db, query="  ") == []
    assert search_users(db, query="%") == []


def test_discovery_routes(client, user_factory, auth_headers):
    viewer = user_factory("viewer")
    user_factory("sunny")

    search = client.get("/users/search", params={"q": "sun"})
    suggested = client.get("/users/suggested", headers=auth_headers(viewer))
    anonymous = client.get("/users/stories")

    assert [item["username"] for item in search.json()["items"]] == ["sunny"]
    assert [item["username"] for item in suggested.json()["items"]] == ["sunny"]
    assert anonymous.json() == {"items": []}


def test_username_update_rejects_trailing_dot(client, user_factory, auth_headers):
    alice = user_factory("alice")

    response = client.patch("/users/me", json={"username": "alice."}, headers=auth_headers(alice))

    assert response.status_code == 422


def test_failed_avatar_save_removes_the_new_upload(db, user_factory, monkeypatch):
    alice = user_factory("alice")
    deleted: list[str] = []

    async def _upload(file, *, folder, client=None):
        return f"https://cdn.example.test/{folder}/{file.filename}"

    async def _delete(url, *, client=None):
        deleted.append(url)
        return True

    def _broken_commit():
        raise OperationalError("UPDATE users", {}, Exception("database is locked"))

    monkeypatch.setattr(storage_service, "upload_image", _upload)
    monkeypatch.setattr(storage_service, "delete_image", _delete)
    monkeypatch.setattr(db, "commit", _broken_commit)
    upload = UploadFile(file=BytesIO(b"\x89PNG"), filename="me.png", headers=Headers({"content-type": "image/png"}))

    with pytest.raises(HTTPException) as excinfo:
        asyncio.run(upload_avatar(db, actor=alice, file=upload))

    assert excinfo.value.status_code == 500
    assert deleted == [f"https://cdn.example.test/avatars/{alice.id}/me.png"]

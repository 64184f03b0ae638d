"""Integration tests for publishing, editing and deleting posts and comments."""
from __future__ import annotations

from datetime import datetime, timezone
from io import BytesIO
from uuid import UUID, uuid4

import pytest
from sqlalchemy import func, select

from snapgram.models import Comment, Like, Notification, NotificationType, Post, Tag
from snapgram.services import storage_service
from snapgram.services.post_service import create_comment, list_comments, publish_post


@pytest.fixture
def fake_storage(monkeypatch):
    """Replace object storage with in-memory bookkeeping."""

    state: dict[str, list[str]] = {"uploaded": [], "deleted": []}

    async def _upload(file, *, folder, client=None):
        url = f"https://cdn.example.test/{folder}/{uuid4().hex}-{file.filename}"
        state["uploaded"].append(url)
        return url

    async def _delete(url, *, client=None):
        state["deleted"].append(url)
        return True

    monkeypatch.setattr(storage_service, "upload_image", _upload)
    monkeypatch.setattr(storage_service, "delete_image", _delete)
    return state


def _image(name: str = "photo.jpg"):
    return ("images", (name, BytesIO(b"\xff\xd8\xff"), "image/jpeg"))


def _notification_types(db, recipient_id: UUID) -> list[str]:
    return sorted(db.scalars(select(Notification.type).where(Notification.recipient_id == recipient_id)))


def test_create_post_end_to_end(client, db, user_factory, auth_headers, fake_storage):
    alice = user_factory("alice")
    bob = user_factory("bob")
    follower = user_factory("follower")
    client.post(f"/users/{alice.id}/follow", headers=auth_headers(follower))

    response = client.post(
        "/posts",
        data={"caption": "hello @bob #sunset"},
        files=[_image("one.jpg"), _image("two.jpg")],
        headers=auth_headers(alice),
    )

    assert response.status_code == 201, response.text
    body = response.json()
    assert body["caption"] == "hello @bob #sunset"
    assert body["tags"] == ["sunset"]
    assert body["images"] == fake_storage["uploaded"]
    assert all(f"/posts/{alice.id}/" in url for url in body["images"])

    post = db.get(Post, UUID(body["id"]))
    assert [user.id for user in post.mentioned_users] == [bob.id]
    assert db.scalar(select(Tag).where(Tag.name == "sunset")) is not None
    assert _notification_types(db, bob.id) == [NotificationType.MENTION.value]
    assert _notification_types(db, follower.id) == [NotificationType.NEW_POST.value]


def test_create_post_requires_images(client, user_factory, auth_headers, fake_storage):
    alice = user_factory("alice")

    response = client.post("/posts", data={"caption": "no pictures"}, headers=auth_headers(alice))

    assert response.status_code == 422
    assert response.json()["success"] is False


def test_create_post_rejects_non_images(client, user_factory, auth_headers, fake_storage):
    alice = user_factory("alice")

    response = client.post(
        "/posts",
        data={"caption": "notes"},
        files=[("images", ("notes.txt", BytesIO(b"hi"), "text/plain"))],
        headers=auth_headers(alice),
    )

    assert response.status_code == 400
    assert fake_storage["uploaded"] == []


def test_create_post_cleans_up_when_an_upload_fails(client, user_factory, auth_headers, fake_storage, monkeypatch):
    alice = user_factory("alice")

    async def _flaky(file, *, folder, client=None):
        if file.filename == "bad.jpg":
            raise storage_service.StorageUploadError("Upload to object storage failed")
        url = f"https://cdn.example.test/{folder}/{file.filename}"
        fake_storage["uploaded"].append(url)
        return url

    monkeypatch.setattr(storage_service, "upload_image", _flaky)

    response = client.post(
        "/posts",
        files=[_image("good.jpg"), _image("bad.jpg")],
        headers=auth_headers(alice),
    )

    assert response.status_code == 502
    assert response.json() == {"success": False, "error": "Upload to object storage failed"}
    assert fake_storage["deleted"] == fake_storage["uploaded"]


def test_create_post_requires_sign_in(client, fake_storage):
    response = client.post("/posts", files=[_image()])

    assert response.status_code == 401


def test_update_post_replaces_tags_and_mentions(client, db, user_factory, auth_headers):
    alice = user_factory("alice")
    bob = user_factory("bob")
    carol = user_factory("carol")
    post = publish_post(db, actor=alice, caption="hi @bob #one", image_urls=["https://cdn.example.test/1.jpg"])

    response = client.patch(
        f"/posts/{post.id}",
        json={"caption": "now @carol #two"},
        headers=auth_headers(alice),
    )

    assert response.status_code == 200, response.text
    assert response.json()["tags"] == ["two"]
    db.expire_all()
    refreshed = db.get(Post, post.id)
    assert [user.id for user in refreshed.mentioned_users] == [carol.id]
    assert _notification_types(db, carol.id) == [NotificationType.MENTION.value]
    assert _notification_types(db, bob.id) == [NotificationType.MENTION.value]


def test_only_the_author_may_edit_or_delete(client, db, user_factory, auth_headers, fake_storage):
    alice = user_factory("alice")
    mallory = user_factory("mallory")
    post = publish_post(db, actor=alice, caption="mine", image_urls=["https://cdn.example.test/1.jpg"])

    edit = client.patch(f"/posts/{post.id}", json={"caption": "hacked"}, headers=auth_headers(mallory))
    delete = client.delete(f"/posts/{post.id}", headers=auth_headers(mallory))

    assert edit.status_code == delete.status_code == 403
    assert edit.json()["success"] is False


def test_delete_post_removes_dependents_and_images(client, db, user_factory, auth_headers, fake_storage):
    alice = user_factory("alice")
    bob = user_factory("bob")
    post = publish_post(db, actor=alice, caption="bye", image_urls=["https://cdn.example.test/1.jpg"])
    client.post(f"/posts/{post.id}/like", headers=auth_headers(bob))
    client.post(f"/posts/{post.id}/comments", json={"body": "nice"}, headers=auth_headers(bob))

    response = client.delete(f"/posts/{post.id}", headers=auth_headers(alice))

    assert response.json() == {"success": True}
    assert fake_storage["deleted"] == ["https://cdn.example.test/1.jpg"]
    assert db.scalar(select(func.count()).select_from(Post)) == 0
    assert db.scalar(select(func.count()).select_from(Like)) == 0
    assert db.scalar(select(func.count()).select_from(Comment)) == 0
    assert db.scalar(select(func.count()).select_from(Notification).where(Notification.post_id == post.id)) == 0
    assert client.get(f"/posts/{post.id}").status_code == 404


def test_post_detail_includes_threaded_comments(client, db, user_factory, auth_headers):
    alice = user_factory("alice")
    bob = user_factory("bob")
    post = publish_post(db, actor=alice, caption="detail", image_urls=["https://cdn.example.test/1.jpg"])
    top = create_comment(db, actor=bob, post_id=post.id, body="first!")
    create_comment(db, actor=alice, post_id=post.id, body="thanks", parent_id=top["id"])

    response = client.get(f"/posts/{post.id}", headers=auth_headers(bob))

    assert response.status_code == 200
    body = response.json()
    assert body["comment_count"] == 2
    [comment] = body["comments"]
    assert comment["author"]["username"] == "bob"
    assert [reply["body"] for reply in comment["replies"]] == ["thanks"]


def test_comment_notifications(db, user_factory):
    alice = user_factory("alice")
    bob = user_factory("bob")
    carol = user_factory("carol")
    dave = user_factory("dave")
    post = publish_post(db, actor=alice, caption="thread", image_urls=["https://cdn.example.test/1.jpg"])

    top = create_comment(db, actor=bob, post_id=post.id, body="nice one")
    create_comment(db, actor=carol, post_id=post.id, body="agreed @dave", parent_id=top["id"])

    assert _notification_types(db, alice.id) == [NotificationType.COMMENT.value] * 2
    assert _notification_types(db, bob.id) == [NotificationType.COMMENT.value]
    assert _notification_types(db, dave.id) == [NotificationType.MENTION.value]


def test_reply_to_a_reply_attaches_to_the_top_level_comment(db, user_factory):
    alice = user_factory("alice")
    post = publish_post(db, actor=alice, caption="thread", image_urls=["https://cdn.example.test/1.jpg"])
    top = create_comment(db, actor=alice, post_id=post.id, body="top")
    reply = create_comment(db, actor=alice, post_id=post.id, body="reply", parent_id=top["id"])

    nested = create_comment(db, actor=alice, post_id=post.id, body="deeper", parent_id=reply["id"])

    assert nested["parent_id"] == top["id"]
    [root] = list_comments(db, post_id=post.id)
    assert [item["body"] for item in root["replies"]] == ["reply", "deeper"]


def test_comment_validation(client, db, user_factory, auth_headers):
    alice = user_factory("alice")
    post = publish_post(db, actor=alice, caption="a", image_urls=["https://cdn.example.test/1.jpg"])
    other = publish_post(db, actor=alice, caption="b", image_urls=["https://cdn.example.test/2.jpg"])
    foreign = create_comment(db, actor=alice, post_id=other.id, body="elsewhere")
    headers = auth_headers(alice)

    blank = client.post(f"/posts/{post.id}/comments", json={"body": "   "}, headers=headers)
    wrong_parent = client.post(
        f"/posts/{post.id}/comments",
        json={"body": "reply", "parent_id": str(foreign["id"])},
        headers=headers,
    )
    missing_post = client.post(f"/posts/{uuid4()}/comments", json={"body": "hi"}, headers=headers)

    assert blank.status_code == 422
    assert blank.json() == {"success": False, "error": "Comment cannot be empty"}
    assert wrong_parent.status_code == 400
    assert missing_post.status_code == 404


def test_comment_like_route(client, db, user_factory, auth_headers):
    alice = user_factory("alice")
    bob = user_factory("bob")
    post = publish_post(db, actor=alice, caption="a", image_urls=["https://cdn.example.test/1.jpg"])
    comment = create_comment(db, actor=alice, post_id=post.id, body="like me")

    response = client.post(f"/comments/{comment['id']}/like", headers=auth_headers(bob))

    assert response.json() == {"success": True, "active": True, "count": 1}
    listing = client.get(f"/posts/{post.id}/comments", headers=auth_headers(bob)).json()
    assert listing["items"][0]["like_count"] == 1
    assert listing["items"][0]["is_liked"] is True


def test_reply_sorted_before_its_parent_still_nests(db, user_factory):
    alice = user_factory("alice")
    post = publish_post(db, actor=alice, caption="tie", image_urls=["https://cdn.example.test/1.jpg"])
    same_time = datetime(2024, 6, 1, tzinfo=timezone.utc)
    top = Comment(
        id=UUID("ffffffff-ffff-4fff-bfff-ffffffffffff"),
        post_id=post.id,
        user_id=alice.id,
        body="top",
        created_at=same_time,
    )
    reply = Comment(
        id=UUID("00000000-0000-4000-8000-000000000001"),
        post_id=post.id,
        user_id=alice.id,
        body="reply",
        parent_id=top.id,
        created_at=same_time,
    )
    db.add_all([top, reply])
    db.commit()

    roots = list_comments(db, post_id=post.id)

    assert [root["body"] for root in roots] == ["top"]
    assert [item["body"] for item in roots[0]["replies"]] == ["reply"]

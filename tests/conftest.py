"""Shared fixtures for the Snapgram test-suite."""
from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterator
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import delete
from sqlalchemy.orm import Session

# Ensure the database URL and session secret are available before importing application modules.
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///./test_snapgram.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from snapgram import models  # noqa: E402,F401
from snapgram.database import Base, SessionLocal, engine  # noqa: E402
from snapgram.main import app  # noqa: E402
from snapgram.models import Post, User  # noqa: E402
from snapgram.services import create_session_token, hash_password  # noqa: E402

PASSWORD = "password123"


@pytest.fixture(scope="session", autouse=True)
def _create_schema() -> Iterator[None]:
    """Create all tables once for the test session."""

    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def _clean_database() -> Iterator[None]:
    """Remove persisted rows so every test starts from an empty database."""

    with SessionLocal() as session:
        for table in reversed(Base.metadata.sorted_tables):
            session.execute(delete(table))
        session.commit()
    yield


@pytest.fixture
def db() -> Iterator[Session]:
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client() -> Iterator[TestClient]:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def user_factory(db: Session) -> Callable[..., User]:
    """Persist users with a known password."""

    def _create(username: str | None = None, *, name: str | None = None, email: str | None = None) -> User:
        handle = username or f"user_{uuid4().hex[:8]}"
        user = User(
            email=email or f"{handle}@example.com",
            username=handle,
            name=name or handle.title(),
            hashed_password=hash_password(PASSWORD),
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _create


@pytest.fixture
def post_factory(db: Session) -> Callable[..., Post]:
    """Persist posts directly, spacing ``created_at`` so ordering is deterministic."""

    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    counter = {"value": 0}

    def _create(author: User, *, caption: str | None = None, images: list[str] | None = None) -> Post:
        counter["value"] += 1
        post = Post(
            user_id=author.id,
            caption=caption,
            images=images or [f"https://cdn.example.test/posts/{uuid4().hex}.jpg"],
            created_at=base + timedelta(minutes=counter["value"]),
        )
        db.add(post)
        db.commit()
        db.refresh(post)
        return post

    return _create


@pytest.fixture
def auth_headers() -> Callable[[User | UUID], dict[str, str]]:
    """Build bearer headers so one client can act as several users."""

    def _headers(user_or_id: User | UUID) -> dict[str, str]:
        user_id = user_or_id.id if isinstance(user_or_id, User) else user_or_id
        return {"Authorization": f"Bearer {create_session_token(user_id)}"}

    return _headers

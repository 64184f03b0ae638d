"""Cursor-based pagination shared by every post listing.

Each listing fetches one row more than the page size, ordered by a sort column
(newest first) with the row id as tie breaker. The surplus row only signals
that more data exists; ``next_cursor`` is the id of the last row actually
returned, so the following request resumes strictly after it.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Generic, TypeVar
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import Select, and_, or_
from sqlalchemy.orm import Session

T = TypeVar("T")

CursorKey = tuple[datetime, UUID]


@dataclass(slots=True)
class Page(Generic[T]):
    items: list[T] = field(default_factory=list)
    next_cursor: UUID | None = None


def parse_cursor(cursor: str | UUID | None) -> UUID | None:
    """Turn the opaque cursor received from a client into an entity id."""

    if cursor is None or isinstance(cursor, UUID):
        return cursor
    stripped = cursor.strip()
    if not stripped:
        return None
    try:
        return UUID(stripped)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid cursor") from exc


def fetch_page(
    db: Session,
    statement: Select[Any],
    *,
    sort_column: Any,
    id_column: Any,
    cursor_key: CursorKey | None,
    page_size: int,
) -> Page[Any]:
    """Return up to ``page_size`` entities from ``statement`` after ``cursor_key``.

    ``statement`` must select a single ORM entity whose primary key is
    ``id_column``. ``cursor_key`` is the (sort value, id) pair of the last
    entity the client has seen, or ``None`` for the first page.
    """

    if page_size < 1:
        raise ValueError("page_size must be positive")

    if cursor_key is not None:
        sort_value, cursor_id = cursor_key
        statement = statement.where(
            or_(
                sort_column < sort_value,
                and_(sort_column == sort_value, id_column < cursor_id),
            )
        )

    statement = statement.order_by(sort_column.desc(), id_column.desc()).limit(page_size + 1)
    items = list(db.scalars(statement).unique().all())

    if len(items) <= page_size:
        return Page(items=items)

    items.pop()
    return Page(items=items, next_cursor=items[-1].id)


__all__ = ["CursorKey", "Page", "fetch_page", "parse_cursor"]

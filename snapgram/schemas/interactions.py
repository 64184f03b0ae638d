"""Schemas returned by the toggle endpoints."""
from __future__ import annotations

from typing import Literal

from pydantic import BaseModel


class ToggleResponse(BaseModel):
    success: bool = True
    active: bool
    count: int


class FollowToggleResponse(ToggleResponse):
    status: Literal["followed", "unfollowed"]


__all__ = ["FollowToggleResponse", "ToggleResponse"]

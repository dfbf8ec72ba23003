# src/social_desk/schemas/dashboard.py
"""Schemas for the dashboard view model."""

from datetime import datetime

from pydantic import Field

from .base import CamelModel
from .post import PostResponse
from .session import SessionResponse


class LaneResponse(CamelModel):
    """Posts sharing one status."""

    status: str
    title: str
    count: int
    posts: list[PostResponse] = Field(default_factory=list)


class DashboardStats(CamelModel):
    pending_count: int
    authorized_count: int | None = None
    next_scheduled: datetime | None = None


class DashboardResponse(CamelModel):
    """Everything the dashboard needs to render, minus the rendering."""

    session: SessionResponse
    search: str | None = None
    lanes: list[LaneResponse]
    stats: DashboardStats

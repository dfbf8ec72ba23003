# src/social_desk/services/dashboard.py
"""Dashboard view model: lanes of posts grouped by status plus summary stats."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from social_desk.models import PostStatus, SocialPost
from social_desk.services.session import SessionContext

LANES: tuple[tuple[PostStatus, str], ...] = (
    (PostStatus.PENDING, "Pending"),
    (PostStatus.AUTHORIZED, "Authorized"),
    (PostStatus.CHANGES_REQUESTED, "Changes Requested"),
    (PostStatus.POSTED, "Posted"),
)
SCHEDULABLE_STATES = frozenset({PostStatus.PENDING, PostStatus.AUTHORIZED})


@dataclass(frozen=True)
class Lane:
    status: PostStatus
    title: str
    posts: list[SocialPost]

    @property
    def count(self) -> int:
        return len(self.posts)


@dataclass(frozen=True)
class DashboardStats:
    pending_count: int
    authorized_count: int | None
    next_scheduled: datetime | None


def matches_search(post: SocialPost, search: str | None) -> bool:
    """Case-insensitive substring match over title and content."""
    term = (search or "").strip().lower()
    if not term:
        return True
    return term in (post.title or "").lower() or term in (post.content or "").lower()


def build_lanes(posts: Sequence[SocialPost]) -> list[Lane]:
    """Group posts by status, newest upload first within each lane."""
    ordered = sorted(posts, key=lambda post: post.uploaded_at, reverse=True)
    return [
        Lane(status=status, title=title, posts=[p for p in ordered if p.status is status])
        for status, title in LANES
    ]


def compute_stats(posts: Sequence[SocialPost], session: SessionContext) -> DashboardStats:
    """Summarize the workload; the authorized count is shown to admins only."""
    pending = sum(1 for post in posts if post.status is PostStatus.PENDING)
    authorized = sum(1 for post in posts if post.status is PostStatus.AUTHORIZED)
    upcoming = [post.scheduled_date for post in posts if post.status in SCHEDULABLE_STATES]
    return DashboardStats(
        pending_count=pending,
        authorized_count=authorized if session.is_admin else None,
        next_scheduled=min(upcoming) if upcoming else None,
    )

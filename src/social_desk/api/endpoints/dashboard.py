# src/social_desk/api/endpoints/dashboard.py
"""Dashboard endpoint: lanes by status plus summary statistics."""

from typing import Annotated

from fastapi import APIRouter, Query

from social_desk.api.dependencies import CurrentSession, LifecycleDep
from social_desk.api.endpoints.posts import post_response
from social_desk.api.endpoints.system import session_response
from social_desk.schemas import DashboardResponse, DashboardStats, LaneResponse
from social_desk.services.dashboard import build_lanes, compute_stats, matches_search

router = APIRouter(tags=["dashboard"])


@router.get("/dashboard", response_model=DashboardResponse)
def get_dashboard(
    current_session: CurrentSession,
    lifecycle: LifecycleDep,
    search: Annotated[str | None, Query(max_length=200)] = None,
) -> DashboardResponse:
    """Return posts grouped into status lanes.

    Stats always cover every post; the search only narrows the lanes.
    """
    posts = lifecycle.list_posts()
    visible = [post for post in posts if matches_search(post, search)]
    stats = compute_stats(posts, current_session)

    return DashboardResponse(
        session=session_response(current_session),
        search=search,
        lanes=[
            LaneResponse(
                status=lane.status.value,
                title=lane.title,
                count=lane.count,
                posts=[post_response(post, current_session) for post in lane.posts],
            )
            for lane in build_lanes(visible)
        ],
        stats=DashboardStats(
            pending_count=stats.pending_count,
            authorized_count=stats.authorized_count,
            next_scheduled=stats.next_scheduled,
        ),
    )

# src/social_desk/api/endpoints/posts.py
"""Post workflow endpoints: create, list, edit and move posts through review."""

from typing import Annotated

from fastapi import APIRouter, File, Form, HTTPException, Query, UploadFile, status
from pydantic import ValidationError

from social_desk.api.dependencies import CurrentSession, ExpectedVersionDep, LifecycleDep
from social_desk.api.errors import DomainError, to_http_exception
from social_desk.models import PostStatus, SocialPost
from social_desk.schemas import (
    ChangeRequestCreate,
    PostActionResponse,
    PostCreate,
    PostDeleteResponse,
    PostResponse,
    PostUpdate,
)
from social_desk.services.lifecycle import UploadSource, allowed_actions
from social_desk.services.session import SessionContext

router = APIRouter(prefix="/posts", tags=["posts"])


def post_response(post: SocialPost, current_session: SessionContext) -> PostResponse:
    """Serialize a post together with what the caller may do with it."""
    response = PostResponse.model_validate(post)
    return response.model_copy(update={"allowed_actions": allowed_actions(current_session, post)})


def _action_response(
    post: SocialPost,
    current_session: SessionContext,
    warnings: list[str] | None = None,
) -> PostActionResponse:
    return PostActionResponse(
        post=post_response(post, current_session),
        warnings=warnings or [],
    )


@router.get("", response_model=list[PostResponse])
def list_posts(
    current_session: CurrentSession,
    lifecycle: LifecycleDep,
    search: Annotated[str | None, Query(max_length=200)] = None,
    post_status: Annotated[PostStatus | None, Query(alias="status")] = None,
) -> list[PostResponse]:
    """List posts newest first, optionally filtered by text and status."""
    posts = lifecycle.list_posts(search=search, status=post_status)
    return [post_response(post, current_session) for post in posts]


@router.post("", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
def create_post(
    current_session: CurrentSession,
    lifecycle: LifecycleDep,
    title: Annotated[str, Form()],
    content: Annotated[str, Form()],
    scheduled_date: Annotated[str, Form(alias="scheduledDate")],
    platforms: Annotated[list[str], Form()],
    files: Annotated[list[UploadFile], File()],
    link: Annotated[str | None, Form()] = None,
) -> PostResponse:
    """Create a pending post from the submitted fields and media files."""
    try:
        draft = PostCreate(
            title=title,
            content=content,
            scheduled_date=scheduled_date,
            platforms=platforms,
            link=link,
        )
    except ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{location}: {first['msg']}",
        ) from exc

    uploads = [
        UploadSource(
            stream=upload.file,
            filename=upload.filename,
            content_type=upload.content_type,
        )
        for upload in files
        if upload.filename
    ]
    try:
        post = lifecycle.create_post(current_session, draft, uploads)
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return post_response(post, current_session)


@router.get("/{post_id}", response_model=PostResponse)
def get_post(
    post_id: str,
    current_session: CurrentSession,
    lifecycle: LifecycleDep,
) -> PostResponse:
    """Return a single post."""
    try:
        post = lifecycle.get_post(post_id)
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return post_response(post, current_session)


@router.patch("/{post_id}", response_model=PostActionResponse)
def edit_post(
    post_id: str,
    update: PostUpdate,
    current_session: CurrentSession,
    lifecycle: LifecycleDep,
    expected_version: ExpectedVersionDep,
) -> PostActionResponse:
    """Edit title, content or scheduled date."""
    try:
        post = lifecycle.edit_post(current_session, post_id, update, expected_version)
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return _action_response(post, current_session)


@router.post("/{post_id}/approve", response_model=PostActionResponse)
def approve_post(
    post_id: str,
    current_session: CurrentSession,
    lifecycle: LifecycleDep,
    expected_version: ExpectedVersionDep,
) -> PostActionResponse:
    """Authorize a pending post for publishing."""
    try:
        post = lifecycle.approve(current_session, post_id, expected_version)
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return _action_response(post, current_session)


@router.post("/{post_id}/request-changes", response_model=PostActionResponse)
def request_changes(
    post_id: str,
    payload: ChangeRequestCreate,
    current_session: CurrentSession,
    lifecycle: LifecycleDep,
    expected_version: ExpectedVersionDep,
) -> PostActionResponse:
    """Send a pending post back to its uploader."""
    try:
        post = lifecycle.request_changes(
            current_session,
            post_id,
            payload.message,
            expected_version,
        )
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return _action_response(post, current_session)


@router.post("/{post_id}/resubmit", response_model=PostActionResponse)
def resubmit_post(
    post_id: str,
    current_session: CurrentSession,
    lifecycle: LifecycleDep,
    expected_version: ExpectedVersionDep,
) -> PostActionResponse:
    """Return a post awaiting changes to the review queue."""
    try:
        post = lifecycle.resubmit(current_session, post_id, expected_version)
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return _action_response(post, current_session)


@router.post("/{post_id}/mark-posted", response_model=PostActionResponse)
async def mark_posted(
    post_id: str,
    current_session: CurrentSession,
    lifecycle: LifecycleDep,
    expected_version: ExpectedVersionDep,
) -> PostActionResponse:
    """Record an authorized post as published and delete its media."""
    try:
        post, report = await lifecycle.mark_posted(current_session, post_id, expected_version)
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return _action_response(post, current_session, report.warnings)


@router.delete("/{post_id}", response_model=PostDeleteResponse)
async def delete_post(
    post_id: str,
    current_session: CurrentSession,
    lifecycle: LifecycleDep,
    expected_version: ExpectedVersionDep,
) -> PostDeleteResponse:
    """Delete a post and its media."""
    try:
        report = await lifecycle.delete_post(current_session, post_id, expected_version)
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return PostDeleteResponse(message="Post deleted successfully", warnings=report.warnings)

# src/social_desk/services/lifecycle.py
"""Post lifecycle engine.

Posts move ``pending -> authorized -> posted`` with a
``pending -> changes_requested -> pending`` side loop. Media files live on
disk only while a post is not posted: promoting a post to ``posted`` or
deleting it removes its files first.

Every operation checks permission before transition validity, so callers
lacking the right always see a permission error regardless of state.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, BinaryIO

from social_desk.core.settings import settings
from social_desk.db.time import as_utc, isoformat, utcnow
from social_desk.models import PostStatus, SocialPost
from social_desk.repositories import PostRepository, StalePostError
from social_desk.schemas.post import PostCreate, PostUpdate
from social_desk.services.file_store import (
    FileStore,
    FileStoreError,
    StoredFile,
    StoredFileNotFoundError,
)
from social_desk.services.session import SessionContext

logger = logging.getLogger(__name__)


class PostAction(StrEnum):
    """Operations a caller may attempt on an existing post."""

    APPROVE = "approve"
    REQUEST_CHANGES = "request_changes"
    RESUBMIT = "resubmit"
    MARK_POSTED = "mark_posted"
    EDIT = "edit"
    DELETE = "delete"


TRANSITIONS: dict[tuple[PostStatus, PostAction], PostStatus] = {
    (PostStatus.PENDING, PostAction.APPROVE): PostStatus.AUTHORIZED,
    (PostStatus.PENDING, PostAction.REQUEST_CHANGES): PostStatus.CHANGES_REQUESTED,
    (PostStatus.CHANGES_REQUESTED, PostAction.RESUBMIT): PostStatus.PENDING,
    (PostStatus.AUTHORIZED, PostAction.MARK_POSTED): PostStatus.POSTED,
}

ADMIN_ONLY_ACTIONS = frozenset(
    {PostAction.APPROVE, PostAction.REQUEST_CHANGES, PostAction.MARK_POSTED}
)
OWNER_EDITABLE_STATES = frozenset({PostStatus.PENDING, PostStatus.CHANGES_REQUESTED})


class LifecycleError(RuntimeError):
    """Base exception raised for post workflow failures."""


class PostNotFoundError(LifecycleError):
    """Raised when a post does not exist."""


class PermissionDeniedError(LifecycleError):
    """Raised when the caller may not perform an action."""


class InvalidTransitionError(LifecycleError):
    """Raised when an action is not valid from the post's current state."""


class VersionConflictError(LifecycleError):
    """Raised when the post changed since the caller last read it."""


class InvalidPostError(LifecycleError):
    """Raised when request data for a post is unusable."""


class PurgeStatus(StrEnum):
    DELETED = "deleted"
    MISSING = "missing"
    FAILED = "failed"


@dataclass(frozen=True)
class PurgeOutcome:
    filename: str
    status: PurgeStatus
    error: str | None = None


@dataclass
class PurgeReport:
    """Per-file results of a best-effort batch deletion."""

    post_id: str
    outcomes: list[PurgeOutcome] = field(default_factory=list)

    @property
    def failed(self) -> list[PurgeOutcome]:
        return [item for item in self.outcomes if item.status is PurgeStatus.FAILED]

    @property
    def warnings(self) -> list[str]:
        return [f"Failed to delete file {item.filename}: {item.error}" for item in self.failed]


@dataclass(frozen=True)
class UploadSource:
    """An incoming file, independent of the web framework that received it."""

    stream: BinaryIO | bytes
    filename: str
    content_type: str | None = None


async def purge_files(
    store: FileStore,
    post_id: str,
    filenames: Iterable[str],
    *,
    concurrency: int = settings.file_delete_concurrency,
) -> PurgeReport:
    """Delete `filenames` from a post directory with bounded concurrency.

    Individual failures are logged and recorded; they never abort the batch.
    All deletions have finished when this returns.
    """
    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def _delete_one(filename: str) -> PurgeOutcome:
        async with semaphore:
            try:
                await asyncio.to_thread(store.delete, post_id, filename)
            except StoredFileNotFoundError:
                logger.info("File already gone: %s/%s", post_id, filename)
                return PurgeOutcome(filename, PurgeStatus.MISSING)
            except (FileStoreError, OSError) as exc:
                logger.error("Error deleting file %s/%s: %s", post_id, filename, exc)
                return PurgeOutcome(filename, PurgeStatus.FAILED, str(exc))
            return PurgeOutcome(filename, PurgeStatus.DELETED)

    outcomes = await asyncio.gather(*(_delete_one(name) for name in filenames))
    report = PurgeReport(post_id=post_id, outcomes=list(outcomes))
    if report.failed:
        logger.warning(
            "Deleted files for post %s with %d failure(s)", post_id, len(report.failed)
        )
    return report


def is_owner(session: SessionContext, post: SocialPost) -> bool:
    return post.uploader_uid is not None and post.uploader_uid == session.uid


def can_perform(session: SessionContext, post: SocialPost, action: PostAction) -> bool:
    """Return whether the caller holds the right to attempt `action` on `post`."""
    if session.is_admin:
        return True
    if action in ADMIN_ONLY_ACTIONS or not is_owner(session, post):
        return False
    if action is PostAction.RESUBMIT:
        return True
    return post.status in OWNER_EDITABLE_STATES


def is_valid_transition(status: PostStatus, action: PostAction) -> bool:
    if action in (PostAction.EDIT, PostAction.DELETE):
        return True
    return (status, action) in TRANSITIONS


def allowed_actions(session: SessionContext, post: SocialPost) -> list[str]:
    """List the actions the caller could perform on `post` right now."""
    return [
        action.value
        for action in PostAction
        if can_perform(session, post, action) and is_valid_transition(post.status, action)
    ]


def check_action(session: SessionContext, post: SocialPost, action: PostAction) -> None:
    """Raise unless `action` is permitted and valid.

    Raises:
        PermissionDeniedError: The caller lacks the right.
        InvalidTransitionError: The action is not valid from the current state.
    """
    if not can_perform(session, post, action):
        raise PermissionDeniedError(f"You do not have permission to {action.value} this post")
    if not is_valid_transition(post.status, action):
        raise InvalidTransitionError(f"Cannot {action.value} a post that is {post.status.value}")


def describe_changes(post: SocialPost, update: PostUpdate) -> list[str]:
    """Summarize how `update` differs from `post`."""
    changes: list[str] = []
    if update.title is not None and update.title != post.title:
        changes.append(f'Title: "{post.title}" → "{update.title}"')
    if update.content is not None and update.content != post.content:
        changes.append("Content changed")
    if update.scheduled_date is not None and as_utc(update.scheduled_date) != as_utc(
        post.scheduled_date
    ):
        changes.append("Scheduled date changed")
    return changes


def _edit_entry(session: SessionContext, changes: str) -> dict[str, Any]:
    return {
        "editedBy": session.identity.as_record(),
        "editedAt": isoformat(utcnow()),
        "changes": changes,
    }


def _file_reference(
    stored: StoredFile,
    original_name: str,
    content_type: str | None,
) -> dict[str, Any]:
    return {
        "filename": stored.filename,
        "originalName": original_name,
        "type": content_type or stored.content_type,
        "size": stored.size,
        "uploadedAt": isoformat(utcnow()),
    }


def _stored_name(
    post_id: str,
    index: int,
    original_name: str,
    stamp_ms: int | None = None,
) -> str:
    stamp = stamp_ms if stamp_ms is not None else int(time.time() * 1000)
    return f"{post_id}_{stamp}_{index}_{original_name}"


class PostLifecycle:
    """Apply workflow operations to posts and keep their files in step."""

    def __init__(
        self,
        repo: PostRepository,
        store: FileStore,
        *,
        delete_concurrency: int = settings.file_delete_concurrency,
    ) -> None:
        self.repo = repo
        self.store = store
        self.delete_concurrency = delete_concurrency

    # Lookups

    def get_post(self, post_id: str) -> SocialPost:
        post = self.repo.get_by_id(post_id)
        if post is None:
            raise PostNotFoundError("Post not found")
        return post

    def list_posts(
        self,
        *,
        search: str | None = None,
        status: PostStatus | None = None,
    ) -> list[SocialPost]:
        return self.repo.list_posts(search=search, status=status)

    def _load(self, post_id: str, expected_version: int | None) -> SocialPost:
        post = self.get_post(post_id)
        if expected_version is not None and expected_version != post.version:
            raise VersionConflictError(
                f"Post was modified (version {post.version}, expected {expected_version})"
            )
        return post

    def _save(self, post: SocialPost) -> SocialPost:
        try:
            return self.repo.save(post)
        except StalePostError as exc:
            raise VersionConflictError(str(exc)) from exc

    # Creation

    def create_post(
        self,
        session: SessionContext,
        draft: PostCreate,
        uploads: Sequence[UploadSource],
    ) -> SocialPost:
        """Store every upload under a new post and persist the record.

        Raises:
            InvalidPostError: No files were supplied.
            FileStoreError: An upload was rejected; files already committed
                for this post are removed before the error propagates.
        """
        if not uploads:
            raise InvalidPostError("At least one file is required")

        post_id = uuid.uuid4().hex
        stamp = int(time.time() * 1000)
        files: list[dict[str, Any]] = []
        try:
            for index, upload in enumerate(uploads):
                staged = self.store.stage(upload.stream, upload.filename, upload.content_type)
                stored = self.store.commit(
                    staged,
                    post_id,
                    _stored_name(post_id, index, staged.original_name, stamp),
                )
                files.append(_file_reference(stored, staged.original_name, upload.content_type))

            post = SocialPost(
                id=post_id,
                title=draft.title,
                content=draft.content,
                scheduled_date=as_utc(draft.scheduled_date),
                status=PostStatus.PENDING,
                uploaded_by=session.identity.as_record(),
                uploaded_at=utcnow(),
                files=files,
                platforms=[platform.value for platform in draft.platforms],
                link=draft.link,
                change_requests=[],
                edits=[],
            )
            post = self.repo.add(post)
        except Exception:
            logger.warning("Rolling back files for failed post %s", post_id)
            self.store.purge_post(post_id)
            raise

        logger.info("Post %s created by %s with %d file(s)", post_id, session.uid, len(files))
        return post

    # Edits and transitions

    def edit_post(
        self,
        session: SessionContext,
        post_id: str,
        update: PostUpdate,
        expected_version: int | None = None,
    ) -> SocialPost:
        """Apply field changes and record a summary of them.

        An edit by the uploader of a post awaiting changes resubmits it. An
        edit that changes nothing records nothing.
        """
        post = self._load(post_id, expected_version)
        check_action(session, post, PostAction.EDIT)

        changes = describe_changes(post, update)
        if changes:
            if update.title is not None:
                post.title = update.title
            if update.content is not None:
                post.content = update.content
            if update.scheduled_date is not None:
                post.scheduled_date = as_utc(update.scheduled_date)
            post.edits = [*post.edits, _edit_entry(session, "; ".join(changes))]

        resubmitted = post.status is PostStatus.CHANGES_REQUESTED
        if resubmitted:
            post.status = PostStatus.PENDING

        if not changes and not resubmitted:
            return post

        post = self._save(post)
        logger.info("Post %s edited by %s: %s", post_id, session.uid, "; ".join(changes) or "no changes")
        return post

    def approve(
        self,
        session: SessionContext,
        post_id: str,
        expected_version: int | None = None,
    ) -> SocialPost:
        post = self._load(post_id, expected_version)
        check_action(session, post, PostAction.APPROVE)

        post.status = TRANSITIONS[(post.status, PostAction.APPROVE)]
        post.authorized_by = session.identity.as_record()
        post.authorized_at = utcnow()
        post = self._save(post)
        logger.info("Post %s approved by %s", post_id, session.uid)
        return post

    def request_changes(
        self,
        session: SessionContext,
        post_id: str,
        message: str,
        expected_version: int | None = None,
    ) -> SocialPost:
        """Send a pending post back to its uploader with a message.

        Raises:
            InvalidPostError: `message` is blank.
        """
        post = self._load(post_id, expected_version)
        check_action(session, post, PostAction.REQUEST_CHANGES)
        message = (message or "").strip()
        if not message:
            raise InvalidPostError("Please describe the changes needed")

        post.status = TRANSITIONS[(post.status, PostAction.REQUEST_CHANGES)]
        post.change_requests = [
            *post.change_requests,
            {
                "requestedBy": session.identity.as_record(),
                "requestedAt": isoformat(utcnow()),
                "message": message,
            },
        ]
        post = self._save(post)
        logger.info("Changes requested on post %s by %s", post_id, session.uid)
        return post

    def resubmit(
        self,
        session: SessionContext,
        post_id: str,
        expected_version: int | None = None,
    ) -> SocialPost:
        post = self._load(post_id, expected_version)
        check_action(session, post, PostAction.RESUBMIT)

        post.status = TRANSITIONS[(post.status, PostAction.RESUBMIT)]
        post.edits = [*post.edits, _edit_entry(session, "Resubmitted for review")]
        post = self._save(post)
        logger.info("Post %s resubmitted by %s", post_id, session.uid)
        return post

    async def _purge_all(self, post: SocialPost) -> PurgeReport:
        report = await purge_files(
            self.store,
            post.id,
            post.filenames,
            concurrency=self.delete_concurrency,
        )
        try:
            leftovers = await asyncio.to_thread(self.store.purge_post, post.id)
        except OSError as exc:
            logger.error("Error clearing directory for post %s: %s", post.id, exc)
            report.outcomes.append(PurgeOutcome("*", PurgeStatus.FAILED, str(exc)))
        else:
            report.outcomes.extend(
                PurgeOutcome(name, PurgeStatus.DELETED)
                for name in leftovers
                if name not in post.filenames
            )
        return report

    async def mark_posted(
        self,
        session: SessionContext,
        post_id: str,
        expected_version: int | None = None,
    ) -> tuple[SocialPost, PurgeReport]:
        """Delete the post's files, then record it as posted.

        File failures do not stop the transition; they come back in the report.
        """
        post = self._load(post_id, expected_version)
        check_action(session, post, PostAction.MARK_POSTED)

        report = await self._purge_all(post)
        post.status = TRANSITIONS[(post.status, PostAction.MARK_POSTED)]
        post.posted_by = session.identity.as_record()
        post.posted_at = utcnow()
        post = self._save(post)
        logger.info("Post %s marked as posted by %s", post_id, session.uid)
        return post, report

    async def delete_post(
        self,
        session: SessionContext,
        post_id: str,
        expected_version: int | None = None,
    ) -> PurgeReport:
        """Delete the post's files, then the record itself."""
        post = self._load(post_id, expected_version)
        check_action(session, post, PostAction.DELETE)

        report = await self._purge_all(post)
        try:
            self.repo.delete(post)
        except StalePostError as exc:
            raise VersionConflictError(str(exc)) from exc
        logger.info("Post %s deleted by %s", post_id, session.uid)
        return report

    # Files

    def _check_files_editable(self, session: SessionContext, post: SocialPost) -> None:
        check_action(session, post, PostAction.EDIT)
        if post.status is PostStatus.POSTED:
            raise InvalidTransitionError("Cannot change files of a post that is posted")

    def attach_file(
        self,
        session: SessionContext,
        post_id: str,
        upload: UploadSource,
        final_name: str | None = None,
    ) -> StoredFile:
        """Store an upload under an existing post and reference it.

        The file is removed again if the record cannot be updated.
        """
        post = self.get_post(post_id)
        self._check_files_editable(session, post)

        staged = self.store.stage(upload.stream, upload.filename, upload.content_type)
        name = final_name or _stored_name(post.id, len(post.files), staged.original_name)
        stored = self.store.commit(staged, post.id, name)

        reference = _file_reference(stored, staged.original_name, upload.content_type)
        post.files = [
            *(entry for entry in post.files if entry.get("filename") != stored.filename),
            reference,
        ]
        post.edits = [*post.edits, _edit_entry(session, f"Added file {staged.original_name}")]
        try:
            self._save(post)
        except Exception:
            logger.warning("Removing %s after failed update of post %s", stored.filename, post.id)
            self.store.delete(post.id, stored.filename)
            raise
        return stored

    def detach_file(
        self,
        session: SessionContext,
        post_id: str,
        filename: str,
    ) -> SocialPost | None:
        """Delete a stored file and drop its reference.

        Files under a post id with no record can only be removed by admins;
        None is returned in that case.

        Raises:
            PostNotFoundError: No record exists and the caller is not an admin.
            StoredFileNotFoundError: The post does not reference `filename`.
        """
        post = self.repo.get_by_id(post_id)
        if post is None:
            if not session.is_admin:
                raise PostNotFoundError("Post not found")
            self.store.delete(post_id, filename)
            logger.info("Removed stray file %s/%s", post_id, filename)
            return None

        self._check_files_editable(session, post)
        reference = next(
            (entry for entry in post.files if entry.get("filename") == filename),
            None,
        )
        if reference is None:
            raise StoredFileNotFoundError("File not found")

        try:
            self.store.delete(post.id, filename)
        except StoredFileNotFoundError:
            logger.info("File %s/%s was already gone", post.id, filename)

        post.files = [entry for entry in post.files if entry is not reference]
        label = reference.get("originalName") or filename
        post.edits = [*post.edits, _edit_entry(session, f"Removed file {label}")]
        return self._save(post)


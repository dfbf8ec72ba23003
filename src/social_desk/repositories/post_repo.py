# src/social_desk/repositories/post_repo.py
"""Data access helpers for working with social posts."""
from __future__ import annotations

from sqlalchemy import or_, select
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from social_desk.models import PostStatus, SocialPost

__all__ = ["PostRepository", "StalePostError"]


class StalePostError(RuntimeError):
    """Raised when a post changed underneath the current writer."""


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class PostRepository:
    """Thin wrapper around database access for post entities."""

    def __init__(self, session: Session) -> None:
        """Initialize the repository with a SQLAlchemy session."""
        self.session = session

    def get_by_id(self, post_id: str) -> SocialPost | None:
        """Return a post by identifier."""
        return self.session.get(SocialPost, post_id)

    def list_posts(
        self,
        *,
        search: str | None = None,
        status: PostStatus | None = None,
    ) -> list[SocialPost]:
        """Return posts newest first, optionally filtered.

        Args:
            search: Case-insensitive substring matched against title and content.
            status: Restrict results to a single workflow state.
        """
        stmt = select(SocialPost)
        term = (search or "").strip()
        if term:
            pattern = f"%{_escape_like(term)}%"
            stmt = stmt.where(
                or_(
                    SocialPost.title.ilike(pattern, escape="\\"),
                    SocialPost.content.ilike(pattern, escape="\\"),
                )
            )
        if status is not None:
            stmt = stmt.where(SocialPost.status == status)
        stmt = stmt.order_by(SocialPost.uploaded_at.desc(), SocialPost.id)
        return list(self.session.scalars(stmt))

    def add(self, post: SocialPost) -> SocialPost:
        """Insert a new post and return the persisted ORM instance."""
        self.session.add(post)
        self.session.commit()
        self.session.refresh(post)
        return post

    def save(self, post: SocialPost) -> SocialPost:
        """Flush pending changes to `post`.

        Raises:
            StalePostError: Another writer updated or removed the row first.
        """
        try:
            self.session.commit()
        except StaleDataError as exc:
            self.session.rollback()
            raise StalePostError(f"Post {post.id} was modified concurrently") from exc
        self.session.refresh(post)
        return post

    def delete(self, post: SocialPost) -> None:
        """Remove a post record.

        Raises:
            StalePostError: Another writer updated or removed the row first.
        """
        self.session.delete(post)
        try:
            self.session.commit()
        except StaleDataError as exc:
            self.session.rollback()
            raise StalePostError(f"Post {post.id} was modified concurrently") from exc

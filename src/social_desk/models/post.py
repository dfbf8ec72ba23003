# src/social_desk/models/post.py
"""SQLAlchemy models for social posts awaiting approval."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from sqlalchemy import JSON, Enum, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from social_desk.db.session import Base
from social_desk.db.time import UTCDateTime, utcnow


class PostStatus(StrEnum):
    """Workflow states a post moves through."""

    PENDING = "pending"
    AUTHORIZED = "authorized"
    CHANGES_REQUESTED = "changes_requested"
    POSTED = "posted"


class Platform(StrEnum):
    """Social networks a post can be scheduled for."""

    FACEBOOK = "facebook"
    INSTAGRAM = "instagram"
    YOUTUBE = "youtube"
    TIKTOK = "tiktok"


class SocialPost(Base):
    """Proposed social media content plus the media files attached to it.

    Identity snapshots (`uploaded_by`, `authorized_by`, `posted_by`) and the
    history lists are JSON so the record mirrors what the dashboard shows.
    JSON columns are always reassigned, never mutated in place.
    """

    __tablename__ = "social_post"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    scheduled_date: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    status: Mapped[PostStatus] = mapped_column(
        Enum(
            PostStatus,
            native_enum=False,
            length=32,
            values_callable=lambda members: [member.value for member in members],
        ),
        nullable=False,
        default=PostStatus.PENDING,
        index=True,
    )

    # {"uid": ..., "email": ...}
    uploaded_by: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    uploaded_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        default=utcnow,
        index=True,
    )

    # File references are kept after posting for display even though the
    # artifacts themselves are purged.
    files: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    platforms: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    link: Mapped[str | None] = mapped_column(Text, nullable=True)

    change_requests: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
    )
    edits: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)

    authorized_by: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    authorized_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    posted_by: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    posted_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    # Bumped by the ORM on every UPDATE; concurrent writers get StaleDataError.
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    @property
    def uploader_uid(self) -> str | None:
        """Return the uid of the editor who created the post."""
        return (self.uploaded_by or {}).get("uid")

    @property
    def filenames(self) -> list[str]:
        """Return on-disk names of the attached files, in upload order."""
        return [entry["filename"] for entry in self.files or [] if entry.get("filename")]

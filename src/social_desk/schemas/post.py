# src/social_desk/schemas/post.py
"""Post-related Pydantic schemas."""

from datetime import datetime

from pydantic import Field, field_validator

from social_desk.models import Platform, PostStatus

from .base import CamelModel


class IdentityRecord(CamelModel):
    """Identity snapshot stored on a post."""

    uid: str
    email: str | None = None


class FileReference(CamelModel):
    """Metadata for one media file attached to a post."""

    filename: str
    original_name: str
    type: str | None = None
    size: int
    uploaded_at: datetime


class ChangeRequestEntry(CamelModel):
    requested_by: IdentityRecord
    requested_at: datetime
    message: str


class EditEntry(CamelModel):
    edited_by: IdentityRecord
    edited_at: datetime
    changes: str


class PostCreate(CamelModel):
    """Schema for the non-file fields of a new post."""

    title: str = Field(..., min_length=1, max_length=500)
    content: str = Field(..., min_length=1)
    scheduled_date: datetime
    platforms: list[Platform] = Field(..., min_length=1)
    link: str | None = None

    @field_validator("title", "content", mode="before")
    @classmethod
    def _strip(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    @field_validator("link", mode="before")
    @classmethod
    def _blank_link(cls, value: object) -> object:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @field_validator("platforms")
    @classmethod
    def _dedupe(cls, value: list[Platform]) -> list[Platform]:
        return list(dict.fromkeys(value))


class PostUpdate(CamelModel):
    """Schema for editing a post. Omitted fields stay unchanged."""

    title: str | None = Field(None, min_length=1, max_length=500)
    content: str | None = Field(None, min_length=1)
    scheduled_date: datetime | None = None

    @field_validator("title", "content", mode="before")
    @classmethod
    def _strip(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value


class ChangeRequestCreate(CamelModel):
    message: str = ""


class PostResponse(CamelModel):
    """Schema for post information returned by the API."""

    id: str
    title: str
    content: str
    scheduled_date: datetime
    status: PostStatus
    uploaded_by: IdentityRecord
    uploaded_at: datetime
    files: list[FileReference] = Field(default_factory=list)
    platforms: list[str] = Field(default_factory=list)
    link: str | None = None
    change_requests: list[ChangeRequestEntry] = Field(default_factory=list)
    edits: list[EditEntry] = Field(default_factory=list)
    authorized_by: IdentityRecord | None = None
    authorized_at: datetime | None = None
    posted_by: IdentityRecord | None = None
    posted_at: datetime | None = None
    version: int
    allowed_actions: list[str] = Field(default_factory=list)


class PostActionResponse(CamelModel):
    """Result of a lifecycle transition or edit."""

    success: bool = True
    post: PostResponse
    warnings: list[str] = Field(default_factory=list)


class PostDeleteResponse(CamelModel):
    success: bool = True
    message: str
    warnings: list[str] = Field(default_factory=list)

# src/social_desk/schemas/files.py
"""Schemas for media file endpoints."""

from .base import CamelModel


class FileUploadResponse(CamelModel):
    """Result of attaching an uploaded file to a post."""

    success: bool = True
    message: str
    filename: str
    path: str


class FileDeleteResponse(CamelModel):
    """Result of removing a stored file."""

    success: bool = True
    message: str


class HealthResponse(CamelModel):
    """Liveness payload."""

    status: str
    message: str
    upload_dir: str

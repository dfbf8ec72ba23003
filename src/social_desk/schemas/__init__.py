# src/social_desk/schemas/__init__.py
"""Pydantic schemas for request and response validation."""

from .auth import CustomTokenRequest, CustomTokenResponse
from .dashboard import DashboardResponse, DashboardStats, LaneResponse
from .files import FileDeleteResponse, FileUploadResponse, HealthResponse
from .post import (
    ChangeRequestCreate,
    FileReference,
    PostActionResponse,
    PostCreate,
    PostDeleteResponse,
    PostResponse,
    PostUpdate,
)
from .session import CapabilitiesResponse, IdentityResponse, SessionResponse

__all__ = [
    "CapabilitiesResponse",
    "ChangeRequestCreate",
    "CustomTokenRequest",
    "CustomTokenResponse",
    "DashboardResponse",
    "DashboardStats",
    "FileDeleteResponse",
    "FileReference",
    "FileUploadResponse",
    "HealthResponse",
    "IdentityResponse",
    "LaneResponse",
    "PostActionResponse",
    "PostCreate",
    "PostDeleteResponse",
    "PostResponse",
    "PostUpdate",
    "SessionResponse",
]

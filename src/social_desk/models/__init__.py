# src/social_desk/models/__init__.py
"""SQLAlchemy models for the Social Desk application."""

from .post import Platform, PostStatus, SocialPost
from .user import UserPermission

__all__ = [
    "Platform",
    "PostStatus",
    "SocialPost",
    "UserPermission",
]

# src/social_desk/repositories/__init__.py
"""Data access layer."""

from .post_repo import PostRepository, StalePostError

__all__ = ["PostRepository", "StalePostError"]

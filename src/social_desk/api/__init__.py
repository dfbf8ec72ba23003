# src/social_desk/api/__init__.py
"""HTTP API for the Social Desk application."""

from .endpoints import (
    auth_router,
    dashboard_router,
    files_router,
    posts_router,
    system_router,
)

__all__ = [
    "auth_router",
    "dashboard_router",
    "files_router",
    "posts_router",
    "system_router",
]

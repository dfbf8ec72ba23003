# src/social_desk/api/endpoints/__init__.py
"""API endpoint modules."""

from .auth import router as auth_router
from .dashboard import router as dashboard_router
from .files import router as files_router
from .posts import router as posts_router
from .system import router as system_router

__all__ = [
    "auth_router",
    "dashboard_router",
    "files_router",
    "posts_router",
    "system_router",
]

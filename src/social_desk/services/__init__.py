# src/social_desk/services/__init__.py
"""Business logic services for the Social Desk application."""

from .file_store import FileStore, get_file_store
from .identity import IdentityVerifier, TokenExchangeService
from .lifecycle import PostAction, PostLifecycle, PurgeReport
from .session import Capabilities, Identity, SessionContext, load_session

__all__ = [
    "Capabilities",
    "FileStore",
    "Identity",
    "IdentityVerifier",
    "PostAction",
    "PostLifecycle",
    "PurgeReport",
    "SessionContext",
    "TokenExchangeService",
    "get_file_store",
    "load_session",
]

# src/social_desk/services/session.py
"""Resolve who is calling and what they may do.

Permission flags are provisioned by an external account hub and arrive as
booleans, strings or integers. They are normalized here exactly once, and
the rest of the application only sees `Capabilities`.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from sqlalchemy.orm import Session

from social_desk.models import UserPermission

logger = logging.getLogger(__name__)

SOCIAL_FLAG = "social"
SOCIAL_ADMIN_FLAG = "socialAdmin"


class AccessDeniedError(RuntimeError):
    """Raised when a verified user holds no access to the application."""


def _flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value == 1
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return False


@dataclass(frozen=True)
class Capabilities:
    """Normalized access flags for one caller."""

    social: bool = False
    social_admin: bool = False

    @property
    def is_admin(self) -> bool:
        return self.social_admin

    @property
    def is_editor(self) -> bool:
        """Base access without elevation."""
        return self.social and not self.social_admin

    @property
    def has_access(self) -> bool:
        return self.social or self.social_admin


def resolve_capabilities(raw: Mapping[str, Any] | None) -> Capabilities:
    """Turn a stored permission mapping into `Capabilities`.

    `True`, `"true"` (any case) and `1` grant a flag; anything else denies it.
    """
    raw = raw or {}
    return Capabilities(
        social=_flag(raw.get(SOCIAL_FLAG)),
        social_admin=_flag(raw.get(SOCIAL_ADMIN_FLAG)),
    )


@dataclass(frozen=True)
class Identity:
    uid: str
    email: str | None = None

    def as_record(self) -> dict[str, Any]:
        """Return the snapshot stored on posts."""
        return {"uid": self.uid, "email": self.email}


@dataclass(frozen=True)
class SessionContext:
    """Caller identity and capabilities, built once per request."""

    identity: Identity
    capabilities: Capabilities

    @property
    def uid(self) -> str:
        return self.identity.uid

    @property
    def is_admin(self) -> bool:
        return self.capabilities.is_admin


def load_session(db: Session, claims: Mapping[str, Any]) -> SessionContext:
    """Build the session for verified ID token claims.

    Raises:
        AccessDeniedError: No permission record exists, or it grants neither
            base nor elevated access.
    """
    uid = claims["uid"]
    record = db.get(UserPermission, uid)
    if record is None:
        logger.warning("Access denied for %s: no permission record", uid)
        raise AccessDeniedError("Access denied. You do not have permission to use this tool.")

    capabilities = resolve_capabilities(record.permissions)
    if not capabilities.has_access:
        logger.warning("Access denied for %s: no social permissions", uid)
        raise AccessDeniedError("Access denied. You do not have permission to use this tool.")

    email = claims.get("email") or record.email
    return SessionContext(identity=Identity(uid=uid, email=email), capabilities=capabilities)

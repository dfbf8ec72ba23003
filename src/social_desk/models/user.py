# src/social_desk/models/user.py
"""SQLAlchemy model for per-user access flags."""

from __future__ import annotations

from typing import Any

from sqlalchemy import JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from social_desk.db.session import Base


class UserPermission(Base):
    """Access flags for one identity-provider user.

    `permissions` is stored as provisioned by the account hub, so `social`
    and `socialAdmin` may arrive as booleans, strings or integers. They are
    normalized when a session is loaded, never here.
    """

    __tablename__ = "user_permission"

    uid: Mapped[str] = mapped_column(String(128), primary_key=True)
    email: Mapped[str | None] = mapped_column(Text, nullable=True)
    display_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    permissions: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

# src/social_desk/schemas/session.py
"""Schemas describing the authenticated caller."""

from .base import CamelModel


class IdentityResponse(CamelModel):
    uid: str
    email: str | None = None


class CapabilitiesResponse(CamelModel):
    social: bool
    social_admin: bool
    is_admin: bool
    is_editor: bool


class SessionResponse(CamelModel):
    """Caller identity plus normalized capability flags."""

    identity: IdentityResponse
    capabilities: CapabilitiesResponse

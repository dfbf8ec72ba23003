# src/social_desk/schemas/auth.py
"""Schemas for the token exchange endpoint."""

from pydantic import Field

from .base import CamelModel


class CustomTokenRequest(CamelModel):
    """Identity assertion presented for exchange."""

    id_token: str | None = Field(None, description="ID token issued by the identity provider")


class CustomTokenResponse(CamelModel):
    """Session credential minted for the verified user."""

    success: bool = True
    custom_token: str

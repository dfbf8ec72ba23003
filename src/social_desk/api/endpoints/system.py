# src/social_desk/api/endpoints/system.py
"""Health and session introspection endpoints."""

from fastapi import APIRouter

from social_desk.api.dependencies import CurrentSession
from social_desk.core.settings import settings
from social_desk.schemas import (
    CapabilitiesResponse,
    HealthResponse,
    IdentityResponse,
    SessionResponse,
)
from social_desk.services.session import SessionContext

router = APIRouter(tags=["system"])


def session_response(current_session: SessionContext) -> SessionResponse:
    capabilities = current_session.capabilities
    return SessionResponse(
        identity=IdentityResponse(
            uid=current_session.identity.uid,
            email=current_session.identity.email,
        ),
        capabilities=CapabilitiesResponse(
            social=capabilities.social,
            social_admin=capabilities.social_admin,
            is_admin=capabilities.is_admin,
            is_editor=capabilities.is_editor,
        ),
    )


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint to verify the service is running."""
    return HealthResponse(
        status="ok",
        message="API is running",
        upload_dir=str(settings.upload_dir.resolve()),
    )


@router.get("/session", response_model=SessionResponse)
async def get_session(current_session: CurrentSession) -> SessionResponse:
    """Return the caller's identity and normalized capabilities."""
    return session_response(current_session)

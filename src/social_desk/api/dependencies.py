# src/social_desk/api/dependencies.py
"""Shared API dependencies for authentication and common functionality."""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from social_desk.db.session import get_db
from social_desk.repositories import PostRepository
from social_desk.services.file_store import FileStore, get_file_store
from social_desk.services.identity import (
    IdentityConfigurationError,
    IdentityVerifier,
    InvalidAssertionError,
    TokenExchangeService,
    get_identity_verifier,
    get_token_exchange_service,
)
from social_desk.services.lifecycle import PostLifecycle
from social_desk.services.session import AccessDeniedError, SessionContext, load_session

# HTTP Bearer scheme carrying the identity provider's ID token
bearer_scheme = HTTPBearer(auto_error=False)

# Type aliases for common dependencies
SessionDep = Annotated[Session, Depends(get_db)]
FileStoreDep = Annotated[FileStore, Depends(get_file_store)]
VerifierDep = Annotated[IdentityVerifier, Depends(get_identity_verifier)]
TokenExchangeDep = Annotated[TokenExchangeService, Depends(get_token_exchange_service)]


async def get_current_session(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    db: SessionDep,
    verifier: VerifierDep,
) -> SessionContext:
    """Verify the caller's ID token and load their capabilities.

    Raises:
        HTTPException: 401 when the token is missing or invalid, 403 when the
            user holds no access, 500 when identity is not configured.
    """
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    try:
        claims = await verifier.verify(credentials.credentials)
    except InvalidAssertionError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token. Please sign in again.",
        ) from err
    except IdentityConfigurationError as err:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(err),
        ) from err

    try:
        return load_session(db, claims)
    except AccessDeniedError as err:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(err)) from err


CurrentSession = Annotated[SessionContext, Depends(get_current_session)]


def get_lifecycle(db: SessionDep, store: FileStoreDep) -> PostLifecycle:
    """Return a lifecycle engine bound to the request's database session."""
    return PostLifecycle(PostRepository(db), store)


LifecycleDep = Annotated[PostLifecycle, Depends(get_lifecycle)]


def get_expected_version(
    if_match: Annotated[str | None, Header(alias="If-Match")] = None,
) -> int | None:
    """Parse an optional `If-Match` header holding a post version."""
    if if_match is None or if_match.strip() in {"", "*"}:
        return None
    value = if_match.strip().removeprefix("W/").strip('"')
    try:
        return int(value)
    except ValueError as err:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="If-Match must be a post version number",
        ) from err


ExpectedVersionDep = Annotated[int | None, Depends(get_expected_version)]

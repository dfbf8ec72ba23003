# src/social_desk/api/errors.py
"""Translate domain errors into HTTP responses.

Every error body has the shape ``{"success": false, "error": "<message>"}``;
authentication failures also carry ``"reauthenticate": true`` so the browser
knows to sign in again.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from social_desk.services.file_store import (
    FileStoreError,
    FileTooLargeError,
    InvalidMediaTypeError,
    MissingPostIdError,
    StoredFileNotFoundError,
)
from social_desk.services.identity import (
    IdentityConfigurationError,
    IdentityError,
    InvalidAssertionError,
    TokenGenerationError,
)
from social_desk.services.lifecycle import (
    InvalidPostError,
    InvalidTransitionError,
    LifecycleError,
    PermissionDeniedError,
    PostNotFoundError,
    VersionConflictError,
)
from social_desk.services.session import AccessDeniedError

logger = logging.getLogger(__name__)

# Checked in order; subclasses come before their bases.
_STATUS_BY_ERROR: tuple[tuple[type[Exception], int], ...] = (
    (InvalidMediaTypeError, status.HTTP_400_BAD_REQUEST),
    (MissingPostIdError, status.HTTP_400_BAD_REQUEST),
    (FileTooLargeError, 413),
    (StoredFileNotFoundError, status.HTTP_404_NOT_FOUND),
    (FileStoreError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (PostNotFoundError, status.HTTP_404_NOT_FOUND),
    (PermissionDeniedError, status.HTTP_403_FORBIDDEN),
    (InvalidTransitionError, status.HTTP_409_CONFLICT),
    (VersionConflictError, status.HTTP_409_CONFLICT),
    (InvalidPostError, status.HTTP_400_BAD_REQUEST),
    (LifecycleError, status.HTTP_400_BAD_REQUEST),
    (InvalidAssertionError, status.HTTP_401_UNAUTHORIZED),
    (TokenGenerationError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (IdentityConfigurationError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (IdentityError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (AccessDeniedError, status.HTTP_403_FORBIDDEN),
)

DomainError = (FileStoreError, LifecycleError, IdentityError, AccessDeniedError)


def to_http_exception(exc: Exception) -> HTTPException:
    """Map a domain exception onto an `HTTPException` carrying its message."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
                logger.error("%s: %s", type(exc).__name__, exc)
            return HTTPException(status_code=status_code, detail=str(exc))
    logger.error("Unmapped error %s: %s", type(exc).__name__, exc)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal server error",
    )


def error_body(message: str, status_code: int) -> dict[str, object]:
    body: dict[str, object] = {"success": False, "error": message}
    if status_code == status.HTTP_401_UNAUTHORIZED:
        body["reauthenticate"] = True
    return body


async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message, exc.status_code),
        headers=getattr(exc, "headers", None),
    )


async def _validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    else:
        message = "Invalid request"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(message, status.HTTP_400_BAD_REQUEST),
    )


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled error on %s %s",
        request.method,
        request.url.path,
        exc_info=(type(exc), exc, exc.__traceback__),
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("Internal server error", status.HTTP_500_INTERNAL_SERVER_ERROR),
    )


def install_error_handlers(app: FastAPI) -> None:
    """Register the JSON error handlers on `app`."""
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)

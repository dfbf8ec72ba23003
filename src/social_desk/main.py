# src/social_desk/main.py
"""Main entry point for the Social Desk application."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from social_desk import __version__
from social_desk.api import (
    auth_router,
    dashboard_router,
    files_router,
    posts_router,
    system_router,
)
from social_desk.api.errors import install_error_handlers
from social_desk.core.logging import setup_logging
from social_desk.core.settings import settings
from social_desk.db.session import create_tables
from social_desk.services.file_store import get_file_store

setup_logging()
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Approval workflow for social media posts and their media files",
    version=__version__,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

install_error_handlers(app)

# Include API routers
app.include_router(system_router, prefix="/api")
app.include_router(auth_router, prefix="/api")
app.include_router(files_router, prefix="/api")
app.include_router(posts_router, prefix="/api")
app.include_router(dashboard_router, prefix="/api")


@app.on_event("startup")
async def on_startup() -> None:
    get_file_store().ensure_root()
    if settings.auto_create_tables:
        create_tables()
    logger.info("%s listening on %s:%s", settings.app_name, settings.host, settings.port)
    logger.info("Upload directory: %s", settings.upload_dir.resolve())


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": __version__,
        "description": "Approval workflow for social media posts and their media files",
        "docs": "/docs",
        "redoc": "/redoc",
    }


def run() -> None:
    """Serve the application with uvicorn."""
    import uvicorn

    uvicorn.run(
        "social_desk.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()

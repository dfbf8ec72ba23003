# src/social_desk/core/logging.py
"""Logging setup shared by the API process and the admin scripts."""

from __future__ import annotations

import logging

from social_desk.core.settings import settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
ROOT_LOGGER_NAME = "social_desk"


def setup_logging(level: str | None = None) -> logging.Logger:
    """Configure the root handler once and return the package logger."""
    resolved = getattr(logging, (level or settings.log_level).upper(), logging.INFO)
    logging.basicConfig(level=resolved, format=LOG_FORMAT)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(resolved)
    return logger

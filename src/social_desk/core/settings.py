# src/social_desk/core/settings.py
"""Application settings and configuration.

This module defines all configuration options for the Social Desk service.
Settings are loaded from environment variables (or an `.env` file) with
sensible defaults.
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

MEBIBYTE = 1024 * 1024


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files, and
    by field name when constructing an instance directly (tests do this).
    """

    # Application metadata
    app_name: str = Field(default="Social Desk", alias="APP_NAME")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # HTTP listener
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=5500, alias="PORT")

    # Database configuration
    database_url: str = Field(default="sqlite:///./social_desk.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")
    auto_create_tables: bool = Field(default=True, alias="AUTO_CREATE_TABLES")

    # Media storage
    upload_dir: Path = Field(default=Path("uploads/social-posts"), alias="UPLOAD_DIR")
    max_upload_bytes: int = Field(default=500 * MEBIBYTE, alias="MAX_UPLOAD_BYTES")
    allowed_media_extensions: list[str] = Field(
        default=["jpeg", "jpg", "png", "gif", "mp4", "mov", "avi", "webm", "mkv"],
        alias="ALLOWED_MEDIA_EXTENSIONS",
    )
    file_delete_concurrency: int = Field(default=4, alias="FILE_DELETE_CONCURRENCY")

    # Identity provider (ID token verification and custom token minting)
    identity_project_id: str | None = Field(default=None, alias="FIREBASE_PROJECT_ID")
    service_account_file: Path | None = Field(
        default=None,
        alias="FIREBASE_SERVICE_ACCOUNT_FILE",
    )
    service_account_json: str | None = Field(default=None, alias="FIREBASE_SERVICE_ACCOUNT")
    id_token_certs_url: str = Field(
        default=(
            "https://www.googleapis.com/robot/v1/metadata/x509/"
            "securetoken@system.gserviceaccount.com"
        ),
        alias="ID_TOKEN_CERTS_URL",
    )
    id_token_issuer_prefix: str = Field(
        default="https://securetoken.google.com/",
        alias="ID_TOKEN_ISSUER_PREFIX",
    )
    custom_token_audience: str = Field(
        default=(
            "https://identitytoolkit.googleapis.com/"
            "google.identity.identitytoolkit.v1.IdentityToolkit"
        ),
        alias="CUSTOM_TOKEN_AUDIENCE",
    )
    custom_token_ttl_seconds: int = Field(default=3600, alias="CUSTOM_TOKEN_TTL_SECONDS")
    identity_http_timeout_seconds: float = Field(
        default=10.0,
        alias="IDENTITY_HTTP_TIMEOUT_SECONDS",
    )
    identity_certs_cache_seconds: int = Field(
        default=3600,
        alias="IDENTITY_CERTS_CACHE_SECONDS",
    )
    identity_certs_min_refresh_seconds: float = Field(
        default=60.0,
        alias="IDENTITY_CERTS_MIN_REFRESH_SECONDS",
    )

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["Content-Type", "Authorization", "If-Match"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        populate_by_name=True,
        extra="ignore",
    )

    @property
    def allowed_extensions(self) -> frozenset[str]:
        """Return allowed media extensions, lower-cased and dot-prefixed."""
        return frozenset(
            f".{ext.lower().lstrip('.')}" for ext in self.allowed_media_extensions
        )


settings = Settings()

"""
==============================================================================
Application Settings Module
==============================================================================

Configuration management using Pydantic Settings.

Features:
---------
- Environment variable loading with type validation
- .env file support for local development
- Storage backend selection (blob store or in-process memory)
- Computed properties for derived values

Configuration Priority (highest to lowest):
------------------------------------------
1. Environment variables
2. .env file
3. Default values

Security Considerations:
-----------------------
- Never commit .env files to version control
- Use a strong JWT_SECRET_KEY in production
- Prefer ADMIN_PASSWORD_HASH over a plain ADMIN_PASSWORD

==============================================================================
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Module logger
logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        app_name: Display name for the application
        app_env: Environment mode (development/staging/production)
        debug: Enable debug mode for verbose logging
        host: Server bind address
        port: Server port number
        cors_origins: Allowed CORS origins (JSON array string)
        admin_username: Admin panel login name
        admin_password: Admin panel password (plain, development only)
        admin_password_hash: Passlib hash of the admin password
        jwt_secret_key: Secret key for JWT token signing
        jwt_algorithm: Algorithm for JWT signing (e.g., HS256)
        access_token_expire_minutes: Access token lifetime in minutes
        storage_backend: auto, blob or memory
        blob_read_write_token: Blob store API token
        blob_api_url: Blob store API base URL
        blob_host_marker: Host substring identifying blob-hosted images
        products_blob_key: Well-known key of the catalog document
        upload_prefix: Pathname prefix for uploaded images
        max_save_attempts: Retries of a mutation after a revision conflict

    Example:
        >>> settings = Settings()
        >>> settings.resolved_storage_backend
        'memory'
    """

    # =========================================================================
    # PYDANTIC SETTINGS CONFIGURATION
    # =========================================================================
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_default=True,
    )

    # =========================================================================
    # APPLICATION SETTINGS
    # =========================================================================
    app_name: str = Field(
        default="Marine Catalog API",
        description="Display name for the application"
    )

    app_env: str = Field(
        default="development",
        description="Environment mode: development, staging, production"
    )

    debug: bool = Field(
        default=False,
        description="Enable debug mode for verbose logging"
    )

    # =========================================================================
    # SERVER SETTINGS
    # =========================================================================
    host: str = Field(
        default="0.0.0.0",
        description="Server bind address"
    )

    port: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="Server port number"
    )

    cors_origins: str = Field(
        default='["*"]',
        description="Allowed CORS origins as JSON array string"
    )

    # =========================================================================
    # ADMIN AUTHENTICATION SETTINGS
    # =========================================================================
    admin_username: str = Field(
        default="admin",
        min_length=1,
        max_length=50,
        description="Admin panel login name"
    )

    admin_password: str = Field(
        default="admin123",
        min_length=1,
        description="Admin panel password"
    )

    admin_password_hash: Optional[str] = Field(
        default=None,
        description="Passlib hash of the admin password, overrides admin_password"
    )

    jwt_secret_key: str = Field(
        default="change-this-in-production",
        min_length=16,
        description="Secret key for JWT token signing"
    )

    jwt_algorithm: str = Field(
        default="HS256",
        description="Algorithm for JWT signing"
    )

    access_token_expire_minutes: int = Field(
        default=480,
        ge=1,
        le=1440,  # Max 24 hours
        description="Access token lifetime in minutes"
    )

    # =========================================================================
    # STORAGE SETTINGS
    # =========================================================================
    storage_backend: str = Field(
        default="auto",
        description="Catalog storage: auto, blob or memory"
    )

    blob_read_write_token: Optional[str] = Field(
        default=None,
        description="Blob store read/write API token"
    )

    blob_api_url: str = Field(
        default="https://blob.vercel-storage.com",
        description="Blob store API base URL"
    )

    blob_api_version: str = Field(
        default="7",
        description="Blob store API version header"
    )

    blob_timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        description="Timeout for blob store requests"
    )

    blob_host_marker: str = Field(
        default="vercel-storage.com",
        min_length=1,
        description="Host substring that marks an image URL as blob-hosted"
    )

    products_blob_key: str = Field(
        default="data/products.json",
        min_length=1,
        description="Well-known key of the catalog document"
    )

    upload_prefix: str = Field(
        default="products",
        min_length=1,
        description="Pathname prefix for uploaded product images"
    )

    max_save_attempts: int = Field(
        default=5,
        ge=1,
        le=20,
        description="Mutation attempts before reporting a storage conflict"
    )

    # =========================================================================
    # VALIDATORS
    # =========================================================================
    @field_validator("app_env")
    @classmethod
    def validate_app_env(cls, value: str) -> str:
        """
        Validate and normalize application environment.

        Unknown values fall back to 'development' with a warning.
        """
        valid_envs = {"development", "staging", "production"}
        normalized = value.lower().strip()

        if normalized not in valid_envs:
            logger.warning(
                f"Unknown environment '{value}', defaulting to 'development'"
            )
            return "development"

        return normalized

    @field_validator("jwt_algorithm")
    @classmethod
    def validate_jwt_algorithm(cls, value: str) -> str:
        """Only HMAC algorithms are usable with a shared secret."""
        supported = {"HS256", "HS384", "HS512"}

        if value.upper() not in supported:
            raise ValueError(
                f"Unsupported JWT algorithm: {value}. "
                f"Supported: {', '.join(sorted(supported))}"
            )

        return value.upper()

    @field_validator("storage_backend")
    @classmethod
    def validate_storage_backend(cls, value: str) -> str:
        normalized = value.lower().strip()

        if normalized not in {"auto", "blob", "memory"}:
            raise ValueError(
                f"Unsupported storage backend: {value}. "
                "Supported: auto, blob, memory"
            )

        return normalized

    @field_validator("upload_prefix")
    @classmethod
    def strip_upload_prefix(cls, value: str) -> str:
        return value.strip("/")

    # =========================================================================
    # COMPUTED PROPERTIES
    # =========================================================================
    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env == "production"

    @property
    def resolved_storage_backend(self) -> str:
        """
        Storage backend after resolving 'auto'.

        Returns:
            'blob' when a blob token is configured (or blob was forced),
            'memory' otherwise

        Raises:
            ValueError: If 'blob' is forced without a token
        """
        if self.storage_backend == "memory":
            return "memory"

        if self.blob_read_write_token:
            return "blob"

        if self.storage_backend == "blob":
            raise ValueError(
                "STORAGE_BACKEND=blob requires BLOB_READ_WRITE_TOKEN"
            )

        return "memory"

    @property
    def cors_origins_list(self) -> List[str]:
        """
        Parse CORS origins from JSON string to list.

        Returns:
            List of allowed origin strings
        """
        try:
            origins = json.loads(self.cors_origins)
            if isinstance(origins, list):
                return origins
            return ["*"]
        except json.JSONDecodeError:
            logger.warning(
                f"Invalid CORS origins JSON: {self.cors_origins}, "
                "defaulting to ['*']"
            )
            return ["*"]

    @property
    def access_token_expire_seconds(self) -> int:
        """Get access token expiry in seconds."""
        return self.access_token_expire_minutes * 60

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"Settings(app_name={self.app_name!r}, "
            f"app_env={self.app_env!r}, "
            f"storage_backend={self.storage_backend!r}, "
            f"debug={self.debug})"
        )


# =============================================================================
# SINGLETON INSTANCE MANAGEMENT
# =============================================================================

@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get the global Settings instance (singleton pattern).

    Returns:
        Global Settings instance
    """
    settings = Settings()

    if settings.debug:
        logger.info(f"Configuration loaded: {settings}")

    return settings

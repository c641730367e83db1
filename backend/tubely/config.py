"""
Tubely Configuration Management Module

This module provides configuration management for the Tubely ingestion service
using Pydantic Settings. It loads and validates all environment variables required for:
- Application settings (name, environment, debug mode, logging)
- MongoDB connection for video metadata records
- S3/MinIO object storage with static or presigned URL resolution
- Local HS256 JWT verification
- Upload ceilings, temporary storage and thumbnail storage strategy
- ffprobe/ffmpeg locations and subprocess timeouts

The Settings object is frozen after construction. Components receive it (or the
values they need from it) through their constructors instead of reading any
module-level state.
"""

from functools import lru_cache
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


# Upload ceilings
DEFAULT_MAX_VIDEO_UPLOAD_BYTES = 1 << 30  # 1 GiB
DEFAULT_MAX_THUMBNAIL_UPLOAD_BYTES = 10 << 20  # 10 MiB

URL_MODE_SIGNED = "signed"
URL_MODE_STATIC = "static"

THUMBNAIL_STORAGE_S3 = "s3"
THUMBNAIL_STORAGE_LOCAL = "local"
THUMBNAIL_STORAGE_MEMORY = "memory"


class Settings(BaseSettings):
    """
    Configuration settings for the Tubely ingestion service.

    Values are read from environment variables and an optional .env file with
    full type validation. The instance is immutable once built.

    Configuration Categories:
    - Application: Core app settings like name, environment, debug mode
    - MongoDB: Metadata store connection and pool settings
    - S3/MinIO: Object storage credentials, bucket and URL resolution mode
    - JWT: Bearer token verification
    - Upload: Body ceilings, scratch directory, thumbnail storage strategy
    - Media tools: ffprobe/ffmpeg binaries and timeouts

    Example usage:
        ```python
        from tubely.config import Settings

        settings = Settings(url_mode="static")
        print(settings.resolved_public_base_url)
        ```
    """

    # =========================================================================
    # Application Settings
    # =========================================================================

    app_name: str = Field(default="Tubely", description="Application name used in logs and docs")

    app_env: str = Field(
        default="development",
        description="Application environment (development, staging, production, testing)",
    )

    debug: bool = Field(default=False, description="Enable debug mode and hot-reload")

    log_level: str = Field(
        default="info", description="Logging level (debug, info, warning, error, critical)"
    )

    json_logs: bool = Field(default=True, description="Emit structured JSON log lines")

    host: str = Field(default="0.0.0.0", description="Host address for the API server to bind to")

    port: int = Field(default=8091, description="Port number for the API server", ge=1, le=65535)

    base_url: str = Field(
        default="http://localhost:8091",
        description="Externally reachable base URL, used for locally served assets",
    )

    cors_origins: Annotated[list[str], NoDecode] = Field(
        default=["http://localhost:8091"],
        description="List of allowed CORS origins for frontend access",
    )

    # =========================================================================
    # MongoDB Configuration
    # =========================================================================

    mongodb_uri: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI for the video metadata store",
    )

    mongodb_db_name: str = Field(default="tubely", description="MongoDB database name")

    mongodb_min_pool_size: int = Field(default=1, ge=0)

    mongodb_max_pool_size: int = Field(default=50, ge=1)

    # =========================================================================
    # S3/MinIO Storage Configuration
    # =========================================================================

    s3_endpoint_url: str | None = Field(
        default=None, description="S3-compatible endpoint URL for MinIO (None for AWS S3)"
    )

    s3_access_key_id: str | None = Field(
        default=None,
        description="Access key ID. When unset boto3 falls back to its credential chain",
    )

    s3_secret_access_key: str | None = Field(default=None, description="Secret access key")

    s3_bucket_name: str = Field(default="tubely-media", description="Bucket for uploaded media")

    s3_region: str = Field(default="us-east-1", description="Region of the bucket")

    url_mode: str = Field(
        default=URL_MODE_SIGNED,
        description="How stored media is addressed: 'signed' (presigned GET) or 'static'",
    )

    public_base_url: str | None = Field(
        default=None,
        description="Base URL for static mode (CDN or public bucket). Derived when unset",
    )

    presigned_url_expiration_seconds: int = Field(
        default=300,
        description="Lifetime of presigned GET URLs in seconds (5 minutes)",
        ge=60,
        le=86400,
    )

    storage_connect_timeout_seconds: float = Field(default=5.0, gt=0)

    storage_read_timeout_seconds: float = Field(default=60.0, gt=0)

    # =========================================================================
    # JWT Configuration
    # =========================================================================

    jwt_secret: str = Field(
        default="development-jwt-secret-change-in-production-32chars",
        description="Shared secret used to verify HS-family JWT signatures",
        min_length=32,
    )

    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")

    jwt_issuer: str = Field(default="tubely-access", description="Expected 'iss' claim")

    # =========================================================================
    # Upload Settings
    # =========================================================================

    max_video_upload_bytes: int = Field(default=DEFAULT_MAX_VIDEO_UPLOAD_BYTES, ge=1)

    max_thumbnail_upload_bytes: int = Field(default=DEFAULT_MAX_THUMBNAIL_UPLOAD_BYTES, ge=1)

    temp_dir: str | None = Field(
        default=None, description="Directory for scratch upload files (system default if unset)"
    )

    assets_root: str = Field(
        default="./assets", description="Directory served at /assets for local thumbnails"
    )

    thumbnail_storage: str = Field(
        default=THUMBNAIL_STORAGE_S3,
        description="Where thumbnails are kept: 's3', 'local' or 'memory'",
    )

    # =========================================================================
    # Media Tool Settings
    # =========================================================================

    ffprobe_path: str = Field(default="ffprobe", description="ffprobe executable")

    ffmpeg_path: str = Field(default="ffmpeg", description="ffmpeg executable")

    enable_fast_start: bool = Field(
        default=True, description="Remux videos with the moov atom first before publishing"
    )

    probe_timeout_seconds: float = Field(default=30.0, gt=0)

    processing_timeout_seconds: float = Field(default=300.0, gt=0)

    # =========================================================================
    # Model Configuration
    # =========================================================================

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate that log_level is a valid logging level."""
        valid_levels = {"debug", "info", "warning", "error", "critical"}
        normalized = v.lower()
        if normalized not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {', '.join(valid_levels)}")
        return normalized

    @field_validator("app_env")
    @classmethod
    def validate_app_env(cls, v: str) -> str:
        """Validate that app_env is a valid environment name."""
        valid_envs = {"development", "staging", "production", "testing"}
        normalized = v.lower()
        if normalized not in valid_envs:
            raise ValueError(f"Invalid app_env '{v}'. Must be one of: {', '.join(valid_envs)}")
        return normalized

    @field_validator("url_mode")
    @classmethod
    def validate_url_mode(cls, v: str) -> str:
        normalized = v.lower()
        if normalized not in {URL_MODE_SIGNED, URL_MODE_STATIC}:
            raise ValueError(f"Invalid url_mode '{v}'. Must be 'signed' or 'static'")
        return normalized

    @field_validator("thumbnail_storage")
    @classmethod
    def validate_thumbnail_storage(cls, v: str) -> str:
        valid = {THUMBNAIL_STORAGE_S3, THUMBNAIL_STORAGE_LOCAL, THUMBNAIL_STORAGE_MEMORY}
        normalized = v.lower()
        if normalized not in valid:
            raise ValueError(
                f"Invalid thumbnail_storage '{v}'. Must be one of: {', '.join(sorted(valid))}"
            )
        return normalized

    @field_validator("jwt_algorithm")
    @classmethod
    def validate_jwt_algorithm(cls, v: str) -> str:
        """Only shared-secret algorithms are supported."""
        valid_algorithms = {"HS256", "HS384", "HS512"}
        if v.upper() not in valid_algorithms:
            raise ValueError(
                f"Invalid jwt_algorithm '{v}'. Must be one of: {', '.join(sorted(valid_algorithms))}"
            )
        return v.upper()

    @field_validator("base_url", "public_base_url", "s3_endpoint_url")
    @classmethod
    def strip_trailing_slash(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return v.rstrip("/")

    @field_validator("cors_origins", mode="before")
    @classmethod
    def validate_cors_origins(cls, v: str | list[str]) -> list[str]:
        """Parse CORS origins from comma-separated string if provided as string."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def is_signed_url_mode(self) -> bool:
        return self.url_mode == URL_MODE_SIGNED

    @property
    def is_testing(self) -> bool:
        return self.app_env == "testing"

    @property
    def resolved_public_base_url(self) -> str:
        """
        Base URL that static-mode object URLs are built from.

        Uses public_base_url when configured. Otherwise path-style for custom
        endpoints (MinIO) and virtual-hosted style for AWS S3.
        """
        if self.public_base_url:
            return self.public_base_url
        if self.s3_endpoint_url:
            return f"{self.s3_endpoint_url}/{self.s3_bucket_name}"
        return f"https://{self.s3_bucket_name}.s3.{self.s3_region}.amazonaws.com"


@lru_cache
def get_settings() -> Settings:
    """
    Get the process-wide Settings instance.

    The settings are loaded once on first call and reused afterwards. Route
    handlers receive them through FastAPI's Depends so tests can override them.

    Returns:
        Settings: The loaded configuration.
    """
    return Settings()

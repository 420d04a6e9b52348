"""
Tubely Configuration Management Module

This module provides configuration management for the Tubely backend using
Pydantic Settings. It loads and validates all environment variables required for:
- Application settings (name, environment, debug mode, logging)
- MongoDB connection for video metadata records
- S3/MinIO object storage and presigned playback link expiry
- Local JWT validation for bearer tokens
- Upload limits, temporary staging and the ffmpeg/ffprobe toolchain
- Local thumbnail assets storage

All settings support environment variable overrides and .env file loading.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


ONE_GIB = 1 << 30
TEN_MIB = 10 << 20


class Settings(BaseSettings):
    """
    Configuration settings for the Tubely backend.

    Configuration Categories:
    - Application: Core app settings like name, environment, debug mode
    - MongoDB: Database connection URI and connection pool settings
    - S3/MinIO: Object storage credentials, bucket and link expiry
    - Auth: JWT secret and algorithm for bearer token validation
    - Upload: Size limits, chunking and temporary staging location
    - Media toolchain: ffmpeg/ffprobe binaries and subprocess timeouts
    - Assets: Local thumbnail directory and public base URL

    Example usage:
        ```python
        from tubely.config import get_settings

        settings = get_settings()
        print(f"Uploading to bucket: {settings.s3_bucket_name}")
        ```
    """

    # =========================================================================
    # Application Settings
    # =========================================================================

    app_name: str = Field(
        default="tubely",
        description="Application name displayed in API documentation and logs",
    )

    app_env: str = Field(
        default="development",
        description="Application environment (development, staging, production, testing)",
    )

    debug: bool = Field(default=True, description="Enable debug mode with hot-reload")

    log_level: str = Field(
        default="info", description="Logging level (debug, info, warning, error, critical)"
    )

    json_logs: bool = Field(
        default=False, description="Emit structured JSON log lines instead of plain text"
    )

    secret_key: str = Field(
        default="development-secret-key-change-in-production-32chars",
        description="Secret key for JWT signature validation. Must be a secure random string.",
        min_length=32,
    )

    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")

    jwt_expiration_hours: int = Field(
        default=24, description="Lifetime of locally issued access tokens in hours", ge=1, le=168
    )

    host: str = Field(default="0.0.0.0", description="Host address for the API server to bind to")

    port: int = Field(default=8091, description="Port number for the API server", ge=1, le=65535)

    cors_origins: list[str] = Field(
        default=["http://localhost:8091"],
        description="List of allowed CORS origins for frontend access",
    )

    # =========================================================================
    # MongoDB Configuration
    # =========================================================================

    mongodb_uri: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI (e.g., mongodb://localhost:27017)",
    )

    mongodb_db_name: str = Field(default="tubely", description="MongoDB database name")

    mongodb_min_pool_size: int = Field(
        default=1, description="Minimum number of connections in MongoDB connection pool", ge=0
    )

    mongodb_max_pool_size: int = Field(
        default=50, description="Maximum number of connections in MongoDB connection pool", ge=1
    )

    # =========================================================================
    # S3/MinIO Storage Configuration
    # =========================================================================

    s3_endpoint_url: str | None = Field(
        default=None, description="S3-compatible endpoint URL for MinIO (None for AWS S3)"
    )

    s3_access_key_id: str = Field(default="minioadmin", description="S3/MinIO access key ID")

    s3_secret_access_key: str = Field(
        default="minioadmin", description="S3/MinIO secret access key"
    )

    s3_bucket_name: str = Field(
        default="tubely-videos", description="S3 bucket name for storing uploaded videos"
    )

    s3_region: str = Field(default="us-east-1", description="AWS region for the S3 bucket")

    video_url_expiration_seconds: int = Field(
        default=600,
        description="Lifetime of presigned playback URLs in seconds (10 minutes)",
        ge=60,
        le=3600,
    )

    # =========================================================================
    # Upload Settings
    # =========================================================================

    max_upload_size_bytes: int = Field(
        default=ONE_GIB,
        description="Maximum request body size for video uploads (1 GiB)",
        ge=1,
    )

    max_thumbnail_size_bytes: int = Field(
        default=TEN_MIB,
        description="Maximum thumbnail image size (10 MiB)",
        ge=1,
    )

    upload_chunk_size: int = Field(
        default=1 << 20,
        description="Chunk size used when streaming uploads to the temporary stage",
        ge=4096,
    )

    upload_tmp_dir: str | None = Field(
        default=None,
        description="Parent directory for per-request temporary stages (None for system temp)",
    )

    # =========================================================================
    # Media Toolchain
    # =========================================================================

    ffmpeg_bin: str = Field(default="ffmpeg", description="ffmpeg executable used for remuxing")

    ffprobe_bin: str = Field(default="ffprobe", description="ffprobe executable used for probing")

    probe_timeout_seconds: float = Field(
        default=30.0, description="Timeout for a single ffprobe invocation", gt=0
    )

    remux_timeout_seconds: float = Field(
        default=600.0, description="Timeout for a single ffmpeg remux invocation", gt=0
    )

    # =========================================================================
    # Thumbnail Assets
    # =========================================================================

    assets_root: str = Field(
        default="assets", description="Local directory where thumbnails are written"
    )

    public_base_url: str = Field(
        default="http://localhost:8091",
        description="Public base URL used to build thumbnail links",
    )

    # =========================================================================
    # Model Configuration
    # =========================================================================

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
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

    @field_validator("jwt_algorithm")
    @classmethod
    def validate_jwt_algorithm(cls, v: str) -> str:
        """Validate that jwt_algorithm is a supported HMAC algorithm."""
        valid_algorithms = {"HS256", "HS384", "HS512"}
        if v.upper() not in valid_algorithms:
            raise ValueError(
                f"Invalid jwt_algorithm '{v}'. Must be one of: {', '.join(valid_algorithms)}"
            )
        return v.upper()

    @field_validator("cors_origins", mode="before")
    @classmethod
    def validate_cors_origins(cls, v: str | list[str]) -> list[str]:
        """Parse CORS origins from comma-separated string if provided as string."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("public_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """
    Get the global Settings instance.

    The @lru_cache decorator ensures that the Settings object is created only
    once on first call, and subsequent calls return the cached instance without
    re-reading environment variables or .env files.

    Returns:
        Settings: The global configuration instance.
    """
    return Settings()

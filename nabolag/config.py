# nabolag/config.py
"""
Centralized configuration with validation.

Uses pydantic-settings to load and validate all environment variables at startup.
Fail fast with clear error messages if required config is missing.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Database
    DATABASE_URL: str = Field(
        ...,
        description="PostgreSQL connection URL",
    )

    # Authentication
    ADMIN_API_KEY: str | None = Field(
        default=None,
        description="API key for admin lifecycle endpoints",
    )

    # Storage
    STORAGE_PROVIDER: str = Field(
        default="s3",
        description="Storage provider: s3, local",
    )
    LOCAL_STORAGE_PATH: str = Field(
        default="./storage",
        description="Path for local storage provider",
    )
    S3_ENDPOINT_URL: str | None = Field(
        default=None,
        description="Custom endpoint for S3-compatible services",
    )
    S3_REGION: str = Field(
        default="eu-north-1",
        description="Region for the S3 client",
    )
    S3_PUBLIC_BASE_URL: str | None = Field(
        default=None,
        description="Public base URL objects are served from, e.g. a CDN. Empty = derive from endpoint.",
    )
    AWS_ACCESS_KEY_ID: str | None = None
    AWS_SECRET_ACCESS_KEY: str | None = None

    # Posts
    POST_IMAGE_BUCKET: str = Field(
        default="opslagsbilleder",
        description="Storage namespace for post images",
    )
    DELETE_MODE: str = Field(
        default="inline",
        description="Direct delete mode: inline (remove images now) or deferred (queue them)",
    )

    # Application
    ENVIRONMENT: str = Field(
        default="development",
        description="Environment: development, staging, production",
    )
    LOG_FORMAT: str = Field(
        default="json",
        description="Log output: json (production) or text (local)",
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Root log level",
    )

    # CORS
    CORS_ORIGINS: str = Field(
        default="",
        description="Comma-separated list of allowed CORS origins",
    )

    @field_validator("DATABASE_URL")
    @classmethod
    def fix_database_url(cls, v: str) -> str:
        """Hosted Postgres hands out postgresql:// but SQLAlchemy needs postgresql+psycopg2://"""
        if v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+psycopg2://", 1)
        return v

    @field_validator("DELETE_MODE")
    @classmethod
    def check_delete_mode(cls, v: str) -> str:
        v = v.lower().strip()
        if v not in ("inline", "deferred"):
            raise ValueError(f"DELETE_MODE must be 'inline' or 'deferred', got '{v}'")
        return v

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached application settings. Call at startup to validate config."""
    return Settings()

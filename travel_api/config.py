"""
Application configuration using Pydantic Settings.
Manages all environment variables and settings.
"""
import os
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import List, Union

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./travel_api.db"


class Environment(str, Enum):
    """Application environment modes."""
    DEV = "DEV"
    PRODUCTION = "PRODUCTION"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=None, case_sensitive=False)

    # Environment
    environment: Environment = Field(
        default=Environment.DEV,
        description="Application environment: DEV or PRODUCTION"
    )

    # Application
    app_name: str = Field(default="Travel Journal API")
    app_version: str = Field(default="1.0.0")
    debug: bool = Field(default=False)

    @model_validator(mode="after")
    def set_debug_from_environment(self):
        """Set debug mode based on environment if not explicitly set via environment variable."""
        if "DEBUG" not in os.environ:
            self.debug = self.environment == Environment.DEV
        return self

    @property
    def is_dev(self) -> bool:
        """Check if running in development mode."""
        return self.environment == Environment.DEV

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == Environment.PRODUCTION

    # Database (blank values fall back to the local SQLite file)
    database_url: str = Field(default=DEFAULT_DATABASE_URL)

    @field_validator("database_url", mode="before")
    @classmethod
    def coerce_empty_database_url(cls, v: str) -> str:
        if not v or not str(v).strip():
            return DEFAULT_DATABASE_URL
        return v

    db_pool_size: int = Field(default=5)
    db_max_overflow: int = Field(default=10)
    db_pool_timeout: int = Field(default=30)
    db_pool_recycle: int = Field(default=3600)

    # JWT
    jwt_secret_key: str = Field(default="jwt-secret-change-in-production-0123456789")
    jwt_algorithm: str = Field(default="HS256")
    jwt_issuer: str = Field(default="travel-journal-api")
    jwt_audience: str = Field(default="travel-journal-client")
    access_token_expire_minutes: int = Field(default=30)

    # Refresh token (single slot per user, delivered as an HttpOnly cookie)
    refresh_token_expire_days: int = Field(
        default=7,
        description="Lifetime of refresh tokens issued on register/login",
    )
    refresh_cookie_name: str = Field(default="refreshToken")

    # CORS
    cors_origins: Union[List[str], str] = Field(default=["http://localhost:3000"])

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS_ORIGINS from comma-separated string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    # Photo uploads
    content_root: Path = Field(
        default=Path("."),
        description="Directory that relative photo paths are resolved against",
    )
    uploads_dirname: str = Field(default="uploads")
    max_photo_bytes: int = Field(default=5 * 1024 * 1024)

    @property
    def uploads_path(self) -> Path:
        """Absolute-or-relative directory photos are written to."""
        return self.content_root / self.uploads_dirname

    # Logging: NDJSON files are written only when a directory is configured
    log_dir: str = Field(default="", description="Directory for NDJSON log files (empty disables)")
    instance_ip: str = Field(default="", description="Instance private IP (auto-detected when empty)")

    # Rate limiting (register / login / refresh)
    rate_limit_enabled: bool = Field(default=True)
    auth_rate_limit: str = Field(default="20/minute")


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Using lru_cache to avoid re-reading the environment on every request.
    """
    return Settings()

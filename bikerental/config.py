"""
Configuration and settings for the bike rental backend.
"""

from __future__ import annotations

from datetime import timedelta, timezone, tzinfo
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "dev-only-secret"


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service and worker."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")

    # Primary document store (any SQLAlchemy URL, Postgres expected)
    database_url: Optional[str] = Field(default=None)
    # Secondary store for rental history, rides and maintenance output.
    # Falls back to database_url when unset.
    analytics_database_url: Optional[str] = Field(default=None)

    # Redis: real-time telemetry tree + job queue
    redis_url: Optional[str] = Field(default=None)
    redis_queue_key: str = Field(default="bikerental:jobs")
    telemetry_key_prefix: str = Field(default="tracker")

    # S3-compatible storage for application documents
    storage_endpoint: Optional[str] = Field(default=None)
    storage_region: Optional[str] = Field(default=None)
    storage_bucket: Optional[str] = Field(default=None)
    aws_access_key_id: Optional[str] = Field(default=None)
    aws_secret_access_key: Optional[str] = Field(default=None)

    # Auth
    jwt_secret: str = Field(default=DEFAULT_JWT_SECRET)
    jwt_algorithm: str = Field(default="HS256")
    jwt_expires_minutes: int = Field(default=60 * 24 * 7)
    notify_api_secret: Optional[str] = Field(default=None)
    iot_shared_secret: Optional[str] = Field(default=None)
    recaptcha_secret_key: Optional[str] = Field(default=None)
    secure_cookies: bool = Field(default=False)

    # SMTP
    email_server: str = Field(default="smtp.gmail.com")
    email_port: int = Field(default=465)
    email_user: Optional[str] = Field(default=None)
    email_pass: Optional[str] = Field(default=None)
    frontend_base_url: str = Field(default="http://localhost:3000")

    # Maps + maintenance model service
    mapbox_token: Optional[str] = Field(default=None)
    maintenance_service_url: Optional[str] = Field(default=None)

    # Dashboard bucketing happens in campus local time (UTC+8).
    display_utc_offset_hours: float = Field(default=8.0)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    @property
    def display_timezone(self) -> tzinfo:
        return timezone(timedelta(hours=self.display_utc_offset_hours))


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()

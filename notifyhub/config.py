"""Application configuration settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = ".env"
ENV_FILE_ENCODING = "utf-8"


class Settings(BaseSettings):
    """Application configuration values loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE, env_file_encoding=ENV_FILE_ENCODING, extra="ignore"
    )

    database_url: str = Field(
        default="sqlite:///./notifyhub.db",
        description="Database connection URL used by SQLAlchemy to connect to the DB",
        min_length=1,
    )
    secret_key: str = Field(
        default="change-me",
        description="Secret key for signing JWT tokens",
        min_length=1,
    )
    access_token_expire_minutes: int = Field(
        default=60,
        description="Number of minutes before access tokens expire",
        gt=0,
    )
    app_timezone: str = Field(
        default="Asia/Kolkata",
        description="Timezone used to stamp and localize notification timestamps",
    )
    notifications_page_size: int = Field(
        default=20,
        description="Number of notifications fetched per page by the client",
        gt=0,
    )
    realtime_max_reconnect_attempts: int = Field(
        default=5,
        description="Reconnect attempts before the realtime client gives up",
        ge=0,
    )
    realtime_reconnect_delay_ms: int = Field(
        default=1000,
        description="Linear backoff unit between realtime reconnect attempts",
        ge=0,
    )
    notification_retention_days: int = Field(
        default=30,
        description="Age in days after which notifications are archived",
        ge=0,
    )


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings instance."""

    return Settings()


def reset_settings_cache() -> None:
    """Clear the settings cache to force reloading from the environment."""

    get_settings.cache_clear()


__all__ = ["Settings", "get_settings", "reset_settings_cache"]

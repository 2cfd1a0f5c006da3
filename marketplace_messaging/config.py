"""Application configuration settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = ".env"
ENV_FILE_ENCODING = "utf-8"


class Settings(BaseSettings):
    """Application configuration values loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE, env_file_encoding=ENV_FILE_ENCODING, extra="ignore"
    )

    database_url: str = Field(
        description="Database connection URL used by SQLAlchemy to connect to the DB",
        min_length=1,
    )
    secret_key: str = Field(
        description="Secret shared with the identity provider to verify bearer tokens",
        min_length=1,
    )
    token_algorithm: str = Field(
        default="HS256",
        description="JWT signature algorithm used by the identity provider",
    )
    access_token_expire_minutes: int = Field(
        default=60,
        description="Lifetime of development tokens minted by scripts/issue_dev_token.py",
        gt=0,
    )
    app_timezone: str = Field(
        default="UTC",
        description="IANA timezone name (or UTC±HH:MM offset) used for timestamps",
    )
    log_level: str = Field(default="INFO", description="Root logging level")
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000"],
        description="Origins allowed to call the API from a browser",
    )
    public_base_url: str = Field(
        default="http://localhost:3000",
        description="Base URL of the web client, used to build links inside emails",
    )
    message_max_length: int = Field(
        default=5000,
        description="Maximum number of characters accepted for a chat message",
        gt=0,
    )
    notification_page_size: int = Field(
        default=20,
        description="Default page size when listing notifications",
        gt=0,
    )
    notification_max_page_size: int = Field(
        default=100,
        description="Upper bound for the notification page size",
        gt=0,
    )
    sendgrid_api_key: str | None = Field(
        default=None,
        description="SendGrid API key used for sending notification emails via the REST API",
    )
    sendgrid_sender: str | None = Field(
        default=None,
        description="Email address that will appear as the sender of notification emails",
        min_length=3,
    )

    @model_validator(mode="after")
    def _validate_sendgrid_pair(self) -> "Settings":
        if bool(self.sendgrid_api_key) ^ bool(self.sendgrid_sender):
            raise ValueError(
                "SENDGRID_API_KEY and SENDGRID_SENDER must both be provided to enable email"
            )
        if self.sendgrid_sender and "@" not in self.sendgrid_sender:
            raise ValueError("SENDGRID_SENDER must be a valid email address")
        if self.notification_page_size > self.notification_max_page_size:
            raise ValueError(
                "NOTIFICATION_PAGE_SIZE cannot exceed NOTIFICATION_MAX_PAGE_SIZE"
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings instance."""

    return Settings()


def reset_settings_cache() -> None:
    """Clear the settings cache to force reloading from the environment."""

    get_settings.cache_clear()


__all__ = ["Settings", "get_settings", "reset_settings_cache"]

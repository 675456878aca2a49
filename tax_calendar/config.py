from functools import lru_cache
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
    )

    # App
    APP_NAME: str = Field(default="tax_calendar", validation_alias=AliasChoices("APP_NAME", "app_name"))
    LOG_LEVEL: str = Field(default="INFO", validation_alias=AliasChoices("LOG_LEVEL", "log_level"))
    TIMEZONE: str = Field(default="America/Bogota", validation_alias=AliasChoices("TIMEZONE", "TZ_NAME"))

    # Cron trigger; empty means the endpoint is open
    CRON_SECRET: Optional[str] = Field(default=None, validation_alias=AliasChoices("CRON_SECRET", "cron_secret"))

    # Client store
    CLIENTS_FILE: str = Field(default="data/clients.json", validation_alias=AliasChoices("CLIENTS_FILE", "clients_file"))

    # Resend
    RESEND_API_KEY: str = Field(default="", validation_alias=AliasChoices("RESEND_API_KEY", "resend_api_key"))
    RESEND_FROM_EMAIL: str = Field(
        default="Alertas Tributarias <alertas@example.com>",
        validation_alias=AliasChoices("RESEND_FROM_EMAIL", "resend_from_email"),
    )
    RESEND_BASE_URL: str = Field(default="https://api.resend.com", validation_alias=AliasChoices("RESEND_BASE_URL", "resend_base_url"))

    # Scheduler
    UPCOMING_HORIZON_DAYS: int = Field(default=30, validation_alias=AliasChoices("UPCOMING_HORIZON_DAYS", "upcoming_horizon_days"))
    DISPATCH_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        validation_alias=AliasChoices("DISPATCH_TIMEOUT_SECONDS", "dispatch_timeout_seconds"),
    )
    # Log notifications instead of sending them; forced on when no API key is set
    DRY_RUN: bool = Field(default=False, validation_alias=AliasChoices("DRY_RUN", "dry_run"))


@lru_cache
def get_settings() -> Settings:
    return Settings()

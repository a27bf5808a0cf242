"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")

_PLACEHOLDER_VALUES = {"", "YOUR_SUPABASE_URL", "YOUR_SUPABASE_ANON_KEY"}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str = ""
    supabase_anon_key: str = ""
    profile_function: str = "create-profile"
    attachments_bucket: str = "wayleave-attachments"
    login_email_domain: str = "wayleave.local"
    notification_store_path: str = ".wayleave/notifications.json"
    local_records_path: str | None = None
    toast_ttl_seconds: float = 5.0
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    @property
    def is_backend_configured(self) -> bool:
        """Return True when real Supabase credentials are present."""
        return (
            self.supabase_url.strip() not in _PLACEHOLDER_VALUES
            and self.supabase_anon_key.strip() not in _PLACEHOLDER_VALUES
        )


def login_email(cpr: str, domain: str) -> str:
    """Map a CPR number to the email used as the Supabase login identifier."""
    return f"{cpr.strip()}@{domain}"


def cpr_from_login_email(email: str | None) -> str:
    """Recover the CPR number from a login email."""
    if not email:
        return ""
    local_part, _, _ = email.partition("@")
    return local_part

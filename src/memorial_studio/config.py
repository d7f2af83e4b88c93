"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    app_url: str = "http://localhost:3000"
    stripe_secret_key: str | None = None
    stripe_webhook_secret: str | None = None
    stripe_price_id: str = "price_memorial_149"
    memorial_price_cents: int = 14900
    memorial_currency: str = "usd"
    openai_api_key: str | None = None
    openai_model: str = "gpt-4.1-mini"
    openai_store: bool = False
    cloudinary_cloud_name: str | None = None
    cloudinary_api_key: str | None = None
    cloudinary_api_secret: str | None = None
    autosave_min_interval_seconds: float = 1.0
    obituary_requests_per_minute: int = 5
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def is_placeholder_key(raw: str | None) -> bool:
    """Return true when a secret is missing or still a template placeholder."""
    if raw is None:
        return True
    cleaned = raw.strip()
    return cleaned == "" or cleaned.endswith("_your_stripe_secret_key")

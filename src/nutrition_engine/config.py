"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"
    openai_store: bool = False
    fdc_api_key: str | None = None
    fdc_base_url: str = "https://api.nal.usda.gov/fdc/v1"
    off_base_url: str = "https://world.openfoodfacts.org"
    off_user_agent: str = "nutrition-engine/0.1 (+https://world.openfoodfacts.org)"
    provider_order: str = "openai,open-food-facts,usda-fdc"
    provider_timeout_seconds: float = 15
    provider_retry_attempts: int = 1
    provider_retry_delay_seconds: float = 0.3
    lookup_cache_ttl_seconds: float = 3600
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_provider_order(raw: str | None) -> list[str]:
    """Parse a comma-separated provider preference list."""
    if raw is None:
        return []
    names: list[str] = []
    for chunk in raw.split(","):
        value = chunk.strip().lower()
        if value and value not in names:
            names.append(value)
    return names

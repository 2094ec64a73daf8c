"""Application configuration."""

import os

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from food_resolver.domain.food import ProviderId

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")

DEFAULT_PROVIDERS = "usda_fdc,open_food_facts,edamam,ai_image_guess"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    accept_threshold: float = Field(default=0.6, gt=0.0, le=1.0)
    provider_timeout_seconds: float = Field(default=5.0, gt=0.0)
    free_fallback_quota: int = Field(default=1, ge=0)
    usage_ttl_seconds: int = Field(default=86400, gt=0)
    sweep_interval_seconds: float = Field(default=3600, gt=0.0)
    merge_limit: int = Field(default=10, gt=0)
    search_cache_ttl_seconds: int = Field(default=3600, ge=0)
    providers: str = DEFAULT_PROVIDERS
    fdc_api_key: str | None = None
    fdc_base_url: str = "https://api.nal.usda.gov/fdc/v1"
    off_base_url: str = "https://world.openfoodfacts.org"
    edamam_app_id: str | None = None
    edamam_app_key: str | None = None
    edamam_base_url: str = "https://api.edamam.com/api/food-database/v2"
    usage_backend: str = "memory"
    supabase_url: str | None = None
    supabase_service_key: str | None = None
    admin_token: str | None = None
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_provider_ids(raw: str | None) -> list[ProviderId]:
    """Parse the ordered provider list from env, skipping unknown names."""
    if raw is None:
        return []
    known = {provider.value for provider in ProviderId}
    ids: list[ProviderId] = []
    for chunk in raw.split(","):
        value = chunk.strip().lower()
        if not value or value not in known:
            continue
        provider_id = ProviderId(value)
        if provider_id is ProviderId.FALLBACK_ESTIMATE or provider_id in ids:
            continue
        ids.append(provider_id)
    return ids

"""Dependency container wiring for the application."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import timedelta

from supabase import create_client

from food_resolver.adapters.edamam_client import HttpxEdamamClient
from food_resolver.adapters.fdc_client import HttpxFdcClient
from food_resolver.adapters.open_food_facts_client import HttpxOpenFoodFactsClient
from food_resolver.adapters.supabase_usage_ledger import SupabaseUsageLedger
from food_resolver.config import Settings, parse_provider_ids
from food_resolver.domain.food import ProviderId
from food_resolver.services.cache import Cache, InMemoryCache, NullCache
from food_resolver.services.estimator import FallbackEstimator
from food_resolver.services.ledger import InMemoryUsageLedger, UsageLedger, UsageSweeper
from food_resolver.services.providers import (
    EdamamProvider,
    FdcProvider,
    ImageGuessProvider,
    OpenFoodFactsProvider,
    ProviderClient,
)
from food_resolver.services.resolution import ResolutionOrchestrator

_logger = logging.getLogger(__name__)


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    providers: list[ProviderClient]
    ledger: UsageLedger
    sweeper: UsageSweeper
    estimator: FallbackEstimator
    orchestrator: ResolutionOrchestrator
    close_resources: Callable[[], Awaitable[None]]


def build_ledger(settings: Settings) -> UsageLedger:
    """Create the usage ledger selected by settings."""
    ttl = timedelta(seconds=settings.usage_ttl_seconds)
    if settings.usage_backend == "supabase":
        if not settings.supabase_url or not settings.supabase_service_key:
            raise ValueError("Supabase usage backend requires SUPABASE_URL and key")
        client = create_client(settings.supabase_url, settings.supabase_service_key)
        return SupabaseUsageLedger(
            client=client, quota=settings.free_fallback_quota, ttl=ttl
        )
    if settings.usage_backend != "memory":
        raise ValueError(f"Unknown usage backend: {settings.usage_backend}")
    return InMemoryUsageLedger(quota=settings.free_fallback_quota, ttl=ttl)


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    ledger = build_ledger(resolved_settings)
    cache_ttl = resolved_settings.search_cache_ttl_seconds
    cache: Cache = InMemoryCache() if cache_ttl > 0 else NullCache()
    providers: list[ProviderClient] = []
    closers: list[Callable[[], Awaitable[None]]] = []

    for provider_id in parse_provider_ids(resolved_settings.providers):
        if provider_id is ProviderId.USDA_FDC:
            if not resolved_settings.fdc_api_key:
                _logger.info("FDC_API_KEY not set; skipping USDA FoodData Central")
                continue
            fdc_client = HttpxFdcClient.create(
                api_key=resolved_settings.fdc_api_key,
                base_url=resolved_settings.fdc_base_url,
            )
            closers.append(fdc_client.close)
            providers.append(
                FdcProvider(client=fdc_client, cache=cache, cache_ttl_seconds=cache_ttl)
            )
        elif provider_id is ProviderId.OPEN_FOOD_FACTS:
            off_client = HttpxOpenFoodFactsClient.create(resolved_settings.off_base_url)
            closers.append(off_client.close)
            providers.append(
                OpenFoodFactsProvider(
                    client=off_client, cache=cache, cache_ttl_seconds=cache_ttl
                )
            )
        elif provider_id is ProviderId.EDAMAM:
            app_id = resolved_settings.edamam_app_id
            app_key = resolved_settings.edamam_app_key
            if not (app_id and app_key):
                _logger.info("Edamam credentials not set; skipping Edamam")
                continue
            edamam_client = HttpxEdamamClient.create(
                app_id=app_id,
                app_key=app_key,
                base_url=resolved_settings.edamam_base_url,
            )
            closers.append(edamam_client.close)
            providers.append(
                EdamamProvider(
                    client=edamam_client, cache=cache, cache_ttl_seconds=cache_ttl
                )
            )
        elif provider_id is ProviderId.AI_IMAGE_GUESS:
            providers.append(ImageGuessProvider())

    sweeper = UsageSweeper(
        ledger=ledger, interval_seconds=resolved_settings.sweep_interval_seconds
    )
    estimator = FallbackEstimator(accept_threshold=resolved_settings.accept_threshold)
    orchestrator = ResolutionOrchestrator(
        providers=providers,
        estimator=estimator,
        ledger=ledger,
        accept_threshold=resolved_settings.accept_threshold,
        provider_timeout_seconds=resolved_settings.provider_timeout_seconds,
        merge_limit=resolved_settings.merge_limit,
    )

    async def close_resources() -> None:
        await sweeper.stop()
        for close in closers:
            await close()

    return AppContainer(
        settings=resolved_settings,
        providers=providers,
        ledger=ledger,
        sweeper=sweeper,
        estimator=estimator,
        orchestrator=orchestrator,
        close_resources=close_resources,
    )

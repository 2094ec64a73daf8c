"""Tests for container wiring."""

import asyncio

import pytest

from food_resolver.config import Settings
from food_resolver.containers import build_container
from food_resolver.domain.food import ProviderId
from food_resolver.services.cache import NullCache
from food_resolver.services.ledger import InMemoryUsageLedger


def test_build_container_registers_configured_providers(settings) -> None:
    container = build_container(settings)

    assert [provider.provider_id for provider in container.providers] == [
        ProviderId.USDA_FDC,
        ProviderId.OPEN_FOOD_FACTS,
        ProviderId.EDAMAM,
        ProviderId.AI_IMAGE_GUESS,
    ]
    assert isinstance(container.ledger, InMemoryUsageLedger)
    assert container.orchestrator.accept_threshold == 0.6
    asyncio.run(container.close_resources())


def test_providers_without_credentials_are_skipped() -> None:
    container = build_container(Settings(_env_file=None, providers="edamam,usda_fdc"))

    assert container.providers == []
    asyncio.run(container.close_resources())


def test_unknown_usage_backend_is_rejected() -> None:
    with pytest.raises(ValueError):
        build_container(Settings(_env_file=None, usage_backend="redis"))


def test_supabase_backend_requires_credentials() -> None:
    with pytest.raises(ValueError):
        build_container(Settings(_env_file=None, usage_backend="supabase"))


def test_zero_cache_ttl_disables_search_cache() -> None:
    container = build_container(
        Settings(
            _env_file=None, providers="open_food_facts", search_cache_ttl_seconds=0
        )
    )

    assert isinstance(container.providers[0].cache, NullCache)
    asyncio.run(container.close_resources())

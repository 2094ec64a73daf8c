"""Shared test fixtures."""

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import pytest

from food_resolver.adapters.edamam_client import EdamamClient
from food_resolver.adapters.fdc_client import FdcClient
from food_resolver.adapters.open_food_facts_client import OpenFoodFactsClient
from food_resolver.config import Settings
from food_resolver.containers import AppContainer
from food_resolver.domain.errors import ProviderError, ProviderErrorKind
from food_resolver.domain.food import (
    FoodQuery,
    NutritionFacts,
    ProviderId,
    QueryKind,
    RawResult,
)
from food_resolver.services.estimator import FallbackEstimator
from food_resolver.services.ledger import InMemoryUsageLedger, UsageSweeper
from food_resolver.services.resolution import ResolutionOrchestrator

ALL_KINDS = frozenset(QueryKind)


@dataclass
class ManualClock:
    """Clock that only moves when told to."""

    now: datetime = field(default_factory=lambda: datetime(2024, 1, 1, tzinfo=UTC))

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@dataclass
class StaticProvider:
    """Provider returning a fixed list of raw results."""

    provider_id: ProviderId
    results: list[RawResult] = field(default_factory=list)
    kinds: frozenset[QueryKind] = ALL_KINDS
    calls: list[FoodQuery] = field(default_factory=list)

    async def search(self, query: FoodQuery, timeout: float) -> list[RawResult]:
        self.calls.append(query)
        return self.results


@dataclass
class SlowProvider:
    """Provider that never answers within any reasonable timeout."""

    provider_id: ProviderId
    delay_seconds: float = 10.0
    kinds: frozenset[QueryKind] = ALL_KINDS

    async def search(self, query: FoodQuery, timeout: float) -> list[RawResult]:
        await asyncio.sleep(self.delay_seconds)
        return []


@dataclass
class FailingProvider:
    """Provider that always reports an error."""

    provider_id: ProviderId
    kind: ProviderErrorKind = ProviderErrorKind.UNREACHABLE
    kinds: frozenset[QueryKind] = ALL_KINDS

    async def search(self, query: FoodQuery, timeout: float) -> list[RawResult]:
        raise ProviderError(self.provider_id, self.kind, "boom")


def raw(  # noqa: PLR0913
    name: str,
    *,
    brand: str | None = None,
    rank: int = 0,
    exact_match: bool = False,
    match_signal: float | None = None,
    calories: float = 100.0,
) -> RawResult:
    """Build a raw result for 100 g of a food."""
    return RawResult(
        name=name,
        brand=brand,
        quantity=100.0,
        unit="g",
        nutrition=NutritionFacts(calories=calories),
        rank=rank,
        exact_match=exact_match,
        match_signal=match_signal,
    )


@dataclass
class FakeFdcClient(FdcClient):
    """Fake FDC client with in-memory responses."""

    payload: dict[str, object] = field(
        default_factory=lambda: {
            "foods": [
                {
                    "fdcId": 1105073,
                    "description": "Bananas, raw",
                    "dataType": "Foundation",
                    "score": 812.4,
                    "foodNutrients": [
                        {"nutrientId": 1008, "value": 89},
                        {"nutrientId": 1003, "value": 1.09},
                        {"nutrientId": 1005, "value": 22.84},
                        {"nutrientId": 1004, "value": 0.33},
                        {"nutrientId": 1079, "value": 2.6},
                        {"nutrientId": 2000, "value": 12.23},
                        {"nutrientId": 1093, "value": 1},
                    ],
                },
                {
                    "fdcId": 2345,
                    "description": "Banana chips",
                    "brandOwner": "Snack Co",
                    "dataType": "Branded",
                    "foodNutrients": [{"nutrientId": 1008, "value": 519}],
                },
            ]
        }
    )
    errors: list[Exception] = field(default_factory=list)
    calls: int = 0

    async def search_foods(
        self, query: str, page_size: int = 5, timeout: float = 15
    ) -> dict[str, object]:
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.payload


@dataclass
class FakeOpenFoodFactsClient(OpenFoodFactsClient):
    """Fake Open Food Facts client."""

    product_payload: dict[str, object] = field(
        default_factory=lambda: {
            "status": 1,
            "code": "3017620422003",
            "product": {
                "product_name": "Nutella",
                "brands": "Ferrero",
                "nutriments": {
                    "energy-kcal_100g": 539,
                    "proteins_100g": 6.3,
                    "carbohydrates_100g": 57.5,
                    "fat_100g": 30.9,
                    "saturated-fat_100g": 10.6,
                    "fiber_100g": 0,
                    "sugars_100g": 56.3,
                    "sodium_100g": 0.107,
                },
            },
        }
    )
    search_payload: dict[str, object] = field(
        default_factory=lambda: {
            "products": [
                {
                    "code": "0001",
                    "product_name": "Whole Milk",
                    "brands": "Dairy Farm",
                    "nutriments": {"energy-kcal_100g": 61, "proteins_100g": 3.2},
                },
                {
                    "code": "0002",
                    "product_name": "Mystery Product",
                    "nutriments": {},
                },
            ]
        }
    )

    async def get_product(self, barcode: str, timeout: float = 10) -> dict[str, object]:
        return self.product_payload

    async def search_products(
        self, query: str, page_size: int = 5, timeout: float = 10
    ) -> dict[str, object]:
        return self.search_payload


@dataclass
class FakeEdamamClient(EdamamClient):
    """Fake Edamam client."""

    payload: dict[str, object] = field(
        default_factory=lambda: {
            "hints": [
                {
                    "food": {
                        "label": "Apple",
                        "nutrients": {
                            "ENERC_KCAL": 52,
                            "PROCNT": 0.26,
                            "CHOCDF": 13.8,
                            "FAT": 0.17,
                            "FIBTG": 2.4,
                        },
                    }
                },
                {
                    "food": {
                        "label": "Apple Juice",
                        "brand": "Orchard",
                        "nutrients": {"ENERC_KCAL": 46},
                    }
                },
            ]
        }
    )

    async def parse(self, ingredient: str, timeout: float = 10) -> dict[str, object]:
        return self.payload


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def ledger(clock: ManualClock) -> InMemoryUsageLedger:
    return InMemoryUsageLedger(quota=1, ttl=timedelta(hours=24), clock=clock)


@pytest.fixture
def estimator() -> FallbackEstimator:
    return FallbackEstimator(accept_threshold=0.6)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        admin_token="admin-token",
        fdc_api_key="fdc-key",
        edamam_app_id="edamam-id",
        edamam_app_key="edamam-key",
    )


@pytest.fixture
def container(settings: Settings, ledger: InMemoryUsageLedger) -> AppContainer:
    providers = [
        StaticProvider(
            ProviderId.OPEN_FOOD_FACTS,
            results=[raw("Nutella", brand="Ferrero", exact_match=True)],
            kinds=frozenset({QueryKind.BARCODE}),
        ),
    ]
    estimator = FallbackEstimator(accept_threshold=settings.accept_threshold)
    sweeper = UsageSweeper(ledger=ledger, interval_seconds=3600)
    orchestrator = ResolutionOrchestrator(
        providers=providers,
        estimator=estimator,
        ledger=ledger,
        accept_threshold=settings.accept_threshold,
        provider_timeout_seconds=settings.provider_timeout_seconds,
    )

    async def close_resources() -> None:
        await sweeper.stop()

    return AppContainer(
        settings=settings,
        providers=providers,
        ledger=ledger,
        sweeper=sweeper,
        estimator=estimator,
        orchestrator=orchestrator,
        close_resources=close_resources,
    )

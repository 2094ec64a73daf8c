"""Provider clients that turn external sources into raw food candidates."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Protocol

import httpx

from food_resolver.adapters.edamam_client import EdamamClient
from food_resolver.adapters.fdc_client import FdcClient
from food_resolver.adapters.open_food_facts_client import OpenFoodFactsClient
from food_resolver.domain.errors import ProviderError, ProviderErrorKind
from food_resolver.domain.food import (
    FoodQuery,
    NutritionFacts,
    ProviderId,
    QueryKind,
    RawResult,
)
from food_resolver.services.cache import Cache, InMemoryCache
from food_resolver.services.estimator import MACRO_TABLE, MacroProfile, match_profile
from food_resolver.services.units import scale_factor

_FDC_NUTRIENT_IDS = {
    1008: "calories",
    2047: "calories",
    2048: "calories",
    1003: "protein_g",
    1005: "carbs_g",
    1004: "fat_g",
    1079: "fiber_g",
    1093: "sodium_mg",
    2000: "sugar_g",
    1258: "saturated_fat_g",
}

_OFF_NUTRIMENTS = {
    "energy-kcal_100g": "calories",
    "proteins_100g": "protein_g",
    "carbohydrates_100g": "carbs_g",
    "fat_100g": "fat_g",
    "fiber_100g": "fiber_g",
    "sugars_100g": "sugar_g",
    "saturated-fat_100g": "saturated_fat_g",
}

_EDAMAM_NUTRIENTS = {
    "ENERC_KCAL": "calories",
    "PROCNT": "protein_g",
    "CHOCDF": "carbs_g",
    "FAT": "fat_g",
    "FIBTG": "fiber_g",
    "NA": "sodium_mg",
    "SUGAR": "sugar_g",
    "FASAT": "saturated_fat_g",
}

_TEXT_KINDS = frozenset({QueryKind.TEXT, QueryKind.IMAGE_GUESS})

_logger = logging.getLogger(__name__)


class ProviderClient(Protocol):
    """Uniform search capability over one nutrition source."""

    provider_id: ProviderId
    kinds: frozenset[QueryKind]

    async def search(self, query: FoodQuery, timeout: float) -> list[RawResult]:
        """Return candidates for the query or raise ProviderError."""


def supports(provider: ProviderClient, query: FoodQuery) -> bool:
    """Return True when the provider handles the query kind."""
    return query.kind in provider.kinds


async def _guarded(
    provider_id: ProviderId, func: "Callable[[], Awaitable[dict[str, object]]]"
) -> dict[str, object]:
    """Run an adapter call, mapping transport failures to ProviderError."""
    try:
        payload = await func()
    except httpx.TimeoutException as exc:
        raise ProviderError(provider_id, ProviderErrorKind.TIMEOUT, str(exc)) from exc
    except httpx.HTTPError as exc:
        raise ProviderError(
            provider_id, ProviderErrorKind.UNREACHABLE, str(exc)
        ) from exc
    except ValueError as exc:
        raise ProviderError(
            provider_id, ProviderErrorKind.MALFORMED_RESPONSE, "invalid JSON"
        ) from exc
    if not isinstance(payload, dict):
        raise ProviderError(
            provider_id, ProviderErrorKind.MALFORMED_RESPONSE, "expected an object"
        )
    return payload


def _parse(
    provider_id: ProviderId,
    parser: "Callable[[dict[str, object], FoodQuery], list[RawResult]]",
    payload: dict[str, object],
    query: FoodQuery,
) -> list[RawResult]:
    """Run a payload parser, mapping shape errors to MalformedResponse."""
    try:
        return parser(payload, query)
    except (KeyError, TypeError, AttributeError, ValueError) as exc:
        raise ProviderError(
            provider_id, ProviderErrorKind.MALFORMED_RESPONSE, repr(exc)
        ) from exc


def _cache_key(provider_id: ProviderId, query: FoodQuery) -> str:
    return (
        f"{provider_id.value}:{query.kind.value}:{query.value.lower()}:"
        f"{query.quantity:g}:{query.unit}"
    )


def _per_100g(values: dict[str, object], query: FoodQuery) -> NutritionFacts:
    """Build facts from per-100 g values scaled to the requested amount."""
    facts = NutritionFacts.from_values(**values)
    return facts.scaled(scale_factor(query.quantity, query.unit))


def _brand(*candidates: object) -> str | None:
    for candidate in candidates:
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()
    return None


@dataclass
class FdcProvider:
    """USDA FoodData Central text search."""

    client: FdcClient
    cache: Cache = field(default_factory=InMemoryCache)
    page_size: int = 5
    cache_ttl_seconds: int = 3600
    retry_attempts: int = 1
    retry_delay_seconds: float = 0.3
    provider_id: ProviderId = ProviderId.USDA_FDC
    kinds: frozenset[QueryKind] = _TEXT_KINDS

    async def search(self, query: FoodQuery, timeout: float) -> list[RawResult]:
        """Search FDC foods with caching and a short retry."""
        cache_key = _cache_key(self.provider_id, query)
        cached = self.cache.get(cache_key)
        if isinstance(cached, list):
            return cached

        payload = await self._call_with_retry(
            lambda: _guarded(
                self.provider_id,
                lambda: self.client.search_foods(
                    query.value, page_size=self.page_size, timeout=timeout
                ),
            )
        )
        results = _parse(self.provider_id, _parse_fdc_foods, payload, query)
        self.cache.set(cache_key, results, ttl_seconds=self.cache_ttl_seconds)
        return results

    async def _call_with_retry(
        self, func: "Callable[[], Awaitable[dict[str, object]]]"
    ) -> dict[str, object]:
        """Retry unreachable errors; timeouts and bad payloads fail fast."""
        attempt = 0
        while True:
            try:
                return await func()
            except ProviderError as exc:
                attempt += 1
                if exc.kind is not ProviderErrorKind.UNREACHABLE:
                    raise
                if attempt > self.retry_attempts:
                    raise
                _logger.debug(
                    "FDC search failed (attempt %s/%s): %s",
                    attempt,
                    self.retry_attempts + 1,
                    exc,
                )
                await asyncio.sleep(self.retry_delay_seconds)


def _parse_fdc_foods(payload: dict[str, object], query: FoodQuery) -> list[RawResult]:
    foods = payload.get("foods", [])
    if not isinstance(foods, list):
        raise TypeError("foods must be a list")
    results: list[RawResult] = []
    for rank, food in enumerate(foods):
        values = _extract_fdc_nutrients(food.get("foodNutrients") or [])
        score = food.get("score")
        results.append(
            RawResult(
                name=str(food["description"]),
                brand=_brand(food.get("brandName"), food.get("brandOwner")),
                quantity=query.quantity,
                unit=query.unit,
                nutrition=_per_100g(values, query),
                match_signal=float(score) if isinstance(score, int | float) else None,
                rank=rank,
                barcode=food.get("gtinUpc"),
            )
        )
    return results


def _extract_fdc_nutrients(
    food_nutrients: list[dict[str, object]],
) -> dict[str, object]:
    """Map FDC nutrient entries onto canonical field names."""
    values: dict[str, object] = {}
    for nutrient in food_nutrients:
        nutrient_info = nutrient.get("nutrient") or {}
        nutrient_id = nutrient_info.get("id") or nutrient.get("nutrientId")
        amount = nutrient.get("value", nutrient.get("amount"))
        name = _FDC_NUTRIENT_IDS.get(nutrient_id)
        if name is None or amount is None:
            continue
        # 1008 is the preferred energy value; Atwater energies only fill gaps.
        if name == "calories" and name in values and nutrient_id != 1008:
            continue
        values[name] = amount
    return values


@dataclass
class OpenFoodFactsProvider:
    """Open Food Facts barcode lookup and product search."""

    client: OpenFoodFactsClient
    cache: Cache = field(default_factory=InMemoryCache)
    page_size: int = 5
    cache_ttl_seconds: int = 3600
    provider_id: ProviderId = ProviderId.OPEN_FOOD_FACTS
    kinds: frozenset[QueryKind] = frozenset(
        {QueryKind.BARCODE, QueryKind.TEXT, QueryKind.IMAGE_GUESS}
    )

    async def search(self, query: FoodQuery, timeout: float) -> list[RawResult]:
        """Look up a barcode or search products by text."""
        cache_key = _cache_key(self.provider_id, query)
        cached = self.cache.get(cache_key)
        if isinstance(cached, list):
            return cached

        if query.kind is QueryKind.BARCODE:
            payload = await _guarded(
                self.provider_id,
                lambda: self.client.get_product(query.value, timeout=timeout),
            )
            results = _parse(self.provider_id, _parse_off_product, payload, query)
        else:
            payload = await _guarded(
                self.provider_id,
                lambda: self.client.search_products(
                    query.value, page_size=self.page_size, timeout=timeout
                ),
            )
            results = _parse(self.provider_id, _parse_off_search, payload, query)
        self.cache.set(cache_key, results, ttl_seconds=self.cache_ttl_seconds)
        return results


def _off_nutrition(product: dict[str, object], query: FoodQuery) -> NutritionFacts:
    nutriments = product.get("nutriments") or {}
    values: dict[str, object] = {
        name: nutriments.get(key) for key, name in _OFF_NUTRIMENTS.items()
    }
    sodium_g = nutriments.get("sodium_100g")
    if isinstance(sodium_g, int | float):
        values["sodium_mg"] = sodium_g * 1000
    return _per_100g(values, query)


def _parse_off_product(payload: dict[str, object], query: FoodQuery) -> list[RawResult]:
    product = payload.get("product")
    if payload.get("status") != 1 or not product:
        return []
    return [
        RawResult(
            name=str(product.get("product_name") or "Unknown Product"),
            brand=_brand(product.get("brands")),
            quantity=query.quantity,
            unit=query.unit,
            nutrition=_off_nutrition(product, query),
            exact_match=True,
            barcode=query.value,
        )
    ]


def _parse_off_search(payload: dict[str, object], query: FoodQuery) -> list[RawResult]:
    products = payload.get("products", [])
    if not isinstance(products, list):
        raise TypeError("products must be a list")
    results: list[RawResult] = []
    for product in products:
        nutrition = _off_nutrition(product, query)
        # Products without an energy value are useless for tracking.
        if nutrition.calories is None:
            continue
        results.append(
            RawResult(
                name=str(product.get("product_name") or "Unknown Product"),
                brand=_brand(product.get("brands")),
                quantity=query.quantity,
                unit=query.unit,
                nutrition=nutrition,
                rank=len(results),
                barcode=product.get("code"),
            )
        )
    return results


@dataclass
class EdamamProvider:
    """Edamam food-database parser search."""

    client: EdamamClient
    cache: Cache = field(default_factory=InMemoryCache)
    max_results: int = 5
    cache_ttl_seconds: int = 3600
    provider_id: ProviderId = ProviderId.EDAMAM
    kinds: frozenset[QueryKind] = _TEXT_KINDS

    async def search(self, query: FoodQuery, timeout: float) -> list[RawResult]:
        """Search Edamam hints for the query text."""
        cache_key = _cache_key(self.provider_id, query)
        cached = self.cache.get(cache_key)
        if isinstance(cached, list):
            return cached

        payload = await _guarded(
            self.provider_id, lambda: self.client.parse(query.value, timeout=timeout)
        )
        results = _parse(self.provider_id, self._parse_hints, payload, query)
        self.cache.set(cache_key, results, ttl_seconds=self.cache_ttl_seconds)
        return results

    def _parse_hints(
        self, payload: dict[str, object], query: FoodQuery
    ) -> list[RawResult]:
        hints = payload.get("hints", [])
        if not isinstance(hints, list):
            raise TypeError("hints must be a list")
        results: list[RawResult] = []
        for rank, hint in enumerate(hints[: self.max_results]):
            food = hint["food"]
            nutrients = food.get("nutrients") or {}
            values = {
                name: nutrients.get(key) for key, name in _EDAMAM_NUTRIENTS.items()
            }
            results.append(
                RawResult(
                    name=str(food["label"]),
                    brand=_brand(food.get("brand")),
                    quantity=query.quantity,
                    unit=query.unit,
                    nutrition=_per_100g(values, query),
                    rank=rank,
                )
            )
        return results


@dataclass
class ImageGuessProvider:
    """Maps image-recognition guesses to nutrition via the macro table.

    The guess keeps the recognizer's own confidence; names the table does not
    know produce no candidates.
    """

    table: tuple[tuple[str, MacroProfile], ...] = MACRO_TABLE
    provider_id: ProviderId = ProviderId.AI_IMAGE_GUESS
    kinds: frozenset[QueryKind] = frozenset({QueryKind.IMAGE_GUESS})

    async def search(self, query: FoodQuery, timeout: float) -> list[RawResult]:
        """Return a single table-backed candidate for a known guess."""
        match = match_profile(query.value, self.table)
        if match is None:
            return []
        _, profile = match
        return [
            RawResult(
                name=query.value,
                quantity=query.quantity,
                unit=query.unit,
                nutrition=profile.to_facts().scaled(
                    scale_factor(query.quantity, query.unit)
                ),
                match_signal=query.source_confidence,
            )
        ]

"""Food resolution domain models."""

import math
import re
from dataclasses import dataclass, field, replace
from enum import StrEnum

from food_resolver.domain.errors import InvalidQueryError

_BARCODE_PATTERN = re.compile(r"^\d{8,14}$")


class QueryKind(StrEnum):
    """Kinds of food descriptions accepted by the resolver."""

    TEXT = "text"
    BARCODE = "barcode"
    IMAGE_GUESS = "image_guess"


class ProviderId(StrEnum):
    """Identifiers for nutrition sources, including the estimator."""

    USDA_FDC = "usda_fdc"
    OPEN_FOOD_FACTS = "open_food_facts"
    EDAMAM = "edamam"
    AI_IMAGE_GUESS = "ai_image_guess"
    FALLBACK_ESTIMATE = "fallback_estimate"

    @property
    def priority(self) -> int:
        """Tie-break rank: structured databases first, AI-derived last."""
        return _PROVIDER_PRIORITY[self]


_PROVIDER_PRIORITY = {
    ProviderId.USDA_FDC: 0,
    ProviderId.OPEN_FOOD_FACTS: 1,
    ProviderId.EDAMAM: 2,
    ProviderId.AI_IMAGE_GUESS: 3,
    ProviderId.FALLBACK_ESTIMATE: 4,
}


@dataclass(frozen=True)
class FoodQuery:
    """A single food description to resolve."""

    kind: QueryKind
    value: str
    quantity: float = 100.0
    unit: str = "g"
    source_confidence: float | None = None

    @classmethod
    def from_text(
        cls, text: str, quantity: float = 100.0, unit: str = "g"
    ) -> "FoodQuery":
        """Build a free-text query."""
        cleaned = (text or "").strip()
        if not cleaned:
            raise InvalidQueryError("Text query must not be empty")
        return cls(
            kind=QueryKind.TEXT,
            value=cleaned,
            quantity=_validate_quantity(quantity),
            unit=_clean_unit(unit),
        )

    @classmethod
    def from_barcode(
        cls, barcode: str, quantity: float = 100.0, unit: str = "g"
    ) -> "FoodQuery":
        """Build a barcode query (EAN-8 through GTIN-14)."""
        cleaned = (barcode or "").strip()
        if not _BARCODE_PATTERN.match(cleaned):
            raise InvalidQueryError(f"Invalid barcode: {barcode!r}")
        return cls(
            kind=QueryKind.BARCODE,
            value=cleaned,
            quantity=_validate_quantity(quantity),
            unit=_clean_unit(unit),
        )

    @classmethod
    def from_image_guess(
        cls,
        name: str,
        quantity: float,
        unit: str,
        source_confidence: float | None,
    ) -> "FoodQuery":
        """Build a query from an image-recognition guess."""
        cleaned = (name or "").strip()
        if not cleaned:
            raise InvalidQueryError("Image guess name must not be empty")
        if source_confidence is not None and (
            isinstance(source_confidence, bool)
            or not isinstance(source_confidence, int | float)
        ):
            raise InvalidQueryError("Image guess confidence must be a number")
        return cls(
            kind=QueryKind.IMAGE_GUESS,
            value=cleaned,
            quantity=_validate_quantity(quantity),
            unit=_clean_unit(unit),
            source_confidence=(
                float(source_confidence) if source_confidence is not None else None
            ),
        )


def _validate_quantity(quantity: float) -> float:
    if isinstance(quantity, bool) or not isinstance(quantity, int | float):
        raise InvalidQueryError("Quantity must be a number")
    if not math.isfinite(quantity) or quantity <= 0:
        raise InvalidQueryError("Quantity must be positive")
    return float(quantity)


def _clean_unit(unit: str) -> str:
    cleaned = (unit or "").strip().lower()
    return cleaned or "g"


_NUTRIENT_FIELDS = (
    "calories",
    "protein_g",
    "carbs_g",
    "fat_g",
    "fiber_g",
    "sodium_mg",
    "sugar_g",
    "saturated_fat_g",
)


@dataclass(frozen=True)
class NutritionFacts:
    """Canonical nutrient values; None means the source omitted the field."""

    calories: float | None = None
    protein_g: float | None = None
    carbs_g: float | None = None
    fat_g: float | None = None
    fiber_g: float | None = None
    sodium_mg: float | None = None
    sugar_g: float | None = None
    saturated_fat_g: float | None = None

    @classmethod
    def from_values(cls, **values: object) -> "NutritionFacts":
        """Build facts from loose provider values, dropping invalid ones."""
        return cls(
            **{name: _clean_amount(values.get(name)) for name in _NUTRIENT_FIELDS}
        )

    def scaled(self, factor: float) -> "NutritionFacts":
        """Return facts multiplied by a quantity factor."""
        return replace(
            self,
            **{
                name: (value * factor if value is not None else None)
                for name, value in self.as_dict().items()
            },
        )

    def as_dict(self) -> dict[str, float | None]:
        """Return nutrient values keyed by field name."""
        return {name: getattr(self, name) for name in _NUTRIENT_FIELDS}

    def is_empty(self) -> bool:
        """Return True when no nutrient is present."""
        return all(value is None for value in self.as_dict().values())


def _clean_amount(value: object) -> float | None:
    """Coerce a provider amount to a non-negative float, or None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if not math.isfinite(amount) or amount < 0:
        return None
    return amount


@dataclass(frozen=True)
class RawResult:
    """Provider-native candidate before confidence scoring."""

    name: str
    quantity: float
    unit: str
    nutrition: NutritionFacts
    brand: str | None = None
    match_signal: float | None = None
    rank: int = 0
    exact_match: bool = False
    barcode: str | None = None


@dataclass(frozen=True)
class ResolvedFood:
    """Canonical nutrition record with a comparable confidence."""

    name: str
    quantity: float
    unit: str
    nutrition: NutritionFacts
    confidence: float
    source: ProviderId
    brand: str | None = None
    barcode: str | None = None


@dataclass(frozen=True)
class ResolutionResult:
    """Outcome of resolving one query."""

    items: list[ResolvedFood]
    estimated: bool = False
    quota_exceeded: bool = False
    degraded_providers: list[ProviderId] = field(default_factory=list)
    state: str = "DONE"

    @property
    def best(self) -> ResolvedFood | None:
        """Return the top-ranked item, if any."""
        return self.items[0] if self.items else None

"""Table-based nutrition estimates used when no provider is good enough."""

import logging
import math
from dataclasses import dataclass

from food_resolver.domain.food import NutritionFacts, ProviderId, ResolvedFood
from food_resolver.services.confidence import ESTIMATE_CONFIDENCE
from food_resolver.services.units import is_known_unit, to_grams

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MacroProfile:
    """Macronutrient profile per 100 g."""

    calories: float
    protein_g: float
    carbs_g: float
    fat_g: float
    fiber_g: float | None = None
    sugar_g: float | None = None
    sodium_mg: float | None = None

    def to_facts(self) -> NutritionFacts:
        """Return the profile as canonical nutrition facts."""
        return NutritionFacts(
            calories=self.calories,
            protein_g=self.protein_g,
            carbs_g=self.carbs_g,
            fat_g=self.fat_g,
            fiber_g=self.fiber_g,
            sugar_g=self.sugar_g,
            sodium_mg=self.sodium_mg,
        )


DEFAULT_PROFILE = MacroProfile(calories=100, protein_g=2, carbs_g=5, fat_g=1)

# First match wins, so fragments that contain another fragment
# ("pineapple" vs "apple", "peanut butter" vs "butter") come first.
MACRO_TABLE: tuple[tuple[str, MacroProfile], ...] = (
    ("peanut butter", MacroProfile(588, 25, 20, 50, fiber_g=6, sugar_g=9.2)),
    ("sweet potato", MacroProfile(86, 1.6, 20, 0.1, fiber_g=3, sugar_g=4.2)),
    ("pineapple", MacroProfile(50, 0.5, 13, 0.1, fiber_g=1.4, sugar_g=9.9)),
    ("eggplant", MacroProfile(25, 1, 6, 0.2, fiber_g=3, sugar_g=3.5)),
    ("chicken", MacroProfile(165, 31, 0, 3.6, fiber_g=0, sugar_g=0, sodium_mg=74)),
    ("salmon", MacroProfile(208, 25, 0, 14, fiber_g=0, sugar_g=0, sodium_mg=59)),
    ("egg", MacroProfile(155, 13, 1.1, 11, fiber_g=0, sugar_g=1.1, sodium_mg=124)),
    ("milk", MacroProfile(42, 3.4, 5, 1, fiber_g=0, sugar_g=5, sodium_mg=44)),
    ("cheese", MacroProfile(113, 7, 1, 9, fiber_g=0, sodium_mg=621)),
    ("yogurt", MacroProfile(59, 10, 3.6, 0.4, fiber_g=0, sugar_g=3.2)),
    ("rice", MacroProfile(130, 2.7, 28, 0.3, fiber_g=0.4, sugar_g=0.1)),
    ("bread", MacroProfile(265, 9, 49, 3.2, fiber_g=2.7, sugar_g=5, sodium_mg=491)),
    ("pasta", MacroProfile(131, 5, 25, 1.1, fiber_g=1.8, sugar_g=0.6)),
    ("potato", MacroProfile(77, 2, 17, 0.1, fiber_g=2.2, sugar_g=0.8)),
    ("broccoli", MacroProfile(34, 2.8, 7, 0.4, fiber_g=2.6, sugar_g=1.7)),
    ("avocado", MacroProfile(160, 2, 9, 15, fiber_g=6.7, sugar_g=0.7)),
    ("apple", MacroProfile(52, 0.3, 14, 0.2, fiber_g=2.4, sugar_g=10)),
    ("banana", MacroProfile(89, 1.1, 23, 0.3, fiber_g=2.6, sugar_g=12.2, sodium_mg=1)),
)


def match_profile(
    name: str,
    table: tuple[tuple[str, MacroProfile], ...] = MACRO_TABLE,
) -> tuple[str, MacroProfile] | None:
    """Return the first table entry whose fragment occurs in the name."""
    lowered = name.lower()
    for pattern, profile in table:
        if pattern in lowered:
            return pattern, profile
    return None


@dataclass
class FallbackEstimator:
    """Closed-world estimator that always produces a low-confidence guess."""

    accept_threshold: float
    confidence: float = ESTIMATE_CONFIDENCE
    table: tuple[tuple[str, MacroProfile], ...] = MACRO_TABLE
    default_profile: MacroProfile = DEFAULT_PROFILE

    def __post_init__(self) -> None:
        if not self.confidence < self.accept_threshold:
            raise ValueError(
                "Estimate confidence must stay below the acceptance threshold"
            )

    def estimate(self, name: str, quantity: float, unit: str) -> ResolvedFood:
        """Estimate nutrition for a named food at the given quantity."""
        name = name or ""
        match = match_profile(name, self.table)
        if match is None:
            profile = self.default_profile
            _logger.info("Estimating %r with the default profile", name)
        else:
            pattern, profile = match
            _logger.info("Estimating %r from table entry %r", name, pattern)
        unit = unit or "g"
        if not is_known_unit(unit):
            _logger.debug("Unknown unit %r for %r, treating it as grams", unit, name)
        factor = to_grams(quantity, unit) / 100
        if not math.isfinite(factor) or factor < 0:
            factor = 0.0
        return ResolvedFood(
            name=name,
            brand=None,
            quantity=quantity,
            unit=unit,
            nutrition=profile.to_facts().scaled(factor),
            confidence=self.confidence,
            source=ProviderId.FALLBACK_ESTIMATE,
        )

"""Confidence normalization across heterogeneous providers.

Every provider exposes a different notion of match quality: barcode databases
either hit or miss, text search engines return relevance-ordered lists, and the
image model reports its own probability. ``normalize`` maps each of these onto
one [0, 1] scale so results from different providers can be ranked together.
"""

import math
from dataclasses import dataclass

from food_resolver.domain.food import ProviderId, RawResult, ResolvedFood

EXACT_MATCH_CONFIDENCE = 1.0
ESTIMATE_CONFIDENCE = 0.3
# Used when a pass-through provider omits its own confidence.
DEFAULT_MISSING_SIGNAL = 0.5
RANK_DECAY = 0.85


@dataclass(frozen=True)
class ConfidenceCurve:
    """How a provider's native ranking maps onto confidence."""

    base: float
    decay: float = RANK_DECAY
    pass_through: bool = False


CURVES: dict[ProviderId, ConfidenceCurve] = {
    ProviderId.USDA_FDC: ConfidenceCurve(base=0.9),
    ProviderId.OPEN_FOOD_FACTS: ConfidenceCurve(base=0.8),
    ProviderId.EDAMAM: ConfidenceCurve(base=0.85),
    ProviderId.AI_IMAGE_GUESS: ConfidenceCurve(base=0.0, pass_through=True),
    ProviderId.FALLBACK_ESTIMATE: ConfidenceCurve(base=ESTIMATE_CONFIDENCE, decay=1.0),
}


def clamp(value: float) -> float:
    """Clamp a value into [0, 1]; NaN becomes the missing-signal default."""
    if math.isnan(value):
        return DEFAULT_MISSING_SIGNAL
    return min(1.0, max(0.0, value))


def normalize(raw: RawResult, provider_id: ProviderId) -> float:
    """Return a [0, 1] confidence for a provider result."""
    if raw.exact_match:
        return EXACT_MATCH_CONFIDENCE
    curve = CURVES[provider_id]
    if curve.pass_through:
        signal = raw.match_signal
        if signal is None:
            return DEFAULT_MISSING_SIGNAL
        return clamp(float(signal))
    rank = max(raw.rank, 0)
    return clamp(curve.base * curve.decay**rank)


def score(raw: RawResult, provider_id: ProviderId) -> ResolvedFood:
    """Turn a raw provider result into a ranked, provenance-tagged record."""
    return ResolvedFood(
        name=raw.name,
        brand=raw.brand,
        quantity=raw.quantity,
        unit=raw.unit,
        nutrition=raw.nutrition,
        confidence=normalize(raw, provider_id),
        source=provider_id,
        barcode=raw.barcode,
    )

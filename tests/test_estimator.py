"""Tests for the fallback estimator."""

import logging

import pytest

from food_resolver.domain.food import ProviderId
from food_resolver.services.estimator import (
    DEFAULT_PROFILE,
    MACRO_TABLE,
    FallbackEstimator,
    match_profile,
)


def test_banana_uses_table_profile(estimator: FallbackEstimator) -> None:
    food = estimator.estimate("Ripe Banana", 100, "g")

    assert food.source is ProviderId.FALLBACK_ESTIMATE
    assert food.nutrition.calories == pytest.approx(89)
    assert food.nutrition.carbs_g == pytest.approx(23)
    assert food.confidence < 0.6


def test_estimate_scales_linearly_with_grams(estimator: FallbackEstimator) -> None:
    food = estimator.estimate("chicken breast", 250, "g")

    assert food.nutrition.calories == pytest.approx(165 * 2.5)
    assert food.nutrition.protein_g == pytest.approx(31 * 2.5)
    assert food.quantity == 250


def test_estimate_converts_other_units(estimator: FallbackEstimator) -> None:
    food = estimator.estimate("white rice", 1, "cup")

    assert food.nutrition.calories == pytest.approx(130 * 2.4)


def test_unknown_unit_is_estimated_as_grams(
    estimator: FallbackEstimator, caplog: pytest.LogCaptureFixture, monkeypatch
) -> None:
    monkeypatch.setattr(logging.getLogger("food_resolver"), "propagate", True)
    caplog.set_level(logging.DEBUG, logger="food_resolver.services.estimator")

    food = estimator.estimate("banana", 2, "slice")

    assert food.nutrition.calories == pytest.approx(89 * 0.02)
    assert "Unknown unit 'slice'" in caplog.text


def test_unknown_food_uses_default_profile(estimator: FallbackEstimator) -> None:
    food = estimator.estimate("dragon fruit sorbet", 200, "g")

    assert food.nutrition.calories == pytest.approx(DEFAULT_PROFILE.calories * 2)
    assert food.nutrition.fat_g == pytest.approx(DEFAULT_PROFILE.fat_g * 2)


def test_specific_fragments_win_over_generic_ones() -> None:
    assert match_profile("Pineapple chunks")[0] == "pineapple"
    assert match_profile("crunchy peanut butter")[0] == "peanut butter"
    assert match_profile("Grilled eggplant")[0] == "eggplant"
    assert match_profile("boiled egg")[0] == "egg"


def test_table_order_is_first_match_wins() -> None:
    # "chicken" precedes "rice" in the table.
    assert match_profile("chicken fried rice")[0] == "chicken"
    patterns = [pattern for pattern, _ in MACRO_TABLE]
    assert patterns.index("chicken") < patterns.index("rice")


@pytest.mark.parametrize(
    ("name", "quantity", "unit"),
    [("", 100, "g"), (None, 10, "g"), ("rice", -5, "g"), ("egg", float("nan"), "")],
)
def test_estimate_never_fails(
    estimator: FallbackEstimator, name: str | None, quantity: float, unit: str
) -> None:
    food = estimator.estimate(name, quantity, unit)  # type: ignore[arg-type]

    assert food.confidence < estimator.accept_threshold
    values = [value for value in food.nutrition.as_dict().values() if value is not None]
    assert all(value >= 0 for value in values)


def test_confidence_must_stay_below_threshold() -> None:
    with pytest.raises(ValueError):
        FallbackEstimator(accept_threshold=0.3)

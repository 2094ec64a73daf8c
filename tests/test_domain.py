"""Tests for food domain models."""

import pytest

from food_resolver.domain.errors import InvalidQueryError
from food_resolver.domain.food import FoodQuery, NutritionFacts, ProviderId, QueryKind


def test_text_query_strips_and_defaults_to_100g() -> None:
    query = FoodQuery.from_text("  banana ")

    assert query.kind is QueryKind.TEXT
    assert query.value == "banana"
    assert query.quantity == 100.0
    assert query.unit == "g"


def test_barcode_query_requires_digits() -> None:
    assert FoodQuery.from_barcode("3017620422003").kind is QueryKind.BARCODE

    with pytest.raises(InvalidQueryError):
        FoodQuery.from_barcode("30176-2042")
    with pytest.raises(InvalidQueryError):
        FoodQuery.from_barcode("123")


@pytest.mark.parametrize("quantity", [0, -5, float("nan"), float("inf")])
def test_query_rejects_bad_quantity(quantity: float) -> None:
    with pytest.raises(InvalidQueryError):
        FoodQuery.from_text("rice", quantity=quantity)


def test_empty_text_is_invalid() -> None:
    with pytest.raises(InvalidQueryError):
        FoodQuery.from_text("   ")


def test_image_guess_keeps_source_confidence() -> None:
    query = FoodQuery.from_image_guess("grilled chicken", 150, "G", 0.82)

    assert query.kind is QueryKind.IMAGE_GUESS
    assert query.unit == "g"
    assert query.source_confidence == 0.82


@pytest.mark.parametrize("confidence", [True, False, "0.9"])
def test_image_guess_rejects_non_numeric_confidence(confidence: object) -> None:
    with pytest.raises(InvalidQueryError):
        FoodQuery.from_image_guess("banana", 100, "g", confidence)


def test_nutrition_facts_drop_negative_and_garbage_values() -> None:
    facts = NutritionFacts.from_values(
        calories="120", protein_g=-1, fat_g=None, carbs_g="n/a", sugar_g=True
    )

    assert facts.calories == 120.0
    assert facts.protein_g is None
    assert facts.carbs_g is None
    assert facts.sugar_g is None


def test_nutrition_facts_scale_keeps_missing_fields() -> None:
    facts = NutritionFacts(calories=89, protein_g=1.1).scaled(1.5)

    assert facts.calories == pytest.approx(133.5)
    assert facts.protein_g == pytest.approx(1.65)
    assert facts.fat_g is None
    assert not facts.is_empty()
    assert NutritionFacts().is_empty()


def test_provider_priority_prefers_structured_databases() -> None:
    ordered = sorted(ProviderId, key=lambda provider: provider.priority)

    assert ordered[0] is ProviderId.USDA_FDC
    assert ordered[-1] is ProviderId.FALLBACK_ESTIMATE

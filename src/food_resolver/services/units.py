"""Unit conversion helpers for scaling nutrition values."""

_GRAMS_PER_UNIT = {
    "g": 1.0,
    "gram": 1.0,
    "grams": 1.0,
    "kg": 1000.0,
    "kilogram": 1000.0,
    "kilograms": 1000.0,
    "oz": 28.35,
    "ounce": 28.35,
    "ounces": 28.35,
    "lb": 453.59,
    "pound": 453.59,
    "pounds": 453.59,
    # Volumes assume water density.
    "ml": 1.0,
    "l": 1000.0,
    "cup": 240.0,
    "cups": 240.0,
    "tbsp": 15.0,
    "tablespoon": 15.0,
    "tablespoons": 15.0,
    "tsp": 5.0,
    "teaspoon": 5.0,
    "teaspoons": 5.0,
}


def to_grams(quantity: float, unit: str) -> float:
    """Convert a quantity to grams; unknown units are treated as grams."""
    return quantity * _GRAMS_PER_UNIT.get(unit.strip().lower(), 1.0)


def is_known_unit(unit: str) -> bool:
    """Return True when the unit has a gram conversion."""
    return unit.strip().lower() in _GRAMS_PER_UNIT


def scale_factor(
    target_quantity: float,
    target_unit: str,
    base_quantity: float = 100.0,
    base_unit: str = "g",
) -> float:
    """Return the multiplier that maps base amounts onto the target amount."""
    if target_unit.strip().lower() == base_unit.strip().lower():
        return target_quantity / base_quantity
    base_grams = to_grams(base_quantity, base_unit)
    if base_grams <= 0:
        return 0.0
    return to_grams(target_quantity, target_unit) / base_grams

"""Meal and day nutrition totals."""

import math
from collections.abc import Iterable

from nutrition_engine.domain.catalog import Serving
from nutrition_engine.domain.errors import ValidationError
from nutrition_engine.domain.nutrition import (
    TOTAL_FIELDS,
    NutritionFact,
    NutritionTotals,
)
from nutrition_engine.services.scaling import round2, scale


def item_nutrition(serving: Serving, quantity: float) -> NutritionFact:
    """Nutrition of ``quantity`` servings."""
    return scale(serving.fact, quantity)


def aggregate(facts: Iterable[NutritionFact]) -> NutritionTotals:
    """Sum facts into totals, counting unknown values as zero."""
    columns: dict[str, list[float]] = {name: [] for name in TOTAL_FIELDS}
    for fact in facts:
        for name in TOTAL_FIELDS:
            value = getattr(fact, name)
            if value is not None:
                columns[name].append(value)
    return _totals_from_columns(columns)


def meal_totals(entries: Iterable[tuple[Serving, float]]) -> NutritionTotals:
    """Totals for a meal given ``(serving, quantity)`` pairs."""
    return aggregate(item_nutrition(serving, quantity) for serving, quantity in entries)


def day_totals(totals: Iterable[NutritionTotals]) -> NutritionTotals:
    """Sum meal totals into day totals."""
    columns: dict[str, list[float]] = {name: [] for name in TOTAL_FIELDS}
    for entry in totals:
        for name in TOTAL_FIELDS:
            columns[name].append(getattr(entry, name))
    return _totals_from_columns(columns)


def _totals_from_columns(columns: dict[str, list[float]]) -> NutritionTotals:
    # fsum is exact, so totals are independent of item order.
    try:
        sums = {name: math.fsum(values) for name, values in columns.items()}
    except OverflowError as exc:
        raise ValidationError("Nutrition totals exceed the float range") from exc
    return NutritionTotals(**{name: round2(value) for name, value in sums.items()})

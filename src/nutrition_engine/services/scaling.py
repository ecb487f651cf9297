"""Proportional scaling of nutrition facts."""

import math
from decimal import ROUND_HALF_UP, Decimal

from nutrition_engine.domain.errors import ValidationError
from nutrition_engine.domain.nutrition import NutritionFact

_CENTS = Decimal("0.01")
# Floats this large carry no fractional digits.
_NO_FRACTION_ABOVE = 1e15


def round2(value: float) -> float:
    """Round half-up to two decimals using the shortest repr of ``value``.

    Non-finite values and values too large to hold cents are returned as is.
    """
    if not math.isfinite(value) or abs(value) >= _NO_FRACTION_ABOVE:
        return float(value)
    return float(Decimal(repr(value)).quantize(_CENTS, rounding=ROUND_HALF_UP))


def check_factor(factor: float) -> float:
    """Return ``factor`` as float if it is finite and non-negative."""
    if isinstance(factor, bool) or not isinstance(factor, int | float):
        raise ValidationError(f"Scaling factor must be a number, got {factor!r}")
    value = float(factor)
    if not math.isfinite(value) or value < 0:
        raise ValidationError(
            f"Scaling factor must be a finite number >= 0, got {factor!r}"
        )
    return value


def scale(fact: NutritionFact, factor: float) -> NutritionFact:
    """Scale every known nutrient by ``factor``; unknown nutrients stay unknown."""
    multiplier = check_factor(factor)
    return NutritionFact(
        **{name: round2(value * multiplier) for name, value in fact.present().items()}
    )

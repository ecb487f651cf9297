"""Reconcile provider nutrition with a serving's declared size and unit."""

import math
from dataclasses import dataclass
from enum import StrEnum

from nutrition_engine.domain.errors import ValidationError
from nutrition_engine.domain.nutrition import NutritionFact, ProviderNutritionResult
from nutrition_engine.services.scaling import scale


class ReconcileOutcome(StrEnum):
    """Which reconciliation rule applied."""

    PASS_THROUGH = "pass_through"
    UNIT_OVERRIDE = "unit_override"
    SCALED = "scaled"


@dataclass(frozen=True)
class Reconciliation:
    """Nutrition and unit to store for a serving, plus an optional advisory."""

    outcome: ReconcileOutcome
    fact: NutritionFact
    unit: str
    warning: str | None = None
    factor: float | None = None


def units_match(left: str, right: str) -> bool:
    """Compare serving units ignoring case and surrounding whitespace."""
    return left.strip().lower() == right.strip().lower()


def reconcile(
    result: ProviderNutritionResult, target_size: float, target_unit: str
) -> Reconciliation:
    """Decide how provider values apply to a serving of ``target_size`` ``target_unit``.

    Values without serving info already describe the target serving and pass
    through. Values in a different unit are never converted: they are kept as
    returned and the serving adopts the provider unit, with a warning. Values
    in the same unit are scaled by ``target_size / result_serving_size``.
    """
    _check_positive("Target serving size", target_size)

    if not result.has_serving_info:
        return Reconciliation(
            outcome=ReconcileOutcome.PASS_THROUGH,
            fact=result.fact,
            unit=target_unit,
        )

    result_size = result.result_serving_size
    result_unit = str(result.result_serving_unit)
    if not units_match(result_unit, target_unit):
        warning = (
            f'Serving unit changed from "{target_unit}" to "{result_unit}". '
            f"Values applied as returned, per {_format_size(result_size)} "
            f"{result_unit}."
        )
        return Reconciliation(
            outcome=ReconcileOutcome.UNIT_OVERRIDE,
            fact=result.fact,
            unit=result_unit,
            warning=warning,
        )

    _check_positive("Provider serving size", result_size)
    factor = float(target_size) / float(result_size)
    return Reconciliation(
        outcome=ReconcileOutcome.SCALED,
        fact=scale(result.fact, factor),
        unit=target_unit,
        factor=factor,
    )


def _check_positive(label: str, value: object) -> None:
    if (
        isinstance(value, bool)
        or not isinstance(value, int | float)
        or not math.isfinite(value)
        or value <= 0
    ):
        raise ValidationError(f"{label} must be a finite number > 0, got {value!r}")


def _format_size(size: float | None) -> str:
    if size is not None and float(size).is_integer():
        return str(int(size))
    return str(size)

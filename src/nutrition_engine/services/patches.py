"""Build serving patches from reconciled nutrition."""

from nutrition_engine.domain.catalog import ServingPatch, ServingStatus
from nutrition_engine.domain.errors import ValidationError
from nutrition_engine.domain.nutrition import NutritionFact


def build_patch(
    fact: NutritionFact, unit: str, source_label: str | None = None
) -> ServingPatch:
    """Return a verified patch carrying only the nutrients present in ``fact``."""
    if not unit or not unit.strip():
        raise ValidationError("Serving unit must not be empty")
    return ServingPatch(
        unit=unit,
        fact=fact,
        status=ServingStatus.VERIFIED,
        data_source=source_label or None,
    )

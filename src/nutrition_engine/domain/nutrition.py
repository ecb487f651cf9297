"""Nutrition domain models."""

import math
from collections.abc import Mapping
from dataclasses import dataclass, fields
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from nutrition_engine.domain.errors import ValidationError

NUTRIENT_FIELDS: tuple[str, ...] = (
    "calories",
    "protein",
    "carbs",
    "fat",
    "saturated_fat",
    "trans_fat",
    "fiber",
    "sugar",
    "sodium",
    "cholesterol",
)

# Nutrients that are always present on totals and tracked by goals.
TOTAL_FIELDS: tuple[str, ...] = (
    "calories",
    "protein",
    "carbs",
    "fat",
    "fiber",
    "sugar",
    "sodium",
)


def check_amount(name: str, value: float) -> float:
    """Return a nutrient amount as float, rejecting negative or non-finite values."""
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise ValidationError(f"{name} must be a number, got {value!r}")
    amount = float(value)
    if not math.isfinite(amount) or amount < 0:
        raise ValidationError(f"{name} must be a finite number >= 0, got {value!r}")
    return amount


@dataclass(frozen=True)
class NutritionFact:
    """Nutrient values for one serving.

    ``None`` means the value is unknown; it is never the same as zero.
    Energy is in kcal, sodium and cholesterol in mg, everything else in grams.
    """

    calories: float | None = None
    protein: float | None = None
    carbs: float | None = None
    fat: float | None = None
    saturated_fat: float | None = None
    trans_fat: float | None = None
    fiber: float | None = None
    sugar: float | None = None
    sodium: float | None = None
    cholesterol: float | None = None

    def __post_init__(self) -> None:
        for item in fields(self):
            value = getattr(self, item.name)
            if value is not None:
                object.__setattr__(self, item.name, check_amount(item.name, value))

    def present(self) -> dict[str, float]:
        """Return only the known nutrient values, in canonical order."""
        values: dict[str, float] = {}
        for name in NUTRIENT_FIELDS:
            value = getattr(self, name)
            if value is not None:
                values[name] = value
        return values

    def is_empty(self) -> bool:
        return not self.present()

    @classmethod
    def from_mapping(cls, data: Mapping[str, object]) -> "NutritionFact":
        """Build a fact from a row or payload, ignoring unrelated keys."""
        return cls(
            **{
                name: data[name]
                for name in NUTRIENT_FIELDS
                if data.get(name) is not None
            }
        )


@dataclass(frozen=True)
class NutritionTotals:
    """Summed nutrition where every field is always present."""

    calories: float = 0.0
    protein: float = 0.0
    carbs: float = 0.0
    fat: float = 0.0
    fiber: float = 0.0
    sugar: float = 0.0
    sodium: float = 0.0

    def as_dict(self) -> dict[str, float]:
        return {name: getattr(self, name) for name in TOTAL_FIELDS}


class DataKind(StrEnum):
    """How provider values were obtained."""

    ESTIMATED = "estimated"
    MEASURED = "measured"


class Confidence(StrEnum):
    """Confidence of an estimated result."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ProviderNutritionResult(BaseModel):
    """Nutrition values returned by a data provider."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    calories: float | None = Field(default=None, ge=0)
    protein: float | None = Field(default=None, ge=0)
    carbs: float | None = Field(default=None, ge=0)
    fat: float | None = Field(default=None, ge=0)
    saturated_fat: float | None = Field(default=None, ge=0, alias="saturatedFat")
    trans_fat: float | None = Field(default=None, ge=0, alias="transFat")
    fiber: float | None = Field(default=None, ge=0)
    sugar: float | None = Field(default=None, ge=0)
    sodium: float | None = Field(default=None, ge=0)
    cholesterol: float | None = Field(default=None, ge=0)
    data_kind: DataKind = Field(alias="dataKind")
    confidence: Confidence | None = None
    source_label: str | None = Field(default=None, alias="sourceLabel")
    result_serving_size: float | None = Field(default=None, alias="resultServingSize")
    result_serving_unit: str | None = Field(default=None, alias="resultServingUnit")

    @field_validator("result_serving_unit")
    @classmethod
    def _blank_unit_is_absent(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            return None
        return value

    @property
    def fact(self) -> NutritionFact:
        """Nutrient values as a domain fact."""
        return NutritionFact(
            **{name: getattr(self, name) for name in NUTRIENT_FIELDS}
        )

    @property
    def has_serving_info(self) -> bool:
        return self.result_serving_size is not None and bool(
            self.result_serving_unit
        )

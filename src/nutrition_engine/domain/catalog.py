"""Domain models for the food catalog."""

from dataclasses import dataclass, field
from enum import StrEnum
from uuid import UUID

from nutrition_engine.domain.nutrition import NutritionFact


class ServingStatus(StrEnum):
    """Review state of a serving's nutrition data."""

    VERIFIED = "verified"
    NEEDS_REVIEW = "needs_review"
    USER_CREATED = "user_created"


@dataclass(frozen=True)
class Food:
    """A food in the catalog."""

    id: UUID
    name: str
    brand: str | None = None
    variant: str | None = None


@dataclass(frozen=True)
class Serving:
    """A food quantity with the nutrition for that declared size."""

    id: UUID
    food_id: UUID
    size: float
    unit: str
    fact: NutritionFact = field(default_factory=NutritionFact)
    status: ServingStatus = ServingStatus.NEEDS_REVIEW
    name: str | None = None
    data_source: str | None = None
    is_default: bool = False


@dataclass(frozen=True)
class ServingPatch:
    """Sparse update for a serving built from imported nutrition."""

    unit: str
    fact: NutritionFact
    status: ServingStatus = ServingStatus.VERIFIED
    data_source: str | None = None

    def as_update(self) -> dict[str, object]:
        """Return the columns to write; unknown nutrients are omitted."""
        update: dict[str, object] = {"unit": self.unit, "status": str(self.status)}
        if self.data_source:
            update["data_source"] = self.data_source
        update.update(self.fact.present())
        return update

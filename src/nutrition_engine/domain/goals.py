"""Domain models for nutrition goals."""

from dataclasses import dataclass
from datetime import date
from uuid import UUID

GOAL_NUTRIENTS: tuple[str, ...] = (
    "calories",
    "protein",
    "carbs",
    "fat",
    "fiber",
    "sugar",
    "sodium",
)

TARGET_FIELDS: tuple[str, ...] = tuple(f"{name}_target" for name in GOAL_NUTRIENTS)


@dataclass(frozen=True)
class NutritionGoal:
    """Daily nutrient targets for a date range."""

    id: UUID
    user_id: UUID
    start_date: date
    end_date: date | None = None
    calories_target: float | None = None
    protein_target: float | None = None
    carbs_target: float | None = None
    fat_target: float | None = None
    fiber_target: float | None = None
    sugar_target: float | None = None
    sodium_target: float | None = None

    def is_active_on(self, day: date) -> bool:
        """Return whether the goal covers ``day`` (end date exclusive)."""
        if day < self.start_date:
            return False
        return self.end_date is None or day < self.end_date

    def target_for(self, nutrient: str) -> float | None:
        return getattr(self, f"{nutrient}_target")

    def targets(self) -> dict[str, float | None]:
        return {name: getattr(self, name) for name in TARGET_FIELDS}


@dataclass(frozen=True)
class MacroProgress:
    """Target, actual and percentage for one nutrient."""

    target: float | None
    actual: float
    percentage: float | None


@dataclass(frozen=True)
class GoalProgress:
    """Progress of day totals against a goal."""

    calories: MacroProgress
    protein: MacroProgress
    carbs: MacroProgress
    fat: MacroProgress
    fiber: MacroProgress
    sugar: MacroProgress
    sodium: MacroProgress

    def as_dict(self) -> dict[str, dict[str, float | None]]:
        return {
            name: {
                "target": getattr(self, name).target,
                "actual": getattr(self, name).actual,
                "percentage": getattr(self, name).percentage,
            }
            for name in GOAL_NUTRIENTS
        }

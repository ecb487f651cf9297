"""Domain models for meal logging."""

from dataclasses import dataclass
from datetime import date
from enum import StrEnum
from uuid import UUID

from nutrition_engine.domain.catalog import Food, Serving
from nutrition_engine.domain.goals import GoalProgress
from nutrition_engine.domain.nutrition import NutritionFact, NutritionTotals


class MealType(StrEnum):
    """Meal slot within a day."""

    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    SNACK = "snack"

    @property
    def order(self) -> int:
        return list(MealType).index(self)


@dataclass(frozen=True)
class MealItemInput:
    """Item to log into a meal."""

    food_id: UUID
    serving_id: UUID
    quantity: float = 1.0
    notes: str | None = None
    is_estimated: bool = False


@dataclass(frozen=True)
class MealItemRecord:
    """Meal item row with identifiers."""

    id: UUID
    meal_id: UUID
    food_id: UUID
    serving_id: UUID
    quantity: float = 1.0
    notes: str | None = None
    is_estimated: bool = False


@dataclass(frozen=True)
class MealRecord:
    """Meal row without items."""

    id: UUID
    user_id: UUID
    date: date
    meal_type: MealType
    notes: str | None = None


@dataclass(frozen=True)
class MealItemDetail:
    """Meal item with its food, serving and derived nutrition."""

    id: UUID
    quantity: float
    notes: str | None
    is_estimated: bool
    food: Food
    serving: Serving
    nutrition: NutritionFact


@dataclass(frozen=True)
class MealDetail:
    """Meal with items and totals."""

    id: UUID
    date: date
    meal_type: MealType
    notes: str | None
    items: list[MealItemDetail]
    totals: NutritionTotals


@dataclass(frozen=True)
class DailySummary:
    """All meals for a day with totals and goal progress."""

    date: date
    meals: list[MealDetail]
    totals: NutritionTotals
    goals: GoalProgress | None

"""Meal logging service."""

import logging
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Protocol
from uuid import UUID

from nutrition_engine.domain.errors import NotFoundError, ValidationError
from nutrition_engine.domain.meals import (
    DailySummary,
    MealDetail,
    MealItemDetail,
    MealItemInput,
    MealItemRecord,
    MealRecord,
    MealType,
)
from nutrition_engine.domain.nutrition import check_amount
from nutrition_engine.services.aggregation import aggregate, day_totals, item_nutrition
from nutrition_engine.services.catalog import CatalogService
from nutrition_engine.services.goals import GoalService
from nutrition_engine.services.progress import progress

_logger = logging.getLogger(__name__)


class MealRepository(Protocol):
    """Persistence interface for meals and meal items."""

    def create_meal(
        self, user_id: UUID, day: date, meal_type: MealType, notes: str | None
    ) -> MealRecord:
        """Create a meal and return it."""

    def find_meal(
        self, user_id: UUID, day: date, meal_type: MealType
    ) -> MealRecord | None:
        """Return the user's meal for a day and meal type."""

    def get_meal(self, meal_id: UUID) -> MealRecord | None:
        """Return a meal by id."""

    def list_meals(
        self,
        user_id: UUID,
        start: date | None,
        end: date | None,
        meal_type: MealType | None,
    ) -> list[MealRecord]:
        """Return meals with ``start <= date < end``; ``None`` bounds are open."""

    def update_meal_notes(self, meal_id: UUID, notes: str | None) -> None:
        """Replace meal notes."""

    def delete_meal(self, meal_id: UUID) -> None:
        """Delete a meal and its items."""

    def create_items(
        self, meal_id: UUID, items: Sequence[MealItemInput]
    ) -> list[MealItemRecord]:
        """Create meal item rows."""

    def list_items(self, meal_ids: list[UUID]) -> list[MealItemRecord]:
        """Return items belonging to any of ``meal_ids``."""

    def get_item(self, item_id: UUID) -> MealItemRecord | None:
        """Return a meal item by id."""

    def update_item(self, item_id: UUID, changes: dict[str, object]) -> None:
        """Update the given item columns."""

    def delete_item(self, item_id: UUID) -> None:
        """Delete a meal item."""


@dataclass
class MealService:
    """Logs servings into meals and derives meal and day nutrition."""

    repository: MealRepository
    catalog: CatalogService
    goals: GoalService

    def create_meal(  # noqa: PLR0913
        self,
        user_id: UUID,
        day: date,
        meal_type: MealType,
        items: Sequence[MealItemInput] = (),
        notes: str | None = None,
    ) -> MealDetail:
        """Create a meal for a day and meal type, optionally with items."""
        if self.repository.find_meal(user_id, day, meal_type) is not None:
            raise ValidationError(
                f"Meal already exists for {meal_type} on {day.isoformat()}; "
                "add items to the existing meal instead"
            )
        self._check_items(items)
        meal = self.repository.create_meal(user_id, day, meal_type, notes)
        if items:
            self.repository.create_items(meal.id, items)
        _logger.info(
            "Meal created: meal_id=%s type=%s items=%s", meal.id, meal_type, len(items)
        )
        return self._details([meal])[0]

    def add_item(
        self, user_id: UUID, meal_id: UUID, item: MealItemInput
    ) -> MealDetail:
        """Add an item to an existing meal."""
        meal = self._get_owned_meal(user_id, meal_id)
        self._check_items([item])
        self.repository.create_items(meal.id, [item])
        return self._details([meal])[0]

    def update_item(  # noqa: PLR0913
        self,
        user_id: UUID,
        item_id: UUID,
        quantity: float | None = None,
        notes: str | None = None,
        is_estimated: bool | None = None,
    ) -> MealDetail:
        """Change an item's quantity, notes or estimate flag."""
        item, meal = self._get_owned_item(user_id, item_id)
        changes: dict[str, object] = {}
        if quantity is not None:
            changes["quantity"] = check_amount("quantity", quantity)
        if notes is not None:
            changes["notes"] = notes
        if is_estimated is not None:
            changes["is_estimated"] = is_estimated
        if changes:
            self.repository.update_item(item.id, changes)
        return self._details([meal])[0]

    def delete_item(self, user_id: UUID, item_id: UUID) -> None:
        """Delete an item; a meal left without items is deleted too."""
        item, meal = self._get_owned_item(user_id, item_id)
        remaining = [
            other
            for other in self.repository.list_items([meal.id])
            if other.id != item.id
        ]
        self.repository.delete_item(item.id)
        if not remaining:
            self.repository.delete_meal(meal.id)
            _logger.info("Meal deleted after last item removed: meal_id=%s", meal.id)

    def update_notes(
        self, user_id: UUID, meal_id: UUID, notes: str | None
    ) -> MealDetail:
        meal = self._get_owned_meal(user_id, meal_id)
        self.repository.update_meal_notes(meal.id, notes)
        return self._details([self._get_owned_meal(user_id, meal_id)])[0]

    def delete_meal(self, user_id: UUID, meal_id: UUID) -> None:
        meal = self._get_owned_meal(user_id, meal_id)
        self.repository.delete_meal(meal.id)

    def get_meal(self, user_id: UUID, meal_id: UUID) -> MealDetail:
        """Return a meal with item nutrition and totals."""
        return self._details([self._get_owned_meal(user_id, meal_id)])[0]

    def list_meals(
        self,
        user_id: UUID,
        day: date | None = None,
        meal_type: MealType | None = None,
    ) -> list[MealDetail]:
        """Return meals, optionally for one day and meal type, newest first."""
        end = day + timedelta(days=1) if day else None
        meals = sorted(
            self.repository.list_meals(user_id, day, end, meal_type),
            key=lambda meal: (meal.date, -meal.meal_type.order),
            reverse=True,
        )
        return self._details(meals)

    def daily_summary(self, user_id: UUID, day: date) -> DailySummary:
        """Return the day's meals, totals and progress against the active goal."""
        meals = sorted(
            self.repository.list_meals(user_id, day, day + timedelta(days=1), None),
            key=lambda meal: meal.meal_type.order,
        )
        details = self._details(meals)
        totals = day_totals(detail.totals for detail in details)
        goal = self.goals.get_active(user_id, on=day)
        return DailySummary(
            date=day,
            meals=details,
            totals=totals,
            goals=progress(totals, goal) if goal is not None else None,
        )

    def meal_dates(self, user_id: UUID, start: date, end: date) -> list[date]:
        """Return distinct days in ``[start, end]`` that have meals."""
        if end < start:
            raise ValidationError("End date must not be before start date")
        meals = self.repository.list_meals(
            user_id, start, end + timedelta(days=1), None
        )
        return sorted({meal.date for meal in meals})

    def _check_items(self, items: Sequence[MealItemInput]) -> None:
        for item in items:
            check_amount("quantity", item.quantity)
            self.catalog.check_serving_of_food(item.food_id, item.serving_id)

    def _get_owned_meal(self, user_id: UUID, meal_id: UUID) -> MealRecord:
        meal = self.repository.get_meal(meal_id)
        if meal is None or meal.user_id != user_id:
            raise NotFoundError(f"Meal with ID {meal_id} not found")
        return meal

    def _get_owned_item(
        self, user_id: UUID, item_id: UUID
    ) -> tuple[MealItemRecord, MealRecord]:
        item = self.repository.get_item(item_id)
        if item is None:
            raise NotFoundError(f"Meal item with ID {item_id} not found")
        meal = self.repository.get_meal(item.meal_id)
        if meal is None or meal.user_id != user_id:
            raise NotFoundError(f"Meal item with ID {item_id} not found")
        return item, meal

    def _details(self, meals: list[MealRecord]) -> list[MealDetail]:
        if not meals:
            return []
        items = self.repository.list_items([meal.id for meal in meals])
        servings, foods = self.catalog.load_many(
            {item.serving_id for item in items}, {item.food_id for item in items}
        )
        by_meal: dict[UUID, list[MealItemDetail]] = defaultdict(list)
        for item in items:
            serving = servings.get(item.serving_id)
            food = foods.get(item.food_id)
            if serving is None or food is None:
                raise NotFoundError(
                    f"Meal item {item.id} references a missing food or serving"
                )
            by_meal[item.meal_id].append(
                MealItemDetail(
                    id=item.id,
                    quantity=item.quantity,
                    notes=item.notes,
                    is_estimated=item.is_estimated,
                    food=food,
                    serving=serving,
                    nutrition=item_nutrition(serving, item.quantity),
                )
            )
        return [
            MealDetail(
                id=meal.id,
                date=meal.date,
                meal_type=meal.meal_type,
                notes=meal.notes,
                items=by_meal[meal.id],
                totals=aggregate(detail.nutrition for detail in by_meal[meal.id]),
            )
            for meal in meals
        ]

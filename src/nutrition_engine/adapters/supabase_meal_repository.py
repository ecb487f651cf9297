"""Supabase repository for meals and meal items."""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from uuid import UUID

from supabase import Client

from nutrition_engine.domain.meals import (
    MealItemInput,
    MealItemRecord,
    MealRecord,
    MealType,
)
from nutrition_engine.services.meals import MealRepository

_MEAL_COLUMNS = "id, user_id, date, meal_type, notes"


@dataclass
class SupabaseMealRepository(MealRepository):
    """Supabase implementation for meals."""

    client: Client

    def create_meal(
        self, user_id: UUID, day: date, meal_type: MealType, notes: str | None
    ) -> MealRecord:
        """Create a meal row and return it."""
        response = (
            self.client.table("meals")
            .insert(
                {
                    "user_id": str(user_id),
                    "date": day.isoformat(),
                    "meal_type": str(meal_type),
                    "notes": notes,
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create meal")
        return _parse_meal(response.data[0])

    def find_meal(
        self, user_id: UUID, day: date, meal_type: MealType
    ) -> MealRecord | None:
        """Return the meal for a user, day and meal type."""
        response = (
            self.client.table("meals")
            .select(_MEAL_COLUMNS)
            .eq("user_id", str(user_id))
            .eq("date", day.isoformat())
            .eq("meal_type", str(meal_type))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_meal(response.data[0])

    def get_meal(self, meal_id: UUID) -> MealRecord | None:
        """Return a meal by id."""
        response = (
            self.client.table("meals")
            .select(_MEAL_COLUMNS)
            .eq("id", str(meal_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_meal(response.data[0])

    def list_meals(
        self,
        user_id: UUID,
        start: date | None,
        end: date | None,
        meal_type: MealType | None,
    ) -> list[MealRecord]:
        """Return meals in a half-open date range."""
        query = (
            self.client.table("meals").select(_MEAL_COLUMNS).eq("user_id", str(user_id))
        )
        if start is not None:
            query = query.gte("date", start.isoformat())
        if end is not None:
            query = query.lt("date", end.isoformat())
        if meal_type is not None:
            query = query.eq("meal_type", str(meal_type))
        response = query.order("date", desc=True).execute()
        return [_parse_meal(row) for row in response.data or []]

    def update_meal_notes(self, meal_id: UUID, notes: str | None) -> None:
        """Replace meal notes."""
        self.client.table("meals").update({"notes": notes}).eq(
            "id", str(meal_id)
        ).execute()

    def delete_meal(self, meal_id: UUID) -> None:
        """Delete a meal; items are removed by the foreign key cascade."""
        self.client.table("meals").delete().eq("id", str(meal_id)).execute()

    def create_items(
        self, meal_id: UUID, items: Sequence[MealItemInput]
    ) -> list[MealItemRecord]:
        """Create meal item rows."""
        payload = [
            {
                "meal_id": str(meal_id),
                "food_id": str(item.food_id),
                "serving_id": str(item.serving_id),
                "quantity": item.quantity,
                "notes": item.notes,
                "is_estimated": item.is_estimated,
            }
            for item in items
        ]
        if not payload:
            return []
        response = self.client.table("meal_items").insert(payload).execute()
        if not response.data:
            raise RuntimeError("Failed to create meal items")
        return [_parse_item(row) for row in response.data]

    def list_items(self, meal_ids: list[UUID]) -> list[MealItemRecord]:
        """Return items for the given meals."""
        if not meal_ids:
            return []
        response = (
            self.client.table("meal_items")
            .select("*")
            .in_("meal_id", [str(meal_id) for meal_id in meal_ids])
            .execute()
        )
        return [_parse_item(row) for row in response.data or []]

    def get_item(self, item_id: UUID) -> MealItemRecord | None:
        """Return a meal item by id."""
        response = (
            self.client.table("meal_items")
            .select("*")
            .eq("id", str(item_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_item(response.data[0])

    def update_item(self, item_id: UUID, changes: dict[str, object]) -> None:
        """Update meal item columns."""
        self.client.table("meal_items").update(changes).eq(
            "id", str(item_id)
        ).execute()

    def delete_item(self, item_id: UUID) -> None:
        """Delete a meal item."""
        self.client.table("meal_items").delete().eq("id", str(item_id)).execute()


def _parse_meal(row: dict[str, object]) -> MealRecord:
    return MealRecord(
        id=UUID(str(row["id"])),
        user_id=UUID(str(row["user_id"])),
        date=date.fromisoformat(str(row["date"])[:10]),
        meal_type=MealType(str(row["meal_type"]).lower()),
        notes=row.get("notes"),
    )


def _parse_item(row: dict[str, object]) -> MealItemRecord:
    return MealItemRecord(
        id=UUID(str(row["id"])),
        meal_id=UUID(str(row["meal_id"])),
        food_id=UUID(str(row["food_id"])),
        serving_id=UUID(str(row["serving_id"])),
        quantity=float(row.get("quantity", 1.0)),
        notes=row.get("notes"),
        is_estimated=bool(row.get("is_estimated", False)),
    )

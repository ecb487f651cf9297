"""Supabase repository for foods and servings."""

from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from nutrition_engine.domain.catalog import Food, Serving, ServingStatus
from nutrition_engine.domain.nutrition import NutritionFact
from nutrition_engine.services.catalog import CatalogRepository


@dataclass
class SupabaseCatalogRepository(CatalogRepository):
    """Supabase-backed repository for the food catalog."""

    client: Client

    def get_food(self, food_id: UUID) -> Food | None:
        """Return a food by id."""
        response = (
            self.client.table("foods")
            .select("id, name, brand, variant")
            .eq("id", str(food_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_food(response.data[0])

    def get_serving(self, serving_id: UUID) -> Serving | None:
        """Return a serving by id."""
        response = (
            self.client.table("servings")
            .select("*")
            .eq("id", str(serving_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_serving(response.data[0])

    def list_servings(self, serving_ids: list[UUID]) -> list[Serving]:
        """Return servings by ids."""
        if not serving_ids:
            return []
        response = (
            self.client.table("servings")
            .select("*")
            .in_("id", [str(serving_id) for serving_id in serving_ids])
            .execute()
        )
        return [_parse_serving(row) for row in response.data or []]

    def list_foods(self, food_ids: list[UUID]) -> list[Food]:
        """Return foods by ids."""
        if not food_ids:
            return []
        response = (
            self.client.table("foods")
            .select("id, name, brand, variant")
            .in_("id", [str(food_id) for food_id in food_ids])
            .execute()
        )
        return [_parse_food(row) for row in response.data or []]

    def update_serving(self, serving_id: UUID, update: dict[str, object]) -> Serving:
        """Write the given columns in one update statement."""
        response = (
            self.client.table("servings")
            .update(update)
            .eq("id", str(serving_id))
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to update serving")
        return _parse_serving(response.data[0])


def _parse_food(row: dict[str, object]) -> Food:
    return Food(
        id=UUID(str(row["id"])),
        name=str(row.get("name", "")),
        brand=row.get("brand"),
        variant=row.get("variant"),
    )


def _parse_serving(row: dict[str, object]) -> Serving:
    """Parse a serving row into a domain model."""
    return Serving(
        id=UUID(str(row["id"])),
        food_id=UUID(str(row["food_id"])),
        name=row.get("name"),
        size=float(row.get("size", 0.0)),
        unit=str(row.get("unit", "")),
        fact=NutritionFact.from_mapping(row),
        status=ServingStatus(str(row.get("status") or ServingStatus.NEEDS_REVIEW)),
        data_source=row.get("data_source"),
        is_default=bool(row.get("is_default", False)),
    )

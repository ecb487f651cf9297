"""Catalog access for foods and servings."""

import logging
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from nutrition_engine.domain.catalog import Food, Serving, ServingPatch
from nutrition_engine.domain.errors import NotFoundError, ValidationError

_logger = logging.getLogger(__name__)


class CatalogRepository(Protocol):
    """Persistence interface for foods and servings."""

    def get_food(self, food_id: UUID) -> Food | None:
        """Return a food by id."""

    def get_serving(self, serving_id: UUID) -> Serving | None:
        """Return a serving by id."""

    def list_servings(self, serving_ids: list[UUID]) -> list[Serving]:
        """Return the servings that exist among ``serving_ids``."""

    def list_foods(self, food_ids: list[UUID]) -> list[Food]:
        """Return the foods that exist among ``food_ids``."""

    def update_serving(self, serving_id: UUID, update: dict[str, object]) -> Serving:
        """Write only the given columns in one statement and return the row."""


@dataclass
class CatalogService:
    """Application service for serving lookups and patches."""

    repository: CatalogRepository

    def get_serving(self, serving_id: UUID) -> Serving:
        serving = self.repository.get_serving(serving_id)
        if serving is None:
            raise NotFoundError(f"Serving with ID {serving_id} not found")
        return serving

    def get_food(self, food_id: UUID) -> Food:
        food = self.repository.get_food(food_id)
        if food is None:
            raise NotFoundError(f"Food with ID {food_id} not found")
        return food

    def get_serving_with_food(self, serving_id: UUID) -> tuple[Serving, Food]:
        serving = self.get_serving(serving_id)
        return serving, self.get_food(serving.food_id)

    def check_serving_of_food(self, food_id: UUID, serving_id: UUID) -> Serving:
        """Return the serving, requiring both ids to exist and belong together."""
        if self.repository.get_food(food_id) is None:
            raise ValidationError(f"Food with ID {food_id} not found")
        serving = self.repository.get_serving(serving_id)
        if serving is None:
            raise ValidationError(f"Serving with ID {serving_id} not found")
        if serving.food_id != food_id:
            raise ValidationError(
                f"Serving {serving_id} does not belong to food {food_id}"
            )
        return serving

    def load_many(
        self, serving_ids: set[UUID], food_ids: set[UUID]
    ) -> tuple[dict[UUID, Serving], dict[UUID, Food]]:
        """Return servings and foods keyed by id."""
        servings = self.repository.list_servings(sorted(serving_ids, key=str))
        foods = self.repository.list_foods(sorted(food_ids, key=str))
        return (
            {serving.id: serving for serving in servings},
            {food.id: food for food in foods},
        )

    def apply_patch(self, serving_id: UUID, patch: ServingPatch) -> Serving:
        """Apply a sparse patch to a serving as a single partial update."""
        update = patch.as_update()
        updated = self.repository.update_serving(serving_id, update)
        _logger.info(
            "Serving patched: serving_id=%s fields=%s",
            serving_id,
            ",".join(sorted(update)),
        )
        return updated

"""Shared test fixtures."""

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from datetime import date
from uuid import UUID, uuid4

import pytest

from nutrition_engine.config import Settings
from nutrition_engine.domain.catalog import Food, Serving, ServingStatus
from nutrition_engine.domain.goals import NutritionGoal
from nutrition_engine.domain.meals import (
    MealItemInput,
    MealItemRecord,
    MealRecord,
    MealType,
)
from nutrition_engine.domain.nutrition import (
    NUTRIENT_FIELDS,
    DataKind,
    NutritionFact,
    ProviderNutritionResult,
)
from nutrition_engine.services.catalog import CatalogRepository, CatalogService
from nutrition_engine.services.goals import GoalRepository, GoalService
from nutrition_engine.services.imports import NutritionImportService
from nutrition_engine.services.meals import MealRepository, MealService
from nutrition_engine.services.providers import NutritionDataContext, ProviderRegistry


@dataclass
class InMemoryCatalogRepository(CatalogRepository):
    """In-memory catalog repository for tests."""

    foods: dict[UUID, Food] = field(default_factory=dict)
    servings: dict[UUID, Serving] = field(default_factory=dict)
    updates: list[tuple[UUID, dict[str, object]]] = field(default_factory=list)

    def add_food(self, name: str, brand: str | None = None) -> Food:
        food = Food(id=uuid4(), name=name, brand=brand)
        self.foods[food.id] = food
        return food

    def add_serving(
        self,
        food: Food,
        size: float = 100,
        unit: str = "g",
        fact: NutritionFact | None = None,
        status: ServingStatus = ServingStatus.NEEDS_REVIEW,
    ) -> Serving:
        serving = Serving(
            id=uuid4(),
            food_id=food.id,
            size=size,
            unit=unit,
            fact=fact or NutritionFact(),
            status=status,
        )
        self.servings[serving.id] = serving
        return serving

    def get_food(self, food_id: UUID) -> Food | None:
        return self.foods.get(food_id)

    def get_serving(self, serving_id: UUID) -> Serving | None:
        return self.servings.get(serving_id)

    def list_servings(self, serving_ids: list[UUID]) -> list[Serving]:
        return [self.servings[sid] for sid in serving_ids if sid in self.servings]

    def list_foods(self, food_ids: list[UUID]) -> list[Food]:
        return [self.foods[fid] for fid in food_ids if fid in self.foods]

    def update_serving(self, serving_id: UUID, update: dict[str, object]) -> Serving:
        self.updates.append((serving_id, dict(update)))
        current = self.servings[serving_id]
        fact_values = {**current.fact.present()}
        fact_values.update({k: v for k, v in update.items() if k in NUTRIENT_FIELDS})
        updated = replace(
            current,
            unit=str(update.get("unit", current.unit)),
            status=ServingStatus(str(update.get("status", current.status))),
            data_source=update.get("data_source", current.data_source),
            fact=NutritionFact(**fact_values),
        )
        self.servings[serving_id] = updated
        return updated


@dataclass
class InMemoryMealRepository(MealRepository):
    """In-memory meal repository for tests."""

    meals: dict[UUID, MealRecord] = field(default_factory=dict)
    items: dict[UUID, MealItemRecord] = field(default_factory=dict)

    def create_meal(
        self, user_id: UUID, day: date, meal_type: MealType, notes: str | None
    ) -> MealRecord:
        meal = MealRecord(
            id=uuid4(), user_id=user_id, date=day, meal_type=meal_type, notes=notes
        )
        self.meals[meal.id] = meal
        return meal

    def find_meal(
        self, user_id: UUID, day: date, meal_type: MealType
    ) -> MealRecord | None:
        for meal in self.meals.values():
            if (meal.user_id, meal.date, meal.meal_type) == (user_id, day, meal_type):
                return meal
        return None

    def get_meal(self, meal_id: UUID) -> MealRecord | None:
        return self.meals.get(meal_id)

    def list_meals(
        self,
        user_id: UUID,
        start: date | None,
        end: date | None,
        meal_type: MealType | None,
    ) -> list[MealRecord]:
        return [
            meal
            for meal in self.meals.values()
            if meal.user_id == user_id
            and (start is None or meal.date >= start)
            and (end is None or meal.date < end)
            and (meal_type is None or meal.meal_type == meal_type)
        ]

    def update_meal_notes(self, meal_id: UUID, notes: str | None) -> None:
        self.meals[meal_id] = replace(self.meals[meal_id], notes=notes)

    def delete_meal(self, meal_id: UUID) -> None:
        self.meals.pop(meal_id, None)
        for item_id in [i.id for i in self.items.values() if i.meal_id == meal_id]:
            self.items.pop(item_id)

    def create_items(
        self, meal_id: UUID, items: Sequence[MealItemInput]
    ) -> list[MealItemRecord]:
        created = []
        for item in items:
            record = MealItemRecord(
                id=uuid4(),
                meal_id=meal_id,
                food_id=item.food_id,
                serving_id=item.serving_id,
                quantity=item.quantity,
                notes=item.notes,
                is_estimated=item.is_estimated,
            )
            self.items[record.id] = record
            created.append(record)
        return created

    def list_items(self, meal_ids: list[UUID]) -> list[MealItemRecord]:
        return [item for item in self.items.values() if item.meal_id in meal_ids]

    def get_item(self, item_id: UUID) -> MealItemRecord | None:
        return self.items.get(item_id)

    def update_item(self, item_id: UUID, changes: dict[str, object]) -> None:
        self.items[item_id] = replace(self.items[item_id], **changes)

    def delete_item(self, item_id: UUID) -> None:
        self.items.pop(item_id, None)


@dataclass
class InMemoryGoalRepository(GoalRepository):
    """In-memory goal repository for tests."""

    goals: dict[UUID, NutritionGoal] = field(default_factory=dict)

    def list_goals(self, user_id: UUID) -> list[NutritionGoal]:
        return [goal for goal in self.goals.values() if goal.user_id == user_id]

    def get_goal(self, goal_id: UUID) -> NutritionGoal | None:
        return self.goals.get(goal_id)

    def create_goal(
        self, user_id: UUID, start_date: date, targets: dict[str, float | None]
    ) -> NutritionGoal:
        goal = NutritionGoal(
            id=uuid4(), user_id=user_id, start_date=start_date, **targets
        )
        self.goals[goal.id] = goal
        return goal

    def update_goal(self, goal_id: UUID, changes: dict[str, object]) -> NutritionGoal:
        self.goals[goal_id] = replace(self.goals[goal_id], **changes)
        return self.goals[goal_id]


@dataclass
class FakeProvider:
    """Provider returning fixed results, optionally failing or blocking."""

    name: str = "fake"
    display_name: str = "Fake Provider"
    kind: str = "lookup"
    data_type: str = "nutrition"
    available: bool = True
    results: list[ProviderNutritionResult] = field(
        default_factory=lambda: [
            ProviderNutritionResult(
                data_kind=DataKind.MEASURED,
                calories=200,
                protein=10,
                source_label="Fake - Oats",
                result_serving_size=100,
                result_serving_unit="g",
            )
        ]
    )
    failures: int = 0
    release: asyncio.Event | None = None
    calls: list[NutritionDataContext] = field(default_factory=list)

    def is_available(self) -> bool:
        return self.available

    async def fetch(
        self, context: NutritionDataContext
    ) -> list[ProviderNutritionResult]:
        self.calls.append(context)
        if self.release is not None:
            await self.release.wait()
        if self.failures > 0:
            self.failures -= 1
            raise RuntimeError("provider down")
        return self.results


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
        openai_api_key="openai-key",
        fdc_api_key="fdc-key",
    )


@pytest.fixture
def catalog_repository() -> InMemoryCatalogRepository:
    return InMemoryCatalogRepository()


@pytest.fixture
def catalog_service(catalog_repository: InMemoryCatalogRepository) -> CatalogService:
    return CatalogService(catalog_repository)


@pytest.fixture
def goal_service() -> GoalService:
    return GoalService(InMemoryGoalRepository())


@pytest.fixture
def meal_service(
    catalog_service: CatalogService, goal_service: GoalService
) -> MealService:
    return MealService(
        repository=InMemoryMealRepository(),
        catalog=catalog_service,
        goals=goal_service,
    )


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def import_service(
    catalog_service: CatalogService, provider: FakeProvider
) -> NutritionImportService:
    return NutritionImportService(
        catalog=catalog_service,
        registry=ProviderRegistry([provider]),
        retry_delay_seconds=0,
    )

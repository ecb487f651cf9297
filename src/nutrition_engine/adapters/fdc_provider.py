"""USDA FoodData Central lookup provider."""

import logging
from dataclasses import dataclass

from nutrition_engine.adapters.fdc_client import FdcClient
from nutrition_engine.domain.nutrition import DataKind, ProviderNutritionResult
from nutrition_engine.services.cache import Cache
from nutrition_engine.services.providers import NutritionDataContext

# Energy has several FDC ids; the first one found wins.
_NUTRIENT_IDS: dict[str, tuple[int, ...]] = {
    "calories": (1008, 2047, 2048),
    "protein": (1003,),
    "fat": (1004,),
    "carbs": (1005,),
    "saturated_fat": (1258,),
    "trans_fat": (1257,),
    "fiber": (1079,),
    "sugar": (2000,),
    "sodium": (1093,),
    "cholesterol": (1253,),
}

_logger = logging.getLogger(__name__)


@dataclass
class FdcNutritionProvider:
    """Looks up measured nutrition in FoodData Central.

    FDC nutrient amounts are per 100 g, or per 100 ml for branded liquids.
    """

    client: FdcClient | None
    cache: Cache
    cache_ttl_seconds: float = 3600
    page_size: int = 5

    name = "usda-fdc"
    display_name = "USDA FoodData Central"
    kind = "lookup"
    data_type = "nutrition"

    def is_available(self) -> bool:
        return self.client is not None

    async def fetch(
        self, context: NutritionDataContext
    ) -> list[ProviderNutritionResult]:
        """Search FDC and map foods with nutrient values to results."""
        if self.client is None:
            raise RuntimeError("FDC provider is not configured (missing FDC_API_KEY)")
        query = context.search_terms()
        cache_key = f"fdc:search:{query.lower()}:{self.page_size}"
        payload = self.cache.get(cache_key)
        if not isinstance(payload, dict):
            payload = await self.client.search_foods(query, page_size=self.page_size)
            self.cache.set(cache_key, payload, ttl_seconds=self.cache_ttl_seconds)
        foods = payload.get("foods") or []
        _logger.debug("FDC search: query=%s results=%s", query, len(foods))
        results = []
        for food in foods:
            values = _extract_nutrients(food.get("foodNutrients") or [])
            if values:
                results.append(_map_food(food, values))
        return results


def _map_food(
    food: dict[str, object], values: dict[str, float]
) -> ProviderNutritionResult:
    label = str(food.get("description") or "Unnamed food")
    brand = food.get("brandName") or food.get("brandOwner")
    if brand:
        label = f"{label} ({brand})"
    unit = "ml" if str(food.get("servingSizeUnit", "")).lower() == "ml" else "g"
    return ProviderNutritionResult(
        data_kind=DataKind.MEASURED,
        source_label=f"USDA FoodData Central - {label}",
        result_serving_size=100,
        result_serving_unit=unit,
        **values,
    )


def _extract_nutrients(food_nutrients: list[dict[str, object]]) -> dict[str, float]:
    """Map FDC nutrient rows to nutrient names, skipping unknown amounts."""
    amounts: dict[int, float] = {}
    for nutrient in food_nutrients:
        nutrient_info = nutrient.get("nutrient") or {}
        nutrient_id = nutrient_info.get("id") or nutrient.get("nutrientId")
        amount = nutrient.get("amount", nutrient.get("value"))
        if isinstance(nutrient_id, int) and isinstance(amount, int | float):
            if amount >= 0:
                amounts.setdefault(nutrient_id, float(amount))

    values: dict[str, float] = {}
    for name, ids in _NUTRIENT_IDS.items():
        for nutrient_id in ids:
            if nutrient_id in amounts:
                values[name] = amounts[nutrient_id]
                break
    return values

"""Open Food Facts lookup provider."""

import logging
from dataclasses import dataclass

import httpx

from nutrition_engine.domain.nutrition import DataKind, ProviderNutritionResult
from nutrition_engine.services.cache import Cache
from nutrition_engine.services.providers import NutritionDataContext
from nutrition_engine.services.scaling import round2

_FIELDS = "product_name,brands,nutriments"
_MAX_RESULTS = 5

# Open Food Facts nutriments are per 100 g; sodium and cholesterol are in g.
_NUTRIMENT_KEYS = {
    "calories": "energy-kcal_100g",
    "protein": "proteins_100g",
    "carbs": "carbohydrates_100g",
    "fat": "fat_100g",
    "saturated_fat": "saturated-fat_100g",
    "trans_fat": "trans-fat_100g",
    "fiber": "fiber_100g",
    "sugar": "sugars_100g",
}
_MILLIGRAM_KEYS = {
    "sodium": "sodium_100g",
    "cholesterol": "cholesterol_100g",
}

_logger = logging.getLogger(__name__)


@dataclass
class OpenFoodFactsProvider:
    """Searches the public Open Food Facts database."""

    base_url: str
    user_agent: str
    http_client: httpx.AsyncClient
    cache: Cache
    cache_ttl_seconds: float = 3600
    timeout_seconds: float = 15

    name = "open-food-facts"
    display_name = "Open Food Facts"
    kind = "lookup"
    data_type = "nutrition"

    @classmethod
    def create(
        cls, base_url: str, user_agent: str, cache: Cache, **kwargs: float
    ) -> "OpenFoodFactsProvider":
        """Create a provider with a managed httpx session."""
        return cls(
            base_url=base_url,
            user_agent=user_agent,
            http_client=httpx.AsyncClient(),
            cache=cache,
            **kwargs,
        )

    def is_available(self) -> bool:
        """Open Food Facts needs no credentials."""
        return True

    async def fetch(
        self, context: NutritionDataContext
    ) -> list[ProviderNutritionResult]:
        """Search products and map those with nutriments to results."""
        query = context.search_terms()
        payload = await self._search(query)
        products = payload.get("products") or []
        _logger.debug(
            "Open Food Facts search: query=%s results=%s", query, len(products)
        )
        return [
            _map_product(product)
            for product in products
            if product.get("product_name") and product.get("nutriments")
        ]

    async def _search(self, query: str) -> dict[str, object]:
        cache_key = f"off:search:{query.lower()}"
        cached = self.cache.get(cache_key)
        if isinstance(cached, dict):
            return cached
        response = await self.http_client.get(
            f"{self.base_url}/cgi/search.pl",
            params={
                "search_terms": query,
                "json": "1",
                "page_size": str(_MAX_RESULTS),
                "fields": _FIELDS,
                "lc": "en",
            },
            headers={"User-Agent": self.user_agent},
            timeout=self.timeout_seconds,
        )
        response.raise_for_status()
        payload = response.json()
        self.cache.set(cache_key, payload, ttl_seconds=self.cache_ttl_seconds)
        return payload

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def _map_product(product: dict[str, object]) -> ProviderNutritionResult:
    nutriments = product["nutriments"]
    label = str(product["product_name"])
    if product.get("brands"):
        label = f"{label} ({product['brands']})"
    values: dict[str, float] = {}
    for name, key in _NUTRIMENT_KEYS.items():
        amount = _number(nutriments.get(key))
        if amount is not None:
            values[name] = amount
    for name, key in _MILLIGRAM_KEYS.items():
        amount = _number(nutriments.get(key))
        if amount is not None:
            values[name] = round2(amount * 1000)
    return ProviderNutritionResult(
        data_kind=DataKind.MEASURED,
        source_label=f"Open Food Facts - {label}",
        result_serving_size=100,
        result_serving_unit="g",
        **values,
    )


def _number(value: object) -> float | None:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    if value < 0:
        return None
    return float(value)

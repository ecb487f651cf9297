"""Tests for HTTP-based providers."""

import asyncio
import json

import httpx
import pytest

from nutrition_engine.adapters.fdc_client import HttpxFdcClient
from nutrition_engine.adapters.fdc_provider import FdcNutritionProvider
from nutrition_engine.adapters.open_food_facts_provider import OpenFoodFactsProvider
from nutrition_engine.adapters.openai_nutrition_provider import (
    OpenAINutritionProvider,
    build_prompt,
)
from nutrition_engine.domain.nutrition import Confidence, DataKind
from nutrition_engine.services.cache import InMemoryCache
from nutrition_engine.services.providers import NutritionDataContext
from nutrition_engine.services.reconcile import ReconcileOutcome, reconcile

CONTEXT = NutritionDataContext(
    food_name="Greek yogurt", food_brand="Fage", serving_size=170, serving_unit="g"
)


class _FakeResponses:
    def __init__(self, output_text: str) -> None:
        self.output_text = output_text
        self.last_payload: dict[str, object] | None = None

    async def create(self, **kwargs):  # type: ignore[no-untyped-def]
        self.last_payload = kwargs
        return type("Resp", (), {"output_text": self.output_text})()


class _FakeOpenAI:
    def __init__(self, output_text: str) -> None:
        self.responses = _FakeResponses(output_text)


def test_openai_provider_parses_estimate() -> None:
    estimate = {
        "calories": 150,
        "protein": 15,
        "carbs": 6,
        "fat": 7.5,
        "saturated_fat": 5,
        "trans_fat": None,
        "fiber": 0,
        "sugar": 6,
        "sodium": 65,
        "cholesterol": None,
        "confidence": "medium",
        "notes": "Plain, full fat",
    }
    client = _FakeOpenAI(json.dumps(estimate))
    provider = OpenAINutritionProvider(client=client, model="gpt-4o-mini")

    results = asyncio.run(provider.fetch(CONTEXT))

    assert len(results) == 1
    result = results[0]
    assert result.data_kind is DataKind.ESTIMATED
    assert result.confidence is Confidence.MEDIUM
    assert result.source_label == "AI Estimate - Plain, full fat"
    assert result.trans_fat is None
    assert result.fiber == 0
    assert not result.has_serving_info
    payload = client.responses.last_payload
    assert payload is not None
    assert payload["store"] is False
    assert payload["text"]["format"]["strict"] is True


def test_openai_estimate_is_applied_without_scaling() -> None:
    estimate = {
        "calories": 150,
        "protein": 15,
        "carbs": 6,
        "fat": 7.5,
        "saturated_fat": None,
        "trans_fat": None,
        "fiber": None,
        "sugar": None,
        "sodium": None,
        "cholesterol": None,
        "confidence": "high",
        "notes": None,
    }
    provider = OpenAINutritionProvider(
        client=_FakeOpenAI(json.dumps(estimate)), model="gpt-4o-mini"
    )

    result = asyncio.run(provider.fetch(CONTEXT))[0]
    reconciliation = reconcile(result, 170, "g")

    assert result.source_label == "AI Estimate (OpenAI)"
    assert reconciliation.outcome is ReconcileOutcome.PASS_THROUGH
    assert reconciliation.fact.calories == 150


def test_openai_provider_rejects_empty_output() -> None:
    provider = OpenAINutritionProvider(client=_FakeOpenAI(""), model="gpt-4o-mini")

    with pytest.raises(RuntimeError):
        asyncio.run(provider.fetch(CONTEXT))


def test_openai_provider_without_key_is_unavailable() -> None:
    provider = OpenAINutritionProvider.create(api_key=None, model="gpt-4o-mini")

    assert not provider.is_available()


def test_build_prompt_describes_serving() -> None:
    prompt = build_prompt(CONTEXT)

    assert "Food: Greek yogurt" in prompt
    assert "Brand: Fage" in prompt
    assert "Serving size: 170 g" in prompt


def test_open_food_facts_provider_maps_products() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "products": [
                    {
                        "product_name": "Total 0%",
                        "brands": "Fage",
                        "nutriments": {
                            "energy-kcal_100g": 54,
                            "proteins_100g": 10.3,
                            "fat_100g": 0,
                            "sodium_100g": 0.036,
                            "sugars_100g": "n/a",
                        },
                    },
                    {"product_name": "No data"},
                ]
            },
        )

    cache = InMemoryCache()
    provider = OpenFoodFactsProvider(
        base_url="https://off.test",
        user_agent="nutrition-engine-tests",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        cache=cache,
    )

    results = asyncio.run(provider.fetch(CONTEXT))
    asyncio.run(provider.fetch(CONTEXT))

    assert len(seen) == 1
    assert seen[0].url.path == "/cgi/search.pl"
    assert seen[0].url.params["search_terms"] == "Greek yogurt Fage"
    assert seen[0].headers["User-Agent"] == "nutrition-engine-tests"
    assert len(results) == 1
    result = results[0]
    assert result.source_label == "Open Food Facts - Total 0% (Fage)"
    assert result.calories == 54
    assert result.fat == 0
    assert result.sodium == 36
    assert result.sugar is None
    assert (result.result_serving_size, result.result_serving_unit) == (100, "g")


def test_open_food_facts_result_scales_to_serving() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "products": [
                    {
                        "product_name": "Yogurt",
                        "nutriments": {"energy-kcal_100g": 60, "proteins_100g": 10},
                    }
                ]
            },
        )

    provider = OpenFoodFactsProvider(
        base_url="https://off.test",
        user_agent="tests",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        cache=InMemoryCache(),
    )

    result = asyncio.run(provider.fetch(CONTEXT))[0]
    reconciliation = reconcile(result, 170, "g")

    assert reconciliation.outcome is ReconcileOutcome.SCALED
    assert reconciliation.fact.calories == 102
    assert reconciliation.fact.protein == 17


def test_open_food_facts_http_error_propagates() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={})

    provider = OpenFoodFactsProvider(
        base_url="https://off.test",
        user_agent="tests",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        cache=InMemoryCache(),
    )

    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(provider.fetch(CONTEXT))


def test_fdc_client_searches_foods() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path.endswith("/foods/search")
        assert request.url.params["api_key"] == "key"
        body = json.loads(request.content.decode())
        assert body["query"] == "rice"
        assert body["pageSize"] == 3
        return httpx.Response(200, json={"foods": []})

    transport = httpx.MockTransport(handler)
    async_client = httpx.AsyncClient(transport=transport)
    client = HttpxFdcClient(
        api_key="key",
        base_url="https://api.test",
        http_client=async_client,
    )

    search = asyncio.run(client.search_foods("rice", page_size=3))

    assert search == {"foods": []}


class _FakeFdcClient:
    def __init__(self, payload: dict[str, object]) -> None:
        self.payload = payload
        self.queries: list[str] = []

    async def search_foods(self, query: str, page_size: int = 5) -> dict[str, object]:
        self.queries.append(query)
        return self.payload


def test_fdc_provider_maps_nutrients() -> None:
    client = _FakeFdcClient(
        {
            "foods": [
                {
                    "description": "Yogurt, Greek, plain",
                    "brandOwner": "Fage",
                    "servingSizeUnit": "g",
                    "foodNutrients": [
                        {"nutrientId": 1008, "value": 59},
                        {"nutrientId": 2047, "value": 61},
                        {"nutrientId": 1003, "value": 10.2},
                        {"nutrient": {"id": 1093}, "amount": 36},
                        {"nutrientId": 1079, "value": -1},
                    ],
                },
                {"description": "Empty", "foodNutrients": []},
                {
                    "description": "Drinkable yogurt",
                    "servingSizeUnit": "ML",
                    "foodNutrients": [{"nutrientId": 2048, "value": 70}],
                },
            ]
        }
    )
    cache = InMemoryCache()
    provider = FdcNutritionProvider(client=client, cache=cache)

    results = asyncio.run(provider.fetch(CONTEXT))
    asyncio.run(provider.fetch(CONTEXT))

    assert client.queries == ["Greek yogurt Fage"]
    assert len(results) == 2
    first, second = results
    assert first.source_label == "USDA FoodData Central - Yogurt, Greek, plain (Fage)"
    assert first.calories == 59
    assert first.protein == 10.2
    assert first.sodium == 36
    assert first.fiber is None
    assert first.result_serving_unit == "g"
    assert second.calories == 70
    assert second.result_serving_unit == "ml"


def test_fdc_provider_without_client_is_unavailable() -> None:
    provider = FdcNutritionProvider(client=None, cache=InMemoryCache())

    assert not provider.is_available()
    with pytest.raises(RuntimeError):
        asyncio.run(provider.fetch(CONTEXT))


def test_cache_expires_and_evicts() -> None:
    now = [0.0]
    cache = InMemoryCache(max_entries=2, clock=lambda: now[0])

    cache.set("a", 1, ttl_seconds=10)
    cache.set("b", 2, ttl_seconds=10)
    cache.set("c", 3, ttl_seconds=10)

    assert cache.get("a") is None
    assert cache.get("b") == 2
    now[0] = 10.0
    assert cache.get("c") is None
    assert len(cache) == 1

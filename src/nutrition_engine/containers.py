"""Dependency container wiring for the engine."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from nutrition_engine.adapters.fdc_client import HttpxFdcClient
from nutrition_engine.adapters.fdc_provider import FdcNutritionProvider
from nutrition_engine.adapters.open_food_facts_provider import OpenFoodFactsProvider
from nutrition_engine.adapters.openai_nutrition_provider import (
    OpenAINutritionProvider,
)
from nutrition_engine.adapters.supabase_catalog_repository import (
    SupabaseCatalogRepository,
)
from nutrition_engine.adapters.supabase_goal_repository import SupabaseGoalRepository
from nutrition_engine.adapters.supabase_meal_repository import SupabaseMealRepository
from nutrition_engine.config import Settings, parse_provider_order
from nutrition_engine.services.cache import InMemoryCache
from nutrition_engine.services.catalog import CatalogService
from nutrition_engine.services.goals import GoalService
from nutrition_engine.services.imports import NutritionImportService
from nutrition_engine.services.meals import MealService
from nutrition_engine.services.providers import DataProvider, ProviderRegistry


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    provider_registry: ProviderRegistry
    catalog_service: CatalogService
    import_service: NutritionImportService
    meal_service: MealService
    goal_service: GoalService
    close_resources: Callable[[], Awaitable[None]]


def order_providers(
    providers: list[DataProvider], preferred: list[str]
) -> list[DataProvider]:
    """Sort providers by preference; unlisted providers keep their order at the end."""
    rank = {name: index for index, name in enumerate(preferred)}
    return sorted(providers, key=lambda provider: rank.get(provider.name, len(rank)))


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    lookup_cache = InMemoryCache()
    catalog_service = CatalogService(SupabaseCatalogRepository(supabase_client))
    goal_service = GoalService(SupabaseGoalRepository(supabase_client))
    meal_service = MealService(
        repository=SupabaseMealRepository(supabase_client),
        catalog=catalog_service,
        goals=goal_service,
    )

    off_provider = OpenFoodFactsProvider.create(
        base_url=resolved_settings.off_base_url,
        user_agent=resolved_settings.off_user_agent,
        cache=lookup_cache,
        cache_ttl_seconds=resolved_settings.lookup_cache_ttl_seconds,
        timeout_seconds=resolved_settings.provider_timeout_seconds,
    )
    fdc_client = (
        HttpxFdcClient.create(
            api_key=resolved_settings.fdc_api_key,
            base_url=resolved_settings.fdc_base_url,
            timeout_seconds=resolved_settings.provider_timeout_seconds,
        )
        if resolved_settings.fdc_api_key
        else None
    )
    fdc_provider = FdcNutritionProvider(
        client=fdc_client,
        cache=lookup_cache,
        cache_ttl_seconds=resolved_settings.lookup_cache_ttl_seconds,
    )
    openai_provider = OpenAINutritionProvider.create(
        api_key=resolved_settings.openai_api_key,
        model=resolved_settings.openai_model,
        store=resolved_settings.openai_store,
    )
    registry = ProviderRegistry(
        order_providers(
            [openai_provider, off_provider, fdc_provider],
            parse_provider_order(resolved_settings.provider_order),
        )
    )
    import_service = NutritionImportService(
        catalog=catalog_service,
        registry=registry,
        timeout_seconds=resolved_settings.provider_timeout_seconds,
        retry_attempts=resolved_settings.provider_retry_attempts,
        retry_delay_seconds=resolved_settings.provider_retry_delay_seconds,
    )

    async def close_resources() -> None:
        await off_provider.close()
        if fdc_client is not None:
            await fdc_client.close()
        if openai_provider.client is not None:
            await openai_provider.client.close()

    return AppContainer(
        settings=resolved_settings,
        provider_registry=registry,
        catalog_service=catalog_service,
        import_service=import_service,
        meal_service=meal_service,
        goal_service=goal_service,
        close_resources=close_resources,
    )

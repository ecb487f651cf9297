"""Nutrition data providers and their registry."""

from dataclasses import dataclass
from typing import Literal, Protocol

from nutrition_engine.domain.errors import NotFoundError, ProviderUnavailableError
from nutrition_engine.domain.nutrition import ProviderNutritionResult

ProviderKind = Literal["estimation", "lookup"]
ProviderDataType = Literal["nutrition", "workout"]


@dataclass(frozen=True)
class NutritionDataContext:
    """What a provider is asked to describe."""

    food_name: str
    serving_size: float
    serving_unit: str
    food_brand: str | None = None
    food_variant: str | None = None
    serving_name: str | None = None
    extra_context: str | None = None

    def search_terms(self) -> str:
        """Join the food descriptors into a lookup query."""
        parts = [self.food_name, self.food_brand, self.food_variant, self.extra_context]
        return " ".join(part for part in parts if part).strip()


class DataProvider(Protocol):
    """A source of nutrition results.

    Estimation providers return one result for the exact requested serving.
    Lookup providers return candidates ordered by relevance, usually with the
    serving size their values describe.
    """

    name: str
    display_name: str
    kind: ProviderKind
    data_type: ProviderDataType

    def is_available(self) -> bool:
        """Return False when credentials or config are missing."""

    async def fetch(
        self, context: NutritionDataContext
    ) -> list[ProviderNutritionResult]:
        """Fetch nutrition results for the context."""


@dataclass
class ProviderRegistry:
    """Looks up configured providers by name or data type."""

    providers: list[DataProvider]

    def get_all(self) -> list[DataProvider]:
        return list(self.providers)

    def get_available(self) -> list[DataProvider]:
        return [provider for provider in self.providers if provider.is_available()]

    def get(self, name: str) -> DataProvider:
        """Return a provider by name, failing if it is unknown or unconfigured."""
        provider = next((p for p in self.providers if p.name == name), None)
        if provider is None:
            raise NotFoundError(f'Provider "{name}" not found')
        if not provider.is_available():
            raise ProviderUnavailableError(
                f'Provider "{name}" is not configured or unavailable'
            )
        return provider

    def get_default(self, data_type: ProviderDataType = "nutrition") -> DataProvider:
        """Return the first available provider for ``data_type``."""
        for provider in self.get_available():
            if provider.data_type == data_type:
                return provider
        raise ProviderUnavailableError(f"No {data_type} providers are configured")

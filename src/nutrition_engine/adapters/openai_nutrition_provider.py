"""OpenAI Responses API nutrition estimation provider."""

import json
import logging
from dataclasses import dataclass

from openai import AsyncOpenAI
from pydantic import BaseModel, Field

from nutrition_engine.domain.nutrition import (
    Confidence,
    DataKind,
    ProviderNutritionResult,
)
from nutrition_engine.services.providers import NutritionDataContext

_NULLABLE_NUMBER = {"anyOf": [{"type": "number", "minimum": 0}, {"type": "null"}]}

ESTIMATE_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "calories": {"type": "number", "minimum": 0, "description": "kcal"},
        "protein": {"type": "number", "minimum": 0, "description": "grams"},
        "carbs": {"type": "number", "minimum": 0, "description": "grams"},
        "fat": {"type": "number", "minimum": 0, "description": "grams"},
        "saturated_fat": _NULLABLE_NUMBER,
        "trans_fat": _NULLABLE_NUMBER,
        "fiber": _NULLABLE_NUMBER,
        "sugar": _NULLABLE_NUMBER,
        "sodium": _NULLABLE_NUMBER,
        "cholesterol": _NULLABLE_NUMBER,
        "confidence": {"type": "string", "enum": ["low", "medium", "high"]},
        "notes": {"anyOf": [{"type": "string"}, {"type": "null"}]},
    },
    "required": [
        "calories",
        "protein",
        "carbs",
        "fat",
        "saturated_fat",
        "trans_fat",
        "fiber",
        "sugar",
        "sodium",
        "cholesterol",
        "confidence",
        "notes",
    ],
    "additionalProperties": False,
}

SYSTEM_PROMPT = (
    "You are a nutrition expert. Estimate nutrition facts for the food described "
    "by the user. Values must be for the exact serving size specified, not per "
    "100 g. Sodium and cholesterol are in milligrams, everything else in grams. "
    "Use null for values you cannot estimate and set confidence honestly."
)

_logger = logging.getLogger(__name__)


class NutritionEstimate(BaseModel):
    """Structured output returned by the model."""

    calories: float = Field(ge=0)
    protein: float = Field(ge=0)
    carbs: float = Field(ge=0)
    fat: float = Field(ge=0)
    saturated_fat: float | None = Field(default=None, ge=0)
    trans_fat: float | None = Field(default=None, ge=0)
    fiber: float | None = Field(default=None, ge=0)
    sugar: float | None = Field(default=None, ge=0)
    sodium: float | None = Field(default=None, ge=0)
    cholesterol: float | None = Field(default=None, ge=0)
    confidence: Confidence
    notes: str | None = None


@dataclass
class OpenAINutritionProvider:
    """Estimates nutrition for the exact requested serving with an LLM."""

    client: AsyncOpenAI | None
    model: str
    store: bool = False

    name = "openai"
    display_name = "AI Estimation (OpenAI)"
    kind = "estimation"
    data_type = "nutrition"

    @classmethod
    def create(
        cls, api_key: str | None, model: str, store: bool = False
    ) -> "OpenAINutritionProvider":
        """Create a provider; without an API key it reports itself unavailable."""
        client = AsyncOpenAI(api_key=api_key) if api_key else None
        return cls(client=client, model=model, store=store)

    def is_available(self) -> bool:
        return self.client is not None

    async def fetch(
        self, context: NutritionDataContext
    ) -> list[ProviderNutritionResult]:
        """Return a single estimate for the context's serving."""
        if self.client is None:
            raise RuntimeError(
                "OpenAI provider is not configured (missing OPENAI_API_KEY)"
            )
        _logger.debug("Estimating nutrition via OpenAI (%s)", self.model)
        response = await self.client.responses.create(
            model=self.model,
            input=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_prompt(context)},
            ],
            text={
                "format": {
                    "type": "json_schema",
                    "name": "nutrition_estimate",
                    "strict": True,
                    "schema": ESTIMATE_SCHEMA,
                }
            },
            store=self.store,
        )
        output_text = response.output_text
        if not output_text:
            raise RuntimeError("OpenAI returned an empty response")
        estimate = NutritionEstimate.model_validate(json.loads(output_text))
        return [_to_result(estimate)]


def build_prompt(context: NutritionDataContext) -> str:
    """Describe the food and serving for the model."""
    lines = [f"Food: {context.food_name}"]
    if context.food_brand:
        lines.append(f"Brand: {context.food_brand}")
    if context.food_variant:
        lines.append(f"Variant: {context.food_variant}")
    if context.serving_name:
        lines.append(f"Serving name: {context.serving_name}")
    lines.append(f"Serving size: {context.serving_size} {context.serving_unit}")
    if context.extra_context:
        lines.append(f"Additional context: {context.extra_context}")
    return "\n".join(lines)


def _to_result(estimate: NutritionEstimate) -> ProviderNutritionResult:
    source_label = (
        f"AI Estimate - {estimate.notes}" if estimate.notes else "AI Estimate (OpenAI)"
    )
    # No serving pair: the values describe the requested serving exactly.
    return ProviderNutritionResult(
        data_kind=DataKind.ESTIMATED,
        confidence=estimate.confidence,
        source_label=source_label,
        **estimate.model_dump(exclude={"confidence", "notes"}),
    )

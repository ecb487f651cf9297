"""Import nutrition from providers onto catalog servings."""

import asyncio
import logging
from collections.abc import Awaitable
from dataclasses import dataclass
from uuid import UUID

from nutrition_engine.domain.catalog import Serving, ServingPatch
from nutrition_engine.domain.errors import (
    ImportCancelledError,
    ProviderFailure,
    ValidationError,
)
from nutrition_engine.domain.nutrition import ProviderNutritionResult
from nutrition_engine.services.catalog import CatalogService
from nutrition_engine.services.patches import build_patch
from nutrition_engine.services.providers import (
    DataProvider,
    NutritionDataContext,
    ProviderDataType,
    ProviderKind,
    ProviderRegistry,
)
from nutrition_engine.services.reconcile import (
    ReconcileOutcome,
    Reconciliation,
    reconcile,
)

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImportResponse:
    """Candidate results fetched from one provider."""

    provider: str
    provider_kind: ProviderKind
    provider_data_type: ProviderDataType
    results: list[ProviderNutritionResult]


@dataclass(frozen=True)
class ImportPlan:
    """What applying a result would write, and any unit advisory."""

    reconciliation: Reconciliation
    patch: ServingPatch

    @property
    def warning(self) -> str | None:
        return self.reconciliation.warning


@dataclass(frozen=True)
class AppliedImport:
    """Serving after a result was applied."""

    serving: Serving
    plan: ImportPlan

    @property
    def warning(self) -> str | None:
        return self.plan.warning


def plan_import(serving: Serving, result: ProviderNutritionResult) -> ImportPlan:
    """Reconcile a result against a serving and build the patch for it."""
    reconciliation = reconcile(result, serving.size, serving.unit)
    patch = build_patch(reconciliation.fact, reconciliation.unit, result.source_label)
    return ImportPlan(reconciliation=reconciliation, patch=patch)


@dataclass
class NutritionImportService:
    """Fetches provider results and applies a chosen one to a serving."""

    catalog: CatalogService
    registry: ProviderRegistry
    timeout_seconds: float = 15
    retry_attempts: int = 1
    retry_delay_seconds: float = 0.3

    def build_context(
        self, serving_id: UUID, extra_context: str | None = None
    ) -> NutritionDataContext:
        """Describe a stored serving for providers."""
        serving, food = self.catalog.get_serving_with_food(serving_id)
        return NutritionDataContext(
            food_name=food.name,
            food_brand=food.brand,
            food_variant=food.variant,
            serving_name=serving.name,
            serving_size=serving.size,
            serving_unit=serving.unit,
            extra_context=extra_context or None,
        )

    async def fetch_results(
        self,
        serving_id: UUID,
        provider_name: str | None = None,
        extra_context: str | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> ImportResponse:
        """Fetch candidate results without modifying the serving.

        Setting ``cancel_event`` while the fetch is in flight discards it and
        raises ``ImportCancelledError``.
        """
        context = self.build_context(serving_id, extra_context)
        provider = (
            self.registry.get(provider_name)
            if provider_name
            else self.registry.get_default("nutrition")
        )
        results = await _run_cancellable(
            self._fetch_with_retry(provider, context), cancel_event
        )
        return ImportResponse(
            provider=provider.name,
            provider_kind=provider.kind,
            provider_data_type=provider.data_type,
            results=results,
        )

    def preview(self, serving_id: UUID, result: ProviderNutritionResult) -> ImportPlan:
        """Return the patch a result would produce, without writing it."""
        return plan_import(self.catalog.get_serving(serving_id), result)

    def apply_result(
        self,
        serving_id: UUID,
        result: ProviderNutritionResult,
        cancel_event: asyncio.Event | None = None,
    ) -> AppliedImport:
        """Write a reconciled result onto the serving in a single update."""
        plan = self.preview(serving_id, result)
        if cancel_event is not None and cancel_event.is_set():
            raise ImportCancelledError("Import cancelled before apply")
        serving = self.catalog.apply_patch(serving_id, plan.patch)
        outcome = plan.reconciliation.outcome
        if outcome is ReconcileOutcome.UNIT_OVERRIDE:
            _logger.info(
                "Nutrition import unit override: serving_id=%s unit=%s",
                serving_id,
                plan.patch.unit,
            )
        elif outcome is ReconcileOutcome.SCALED:
            _logger.info(
                "Nutrition import scaled: serving_id=%s from=%g%s to=%g%s",
                serving_id,
                result.result_serving_size,
                result.result_serving_unit,
                serving.size,
                serving.unit,
            )
        return AppliedImport(serving=serving, plan=plan)

    async def import_and_apply(  # noqa: PLR0913
        self,
        serving_id: UUID,
        provider_name: str | None = None,
        extra_context: str | None = None,
        result_index: int = 0,
        cancel_event: asyncio.Event | None = None,
    ) -> AppliedImport:
        """Fetch results and apply the one at ``result_index``."""
        response = await self.fetch_results(
            serving_id,
            provider_name=provider_name,
            extra_context=extra_context,
            cancel_event=cancel_event,
        )
        if not 0 <= result_index < len(response.results):
            raise ValidationError(
                f"Provider {response.provider} returned {len(response.results)} "
                f"result(s); index {result_index} is out of range"
            )
        return self.apply_result(
            serving_id, response.results[result_index], cancel_event=cancel_event
        )

    async def _fetch_with_retry(
        self, provider: DataProvider, context: NutritionDataContext
    ) -> list[ProviderNutritionResult]:
        """Call the provider with a timeout and a short retry."""
        attempt = 0
        while True:
            try:
                return await asyncio.wait_for(
                    provider.fetch(context), timeout=self.timeout_seconds
                )
            except Exception as exc:
                attempt += 1
                _logger.warning(
                    "Provider %s fetch failed (attempt %s/%s, status=%s): %s",
                    provider.name,
                    attempt,
                    self.retry_attempts + 1,
                    _status_code_from_exception(exc),
                    exc,
                )
                if attempt > self.retry_attempts:
                    raise ProviderFailure(
                        f"{provider.display_name} is temporarily unavailable. "
                        "Please try again later."
                    ) from exc
                await asyncio.sleep(self.retry_delay_seconds)


async def _run_cancellable(
    operation: Awaitable[list[ProviderNutritionResult]],
    cancel_event: asyncio.Event | None,
) -> list[ProviderNutritionResult]:
    """Await ``operation`` unless ``cancel_event`` fires first."""
    if cancel_event is None:
        return await operation
    fetch_task = asyncio.ensure_future(operation)
    if cancel_event.is_set():
        fetch_task.cancel()
        await asyncio.gather(fetch_task, return_exceptions=True)
        raise ImportCancelledError("Import cancelled")
    cancel_task = asyncio.ensure_future(cancel_event.wait())
    try:
        await asyncio.wait(
            {fetch_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED
        )
    except asyncio.CancelledError:
        fetch_task.cancel()
        raise
    finally:
        cancel_task.cancel()
    if cancel_event.is_set():
        fetch_task.cancel()
        await asyncio.gather(fetch_task, return_exceptions=True)
        raise ImportCancelledError("Import cancelled")
    return fetch_task.result()


def _status_code_from_exception(exc: Exception) -> str:
    """Extract HTTP status code from an exception, if available."""
    response = getattr(exc, "response", None)
    status_code = getattr(response, "status_code", None)
    if isinstance(status_code, int):
        return str(status_code)
    return "n/a"

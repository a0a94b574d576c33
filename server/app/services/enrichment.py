# Enrichment fan-out: three research requests in parallel, each degrading
# independently to the placeholder sentence. Never raises.

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog
from opentelemetry import trace

from app.generation.retry import RetryController
from app.generation.types import Success, describe_failure
from app.pipeline.enrichment_prompts import build_enrichment_request
from app.pipeline.listing import EnrichmentKind, EnrichmentResult, ListingFacts

if TYPE_CHECKING:
    from app.config import Settings
    from app.services.metrics import PipelineMetrics

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)


class EnrichmentFanOut:
    """Runs one research request per EnrichmentKind concurrently."""

    def __init__(
        self,
        retry: RetryController,
        settings: Settings,
        metrics: PipelineMetrics | None = None,
    ) -> None:
        self._retry = retry
        self._settings = settings
        self._metrics = metrics

    async def enrich(self, facts: ListingFacts) -> list[EnrichmentResult]:
        """Exactly one result per kind, in EnrichmentKind order."""
        kinds = list(EnrichmentKind)
        with tracer.start_as_current_span("enrichment_fan_out"):
            results = await asyncio.gather(*(self._enrich_one(kind, facts) for kind in kinds))

        # gather preserves argument order; re-key by kind anyway so a
        # reordered branch can never land under the wrong heading.
        by_kind = {result.kind: result for result in results}
        ordered = [by_kind.get(kind, EnrichmentResult.fallback(kind)) for kind in kinds]

        degraded = [r.kind.value for r in ordered if r.degraded]
        logger.info(
            "enrichment_completed",
            address=facts.address,
            degraded=degraded,
            degraded_count=len(degraded),
        )
        return ordered

    async def _enrich_one(self, kind: EnrichmentKind, facts: ListingFacts) -> EnrichmentResult:
        try:
            request = build_enrichment_request(
                kind,
                facts,
                temperature=self._settings.enrichment_temperature,
                max_output_tokens=self._settings.enrichment_max_tokens,
            )
            outcome = await self._retry.with_retry(request)
        except Exception as e:
            return self._degrade(kind, f"{type(e).__name__}: {e}")

        if isinstance(outcome, Success):
            return EnrichmentResult(kind=kind, text=outcome.text)
        return self._degrade(kind, describe_failure(outcome))

    def _degrade(self, kind: EnrichmentKind, reason: str) -> EnrichmentResult:
        logger.warning("enrichment_degraded", kind=kind.value, reason=reason)
        if self._metrics:
            self._metrics.record_enrichment_fallback()
        return EnrichmentResult.fallback(kind)

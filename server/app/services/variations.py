# Variation fan-out: three tone-specific rewrites in parallel, all-or-nothing.
# The first failed tone cancels its siblings; no partial list is returned.

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog
from opentelemetry import trace

from app.exceptions import VariationGenerationFailedError
from app.generation.retry import RetryController
from app.generation.types import Success, describe_failure
from app.pipeline.listing import ListingContext, Tone, VariationResult
from app.pipeline.text_cleanup import strip_wrapping_quotes, within_length_band
from app.pipeline.variation_prompts import (
    VariationSpec,
    build_length_correction_request,
    build_variation_request,
    get_variation_spec,
)

if TYPE_CHECKING:
    from app.config import Settings
    from app.services.metrics import PipelineMetrics

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)


class VariationFanOut:
    """Generates one description per Tone from a shared ListingContext."""

    def __init__(
        self,
        retry: RetryController,
        settings: Settings,
        metrics: PipelineMetrics | None = None,
    ) -> None:
        self._retry = retry
        self._settings = settings
        self._metrics = metrics

    async def generate_variations(self, context: ListingContext) -> list[VariationResult]:
        """Exactly one result per tone, in Tone order.

        Raises VariationGenerationFailedError if any tone fails; the other
        in-flight tones are cancelled.
        """
        specs = [get_variation_spec(tone) for tone in Tone]
        with tracer.start_as_current_span("variation_fan_out"):
            try:
                async with asyncio.TaskGroup() as tg:
                    tasks = [tg.create_task(self._generate_one(spec, context)) for spec in specs]
            except* VariationGenerationFailedError as group:
                raise group.exceptions[0] from None

        return [task.result() for task in tasks]

    async def _generate_one(self, spec: VariationSpec, context: ListingContext) -> VariationResult:
        request = build_variation_request(
            spec, context, max_output_tokens=self._settings.variation_max_tokens
        )
        outcome = await self._retry.with_retry(request)
        if not isinstance(outcome, Success):
            raise VariationGenerationFailedError(spec.tone.value, describe_failure(outcome))

        text = strip_wrapping_quotes(outcome.text)
        if not text:
            raise VariationGenerationFailedError(spec.tone.value, "empty after cleanup")
        if self._settings.length_correction_enabled and not within_length_band(
            text, self._settings.length_min_chars, self._settings.length_max_chars
        ):
            text = await self._correct_length(spec.tone, text)

        logger.info("variation_generated", tone=spec.tone.value, char_count=len(text))
        return VariationResult(tone=spec.tone, text=text)

    async def _correct_length(self, tone: Tone, draft: str) -> str:
        """One copy-editor pass toward the target band. Keeps the draft on any failure."""
        logger.info("variation_length_correction", tone=tone.value, char_count=len(draft))
        if self._metrics:
            self._metrics.record_length_correction()

        request = build_length_correction_request(
            draft,
            tone,
            min_chars=self._settings.length_min_chars,
            max_output_tokens=self._settings.variation_max_tokens,
        )
        outcome = await self._retry.with_retry(request)
        if not isinstance(outcome, Success):
            logger.warning(
                "variation_length_correction_failed",
                tone=tone.value,
                reason=describe_failure(outcome),
            )
            return draft

        corrected = strip_wrapping_quotes(outcome.text)
        return corrected or draft

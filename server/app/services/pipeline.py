# Core rewrite orchestrator: validate → credits → enrich → generate → commit → notify.
# Enrichment degrades per kind; any failed variation fails the whole request.


import asyncio
import time

import structlog
from opentelemetry import trace

from app.config import Settings
from app.exceptions import (
    CreditLedgerError,
    ListingRewriteError,
    ListingValidationError,
    PipelineTimeoutError,
)
from app.pipeline.listing import ListingContext, ListingFacts, PipelineOutcome, VariationResult
from app.schemas import RewriteRequest
from app.services.credits import CreditLedger, CreditReservation
from app.services.enrichment import EnrichmentFanOut
from app.services.metrics import PipelineMetrics
from app.services.notifications import LeadNotification, NotificationWebhook
from app.services.variations import VariationFanOut

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)


class PipelineOrchestrator:
    """Orchestrates one listing rewrite: enrichment → variations → side effects."""

    def __init__(
        self,
        enrichment: EnrichmentFanOut,
        variations: VariationFanOut,
        ledger: CreditLedger,
        notifier: NotificationWebhook | None,
        settings: Settings,
        metrics: PipelineMetrics | None = None,
    ) -> None:
        self._enrichment = enrichment
        self._variations = variations
        self._ledger = ledger
        self._notifier = notifier
        self._settings = settings
        self._metrics = metrics
        # Strong refs so the event loop does not GC in-flight notifications
        self._background: set[asyncio.Task[None]] = set()

    async def run(self, request: RewriteRequest, user_id: str | None = None) -> PipelineOutcome:
        """Full rewrite pipeline. Raises ListingRewriteError subclasses."""
        start = time.perf_counter()
        with tracer.start_as_current_span("listing_rewrite") as span:
            span.set_attribute("authenticated", user_id is not None)
            try:
                outcome = await self._run_stages(request, user_id, span)
            except ListingRewriteError as e:
                span.set_attribute("failure_category", e.category)
                self._record(start, e.category)
                raise
            except Exception:
                span.set_attribute("failure_category", "internal")
                self._record(start, "internal")
                raise

        self._record(start, None)
        return outcome

    async def _generate_with_deadline(self, facts: ListingFacts) -> list[VariationResult]:
        """Enrich then generate, under the optional deadline.

        Finalizing runs outside the deadline: once variations exist the
        request completes.
        """
        timeout = self._settings.pipeline_timeout_seconds
        if timeout <= 0:
            return await self._generate(facts)
        try:
            async with asyncio.timeout(timeout):
                return await self._generate(facts)
        except TimeoutError:
            raise PipelineTimeoutError(timeout) from None

    async def _generate(self, facts: ListingFacts) -> list[VariationResult]:
        # ── enriching ────────────────────────────────────────────────────
        logger.info("rewrite_started", address=facts.address, stage="enriching")
        enrichments = await self._enrichment.enrich(facts)
        context = ListingContext(facts=facts, enrichments=tuple(enrichments))

        # ── generating ───────────────────────────────────────────────────
        logger.info("rewrite_generating", address=facts.address, stage="generating")
        return await self._variations.generate_variations(context)

    async def _run_stages(
        self, request: RewriteRequest, user_id: str | None, span: trace.Span
    ) -> PipelineOutcome:
        # ── validating ───────────────────────────────────────────────────
        facts = request.to_facts()
        missing = facts.missing_required()
        if missing:
            raise ListingValidationError(missing)
        span.set_attribute("address", facts.address)

        # ── credit_check ─────────────────────────────────────────────────
        reservation: CreditReservation | None = None
        if user_id is not None:
            with tracer.start_as_current_span("credit_check"):
                reservation = await self._ledger.check_and_reserve(user_id)
            logger.info("credits_reserved", user_id=user_id, balance=reservation.balance)

        variations = await self._generate_with_deadline(facts)

        # ── finalizing ───────────────────────────────────────────────────
        credits_remaining = await self._commit_credits(reservation)
        outcome = PipelineOutcome(
            address=facts.address,
            variations=tuple(variations),
            credits_remaining=credits_remaining,
        )

        if request.email:
            self._notify_in_background(
                LeadNotification(
                    email=request.email,
                    facts=facts,
                    variations=outcome.variations,
                    opt_in_tips=request.opt_in_tips,
                )
            )
        else:
            logger.info("notifications_skipped", reason="no email")

        logger.info(
            "rewrite_completed",
            address=facts.address,
            char_counts=outcome.char_counts,
            credits_remaining=credits_remaining,
        )
        return outcome

    async def _commit_credits(self, reservation: CreditReservation | None) -> int | None:
        if reservation is None:
            return None
        try:
            with tracer.start_as_current_span("credit_commit"):
                return await self._ledger.commit(reservation)
        except CreditLedgerError as e:
            logger.error(
                "credit_commit_failed",
                user_id=reservation.user_id,
                balance=reservation.balance,
                error=str(e),
            )
        except Exception:
            # Variations already exist; a broken ledger never fails the request
            logger.error(
                "credit_commit_failed",
                user_id=reservation.user_id,
                balance=reservation.balance,
                exc_info=True,
            )
        if self._metrics:
            self._metrics.record_credit_commit_failure()
        return None

    def _notify_in_background(self, lead: LeadNotification) -> None:
        if self._notifier is None:
            return
        notifier = self._notifier

        async def _dispatch() -> None:
            try:
                with tracer.start_as_current_span("notifications"):
                    await notifier.dispatch_all(lead)
            except Exception:
                logger.warning("notification_dispatch_failed", email=lead.email, exc_info=True)

        task = asyncio.create_task(_dispatch())
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    @property
    def pending_notifications(self) -> int:
        return len(self._background)

    async def drain(self) -> None:
        """Wait for in-flight notifications. Called on shutdown."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    def _record(self, start: float, failure_category: str | None) -> None:
        elapsed_ms = round((time.perf_counter() - start) * 1000, 1)
        if failure_category is not None:
            logger.info("rewrite_failed", category=failure_category, time_ms=elapsed_ms)
        if self._metrics:
            self._metrics.record_request(elapsed_ms, failure_category=failure_category)


# Bounded-attempt exponential backoff over a GenerationBackend.
# Rate limits wait base * 2^attempt, or the server hint if larger (capped at
# max_hint). Transient failures wait the shorter transient schedule; fatal
# failures stop at once.

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

import structlog

from app.generation.protocol import GenerationBackend
from app.generation.types import (
    FatalError,
    GenerationOutcome,
    GenerationRequest,
    RateLimited,
    Success,
    describe_failure,
    outcome_kind,
)

if TYPE_CHECKING:
    from app.config import Settings

logger = structlog.get_logger(__name__)

SleepFn = Callable[[float], Awaitable[None]]


class RetryController:
    """Single retry policy shared by every generation call site.

    Ordinary failures come back as outcome values; callers decide what an
    exhausted budget means (placeholder text for enrichment, a fatal error
    for variations).
    """

    def __init__(
        self,
        backend: GenerationBackend,
        *,
        max_attempts: int = 3,
        base_delay: float = 0.5,
        transient_delay: float = 0.2,
        max_hint: float = 30.0,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        self._backend = backend
        self._max_attempts = max_attempts
        self._base_delay = base_delay
        self._transient_delay = transient_delay
        self._max_hint = max_hint
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls, backend: GenerationBackend, settings: Settings, sleep: SleepFn = asyncio.sleep
    ) -> RetryController:
        return cls(
            backend,
            max_attempts=settings.retry_max_attempts,
            base_delay=settings.retry_base_delay_seconds,
            transient_delay=settings.retry_transient_delay_seconds,
            max_hint=settings.retry_max_hint_seconds,
            sleep=sleep,
        )

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def backoff_delay(self, outcome: GenerationOutcome, attempt: int) -> float:
        """Seconds to wait after ``attempt`` (0-based) produced ``outcome``."""
        if isinstance(outcome, RateLimited):
            delay = self._base_delay * 2**attempt
            if outcome.retry_after is not None:
                delay = max(delay, min(outcome.retry_after, self._max_hint))
            return delay
        return self._transient_delay * 2**attempt

    async def with_retry(
        self, request: GenerationRequest, max_attempts: int | None = None
    ) -> GenerationOutcome:
        """Run ``request`` until Success, a FatalError, or the attempt budget is spent."""
        attempts = self._max_attempts if max_attempts is None else max_attempts
        if attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {attempts}")

        outcome: GenerationOutcome = FatalError("no attempt made")
        for attempt in range(attempts):
            outcome = await self._backend.generate(request)

            if isinstance(outcome, Success):
                if attempt:
                    logger.info("generation_recovered", label=request.label, attempts=attempt + 1)
                return outcome

            if isinstance(outcome, FatalError):
                logger.error(
                    "generation_fatal",
                    label=request.label,
                    attempt=attempt + 1,
                    cause=outcome.cause,
                )
                return outcome

            if attempt + 1 == attempts:
                break

            delay = self.backoff_delay(outcome, attempt)
            event = (
                "generation_rate_limited"
                if isinstance(outcome, RateLimited)
                else "generation_transient_error"
            )
            logger.warning(
                event,
                label=request.label,
                attempt=attempt + 1,
                max_attempts=attempts,
                reason=describe_failure(outcome),
                retry_in_s=round(delay, 3),
            )
            await self._sleep(delay)

        logger.error(
            "generation_retries_exhausted",
            label=request.label,
            attempts=attempts,
            last_outcome=outcome_kind(outcome),
            reason=describe_failure(outcome),
        )
        return outcome

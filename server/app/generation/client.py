# Single-attempt client for the external generation service (Messages API).
# Maps HTTP/transport results into GenerationOutcome variants; never raises for them.

from __future__ import annotations

import math
import time
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import TYPE_CHECKING, Any

import httpx
import structlog

from app.generation.types import (
    FatalError,
    GenerationOutcome,
    GenerationRequest,
    RateLimited,
    Success,
    TransientError,
    outcome_kind,
)

if TYPE_CHECKING:
    from app.config import Settings
    from app.services.metrics import PipelineMetrics

logger = structlog.get_logger(__name__)


class GenerationClient:
    """Issues one POST per call to the generation service.

    The httpx.AsyncClient is owned by the app lifespan and shared across
    requests; this class never closes it.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        settings: Settings,
        metrics: PipelineMetrics | None = None,
    ) -> None:
        self._http = http
        self._settings = settings
        self._metrics = metrics

    async def generate(self, request: GenerationRequest) -> GenerationOutcome:
        start = time.perf_counter()
        outcome, status = await self._call(request)
        latency_ms = round((time.perf_counter() - start) * 1000, 1)

        logger.info(
            "generation_attempt_completed",
            label=request.label,
            outcome=outcome_kind(outcome),
            status=status,
            latency_ms=latency_ms,
        )
        if self._metrics:
            self._metrics.record_attempt(outcome_kind(outcome))
        return outcome

    def build_payload(self, request: GenerationRequest) -> dict[str, Any]:
        """Messages-format JSON body for one request."""
        payload: dict[str, Any] = {
            "model": self._settings.generation_model,
            "max_tokens": request.max_output_tokens,
            "temperature": request.temperature,
            "messages": [{"role": str(b.role), "content": b.text} for b in request.turns],
        }
        if request.system_text:
            payload["system"] = request.system_text
        return payload

    async def _call(self, request: GenerationRequest) -> tuple[GenerationOutcome, int | None]:
        api_key = self._settings.generation_api_key.get_secret_value()
        if not api_key:
            return FatalError("generation API key not configured"), None

        try:
            response = await self._http.post(
                self._settings.generation_api_url,
                json=self.build_payload(request),
                headers={
                    "x-api-key": api_key,
                    "anthropic-version": self._settings.generation_api_version,
                    "content-type": "application/json",
                },
                timeout=self._settings.generation_http_timeout_seconds,
            )
        except httpx.TransportError as e:
            # Timeouts, DNS, connection resets
            return TransientError(f"{type(e).__name__}: {e}"), None

        return self._classify(response), response.status_code

    def _classify(self, response: httpx.Response) -> GenerationOutcome:
        status = response.status_code
        if status == 429:
            return RateLimited(parse_retry_after(response.headers.get("retry-after")))
        if status >= 500:
            return TransientError(f"upstream status {status}")
        if status >= 400:
            return FatalError(f"upstream status {status}: {response.text[:200]}")

        try:
            body = response.json()
        except ValueError:
            return TransientError("upstream returned invalid JSON")

        text = extract_completion_text(body)
        if not text:
            return TransientError("upstream returned an empty completion")
        return Success(text)


def extract_completion_text(body: Any) -> str:
    """First text block of a Messages response, stripped. '' when absent."""
    if not isinstance(body, dict):
        return ""
    content = body.get("content")
    if not isinstance(content, list):
        return ""
    for block in content:
        if isinstance(block, dict) and isinstance(block.get("text"), str):
            return block["text"].strip()
    return ""


def parse_retry_after(value: str | None) -> float | None:
    """Parse a Retry-After header: delta-seconds or an HTTP-date."""
    if not value:
        return None
    value = value.strip()
    try:
        seconds = float(value)
    except ValueError:
        pass
    else:
        return max(0.0, seconds) if math.isfinite(seconds) else None
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=UTC)
    return max(0.0, (when - datetime.now(UTC)).total_seconds())

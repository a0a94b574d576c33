# ─────────────────────────────────────────────────────────────────────────────
# Health Check Routes — liveness, readiness, metrics
# ─────────────────────────────────────────────────────────────────────────────
#   /health        → Liveness probe. "Is the process alive?" Near-zero cost.
#                    Returns 200 always.
#
#   /health/ready  → Readiness probe. "Can it serve traffic?"
#                    Requires a generation API key. Returns 503 otherwise.
#
#   /metrics       → Pipeline counters and latency percentiles (JSON).
# ─────────────────────────────────────────────────────────────────────────────

from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.config import Settings
from app.dependencies import get_metrics, get_settings_dep
from app.schemas import LivenessResponse, ReadinessResponse
from app.services.metrics import PipelineMetrics

router = APIRouter()


@router.get("/health", response_model=LivenessResponse)
async def liveness() -> LivenessResponse:
    """Liveness probe — is the process alive? No deps, no I/O."""
    return LivenessResponse(status="ok")


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness(settings: Settings = Depends(get_settings_dep)) -> JSONResponse:
    """Readiness probe — can this instance serve rewrites?

    Without a generation API key every upstream call is fatal, so the
    instance reports 503. A missing notification webhook only degrades
    side effects and is reported but not gating.
    """
    generation_configured = bool(settings.generation_api_key.get_secret_value())
    response = ReadinessResponse(
        status="ready" if generation_configured else "not_ready",
        generation_configured=generation_configured,
        notifications_configured=bool(settings.notification_webhook_url),
        credit_backend=settings.credit_backend,
    )
    return JSONResponse(
        status_code=200 if generation_configured else 503,
        content=response.model_dump(),
    )


@router.get("/metrics")
async def metrics_endpoint(
    metrics: PipelineMetrics = Depends(get_metrics),
) -> dict[str, Any]:
    """Pipeline performance metrics — outcomes, fallbacks, latency."""
    return metrics.to_dict()

# ─────────────────────────────────────────────────────────────────────────────
# Dependency Injection — FastAPI Depends() providers
# ─────────────────────────────────────────────────────────────────────────────
# State flows: lifespan creates → app.state stores → Depends() injects.
# No global variables. Every dependency is explicit in endpoint signatures.
# ─────────────────────────────────────────────────────────────────────────────


from fastapi import Request

from app.config import Settings
from app.services.metrics import PipelineMetrics
from app.services.pipeline import PipelineOrchestrator


def get_settings_dep(request: Request) -> Settings:
    """Inject Settings into endpoints via Depends()."""
    return request.app.state.settings  # type: ignore[no-any-return]


def get_metrics(request: Request) -> PipelineMetrics:
    """Inject PipelineMetrics into endpoints via Depends()."""
    return request.app.state.metrics  # type: ignore[no-any-return]


def get_pipeline_orchestrator(request: Request) -> PipelineOrchestrator:
    """Inject PipelineOrchestrator into endpoints via Depends()."""
    return request.app.state.pipeline_orchestrator  # type: ignore[no-any-return]


def get_user_id(request: Request) -> str | None:
    """Caller identity from the X-User-Id header set by the gateway. None = anonymous."""
    user_id = request.headers.get("x-user-id", "").strip()
    return user_id or None

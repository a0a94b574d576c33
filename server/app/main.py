# FastAPI application factory with lifespan management.
# Entrypoint: uvicorn app.main:create_app --factory --host 0.0.0.0 --port 8080

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import httpx
import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from starlette.requests import Request
from starlette.responses import JSONResponse

from app.auth import APIKeyMiddleware
from app.config import Settings, get_settings
from app.exceptions import register_exception_handlers
from app.generation.client import GenerationClient
from app.generation.retry import RetryController
from app.logging_config import configure_logging
from app.middleware import RequestContextMiddleware
from app.rate_limit import limiter
from app.routes import debug, health, rewrite
from app.routes import prometheus as prometheus_routes
from app.services.credits import CreditLedger, InMemoryCreditLedger, WebhookCreditLedger
from app.services.enrichment import EnrichmentFanOut
from app.services.metrics import PipelineMetrics
from app.services.notifications import NotificationWebhook
from app.services.pipeline import PipelineOrchestrator
from app.services.variations import VariationFanOut

if TYPE_CHECKING:
    from opentelemetry.sdk.trace import TracerProvider

logger = structlog.get_logger(__name__)

_DEFAULT_RETRY_AFTER_S = 60


def _limit_window_seconds(exc: RateLimitExceeded) -> int:
    """Window length of the limit that was hit, for the Retry-After header."""
    item = getattr(getattr(exc, "limit", None), "limit", None)
    if item is None:
        return _DEFAULT_RETRY_AFTER_S
    return int(item.get_expiry())


async def _rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """HTTP 429 in the same JSON shape as ListingRewriteError responses."""
    retry_after = _limit_window_seconds(exc)
    logger.warning(
        "rate_limit_exceeded",
        path=request.url.path,
        limit=str(exc.detail),
        retry_after_s=retry_after,
    )
    return JSONResponse(
        status_code=429,
        content={
            "error": f"Rate limit exceeded: {exc.detail}",
            "type": "RateLimitExceeded",
            "category": "rate_limited",
        },
        headers={"Retry-After": str(retry_after)},
    )


def _configure_tracing(exporter: str) -> "TracerProvider | None":
    """Install a tracer provider for the pipeline spans. Only "console" is supported."""
    if exporter != "console":
        logger.warning("otel_exporter_unsupported", exporter=exporter)
        return None

    from opentelemetry import trace
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

    provider = TracerProvider()
    provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
    trace.set_tracer_provider(provider)
    logger.info("otel_configured", exporter=exporter)
    return provider


# ── Wiring ───────────────────────────────────────────────────────────────────


def build_credit_ledger(settings: Settings, http: httpx.AsyncClient) -> CreditLedger:
    """Pick the ledger backend named by CREDIT_BACKEND."""
    if settings.credit_backend == "webhook":
        if not settings.notification_webhook_url:
            logger.warning(
                "credit_webhook_not_configured",
                hint="Every authenticated request will be rejected with 402",
            )
        return WebhookCreditLedger(
            http,
            settings.notification_webhook_url,
            cache_ttl=settings.credit_cache_ttl_seconds,
        )
    return InMemoryCreditLedger(default_balance=settings.default_credits)


def build_orchestrator(
    settings: Settings,
    http: httpx.AsyncClient,
    metrics: PipelineMetrics,
    ledger: CreditLedger | None = None,
) -> PipelineOrchestrator:
    """Wire client → retry → fan-outs → orchestrator around one shared HTTP client."""
    client = GenerationClient(http, settings, metrics=metrics)
    retry = RetryController.from_settings(client, settings)
    return PipelineOrchestrator(
        enrichment=EnrichmentFanOut(retry, settings, metrics=metrics),
        variations=VariationFanOut(retry, settings, metrics=metrics),
        ledger=ledger if ledger is not None else build_credit_ledger(settings, http),
        notifier=NotificationWebhook(http, settings, metrics=metrics),
        settings=settings,
        metrics=metrics,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """One shared httpx client for the generation service, webhook and ledger."""
    settings = get_settings()
    tracer_provider = _configure_tracing(settings.otel_exporter) if settings.otel_exporter else None

    if not settings.generation_api_key.get_secret_value():
        logger.warning("generation_api_key_missing", hint="Set GENERATION_API_KEY")

    async with httpx.AsyncClient(timeout=settings.generation_http_timeout_seconds) as http:
        metrics = PipelineMetrics()
        orchestrator = build_orchestrator(settings, http, metrics)

        app.state.settings = settings
        app.state.metrics = metrics
        app.state.http_client = http
        app.state.pipeline_orchestrator = orchestrator
        logger.info(
            "startup_complete",
            model=settings.generation_model,
            credit_backend=settings.credit_backend,
            notifications=bool(settings.notification_webhook_url),
        )

        yield

        # In-flight notifications still need the HTTP client
        pending = orchestrator.pending_notifications
        await orchestrator.drain()
        logger.info("shutdown_complete", drained_notifications=pending)

    if tracer_provider is not None:
        tracer_provider.shutdown()


def _parse_origins(allowed_origins: str) -> list[str]:
    """Comma-separated CORS origins. Empty string → deny all."""
    origins = [origin.strip() for origin in allowed_origins.split(",") if origin.strip()]
    if not origins:
        logger.warning(
            "cors_no_origins_configured",
            hint="Set ALLOWED_ORIGINS. Cross-origin requests will be rejected.",
        )
    return origins


def create_app() -> FastAPI:
    """Application factory. Invoked by: uvicorn app.main:create_app --factory"""
    settings = get_settings()
    configure_logging(log_level=settings.log_level, json_output=settings.log_json)

    app = FastAPI(
        title="Listing Rewriter",
        description="Rewrites real-estate listing descriptions in three tones",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)  # type: ignore[arg-type]
    register_exception_handlers(app)

    # Starlette runs middleware in reverse order of registration:
    # CORS → APIKey → RequestContext → route
    app.add_middleware(RequestContextMiddleware)

    api_key = settings.api_key.get_secret_value()
    if api_key:
        app.add_middleware(APIKeyMiddleware, api_key=api_key)
        logger.info("api_key_auth_enabled")
    else:
        logger.warning("api_key_auth_disabled", reason="API_KEY not set")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_parse_origins(settings.allowed_origins),
        allow_methods=["POST", "GET", "OPTIONS"],
        allow_headers=["Content-Type", "X-API-Key", "X-User-Id", "X-Request-ID"],
        expose_headers=["X-Request-ID", "X-Response-Time-Ms"],
    )

    app.include_router(health.router, tags=["health"])
    app.include_router(prometheus_routes.router, tags=["metrics"])
    app.include_router(rewrite.router, tags=["rewrite"])
    if settings.enable_debug_routes:
        app.include_router(debug.router, prefix="/debug", tags=["debug"])

    return app

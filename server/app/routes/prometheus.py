# ─────────────────────────────────────────────────────────────────────────────
# Prometheus Metrics Endpoint — text exposition format
# ─────────────────────────────────────────────────────────────────────────────
# GET /metrics/prometheus → text/plain Prometheus format
# Bridges PipelineMetrics → prometheus-client gauges.
# ─────────────────────────────────────────────────────────────────────────────

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from prometheus_client import CollectorRegistry, Gauge, generate_latest

from app.dependencies import get_metrics
from app.services.metrics import PipelineMetrics

router = APIRouter()

# ── Prometheus metrics (custom registry to avoid default process metrics) ─────
# Gauges mirror the cumulative counters in PipelineMetrics; they are set from
# a snapshot on each scrape rather than incremented in the request path.

_registry = CollectorRegistry()

_requests_total = Gauge(
    "listing_rewrite_requests_total",
    "Rewrite requests finished, by outcome",
    ["outcome"],
    registry=_registry,
)

_upstream_attempts = Gauge(
    "listing_rewrite_upstream_attempts_total",
    "Generation service attempts, by outcome kind",
    ["kind"],
    registry=_registry,
)

_enrichment_fallbacks = Gauge(
    "listing_rewrite_enrichment_fallbacks_total",
    "Enrichments replaced by the placeholder text",
    registry=_registry,
)

_side_effect_failures = Gauge(
    "listing_rewrite_side_effect_failures_total",
    "Failed notifications and credit commits",
    ["effect"],
    registry=_registry,
)

_latency_ms = Gauge(
    "listing_rewrite_latency_ms",
    "Completed rewrite latency over the recent window",
    ["quantile"],
    registry=_registry,
)

_uptime_seconds = Gauge(
    "listing_rewrite_uptime_seconds",
    "Seconds since the metrics collector started",
    registry=_registry,
)


def _sync_metrics(metrics: PipelineMetrics) -> None:
    """Sync a PipelineMetrics snapshot into Prometheus gauges."""
    data = metrics.to_dict()

    _requests_total.labels(outcome="completed").set(data["completed_total"])
    for category, count in data["failures"].items():
        _requests_total.labels(outcome=category).set(count)

    for kind, count in data["upstream_attempts"].items():
        _upstream_attempts.labels(kind=kind).set(count)

    _enrichment_fallbacks.set(data["enrichment_fallbacks"])
    _side_effect_failures.labels(effect="notification").set(data["notification_failures"])
    _side_effect_failures.labels(effect="credit_commit").set(data["credit_commit_failures"])

    _latency_ms.labels(quantile="0.5").set(data["latency_p50_ms"])
    _latency_ms.labels(quantile="0.95").set(data["latency_p95_ms"])
    _uptime_seconds.set(data["uptime_seconds"])


@router.get("/metrics/prometheus")
async def prometheus_metrics(
    metrics: PipelineMetrics = Depends(get_metrics),
) -> Response:
    """Prometheus text exposition format metrics endpoint."""
    _sync_metrics(metrics)
    return Response(
        content=generate_latest(_registry),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )

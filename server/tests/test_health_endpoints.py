# ─────────────────────────────────────────────────────────────────────────────
# Health Endpoint Tests — liveness, readiness, metrics
# ─────────────────────────────────────────────────────────────────────────────
# Demonstrates: dirty-equals (declarative assertions)
# ─────────────────────────────────────────────────────────────────────────────

from dirty_equals import IsInstance, IsNonNegative, IsPartialDict

from app.config import Settings


class TestLivenessProbe:
    """GET /health — near-zero cost, always 200."""

    def test_returns_200(self, client):
        response = client.get("/health")
        assert response.status_code == 200

    def test_minimal_body(self, client):
        """Liveness should return only a status field — nothing heavy."""
        data = client.get("/health").json()
        assert data == {"status": "ok"}

    def test_has_request_id_header(self, client):
        response = client.get("/health")
        assert response.headers["X-Request-ID"]


class TestReadinessProbe:
    """GET /health/ready — requires a generation API key."""

    def test_returns_200_when_key_configured(self, client):
        response = client.get("/health/ready")
        assert response.status_code == 200
        assert response.json() == {
            "status": "ready",
            "generation_configured": True,
            "notifications_configured": False,
            "credit_backend": "memory",
        }

    def test_returns_503_without_generation_key(self, client):
        client.app.state.settings = Settings(generation_api_key="", _env_file=None)
        response = client.get("/health/ready")
        assert response.status_code == 503
        assert response.json()["status"] == "not_ready"


class TestMetricsEndpoint:
    """GET /metrics — JSON counters."""

    def test_fresh_metrics_shape(self, client):
        data = client.get("/metrics").json()
        assert data == IsPartialDict(
            requests_total=0,
            completed_total=0,
            failures=IsInstance(dict),
            upstream_attempts=IsInstance(dict),
            enrichment_fallbacks=0,
            uptime_seconds=IsNonNegative,
        )

    def test_counts_after_rewrite(self, client):
        body = {"address": "1 Elm St", "description": "Cute bungalow."}
        assert client.post("/listing-rewrite", json=body).status_code == 200
        data = client.get("/metrics").json()
        assert data["requests_total"] == 1
        assert data["completed_total"] == 1
        assert data["latency_p50_ms"] >= 0

    def test_counts_failure_category(self, client):
        assert client.post("/listing-rewrite", json={"address": "1 Elm St"}).status_code == 400
        assert client.get("/metrics").json()["failures"] == {"validation": 1}


class TestPrometheusEndpoint:
    def test_text_exposition(self, client):
        body = {"address": "1 Elm St", "description": "Cute bungalow."}
        client.post("/listing-rewrite", json=body)

        response = client.get("/metrics/prometheus")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        text = response.text
        assert 'listing_rewrite_requests_total{outcome="completed"}' in text
        assert "listing_rewrite_enrichment_fallbacks_total" in text
        assert "listing_rewrite_uptime_seconds" in text

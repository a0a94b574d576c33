# ─────────────────────────────────────────────────────────────────────────────
# Test Fixtures — shared across all tests
# ─────────────────────────────────────────────────────────────────────────────

import os

import pytest
from fastapi.testclient import TestClient

from app.config import Settings
from app.main import create_app
from app.rate_limit import limiter
from app.services.credits import InMemoryCreditLedger
from app.services.metrics import PipelineMetrics
from app.services.pipeline import PipelineOrchestrator
from fakes import RecordingNotifier, ScriptedBackend, SleepRecorder, build_test_orchestrator


@pytest.fixture(autouse=True)
def reset_rate_limiter() -> None:
    """The slowapi limiter is module-global; start every test with empty buckets."""
    limiter.reset()


@pytest.fixture
def test_settings() -> Settings:
    """Settings configured for testing — fake upstream key, no webhook."""
    return Settings(
        generation_api_key="test-key",
        notification_webhook_url="",
        enable_debug_routes=True,
        log_json=False,
        log_level="DEBUG",
        _env_file=None,
    )


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def backend() -> ScriptedBackend:
    return ScriptedBackend()


@pytest.fixture
def metrics() -> PipelineMetrics:
    return PipelineMetrics()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def ledger() -> InMemoryCreditLedger:
    return InMemoryCreditLedger({"user-1": 3, "broke": 0})


@pytest.fixture
def orchestrator(
    backend: ScriptedBackend,
    test_settings: Settings,
    sleep_recorder: SleepRecorder,
    ledger: InMemoryCreditLedger,
    notifier: RecordingNotifier,
    metrics: PipelineMetrics,
) -> PipelineOrchestrator:
    return build_test_orchestrator(
        backend,
        test_settings,
        sleep=sleep_recorder,
        ledger=ledger,
        notifier=notifier,
        metrics=metrics,
    )


@pytest.fixture
def client(
    test_settings: Settings, orchestrator: PipelineOrchestrator, metrics: PipelineMetrics
) -> TestClient:
    """FastAPI TestClient with mocked dependencies.

    We clear the settings cache and set env vars so create_app() uses
    test-safe settings, then replace app.state with the scripted
    orchestrator (the lifespan does not run without a `with` block).
    """
    from app.config import get_settings

    get_settings.cache_clear()

    env_overrides = {
        "LOG_JSON": "false",
        "LOG_LEVEL": "DEBUG",
        "ENABLE_DEBUG_ROUTES": "true",
        "ALLOWED_ORIGINS": "*",  # Tests need permissive CORS (prod defaults to deny-all)
    }
    for k, v in env_overrides.items():
        os.environ[k] = v

    try:
        app = create_app()
        client = TestClient(app)

        app.state.settings = test_settings
        app.state.metrics = metrics
        app.state.pipeline_orchestrator = orchestrator

        return client
    finally:
        for k in env_overrides:
            os.environ.pop(k, None)
        get_settings.cache_clear()

# ─────────────────────────────────────────────────────────────────────────────
# Settings — Pydantic v2 BaseSettings
# ─────────────────────────────────────────────────────────────────────────────


from functools import lru_cache
from typing import Literal

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Server configuration sourced from environment variables.

    Uses pydantic-settings v2 (separate package from pydantic).
    """

    model_config = SettingsConfigDict(env_prefix="", env_file=".env")

    port: int = 8080

    # ── Generation service ───────────────────────────────────────────────────
    # Access the key via settings.generation_api_key.get_secret_value().
    # Empty = readiness probe reports not_ready; every call maps to FatalError.
    generation_api_url: str = "https://api.anthropic.com/v1/messages"
    generation_api_key: SecretStr = SecretStr("")
    generation_api_version: str = "2023-06-01"
    generation_model: str = "claude-haiku-4-5-20251001"
    generation_http_timeout_seconds: float = 60.0

    # ── Retry / backoff ──────────────────────────────────────────────────────
    retry_max_attempts: int = 3
    retry_base_delay_seconds: float = 0.5  # rate-limited: base * 2^attempt
    retry_transient_delay_seconds: float = 0.2  # 5xx / empty completion
    retry_max_hint_seconds: float = 30.0  # cap on a server Retry-After hint

    # ── Enrichment ───────────────────────────────────────────────────────────
    enrichment_temperature: float = 0.3
    enrichment_max_tokens: int = 200

    # ── Variations ───────────────────────────────────────────────────────────
    variation_max_tokens: int = 600
    length_min_chars: int = 850
    length_max_chars: int = 1050
    length_correction_enabled: bool = True

    # 0 = no end-to-end deadline (retries alone bound the latency)
    pipeline_timeout_seconds: float = 0

    # ── Notifications (spreadsheet/email webhook) ────────────────────────────
    # Empty string = notifications and the webhook ledger are disabled.
    notification_webhook_url: str = ""
    notification_timeout_seconds: float = 10.0
    sender_email: str = "listings@example.com"
    admin_email: str = "admin@example.com"
    admin_timezone: str = "America/Los_Angeles"

    # ── Credits ──────────────────────────────────────────────────────────────
    credit_backend: Literal["memory", "webhook"] = "memory"
    default_credits: int = 5  # memory backend: balance for unseen users
    credit_cache_ttl_seconds: int = 60

    # ── Security ─────────────────────────────────────────────────────────────
    # SecretStr prevents the key from leaking into logs, repr(), or
    # model_dump(). Empty string = auth disabled (local dev / test).
    api_key: SecretStr = SecretStr("")

    # Comma-separated origins for CORS (e.g. "https://app.example.com,http://localhost:5173").
    # Empty string = deny all cross-origin requests (secure default).
    allowed_origins: str = ""

    # Rate limit on /listing-rewrite (slowapi format, e.g. "30/minute").
    rate_limit: str = "30/minute"

    # ── Feature flags ────────────────────────────────────────────────────────
    enable_debug_routes: bool = False  # Set ENABLE_DEBUG_ROUTES=true for local dev

    # ── Logging ──────────────────────────────────────────────────────────────
    log_level: str = "INFO"
    log_json: bool = True

    # ── Tracing ──────────────────────────────────────────────────────────────
    # "console" prints finished spans to stdout; empty = tracing off.
    otel_exporter: str = ""


@lru_cache
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()

# ─────────────────────────────────────────────────────────────────────────────
# Pipeline Metrics — thread-safe performance tracking
# ─────────────────────────────────────────────────────────────────────────────
# Tracks rewrite outcomes by category, enrichment fallbacks, upstream attempt
# outcomes, and latency percentiles. Exposed via GET /metrics.
#
# Bounded: latency history uses deque(maxlen=1000), auto-evicts oldest.
# ─────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

import threading
import time
from collections import Counter, deque
from dataclasses import dataclass, field
from typing import Any


@dataclass
class PipelineMetrics:
    """Thread-safe pipeline performance metrics."""

    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    requests_total: int = 0
    completed_total: int = 0
    enrichment_fallbacks: int = 0
    length_corrections: int = 0
    notification_failures: int = 0
    credit_commit_failures: int = 0

    # failure category → count (validation, credits, generation_failed, internal)
    _failures: Counter[str] = field(default_factory=Counter, repr=False)
    # upstream attempt outcome kind → count (success, rate_limited, ...)
    _attempts: Counter[str] = field(default_factory=Counter, repr=False)

    # Bounded -- only keeps last 1000 latencies, oldest auto-evicted
    _latency_history: deque[float] = field(default_factory=lambda: deque(maxlen=1000), repr=False)

    _start_time: float = field(default_factory=time.time, repr=False)

    def record_request(self, latency_ms: float, *, failure_category: str | None = None) -> None:
        """Record a finished pipeline run."""
        with self._lock:
            self.requests_total += 1
            if failure_category is None:
                self.completed_total += 1
                self._latency_history.append(latency_ms)
            else:
                self._failures[failure_category] += 1

    def record_attempt(self, outcome_kind: str) -> None:
        """Record one upstream generation attempt."""
        with self._lock:
            self._attempts[outcome_kind] += 1

    def record_enrichment_fallback(self) -> None:
        with self._lock:
            self.enrichment_fallbacks += 1

    def record_length_correction(self) -> None:
        with self._lock:
            self.length_corrections += 1

    def record_notification_failure(self) -> None:
        with self._lock:
            self.notification_failures += 1

    def record_credit_commit_failure(self) -> None:
        with self._lock:
            self.credit_commit_failures += 1

    def to_dict(self) -> dict[str, Any]:
        """Serialize metrics for the /metrics endpoint."""
        with self._lock:
            latencies = sorted(self._latency_history)
            n = len(latencies)
            return {
                "requests_total": self.requests_total,
                "completed_total": self.completed_total,
                "failures": dict(self._failures),
                "failures_total": sum(self._failures.values()),
                "upstream_attempts": dict(self._attempts),
                "enrichment_fallbacks": self.enrichment_fallbacks,
                "length_corrections": self.length_corrections,
                "notification_failures": self.notification_failures,
                "credit_commit_failures": self.credit_commit_failures,
                "latency_p50_ms": round(latencies[n // 2], 1) if n else 0,
                "latency_p95_ms": round(latencies[int(n * 0.95)], 1) if n else 0,
                "latency_mean_ms": round(sum(latencies) / n, 1) if n else 0,
                "uptime_seconds": int(time.time() - self._start_time),
            }

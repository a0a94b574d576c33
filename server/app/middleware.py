# ─────────────────────────────────────────────────────────────────────────────
# Request Middleware — request ID, caller ID, timing, structured logging
# ─────────────────────────────────────────────────────────────────────────────
# Binds request_id (and user_id when X-User-Id is present) into structlog
# contextvars so enrichment, variation and ledger events can be correlated.
# Probe and scrape paths are not logged.
# ─────────────────────────────────────────────────────────────────────────────


import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.get_logger(__name__)

_QUIET_PREFIXES = ("/health", "/metrics")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Per-request log context plus X-Request-ID / X-Response-Time-Ms headers."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:8]
        request.state.request_id = request_id

        context = {"request_id": request_id}
        user_id = request.headers.get("x-user-id", "").strip()
        if user_id:
            context["user_id"] = user_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(**context)
        start = time.perf_counter()
        try:
            response = await call_next(request)
            duration_ms = round((time.perf_counter() - start) * 1000, 1)

            if not request.url.path.startswith(_QUIET_PREFIXES):
                log = logger.warning if response.status_code >= 500 else logger.info
                log(
                    "request_completed",
                    method=request.method,
                    path=request.url.path,
                    status=response.status_code,
                    duration_ms=duration_ms,
                )
        finally:
            structlog.contextvars.unbind_contextvars(*context)

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time-Ms"] = str(duration_ms)
        return response

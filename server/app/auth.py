# Shared-secret X-API-Key check in front of the rewrite and debug routes.
# Probes and metrics scrapes stay open; CORS preflights pass through.
# Not mounted at all when API_KEY is empty.

import secrets
from collections.abc import Iterable
from typing import Any

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

logger = structlog.get_logger(__name__)

API_KEY_HEADER = "x-api-key"

DEFAULT_EXEMPT_PATHS: frozenset[str] = frozenset(
    {"/", "/health", "/health/ready", "/metrics", "/metrics/prometheus"}
)


class APIKeyMiddleware(BaseHTTPMiddleware):
    """Reject non-exempt requests whose X-API-Key does not match ``api_key``.

    The 401 body has the same ``error``/``type``/``category`` shape as
    pipeline errors so clients parse one format.
    """

    def __init__(
        self, app: Any, *, api_key: str, exempt_paths: Iterable[str] = DEFAULT_EXEMPT_PATHS
    ) -> None:
        super().__init__(app)
        self._api_key = api_key.encode()
        self._exempt = frozenset(exempt_paths)

    def _authorized(self, request: Request) -> bool:
        provided = request.headers.get(API_KEY_HEADER, "").encode()
        return bool(provided) and secrets.compare_digest(provided, self._api_key)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.method == "OPTIONS" or request.url.path in self._exempt:
            return await call_next(request)

        if self._authorized(request):
            return await call_next(request)

        logger.warning(
            "auth_rejected",
            path=request.url.path,
            method=request.method,
            key_present=API_KEY_HEADER in request.headers,
        )
        return JSONResponse(
            status_code=401,
            content={
                "error": "Invalid or missing API key",
                "type": "AuthenticationError",
                "category": "auth",
            },
        )

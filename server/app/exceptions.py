# ─────────────────────────────────────────────────────────────────────────────
# Custom Exceptions + FastAPI Exception Handlers
# ─────────────────────────────────────────────────────────────────────────────


import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = structlog.get_logger(__name__)


# ── Exception hierarchy ──────────────────────────────────────────────────────


class ListingRewriteError(Exception):
    """Base exception for all listing-rewrite pipeline errors.

    ``category`` is the caller-visible error class: validation, credits,
    or generation_failed.
    """

    category = "internal"

    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class ListingValidationError(ListingRewriteError):
    """Raised when required listing fields are missing. No network I/O happens."""

    category = "validation"

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(
            f"Missing required field(s): {', '.join(missing)}",
            status_code=400,
        )


class InsufficientCreditsError(ListingRewriteError):
    """Raised when an authenticated caller has no credits left."""

    category = "credits"

    def __init__(self, user_id: str, balance: int):
        self.user_id = user_id
        self.balance = balance
        super().__init__(
            "Insufficient credits. Purchase more credits to rewrite this listing.",
            status_code=402,
        )


class VariationGenerationFailedError(ListingRewriteError):
    """Raised when one tone variation exhausts its retries.

    ``reason`` keeps the upstream detail for logs; the response message
    never includes it.
    """

    category = "generation_failed"

    def __init__(self, tone: str, reason: str):
        self.tone = tone
        self.reason = reason
        super().__init__(
            "Failed to generate listing descriptions. Please try again shortly.",
            status_code=502,
        )


class PipelineTimeoutError(ListingRewriteError):
    """Raised when the end-to-end deadline is exceeded."""

    category = "generation_failed"

    def __init__(self, timeout_s: float):
        self.timeout_s = timeout_s
        super().__init__(
            f"Listing rewrite timed out after {timeout_s}s",
            status_code=504,
        )


class CreditLedgerError(Exception):
    """Raised by a ledger backend when a balance write cannot be persisted."""


# ── Handler registration ────────────────────────────────────────────────────


def register_exception_handlers(app: FastAPI) -> None:
    """Register all custom exception handlers on the FastAPI app.

    Endpoints raise ListingRewriteError subclasses; these handlers catch them
    and return structured JSON -- no inline try/except in endpoints.
    """

    @app.exception_handler(ListingRewriteError)
    async def listing_rewrite_error_handler(
        request: Request, exc: ListingRewriteError
    ) -> JSONResponse:
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(
            "listing_rewrite_error",
            error=exc.message,
            error_type=type(exc).__name__,
            category=exc.category,
            reason=getattr(exc, "reason", None),
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": exc.message,
                "type": type(exc).__name__,
                "category": exc.category,
            },
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("unhandled_error", error=str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "type": "UnhandledError"},
        )

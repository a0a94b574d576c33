# ─────────────────────────────────────────────────────────────────────────────
# Rate Limiter — shared slowapi instance
# ─────────────────────────────────────────────────────────────────────────────
# Lives in its own module so routes/rewrite.py and main.py can both import it.
# Each rewrite costs up to nine upstream generation calls (three enrichments,
# three variations, three length corrections), so the HTTP limit is tight.
# ─────────────────────────────────────────────────────────────────────────────


from slowapi import Limiter
from slowapi.util import get_remote_address

from app.config import get_settings

# Key function: rate-limit by client IP (request.client.host).
limiter = Limiter(key_func=get_remote_address)


def rewrite_rate_limit() -> str:
    """Per-IP limit for POST /listing-rewrite, from RATE_LIMIT."""
    return get_settings().rate_limit

# ─────────────────────────────────────────────────────────────────────────────
# Credit Ledger — check-before / decrement-after gate on rewrite requests
# ─────────────────────────────────────────────────────────────────────────────
# The orchestrator sees only the CreditLedger protocol. Two backends:
#   InMemoryCreditLedger  — dev/test, balances live in process memory
#   WebhookCreditLedger   — spreadsheet webhook (getUserById/updateUserCredits)
#                           with a TTLCache in front of reads
# ─────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

import httpx
import structlog
from cachetools import TTLCache

from app.exceptions import CreditLedgerError, InsufficientCreditsError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CreditReservation:
    """Balance observed at check time.

    The in-memory ledger decrements the current balance on commit; the
    webhook ledger writes ``balance - 1``.
    """

    user_id: str
    balance: int


@runtime_checkable
class CreditLedger(Protocol):
    """Narrow interface the orchestrator depends on."""

    async def check_and_reserve(self, user_id: str) -> CreditReservation:
        """Raise InsufficientCreditsError if the user has fewer than 1 credit."""
        ...

    async def commit(self, reservation: CreditReservation) -> int:
        """Persist the decrement; return the new balance."""
        ...

    async def grant(self, user_id: str, amount: int) -> int:
        """Add purchased credits; return the new balance."""
        ...


def _reserve(user_id: str, balance: int) -> CreditReservation:
    if balance < 1:
        logger.warning("credits_insufficient", user_id=user_id, balance=balance)
        raise InsufficientCreditsError(user_id, balance)
    return CreditReservation(user_id=user_id, balance=balance)


# ── In-memory backend ────────────────────────────────────────────────────────


class InMemoryCreditLedger:
    """Process-local balances. Unknown users start at ``default_balance``."""

    def __init__(self, balances: dict[str, int] | None = None, default_balance: int = 0) -> None:
        self._balances: dict[str, int] = dict(balances or {})
        self._default = default_balance

    def balance(self, user_id: str) -> int:
        return self._balances.get(user_id, self._default)

    async def check_and_reserve(self, user_id: str) -> CreditReservation:
        return _reserve(user_id, self.balance(user_id))

    async def commit(self, reservation: CreditReservation) -> int:
        new_balance = max(self.balance(reservation.user_id) - 1, 0)
        self._balances[reservation.user_id] = new_balance
        logger.info("credits_committed", user_id=reservation.user_id, credits=new_balance)
        return new_balance

    async def grant(self, user_id: str, amount: int) -> int:
        if amount < 1:
            raise ValueError(f"amount must be >= 1, got {amount}")
        new_balance = self.balance(user_id) + amount
        self._balances[user_id] = new_balance
        logger.info("credits_granted", user_id=user_id, amount=amount, credits=new_balance)
        return new_balance


# ── Spreadsheet webhook backend ──────────────────────────────────────────────


class WebhookCreditLedger:
    """Balances stored behind the spreadsheet webhook.

    Reads are cached for ``cache_ttl`` seconds. A read that fails or finds
    no user yields balance 0. Writes that fail raise CreditLedgerError;
    ``grant`` always reads fresh and raises on a failed read.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        webhook_url: str,
        *,
        cache_ttl: float = 60,
        cache_size: int = 1024,
    ) -> None:
        self._http = http
        self._url = webhook_url
        self._cache: TTLCache[str, int] = TTLCache(maxsize=cache_size, ttl=cache_ttl)

    async def _call(self, action: str, data: dict[str, Any]) -> dict[str, Any]:
        if not self._url:
            raise CreditLedgerError("credit webhook URL not configured")
        try:
            resp = await self._http.post(self._url, json={"action": action, "data": data})
            resp.raise_for_status()
            body = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise CreditLedgerError(f"{action} failed: {e}") from e
        if not isinstance(body, dict):
            raise CreditLedgerError(f"{action} returned non-object body")
        if body.get("error"):
            raise CreditLedgerError(f"{action} returned error: {body['error']}")
        return body

    async def _read_balance(self, user_id: str) -> int:
        body = await self._call("getUserById", {"id": user_id})
        user = body.get("user")
        if not isinstance(user, dict):
            raise CreditLedgerError(f"user {user_id} not found")
        try:
            balance = int(user.get("credits") or 0)
        except (TypeError, ValueError):
            balance = 0
        self._cache[user_id] = balance
        return balance

    async def fetch_balance(self, user_id: str) -> int:
        if (cached := self._cache.get(user_id)) is not None:
            return cached
        try:
            return await self._read_balance(user_id)
        except CreditLedgerError as e:
            logger.warning("credit_lookup_failed", user_id=user_id, error=str(e))
            return 0

    async def check_and_reserve(self, user_id: str) -> CreditReservation:
        return _reserve(user_id, await self.fetch_balance(user_id))

    async def _write(self, user_id: str, credits: int) -> int:
        await self._call("updateUserCredits", {"id": user_id, "credits": credits})
        self._cache[user_id] = credits
        return credits

    async def commit(self, reservation: CreditReservation) -> int:
        new_balance = await self._write(reservation.user_id, max(reservation.balance - 1, 0))
        logger.info("credits_committed", user_id=reservation.user_id, credits=new_balance)
        return new_balance

    async def grant(self, user_id: str, amount: int) -> int:
        if amount < 1:
            raise ValueError(f"amount must be >= 1, got {amount}")
        current = await self._read_balance(user_id)
        new_balance = await self._write(user_id, current + amount)
        logger.info("credits_granted", user_id=user_id, amount=amount, credits=new_balance)
        return new_balance

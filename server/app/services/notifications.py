# Fire-and-forget notifications through the spreadsheet/email webhook.
# Every call is best-effort: failures are logged and counted, never raised.

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any
from zoneinfo import ZoneInfo

import httpx
import structlog

from app.pipeline.listing import ListingFacts, Tone, VariationResult

if TYPE_CHECKING:
    from app.config import Settings
    from app.services.metrics import PipelineMetrics

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class LeadNotification:
    """Everything the three webhook actions need about one completed rewrite."""

    email: str
    facts: ListingFacts
    variations: tuple[VariationResult, ...]
    opt_in_tips: bool = False

    def text_for(self, tone: Tone) -> str:
        for variation in self.variations:
            if variation.tone == tone:
                return variation.text
        return ""


class NotificationWebhook:
    """Posts ``{"action": ..., "data": {...}}`` to the configured webhook URL."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        settings: Settings,
        metrics: PipelineMetrics | None = None,
    ) -> None:
        self._http = http
        self._settings = settings
        self._metrics = metrics

    async def _post(self, action: str, data: dict[str, Any]) -> bool:
        url = self._settings.notification_webhook_url
        if not url:
            logger.warning("notification_webhook_not_configured", action=action)
            return False
        try:
            resp = await self._http.post(
                url,
                json={"action": action, "data": data},
                timeout=self._settings.notification_timeout_seconds,
            )
            resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(
                "notification_failed",
                action=action,
                error=str(e),
                error_type=type(e).__name__,
            )
            if self._metrics:
                self._metrics.record_notification_failure()
            return False
        logger.info("notification_sent", action=action, status=resp.status_code)
        return True

    async def save_lead(self, lead: LeadNotification) -> bool:
        facts = lead.facts
        return await self._post(
            "saveLead",
            {
                "email": lead.email,
                "address": facts.address,
                "price": facts.price or "N/A",
                "originalDescription": facts.description,
                "rewrittenDescription": lead.text_for(Tone.balanced),
                "timestamp": datetime.now(UTC).isoformat(),
                "optInTips": "Yes" if lead.opt_in_tips else "No",
            },
        )

    async def send_user_email(self, lead: LeadNotification) -> bool:
        facts = lead.facts
        balanced = lead.text_for(Tone.balanced)
        return await self._post(
            "sendUserEmail",
            {
                "to": lead.email,
                "from": self._settings.sender_email,
                "subject": f"Your 3 AI-Enhanced Listing Descriptions for {facts.address}",
                "propertyAddress": facts.address,
                "propertyPrice": facts.price or "N/A",
                "propertyBeds": facts.beds or "N/A",
                "propertyBaths": facts.baths or "N/A",
                "professionalDescription": lead.text_for(Tone.professional),
                "funDescription": lead.text_for(Tone.fun),
                "balancedDescription": balanced,
                "description": balanced,
                "characterCount": len(balanced),
            },
        )

    async def notify_admin(self, lead: LeadNotification) -> bool:
        local_now = datetime.now(ZoneInfo(self._settings.admin_timezone))
        return await self._post(
            "notifyAdmin",
            {
                "to": self._settings.admin_email,
                "subject": "New Listing Rewriter Lead!",
                "userEmail": lead.email,
                "propertyAddress": lead.facts.address,
                "propertyPrice": lead.facts.price or "N/A",
                "timestamp": local_now.strftime("%m/%d/%Y, %I:%M:%S %p"),
            },
        )

    async def dispatch_all(self, lead: LeadNotification) -> list[bool]:
        """Run the three actions concurrently. Never raises."""
        results = await asyncio.gather(
            self.save_lead(lead),
            self.send_user_email(lead),
            self.notify_admin(lead),
            return_exceptions=True,
        )
        sent: list[bool] = []
        for action, result in zip(("saveLead", "sendUserEmail", "notifyAdmin"), results, strict=True):
            if isinstance(result, BaseException):
                logger.error("notification_crashed", action=action, error=str(result))
                sent.append(False)
            else:
                sent.append(result)
        logger.info("notifications_dispatched", email=lead.email, sent=sum(sent), total=len(sent))
        return sent

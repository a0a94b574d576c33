# ─────────────────────────────────────────────────────────────────────────────
# Tests — NotificationWebhook (respx)
# ─────────────────────────────────────────────────────────────────────────────
# Every action is best-effort: errors are logged and counted, never raised.
# ─────────────────────────────────────────────────────────────────────────────

import json

import httpx
import pytest
import respx

from app.config import Settings
from app.pipeline.listing import ListingFacts, Tone, VariationResult
from app.services.metrics import PipelineMetrics
from app.services.notifications import LeadNotification, NotificationWebhook

WEBHOOK = "https://sheets.test/exec"

LEAD = LeadNotification(
    email="agent@example.com",
    facts=ListingFacts(address="123 Main St, Unit 4B", description="Nice house.", price="$750,000", beds="3"),
    variations=(
        VariationResult(Tone.professional, "Professional text."),
        VariationResult(Tone.fun, "Fun text."),
        VariationResult(Tone.balanced, "Balanced text."),
    ),
    opt_in_tips=True,
)


@pytest.fixture
def webhook_settings() -> Settings:
    return Settings(
        notification_webhook_url=WEBHOOK,
        sender_email="sender@example.com",
        admin_email="admin@example.com",
        _env_file=None,
    )


def _bodies(route) -> dict[str, dict]:
    sent = [json.loads(call.request.content) for call in route.calls]
    return {body["action"]: body["data"] for body in sent}


class TestNotificationWebhook:
    @respx.mock
    async def test_dispatch_all_sends_three_actions(self, webhook_settings):
        route = respx.post(WEBHOOK).mock(return_value=httpx.Response(200, json={"success": True}))

        async with httpx.AsyncClient() as http:
            sent = await NotificationWebhook(http, webhook_settings).dispatch_all(LEAD)

        assert sent == [True, True, True]
        bodies = _bodies(route)
        assert set(bodies) == {"saveLead", "sendUserEmail", "notifyAdmin"}

        lead = bodies["saveLead"]
        assert lead["email"] == "agent@example.com"
        assert lead["rewrittenDescription"] == "Balanced text."
        assert lead["originalDescription"] == "Nice house."
        assert lead["optInTips"] == "Yes"

        email = bodies["sendUserEmail"]
        assert email["to"] == "agent@example.com"
        assert email["from"] == "sender@example.com"
        assert email["subject"].endswith("123 Main St, Unit 4B")
        assert email["funDescription"] == "Fun text."
        assert email["propertyBaths"] == "N/A"
        assert email["characterCount"] == len("Balanced text.")

        admin = bodies["notifyAdmin"]
        assert admin["to"] == "admin@example.com"
        assert admin["userEmail"] == "agent@example.com"

    @respx.mock
    async def test_one_failing_action_does_not_stop_others(self, webhook_settings):
        def _respond(request: httpx.Request) -> httpx.Response:
            if json.loads(request.content)["action"] == "sendUserEmail":
                return httpx.Response(500, text="quota exceeded")
            return httpx.Response(200, json={"success": True})

        respx.post(WEBHOOK).mock(side_effect=_respond)
        metrics = PipelineMetrics()

        async with httpx.AsyncClient() as http:
            sent = await NotificationWebhook(http, webhook_settings, metrics=metrics).dispatch_all(LEAD)

        assert sent == [True, False, True]
        assert metrics.to_dict()["notification_failures"] == 1

    @respx.mock
    async def test_network_error_is_swallowed(self, webhook_settings):
        respx.post(WEBHOOK).mock(side_effect=httpx.ConnectError("dns"))
        async with httpx.AsyncClient() as http:
            assert await NotificationWebhook(http, webhook_settings).save_lead(LEAD) is False

    async def test_missing_url_skips_without_request(self):
        settings = Settings(notification_webhook_url="", _env_file=None)
        with respx.mock(assert_all_called=False) as mock:
            route = mock.post(WEBHOOK)
            async with httpx.AsyncClient() as http:
                sent = await NotificationWebhook(http, settings).dispatch_all(LEAD)
        assert sent == [False, False, False]
        assert not route.called

    def test_text_for_missing_tone_is_empty(self):
        lead = LeadNotification(email="a@b.c", facts=LEAD.facts, variations=())
        assert lead.text_for(Tone.fun) == ""

# ─────────────────────────────────────────────────────────────────────────────
# Generation Client Tests — respx
# ─────────────────────────────────────────────────────────────────────────────
# respx intercepts httpx requests at the transport layer (in-process, no
# network). Every HTTP/transport result must map to exactly one outcome
# variant; the client never raises for them.
# ─────────────────────────────────────────────────────────────────────────────

import json
from datetime import UTC, datetime, timedelta
from email.utils import format_datetime

import httpx
import pytest
import respx

from app.config import Settings
from app.generation.client import GenerationClient, extract_completion_text, parse_retry_after
from app.generation.types import (
    FatalError,
    GenerationRequest,
    Instruction,
    RateLimited,
    Role,
    Success,
    TransientError,
)
from app.services.metrics import PipelineMetrics

API_URL = "https://generation.test/v1/messages"


@pytest.fixture
def client_settings() -> Settings:
    return Settings(
        generation_api_url=API_URL,
        generation_api_key="sk-test",
        generation_model="test-model",
        _env_file=None,
    )


@pytest.fixture
def request_() -> GenerationRequest:
    return GenerationRequest.from_prompts(
        "You are a copy editor.",
        "Rewrite this.",
        temperature=0.5,
        max_output_tokens=600,
        label="variation:professional",
    )


def _messages_body(text: str) -> dict:
    return {"id": "msg_1", "type": "message", "content": [{"type": "text", "text": text}]}


class TestRequestShape:
    @respx.mock
    async def test_posts_messages_payload_with_headers(self, client_settings, request_):
        route = respx.post(API_URL).mock(
            return_value=httpx.Response(200, json=_messages_body("Done."))
        )

        async with httpx.AsyncClient() as http:
            outcome = await GenerationClient(http, client_settings).generate(request_)

        assert outcome == Success("Done.")
        sent = route.calls.last.request
        assert sent.headers["x-api-key"] == "sk-test"
        assert sent.headers["anthropic-version"] == "2023-06-01"
        body = json.loads(sent.content)
        assert body == {
            "model": "test-model",
            "max_tokens": 600,
            "temperature": 0.5,
            "system": "You are a copy editor.",
            "messages": [{"role": "user", "content": "Rewrite this."}],
        }

    async def test_multiple_system_blocks_are_joined(self, client_settings):
        request = GenerationRequest(
            instructions=(
                Instruction(Role.system, "Persona."),
                Instruction(Role.system, "Rules."),
                Instruction(Role.user, "Go."),
            ),
            temperature=0.3,
            max_output_tokens=10,
        )
        async with httpx.AsyncClient() as http:
            payload = GenerationClient(http, client_settings).build_payload(request)
        assert payload["system"] == "Persona.\n\nRules."
        assert payload["messages"] == [{"role": "user", "content": "Go."}]

    async def test_missing_api_key_is_fatal_without_network(self, request_):
        settings = Settings(generation_api_url=API_URL, generation_api_key="", _env_file=None)
        with respx.mock(assert_all_called=False) as mock:
            route = mock.post(API_URL)
            async with httpx.AsyncClient() as http:
                outcome = await GenerationClient(http, settings).generate(request_)
        assert isinstance(outcome, FatalError)
        assert not route.called


class TestClassification:
    @pytest.mark.parametrize(
        ("status", "expected"),
        [
            (500, TransientError),
            (502, TransientError),
            (503, TransientError),
            (529, TransientError),
            (400, FatalError),
            (401, FatalError),
            (404, FatalError),
        ],
    )
    @respx.mock
    async def test_status_codes(self, client_settings, request_, status, expected):
        respx.post(API_URL).mock(return_value=httpx.Response(status, json={"error": "x"}))
        async with httpx.AsyncClient() as http:
            outcome = await GenerationClient(http, client_settings).generate(request_)
        assert isinstance(outcome, expected)

    @respx.mock
    async def test_429_with_seconds_hint(self, client_settings, request_):
        respx.post(API_URL).mock(return_value=httpx.Response(429, headers={"retry-after": "7"}))
        async with httpx.AsyncClient() as http:
            outcome = await GenerationClient(http, client_settings).generate(request_)
        assert outcome == RateLimited(retry_after=7.0)

    @respx.mock
    async def test_429_without_hint(self, client_settings, request_):
        respx.post(API_URL).mock(return_value=httpx.Response(429))
        async with httpx.AsyncClient() as http:
            outcome = await GenerationClient(http, client_settings).generate(request_)
        assert outcome == RateLimited(retry_after=None)

    @respx.mock
    async def test_timeout_is_transient(self, client_settings, request_):
        respx.post(API_URL).mock(side_effect=httpx.ReadTimeout("slow"))
        async with httpx.AsyncClient() as http:
            outcome = await GenerationClient(http, client_settings).generate(request_)
        assert isinstance(outcome, TransientError)
        assert "ReadTimeout" in outcome.cause

    @respx.mock
    async def test_connect_error_is_transient(self, client_settings, request_):
        respx.post(API_URL).mock(side_effect=httpx.ConnectError("refused"))
        async with httpx.AsyncClient() as http:
            outcome = await GenerationClient(http, client_settings).generate(request_)
        assert isinstance(outcome, TransientError)

    @respx.mock
    async def test_invalid_json_is_transient(self, client_settings, request_):
        respx.post(API_URL).mock(return_value=httpx.Response(200, content=b"<html>oops</html>"))
        async with httpx.AsyncClient() as http:
            outcome = await GenerationClient(http, client_settings).generate(request_)
        assert isinstance(outcome, TransientError)

    @respx.mock
    async def test_blank_completion_is_transient(self, client_settings, request_):
        respx.post(API_URL).mock(return_value=httpx.Response(200, json=_messages_body("   ")))
        async with httpx.AsyncClient() as http:
            outcome = await GenerationClient(http, client_settings).generate(request_)
        assert isinstance(outcome, TransientError)

    @respx.mock
    async def test_success_text_is_whitespace_stripped(self, client_settings, request_):
        respx.post(API_URL).mock(
            return_value=httpx.Response(200, json=_messages_body("\n  Bright corner unit.  \n"))
        )
        async with httpx.AsyncClient() as http:
            outcome = await GenerationClient(http, client_settings).generate(request_)
        assert outcome == Success("Bright corner unit.")

    @respx.mock
    async def test_attempts_are_counted_in_metrics(self, client_settings, request_):
        respx.post(API_URL).mock(
            side_effect=[httpx.Response(503), httpx.Response(200, json=_messages_body("ok"))]
        )
        metrics = PipelineMetrics()
        async with httpx.AsyncClient() as http:
            client = GenerationClient(http, client_settings, metrics=metrics)
            await client.generate(request_)
            await client.generate(request_)
        assert metrics.to_dict()["upstream_attempts"] == {"transient_error": 1, "success": 1}


class TestHelpers:
    def test_extract_text_skips_non_text_blocks(self):
        body = {"content": [{"type": "tool_use", "id": "t"}, {"type": "text", "text": " hi "}]}
        assert extract_completion_text(body) == "hi"

    @pytest.mark.parametrize("body", [None, [], {}, {"content": "text"}, {"content": [{}]}])
    def test_extract_text_malformed(self, body):
        assert extract_completion_text(body) == ""

    @pytest.mark.parametrize(
        ("header", "expected"),
        [("3", 3.0), ("0.5", 0.5), (" 12 ", 12.0), ("-4", 0.0), ("", None), (None, None), ("soon", None), ("inf", None)],
    )
    def test_parse_retry_after_seconds(self, header, expected):
        assert parse_retry_after(header) == expected

    def test_parse_retry_after_http_date(self):
        when = datetime.now(UTC) + timedelta(seconds=30)
        parsed = parse_retry_after(format_datetime(when, usegmt=True))
        assert parsed is not None
        assert 25 <= parsed <= 31

    def test_parse_retry_after_past_date_is_zero(self):
        assert parse_retry_after("Wed, 21 Oct 2015 07:28:00 GMT") == 0.0

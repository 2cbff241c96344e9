"""
Tests for the insight requester.

The gateway is replaced by httpx.MockTransport, so these tests exercise the
real request construction and response parsing without network access.
"""

import json
from collections.abc import Callable

import httpx
import pytest

from guardian.config import AIGatewayConfig
from guardian.domain.models import HealthInsight, MemberSnapshot
from guardian.services.insights import (
    INSIGHTS_TOOL_NAME,
    InsightConfigurationError,
    InsightRequester,
    InsightTransportError,
    NoInsightsGeneratedError,
    QuotaExceededError,
    RateLimitedError,
    UpstreamError,
    build_request_body,
    parse_insight,
)

GATEWAY_URL = "https://gateway.test/v1/chat/completions"


def _tool_call_response(arguments: dict | str) -> dict:
    if isinstance(arguments, dict):
        arguments = json.dumps(arguments)
    return {
        "choices": [
            {
                "message": {
                    "role": "assistant",
                    "tool_calls": [
                        {
                            "id": "call_1",
                            "type": "function",
                            "function": {"name": INSIGHTS_TOOL_NAME, "arguments": arguments},
                        }
                    ],
                }
            }
        ]
    }


@pytest.fixture
def mary() -> MemberSnapshot:
    return MemberSnapshot(
        name="Mary Johnson",
        age=78,
        relationship="Mother",
        health_history="Hypertension, takes lisinopril daily",
        heart_rate=98,
        bp_systolic=130,
        bp_diastolic=85,
        steps=1200,
    )


@pytest.fixture
def gateway_config() -> AIGatewayConfig:
    return AIGatewayConfig(url=GATEWAY_URL, api_key="test-key", model="google/gemini-2.5-flash")


def _requester(
    config: AIGatewayConfig, handler: Callable[[httpx.Request], httpx.Response]
) -> InsightRequester:
    return InsightRequester(config, transport=httpx.MockTransport(handler))


class TestRequestInsights:
    async def test_valid_tool_call_returns_insight(
        self, mary: MemberSnapshot, gateway_config: AIGatewayConfig
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json=_tool_call_response(
                    {
                        "summary": "Heart rate is elevated at 98 BPM for a 78 year old.",
                        "recommendation": "Have Mary rest and recheck her heart rate in an hour.",
                    }
                ),
            )

        insight = await _requester(gateway_config, handler).request_insights(mary)

        assert isinstance(insight, HealthInsight)
        assert insight.summary
        assert insight.recommendation

    async def test_request_shape(
        self, mary: MemberSnapshot, gateway_config: AIGatewayConfig
    ) -> None:
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(
                200, json=_tool_call_response({"summary": "s", "recommendation": "r"})
            )

        await _requester(gateway_config, handler).request_insights(mary)

        assert len(captured) == 1
        request = captured[0]
        assert request.method == "POST"
        assert str(request.url) == GATEWAY_URL
        assert request.headers["Authorization"] == "Bearer test-key"

        body = json.loads(request.content)
        assert body["model"] == "google/gemini-2.5-flash"
        assert [m["role"] for m in body["messages"]] == ["system", "user"]
        user_prompt = body["messages"][1]["content"]
        assert "Mary Johnson" in user_prompt
        assert "Age: 78" in user_prompt
        assert "98 BPM" in user_prompt
        assert "130/85 mmHg" in user_prompt
        assert "Steps Today: 1200" in user_prompt
        assert body["tool_choice"] == {
            "type": "function",
            "function": {"name": INSIGHTS_TOOL_NAME},
        }
        parameters = body["tools"][0]["function"]["parameters"]
        assert parameters["required"] == ["summary", "recommendation"]
        assert parameters["additionalProperties"] is False

    async def test_rate_limited(
        self, mary: MemberSnapshot, gateway_config: AIGatewayConfig
    ) -> None:
        requester = _requester(gateway_config, lambda r: httpx.Response(429, text="slow down"))

        with pytest.raises(RateLimitedError) as exc_info:
            await requester.request_insights(mary)

        assert exc_info.value.message == "Rate limit exceeded. Please try again in a moment."
        assert exc_info.value.status_code == 429

    async def test_quota_exhausted(
        self, mary: MemberSnapshot, gateway_config: AIGatewayConfig
    ) -> None:
        requester = _requester(gateway_config, lambda r: httpx.Response(402))

        with pytest.raises(QuotaExceededError) as exc_info:
            await requester.request_insights(mary)

        assert exc_info.value.message == "AI credits depleted. Please add credits to continue."
        assert exc_info.value.status_code == 402

    async def test_other_upstream_status(
        self, mary: MemberSnapshot, gateway_config: AIGatewayConfig
    ) -> None:
        requester = _requester(gateway_config, lambda r: httpx.Response(503, text="down"))

        with pytest.raises(UpstreamError) as exc_info:
            await requester.request_insights(mary)

        assert exc_info.value.message == "AI API error: 503"
        assert exc_info.value.upstream_status == 503

    async def test_missing_tool_calls(
        self, mary: MemberSnapshot, gateway_config: AIGatewayConfig
    ) -> None:
        payload = {"choices": [{"message": {"role": "assistant", "content": "Looks fine."}}]}
        requester = _requester(gateway_config, lambda r: httpx.Response(200, json=payload))

        with pytest.raises(NoInsightsGeneratedError, match="No insights generated"):
            await requester.request_insights(mary)

    async def test_non_json_body(
        self, mary: MemberSnapshot, gateway_config: AIGatewayConfig
    ) -> None:
        requester = _requester(gateway_config, lambda r: httpx.Response(200, text="<html>"))

        with pytest.raises(NoInsightsGeneratedError):
            await requester.request_insights(mary)

    async def test_transport_failure(
        self, mary: MemberSnapshot, gateway_config: AIGatewayConfig
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(InsightTransportError, match="Failed to generate insights"):
            await _requester(gateway_config, handler).request_insights(mary)

    async def test_missing_api_key_fails_before_any_request(self, mary: MemberSnapshot) -> None:
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200)

        requester = _requester(AIGatewayConfig(url=GATEWAY_URL, api_key=None), handler)

        with pytest.raises(InsightConfigurationError, match="AI_GATEWAY_API_KEY"):
            await requester.request_insights(mary)
        assert calls == []


class TestParseInsight:
    def test_arguments_as_object(self) -> None:
        data = _tool_call_response("{}")
        data["choices"][0]["message"]["tool_calls"][0]["function"]["arguments"] = {
            "summary": "s",
            "recommendation": "r",
        }
        assert parse_insight(data) == HealthInsight(summary="s", recommendation="r")

    @pytest.mark.parametrize(
        "arguments",
        [
            '{"summary": "only a summary"}',
            '{"summary": "", "recommendation": "r"}',
            '{"summary": "s", "recommendation": "r", "extra": "x"}',
            "not json",
        ],
    )
    def test_malformed_arguments(self, arguments: str) -> None:
        with pytest.raises(NoInsightsGeneratedError):
            parse_insight(_tool_call_response(arguments))

    @pytest.mark.parametrize(
        "data",
        [
            {},
            {"choices": []},
            {"choices": [{"message": None}]},
            {"choices": [{"message": {"tool_calls": []}}]},
        ],
    )
    def test_missing_structure(self, data: dict) -> None:
        with pytest.raises(NoInsightsGeneratedError):
            parse_insight(data)


def test_build_request_body_uses_configured_model(mary: MemberSnapshot) -> None:
    body = build_request_body(mary, "some/model")
    assert body["model"] == "some/model"
    assert body["tools"][0]["function"]["name"] == INSIGHTS_TOOL_NAME

"""
AI health insights for a single family member.

One request per call: the member's profile and vitals are embedded in a prompt
and the gateway is forced to answer through the `provide_health_insights`
function tool, so a successful reply always carries exactly a summary and a
recommendation. Nothing is cached or retried.
"""

import json
import time
from typing import Any

import httpx
import structlog
from pydantic import ValidationError

from guardian.config import AIGatewayConfig
from guardian.domain.models import HealthInsight, MemberSnapshot

logger = structlog.get_logger(__name__)

INSIGHTS_TOOL_NAME = "provide_health_insights"

SYSTEM_PROMPT = (
    "You are a professional health advisor. Provide clear, actionable health insights "
    "for caregivers monitoring their family members."
)

INSIGHTS_TOOL: dict[str, Any] = {
    "type": "function",
    "function": {
        "name": INSIGHTS_TOOL_NAME,
        "description": "Provide health analysis summary and recommendations",
        "parameters": {
            "type": "object",
            "properties": {
                "summary": {
                    "type": "string",
                    "description": "A brief summary of current health status",
                },
                "recommendation": {
                    "type": "string",
                    "description": "Specific actionable recommendations for the caregiver",
                },
            },
            "required": ["summary", "recommendation"],
            "additionalProperties": False,
        },
    },
}


class InsightError(Exception):
    """Base class for insight failures; `message` is safe to show to the caregiver."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InsightConfigurationError(InsightError):
    def __init__(self) -> None:
        super().__init__("AI_GATEWAY_API_KEY is not configured")


class RateLimitedError(InsightError):
    status_code = 429

    def __init__(self) -> None:
        super().__init__("Rate limit exceeded. Please try again in a moment.")


class QuotaExceededError(InsightError):
    status_code = 402

    def __init__(self) -> None:
        super().__init__("AI credits depleted. Please add credits to continue.")


class UpstreamError(InsightError):
    def __init__(self, upstream_status: int) -> None:
        super().__init__(f"AI API error: {upstream_status}")
        self.upstream_status = upstream_status


class NoInsightsGeneratedError(InsightError):
    def __init__(self) -> None:
        super().__init__("No insights generated")


class InsightTransportError(InsightError):
    def __init__(self) -> None:
        super().__init__("Failed to generate insights")


def build_user_prompt(member: MemberSnapshot) -> str:
    """Prompt embedding the member profile and current vitals."""
    return f"""You are a professional health advisor analyzing real-time health data for a family member.

Member Information:
- Name: {member.name}
- Age: {member.age}
- Relationship: {member.relationship}
- Health History: {member.health_history}

Current Vitals:
- Heart Rate: {member.heart_rate} BPM
- Blood Pressure: {member.bp_systolic}/{member.bp_diastolic} mmHg
- Steps Today: {member.steps}

Analyze this data and provide:
1. A brief summary of their current health status
2. Specific, actionable recommendations for the caregiver

Keep your response professional, clear, and focused on actionable insights."""  # noqa: E501


def build_request_body(member: MemberSnapshot, model: str) -> dict[str, Any]:
    return {
        "model": model,
        "messages": [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": build_user_prompt(member)},
        ],
        "tools": [INSIGHTS_TOOL],
        "tool_choice": {"type": "function", "function": {"name": INSIGHTS_TOOL_NAME}},
    }


def parse_insight(data: Any) -> HealthInsight:
    """Extract the forced tool call arguments from a chat completion payload."""
    try:
        tool_calls = data["choices"][0]["message"].get("tool_calls") or []
        arguments = tool_calls[0]["function"]["arguments"] if tool_calls else None
    except (KeyError, IndexError, TypeError, AttributeError) as e:
        raise NoInsightsGeneratedError() from e

    if not arguments:
        raise NoInsightsGeneratedError()

    try:
        if isinstance(arguments, str):
            return HealthInsight.model_validate_json(arguments)
        return HealthInsight.model_validate(arguments)
    except ValidationError as e:
        raise NoInsightsGeneratedError() from e


class InsightRequester:
    """Sends one insight request to the chat-completions gateway."""

    def __init__(
        self, config: AIGatewayConfig, transport: httpx.AsyncBaseTransport | None = None
    ) -> None:
        self.config = config
        self._transport = transport
        self.logger = logger.bind(component="insight_requester")

    async def request_insights(self, member: MemberSnapshot) -> HealthInsight:
        """
        Generate a summary and recommendation for one member.

        Raises:
            InsightError: one subclass per failure kind, never retried.
        """
        if not self.config.api_key:
            self.logger.error("insight_gateway_not_configured")
            raise InsightConfigurationError()

        self.logger.info("insight_request_started", member_name=member.name)
        start_time = time.perf_counter()

        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=self.config.timeout_seconds
            ) as client:
                response = await client.post(
                    self.config.url,
                    headers={
                        "Authorization": f"Bearer {self.config.api_key}",
                        "Content-Type": "application/json",
                    },
                    json=build_request_body(member, self.config.model),
                )
        except httpx.HTTPError as e:
            self.logger.error("insight_transport_failed", error=str(e))
            raise InsightTransportError() from e

        if response.status_code == 429:
            self.logger.warning("insight_rate_limited")
            raise RateLimitedError()
        if response.status_code == 402:
            self.logger.warning("insight_quota_exhausted")
            raise QuotaExceededError()
        if not response.is_success:
            self.logger.error(
                "insight_upstream_error", status=response.status_code, body=response.text[:500]
            )
            raise UpstreamError(response.status_code)

        try:
            data = response.json()
        except json.JSONDecodeError as e:
            self.logger.error("insight_response_not_json")
            raise NoInsightsGeneratedError() from e

        try:
            insight = parse_insight(data)
        except NoInsightsGeneratedError:
            self.logger.warning("insight_tool_call_missing", member_name=member.name)
            raise

        self.logger.info(
            "insight_request_completed",
            member_name=member.name,
            duration_seconds=round(time.perf_counter() - start_time, 3),
        )
        return insight

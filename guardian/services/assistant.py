"""
Caregiver health assistant using Pydantic AI.

Answers free-form caregiver questions with the current state of every tracked
member as context. Failures degrade to a fixed reply instead of raising, so the
dashboard never breaks because the assistant model is unavailable.
"""

import asyncio
from typing import Any, cast

import structlog
from pydantic_ai import Agent

from guardian.config import AssistantConfig
from guardian.domain.models import LiveMember

logger = structlog.get_logger(__name__)

FALLBACK_REPLY = "Sorry, I couldn't answer that right now. Please try again in a moment."


class HealthAssistantAgent:
    """Free-text assistant grounded in the family's live vitals."""

    def __init__(self, config: AssistantConfig) -> None:
        self.config = config
        self.logger = logger.bind(component="health_assistant")

        self.agent = Agent(
            model=self.config.model_name,
            output_type=str,
            system_prompt=self._build_system_prompt(),
            model_settings={"temperature": self.config.temperature},
            defer_model_check=True,
        )

    def _build_system_prompt(self) -> str:
        return """You are a caring, knowledgeable health assistant helping a caregiver
keep an eye on their family members.

Guidelines:
1. Ground every answer in the vitals and health history you are given
2. Be clear about what is normal and what deserves attention
3. For anything that sounds urgent, tell the caregiver to contact emergency services
4. You are not a doctor: suggest consulting a physician for medical decisions
5. Keep answers short and practical"""

    def _format_members(self, members: list[LiveMember]) -> str:
        if not members:
            return "No family members are being monitored yet."

        lines = []
        for member in members:
            record, vitals = member.record, member.vitals
            lines.append(
                f"- {record.name} ({record.relationship}, {record.age}): "
                f"status {member.status.value}, heart rate {vitals.heart_rate} BPM, "
                f"BP {vitals.bp_systolic}/{vitals.bp_diastolic} mmHg, "
                f"{vitals.steps} steps today. History: {record.health_history}"
            )
        return "\n".join(lines)

    def _build_user_prompt(self, question: str, members: list[LiveMember]) -> str:
        return f"""FAMILY MEMBERS:
{self._format_members(members)}

CAREGIVER QUESTION:
{question}"""

    async def answer(self, question: str, members: list[LiveMember]) -> str:
        """Answer a caregiver question; returns FALLBACK_REPLY on any failure."""
        try:
            result = await asyncio.wait_for(
                self.agent.run(self._build_user_prompt(question, members)),
                timeout=self.config.timeout_seconds,
            )
            reply = cast(str, cast(Any, result).output)
            self.logger.info("assistant_answered", members=len(members), reply_chars=len(reply))
            return reply

        except TimeoutError:
            self.logger.error("assistant_timeout", timeout_seconds=self.config.timeout_seconds)
            return FALLBACK_REPLY
        except Exception as e:
            self.logger.error("assistant_failed", error=str(e))
            return FALLBACK_REPLY

"""
HTTP API for the family health dashboard.

Two surfaces share one application:
- `/api/...`: dashboard operations for the caregiver UI
- `/functions/ai-insights`: stateless insight proxy that maps gateway failures
  to status codes and always answers with permissive CORS headers
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field, ValidationError

from guardian.config import AppConfig, get_config
from guardian.domain.models import (
    AlertAction,
    HealthInsight,
    LiveMember,
    MemberProfile,
    MemberSnapshot,
    Notification,
)
from guardian.logging_setup import configure_logging
from guardian.services.assistant import HealthAssistantAgent
from guardian.services.dashboard import (
    DashboardService,
    DevicePairingRequiredError,
    MemberNotFoundError,
)
from guardian.services.insights import InsightError, InsightRequester

logger = structlog.get_logger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


class MemberView(BaseModel):
    """Member as rendered on the dashboard."""

    id: str
    name: str
    age: int
    relationship: str
    health_history: str
    device_id: str | None
    status: str
    heart_rate: int
    bp_systolic: int
    bp_diastolic: int
    steps: int

    @classmethod
    def from_member(cls, member: LiveMember) -> "MemberView":
        record, vitals = member.record, member.vitals
        return cls(
            id=record.id,
            name=record.name,
            age=record.age,
            relationship=record.relationship,
            health_history=record.health_history,
            device_id=record.device_id,
            status=member.status.value,
            heart_rate=vitals.heart_rate,
            bp_systolic=vitals.bp_systolic,
            bp_diastolic=vitals.bp_diastolic,
            steps=vitals.steps,
        )


class DashboardView(BaseModel):
    members: list[MemberView]
    selected_member_id: str | None
    insight: HealthInsight | None
    alerting_member_ids: list[str]


class InsightOutcome(BaseModel):
    member_id: str
    insight: HealthInsight | None
    error: str | None = None


class PairedDeviceView(BaseModel):
    device_id: str
    label: str


class AlertActionRequest(BaseModel):
    action: AlertAction


class AlertActionView(BaseModel):
    member_id: str
    action: AlertAction
    message: str


class AssistantRequest(BaseModel):
    question: str = Field(min_length=1, max_length=2000)


class AssistantReply(BaseModel):
    answer: str


class InsightProxyRequest(BaseModel):
    member_data: MemberSnapshot = Field(alias="memberData")


def _insight_error_response(error: InsightError) -> JSONResponse:
    # 429 and 402 pass through so callers can tell transient failures apart.
    status_code = error.status_code if error.status_code in (402, 429) else 500
    return JSONResponse({"error": error.message}, status_code=status_code, headers=CORS_HEADERS)


def create_app(
    config: AppConfig | None = None,
    dashboard: DashboardService | None = None,
    assistant: HealthAssistantAgent | None = None,
) -> FastAPI:
    """Build the application; collaborators can be injected for testing."""
    config = config or get_config()
    configure_logging(config.logging)

    dashboard = dashboard or DashboardService(config)
    assistant = assistant or HealthAssistantAgent(config.assistant)
    insight_requester: InsightRequester = dashboard.insight_requester

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("api_starting", environment=config.environment)
        await dashboard.load_members()
        try:
            yield
        finally:
            await dashboard.stop()
            logger.info("api_stopped")

    app = FastAPI(title="Health Guardian", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.allowed_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.dashboard = dashboard
    app.state.assistant = assistant

    def _get_member(member_id: str) -> LiveMember:
        try:
            return dashboard.get_member(member_id)
        except MemberNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e)) from e

    @app.get("/health")
    async def health() -> dict[str, Any]:
        return {
            "ok": True,
            "members": len(dashboard.members),
            "simulating": dashboard.is_simulating,
        }

    @app.get("/api/members", response_model=list[MemberView])
    async def list_members() -> list[MemberView]:
        return [MemberView.from_member(m) for m in dashboard.members]

    @app.post("/api/members", response_model=MemberView, status_code=201)
    async def add_member(profile: MemberProfile) -> MemberView:
        try:
            member = await dashboard.add_member(profile)
        except DevicePairingRequiredError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        except Exception as e:
            raise HTTPException(status_code=500, detail="Failed to add member") from e
        return MemberView.from_member(member)

    @app.post("/api/devices/pair", response_model=PairedDeviceView)
    async def pair_device() -> PairedDeviceView:
        device = await dashboard.pair_device()
        return PairedDeviceView(device_id=device.device_id, label=device.label)

    @app.get("/api/dashboard", response_model=DashboardView)
    async def get_dashboard() -> DashboardView:
        members = dashboard.members
        return DashboardView(
            members=[MemberView.from_member(m) for m in members],
            selected_member_id=dashboard.selected_member_id,
            insight=dashboard.insight,
            alerting_member_ids=[m.id for m in members if m.is_alert],
        )

    @app.post("/api/members/{member_id}/select", response_model=InsightOutcome)
    async def select_member(member_id: str) -> InsightOutcome:
        _get_member(member_id)
        result = await dashboard.select_member(member_id)
        if result.is_err():
            return InsightOutcome(
                member_id=member_id, insight=dashboard.insight, error=result.unwrap_err().message
            )
        return InsightOutcome(member_id=member_id, insight=result.unwrap())

    @app.post("/api/insights/refresh", response_model=InsightOutcome)
    async def refresh_insights() -> InsightOutcome:
        member = dashboard.selected_member
        if member is None:
            raise HTTPException(status_code=404, detail="No member selected")

        result = await dashboard.refresh_insights()
        if result.is_err():
            return InsightOutcome(
                member_id=member.id, insight=dashboard.insight, error=result.unwrap_err().message
            )
        return InsightOutcome(member_id=member.id, insight=result.unwrap())

    @app.post("/api/members/{member_id}/alert-actions", response_model=AlertActionView)
    async def take_alert_action(member_id: str, body: AlertActionRequest) -> AlertActionView:
        _get_member(member_id)
        record = dashboard.take_alert_action(member_id, body.action)
        return AlertActionView(member_id=member_id, action=record.action, message=record.message)

    @app.get("/api/notifications", response_model=list[Notification])
    async def drain_notifications() -> list[Notification]:
        return dashboard.drain_notifications()

    @app.post("/api/assistant", response_model=AssistantReply)
    async def ask_assistant(body: AssistantRequest) -> AssistantReply:
        answer = await assistant.answer(body.question, dashboard.members)
        return AssistantReply(answer=answer)

    @app.options("/functions/ai-insights")
    async def ai_insights_preflight() -> Response:
        return Response(headers=CORS_HEADERS)

    @app.post("/functions/ai-insights")
    async def ai_insights(request: Request) -> JSONResponse:
        try:
            payload = InsightProxyRequest.model_validate(await request.json())
        except (ValidationError, ValueError) as e:
            logger.warning("insight_proxy_bad_request", error=str(e))
            return JSONResponse(
                {"error": "Failed to generate insights"}, status_code=500, headers=CORS_HEADERS
            )

        logger.info("insight_proxy_request", member_name=payload.member_data.name)
        try:
            insight = await insight_requester.request_insights(payload.member_data)
        except InsightError as e:
            return _insight_error_response(e)

        return JSONResponse(insight.model_dump(), headers=CORS_HEADERS)

    return app

"""
Domain models for family health monitoring.

These models represent the core business concepts and are framework-agnostic.
They use Pydantic for validation.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class MemberStatus(str, Enum):
    """Derived alert status, recomputed on every simulator tick."""

    NORMAL = "Normal"
    ALERT = "Alert"


class AlertAction(str, Enum):
    """Immediate actions a caregiver can take for an alerting member."""

    CONTACT_EMERGENCY_SERVICES = "contact_emergency_services"
    NOTIFY_FAMILY = "notify_family"
    CONTACT_PHYSICIAN = "contact_physician"

    @property
    def outcome(self) -> str:
        return {
            AlertAction.CONTACT_EMERGENCY_SERVICES: "Emergency services contacted",
            AlertAction.NOTIFY_FAMILY: "Family members notified",
            AlertAction.CONTACT_PHYSICIAN: "Primary care physician contacted",
        }[self]


class MemberProfile(BaseModel):
    """Profile fields submitted by the caregiver when adding a member."""

    name: str = Field(min_length=1, max_length=200)
    age: int = Field(ge=1, le=120)
    relationship: str = Field(min_length=1, max_length=100)
    health_history: str = Field(min_length=1)
    device_id: str | None = Field(
        default=None, description="Identifier returned by a completed device pairing"
    )


class MemberRecord(MemberProfile):
    """A member profile as held by the member store."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class Vitals(BaseModel):
    """Live vital signs for one member."""

    model_config = ConfigDict(frozen=True)

    heart_rate: int = Field(description="BPM")
    bp_systolic: int = Field(description="mmHg")
    bp_diastolic: int = Field(description="mmHg")
    steps: int = Field(ge=0, description="Steps today")


class LiveMember(BaseModel):
    """A member on the dashboard: stored profile plus simulated vitals and status."""

    model_config = ConfigDict(frozen=True)

    record: MemberRecord
    vitals: Vitals
    status: MemberStatus = MemberStatus.NORMAL

    @property
    def id(self) -> str:
        return self.record.id

    @property
    def name(self) -> str:
        return self.record.name

    @property
    def is_alert(self) -> bool:
        return self.status == MemberStatus.ALERT

    def snapshot(self) -> "MemberSnapshot":
        """Profile and current vitals in the shape sent for insight generation."""
        return MemberSnapshot(
            name=self.record.name,
            age=self.record.age,
            relationship=self.record.relationship,
            health_history=self.record.health_history,
            heart_rate=self.vitals.heart_rate,
            bp_systolic=self.vitals.bp_systolic,
            bp_diastolic=self.vitals.bp_diastolic,
            steps=self.vitals.steps,
        )


class MemberSnapshot(BaseModel):
    """Flattened member data for insight requests; camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str
    age: int
    relationship: str
    health_history: str
    heart_rate: int
    bp_systolic: int
    bp_diastolic: int
    steps: int


class HealthInsight(BaseModel):
    """AI-generated summary and caregiver recommendation. Never persisted."""

    model_config = ConfigDict(extra="forbid")

    summary: str = Field(min_length=1, description="A brief summary of current health status")
    recommendation: str = Field(
        min_length=1, description="Specific actionable recommendations for the caregiver"
    )


NotificationLevel = Literal["success", "error", "info"]


class Notification(BaseModel):
    """Transient caregiver-facing message."""

    level: NotificationLevel
    message: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


@dataclass
class AlertEvent:
    """A member entering the Alert state."""

    timestamp: datetime
    member_id: str
    member_name: str
    heart_rate: int
    title: str
    description: str


@dataclass
class AlertActionRecord:
    """A caregiver action taken in response to an alert."""

    timestamp: datetime
    member_id: str
    member_name: str
    action: AlertAction

    @property
    def message(self) -> str:
        return f"{self.action.outcome} initiated for {self.member_name}"

"""
Dashboard state for one caregiver.

Owns the in-memory member list, the selected member's insight, the transient
notification queue and the vitals simulation task. Everything runs on a single
event loop: the member list is only replaced by the simulation task or by an
explicit caregiver action, never by both at once.
"""

import asyncio
import random
from collections import deque

import structlog

from guardian.config import AppConfig, get_config
from guardian.domain.models import (
    AlertAction,
    AlertActionRecord,
    HealthInsight,
    LiveMember,
    MemberProfile,
    Notification,
    NotificationLevel,
)
from guardian.services.alerts import AlertManager
from guardian.services.device_pairing import DevicePairingService, PairedDevice
from guardian.services.insights import InsightError, InsightRequester
from guardian.services.member_store import InMemoryMemberStore, MemberStore
from guardian.services.result import Result
from guardian.services.vitals_simulator import VitalsSimulator, initial_vitals, new_member_vitals

logger = structlog.get_logger(__name__)


class MemberNotFoundError(LookupError):
    def __init__(self, member_id: str) -> None:
        super().__init__(f"Member {member_id} not found")
        self.member_id = member_id


class DevicePairingRequiredError(ValueError):
    def __init__(self) -> None:
        super().__init__("Please pair a device first")


class DashboardService:
    """
    Coordinates members, live vitals, insights and alerts for the dashboard.

    Design principles:
    - Errors are caught at the boundary of each caregiver action and reported
      as notifications, leaving prior state untouched
    - The simulation task only exists while at least one member is tracked
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        store: MemberStore | None = None,
        insight_requester: InsightRequester | None = None,
        pairing_service: DevicePairingService | None = None,
        alert_manager: AlertManager | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.config = config or get_config()
        self.logger = logger.bind(component="dashboard")
        self.rng = rng or random.Random()
        self.user_id = self.config.api.owner_user_id

        self.store: MemberStore = store or InMemoryMemberStore()
        self.insight_requester = insight_requester or InsightRequester(self.config.ai_gateway)
        self.pairing_service = pairing_service or DevicePairingService(
            self.config.devices, rng=self.rng
        )
        self.alert_manager = alert_manager or AlertManager()
        self.simulator = VitalsSimulator(self.config.simulator, rng=self.rng)

        self._members: list[LiveMember] = []
        self.selected_member_id: str | None = None
        self.insight: HealthInsight | None = None
        self.notifications: deque[Notification] = deque(maxlen=100)
        self._simulation_task: asyncio.Task[None] | None = None

    # Member list

    @property
    def members(self) -> list[LiveMember]:
        return list(self._members)

    def get_member(self, member_id: str) -> LiveMember:
        for member in self._members:
            if member.id == member_id:
                return member
        raise MemberNotFoundError(member_id)

    @property
    def selected_member(self) -> LiveMember | None:
        if self.selected_member_id is None:
            return None
        try:
            return self.get_member(self.selected_member_id)
        except MemberNotFoundError:
            return None

    async def load_members(self) -> list[LiveMember]:
        """Load stored profiles and attach starting vitals; selects the newest member."""
        try:
            records = await self.store.list_all(self.user_id)
        except Exception as e:
            self.logger.error("members_load_failed", error=str(e))
            self.notify("error", "Failed to load members")
            return self.members

        self._members = [
            LiveMember(record=record, vitals=initial_vitals(self.rng)) for record in records
        ]
        if self._members:
            self.selected_member_id = self._members[0].id

        self.logger.info("members_loaded", count=len(self._members))
        self._sync_simulation()
        return self.members

    async def pair_device(self) -> PairedDevice:
        device = await self.pairing_service.pair()
        self.notify("success", "Device paired successfully!")
        return device

    async def add_member(self, profile: MemberProfile) -> LiveMember:
        """
        Store a new member and put it at the top of the list.

        Raises:
            DevicePairingRequiredError: no device id from a completed pairing.
        """
        if not profile.device_id:
            self.notify("error", "Please pair a device first")
            raise DevicePairingRequiredError()

        try:
            record = await self.store.insert_one(profile, self.user_id)
        except Exception:
            self.logger.exception("member_add_failed", member_name=profile.name)
            self.notify("error", "Failed to add member")
            raise

        member = LiveMember(record=record, vitals=new_member_vitals())
        self._members = [member, *self._members]
        self.selected_member_id = member.id

        self.notify("success", f"{profile.name} added successfully!")
        self.logger.info("member_added", member_id=member.id, device_id=profile.device_id)
        self._sync_simulation()
        return member

    def remove_member(self, member_id: str) -> None:
        """Drop a member from the dashboard. The store is not touched."""
        member = self.get_member(member_id)
        self._members = [m for m in self._members if m.id != member_id]

        if self.selected_member_id == member_id:
            self.selected_member_id = self._members[0].id if self._members else None
            self.insight = None

        self.logger.info("member_removed", member_id=member.id)
        self._sync_simulation()

    # Insights

    async def select_member(self, member_id: str) -> Result[HealthInsight, InsightError]:
        """Select a member and load its insight."""
        self.get_member(member_id)
        self.selected_member_id = member_id
        return await self.fetch_insights(member_id)

    async def refresh_insights(self) -> Result[HealthInsight, InsightError]:
        """Manual refresh for the selected member."""
        if self.selected_member_id is None:
            raise MemberNotFoundError("<none selected>")
        return await self.fetch_insights(self.selected_member_id)

    async def fetch_insights(self, member_id: str) -> Result[HealthInsight, InsightError]:
        """
        Request an insight from the member's vitals at call time.

        Concurrent calls are not de-duplicated: whichever finishes last wins.
        On failure the previously displayed insight is kept.
        """
        member = self.get_member(member_id)

        try:
            insight = await self.insight_requester.request_insights(member.snapshot())
        except InsightError as e:
            self.logger.warning("insight_fetch_failed", member_id=member_id, error=e.message)
            self.notify("error", "Failed to load AI insights")
            return Result.err(e)

        self.insight = insight
        return Result.ok(insight)

    # Alerts

    def take_alert_action(self, member_id: str, action: AlertAction) -> AlertActionRecord:
        member = self.get_member(member_id)
        record = self.alert_manager.record_action(member, action)
        self.notify("success", record.message)
        return record

    # Notifications

    def notify(self, level: NotificationLevel, message: str) -> None:
        self.notifications.append(Notification(level=level, message=message))

    def drain_notifications(self) -> list[Notification]:
        drained = list(self.notifications)
        self.notifications.clear()
        return drained

    # Simulation lifecycle

    @property
    def is_simulating(self) -> bool:
        return self._simulation_task is not None and not self._simulation_task.done()

    def _sync_simulation(self) -> None:
        """Start the simulation when members exist, cancel it when none remain."""
        if self._members and not self.is_simulating:
            self._simulation_task = asyncio.create_task(self._simulate())
        elif not self._members and self._simulation_task is not None:
            self._simulation_task.cancel()
            self._simulation_task = None

    async def _simulate(self) -> None:
        async for updated in self.simulator.run_continuously(lambda: self._members):
            previous, self._members = self._members, updated

            alerts = self.alert_manager.detect_new_alerts(previous, updated)
            if alerts:
                await self.alert_manager.dispatch_alerts(alerts)

    async def stop(self) -> None:
        """Cancel the simulation task and wait for it to finish."""
        task, self._simulation_task = self._simulation_task, None
        if task is None:
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        self.logger.info("dashboard_stopped")

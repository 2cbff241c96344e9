"""
Simulated wearable vitals.

Each tick perturbs every member independently:
- heart rate drifts by at most +/- max drift and is clamped to the configured range
- steps only ever increase
- status is re-rolled every tick, so an alert clears itself without caregiver action
"""

import asyncio
import random
from collections.abc import AsyncIterator, Callable

import structlog

from guardian.config import SimulatorConfig
from guardian.domain.models import LiveMember, MemberStatus, Vitals

logger = structlog.get_logger(__name__)


class VitalsSimulator:
    """Perturbs live vitals and decides alert status on a fixed interval."""

    def __init__(self, config: SimulatorConfig, rng: random.Random | None = None) -> None:
        self.config = config
        self.rng = rng or random.Random()
        self.logger = logger.bind(component="vitals_simulator")

    def next_heart_rate(self, current: int) -> int:
        drift = (self.rng.random() - 0.5) * 2 * self.config.heart_rate_max_drift
        clamped = max(
            self.config.heart_rate_min, min(self.config.heart_rate_max, current + drift)
        )
        return round(clamped)

    def next_steps(self, current: int) -> int:
        return current + self.rng.randrange(self.config.step_increment_bound)

    def next_status(self, heart_rate: int) -> MemberStatus:
        # Draw unconditionally so the random stream does not depend on heart rate.
        roll = self.rng.random()
        elevated = heart_rate > self.config.alert_heart_rate_threshold
        if elevated and roll < self.config.alert_probability:
            return MemberStatus.ALERT
        return MemberStatus.NORMAL

    def tick_member(self, member: LiveMember) -> LiveMember:
        heart_rate = self.next_heart_rate(member.vitals.heart_rate)
        steps = self.next_steps(member.vitals.steps)
        status = self.next_status(heart_rate)

        vitals = member.vitals.model_copy(update={"heart_rate": heart_rate, "steps": steps})
        return member.model_copy(update={"vitals": vitals, "status": status})

    def tick(self, members: list[LiveMember]) -> list[LiveMember]:
        """Advance every member by one tick. Order is preserved."""
        updated = [self.tick_member(member) for member in members]

        alerting = sum(1 for m in updated if m.is_alert)
        self.logger.debug("vitals_tick", members=len(updated), alerting=alerting)
        return updated

    async def run_continuously(
        self, members_provider: Callable[[], list[LiveMember]]
    ) -> AsyncIterator[list[LiveMember]]:
        """
        Yield a ticked member list every interval.

        Ends on its own once the provider returns an empty list, so there are no
        wakeups while nobody is being tracked. Cancel the consuming task to stop early.
        """
        self.logger.info(
            "vitals_simulation_started", interval_seconds=self.config.interval_seconds
        )

        try:
            while True:
                await asyncio.sleep(self.config.interval_seconds)

                members = members_provider()
                if not members:
                    self.logger.info("vitals_simulation_idle")
                    break

                yield self.tick(members)
        finally:
            self.logger.info("vitals_simulation_stopped")


def initial_vitals(rng: random.Random) -> Vitals:
    """Starting vitals attached to members loaded from the store."""
    return Vitals(
        heart_rate=75 + rng.randrange(10),
        bp_systolic=120 + rng.randrange(10),
        bp_diastolic=80 + rng.randrange(5),
        steps=rng.randrange(2000),
    )


def new_member_vitals() -> Vitals:
    """Vitals for a member that was just added."""
    return Vitals(heart_rate=75, bp_systolic=120, bp_diastolic=80, steps=0)

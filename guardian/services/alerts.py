"""Alert generation, dispatch and caregiver actions."""

import inspect
from collections import deque
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import structlog

from guardian.domain.models import AlertAction, AlertActionRecord, AlertEvent, LiveMember

logger = structlog.get_logger(__name__)

AlertHandler = Callable[[AlertEvent], Any]


class AlertManager:
    """Turns status transitions into alerts and records caregiver responses."""

    def __init__(
        self, handlers: list[AlertHandler] | None = None, history_size: int = 1000
    ) -> None:
        self.handlers: list[AlertHandler] = handlers or []
        self.alert_history: deque[AlertEvent] = deque(maxlen=history_size)
        self.action_history: deque[AlertActionRecord] = deque(maxlen=history_size)
        self.logger = logger.bind(component="alert_manager")

    def detect_new_alerts(
        self, previous: list[LiveMember], current: list[LiveMember]
    ) -> list[AlertEvent]:
        """Alerts for members that were not alerting before this tick."""
        was_alerting = {m.id for m in previous if m.is_alert}

        alerts = []
        for member in current:
            if not member.is_alert or member.id in was_alerting:
                continue

            alert = AlertEvent(
                timestamp=datetime.now(UTC),
                member_id=member.id,
                member_name=member.name,
                heart_rate=member.vitals.heart_rate,
                title="Action Required",
                description=(
                    f"{member.name}'s heart rate is elevated ({member.vitals.heart_rate} BPM). "
                    "Immediate attention may be needed."
                ),
            )
            alerts.append(alert)
            self.alert_history.append(alert)

            self.logger.info(
                "alert_generated",
                member_id=member.id,
                heart_rate=member.vitals.heart_rate,
            )

        return alerts

    async def dispatch_alerts(self, alerts: list[AlertEvent]) -> None:
        """Dispatch alerts to configured handlers (push, SMS, etc.)."""

        if not alerts:
            return

        handlers = self.handlers or [self._log_alert_handler]

        for alert in alerts:
            for handler in handlers:
                try:
                    if inspect.iscoroutinefunction(handler):
                        await handler(alert)
                    else:
                        handler(alert)
                except Exception as e:
                    self.logger.error(
                        "alert_dispatch_failed", error=str(e), member_id=alert.member_id
                    )

    def record_action(self, member: LiveMember, action: AlertAction) -> AlertActionRecord:
        record = AlertActionRecord(
            timestamp=datetime.now(UTC),
            member_id=member.id,
            member_name=member.name,
            action=action,
        )
        self.action_history.append(record)

        self.logger.info(
            "alert_action_taken",
            member_id=member.id,
            action=action.value,
            member_alerting=member.is_alert,
        )
        return record

    def _log_alert_handler(self, alert: AlertEvent) -> None:
        self.logger.warning(
            "member_alert",
            title=alert.title,
            member_name=alert.member_name,
            heart_rate=alert.heart_rate,
            description=alert.description,
        )

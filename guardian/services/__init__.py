"""
Core services for the dashboard.

This package contains the vitals simulation, insight retrieval, member storage,
alerting and the dashboard service that coordinates them.
"""

from .alerts import AlertManager
from .dashboard import DashboardService, DevicePairingRequiredError, MemberNotFoundError
from .device_pairing import DevicePairingService, PairedDevice
from .insights import InsightError, InsightRequester
from .member_store import InMemoryMemberStore, MemberStore
from .result import Result
from .vitals_simulator import VitalsSimulator

__all__ = [
    "AlertManager",
    "DashboardService",
    "DevicePairingRequiredError",
    "DevicePairingService",
    "InMemoryMemberStore",
    "InsightError",
    "InsightRequester",
    "MemberNotFoundError",
    "MemberStore",
    "PairedDevice",
    "Result",
    "VitalsSimulator",
]

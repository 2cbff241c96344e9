"""Simulated wearable discovery and pairing."""

import asyncio
import random
import string
from dataclasses import dataclass

import structlog

from guardian.config import DevicePairingConfig

logger = structlog.get_logger(__name__)

_DEVICE_SUFFIX_ALPHABET = string.digits + string.ascii_lowercase
_DEVICE_SUFFIX_LENGTH = 9


@dataclass(frozen=True)
class PairedDevice:
    device_id: str
    label: str


class DevicePairingService:
    """Pretends to search for a nearby wearable and hands back its identifier."""

    def __init__(self, config: DevicePairingConfig, rng: random.Random | None = None) -> None:
        self.config = config
        self.rng = rng or random.Random()
        self.logger = logger.bind(component="device_pairing")

    def new_device_id(self) -> str:
        suffix = "".join(
            self.rng.choice(_DEVICE_SUFFIX_ALPHABET) for _ in range(_DEVICE_SUFFIX_LENGTH)
        )
        return f"{self.config.device_prefix}-{suffix}"

    async def pair(self) -> PairedDevice:
        self.logger.info("device_search_started")
        await asyncio.sleep(self.config.pairing_delay_seconds)

        device = PairedDevice(device_id=self.new_device_id(), label=self.config.device_label)
        self.logger.info("device_paired", device_id=device.device_id)
        return device

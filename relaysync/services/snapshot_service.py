"""
Configuration snapshot builder.

A snapshot is rebuilt on every pull and never cached, so it always reflects
the latest saved policy and price array.
"""

import logging
from datetime import datetime
from typing import Optional

from .base_service import BaseService
from .schedule_compiler import compile_schedule
from ..models import ConfigurationSnapshot, DevicePolicy, ManualState
from ..repositories import DeviceRepository, PolicyRepository, PriceRepository
from ..utils.time_utils import SLOTS_PER_DAY, slot_index, utc_now

logger = logging.getLogger(__name__)


def override_schedule(policy: DevicePolicy, computed: list) -> list:
    """Replace the schedule wholesale for a forced manual state."""
    if policy.manual_override and policy.manual_state == ManualState.ON:
        return [True] * SLOTS_PER_DAY
    if policy.manual_override and policy.manual_state == ManualState.OFF:
        return [False] * SLOTS_PER_DAY
    return computed


class SnapshotService(BaseService):
    """Builds the configuration snapshot a device pulls."""

    def __init__(
        self,
        devices: Optional[DeviceRepository] = None,
        policies: Optional[PolicyRepository] = None,
        prices: Optional[PriceRepository] = None
    ):
        super().__init__(devices)
        self.policies = policies or PolicyRepository()
        self.prices = prices or PriceRepository()

    def build(self, device_id: str, now: Optional[datetime] = None) -> ConfigurationSnapshot:
        """
        Build a fresh snapshot for a registered device.

        Args:
            device_id: Registered device id.
            now: Build time (defaults to the current UTC time). Used for
                ``lastUpdated``, ``serverTime`` and ``serverSlot``.

        Returns:
            ConfigurationSnapshot: policy fields, 96-slot schedule, up to 96
            prices (96 zeros when no price data exists) and the server clock.

        Raises:
            UnknownDeviceError: If the id is not registered.
        """
        self.require_device(device_id)
        now = now or utc_now()

        policy = self.policies.get(device_id)
        prices = self.prices.get_today_prices()
        schedule = override_schedule(policy, compile_schedule(prices, policy))

        snapshot = ConfigurationSnapshot(
            **policy.model_dump(),
            device_id=str(device_id),
            schedule=schedule,
            prices=prices or [0.0] * SLOTS_PER_DAY,
            server_slot=slot_index(now),
            server_time=now,
            last_updated=now,
        )
        logger.debug(f"Built snapshot for device {device_id} (slot {snapshot.server_slot})")
        return snapshot

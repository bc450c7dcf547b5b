"""
Manual control and reconciliation.

Operator actions are logical ("turn the load on"). The wire command is the
physical relay state, inverted when the device policy has
``reversedControl`` set. Physical commands go through the tiered chain in
DeviceClient; when every tier fails the caller gets PhysicalControlFailure
and nothing is retried.
"""

import logging
from datetime import datetime
from typing import Optional

from .base_service import BaseService
from .device_client import DeviceClient
from .liveness_service import LivenessService
from .policy_service import PolicyService
from .schedule_compiler import compile_schedule, has_usable_prices
from ..exceptions import PhysicalControlFailure, RelaySyncError, ValidationFailure
from ..models import ControlResponse, DevicePolicy, ManualState, ReconcileResponse
from ..repositories import DeviceRepository, DeviceStatusStore, PriceRepository
from ..utils.time_utils import slot_index, utc_now

logger = logging.getLogger(__name__)

ACTIONS = ("on", "off", "clear")


def to_physical(logical_on: bool, reversed_control: bool) -> bool:
    return (not logical_on) if reversed_control else logical_on


def desired_logical_state(prices: list, policy: DevicePolicy, now: datetime) -> bool:
    """Logical state the automatic rules want for ``now``."""
    if not has_usable_prices(prices):
        return bool(policy.fallback_hours[now.hour])
    return compile_schedule(prices, policy)[slot_index(now)]


class ControlService(BaseService):
    """Applies operator commands and converges devices onto their schedule."""

    def __init__(
        self,
        devices: Optional[DeviceRepository] = None,
        policies: Optional[PolicyService] = None,
        prices: Optional[PriceRepository] = None,
        client: Optional[DeviceClient] = None,
        status_store: Optional[DeviceStatusStore] = None,
        liveness: Optional[LivenessService] = None
    ):
        super().__init__(devices)
        self.policies = policies or PolicyService(self.devices)
        self.prices = prices or PriceRepository()
        self.client = client or DeviceClient()
        self.status_store = status_store or DeviceStatusStore()
        self.liveness = liveness or LivenessService(
            self.devices, self.status_store, client=self.client
        )

    def validate_input(self, **kwargs) -> bool:
        action = kwargs.get("action")
        if action not in ACTIONS:
            raise ValidationFailure(f"Invalid action: {action!r} (expected one of {', '.join(ACTIONS)})")
        return True

    def _switch(self, device_id: str, host: str, physical_on: bool) -> str:
        try:
            tier = self.client.set_switch(host, physical_on)
        except RelaySyncError as e:
            logger.error(f"All control tiers failed for device {device_id}: {e}")
            raise PhysicalControlFailure(device_id, str(e)) from e
        self.status_store.update(device_id, switch_on=physical_on)
        return tier

    def control(self, device_id: str, action: str) -> ControlResponse:
        """
        Apply a manual ``on``/``off``/``clear`` command.

        ``on``/``off`` save ``manualOverride`` with the requested state so the
        device keeps it across syncs; ``clear`` releases the override.

        Raises:
            UnknownDeviceError: If the id is not registered.
            ValidationFailure: For an unknown action.
            PhysicalControlFailure: If every control tier failed.
        """
        device = self.require_device(device_id)
        self.validate_input(action=action)
        policy = self.policies.get_policy(device.id)

        if action == "clear":
            self.policies.save_policy(
                device.id, policy.model_copy(update={"manual_override": False, "manual_state": None})
            )
            try:
                tier = self.client.clear_override(device.host)
            except RelaySyncError as e:
                logger.error(f"Clearing override failed for device {device.id}: {e}")
                raise PhysicalControlFailure(device.id, str(e)) from e
            logger.info(f"Device {device.id} override cleared ({tier})")
            return ControlResponse(
                success=True, requested=action, performed="clearOverride", tier=tier,
                message=f"Device {device.id} requested clear, performed clearOverride"
            )

        self.policies.save_policy(
            device.id,
            policy.model_copy(update={"manual_override": True, "manual_state": ManualState(action)})
        )
        physical_on = to_physical(action == "on", policy.reversed_control)
        performed = "on" if physical_on else "off"
        tier = self._switch(device.id, device.host, physical_on)
        logger.info(f"Device {device.id} requested {action}, performed {performed} ({tier})")
        return ControlResponse(
            success=True, requested=action, performed=performed, tier=tier,
            message=f"Device {device.id} requested {action}, performed {performed}"
        )

    def reconcile(self, device_id: str, now: Optional[datetime] = None) -> ReconcileResponse:
        """
        Converge the relay onto the schedule for the current slot.

        Skipped under manual override. Issues at most one physical command
        and only when the polled relay state differs from the desired one.
        """
        device = self.require_device(device_id)
        policy = self.policies.get_policy(device.id)
        if policy.manual_override:
            return ReconcileResponse(
                success=False, message="Manual override active; reconciliation skipped",
                reversed_control=policy.reversed_control
            )

        now = now or utc_now()
        should_be_on = desired_logical_state(self.prices.get_prices(), policy, now)
        physical_should_be_on = to_physical(should_be_on, policy.reversed_control)

        poll = self.liveness.poll_device(device.id)
        if not poll.reachable or poll.switch_on is None:
            return ReconcileResponse(
                success=False, message=f"Device unreachable; reconciliation skipped ({poll.error})",
                should_be_on=should_be_on, physical_should_be_on=physical_should_be_on,
                reversed_control=policy.reversed_control
            )

        if poll.switch_on == physical_should_be_on:
            return ReconcileResponse(
                success=True, message="Already in desired state",
                should_be_on=should_be_on, physical_should_be_on=physical_should_be_on,
                previously_on=poll.switch_on, now_on=poll.switch_on,
                reversed_control=policy.reversed_control
            )

        self._switch(device.id, device.host, physical_should_be_on)
        logger.info(
            f"Reconciled device {device.id}: relay {'on' if poll.switch_on else 'off'} -> "
            f"{'on' if physical_should_be_on else 'off'}"
        )
        return ReconcileResponse(
            success=True, message="Reconciliation performed",
            should_be_on=should_be_on, physical_should_be_on=physical_should_be_on,
            previously_on=poll.switch_on, now_on=physical_should_be_on,
            reversed_control=policy.reversed_control
        )

    def reconcile_all(self, now: Optional[datetime] = None) -> int:
        """Reconcile every device; returns how many relays were switched."""
        switched = 0
        for device in self.devices.list_devices():
            try:
                result = self.reconcile(device.id, now)
                if result.previously_on is not None and result.previously_on != result.now_on:
                    switched += 1
            except Exception as e:
                logger.error(f"Reconciliation failed for device {device.id}: {e}")
        return switched

"""
Best-effort push-notify with a per-device cooldown.

A push only asks the device to pull now; correctness never depends on it
because every device also pulls on its own cadence. The cooldown starts at
``push_cooldown_min``, doubles after every failed round up to
``push_cooldown_max`` and drops back to the minimum after any success.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from .base_service import BaseService
from .device_client import DeviceClient
from ..config import SyncConfig
from ..exceptions import RelaySyncError
from ..repositories import DeviceRepository

logger = logging.getLogger(__name__)


@dataclass
class PushState:
    backoff: float
    last_attempt: Optional[float] = None
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


class PushService(BaseService):
    """Sends wake-up notifications to devices after a policy change."""

    def __init__(
        self,
        devices: Optional[DeviceRepository] = None,
        client: Optional[DeviceClient] = None,
        config: Optional[SyncConfig] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        super().__init__(devices)
        self.config = config or SyncConfig()
        self.client = client or DeviceClient(timeout=self.config.device_timeout)
        self._clock = clock
        self._states: Dict[str, PushState] = {}
        self._states_lock = threading.Lock()

    def _state(self, device_id: str) -> PushState:
        with self._states_lock:
            state = self._states.get(device_id)
            if state is None:
                state = PushState(backoff=self.config.push_cooldown_min)
                self._states[device_id] = state
            return state

    def cooldown(self, device_id: str) -> float:
        """Current cooldown for a device, in seconds."""
        return self._state(str(device_id)).backoff

    def forget(self, device_id: str) -> None:
        with self._states_lock:
            self._states.pop(str(device_id), None)

    def notify(self, device_id: str) -> bool:
        """
        Nudge one device to re-pull its configuration.

        Returns True when a notify endpoint answered, False when the device
        is unknown, cooling down or unreachable. Never raises.
        """
        device_id = str(device_id)
        device = self.devices.get(device_id)
        if device is None:
            logger.warning(f"Push skipped: unknown device {device_id}")
            return False

        state = self._state(device_id)
        with state.lock:
            now = self._clock()
            if state.last_attempt is not None and now - state.last_attempt < state.backoff:
                remaining = state.backoff - (now - state.last_attempt)
                logger.info(f"Push to device {device_id} skipped, cooling down ({remaining:.0f}s left)")
                return False

            state.last_attempt = now
            try:
                tier = self.client.notify(device.host)
            except RelaySyncError as e:
                state.backoff = min(state.backoff * 2, self.config.push_cooldown_max)
                logger.warning(
                    f"Push to device {device_id} at {device.host} failed ({e}), "
                    f"backing off {state.backoff:g}s"
                )
                return False

            state.backoff = self.config.push_cooldown_min
            logger.info(f"Push sent to device {device_id} at {device.host} ({tier})")
            return True

    def notify_all(self) -> Dict[str, bool]:
        """Push to every registered device, one at a time."""
        results = {}
        for device in self.devices.list_devices():
            results[device.id] = self.notify(device.id)
        return results

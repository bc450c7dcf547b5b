"""
Heartbeat ingestion.
"""

import logging
from datetime import datetime
from typing import Optional

from .base_service import BaseService
from ..models import DeviceRuntimeStatus, HeartbeatPayload
from ..repositories import DeviceRepository, DeviceStatusStore, NotificationRepository
from ..utils.time_utils import normalize_sync_time, utc_now

logger = logging.getLogger(__name__)


class HeartbeatService(BaseService):
    """Records device heartbeats into the runtime status store."""

    def __init__(
        self,
        devices: Optional[DeviceRepository] = None,
        status_store: Optional[DeviceStatusStore] = None,
        notifications: Optional[NotificationRepository] = None
    ):
        super().__init__(devices)
        self.notifications = notifications or NotificationRepository()
        self.status_store = status_store or DeviceStatusStore(self.notifications)

    def ingest(self, device_id: str, payload: HeartbeatPayload,
               now: Optional[datetime] = None) -> DeviceRuntimeStatus:
        """
        Accept one heartbeat.

        Marks the device online, records the heartbeat time (also in the
        durable dedup store) and clears any outstanding offline alert.
        ``lastSync`` is converted to an absolute time using the device's own
        uptime as reference, see ``normalize_sync_time``.

        Raises:
            UnknownDeviceError: If the id is not registered.
        """
        self.require_device(device_id)
        now = now or utc_now()

        changes = {
            "online": True,
            "last_heartbeat": now,
            "last_notified": None,
            "error": None,
        }
        if payload.switch_on is not None:
            changes["switch_on"] = payload.switch_on
        if payload.last_price is not None:
            changes["last_price"] = payload.last_price
        if payload.last_config_update is not None:
            changes["last_config_update"] = payload.last_config_update
        if payload.agent_version is not None:
            changes["agent_version"] = payload.agent_version

        last_sync = normalize_sync_time(now, payload.uptime, payload.last_sync)
        if last_sync is not None:
            changes["last_sync"] = last_sync

        if self.notifications.clear_device_notified(device_id):
            logger.info(f"Device {device_id} is heartbeating again, offline alert cleared")
        self.notifications.record_heartbeat(device_id, now)

        return self.status_store.update(device_id, **changes)

"""
In-memory runtime status store.

One entry per device id, created lazily on first access. A new entry is
seeded from the persisted notification record so that a restarted
coordinator still knows when each device last heartbeated and whether an
offline alert is outstanding. Entries are only removed when the device is
deleted.
"""

import threading
from typing import Dict, Optional

from ..models import DeviceRuntimeStatus
from .notification_repository import NotificationRepository


class DeviceStatusStore:
    """Thread-safe map of device id -> DeviceRuntimeStatus."""

    def __init__(self, notifications: Optional[NotificationRepository] = None):
        self._notifications = notifications
        self._statuses: Dict[str, DeviceRuntimeStatus] = {}
        self._lock = threading.Lock()

    def _ensure(self, device_id: str) -> DeviceRuntimeStatus:
        status = self._statuses.get(device_id)
        if status is None:
            status = DeviceRuntimeStatus()
            if self._notifications is not None:
                record = self._notifications.get_device_record(device_id)
                status = status.model_copy(update={
                    "last_heartbeat": record.last_heartbeat,
                    "last_notified": record.last_notified,
                })
            self._statuses[device_id] = status
        return status

    def get(self, device_id: str) -> DeviceRuntimeStatus:
        """Copy of the current status (created on first access)."""
        with self._lock:
            return self._ensure(str(device_id)).model_copy()

    def update(self, device_id: str, **changes) -> DeviceRuntimeStatus:
        """Apply field changes for one device and return the new status."""
        device_id = str(device_id)
        with self._lock:
            status = self._ensure(device_id).model_copy(update=changes)
            self._statuses[device_id] = status
            return status.model_copy()

    def remove(self, device_id: str) -> None:
        with self._lock:
            self._statuses.pop(str(device_id), None)

    def snapshot(self) -> Dict[str, DeviceRuntimeStatus]:
        """Copies of all known statuses."""
        with self._lock:
            return {device_id: status.model_copy() for device_id, status in self._statuses.items()}

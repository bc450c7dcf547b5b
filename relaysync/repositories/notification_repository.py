"""
Durable notification dedup store.

Per-device rows keep the time the last "offline" alert was sent together
with the last heartbeat seen, so that the alert rule gives the same answer
after a coordinator restart. Named system rows (``coordinator``,
``price_feed``) keep the same "last alerted at" value for health checks that
are not tied to a device.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import pandas as pd

from .base_repository import BaseRepository
from ..utils.time_utils import parse_timestamp

logger = logging.getLogger(__name__)

PRICE_FEED_RECORD = "price_feed"
COORDINATOR_RECORD = "coordinator"


@dataclass
class DeviceNotificationRecord:
    last_notified: Optional[datetime] = None
    last_heartbeat: Optional[datetime] = None


class NotificationRepository(BaseRepository):
    """
    Repository for alert dedup timestamps.

    ``find_all`` and ``find_by_id`` complete the ``BaseRepository`` interface;
    the services read records through ``get_device_record``. ``count`` is the
    number of unresolved device alerts reported by ``/metrics``.
    """

    def find_all(self) -> pd.DataFrame:
        return self.db_manager.execute_query(
            "SELECT device_id, last_notified, last_heartbeat FROM device_notifications"
        )

    def find_by_id(self, record_id: str) -> Optional[pd.Series]:
        df = self.db_manager.execute_query(
            "SELECT device_id, last_notified, last_heartbeat FROM device_notifications "
            "WHERE device_id = ?",
            [str(record_id)]
        )
        return df.iloc[0] if not df.empty else None

    def count(self) -> int:
        return self.db_manager.execute_scalar(
            "SELECT COUNT(*) FROM device_notifications WHERE last_notified IS NOT NULL"
        ) or 0

    # Per-device records

    def get_device_record(self, device_id: str) -> DeviceNotificationRecord:
        row = self.db_manager.fetch_one(
            "SELECT last_notified, last_heartbeat FROM device_notifications WHERE device_id = ?",
            [str(device_id)]
        )
        if row is None:
            return DeviceNotificationRecord()
        return DeviceNotificationRecord(
            last_notified=parse_timestamp(row["last_notified"]),
            last_heartbeat=parse_timestamp(row["last_heartbeat"]),
        )

    def set_device_notified(self, device_id: str, when: datetime) -> None:
        self.db_manager.execute_update(
            "INSERT INTO device_notifications (device_id, last_notified) VALUES (?, ?) "
            "ON CONFLICT(device_id) DO UPDATE SET last_notified = excluded.last_notified",
            [str(device_id), when.isoformat()]
        )

    def clear_device_notified(self, device_id: str) -> bool:
        """Clear the alert timestamp. Returns True if an alert had been recorded."""
        return self.db_manager.execute_update(
            "UPDATE device_notifications SET last_notified = NULL "
            "WHERE device_id = ? AND last_notified IS NOT NULL",
            [str(device_id)]
        ) > 0

    def record_heartbeat(self, device_id: str, when: datetime) -> None:
        self.db_manager.execute_update(
            "INSERT INTO device_notifications (device_id, last_heartbeat) VALUES (?, ?) "
            "ON CONFLICT(device_id) DO UPDATE SET last_heartbeat = excluded.last_heartbeat",
            [str(device_id), when.isoformat()]
        )

    def delete_device(self, device_id: str) -> None:
        self.db_manager.execute_update(
            "DELETE FROM device_notifications WHERE device_id = ?", [str(device_id)]
        )

    # System records

    def get_system_notified(self, name: str) -> Optional[datetime]:
        return parse_timestamp(self.db_manager.execute_scalar(
            "SELECT last_notified FROM system_notifications WHERE name = ?", [name]
        ))

    def set_system_notified(self, name: str, when: datetime) -> None:
        self.db_manager.execute_update(
            "INSERT OR REPLACE INTO system_notifications (name, last_notified) VALUES (?, ?)",
            [name, when.isoformat()]
        )

    def clear_system_notified(self, name: str) -> bool:
        """Disarm a system record. Returns True if it was armed."""
        return self.db_manager.execute_update(
            "DELETE FROM system_notifications WHERE name = ?", [name]
        ) > 0

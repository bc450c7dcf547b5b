"""
Repository for the device registry.
"""

import logging
from typing import List, Optional

import pandas as pd

from .base_repository import BaseRepository
from ..models import Device, DeviceCreate, DeviceUpdate

logger = logging.getLogger(__name__)


class DeviceRepository(BaseRepository):
    """Repository for registered relay devices."""

    def find_all(self) -> pd.DataFrame:
        """Find all devices, numeric ids in numeric order."""
        return self.db_manager.execute_query(
            "SELECT id, name, host, description FROM devices "
            "ORDER BY CAST(id AS INTEGER), id"
        )

    def find_by_id(self, record_id: str) -> Optional[pd.Series]:
        """Find device by id."""
        df = self.db_manager.execute_query(
            "SELECT id, name, host, description FROM devices WHERE id = ?",
            [str(record_id)]
        )
        return df.iloc[0] if not df.empty else None

    def count(self) -> int:
        """Count registered devices."""
        return self.db_manager.execute_scalar("SELECT COUNT(*) FROM devices") or 0

    def list_devices(self) -> List[Device]:
        df = self.find_all()
        return [self._to_model(row) for _, row in df.iterrows()]

    def get(self, device_id: str) -> Optional[Device]:
        row = self.find_by_id(device_id)
        return self._to_model(row) if row is not None else None

    def exists(self, device_id: str) -> bool:
        return bool(self.db_manager.execute_scalar(
            "SELECT COUNT(*) FROM devices WHERE id = ?", [str(device_id)]
        ))

    def next_id(self) -> str:
        """Next integer after the highest numeric id in use ("1" when empty)."""
        ids = pd.to_numeric(self.find_all()["id"], errors="coerce").dropna()
        return str(int(ids.max()) + 1) if not ids.empty else "1"

    def create(self, data: DeviceCreate) -> Device:
        device = Device(id=self.next_id(), **data.model_dump())
        self.db_manager.execute_update(
            "INSERT INTO devices (id, name, host, description) VALUES (?, ?, ?, ?)",
            [device.id, device.name, device.host, device.description]
        )
        logger.info(f"Registered device {device.id} ({device.name} @ {device.host})")
        return device

    def update(self, device_id: str, data: DeviceUpdate) -> Optional[Device]:
        current = self.get(device_id)
        if current is None:
            return None
        changes = data.model_dump(exclude_none=True)
        device = Device(**{**current.model_dump(), **changes})
        self.db_manager.execute_update(
            "UPDATE devices SET name = ?, host = ?, description = ? WHERE id = ?",
            [device.name, device.host, device.description, device.id]
        )
        return device

    def delete(self, device_id: str) -> bool:
        """Delete a device together with its saved policy and notification record."""
        if not self.exists(device_id):
            return False
        self.db_manager.execute_many([
            ("DELETE FROM devices WHERE id = ?", [str(device_id)]),
            ("DELETE FROM device_policies WHERE device_id = ?", [str(device_id)]),
            ("DELETE FROM device_notifications WHERE device_id = ?", [str(device_id)]),
        ])
        logger.info(f"Deleted device {device_id} and its persisted state")
        return True

    @staticmethod
    def _to_model(row: pd.Series) -> Device:
        return Device(
            id=str(row["id"]),
            name=row["name"],
            host=row["host"],
            description=row["description"] or ""
        )

"""
Repository for per-device policies, stored as JSON documents.
"""

import logging
from typing import Optional

import pandas as pd
from pydantic import ValidationError

from .base_repository import BaseRepository
from ..models import DevicePolicy
from ..utils.time_utils import utc_now

logger = logging.getLogger(__name__)


class PolicyRepository(BaseRepository):
    """Repository for saved device policies."""

    def find_all(self) -> pd.DataFrame:
        return self.db_manager.execute_query(
            "SELECT device_id, policy, updated_at FROM device_policies ORDER BY device_id"
        )

    def find_by_id(self, record_id: str) -> Optional[pd.Series]:
        df = self.db_manager.execute_query(
            "SELECT device_id, policy, updated_at FROM device_policies WHERE device_id = ?",
            [str(record_id)]
        )
        return df.iloc[0] if not df.empty else None

    def count(self) -> int:
        return self.db_manager.execute_scalar("SELECT COUNT(*) FROM device_policies") or 0

    def get(self, device_id: str) -> DevicePolicy:
        """Saved policy for ``device_id``, or the default policy when none is stored."""
        row = self.find_by_id(device_id)
        if row is None:
            return DevicePolicy()
        try:
            return DevicePolicy.model_validate_json(row["policy"])
        except ValidationError as e:
            logger.error(f"Stored policy for device {device_id} is invalid, using defaults: {e}")
            return DevicePolicy()

    def save(self, device_id: str, policy: DevicePolicy) -> DevicePolicy:
        self.db_manager.execute_update(
            "INSERT OR REPLACE INTO device_policies (device_id, policy, updated_at) VALUES (?, ?, ?)",
            [str(device_id), policy.model_dump_json(by_alias=True), utc_now().isoformat()]
        )
        return policy

    def delete(self, device_id: str) -> bool:
        return self.db_manager.execute_update(
            "DELETE FROM device_policies WHERE device_id = ?", [str(device_id)]
        ) > 0

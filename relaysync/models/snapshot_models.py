"""
Configuration snapshot: the versioned bundle a device pulls.
"""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import Field

from .policy_models import DevicePolicy


class ConfigurationSnapshot(DevicePolicy):
    """Model for one pulled configuration (policy + schedule + prices + server clock)."""
    device_id: str
    # Element types are checked by the agent's data validation, not here,
    # so a snapshot with bad data still delivers its policy fields.
    schedule: List[Any] = Field(default_factory=list)
    prices: List[Any] = Field(default_factory=list)
    server_slot: Optional[int] = Field(None, ge=0)
    server_time: Optional[datetime] = None
    last_updated: datetime  # version stamp, compared for freshness

    @property
    def policy(self) -> DevicePolicy:
        return DevicePolicy.model_validate(
            self.model_dump(include=set(DevicePolicy.model_fields))
        )

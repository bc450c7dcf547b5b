"""
Domain models for per-device scheduling policy.
"""

from enum import Enum
from typing import List, Optional

from pydantic import Field, field_validator

from .base import CamelModel

HOURS_PER_DAY = 24


class TimeFrame(str, Enum):
    """Aggregation width of one scheduling period."""
    FIFTEEN_MIN = "15min"
    THIRTY_MIN = "30min"
    ONE_HOUR = "1hour"


class ManualState(str, Enum):
    """Forced logical state while a manual override is active."""
    ON = "on"
    OFF = "off"


def default_fallback_hours() -> List[bool]:
    return [False] * HOURS_PER_DAY


class DevicePolicy(CamelModel):
    """Model for the saved policy of one device."""
    min_price: float = 0.05  # c/kWh, periods below are forced ON
    # c/kWh, periods above are forced OFF; None means no ceiling
    max_price: Optional[float] = Field(0.20, ge=0)
    num_cheapest: int = Field(4, ge=0)  # cheapest periods per day
    time_frame: TimeFrame = TimeFrame.FIFTEEN_MIN
    manual_override: bool = False
    # None while overridden means "hold the current relay state"
    manual_state: Optional[ManualState] = None
    reversed_control: bool = False
    fallback_hours: List[bool] = Field(default_factory=default_fallback_hours)

    @field_validator("fallback_hours")
    @classmethod
    def _fallback_hours_length(cls, value: List[bool]) -> List[bool]:
        if len(value) != HOURS_PER_DAY:
            raise ValueError(f"fallbackHours must have {HOURS_PER_DAY} entries, got {len(value)}")
        return value

    @property
    def effective_max_price(self) -> float:
        return float("inf") if self.max_price is None else self.max_price

"""
Price models for the two-day 15-minute price array.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from .base import CamelModel


class PricePoint(CamelModel):
    """Model for one 15-minute slot price."""
    time: datetime
    price: float  # c/kWh incl. VAT; 0.0 marks a slot missing from the feed


class PriceArrayResponse(CamelModel):
    """Model for the stored price array."""
    points: List[PricePoint]
    count: int
    last_refresh: Optional[datetime] = None


class PriceRefreshResponse(BaseModel):
    """Model for a manual price refresh result."""
    success: bool
    slots: int
    non_zero: int
    message: str

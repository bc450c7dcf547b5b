"""
Response and request models for API endpoints.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel

from .base import CamelModel
from .device_models import Device, DeviceRuntimeStatus


class ControlRequest(BaseModel):
    """Model for a manual control request."""
    id: str
    action: str  # on, off or clear


class ControlResponse(CamelModel):
    """Model for manual control response."""
    success: bool
    requested: str
    performed: str
    tier: str
    message: str


class ReconcileResponse(CamelModel):
    """Model for reconciliation response."""
    success: bool
    message: str
    should_be_on: Optional[bool] = None
    physical_should_be_on: Optional[bool] = None
    previously_on: Optional[bool] = None
    now_on: Optional[bool] = None
    reversed_control: bool = False


class HeartbeatResponse(BaseModel):
    """Model for heartbeat acknowledgement."""
    status: str


class DeviceListResponse(BaseModel):
    """Model for the registered device list."""
    devices: List[Device]
    count: int


class StatusResponse(BaseModel):
    """Model for the aggregated runtime status map."""
    devices: Dict[str, DeviceRuntimeStatus]


class APIInfo(BaseModel):
    """Model for API information."""
    message: str
    version: str
    endpoints: dict


class HealthResponse(BaseModel):
    """Model for health check response."""
    status: str  # healthy, degraded or unhealthy
    service: str
    timestamp: datetime
    price_feed_age_seconds: Optional[float] = None
    devices_total: int = 0
    devices_online: int = 0
    recent_heartbeats: int = 0

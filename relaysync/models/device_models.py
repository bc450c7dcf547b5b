"""
Domain models for registered devices and their runtime status.
"""

from datetime import datetime
from typing import Optional

from pydantic import field_validator

from .base import CamelModel
from ..utils.validation import is_valid_host


class DeviceCreate(CamelModel):
    """Model for registering or updating a device."""
    name: str
    host: str  # IPv4 address or DNS hostname
    description: str = ""

    @field_validator("host")
    @classmethod
    def _validate_host(cls, value: str) -> str:
        value = value.strip()
        if not is_valid_host(value):
            raise ValueError("Invalid IP/hostname")
        return value

    @field_validator("name")
    @classmethod
    def _validate_name(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Name must not be empty")
        return value.strip()


class DeviceUpdate(CamelModel):
    """Model for a partial device update. Omitted fields are kept."""
    name: Optional[str] = None
    host: Optional[str] = None
    description: Optional[str] = None

    @field_validator("host")
    @classmethod
    def _validate_host(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.strip()
        if not is_valid_host(value):
            raise ValueError("Invalid IP/hostname")
        return value


class Device(DeviceCreate):
    """Model for a registered device."""
    id: str


class DeviceRuntimeStatus(CamelModel):
    """Coordinator-side view of one device's operational state."""
    online: bool = False
    last_heartbeat: Optional[datetime] = None
    switch_on: bool = False  # physical relay state
    last_price: Optional[float] = None
    last_sync: Optional[datetime] = None
    last_checked: Optional[datetime] = None
    last_config_update: Optional[str] = None
    agent_version: Optional[str] = None
    # None until the first RPC poll has been attempted
    rpc_reachable: Optional[bool] = None
    error: Optional[str] = None
    last_notified: Optional[datetime] = None


class HeartbeatPayload(CamelModel):
    """Telemetry reported periodically by a device agent."""
    uptime: Optional[float] = None  # seconds since device boot
    switch_on: Optional[bool] = None
    last_price: Optional[float] = None
    server_status: Optional[bool] = None
    # uptime value at last sync, or an absolute epoch (s or ms)
    last_sync: Optional[float] = None
    last_config_update: Optional[str] = None
    agent_version: Optional[str] = None


class DeviceStatusPoll(CamelModel):
    """Result of a direct RPC status poll."""
    reachable: bool
    working: bool = False
    switch_on: Optional[bool] = None
    last_checked: datetime
    error: Optional[str] = None

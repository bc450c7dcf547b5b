"""
Models package for API data structures.
Imports all models for easy access.
"""

# Policy models
from .policy_models import DevicePolicy, ManualState, TimeFrame

# Device models
from .device_models import (
    Device,
    DeviceCreate,
    DeviceRuntimeStatus,
    DeviceStatusPoll,
    DeviceUpdate,
    HeartbeatPayload
)

# Price models
from .price_models import PriceArrayResponse, PricePoint, PriceRefreshResponse

# Snapshot models
from .snapshot_models import ConfigurationSnapshot

# Response models
from .response_models import (
    APIInfo,
    ControlRequest,
    ControlResponse,
    DeviceListResponse,
    HealthResponse,
    HeartbeatResponse,
    ReconcileResponse,
    StatusResponse
)

__all__ = [
    # Policy models
    "DevicePolicy",
    "ManualState",
    "TimeFrame",

    # Device models
    "Device",
    "DeviceCreate",
    "DeviceRuntimeStatus",
    "DeviceStatusPoll",
    "DeviceUpdate",
    "HeartbeatPayload",

    # Price models
    "PriceArrayResponse",
    "PricePoint",
    "PriceRefreshResponse",

    # Snapshot models
    "ConfigurationSnapshot",

    # Response models
    "APIInfo",
    "ControlRequest",
    "ControlResponse",
    "DeviceListResponse",
    "HealthResponse",
    "HeartbeatResponse",
    "ReconcileResponse",
    "StatusResponse"
]

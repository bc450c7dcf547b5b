"""
Services package for business logic layer.
Imports all services for easy access.
"""

# Base service
from .base_service import BaseService

# Individual services
from .control_service import ControlService
from .device_client import DeviceClient
from .device_service import DeviceService
from .heartbeat_service import HeartbeatService
from .liveness_service import LivenessService
from .notification_service import NotificationService
from .policy_service import PolicyService
from .price_feed_service import PriceFeedService
from .push_service import PushService
from .snapshot_service import SnapshotService

# Wiring and background jobs
from .container import ServiceContainer
from .scheduler_service import build_jobs, lifespan

__all__ = [
    # Base service
    "BaseService",

    # Individual services
    "ControlService",
    "DeviceClient",
    "DeviceService",
    "HeartbeatService",
    "LivenessService",
    "NotificationService",
    "PolicyService",
    "PriceFeedService",
    "PushService",
    "SnapshotService",

    # Wiring and background jobs
    "ServiceContainer",
    "build_jobs",
    "lifespan"
]

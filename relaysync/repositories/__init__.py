"""
Repository package for data access layer.
"""

from .base_repository import BaseRepository
from .device_repository import DeviceRepository
from .notification_repository import (
    COORDINATOR_RECORD,
    PRICE_FEED_RECORD,
    DeviceNotificationRecord,
    NotificationRepository
)
from .policy_repository import PolicyRepository
from .price_repository import PriceRepository
from .status_store import DeviceStatusStore

__all__ = [
    "BaseRepository",
    "DeviceRepository",
    "DeviceNotificationRecord",
    "NotificationRepository",
    "PolicyRepository",
    "PriceRepository",
    "DeviceStatusStore",
    "COORDINATOR_RECORD",
    "PRICE_FEED_RECORD"
]

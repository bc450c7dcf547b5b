"""
Wiring of the coordinator's stores and services.

One ServiceContainer is created per application. Every service receives the
shared stores by reference, so the in-memory runtime status and the push
cooldowns exist exactly once per process.
"""

from typing import Optional

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
from ..config import ApplicationConfig, DatabaseManager, app_config
from ..repositories import (
    DeviceRepository,
    DeviceStatusStore,
    NotificationRepository,
    PolicyRepository,
    PriceRepository
)


class ServiceContainer:
    """Holds one instance of every coordinator service."""

    def __init__(
        self,
        database: Optional[DatabaseManager] = None,
        config: Optional[ApplicationConfig] = None,
        device_client: Optional[DeviceClient] = None,
        notifier: Optional[NotificationService] = None,
        price_feed: Optional[PriceFeedService] = None
    ):
        self.config = config or app_config

        # Stores
        self.device_repository = DeviceRepository(database)
        self.policy_repository = PolicyRepository(database)
        self.price_repository = PriceRepository(database)
        self.notification_repository = NotificationRepository(database)
        self.status_store = DeviceStatusStore(self.notification_repository)

        # Collaborators
        self.device_client = device_client or DeviceClient(timeout=self.config.sync.device_timeout)
        self.notifier = notifier or NotificationService(self.config.notifications)
        self.price_feed = price_feed or PriceFeedService(self.price_repository, self.config.price_feed)

        # Services
        self.push = PushService(self.device_repository, self.device_client, self.config.sync)
        self.devices = DeviceService(self.device_repository, self.status_store, self.push)
        self.policies = PolicyService(self.device_repository, self.policy_repository, self.push)
        self.snapshots = SnapshotService(
            self.device_repository, self.policy_repository, self.price_repository
        )
        self.heartbeats = HeartbeatService(
            self.device_repository, self.status_store, self.notification_repository
        )
        self.liveness = LivenessService(
            self.device_repository,
            self.status_store,
            self.notification_repository,
            self.device_client,
            self.notifier,
            self.price_repository,
            self.config.sync,
            self.config.price_feed
        )
        self.control = ControlService(
            self.device_repository,
            self.policies,
            self.price_repository,
            self.device_client,
            self.status_store,
            self.liveness
        )

"""
Liveness monitor: RPC status polls, staleness sweep and alert dedup.

Rules:
    - A successful RPC poll is ground truth: the device is online no matter
      how old its last heartbeat is.
    - Otherwise (poll failed or no poll yet) a device is stale when its last
      heartbeat is older than ``heartbeat_stale_after``, or when it never
      heartbeated and its last poll failed.
    - A stale device alerts when there is no alert record yet, or the
      record is older than the last known heartbeat. The record is written
      after the alert and cleared by the next heartbeat or successful poll.

Because heartbeat times and alert records are both persisted, the rules give
the same answer after a coordinator restart.
"""

import logging
from datetime import datetime
from typing import List, Optional

from .base_service import BaseService
from .device_client import DeviceClient
from .notification_service import NotificationService
from ..config import PriceFeedConfig, SyncConfig
from ..models import Device, DeviceRuntimeStatus, DeviceStatusPoll
from ..repositories import (
    PRICE_FEED_RECORD,
    DeviceNotificationRecord,
    DeviceRepository,
    DeviceStatusStore,
    NotificationRepository,
    PriceRepository
)
from ..utils.time_utils import utc_now

logger = logging.getLogger(__name__)


def is_stale(status: DeviceRuntimeStatus, now: datetime, threshold: float) -> bool:
    if status.rpc_reachable:
        return False
    if status.last_heartbeat is None:
        # Never heard from and never polled: nothing to judge yet
        return status.rpc_reachable is False
    return (now - status.last_heartbeat).total_seconds() > threshold


def should_alert(record: DeviceNotificationRecord, last_heartbeat: Optional[datetime]) -> bool:
    if record.last_notified is None:
        return True
    return last_heartbeat is not None and record.last_notified < last_heartbeat


class LivenessService(BaseService):
    """Tracks device reachability and alerts once per outage."""

    def __init__(
        self,
        devices: Optional[DeviceRepository] = None,
        status_store: Optional[DeviceStatusStore] = None,
        notifications: Optional[NotificationRepository] = None,
        client: Optional[DeviceClient] = None,
        notifier: Optional[NotificationService] = None,
        prices: Optional[PriceRepository] = None,
        sync_config: Optional[SyncConfig] = None,
        price_config: Optional[PriceFeedConfig] = None
    ):
        super().__init__(devices)
        self.sync_config = sync_config or SyncConfig()
        self.price_config = price_config or PriceFeedConfig()
        self.notifications = notifications or NotificationRepository()
        self.status_store = status_store or DeviceStatusStore(self.notifications)
        self.client = client or DeviceClient(timeout=self.sync_config.device_timeout)
        self.notifier = notifier or NotificationService()
        self.prices = prices or PriceRepository()

    # RPC status poll

    def poll_device(self, device_id: str) -> DeviceStatusPoll:
        """
        Poll one device over RPC and fold the result into its runtime status.

        Raises:
            UnknownDeviceError: If the id is not registered.
        """
        device = self.require_device(device_id)
        poll = self.client.get_status(device.host)

        changes = {"rpc_reachable": poll.reachable, "last_checked": poll.last_checked}
        if poll.reachable:
            changes.update(online=True, error=None, last_notified=None)
            if poll.switch_on is not None:
                changes["switch_on"] = poll.switch_on
            if self.notifications.clear_device_notified(device.id):
                logger.info(f"Device {device.id} reachable over RPC again, offline alert cleared")
        else:
            changes["error"] = poll.error
            logger.debug(f"Device {device.id} not reachable over RPC: {poll.error}")

        self.status_store.update(device.id, **changes)
        return poll

    def poll_all(self) -> int:
        """Poll every registered device. Returns how many were reachable."""
        reachable = 0
        for device in self.devices.list_devices():
            try:
                if self.poll_device(device.id).reachable:
                    reachable += 1
            except Exception as e:
                logger.error(f"Status poll failed for device {device.id}: {e}")
        return reachable

    # Staleness sweep

    def check_device(self, device: Device, now: Optional[datetime] = None) -> bool:
        """Evaluate one device. Returns True when an alert was sent."""
        now = now or utc_now()
        status = self.status_store.get(device.id)
        if not is_stale(status, now, self.sync_config.heartbeat_stale_after):
            return False

        record = self.notifications.get_device_record(device.id)
        last_heartbeat = status.last_heartbeat or record.last_heartbeat
        if not should_alert(record, last_heartbeat):
            self.status_store.update(device.id, online=False)
            return False

        if last_heartbeat is None:
            detail = "it has never sent a heartbeat"
        else:
            minutes = (now - last_heartbeat).total_seconds() / 60
            detail = f"last heartbeat {minutes:.0f} min ago"
        self.notifier.send(f"⚠️ Device {device.name} ({device.id} @ {device.host}) is offline: {detail}")

        self.notifications.set_device_notified(device.id, now)
        self.status_store.update(device.id, online=False, last_notified=now)
        logger.warning(f"Device {device.id} is stale ({detail}), alert sent")
        return True

    def sweep(self, now: Optional[datetime] = None) -> List[str]:
        """Check every registered device; one device's failure never stops the sweep."""
        now = now or utc_now()
        alerted = []
        for device in self.devices.list_devices():
            try:
                if self.check_device(device, now):
                    alerted.append(device.id)
            except Exception as e:
                logger.error(f"Liveness check failed for device {device.id}: {e}")
        return alerted

    # Coordinator health

    def price_feed_age(self, now: Optional[datetime] = None) -> Optional[float]:
        last = self.prices.last_refresh()
        if last is None:
            return None
        return ((now or utc_now()) - last).total_seconds()

    def check_price_feed(self, now: Optional[datetime] = None) -> bool:
        """
        Arm/disarm the ``price_feed`` record.

        Returns True while the feed is stale (no refresh within
        ``stale_after`` seconds).
        """
        now = now or utc_now()
        age = self.price_feed_age(now)
        stale = age is None or age > self.price_config.stale_after

        if stale:
            if self.notifications.get_system_notified(PRICE_FEED_RECORD) is None:
                detail = "never refreshed" if age is None else f"last refresh {age / 3600:.1f} h ago"
                self.notifier.send(f"⚠️ Price feed is stale: {detail}")
                self.notifications.set_system_notified(PRICE_FEED_RECORD, now)
                logger.warning(f"Price feed is stale ({detail}), alert sent")
            return True

        if self.notifications.clear_system_notified(PRICE_FEED_RECORD):
            self.notifier.send("✅ Price feed recovered")
            logger.info("Price feed recovered, alert record cleared")
        return False

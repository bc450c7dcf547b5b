"""
Service for the device registry.
"""

import logging
from typing import List, Optional

from .base_service import BaseService
from .push_service import PushService
from ..exceptions import UnknownDeviceError
from ..models import Device, DeviceCreate, DeviceUpdate
from ..repositories import DeviceRepository, DeviceStatusStore

logger = logging.getLogger(__name__)


class DeviceService(BaseService):
    """Registers, updates and removes devices."""

    def __init__(
        self,
        devices: Optional[DeviceRepository] = None,
        status_store: Optional[DeviceStatusStore] = None,
        push: Optional[PushService] = None
    ):
        super().__init__(devices)
        self.status_store = status_store or DeviceStatusStore()
        self.push = push or PushService(self.devices)

    def list_devices(self) -> List[Device]:
        return self.devices.list_devices()

    def get_device(self, device_id: str) -> Device:
        return self.require_device(device_id)

    def create_device(self, data: DeviceCreate) -> Device:
        return self.devices.create(data)

    def update_device(self, device_id: str, data: DeviceUpdate) -> Device:
        device = self.devices.update(device_id, data)
        if device is None:
            raise UnknownDeviceError(device_id)
        return device

    def delete_device(self, device_id: str) -> None:
        """Remove the device with its policy, alert record and runtime status."""
        if not self.devices.delete(device_id):
            raise UnknownDeviceError(device_id)
        self.status_store.remove(device_id)
        self.push.forget(device_id)

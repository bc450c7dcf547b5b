"""
Base service interface for business logic.
"""

from abc import ABC
from typing import Optional

from ..exceptions import UnknownDeviceError
from ..models import Device
from ..repositories import DeviceRepository


class BaseService(ABC):
    """Base class for coordinator services that operate on registered devices."""

    def __init__(self, devices: Optional[DeviceRepository] = None):
        """Initialize service with the device registry dependency."""
        self.devices = devices or DeviceRepository()

    def validate_input(self, **kwargs) -> bool:
        """Validate input parameters. Services with constraints override this."""
        return True

    def require_device(self, device_id: str) -> Device:
        """Registered device for ``device_id``; UnknownDeviceError otherwise."""
        device = self.devices.get(device_id)
        if device is None:
            raise UnknownDeviceError(device_id)
        return device

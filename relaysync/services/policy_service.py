"""
Service for saving device policies.

Every save is followed by a best-effort push so the device re-pulls
without waiting for its own sync interval.
"""

import logging
from typing import Optional

from pydantic import ValidationError

from .base_service import BaseService
from .push_service import PushService
from ..exceptions import ValidationFailure
from ..models import DevicePolicy
from ..repositories import DeviceRepository, PolicyRepository

logger = logging.getLogger(__name__)

# wire alias or attribute name -> attribute name
_FIELD_NAMES = {
    **{name: name for name in DevicePolicy.model_fields},
    **{info.alias: name for name, info in DevicePolicy.model_fields.items() if info.alias},
}


class PolicyService(BaseService):
    """Service for per-device policy reads and updates."""

    def __init__(
        self,
        devices: Optional[DeviceRepository] = None,
        policies: Optional[PolicyRepository] = None,
        push: Optional[PushService] = None
    ):
        super().__init__(devices)
        self.policies = policies or PolicyRepository()
        self.push = push or PushService(self.devices)

    def get_policy(self, device_id: str) -> DevicePolicy:
        self.require_device(device_id)
        return self.policies.get(device_id)

    def update_policy(self, device_id: str, changes: dict) -> DevicePolicy:
        """
        Merge ``changes`` (camelCase or snake_case keys) into the saved policy.

        Raises:
            UnknownDeviceError: If the id is not registered.
            ValidationFailure: If the merged policy is invalid.
        """
        current = self.get_policy(device_id)
        merged = current.model_dump()
        for key, value in (changes or {}).items():
            merged[_FIELD_NAMES.get(key, key)] = value
        try:
            policy = DevicePolicy.model_validate(merged)
        except ValidationError as e:
            raise ValidationFailure(f"Invalid policy for device {device_id}: {e}") from e
        return self.save_policy(device_id, policy)

    def save_policy(self, device_id: str, policy: DevicePolicy) -> DevicePolicy:
        self.require_device(device_id)
        self.policies.save(device_id, policy)
        logger.info(f"Saved policy for device {device_id}")
        self.push.notify(device_id)
        return policy

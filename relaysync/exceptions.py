"""
Error taxonomy shared by the coordinator and the device agent.
"""


class RelaySyncError(Exception):
    """Base class for all relaysync errors."""


class TransientNetworkError(RelaySyncError):
    """Timeout, refused/reset connection or a 5xx answer. Safe to retry."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class RequestRejectedError(RelaySyncError):
    """A 4xx answer. Retrying the same request will not help."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class ValidationFailure(RelaySyncError):
    """Malformed or incomplete snapshot, heartbeat or policy payload."""


class UnknownDeviceError(RelaySyncError):
    """The device id is not present in the registry."""

    def __init__(self, device_id: str):
        super().__init__(f"Unknown device: {device_id}")
        self.device_id = device_id


class PhysicalControlFailure(RelaySyncError):
    """Every tier of the physical control chain failed."""

    def __init__(self, device_id: str, message: str):
        super().__init__(f"Control failed for device {device_id}: {message}")
        self.device_id = device_id

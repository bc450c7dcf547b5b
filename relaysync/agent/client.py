"""
HTTP client the agent uses to reach the coordinator.
"""

import logging
from typing import Optional

import requests

from ..exceptions import RequestRejectedError, TransientNetworkError, ValidationFailure

logger = logging.getLogger(__name__)


class CoordinatorClient:
    """Pulls configuration snapshots and posts heartbeats."""

    def __init__(
        self,
        server_url: str,
        sync_timeout: float = 15.0,
        heartbeat_timeout: float = 10.0,
        session: Optional[requests.Session] = None
    ):
        self.server_url = server_url.rstrip("/")
        self.sync_timeout = sync_timeout
        self.heartbeat_timeout = heartbeat_timeout
        self.session = session or requests.Session()

    def _send(self, method: str, path: str, timeout: float, **kwargs) -> requests.Response:
        url = f"{self.server_url}{path}"
        try:
            response = self.session.request(method, url, timeout=timeout, **kwargs)
        except requests.RequestException as e:
            raise TransientNetworkError(f"{method} {path} failed: {e}") from e
        if response.status_code >= 500:
            raise TransientNetworkError(f"{method} {path} returned {response.status_code}", response.status_code)
        if not 200 <= response.status_code < 300:
            raise RequestRejectedError(f"{method} {path} returned {response.status_code}", response.status_code)
        return response

    def pull_config(self, device_id: str) -> dict:
        """
        Fetch the raw configuration snapshot.

        Raises:
            TransientNetworkError: Transport failure or 5xx (retryable).
            RequestRejectedError: 4xx, e.g. the device is not registered.
            ValidationFailure: The body is not a JSON object.
        """
        response = self._send("GET", f"/api/config/{device_id}", self.sync_timeout)
        try:
            data = response.json()
        except ValueError as e:
            raise ValidationFailure(f"Config response is not JSON: {e}") from e
        if not isinstance(data, dict):
            raise ValidationFailure("Config response is not a JSON object")
        return data

    def send_heartbeat(self, device_id: str, payload: dict) -> None:
        self._send("POST", f"/api/heartbeat/{device_id}", self.heartbeat_timeout, json=payload)

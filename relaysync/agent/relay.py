"""
Relay drivers: the only place the agent touches the physical switch.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

import requests

from ..exceptions import RequestRejectedError, TransientNetworkError

logger = logging.getLogger(__name__)


class RelayDriver(ABC):
    """Physical relay interface."""

    @abstractmethod
    def set_output(self, on: bool) -> None:
        """Drive the relay contact (True = closed/ON)."""
        pass

    @abstractmethod
    def get_output(self) -> Optional[bool]:
        """Current contact state, None if unknown."""
        pass


class InMemoryRelay(RelayDriver):
    """Relay simulation that remembers every command."""

    def __init__(self, output: bool = False):
        self.output = output
        self.commands: List[bool] = []

    def set_output(self, on: bool) -> None:
        self.output = bool(on)
        self.commands.append(self.output)

    def get_output(self) -> Optional[bool]:
        return self.output


class ShellyRpcRelay(RelayDriver):
    """Drives switch 0 of a Gen2 relay over its local RPC API."""

    def __init__(self, host: str, timeout: float = 3.0, session: Optional[requests.Session] = None):
        self.host = host
        self.timeout = timeout
        self.session = session or requests.Session()

    def _call(self, method: str, params: dict) -> dict:
        url = f"http://{self.host}/rpc/{method}"
        try:
            response = self.session.post(url, json=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise TransientNetworkError(f"{method} failed: {e}") from e
        if response.status_code >= 500:
            raise TransientNetworkError(f"{method} returned {response.status_code}", response.status_code)
        if not response.ok:
            raise RequestRejectedError(f"{method} returned {response.status_code}", response.status_code)
        return response.json() if response.content else {}

    def set_output(self, on: bool) -> None:
        self._call("Switch.Set", {"id": 0, "on": bool(on)})

    def get_output(self) -> Optional[bool]:
        output = self._call("Switch.GetStatus", {"id": 0}).get("output")
        return output if isinstance(output, bool) else None

"""
HTTP client for a device's local control surface.

Every call carries a short timeout so one unreachable device never stalls a
sweep over the fleet. Transport errors and 5xx answers surface as
TransientNetworkError, other non-2xx answers as RequestRejectedError.

Tiered calls (notify, switch, clear) try a fixed list of endpoints in order
and return the name of the first one that answered 2xx.
"""

import logging
import time
from typing import List, Optional, Tuple

import requests

from ..exceptions import RelaySyncError, RequestRejectedError, TransientNetworkError
from ..models import DeviceStatusPoll
from ..utils.time_utils import utc_now

logger = logging.getLogger(__name__)

# (tier name, method, path, request kwargs, timeout seconds)
Tier = Tuple[str, str, str, dict, float]


class DeviceClient:
    """Talks to relay devices over their local HTTP/RPC endpoints."""

    def __init__(self, timeout: float = 5.0, session: Optional[requests.Session] = None):
        self.timeout = timeout
        self.session = session or requests.Session()

    def request(self, method: str, host: str, path: str,
                timeout: Optional[float] = None, **kwargs) -> requests.Response:
        """Send one request and classify failures into the error taxonomy."""
        url = f"http://{host}{path}"
        try:
            response = self.session.request(method, url, timeout=timeout or self.timeout, **kwargs)
        except requests.RequestException as e:
            raise TransientNetworkError(f"{method} {url} failed: {e}") from e

        if response.status_code >= 500:
            raise TransientNetworkError(
                f"{method} {url} returned {response.status_code}", response.status_code
            )
        if not 200 <= response.status_code < 300:
            raise RequestRejectedError(
                f"{method} {url} returned {response.status_code}", response.status_code
            )
        return response

    def _first_success(self, host: str, tiers: List[Tier]) -> str:
        last_error: Optional[RelaySyncError] = None
        for name, method, path, kwargs, timeout in tiers:
            try:
                self.request(method, host, path, timeout=timeout, **kwargs)
                return name
            except RelaySyncError as e:
                logger.debug(f"Tier {name} failed for {host}: {e}")
                last_error = e
        raise last_error

    def notify(self, host: str) -> str:
        """Ask the device to re-pull its configuration now."""
        ts = int(time.time() * 1000)
        return self._first_success(host, [
            ("script", "GET", "/script/1/notify", {"params": {"ts": ts}}, 4.0),
            ("legacy", "GET", "/notify", {"params": {"ts": ts}}, 3.0),
            ("rpc", "GET", "/rpc/Shelly.Refresh", {}, 4.0),
        ])

    def set_switch(self, host: str, on: bool) -> str:
        """Set the physical relay: script control, then RPC Switch.Set, then legacy relay URL."""
        return self._first_success(host, [
            ("script", "POST", "/control",
             {"json": {"action": "turnOn" if on else "turnOff"}}, self.timeout),
            ("rpc", "POST", "/rpc/Switch.Set", {"json": {"id": 0, "on": on}}, self.timeout),
            ("legacy", "GET", "/relay/0", {"params": {"turn": "on" if on else "off"}}, self.timeout),
        ])

    def clear_override(self, host: str) -> str:
        """Release a manual override and let the device re-apply its rules."""
        return self._first_success(host, [
            ("script", "POST", "/control", {"json": {"action": "clearOverride"}}, self.timeout),
            ("rpc", "POST", "/rpc/Shelly.Refresh", {}, self.timeout),
        ])

    def get_status(self, host: str) -> DeviceStatusPoll:
        """
        Poll ``/rpc/Shelly.GetStatus``.

        Reachable means the device answered 200 and reports either a WiFi
        connection or a positive uptime. Never raises; failures are reported
        in the returned model.
        """
        checked = utc_now()
        try:
            data = self.request("GET", host, "/rpc/Shelly.GetStatus", timeout=self.timeout).json()
        except (RelaySyncError, ValueError) as e:
            return DeviceStatusPoll(reachable=False, last_checked=checked, error=str(e))

        if not isinstance(data, dict):
            return DeviceStatusPoll(reachable=False, last_checked=checked, error="Unexpected status payload")

        wifi = data.get("wifi") or {}
        system = data.get("sys") or {}
        switch = data.get("switch:0") or {}
        uptime = system.get("uptime")
        reachable = wifi.get("status") == "got ip" or (isinstance(uptime, (int, float)) and uptime > 0)
        output = switch.get("output")

        return DeviceStatusPoll(
            reachable=reachable,
            working=reachable,
            switch_on=output if isinstance(output, bool) else None,
            last_checked=checked,
            error=None if reachable else "Device reported no connectivity",
        )

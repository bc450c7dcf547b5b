"""
Device agent state machine.

The agent runs forever on the relay host and cycles through

    UNINITIALIZED -> SYNCING -> SYNCED | DEGRADED -> SYNCING -> ...

Three operations are driven by independent timers (see runner.py):

    sync_config()     pull a snapshot, gate it on freshness, validate it
    apply_rules()     decide the relay state for the current slot
    send_heartbeat()  report telemetry to the coordinator

Decision order in apply_rules():
    1. Manual override with a state: force that logical state.
       Manual override without a state: leave the relay untouched.
    2. A validated schedule no older than ``schedule_max_age``:
       ``schedule[slot]``.
    3. Fallback hours: ``fallback_hours[current local hour]``.
    4. Logical OFF.
The logical state is inverted for ``reversedControl`` right before the
physical command. Any unexpected error while deciding forces logical OFF.

The agent may run on a host without a trustworthy clock, so every time source
is a capability: the coordinator's clock (anchored to the agent's uptime at
the last pull) comes first, then ``serverSlot``, then the local wall clock,
then uptime alone.
"""

import logging
import math
import threading
import time
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytz
from pydantic import ValidationError

from .client import CoordinatorClient
from .config import AgentConfig
from .relay import RelayDriver
from .. import __version__
from ..exceptions import RelaySyncError, TransientNetworkError, ValidationFailure
from ..models import ConfigurationSnapshot, DevicePolicy, HeartbeatPayload, ManualState, TimeFrame
from ..utils.retry import retry_with_backoff
from ..utils.time_utils import SLOTS_PER_DAY, parse_timestamp, slot_from_seconds, slot_index, utc_now

logger = logging.getLogger(__name__)

MIN_PRICE_SLOTS = 96
MIN_NON_ZERO_PRICES = 48

_SLOTS_PER_PERIOD = {TimeFrame.FIFTEEN_MIN: 1, TimeFrame.THIRTY_MIN: 2, TimeFrame.ONE_HOUR: 4}


class AgentPhase(str, Enum):
    UNINITIALIZED = "uninitialized"
    SYNCING = "syncing"
    SYNCED = "synced"
    DEGRADED = "degraded"


def validate_snapshot(schedule: List[Any], prices: List[Any]) -> Optional[str]:
    """
    Data-quality check of a pulled snapshot.

    Returns None when the data is usable, otherwise the reason it is not:
    the schedule must hold exactly 96 booleans, the prices at least 96
    non-negative numbers of which at least 48 are non-zero.
    """
    if len(prices) < MIN_PRICE_SLOTS:
        return f"too few prices: {len(prices)}"
    if len(schedule) != SLOTS_PER_DAY:
        return f"schedule has {len(schedule)} entries"
    for index, price in enumerate(prices):
        if isinstance(price, bool) or not isinstance(price, (int, float)) or math.isnan(price) or price < 0:
            return f"invalid price at index {index}"
    for index, entry in enumerate(schedule):
        if not isinstance(entry, bool):
            return f"invalid schedule entry at index {index}"
    non_zero = sum(1 for price in prices if price > 0)
    if non_zero < MIN_NON_ZERO_PRICES:
        return f"too few non-zero prices: {non_zero}"
    return None


def resolve_server_slot(server_slot, prices_len: int, slots_per_period: int) -> Optional[int]:
    """
    Map ``serverSlot`` to a 15-minute slot index.

    A value below the number of known periods is taken as a period index and
    mapped to the period's first slot; otherwise a value below the number of
    known prices is already a slot index. Anything else gives None.
    """
    if isinstance(server_slot, bool) or not isinstance(server_slot, int):
        return None
    total_periods = math.ceil(prices_len / slots_per_period)
    if 0 <= server_slot < total_periods:
        return server_slot * slots_per_period
    if 0 <= server_slot < prices_len:
        return server_slot
    return None


def to_physical(logical_on: bool, reversed_control: bool) -> bool:
    return (not logical_on) if reversed_control else logical_on


class DeviceAgent:
    """Autonomous controller for one relay."""

    def __init__(
        self,
        config: AgentConfig,
        client: CoordinatorClient,
        relay: RelayDriver,
        uptime: Optional[Callable[[], float]] = None,
        wall_clock: Optional[Callable[[], datetime]] = utc_now,
        sleep: Callable[[float], None] = time.sleep
    ):
        """
        Args:
            config: Agent settings.
            client: Coordinator client used for pulls and heartbeats.
            relay: Physical relay driver.
            uptime: Seconds since the agent host booted. Defaults to a
                monotonic clock started with the agent.
            wall_clock: Local UTC clock, or None when the host has no
                trustworthy clock.
            sleep: Sleep used between retries.
        """
        self.config = config
        self.device_id = config.device_id
        self.client = client
        self.relay = relay
        self.timezone = pytz.timezone(config.timezone)
        self._uptime = uptime or self._monotonic_uptime()
        self._wall_clock = wall_clock
        self._sleep = sleep
        self._lock = threading.RLock()

        self.phase = AgentPhase.UNINITIALIZED
        self.policy = DevicePolicy()
        self.fallback_hours: Optional[List[bool]] = (
            list(config.fallback_hours) if len(config.fallback_hours) == 24 else None
        )
        self.applied_version: Optional[datetime] = None
        self.valid_snapshot: Optional[ConfigurationSnapshot] = None
        self.valid_since: Optional[float] = None
        self.server_slot: Optional[int] = None
        self.server_time: Optional[datetime] = None
        self.server_time_uptime: Optional[float] = None
        self.last_price: Optional[float] = None
        self.last_sync: Optional[float] = None
        self.last_config_update: Optional[str] = None
        self.server_status: bool = False
        self.last_decision: Optional[str] = None

    @staticmethod
    def _monotonic_uptime() -> Callable[[], float]:
        started = time.monotonic()
        return lambda: time.monotonic() - started

    # Time sources

    def _wall_time(self) -> Optional[datetime]:
        if self._wall_clock is None:
            return None
        try:
            return self._wall_clock()
        except (OSError, OverflowError, ValueError) as e:
            logger.warning(f"Wall clock unavailable: {e}")
            return None

    def _server_clock(self) -> Optional[datetime]:
        """Coordinator time estimated from the last pull and the uptime elapsed since."""
        if self.server_time is None or self.server_time_uptime is None:
            return None
        elapsed = self._uptime() - self.server_time_uptime
        if elapsed < 0:
            return None
        return self.server_time + timedelta(seconds=elapsed)

    def slots_per_period(self) -> int:
        return _SLOTS_PER_PERIOD.get(self.policy.time_frame, 1)

    def current_slot(self, prices_len: int = SLOTS_PER_DAY) -> int:
        """15-minute slot to act on, preferring coordinator time over local time."""
        server_now = self._server_clock()
        if server_now is not None:
            return slot_index(server_now)
        if self.server_slot is not None:
            resolved = resolve_server_slot(self.server_slot, prices_len, self.slots_per_period())
            if resolved is not None:
                return resolved
        local_now = self._wall_time()
        if local_now is not None:
            return slot_index(local_now)
        return slot_from_seconds(self._uptime())

    def current_hour(self) -> int:
        """Hour of day in the agent's timezone, used for fallback hours."""
        moment = self._server_clock() or self._wall_time()
        if moment is not None:
            return moment.astimezone(self.timezone).hour
        return int(self._uptime() % 86400) // 3600

    # Sync

    def _apply_lightweight(self, raw: Dict[str, Any]) -> None:
        """Fields taken from every successful pull, fresh or not."""
        if isinstance(raw.get("reversedControl"), bool):
            if raw["reversedControl"] != self.policy.reversed_control:
                logger.info(f"reversedControl set to {raw['reversedControl']}")
            self.policy = self.policy.model_copy(update={"reversed_control": raw["reversedControl"]})

        server_slot = raw.get("serverSlot")
        if isinstance(server_slot, int) and not isinstance(server_slot, bool) and server_slot >= 0:
            self.server_slot = server_slot
        try:
            server_time = parse_timestamp(raw.get("serverTime"))
        except (TypeError, ValueError):
            server_time = None
        if server_time is not None:
            self.server_time = server_time
            self.server_time_uptime = self._uptime()

        prices = raw.get("prices")
        if isinstance(prices, list) and prices:
            slot = self.current_slot(len(prices))
            if slot < len(prices) and isinstance(prices[slot], (int, float)) and not isinstance(prices[slot], bool):
                self.last_price = float(prices[slot])

    def _adopt(self, snapshot: ConfigurationSnapshot) -> None:
        self.policy = snapshot.policy
        self.fallback_hours = list(snapshot.fallback_hours)
        self.applied_version = snapshot.last_updated
        self.last_config_update = snapshot.last_updated.isoformat()

        reason = validate_snapshot(snapshot.schedule, snapshot.prices)
        if reason is None:
            self.valid_snapshot = snapshot
            self.valid_since = self._uptime()
            self.phase = AgentPhase.SYNCED
            logger.info(f"Adopted snapshot {self.last_config_update}")
        else:
            self.phase = AgentPhase.DEGRADED
            logger.warning(f"Adopted policy of snapshot {self.last_config_update} but its data is unusable: {reason}")

    def sync_config(self) -> bool:
        """
        Pull, gate and adopt a configuration snapshot, then re-apply rules.

        Transient failures are retried ``sync_retries`` times with doubling
        delays; rejected requests and exhausted retries abandon this cycle.
        Returns True when a newer snapshot was adopted.
        """
        with self._lock:
            self.phase = AgentPhase.SYNCING

        adopted = False
        try:
            raw = retry_with_backoff(
                lambda: self.client.pull_config(self.device_id),
                max_retries=self.config.sync_retries,
                base_delay=self.config.sync_base_delay,
                retry_on=(TransientNetworkError,),
                sleep=self._sleep,
                description="Config sync"
            )
        except RelaySyncError as e:
            with self._lock:
                self.server_status = False
                self.phase = self._resting_phase()
            logger.warning(f"Config sync abandoned for this cycle: {e}")
            self.apply_rules()
            return False

        with self._lock:
            self.server_status = True
            self.last_sync = self._uptime()
            self._apply_lightweight(raw)
            try:
                snapshot = ConfigurationSnapshot.model_validate(raw)
            except ValidationError as e:
                logger.error(f"Rejected malformed snapshot: {ValidationFailure(str(e))}")
                snapshot = None

            if snapshot is None:
                self.phase = self._resting_phase()
            elif self.applied_version is not None and snapshot.last_updated <= self.applied_version:
                logger.info(
                    f"Ignoring snapshot {snapshot.last_updated.isoformat()}, "
                    f"not newer than applied {self.applied_version.isoformat()}"
                )
                self.phase = self._resting_phase()
            else:
                self._adopt(snapshot)
                adopted = True

        self.apply_rules()
        return adopted

    def _resting_phase(self) -> AgentPhase:
        return AgentPhase.SYNCED if self._usable_snapshot() is not None else AgentPhase.DEGRADED

    # Rules

    def _usable_snapshot(self) -> Optional[ConfigurationSnapshot]:
        if self.valid_snapshot is None or self.valid_since is None:
            return None
        if self._uptime() - self.valid_since > self.config.schedule_max_age:
            return None
        return self.valid_snapshot

    def decide(self) -> Tuple[Optional[bool], str]:
        """
        Logical state for now and the reason for it.

        None means "leave the relay as it is" (override without a state).
        """
        policy = self.policy
        if policy.manual_override:
            if policy.manual_state == ManualState.ON:
                return True, "manual override: forced ON"
            if policy.manual_state == ManualState.OFF:
                return False, "manual override: forced OFF"
            return None, "manual override without state: preserving relay"

        snapshot = self._usable_snapshot()
        if snapshot is None:
            if self.fallback_hours is not None and len(self.fallback_hours) == 24:
                hour = self.current_hour()
                on = bool(self.fallback_hours[hour])
                return on, f"no usable schedule, fallback hour {hour}: {'ON' if on else 'OFF'}"
            return False, "no usable schedule and no fallback hours: OFF"

        slot = self.current_slot(len(snapshot.prices))
        price = snapshot.prices[slot] if slot < len(snapshot.prices) else None
        on = bool(snapshot.schedule[slot]) if slot < len(snapshot.schedule) else False
        self.last_price = price
        return on, f"slot {slot}: price={price}, schedule={'ON' if on else 'OFF'}"

    def apply_rules(self) -> Optional[bool]:
        """
        Decide and drive the relay.

        Returns the physical state commanded, or None when the relay was
        left untouched or could not be driven.
        """
        with self._lock:
            try:
                logical, reason = self.decide()
            except Exception as e:
                logger.error(f"Rule evaluation failed, forcing OFF: {e}")
                logical, reason = False, f"error: {e}"

            self.last_decision = reason
            if logical is None:
                logger.info(reason)
                return None

            physical = to_physical(logical, self.policy.reversed_control)
            try:
                self.relay.set_output(physical)
            except RelaySyncError as e:
                logger.error(f"Relay command failed: {e}")
                return None
            logger.info(f"{reason} -> relay {'ON' if physical else 'OFF'}")
            return physical

    # Heartbeat

    def heartbeat_payload(self) -> dict:
        try:
            switch_on = self.relay.get_output()
        except RelaySyncError as e:
            logger.warning(f"Could not read relay state: {e}")
            switch_on = None
        with self._lock:
            return HeartbeatPayload(
                uptime=self._uptime(),
                switch_on=switch_on,
                last_price=self.last_price,
                server_status=self.server_status,
                last_sync=self.last_sync,
                last_config_update=self.last_config_update,
                agent_version=__version__,
            ).to_wire()

    def send_heartbeat(self) -> bool:
        """Post a heartbeat, retried ``heartbeat_retries`` times on transient errors."""
        payload = self.heartbeat_payload()
        try:
            retry_with_backoff(
                lambda: self.client.send_heartbeat(self.device_id, payload),
                max_retries=self.config.heartbeat_retries,
                base_delay=self.config.heartbeat_base_delay,
                sleep=self._sleep,
                description="Heartbeat"
            )
        except RelaySyncError as e:
            logger.warning(f"Heartbeat abandoned for this cycle: {e}")
            return False
        logger.debug("Heartbeat sent")
        return True

    # Local commands

    def handle_command(self, action: str) -> dict:
        """
        Execute a command from the local control surface.

        ``turnOn``/``turnOff`` name the physical relay state (the coordinator
        has already applied ``reversedControl``); the override is stored as
        the matching logical state.
        """
        if action in ("turnOn", "turnOff"):
            physical = action == "turnOn"
            with self._lock:
                logical = to_physical(physical, self.policy.reversed_control)
                self.policy = self.policy.model_copy(update={
                    "manual_override": True,
                    "manual_state": ManualState.ON if logical else ManualState.OFF,
                })
                self.relay.set_output(physical)
                self.last_decision = f"manual {action}"
            logger.info(f"Manual {action} (relay {'ON' if physical else 'OFF'})")
            return {"success": True, "action": action,
                    "message": "Turned ON" if physical else "Turned OFF", "switchOn": physical}

        if action == "clearOverride":
            with self._lock:
                self.policy = self.policy.model_copy(update={"manual_override": False, "manual_state": None})
                self.apply_rules()
            logger.info("Override cleared")
            return {"success": True, "action": action, "message": "Override cleared",
                    "switchOn": self.relay.get_output()}

        if action == "refreshConfig":
            adopted = self.sync_config()
            return {"success": True, "action": action, "message": "Configuration refresh triggered",
                    "adopted": adopted}

        raise ValidationFailure(f"Unknown action: {action!r}")

    def status(self) -> dict:
        """Local diagnostics."""
        with self._lock:
            return {
                "deviceId": self.device_id,
                "phase": self.phase.value,
                "agentVersion": __version__,
                "uptime": self._uptime(),
                "serverStatus": self.server_status,
                "lastSync": self.last_sync,
                "lastConfigUpdate": self.last_config_update,
                "lastPrice": self.last_price,
                "lastDecision": self.last_decision,
                "hasUsableSchedule": self._usable_snapshot() is not None,
                "policy": self.policy.to_wire(),
            }

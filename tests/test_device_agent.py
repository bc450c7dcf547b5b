import copy
from datetime import datetime, timezone

import pytest

from relaysync import __version__
from relaysync.agent import AgentConfig, AgentPhase, DeviceAgent, InMemoryRelay
from relaysync.agent.device_agent import resolve_server_slot, validate_snapshot
from relaysync.exceptions import RequestRejectedError, TransientNetworkError, ValidationFailure

WALL_NOW = datetime(2024, 1, 1, 10, 5, tzinfo=timezone.utc)  # slot 40, hour 10


class FakeCoordinator:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.pulls = 0
        self.heartbeats = []
        self.heartbeat_error = None

    def pull_config(self, device_id):
        self.pulls += 1
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return copy.deepcopy(response)

    def send_heartbeat(self, device_id, payload):
        self.heartbeats.append(payload)
        if self.heartbeat_error is not None:
            raise self.heartbeat_error


class Uptime:
    def __init__(self, value=100.0):
        self.value = value

    def __call__(self):
        return self.value


def make_snapshot(last_updated="2024-01-01T10:00:00+00:00", on_slots=(40,), prices=None, **fields):
    snapshot = {
        "deviceId": "1",
        "minPrice": 0.05,
        "maxPrice": 0.20,
        "numCheapest": 4,
        "timeFrame": "15min",
        "manualOverride": False,
        "manualState": None,
        "reversedControl": False,
        "fallbackHours": [False] * 24,
        "schedule": [slot in on_slots for slot in range(96)],
        "prices": [0.10] * 96 if prices is None else prices,
        "serverSlot": 40,
        "serverTime": "2024-01-01T10:00:00+00:00",
        "lastUpdated": last_updated,
    }
    snapshot.update(fields)
    return snapshot


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def uptime():
    return Uptime()


@pytest.fixture
def relay():
    return InMemoryRelay()


@pytest.fixture
def make_agent(relay, uptime, sleeps):
    def _make(coordinator, wall_clock=lambda: WALL_NOW, **config):
        return DeviceAgent(
            AgentConfig(device_id="1", **config),
            coordinator,
            relay,
            uptime=uptime,
            wall_clock=wall_clock,
            sleep=sleeps.append
        )
    return _make


class TestSync:
    def test_adopts_snapshot_and_follows_schedule(self, make_agent, relay):
        agent = make_agent(FakeCoordinator(make_snapshot()))

        assert agent.sync_config() is True

        assert agent.phase == AgentPhase.SYNCED
        assert relay.commands == [True]
        assert agent.last_price == 0.10
        assert agent.server_status is True

    def test_schedule_slot_off(self, make_agent, relay):
        agent = make_agent(FakeCoordinator(make_snapshot(on_slots=(41,))))
        agent.sync_config()
        assert relay.commands == [False]

    def test_ignores_snapshot_that_is_not_newer(self, make_agent):
        coordinator = FakeCoordinator(
            make_snapshot(last_updated="2024-01-01T10:00:00+00:00", numCheapest=4),
            make_snapshot(last_updated="2024-01-01T09:00:00+00:00", numCheapest=9),
            make_snapshot(last_updated="2024-01-01T10:00:00+00:00", numCheapest=7),
        )
        agent = make_agent(coordinator)

        assert agent.sync_config() is True
        assert agent.sync_config() is False
        assert agent.sync_config() is False

        assert agent.policy.num_cheapest == 4
        assert agent.applied_version == datetime(2024, 1, 1, 10, tzinfo=timezone.utc)

    def test_reversed_control_applies_even_from_stale_snapshot(self, make_agent, relay):
        coordinator = FakeCoordinator(
            make_snapshot(last_updated="2024-01-01T10:00:00+00:00"),
            make_snapshot(last_updated="2024-01-01T09:00:00+00:00", reversedControl=True),
        )
        agent = make_agent(coordinator)
        agent.sync_config()
        agent.sync_config()

        assert agent.policy.reversed_control is True
        assert relay.commands == [True, False]

    def test_transient_failures_are_retried_then_fall_back(self, make_agent, relay, sleeps):
        coordinator = FakeCoordinator(TransientNetworkError("timed out"))
        fallback = [hour == 10 for hour in range(24)]
        agent = make_agent(coordinator, fallback_hours=fallback)

        assert agent.sync_config() is False

        assert coordinator.pulls == 4
        assert sleeps == [10.0, 20.0, 40.0]
        assert agent.phase == AgentPhase.DEGRADED
        assert agent.server_status is False
        assert relay.commands == [True]

    def test_failures_without_fallback_turn_off(self, make_agent, relay):
        relay.output = True
        agent = make_agent(FakeCoordinator(TransientNetworkError("timed out")))
        agent.fallback_hours = None

        agent.sync_config()

        assert relay.commands == [False]
        assert "no fallback" in agent.last_decision

    def test_rejected_request_is_not_retried(self, make_agent, sleeps):
        coordinator = FakeCoordinator(RequestRejectedError("not found", 404))
        agent = make_agent(coordinator)

        agent.sync_config()

        assert coordinator.pulls == 1
        assert sleeps == []

    def test_recovers_after_failed_attempts(self, make_agent, relay):
        coordinator = FakeCoordinator(
            TransientNetworkError("reset"),
            TransientNetworkError("reset"),
            make_snapshot(),
        )
        agent = make_agent(coordinator)

        assert agent.sync_config() is True
        assert coordinator.pulls == 3
        assert relay.commands == [True]

    def test_bad_data_keeps_policy_but_not_schedule(self, make_agent, relay):
        fallback = [hour == 10 for hour in range(24)]
        snapshot = make_snapshot(prices=[0.10] * 40 + [0.0] * 56, on_slots=(), fallbackHours=fallback)
        agent = make_agent(FakeCoordinator(snapshot))

        agent.sync_config()

        assert agent.phase == AgentPhase.DEGRADED
        assert agent.valid_snapshot is None
        assert agent.fallback_hours == fallback
        assert relay.commands == [True]

    def test_malformed_snapshot_is_rejected(self, make_agent):
        agent = make_agent(FakeCoordinator({"deviceId": "1", "schedule": "nope"}))
        assert agent.sync_config() is False
        assert agent.applied_version is None

    def test_usable_snapshot_expires(self, make_agent, relay, uptime):
        agent = make_agent(FakeCoordinator(make_snapshot()), fallback_hours=[False] * 24)
        agent.sync_config()

        uptime.value += 24 * 3600 + 1
        agent.server_time = None
        agent.apply_rules()

        assert relay.commands == [True, False]
        assert "fallback" in agent.last_decision


class TestDecisions:
    def test_override_without_state_preserves_relay(self, make_agent, relay):
        relay.output = True
        snapshot = make_snapshot(manualOverride=True, manualState=None, on_slots=())
        agent = make_agent(FakeCoordinator(snapshot))

        agent.sync_config()

        assert relay.commands == []
        assert relay.output is True

    @pytest.mark.parametrize("state, reversed_control, expected", [
        ("on", False, True),
        ("off", False, False),
        ("on", True, False),
        ("off", True, True),
    ])
    def test_forced_override(self, make_agent, relay, state, reversed_control, expected):
        snapshot = make_snapshot(
            manualOverride=True, manualState=state, reversedControl=reversed_control, on_slots=()
        )
        agent = make_agent(FakeCoordinator(snapshot))
        agent.sync_config()
        assert relay.commands == [expected]

    def test_reversed_schedule(self, make_agent, relay):
        agent = make_agent(FakeCoordinator(make_snapshot(reversedControl=True)))
        agent.sync_config()
        assert relay.commands == [False]

    def test_decision_error_turns_off(self, make_agent, relay):
        agent = make_agent(FakeCoordinator(make_snapshot()))
        relay.output = True

        def broken():
            raise KeyError("slot")

        agent.decide = broken
        agent.apply_rules()

        assert relay.commands == [False]

    def test_server_clock_advances_with_uptime(self, make_agent, uptime):
        agent = make_agent(FakeCoordinator(make_snapshot()), wall_clock=None)
        agent.sync_config()

        uptime.value += 15 * 60
        assert agent.current_slot() == 41

    def test_server_slot_used_without_clocks(self, make_agent):
        agent = make_agent(FakeCoordinator(make_snapshot(serverTime=None, serverSlot=5, timeFrame="1hour")),
                           wall_clock=None)
        agent.sync_config()
        assert agent.current_slot() == 20

    def test_wall_clock_then_uptime(self, make_agent, uptime):
        agent = make_agent(FakeCoordinator(TransientNetworkError("down")))
        assert agent.current_slot() == 40

        agent = make_agent(FakeCoordinator(TransientNetworkError("down")), wall_clock=None)
        uptime.value = 3600 * 2 + 60
        assert agent.current_slot() == 8

    def test_fallback_hour_uses_timezone(self, make_agent, relay):
        fallback = [hour == 12 for hour in range(24)]
        agent = make_agent(
            FakeCoordinator(TransientNetworkError("down")),
            fallback_hours=fallback,
            timezone="Europe/Helsinki"
        )
        assert agent.current_hour() == 12
        agent.apply_rules()
        assert relay.commands == [True]


class TestHeartbeatAndCommands:
    def test_heartbeat_payload(self, make_agent, relay):
        coordinator = FakeCoordinator(make_snapshot())
        agent = make_agent(coordinator)
        agent.sync_config()

        assert agent.send_heartbeat() is True

        payload = coordinator.heartbeats[-1]
        assert payload["switchOn"] is True
        assert payload["lastPrice"] == 0.10
        assert payload["serverStatus"] is True
        assert payload["lastSync"] == 100.0
        assert payload["uptime"] == 100.0
        assert payload["lastConfigUpdate"] == "2024-01-01T10:00:00+00:00"
        assert payload["agentVersion"] == __version__

    def test_heartbeat_failure_is_reported(self, make_agent, sleeps):
        coordinator = FakeCoordinator(make_snapshot())
        coordinator.heartbeat_error = TransientNetworkError("down")
        agent = make_agent(coordinator)

        assert agent.send_heartbeat() is False
        assert len(coordinator.heartbeats) == 3
        assert sleeps == [5.0, 10.0]

    def test_turn_on_sets_override(self, make_agent, relay):
        agent = make_agent(FakeCoordinator(make_snapshot(reversedControl=True)))
        agent.sync_config()

        result = agent.handle_command("turnOn")

        assert result["switchOn"] is True
        assert relay.output is True
        assert agent.policy.manual_override is True
        assert agent.policy.manual_state.value == "off"

    def test_clear_override_reapplies_rules(self, make_agent, relay):
        agent = make_agent(FakeCoordinator(make_snapshot(on_slots=())))
        agent.sync_config()
        agent.handle_command("turnOn")

        agent.handle_command("clearOverride")

        assert agent.policy.manual_override is False
        assert relay.output is False

    def test_refresh_config_pulls(self, make_agent):
        coordinator = FakeCoordinator(make_snapshot())
        agent = make_agent(coordinator)

        result = agent.handle_command("refreshConfig")

        assert result["adopted"] is True
        assert coordinator.pulls == 1

    def test_unknown_command(self, make_agent):
        agent = make_agent(FakeCoordinator(make_snapshot()))
        with pytest.raises(ValidationFailure):
            agent.handle_command("applyConfig")


class TestValidation:
    def test_valid(self):
        assert validate_snapshot([False] * 96, [0.1] * 96) is None

    @pytest.mark.parametrize("schedule, prices", [
        ([False] * 96, [0.1] * 95),
        ([False] * 95, [0.1] * 96),
        ([False] * 95 + [1], [0.1] * 96),
        ([False] * 96, [0.1] * 95 + ["0.1"]),
        ([False] * 96, [0.1] * 95 + [True]),
        ([False] * 96, [0.1] * 95 + [float("nan")]),
        ([False] * 96, [0.1] * 95 + [-0.01]),
        ([False] * 96, [0.1] * 47 + [0.0] * 49),
    ])
    def test_invalid(self, schedule, prices):
        assert validate_snapshot(schedule, prices) is not None

    def test_tomorrow_prices_allowed(self):
        assert validate_snapshot([False] * 96, [0.1] * 192) is None


class TestResolveServerSlot:
    def test_period_index(self):
        assert resolve_server_slot(5, 96, 4) == 20

    def test_slot_index_beyond_periods(self):
        assert resolve_server_slot(50, 96, 4) == 50

    def test_fifteen_minute_identity(self):
        assert resolve_server_slot(40, 96, 1) == 40

    @pytest.mark.parametrize("value", [96, -1, None, True, "4", 4.0])
    def test_unusable(self, value):
        assert resolve_server_slot(value, 96, 4) is None

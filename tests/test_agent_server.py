import pytest
from fastapi.testclient import TestClient

from relaysync.agent import AgentConfig, AgentPhase, CoordinatorClient, DeviceAgent, InMemoryRelay, create_agent_app
from relaysync.exceptions import TransientNetworkError
from relaysync.services import DeviceClient


class OfflineCoordinator:
    def __init__(self):
        self.pulls = 0

    def pull_config(self, device_id):
        self.pulls += 1
        raise TransientNetworkError("coordinator down")

    def send_heartbeat(self, device_id, payload):
        raise TransientNetworkError("coordinator down")


@pytest.fixture
def relay():
    return InMemoryRelay()


@pytest.fixture
def coordinator():
    return OfflineCoordinator()


@pytest.fixture
def agent(coordinator, relay):
    config = AgentConfig(device_id="1", sync_retries=0)
    return DeviceAgent(config, coordinator, relay, uptime=lambda: 42.0, sleep=lambda s: None)


@pytest.fixture
def agent_client(agent):
    with TestClient(create_agent_app(agent, run_background_jobs=False)) as test_client:
        yield test_client


def test_get_status_reports_relay(agent_client, relay):
    relay.output = True
    body = agent_client.get("/rpc/Shelly.GetStatus").json()
    assert body["wifi"]["status"] == "got ip"
    assert body["sys"]["uptime"] == 42.0
    assert body["switch:0"]["output"] is True


@pytest.mark.parametrize("path", ["/script/1/notify", "/notify", "/rpc/Shelly.Refresh"])
def test_notify_triggers_sync(agent_client, coordinator, path):
    assert agent_client.get(path, params={"ts": 1}).status_code == 200
    assert coordinator.pulls == 1


def test_control_commands(agent_client, agent, relay):
    assert agent_client.post("/control", json={"action": "turnOn"}).json()["switchOn"] is True
    assert relay.output is True
    assert agent.policy.manual_override is True

    agent_client.post("/control", json={"action": "clearOverride"})
    assert agent.policy.manual_override is False
    assert relay.output is False


def test_unknown_control_action(agent_client):
    assert agent_client.post("/control", json={"action": "applyConfig"}).status_code == 400


def test_raw_relay_commands(agent_client, relay):
    assert agent_client.post("/rpc/Switch.Set", json={"id": 0, "on": True}).json()["output"] is True
    assert relay.output is True
    assert agent_client.get("/relay/0", params={"turn": "off"}).json() == {"was_on": True, "output": False}
    assert agent_client.get("/relay/0", params={"turn": "dim"}).status_code == 400
    assert agent_client.post("/rpc/Switch.Set", json={"id": 1, "on": True}).status_code == 404


def test_status(agent_client):
    body = agent_client.get("/status").json()
    assert body["deviceId"] == "1"
    assert body["phase"] == AgentPhase.UNINITIALIZED.value


def test_coordinator_drives_agent_end_to_end(client, seed_prices, relay):
    """Coordinator and agent talking through their real HTTP surfaces."""
    seed_prices([0.01] * 96)
    client.post("/api/devices", json={"name": "Boiler", "host": "agent.local"})

    agent = DeviceAgent(
        AgentConfig(device_id="1"),
        CoordinatorClient("http://testserver", session=client),
        relay,
        uptime=lambda: 100.0,
        sleep=lambda s: None
    )
    assert agent.sync_config() is True
    assert agent.phase == AgentPhase.SYNCED
    assert relay.output is True

    assert agent.send_heartbeat() is True
    assert client.get("/api/status").json()["devices"]["1"]["online"] is True

    with TestClient(create_agent_app(agent, run_background_jobs=False)) as agent_client:
        tier = DeviceClient(session=agent_client).set_switch("agent.local", False)
    assert tier == "script"
    assert relay.output is False
    assert agent.policy.manual_override is True

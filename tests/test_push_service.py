import pytest

from relaysync.config import SyncConfig
from relaysync.models import DeviceCreate
from relaysync.services import PushService


class Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def push(services, device_client, clock):
    return PushService(services.device_repository, device_client, SyncConfig(), clock=clock)


def test_successful_push(push, device, device_client):
    assert push.notify(device.id) is True
    assert device_client.calls_named("notify") == [("notify", device.host)]
    assert push.cooldown(device.id) == 2.0


def test_cooldown_skips_rapid_pushes(push, device, device_client, clock):
    assert push.notify(device.id) is True
    clock.now += 1
    assert push.notify(device.id) is False
    clock.now += 1
    assert push.notify(device.id) is True
    assert len(device_client.calls_named("notify")) == 2


def test_backoff_doubles_and_caps(push, device, device_client, clock):
    device_client.fail = True
    expected = [4.0, 8.0, 16.0, 32.0, 64.0, 128.0, 256.0, 300.0, 300.0]
    for backoff in expected:
        assert push.notify(device.id) is False
        assert push.cooldown(device.id) == backoff
        clock.now += backoff


def test_success_resets_backoff(push, device, device_client, clock):
    device_client.fail = True
    push.notify(device.id)
    clock.now += 4
    push.notify(device.id)
    assert push.cooldown(device.id) == 8.0

    device_client.fail = False
    clock.now += 8
    assert push.notify(device.id) is True
    assert push.cooldown(device.id) == 2.0


def test_unknown_device_is_skipped(push, device_client):
    assert push.notify("99") is False
    assert device_client.calls == []


def test_notify_all(push, services, device, device_client):
    second = services.device_repository.create(DeviceCreate(name="Heater", host="192.168.1.51"))
    results = push.notify_all()
    assert results == {device.id: True, second.id: True}

import os
import tempfile
from datetime import datetime, timedelta, timezone

# The coordinator opens its configured database on import; keep it out of the project tree.
os.environ.setdefault(
    "RELAYSYNC_DATABASE_PATH", os.path.join(tempfile.mkdtemp(prefix="relaysync-tests-"), "relaysync.db")
)

import pytest
from fastapi.testclient import TestClient

from relaysync.config import DatabaseManager
from relaysync.exceptions import TransientNetworkError
from relaysync.main import create_app
from relaysync.models import DeviceCreate, DeviceStatusPoll
from relaysync.services import ServiceContainer
from relaysync.utils.time_utils import SLOTS_PER_DAY, utc_now


class FakeDeviceClient:
    """Device client double that records calls instead of doing HTTP."""

    def __init__(self):
        self.calls = []
        self.reachable = True
        self.switch_on = False
        self.fail = False

    def _maybe_fail(self, host):
        if self.fail:
            raise TransientNetworkError(f"{host} unreachable")

    def notify(self, host):
        self.calls.append(("notify", host))
        self._maybe_fail(host)
        return "script"

    def set_switch(self, host, on):
        self.calls.append(("set_switch", host, on))
        self._maybe_fail(host)
        self.switch_on = on
        return "script"

    def clear_override(self, host):
        self.calls.append(("clear_override", host))
        self._maybe_fail(host)
        return "script"

    def get_status(self, host):
        self.calls.append(("get_status", host))
        if not self.reachable:
            return DeviceStatusPoll(reachable=False, last_checked=utc_now(), error="timed out")
        return DeviceStatusPoll(reachable=True, working=True, switch_on=self.switch_on, last_checked=utc_now())

    def calls_named(self, name):
        return [call for call in self.calls if call[0] == name]


class FakeNotifier:
    def __init__(self):
        self.messages = []

    @property
    def enabled(self):
        return True

    def send(self, text):
        self.messages.append(text)
        return True


def day_points(prices, day=datetime(2024, 1, 1, tzinfo=timezone.utc)):
    """(time, price) tuples for consecutive 15-minute slots starting at ``day``."""
    return [(day + timedelta(minutes=15 * slot), price) for slot, price in enumerate(prices)]


def hourly_prices(hourly):
    """Expand 24 hourly prices into 96 slot prices."""
    return [price for price in hourly for _ in range(4)]


@pytest.fixture
def database(tmp_path):
    return DatabaseManager(str(tmp_path / "relaysync.db"))


@pytest.fixture
def device_client():
    return FakeDeviceClient()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def services(database, device_client, notifier):
    return ServiceContainer(database=database, device_client=device_client, notifier=notifier)


@pytest.fixture
def device(services):
    return services.device_repository.create(DeviceCreate(name="Boiler", host="192.168.1.50"))


@pytest.fixture
def seed_prices(services):
    def _seed(prices, refreshed_at=None):
        points = day_points(list(prices) + [0.0] * (2 * SLOTS_PER_DAY - len(prices)))
        services.price_repository.replace_all(points, refreshed_at=refreshed_at or utc_now())
    return _seed


@pytest.fixture
def client(services):
    with TestClient(create_app(services, run_background_jobs=False)) as test_client:
        yield test_client

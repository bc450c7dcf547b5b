from datetime import datetime, timezone

import requests

from relaysync.repositories import COORDINATOR_RECORD
from relaysync.watchdog import Watchdog

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


class ProbeResponse:
    def __init__(self, status_code, text=""):
        self.status_code = status_code
        self.text = text


class ProbeSession:
    def __init__(self, answer):
        self.answer = answer
        self.urls = []

    def get(self, url, timeout=None):
        self.urls.append((url, timeout))
        if isinstance(self.answer, Exception):
            raise self.answer
        return self.answer


def make_watchdog(services, notifier, answer):
    return Watchdog(
        "http://127.0.0.1:3000/",
        services.notification_repository,
        notifier,
        ProbeSession(answer)
    )


def test_healthy_coordinator(services, notifier):
    watchdog = make_watchdog(services, notifier, ProbeResponse(200))
    assert watchdog.check(NOW) is True
    assert watchdog.session.urls == [("http://127.0.0.1:3000/api/status", 5.0)]
    assert notifier.messages == []


def test_down_alerts_once_then_recovers(services, notifier):
    down = make_watchdog(services, notifier, requests.ConnectionError("refused"))
    assert down.check(NOW) is False
    assert down.check(NOW) is False
    assert len(notifier.messages) == 1
    assert "DOWN" in notifier.messages[0]
    assert services.notification_repository.get_system_notified(COORDINATOR_RECORD) == NOW

    up = make_watchdog(services, notifier, ProbeResponse(200))
    assert up.check(NOW) is True
    assert len(notifier.messages) == 2
    assert "back online" in notifier.messages[1]
    assert services.notification_repository.get_system_notified(COORDINATOR_RECORD) is None


def test_unhealthy_status(services, notifier):
    watchdog = make_watchdog(services, notifier, ProbeResponse(503, "busy"))
    assert watchdog.check(NOW) is False
    assert "unhealthy" in notifier.messages[0]

from datetime import timedelta

from relaysync.utils.time_utils import utc_now


def register(client, name="Boiler", host="192.168.1.50"):
    response = client.post("/api/devices", json={"name": name, "host": host})
    assert response.status_code == 201
    return response.json()


class TestInfo:
    def test_root(self, client):
        response = client.get("/api/")
        assert response.status_code == 200
        assert "endpoints" in response.json()

    def test_health_unhealthy_without_prices(self, client):
        response = client.get("/api/health")
        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"

    def test_health_healthy(self, client, seed_prices):
        seed_prices([0.1] * 96)
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_health_degraded_with_old_prices(self, client, seed_prices):
        seed_prices([0.1] * 96, refreshed_at=utc_now() - timedelta(hours=3))
        assert client.get("/api/health").json()["status"] == "degraded"

    def test_health_degraded_without_recent_heartbeats(self, client, seed_prices):
        seed_prices([0.1] * 96)
        register(client)
        assert client.get("/api/health").json()["status"] == "degraded"

    def test_metrics(self, client, seed_prices):
        seed_prices([0.1] * 48 + [0.3] * 48)
        register(client)
        client.post("/api/heartbeat/1", json={"uptime": 60, "switchOn": True, "lastPrice": 0.12})

        response = client.get("/api/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        lines = response.text.splitlines()
        assert "relaysync_prices_today_count 96" in lines
        assert "relaysync_prices_today_avg_cents_per_kwh 0.2" in lines
        assert "relaysync_prices_tomorrow_count 0" in lines
        assert "relaysync_devices_total 1" in lines
        assert "relaysync_devices_recent_heartbeat 1" in lines
        assert "relaysync_offline_alerts_active 0" in lines
        assert 'relaysync_device_last_price_cents_per_kwh{device="1"} 0.12' in lines
        assert not any(line.startswith("relaysync_prices_tomorrow_avg") for line in lines)


class TestDevices:
    def test_crud(self, client):
        device = register(client)
        assert device["id"] == "1"
        assert register(client, "Heater", "relay.local")["id"] == "2"

        listing = client.get("/api/devices").json()
        assert listing["count"] == 2

        updated = client.put("/api/devices/1", json={"name": "Hot water"}).json()
        assert updated["name"] == "Hot water"
        assert updated["host"] == "192.168.1.50"

        assert client.delete("/api/devices/1").status_code == 200
        assert client.get("/api/config/1").status_code == 404
        assert client.delete("/api/devices/1").status_code == 404

    def test_invalid_host(self, client):
        response = client.post("/api/devices", json={"name": "Boiler", "host": "http://bad host"})
        assert response.status_code == 422

    def test_settings_roundtrip(self, client, device_client):
        register(client)

        saved = client.post("/api/settings/1", json={"minPrice": 0.03, "numCheapest": 8}).json()

        assert saved["minPrice"] == 0.03
        assert saved["numCheapest"] == 8
        assert client.get("/api/settings/1").json()["numCheapest"] == 8
        assert device_client.calls_named("notify") == [("notify", "192.168.1.50")]

    def test_invalid_settings(self, client):
        register(client)
        response = client.post("/api/settings/1", json={"fallbackHours": [True] * 3})
        assert response.status_code == 400

    def test_settings_unknown_device(self, client):
        assert client.get("/api/settings/9").status_code == 404


class TestSync:
    def test_config_pull(self, client, seed_prices):
        seed_prices([0.01] * 96)
        register(client)

        snapshot = client.get("/api/config/1").json()

        assert snapshot["deviceId"] == "1"
        assert len(snapshot["schedule"]) == 96
        assert all(snapshot["schedule"])
        assert len(snapshot["prices"]) == 96
        assert 0 <= snapshot["serverSlot"] < 96
        assert "lastUpdated" in snapshot
        assert "serverTime" in snapshot

    def test_heartbeat_and_status(self, client):
        register(client)

        response = client.post("/api/heartbeat/1", json={"uptime": 500, "switchOn": True, "lastSync": 450})
        assert response.json() == {"status": "ok"}

        status = client.get("/api/status").json()["devices"]["1"]
        assert status["online"] is True
        assert status["switchOn"] is True
        assert status["lastSync"] is not None

    def test_status_lists_silent_devices(self, client):
        register(client)
        status = client.get("/api/status").json()["devices"]
        assert status["1"]["online"] is False

    def test_heartbeat_unknown_device(self, client):
        assert client.post("/api/heartbeat/5", json={}).status_code == 404


class TestControl:
    def test_control(self, client, device_client):
        register(client)
        response = client.post("/api/control", json={"id": "1", "action": "on"})
        assert response.status_code == 200
        assert response.json()["performed"] == "on"

    def test_control_invalid_action(self, client):
        register(client)
        assert client.post("/api/control", json={"id": "1", "action": "dim"}).status_code == 400

    def test_control_unknown_device(self, client):
        assert client.post("/api/control", json={"id": "3", "action": "on"}).status_code == 404

    def test_control_failure(self, client, device_client):
        register(client)
        device_client.fail = True
        assert client.post("/api/control", json={"id": "1", "action": "off"}).status_code == 502

    def test_reconcile_and_device_status(self, client, device_client, seed_prices):
        seed_prices([0.01] * 96)
        register(client)

        reconcile = client.post("/api/reconcile/1").json()
        assert reconcile["shouldBeOn"] is True
        assert reconcile["nowOn"] is True

        poll = client.get("/api/device-status/1").json()
        assert poll["reachable"] is True
        assert poll["switchOn"] is True


class TestPrices:
    def test_prices(self, client, seed_prices):
        seed_prices([0.1] * 96)
        body = client.get("/api/prices").json()
        assert body["count"] == 192
        assert body["lastRefresh"] is not None

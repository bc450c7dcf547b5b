"""
Controller for API information and health endpoints.
"""

import time
from datetime import datetime
from typing import List, Sequence

from fastapi import Depends
from fastapi.responses import JSONResponse, PlainTextResponse

from .base_controller import BaseController, get_services
from .. import __version__
from ..models import APIInfo, HealthResponse
from ..services import ServiceContainer
from ..utils.time_utils import SLOTS_PER_DAY, utc_now

PRICE_MAX_AGE_SECONDS = 2 * 3600
RECENT_HEARTBEAT_SECONDS = 30 * 60

STARTED_AT = time.monotonic()


def _gauge(lines: List[str], name: str, help_text: str, samples) -> None:
    lines.append(f"# HELP {name} {help_text}")
    lines.append(f"# TYPE {name} gauge")
    for labels, value in samples:
        lines.append(f"{name}{labels} {value}")


def _priced(prices: Sequence[float]) -> List[float]:
    return [p for p in prices if p and p > 0]


def render_metrics(services: ServiceContainer, now: datetime) -> str:
    """Prometheus text exposition of coordinator, price and device gauges."""
    lines = ["# RelaySync coordinator metrics", f"# Generated at {now.isoformat()}"]
    _gauge(lines, "relaysync_uptime_seconds", "Coordinator uptime in seconds",
           [("", round(time.monotonic() - STARTED_AT, 3))])

    prices = services.price_repository.get_prices()
    for day, slots in (("today", prices[:SLOTS_PER_DAY]), ("tomorrow", prices[SLOTS_PER_DAY:])):
        priced = _priced(slots)
        _gauge(lines, f"relaysync_prices_{day}_count", f"Priced 15-minute slots for {day}",
               [("", len(priced))])
        if priced:
            _gauge(lines, f"relaysync_prices_{day}_avg_cents_per_kwh", f"Average price {day} in c/kWh",
                   [("", round(sum(priced) / len(priced), 4))])

    devices = services.devices.list_devices()
    statuses = {device.id: services.status_store.get(device.id) for device in devices}
    ages = {
        device_id: (now - status.last_heartbeat).total_seconds() / 60
        for device_id, status in statuses.items() if status.last_heartbeat is not None
    }
    _gauge(lines, "relaysync_devices_total", "Registered devices", [("", len(devices))])
    _gauge(lines, "relaysync_devices_online", "Devices currently online",
           [("", sum(1 for status in statuses.values() if status.online))])
    _gauge(lines, "relaysync_devices_recent_heartbeat", "Devices that heartbeated in the last 30 minutes",
           [("", sum(1 for age in ages.values() if age * 60 < RECENT_HEARTBEAT_SECONDS))])
    _gauge(lines, "relaysync_offline_alerts_active", "Devices with an unresolved offline alert",
           [("", services.notification_repository.count())])
    _gauge(lines, "relaysync_device_heartbeat_age_minutes", "Minutes since the last heartbeat",
           [(f'{{device="{device_id}"}}', round(age, 2)) for device_id, age in ages.items()])
    _gauge(lines, "relaysync_device_last_price_cents_per_kwh", "Last price reported by the device",
           [(f'{{device="{device_id}"}}', status.last_price)
            for device_id, status in statuses.items() if status.last_price is not None])
    return "\n".join(lines) + "\n"


class InfoController(BaseController):
    """Controller for API information and health endpoints."""

    def _setup_routes(self):
        """Setup routes for API info and health."""

        @self.router.get("/", response_model=APIInfo, tags=["System Information"])
        async def get_api_info():
            """API root endpoint with basic information."""
            return APIInfo(
                message="RelaySync Coordinator API",
                version=__version__,
                endpoints={
                    "config": "/config/{id} - Pull a device configuration snapshot",
                    "heartbeat": "/heartbeat/{id} - Report device telemetry",
                    "status": "/status - Runtime status of all devices",
                    "devices": "/devices - Device registry",
                    "settings": "/settings/{id} - Device policy",
                    "control": "/control - Manual on/off/clear",
                    "reconcile": "/reconcile/{id} - Converge relay onto schedule",
                    "device_status": "/device-status/{id} - Poll a device now",
                    "prices": "/prices - Stored price array",
                    "health": "/health - Health check",
                    "metrics": "/metrics - Prometheus metrics"
                }
            )

        @self.router.get("/health", response_model=HealthResponse, tags=["System Information"])
        def health_check(services: ServiceContainer = Depends(get_services)):
            """
            Health check endpoint.

            ``unhealthy`` (HTTP 503) when no prices were ever fetched,
            ``degraded`` when prices are older than two hours or no device
            heartbeated in the last 30 minutes.
            """
            now = utc_now()
            age = services.liveness.price_feed_age(now)
            devices = services.devices.list_devices()
            statuses = [services.status_store.get(device.id) for device in devices]
            recent = sum(
                1 for status in statuses
                if status.last_heartbeat is not None
                and (now - status.last_heartbeat).total_seconds() < RECENT_HEARTBEAT_SECONDS
            )

            status = "healthy"
            if age is None:
                status = "unhealthy"
            elif age > PRICE_MAX_AGE_SECONDS or (devices and recent == 0):
                status = "degraded"

            health = HealthResponse(
                status=status,
                service="relaysync-coordinator",
                timestamp=now,
                price_feed_age_seconds=age,
                devices_total=len(devices),
                devices_online=sum(1 for s in statuses if s.online),
                recent_heartbeats=recent
            )
            if status == "unhealthy":
                return JSONResponse(status_code=503, content=health.model_dump(mode="json"))
            return health

        @self.router.get("/metrics", response_class=PlainTextResponse, tags=["System Information"])
        def metrics(services: ServiceContainer = Depends(get_services)):
            """Prometheus-style gauges for prices and the device fleet."""
            return PlainTextResponse(render_metrics(services, utc_now()))

"""
Controller for the device-facing sync endpoints.

Endpoints:
    - GET /config/{device_id}: freshly built configuration snapshot
    - POST /heartbeat/{device_id}: heartbeat ingestion
    - GET /status: runtime status of every known device
"""

from fastapi import Depends

from .base_controller import BaseController, get_services
from ..models import HeartbeatPayload, HeartbeatResponse, StatusResponse
from ..services import ServiceContainer


class SyncController(BaseController):
    """Controller for configuration pull, heartbeats and runtime status."""

    def _setup_routes(self):
        """Setup routes for device sync operations."""

        @self.router.get(
            "/config/{device_id}",
            tags=["Device Sync"],
            summary="Pull the configuration snapshot of a device",
            description="""
            Rebuilt on every request from the saved policy and the current price
            array. Carries the 96-slot schedule, up to 96 prices, the server clock
            (`serverTime`, `serverSlot`) and the `lastUpdated` version stamp.
            """
        )
        def get_config(device_id: str, services: ServiceContainer = Depends(get_services)):
            try:
                return services.snapshots.build(device_id).to_wire()
            except Exception as e:
                self.handle_exception(e, f"Error building config for device {device_id}")

        @self.router.post(
            "/heartbeat/{device_id}",
            response_model=HeartbeatResponse,
            tags=["Device Sync"],
            summary="Report device telemetry"
        )
        def post_heartbeat(
            device_id: str,
            payload: HeartbeatPayload,
            services: ServiceContainer = Depends(get_services)
        ):
            try:
                services.heartbeats.ingest(device_id, payload)
                return HeartbeatResponse(status="ok")
            except Exception as e:
                self.handle_exception(e, f"Error ingesting heartbeat for device {device_id}")

        @self.router.get(
            "/status",
            tags=["Device Sync"],
            summary="Runtime status of all devices"
        )
        def get_status(services: ServiceContainer = Depends(get_services)):
            try:
                for device in services.devices.list_devices():
                    services.status_store.get(device.id)
                statuses = services.status_store.snapshot()
                return StatusResponse(devices=statuses).model_dump(mode="json", by_alias=True)
            except Exception as e:
                self.handle_exception(e, "Error reading device status")

"""
Controller for the device registry and per-device policy.

Endpoints:
    - GET /devices, POST /devices, PUT /devices/{device_id}, DELETE /devices/{device_id}
    - GET /settings/{device_id}, POST /settings/{device_id}
"""

from typing import Any, Dict

from fastapi import Body, Depends

from .base_controller import BaseController, get_services
from ..models import DeviceCreate, DeviceListResponse, DeviceUpdate
from ..services import ServiceContainer


class DeviceController(BaseController):
    """Controller for device CRUD and policy settings."""

    def _setup_routes(self):
        """Setup routes for device and settings operations."""

        @self.router.get("/devices", response_model=DeviceListResponse, tags=["Devices"],
                         summary="List registered devices")
        def list_devices(services: ServiceContainer = Depends(get_services)):
            try:
                devices = services.devices.list_devices()
                return DeviceListResponse(devices=devices, count=len(devices))
            except Exception as e:
                self.handle_exception(e, "Error listing devices")

        @self.router.post("/devices", status_code=201, tags=["Devices"],
                          summary="Register a device")
        def create_device(data: DeviceCreate, services: ServiceContainer = Depends(get_services)):
            try:
                return services.devices.create_device(data).to_wire()
            except Exception as e:
                self.handle_exception(e, "Error creating device")

        @self.router.put("/devices/{device_id}", tags=["Devices"], summary="Update a device")
        def update_device(device_id: str, data: DeviceUpdate,
                          services: ServiceContainer = Depends(get_services)):
            try:
                return services.devices.update_device(device_id, data).to_wire()
            except Exception as e:
                self.handle_exception(e, f"Error updating device {device_id}")

        @self.router.delete("/devices/{device_id}", tags=["Devices"],
                            summary="Delete a device and purge its state")
        def delete_device(device_id: str, services: ServiceContainer = Depends(get_services)):
            try:
                services.devices.delete_device(device_id)
                return {"success": True, "id": device_id}
            except Exception as e:
                self.handle_exception(e, f"Error deleting device {device_id}")

        @self.router.get("/settings/{device_id}", tags=["Devices"],
                         summary="Saved policy of a device")
        def get_settings(device_id: str, services: ServiceContainer = Depends(get_services)):
            try:
                return services.policies.get_policy(device_id).to_wire()
            except Exception as e:
                self.handle_exception(e, f"Error reading settings for device {device_id}")

        @self.router.post(
            "/settings/{device_id}",
            tags=["Devices"],
            summary="Save the policy of a device",
            description="""
            Merges the given fields into the saved policy, stores it and sends a
            best-effort push so the device re-pulls its configuration now.
            """
        )
        def save_settings(
            device_id: str,
            changes: Dict[str, Any] = Body(...),
            services: ServiceContainer = Depends(get_services)
        ):
            try:
                return services.policies.update_policy(device_id, changes).to_wire()
            except Exception as e:
                self.handle_exception(e, f"Error saving settings for device {device_id}")

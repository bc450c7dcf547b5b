"""
Controller for manual control, reconciliation and on-demand status polls.

Endpoints:
    - POST /control: {"id": ..., "action": "on" | "off" | "clear"}
    - POST /reconcile/{device_id}
    - GET /device-status/{device_id}
"""

from fastapi import Depends

from .base_controller import BaseController, get_services
from ..models import ControlRequest
from ..services import ServiceContainer


class ControlController(BaseController):
    """Controller for operator commands."""

    def _setup_routes(self):
        """Setup routes for control operations."""

        @self.router.post(
            "/control",
            tags=["Control"],
            summary="Manually switch a device or release its override",
            description="""
            `on`/`off` set a manual override and switch the relay through the
            tiered chain (script control, RPC Switch.Set, legacy relay URL).
            The action is inverted for devices with `reversedControl`.
            `clear` releases the override. Returns 502 when every tier failed.
            """
        )
        def control(body: ControlRequest, services: ServiceContainer = Depends(get_services)):
            try:
                return services.control.control(body.id, body.action).to_wire()
            except Exception as e:
                self.handle_exception(e, f"Error controlling device {body.id}")

        @self.router.post("/reconcile/{device_id}", tags=["Control"],
                          summary="Converge the relay onto the current schedule slot")
        def reconcile(device_id: str, services: ServiceContainer = Depends(get_services)):
            try:
                return services.control.reconcile(device_id).to_wire()
            except Exception as e:
                self.handle_exception(e, f"Error reconciling device {device_id}")

        @self.router.get("/device-status/{device_id}", tags=["Control"],
                         summary="Poll a device over RPC now")
        def device_status(device_id: str, services: ServiceContainer = Depends(get_services)):
            try:
                return services.liveness.poll_device(device_id).to_wire()
            except Exception as e:
                self.handle_exception(e, f"Error polling device {device_id}")

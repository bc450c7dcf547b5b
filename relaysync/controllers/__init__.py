"""
Controllers package for API endpoint handlers.
Imports all controllers for easy access.
"""

from fastapi import APIRouter

# Base controller
from .base_controller import BaseController, get_services

# Individual controllers
from .info_controller import InfoController
from .sync_controller import SyncController
from .device_controller import DeviceController
from .control_controller import ControlController
from .price_controller import PriceController


class CoordinatorController:
    """
    Aggregate controller that combines all coordinator controllers.
    """

    def __init__(self):
        """Initialize aggregate controller with all sub-controllers."""
        self.router = APIRouter()

        # Initialize individual controllers
        self.info_controller = InfoController()
        self.sync_controller = SyncController()
        self.device_controller = DeviceController()
        self.control_controller = ControlController()
        self.price_controller = PriceController()

        # Include all routers
        self._setup_aggregate_routes()

    def _setup_aggregate_routes(self):
        """Setup aggregate routes by including all controller routers."""
        self.router.include_router(self.info_controller.router)
        self.router.include_router(self.sync_controller.router)
        self.router.include_router(self.device_controller.router)
        self.router.include_router(self.control_controller.router)
        self.router.include_router(self.price_controller.router)


__all__ = [
    # Base controller
    "BaseController",
    "get_services",

    # Individual controllers
    "InfoController",
    "SyncController",
    "DeviceController",
    "ControlController",
    "PriceController",

    # Aggregate controller
    "CoordinatorController"
]

"""
Controller for the stored price array.

Endpoints:
    - GET /prices: the 192-slot array (today + tomorrow)
    - POST /prices/refresh: fetch from the feed now
"""

from fastapi import Depends

from .base_controller import BaseController, get_services
from ..models import PriceArrayResponse
from ..services import ServiceContainer


class PriceController(BaseController):
    """Controller for price data endpoints."""

    def _setup_routes(self):
        """Setup routes for price data operations."""

        @self.router.get("/prices", tags=["Price Data"], summary="Stored 15-minute prices")
        def get_prices(services: ServiceContainer = Depends(get_services)):
            try:
                points = services.price_repository.get_points()
                return PriceArrayResponse(
                    points=points,
                    count=len(points),
                    last_refresh=services.price_repository.last_refresh()
                ).to_wire()
            except Exception as e:
                self.handle_exception(e, "Error retrieving prices")

        @self.router.post("/prices/refresh", tags=["Price Data"],
                          summary="Refresh prices from the feed now")
        def refresh_prices(services: ServiceContainer = Depends(get_services)):
            try:
                return services.price_feed.refresh()
            except Exception as e:
                self.handle_exception(e, "Error refreshing prices")

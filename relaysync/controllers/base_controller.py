"""
Base controller interface for API endpoints.

Every controller owns an APIRouter and registers its handlers in
``_setup_routes``. Domain errors are translated to HTTP answers in one
place, ``handle_exception``:

    - UnknownDeviceError      -> 404
    - ValidationFailure       -> 400
    - PhysicalControlFailure  -> 502
    - anything else           -> 500

Usage:
    ```python
    class MyController(BaseController):
        def _setup_routes(self):
            @self.router.get("/my-endpoint")
            async def my_endpoint():
                return {"message": "Hello World"}
    ```
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from fastapi import APIRouter, HTTPException, Request

from ..exceptions import PhysicalControlFailure, UnknownDeviceError, ValidationFailure
from ..services import ServiceContainer

logger = logging.getLogger(__name__)


def get_services(request: Request) -> ServiceContainer:
    """Dependency returning the application's service container."""
    return request.app.state.services


class BaseController(ABC):
    """
    Abstract base controller for consistent API endpoint patterns.

    Attributes:
        router (APIRouter): FastAPI router instance for endpoint registration
    """

    def __init__(self):
        """Create the router and register the concrete controller's routes."""
        self.router = APIRouter()
        self._setup_routes()

    @abstractmethod
    def _setup_routes(self):
        """Setup routes for this controller."""
        pass

    def handle_exception(self, e: Exception, context: Optional[str] = None) -> None:
        """
        Convert an exception into an HTTPException.

        Args:
            e (Exception): The exception that occurred
            context (Optional[str]): Where the error occurred, prefixed to 500 details

        Raises:
            HTTPException: Always
        """
        if isinstance(e, HTTPException):
            raise e
        if isinstance(e, UnknownDeviceError):
            raise HTTPException(status_code=404, detail=str(e))
        if isinstance(e, ValidationFailure):
            raise HTTPException(status_code=400, detail=str(e))
        if isinstance(e, PhysicalControlFailure):
            raise HTTPException(status_code=502, detail=str(e))

        logger.error(f"{context or 'Unhandled error'}: {e}")
        error_message = f"{context}: {str(e)}" if context else str(e)
        raise HTTPException(status_code=500, detail=error_message)

"""
This module creates and configures the FastAPI application of the RelaySync
coordinator.

The coordinator turns the price curve and each device's policy into a
96-slot ON/OFF schedule, serves it to device agents on pull, ingests their
heartbeats, polls them over RPC, alerts once per outage and applies manual
commands.

API Categories:
    - Device Sync: configuration pull, heartbeats, runtime status
    - Devices: registry and per-device policy
    - Control: manual on/off/clear, reconciliation, on-demand status poll
    - Price Data: stored price array and manual refresh
    - Information: health and API metadata
"""

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import app_config
from .controllers import CoordinatorController
from .services import ServiceContainer, lifespan

logger = logging.getLogger(__name__)


def create_app(services: Optional[ServiceContainer] = None, run_background_jobs: bool = True) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        services: Service container to serve from. A new one bound to the
            configured database is created when omitted.
        run_background_jobs: Start the periodic jobs (price refresh, status
            poll, liveness sweep, periodic push) with the application.

    Returns:
        FastAPI: Configured application; all endpoints live under /api.
    """
    app = FastAPI(
        title=app_config.api.title,
        description=app_config.api.description,
        version=app_config.api.version,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan if run_background_jobs else None,
        openapi_tags=[
            {
                "name": "System Information",
                "description": "API health, version info, and system status endpoints"
            },
            {
                "name": "Device Sync",
                "description": "Configuration pull, heartbeat ingestion and runtime status"
            },
            {
                "name": "Devices",
                "description": "Device registry and per-device scheduling policy"
            },
            {
                "name": "Control",
                "description": "Manual control, reconciliation and on-demand RPC polls"
            },
            {
                "name": "Price Data",
                "description": "Stored 15-minute price array"
            }
        ]
    )
    app.state.services = services or ServiceContainer()

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_config.api.allow_origins,
        allow_credentials=app_config.api.allow_credentials,
        allow_methods=app_config.api.allow_methods,
        allow_headers=app_config.api.allow_headers,
    )

    app.include_router(CoordinatorController().router, prefix="/api")

    return app


# Create the app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=logging.DEBUG if app_config.is_debug else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    uvicorn.run(
        app,
        host=app_config.api.host,
        port=app_config.api.port,
        reload=app_config.api.reload
    )

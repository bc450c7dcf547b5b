"""
Background jobs of the coordinator: price refresh, RPC status poll,
liveness sweep, periodic push and (optionally) reconciliation.
"""

import logging
from contextlib import asynccontextmanager
from typing import List

from .container import ServiceContainer
from ..utils.periodic import PeriodicJob, PeriodicScheduler

logger = logging.getLogger(__name__)


def build_jobs(services: ServiceContainer) -> List[PeriodicJob]:
    """Periodic jobs of the coordinator, intervals taken from the configuration."""
    sync = services.config.sync

    def liveness():
        services.liveness.sweep()
        services.liveness.check_price_feed()

    return [
        PeriodicJob("price_refresh", services.config.price_feed.refresh_interval,
                    services.price_feed.refresh, run_on_start=True),
        PeriodicJob("status_poll", sync.status_poll_interval,
                    services.liveness.poll_all, run_on_start=True),
        PeriodicJob("liveness_sweep", sync.liveness_sweep_interval, liveness),
        PeriodicJob("periodic_push", sync.periodic_push_interval, services.push.notify_all),
        PeriodicJob("reconcile", sync.reconcile_interval, services.control.reconcile_all),
    ]


@asynccontextmanager
async def lifespan(app):
    """FastAPI lifespan context manager for background jobs."""
    # Startup
    scheduler = PeriodicScheduler(build_jobs(app.state.services))
    app.state.scheduler = scheduler
    await scheduler.start()

    try:
        yield
    finally:
        # Shutdown
        await scheduler.stop()

"""
Timers of the device agent: sync, apply and heartbeat run independently.
"""

import logging
from typing import List

from .device_agent import DeviceAgent
from ..utils.periodic import PeriodicJob, PeriodicScheduler

logger = logging.getLogger(__name__)


class AgentRunner:
    """Drives a DeviceAgent with three periodic jobs."""

    def __init__(self, agent: DeviceAgent):
        self.agent = agent
        self.scheduler = PeriodicScheduler(self.build_jobs())

    def build_jobs(self) -> List[PeriodicJob]:
        config = self.agent.config
        return [
            # Boot: apply fallback rules right away, then pull the first snapshot
            PeriodicJob("apply", config.apply_interval, self.agent.apply_rules, run_on_start=True),
            PeriodicJob("sync", config.sync_interval, self.agent.sync_config, run_on_start=True),
            PeriodicJob("heartbeat", config.heartbeat_interval, self.agent.send_heartbeat, run_on_start=True),
        ]

    async def start(self):
        logger.info(f"🔌 Device agent {self.agent.device_id} starting (coordinator: {self.agent.config.server_url})")
        await self.scheduler.start()

    async def stop(self):
        await self.scheduler.stop()
        logger.info(f"Device agent {self.agent.device_id} stopped")

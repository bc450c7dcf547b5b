"""
Periodic job runner shared by the coordinator and the device agent.

Each job is a blocking callable run in the default executor on its own
interval, so a slow job never delays the others. Errors are logged and the
loop keeps going.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class PeriodicJob:
    name: str
    interval: float  # seconds, <= 0 disables the job
    func: Callable[[], Any]
    run_on_start: bool = False


class PeriodicScheduler:
    """
    Runs periodic jobs as asyncio tasks.

    Features:
    - Independent interval per job
    - Blocking work runs in the default executor
    - Failures are logged without stopping the job
    """

    def __init__(self, jobs: List[PeriodicJob], retry_delay: float = 60.0):
        self.jobs = [job for job in jobs if job.interval > 0]
        self.retry_delay = retry_delay
        self.is_running = False
        self._tasks: Dict[str, asyncio.Task] = {}

    async def run_job_once(self, job: PeriodicJob) -> Optional[Any]:
        """Run one job in the executor and return its result (None on error)."""
        try:
            return await asyncio.get_running_loop().run_in_executor(None, job.func)
        except Exception as e:
            logger.error(f"❌ Job {job.name} failed: {e}")
            return None

    async def start(self):
        """Start every enabled job."""
        if self.is_running:
            logger.warning("⚠️  Scheduler is already running")
            return

        self.is_running = True
        for job in self.jobs:
            logger.info(f"🚀 Starting job {job.name} (interval: {job.interval:g}s)")
            self._tasks[job.name] = asyncio.create_task(self._loop(job))

    async def stop(self):
        """Cancel every job and wait for it to finish."""
        if not self.is_running:
            return

        self.is_running = False
        logger.info("🛑 Stopping scheduler")
        for task in self._tasks.values():
            task.cancel()
        for task in self._tasks.values():
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks.clear()

    async def _loop(self, job: PeriodicJob):
        if job.run_on_start:
            await self.run_job_once(job)
        while self.is_running:
            try:
                await asyncio.sleep(job.interval)
                if self.is_running:
                    await self.run_job_once(job)
            except asyncio.CancelledError:
                logger.info(f"📴 Job {job.name} cancelled")
                break
            except Exception as e:
                logger.error(f"❌ Error in job loop {job.name}: {e}")
                await asyncio.sleep(self.retry_delay)

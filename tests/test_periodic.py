import asyncio

from relaysync.agent import AgentConfig, AgentRunner, DeviceAgent, InMemoryRelay
from relaysync.services import build_jobs
from relaysync.utils.periodic import PeriodicJob, PeriodicScheduler


def test_disabled_jobs_are_dropped():
    scheduler = PeriodicScheduler([
        PeriodicJob("on", 10, lambda: None),
        PeriodicJob("off", 0, lambda: None),
    ])
    assert [job.name for job in scheduler.jobs] == ["on"]


def test_run_on_start_and_error_isolation():
    calls = []

    def failing():
        calls.append("failing")
        raise RuntimeError("boom")

    async def run():
        scheduler = PeriodicScheduler([
            PeriodicJob("failing", 0.01, failing, run_on_start=True),
            PeriodicJob("ok", 0.01, lambda: calls.append("ok"), run_on_start=True),
        ])
        await scheduler.start()
        await asyncio.sleep(0.2)
        await scheduler.stop()
        return scheduler

    scheduler = asyncio.run(run())

    assert calls.count("failing") >= 2
    assert calls.count("ok") >= 2
    assert scheduler.is_running is False


def test_coordinator_jobs(services):
    jobs = {job.name: job for job in build_jobs(services)}
    assert set(jobs) == {"price_refresh", "status_poll", "liveness_sweep", "periodic_push", "reconcile"}
    assert jobs["price_refresh"].run_on_start is True
    assert jobs["reconcile"].interval == 0


def test_agent_jobs():
    agent = DeviceAgent(AgentConfig(sync_interval=60, apply_interval=30), None, InMemoryRelay())
    jobs = {job.name: job for job in AgentRunner(agent).build_jobs()}

    assert jobs["sync"].interval == 60
    assert jobs["apply"].interval == 30
    assert all(job.run_on_start for job in jobs.values())

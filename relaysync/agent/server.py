"""
Local HTTP surface of the device agent.

Mirrors the endpoints the coordinator's DeviceClient calls, so a host
running this agent behaves like a relay running the sync script:

    - GET  /script/1/notify, GET /notify, GET|POST /rpc/Shelly.Refresh:
      schedule an immediate config sync
    - POST /control: {"action": "turnOn" | "turnOff" | "clearOverride" | "refreshConfig"}
    - POST /rpc/Switch.Set, GET /relay/0?turn=on|off: raw relay commands
    - GET  /rpc/Shelly.GetStatus: connectivity and relay state
    - GET  /status: agent diagnostics
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, FastAPI, HTTPException, Request
from pydantic import BaseModel

from .device_agent import DeviceAgent
from .runner import AgentRunner
from .. import __version__
from ..exceptions import RelaySyncError, ValidationFailure

logger = logging.getLogger(__name__)


class CommandRequest(BaseModel):
    action: str


class SwitchSetRequest(BaseModel):
    id: int = 0
    on: bool


def _agent(request: Request) -> DeviceAgent:
    return request.app.state.agent


def _set_relay(agent: DeviceAgent, on: bool) -> dict:
    try:
        was_on = agent.relay.get_output()
        agent.relay.set_output(on)
    except RelaySyncError as e:
        raise HTTPException(status_code=502, detail=str(e))
    logger.info(f"Relay set {'ON' if on else 'OFF'} by direct command")
    return {"was_on": was_on, "output": on}


def build_router() -> APIRouter:
    router = APIRouter()

    def refresh(request: Request, background_tasks: BackgroundTasks):
        background_tasks.add_task(_agent(request).sync_config)
        return {"success": True, "message": "Config sync scheduled"}

    router.add_api_route("/script/1/notify", refresh, methods=["GET"])
    router.add_api_route("/notify", refresh, methods=["GET"])
    router.add_api_route("/rpc/Shelly.Refresh", refresh, methods=["GET", "POST"])

    @router.post("/control")
    def control(body: CommandRequest, request: Request):
        try:
            return _agent(request).handle_command(body.action)
        except ValidationFailure as e:
            raise HTTPException(status_code=400, detail=str(e))
        except RelaySyncError as e:
            logger.error(f"Command {body.action} failed: {e}")
            raise HTTPException(status_code=502, detail=str(e))

    @router.post("/rpc/Switch.Set")
    def switch_set(body: SwitchSetRequest, request: Request):
        if body.id != 0:
            raise HTTPException(status_code=404, detail=f"No switch with id {body.id}")
        return _set_relay(_agent(request), body.on)

    @router.get("/relay/0")
    def legacy_relay(request: Request, turn: Optional[str] = None):
        if turn not in ("on", "off"):
            raise HTTPException(status_code=400, detail="turn must be 'on' or 'off'")
        return _set_relay(_agent(request), turn == "on")

    @router.get("/rpc/Shelly.GetStatus")
    def get_status(request: Request):
        agent = _agent(request)
        try:
            output = agent.relay.get_output()
        except RelaySyncError as e:
            logger.warning(f"Could not read relay state: {e}")
            output = None
        return {
            "wifi": {"status": "got ip"},
            "sys": {"uptime": agent.status()["uptime"]},
            "switch:0": {"id": 0, "output": output},
        }

    @router.get("/status")
    def status(request: Request):
        return _agent(request).status()

    return router


def create_agent_app(agent: DeviceAgent, run_background_jobs: bool = True) -> FastAPI:
    """
    Create the agent's local FastAPI application.

    Args:
        agent: The agent to expose.
        run_background_jobs: Start the sync/apply/heartbeat timers with the app.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        runner = AgentRunner(agent)
        app.state.runner = runner
        await runner.start()
        try:
            yield
        finally:
            await runner.stop()

    app = FastAPI(
        title="RelaySync Device Agent",
        version=__version__,
        lifespan=lifespan if run_background_jobs else None,
    )
    app.state.agent = agent
    app.include_router(build_router())
    return app

"""
Device agent: pulls configuration snapshots, drives the relay and reports
heartbeats. Runs on the relay host and does not share state with the
coordinator beyond HTTP.
"""

from .client import CoordinatorClient
from .config import AgentConfig, load_agent_config
from .device_agent import AgentPhase, DeviceAgent, resolve_server_slot, validate_snapshot
from .relay import InMemoryRelay, RelayDriver, ShellyRpcRelay
from .runner import AgentRunner
from .server import create_agent_app

__all__ = [
    'AgentConfig',
    'AgentPhase',
    'AgentRunner',
    'CoordinatorClient',
    'DeviceAgent',
    'InMemoryRelay',
    'RelayDriver',
    'ShellyRpcRelay',
    'create_agent_app',
    'load_agent_config',
    'resolve_server_slot',
    'validate_snapshot'
]

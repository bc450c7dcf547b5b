"""
Device agent settings.

The agent runs on the relay host, not next to the coordinator, so it has its
own settings module and never touches the coordinator's database. Values
can be overridden with ``RELAYSYNC_AGENT_*`` environment variables or a
``.env`` file.
"""

import os
from typing import List

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()


def _env(name: str, default):
    value = os.getenv(f"RELAYSYNC_AGENT_{name}")
    if value in (None, ""):
        return default
    return type(default)(value)


def _env_hours(name: str) -> List[bool]:
    """Comma separated list of hours (0-23) that should be ON."""
    value = os.getenv(f"RELAYSYNC_AGENT_{name}", "")
    hours = {int(part) for part in value.split(",") if part.strip()}
    return [hour in hours for hour in range(24)]


class AgentConfig(BaseModel):
    """Device agent settings (intervals and delays in seconds)."""

    device_id: str = "1"
    server_url: str = "http://127.0.0.1:3000"
    sync_interval: int = 900
    apply_interval: int = 900
    heartbeat_interval: int = 900
    sync_retries: int = 3
    sync_base_delay: float = 10.0
    sync_timeout: float = 15.0
    heartbeat_retries: int = 2
    heartbeat_base_delay: float = 5.0
    heartbeat_timeout: float = 10.0
    # Timezone used to pick the fallback hour
    timezone: str = "UTC"
    # Used until the first snapshot delivers the saved fallback hours
    fallback_hours: List[bool] = Field(default_factory=lambda: [False] * 24)
    # A validated snapshot stays usable this long after it was adopted
    schedule_max_age: float = 24 * 3600
    listen_host: str = "0.0.0.0"
    listen_port: int = 8080


def load_agent_config() -> AgentConfig:
    """Agent settings with environment overrides applied."""
    defaults = AgentConfig()
    return AgentConfig(
        device_id=_env("DEVICE_ID", defaults.device_id),
        server_url=_env("SERVER_URL", defaults.server_url),
        sync_interval=_env("SYNC_INTERVAL", defaults.sync_interval),
        apply_interval=_env("APPLY_INTERVAL", defaults.apply_interval),
        heartbeat_interval=_env("HEARTBEAT_INTERVAL", defaults.heartbeat_interval),
        timezone=_env("TIMEZONE", defaults.timezone),
        fallback_hours=_env_hours("FALLBACK_HOURS"),
        listen_host=_env("LISTEN_HOST", defaults.listen_host),
        listen_port=_env("LISTEN_PORT", defaults.listen_port),
    )

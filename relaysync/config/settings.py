"""
Application configuration settings.

Every section is a pydantic model with sane defaults. Values can be
overridden from the environment (or a ``.env`` file) using ``RELAYSYNC_*``
variables, so the same code runs on a workstation and on the coordinator
host without edits.
"""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

# Load environment variables from .env file (project root first, then CWD)
env_path = Path(__file__).resolve().parent.parent.parent / '.env'
load_dotenv(env_path)
load_dotenv()


def _env(name: str, default=None):
    return os.getenv(f"RELAYSYNC_{name}", default)


def _env_int(name: str, default: int) -> int:
    value = _env(name)
    return int(value) if value not in (None, "") else default


def _env_float(name: str, default: float) -> float:
    value = _env(name)
    return float(value) if value not in (None, "") else default


class DatabaseConfig(BaseModel):
    """Database configuration settings."""

    database_path: str = "db/relaysync.db"  # Relative to project root
    connection_timeout: int = 30


class APIConfig(BaseModel):
    """API configuration settings."""

    title: str = "RelaySync Coordinator API"
    description: str = "Coordinates price-driven relay devices: schedules, config sync, liveness and manual control"
    version: str = "1.0.0"
    host: str = "0.0.0.0"
    port: int = 3000
    debug: bool = False
    reload: bool = False

    # CORS settings
    allow_origins: list = ["*"]
    allow_credentials: bool = True
    allow_methods: list = ["*"]
    allow_headers: list = ["*"]


class SyncConfig(BaseModel):
    """Coordinator-side sync, liveness and push settings (seconds)."""

    device_timeout: float = 5.0
    push_cooldown_min: float = 2.0
    push_cooldown_max: float = 300.0
    heartbeat_stale_after: float = 600.0
    status_poll_interval: int = 60
    liveness_sweep_interval: int = 300
    periodic_push_interval: int = 300
    # 0 disables scheduled reconciliation
    reconcile_interval: int = 0


class PriceFeedConfig(BaseModel):
    """Price feed collaborator settings."""

    api_url: str = "https://dashboard.elering.ee/api/nps/price"
    area: str = "fi"
    refresh_interval: int = 900
    stale_after: float = 3600.0
    request_timeout: float = 10.0
    # EUR/MWh -> c/kWh including VAT
    vat_multiplier: float = 1.255


class NotificationConfig(BaseModel):
    """Notification transport settings."""

    telegram_bot_token: Optional[str] = None
    telegram_chat_id: Optional[str] = None
    timeout: float = 10.0


class ApplicationConfig:
    """Main application configuration."""

    def __init__(self):
        self.database = DatabaseConfig(
            database_path=_env("DATABASE_PATH", DatabaseConfig().database_path)
        )
        self.api = APIConfig(
            host=_env("HOST", "0.0.0.0"),
            port=_env_int("PORT", 3000),
            debug=_env("DEBUG", "false").lower() == "true",
        )
        self.sync = SyncConfig(
            device_timeout=_env_float("DEVICE_TIMEOUT", 5.0),
            push_cooldown_min=_env_float("PUSH_COOLDOWN_MIN", 2.0),
            push_cooldown_max=_env_float("PUSH_COOLDOWN_MAX", 300.0),
            heartbeat_stale_after=_env_float("HEARTBEAT_STALE_AFTER", 600.0),
            status_poll_interval=_env_int("STATUS_POLL_INTERVAL", 60),
            liveness_sweep_interval=_env_int("LIVENESS_SWEEP_INTERVAL", 300),
            periodic_push_interval=_env_int("PERIODIC_PUSH_INTERVAL", 300),
            reconcile_interval=_env_int("RECONCILE_INTERVAL_SECONDS", 0),
        )
        self.price_feed = PriceFeedConfig(
            area=_env("PRICE_AREA", "fi"),
            refresh_interval=_env_int("PRICE_REFRESH_INTERVAL", 900),
        )
        self.notifications = NotificationConfig(
            telegram_bot_token=os.getenv("TELEGRAM_BOT_TOKEN"),
            telegram_chat_id=os.getenv("TELEGRAM_CHAT_ID"),
        )

    @property
    def database_path(self) -> str:
        """Get database path."""
        if os.path.isabs(self.database.database_path):
            return self.database.database_path
        # Relative paths are resolved against the project root
        project_dir = Path(__file__).resolve().parent.parent.parent
        return str(project_dir / self.database.database_path)

    @property
    def is_debug(self) -> bool:
        """Check if debug mode is enabled."""
        return self.api.debug


# Global configuration instance
app_config = ApplicationConfig()

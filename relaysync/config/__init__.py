"""
Configuration package for application settings.
"""

from .settings import (
    APIConfig,
    ApplicationConfig,
    DatabaseConfig,
    NotificationConfig,
    PriceFeedConfig,
    SyncConfig,
    app_config,
)
from .database import DatabaseManager, db_manager

__all__ = [
    "APIConfig",
    "ApplicationConfig",
    "DatabaseConfig",
    "NotificationConfig",
    "PriceFeedConfig",
    "SyncConfig",
    "app_config",
    "DatabaseManager",
    "db_manager"
]

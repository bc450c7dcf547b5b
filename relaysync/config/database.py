"""
Database Configuration and Management Module

This module provides centralized sqlite connection and query management for the
coordinator. Every persisted concern (device registry, per-device policies,
the price array and the notification dedup records) goes through one
DatabaseManager so that repositories stay thin.

Tables:
    - devices: id, name, host, description
    - device_policies: device_id, policy (JSON), updated_at
    - price_points: slot (0-191), time, price
    - price_feed_state: id (always 1), last_refresh
    - device_notifications: device_id, last_notified, last_heartbeat
    - system_notifications: name, last_notified

Usage:
    ```python
    from relaysync.config import db_manager

    df = db_manager.execute_query("SELECT * FROM price_points ORDER BY slot")
    count = db_manager.execute_scalar("SELECT COUNT(*) FROM devices")
    db_manager.execute_update("DELETE FROM devices WHERE id = ?", ["3"])
    ```
"""

import logging
import os
import sqlite3
from typing import Any, List, Optional, Union

import pandas as pd

from .settings import app_config

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS devices (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    host TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT ''
);
CREATE TABLE IF NOT EXISTS device_policies (
    device_id TEXT PRIMARY KEY,
    policy TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS price_points (
    slot INTEGER PRIMARY KEY,
    time TEXT NOT NULL,
    price REAL NOT NULL
);
CREATE TABLE IF NOT EXISTS price_feed_state (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    last_refresh TEXT
);
CREATE TABLE IF NOT EXISTS device_notifications (
    device_id TEXT PRIMARY KEY,
    last_notified TEXT,
    last_heartbeat TEXT
);
CREATE TABLE IF NOT EXISTS system_notifications (
    name TEXT PRIMARY KEY,
    last_notified TEXT
);
"""


class DatabaseManager:
    """
    Centralized database connection and query management.

    Features:
    - SQLite row factory for column access by name
    - Automatic connection cleanup
    - Type-safe parameter binding
    - Pandas integration for tabular reads

    Examples:
        >>> db = DatabaseManager("/tmp/relaysync-example.db")
        >>> db.execute_scalar("SELECT COUNT(*) FROM devices")
        0
    """

    def __init__(self, database_path: Optional[str] = None):
        """
        Initialize the DatabaseManager and make sure the schema exists.

        Args:
            database_path: Optional path to the sqlite file. Defaults to the
                configured application database.
        """
        self.database_path = database_path or app_config.database_path
        self._ensure_directory()
        self.initialize_schema()

    def _ensure_directory(self) -> None:
        db_dir = os.path.dirname(self.database_path)
        if db_dir and not os.path.exists(db_dir):
            os.makedirs(db_dir, exist_ok=True)
            logger.info(f"Created database directory: {db_dir}")

    def get_connection(self) -> sqlite3.Connection:
        """
        Get a database connection with row factory enabled.

        The connection should be closed after use. Prefer the execute_*
        helpers which handle cleanup automatically.
        """
        conn = sqlite3.connect(
            self.database_path,
            timeout=app_config.database.connection_timeout,
        )
        conn.row_factory = sqlite3.Row  # Enable column access by name
        return conn

    def initialize_schema(self) -> None:
        """Create all tables used by the coordinator if they are missing."""
        conn = self.get_connection()
        try:
            conn.executescript(SCHEMA)
            conn.commit()
        finally:
            conn.close()

    def execute_query(self, query: str, params: Optional[List[Any]] = None) -> pd.DataFrame:
        """
        Execute a SELECT query and return results as a pandas DataFrame.

        Args:
            query (str): SQL SELECT query. Use ? placeholders for parameters.
            params (Optional[List[Any]]): Parameters bound to the placeholders.

        Returns:
            pd.DataFrame: Query results with column names preserved.
        """
        conn = self.get_connection()
        try:
            if params is None:
                params = []
            return pd.read_sql_query(query, conn, params=params)
        finally:
            conn.close()

    def fetch_all(self, query: str, params: Optional[List[Any]] = None) -> List[sqlite3.Row]:
        """Execute a SELECT query and return the raw rows."""
        conn = self.get_connection()
        try:
            cursor = conn.execute(query, params or [])
            return cursor.fetchall()
        finally:
            conn.close()

    def fetch_one(self, query: str, params: Optional[List[Any]] = None) -> Optional[sqlite3.Row]:
        """Execute a SELECT query and return the first row or None."""
        conn = self.get_connection()
        try:
            cursor = conn.execute(query, params or [])
            return cursor.fetchone()
        finally:
            conn.close()

    def execute_update(self, query: str, params: Optional[List[Any]] = None) -> int:
        """
        Execute an INSERT, UPDATE, or DELETE query and commit.

        Returns:
            int: Number of rows affected by the query.
        """
        conn = self.get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(query, params or [])
            conn.commit()
            return cursor.rowcount
        finally:
            conn.close()

    def execute_many(self, statements: List[tuple]) -> None:
        """Execute several (query, params) statements in one transaction."""
        conn = self.get_connection()
        try:
            cursor = conn.cursor()
            for query, params in statements:
                cursor.execute(query, params or [])
            conn.commit()
        except sqlite3.Error:
            conn.rollback()
            raise
        finally:
            conn.close()

    def execute_scalar(self, query: str, params: Optional[List[Any]] = None) -> Union[Any, None]:
        """
        Execute a query and return a single scalar value, or None if no row.
        """
        conn = self.get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(query, params or [])
            result = cursor.fetchone()
            return result[0] if result else None
        finally:
            conn.close()


# Singleton instance for use throughout the application
db_manager = DatabaseManager()

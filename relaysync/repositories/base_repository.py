"""
Base repository interface for data access.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

import pandas as pd

from ..config import DatabaseManager, db_manager


class BaseRepository(ABC):
    """Abstract base repository interface."""

    def __init__(self, database: Optional[DatabaseManager] = None):
        self.db_manager = database or db_manager

    @abstractmethod
    def find_all(self) -> pd.DataFrame:
        """Find all records."""
        pass

    @abstractmethod
    def find_by_id(self, record_id: Any) -> Optional[pd.Series]:
        """Find record by ID."""
        pass

    @abstractmethod
    def count(self) -> int:
        """Count total records."""
        pass

"""
Repository for the two-day price array.

The array always holds 192 rows (today and tomorrow, 96 slots each) once a
refresh has succeeded. Slot numbers are positions in that array, so slot
0-95 is today and 96-191 is tomorrow.
"""

import logging
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

import pandas as pd

from .base_repository import BaseRepository
from ..models import PricePoint
from ..utils.time_utils import SLOTS_PER_DAY, parse_timestamp

logger = logging.getLogger(__name__)


class PriceRepository(BaseRepository):
    """Repository for stored 15-minute prices."""

    def find_all(self) -> pd.DataFrame:
        """Find all price points ordered by slot."""
        return self.db_manager.execute_query(
            "SELECT slot, time, price FROM price_points ORDER BY slot"
        )

    def find_by_id(self, record_id: int) -> Optional[pd.Series]:
        """Find price point by slot number."""
        df = self.db_manager.execute_query(
            "SELECT slot, time, price FROM price_points WHERE slot = ?", [int(record_id)]
        )
        return df.iloc[0] if not df.empty else None

    def count(self) -> int:
        return self.db_manager.execute_scalar("SELECT COUNT(*) FROM price_points") or 0

    def get_prices(self) -> List[float]:
        """All stored prices in slot order (empty list before the first refresh)."""
        df = self.find_all()
        if df.empty:
            return []
        return df["price"].astype(float).round(6).tolist()

    def get_today_prices(self) -> List[float]:
        """The first day of the array (at most 96 values)."""
        return self.get_prices()[:SLOTS_PER_DAY]

    def get_points(self) -> List[PricePoint]:
        df = self.find_all()
        return [
            PricePoint(time=parse_timestamp(row["time"]), price=float(row["price"]))
            for _, row in df.iterrows()
        ]

    def replace_all(self, points: Sequence[Tuple[datetime, float]], refreshed_at: datetime) -> int:
        """Atomically replace the stored array and stamp the refresh time."""
        statements = [("DELETE FROM price_points", None)]
        statements.extend(
            ("INSERT INTO price_points (slot, time, price) VALUES (?, ?, ?)",
             [slot, moment.isoformat(), float(price)])
            for slot, (moment, price) in enumerate(points)
        )
        statements.append((
            "INSERT OR REPLACE INTO price_feed_state (id, last_refresh) VALUES (1, ?)",
            [refreshed_at.isoformat()]
        ))
        self.db_manager.execute_many(statements)
        logger.info(f"Stored {len(points)} price points")
        return len(points)

    def last_refresh(self) -> Optional[datetime]:
        """Time of the last successful refresh, or None if prices were never fetched."""
        return parse_timestamp(self.db_manager.execute_scalar(
            "SELECT last_refresh FROM price_feed_state WHERE id = 1"
        ))

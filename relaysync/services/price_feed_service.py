"""
Price feed: fetches today's and tomorrow's spot prices from the Elering NPS
API and stores them as a 192-slot array (96 fifteen-minute slots per day).

Slots without data stay at 0.0, which the schedule compiler and the device
agent treat as "missing".
"""

import logging
import time
from datetime import date, datetime, timedelta, timezone
from typing import Callable, List, Optional, Tuple

import pandas as pd
import requests

from ..config import PriceFeedConfig
from ..exceptions import RelaySyncError, RequestRejectedError, TransientNetworkError, ValidationFailure
from ..models import PriceRefreshResponse
from ..repositories import PriceRepository
from ..utils.retry import retry_with_backoff
from ..utils.time_utils import SLOTS_PER_DAY, utc_now

logger = logging.getLogger(__name__)


def validate_api_response(data, area: str) -> list:
    """Return the area's data points or raise ValidationFailure."""
    if not isinstance(data, dict) or not isinstance(data.get("data"), dict):
        raise ValidationFailure("Invalid API response: missing data object")
    points = data["data"].get(area)
    if not isinstance(points, list):
        raise ValidationFailure(f"Invalid API response: missing or invalid {area} array")
    for index, point in enumerate(points):
        if not isinstance(point, dict) or not isinstance(point.get("timestamp"), (int, float)):
            raise ValidationFailure(f"Invalid data point at index {index}: missing or invalid timestamp")
        price = point.get("price")
        if not isinstance(price, (int, float)) or price < 0:
            raise ValidationFailure(f"Invalid data point at index {index}: missing or invalid price")
    return points


class PriceFeedService:
    """Refreshes the stored price array from the upstream feed."""

    def __init__(
        self,
        prices: Optional[PriceRepository] = None,
        config: Optional[PriceFeedConfig] = None,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.prices = prices or PriceRepository()
        self.config = config or PriceFeedConfig()
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": "RelaySync/1.0"})
        self._sleep = sleep

    def _get(self, start: str, end: str) -> list:
        try:
            response = self.session.get(
                self.config.api_url,
                params={"start": start, "end": end},
                timeout=self.config.request_timeout
            )
        except requests.RequestException as e:
            raise TransientNetworkError(f"Price API request failed: {e}") from e
        if response.status_code >= 500:
            raise TransientNetworkError(f"Price API returned {response.status_code}", response.status_code)
        if not response.ok:
            raise RequestRejectedError(f"Price API returned {response.status_code}", response.status_code)
        try:
            data = response.json()
        except ValueError as e:
            raise ValidationFailure(f"Price API returned invalid JSON: {e}") from e
        return validate_api_response(data, self.config.area)

    def fetch_day(self, day: date) -> list:
        """Raw data points for one UTC day, or an empty list after exhausted retries."""
        start = f"{day.isoformat()}T00:00:00.000Z"
        end = f"{day.isoformat()}T23:59:59.999Z"
        try:
            points = retry_with_backoff(
                lambda: self._get(start, end),
                max_retries=3,
                base_delay=1.0,
                retry_on=(TransientNetworkError, ValidationFailure),
                sleep=self._sleep,
                description=f"Price fetch for {day}"
            )
        except RelaySyncError as e:
            logger.error(f"Failed to fetch price data for {day}: {e}")
            return []
        logger.info(f"Fetched {len(points)} price points for {day}")
        return points

    def process_day(self, raw: list, day: date) -> List[Tuple[datetime, float]]:
        """
        Map raw points onto the 96 slots of ``day``.

        Prices arrive in EUR/MWh and are stored as c/kWh including VAT.
        Slots without data are zero-filled.
        """
        slot_times = pd.date_range(
            start=datetime(day.year, day.month, day.day, tzinfo=timezone.utc),
            periods=SLOTS_PER_DAY,
            freq="15min"
        )
        slot_prices = pd.Series(0.0, index=range(SLOTS_PER_DAY))

        if raw:
            df = pd.DataFrame(raw)
            stamps = pd.to_datetime(df["timestamp"], unit="s", utc=True)
            on_day = stamps.dt.date == day
            slots = stamps.dt.hour * 4 + stamps.dt.minute // 15
            converted = df["price"].astype(float) / 10 * self.config.vat_multiplier
            slot_prices.loc[slots[on_day].to_numpy()] = converted[on_day].to_numpy()
        else:
            logger.warning(f"No data available for {day}, using {SLOTS_PER_DAY} zero-filled slots")

        non_zero = int((slot_prices != 0).sum())
        logger.info(f"Processed prices for {day}: {non_zero} non-zero, {SLOTS_PER_DAY - non_zero} zero slots")
        return [(ts.to_pydatetime(), float(price)) for ts, price in zip(slot_times, slot_prices)]

    def refresh(self, now: Optional[datetime] = None) -> PriceRefreshResponse:
        """
        Fetch today and tomorrow and replace the stored array.

        The stored array is left untouched when neither day returned data,
        so a feed outage never wipes known prices.
        """
        now = now or utc_now()
        today = now.date()
        tomorrow = today + timedelta(days=1)

        today_raw = self.fetch_day(today)
        tomorrow_raw = self.fetch_day(tomorrow)
        if not today_raw and not tomorrow_raw:
            logger.error("Price refresh failed: no data for today or tomorrow, keeping stored prices")
            return PriceRefreshResponse(success=False, slots=0, non_zero=0,
                                        message="No price data returned by the feed")

        points = self.process_day(today_raw, today) + self.process_day(tomorrow_raw, tomorrow)
        self.prices.replace_all(points, refreshed_at=now)
        non_zero = sum(1 for _, price in points if price > 0)
        return PriceRefreshResponse(success=True, slots=len(points), non_zero=non_zero,
                                    message="Prices refreshed")

    def age_seconds(self, now: Optional[datetime] = None) -> Optional[float]:
        """Seconds since the last successful refresh, None if never refreshed."""
        last = self.prices.last_refresh()
        if last is None:
            return None
        return ((now or utc_now()) - last).total_seconds()

"""
Schedule compiler: price curve + device policy -> 96-slot ON/OFF timetable.

Pure functions, no I/O. The same code runs on the coordinator (snapshot
builder, reconciler) so the schedule a device receives is always the one
the coordinator would reconcile against.

Algorithm:
    1. Group the day's 15-minute slots into periods of 1, 2 or 4 slots
       according to the policy time frame.
    2. Average each period over its slots that carry a price. Zero is the
       feed's "missing" marker and does not count; a period without any
       priced slot gets SENTINEL_AVERAGE so it never wins a cheapest pick.
    3. Mark the ``num_cheapest`` lowest periods ON (stable sort, earlier
       period wins ties).
    4. Force ON every period averaging strictly below ``min_price``.
    5. Force OFF every period averaging strictly above ``max_price``.
       Applied last, so the ceiling always wins.
"""

from typing import List, Sequence, Union

import numpy as np

from ..models.policy_models import DevicePolicy, TimeFrame
from ..utils.time_utils import SLOTS_PER_DAY

SENTINEL_AVERAGE = 9999.0
MIN_PRICED_SLOTS = 48

_SLOTS_PER_PERIOD = {
    TimeFrame.FIFTEEN_MIN: 1,
    TimeFrame.THIRTY_MIN: 2,
    TimeFrame.ONE_HOUR: 4,
}


def slots_per_period(time_frame: Union[TimeFrame, str, None]) -> int:
    """Number of 15-minute slots in one period (1, 2 or 4). Unknown -> 1."""
    try:
        return _SLOTS_PER_PERIOD[TimeFrame(time_frame)]
    except ValueError:
        return 1


def period_averages(prices: Sequence[float], spp: int) -> np.ndarray:
    """
    Average price of each period of one day.

    Only the first 96 values are considered; extra values (tomorrow) are
    ignored and missing trailing values simply do not contribute.
    """
    periods = SLOTS_PER_DAY // spp
    values = np.full(SLOTS_PER_DAY, np.nan)
    day = np.asarray(list(prices[:SLOTS_PER_DAY]), dtype=float)
    values[:day.size] = day
    values[~(values > 0)] = np.nan

    grid = values.reshape(periods, spp)
    counts = np.sum(~np.isnan(grid), axis=1)
    sums = np.nansum(grid, axis=1)
    with np.errstate(invalid="ignore", divide="ignore"):
        return np.where(counts > 0, sums / np.maximum(counts, 1), SENTINEL_AVERAGE)


def compile_schedule(prices: Sequence[float], policy: DevicePolicy) -> List[bool]:
    """
    Compile the 96-slot logical schedule for one day.

    Args:
        prices: Price values (c/kWh) for the day, slot 0 first. Longer
            inputs are truncated to 96.
        policy: Device policy supplying thresholds, cheapest count and
            time frame. Manual override fields are ignored here.

    Returns:
        List[bool]: 96 entries, True meaning logical ON.
    """
    spp = slots_per_period(policy.time_frame)
    averages = period_averages(prices, spp)
    period_on = np.zeros(averages.size, dtype=bool)

    if policy.num_cheapest > 0:
        cheapest = np.argsort(averages, kind="stable")[:policy.num_cheapest]
        period_on[cheapest] = True

    period_on[averages < policy.min_price] = True
    period_on[averages > policy.effective_max_price] = False

    return [bool(on) for on in np.repeat(period_on, spp)]


def has_usable_prices(prices: Sequence[float]) -> bool:
    """
    True when today's slots carry enough real prices to schedule on.

    Only the first day is looked at, since that is all ``compile_schedule``
    uses. Devices apply the same threshold before trusting a snapshot.
    """
    today = prices[:SLOTS_PER_DAY]
    priced = sum(1 for p in today if isinstance(p, (int, float)) and not isinstance(p, bool) and p > 0)
    return priced >= MIN_PRICED_SLOTS

import pytest

from relaysync.models import DevicePolicy, TimeFrame
from relaysync.services.schedule_compiler import (
    SENTINEL_AVERAGE,
    compile_schedule,
    has_usable_prices,
    period_averages,
    slots_per_period
)

from conftest import hourly_prices


def first_hours(hourly):
    """Prices for the first len(hourly) hours, rest of the day missing."""
    return hourly_prices(hourly) + [0.0] * (96 - 4 * len(hourly))


def test_slots_per_period():
    assert slots_per_period(TimeFrame.FIFTEEN_MIN) == 1
    assert slots_per_period("30min") == 2
    assert slots_per_period("1hour") == 4
    assert slots_per_period("weekly") == 1


def test_period_averages_skip_zero_slots():
    prices = [0.10, 0.0, 0.30, 0.0] + [0.0] * 92
    averages = period_averages(prices, 4)
    assert averages[0] == pytest.approx(0.20)
    assert averages[1] == SENTINEL_AVERAGE


def test_thresholds_without_cheapest():
    prices = first_hours([0.10, 0.05, 0.20, 0.30])
    policy = DevicePolicy(min_price=0.06, max_price=0.25, num_cheapest=0, time_frame=TimeFrame.ONE_HOUR)

    schedule = compile_schedule(prices, policy)

    assert len(schedule) == 96
    assert schedule[0:4] == [False] * 4
    assert schedule[4:8] == [True] * 4  # 0.05 < minPrice
    assert schedule[8:12] == [False] * 4
    assert schedule[12:16] == [False] * 4  # 0.30 > maxPrice
    assert not any(schedule[16:])


def test_single_cheapest_period_without_ceiling():
    prices = first_hours([0.10, 0.05, 0.20, 0.30])
    policy = DevicePolicy(min_price=0, max_price=None, num_cheapest=1, time_frame=TimeFrame.ONE_HOUR)

    schedule = compile_schedule(prices, policy)

    assert [i for i, on in enumerate(schedule) if on] == [4, 5, 6, 7]


def test_ceiling_wins_over_cheapest_and_floor():
    prices = [0.50] * 96
    policy = DevicePolicy(min_price=1.0, max_price=0.40, num_cheapest=10)
    assert compile_schedule(prices, policy) == [False] * 96


def test_ties_prefer_earlier_periods():
    prices = [0.10] * 96
    policy = DevicePolicy(min_price=0, max_price=None, num_cheapest=3)
    schedule = compile_schedule(prices, policy)
    assert [i for i, on in enumerate(schedule) if on] == [0, 1, 2]


def test_cheapest_never_picks_missing_periods():
    prices = [0.0] * 92 + [0.20, 0.10, 0.30, 0.40]
    policy = DevicePolicy(min_price=0, max_price=None, num_cheapest=2)
    schedule = compile_schedule(prices, policy)
    assert [i for i, on in enumerate(schedule) if on] == [92, 93]


def test_all_zero_day_is_all_off():
    policy = DevicePolicy(min_price=0.05, max_price=0.20, num_cheapest=4)
    assert compile_schedule([0.0] * 96, policy) == [False] * 96


def test_extra_prices_are_ignored():
    today = [0.30] * 95 + [0.01]
    tomorrow = [0.001] * 96
    policy = DevicePolicy(min_price=0, max_price=None, num_cheapest=1)
    schedule = compile_schedule(today + tomorrow, policy)
    assert [i for i, on in enumerate(schedule) if on] == [95]


def test_short_price_list_is_padded():
    policy = DevicePolicy(min_price=0.15, max_price=None, num_cheapest=0)
    schedule = compile_schedule([0.10, 0.20], policy)
    assert len(schedule) == 96
    assert schedule[0] is True
    assert not any(schedule[1:])


def test_thirty_minute_periods():
    prices = [0.30, 0.30, 0.02, 0.04] + [0.30] * 92
    policy = DevicePolicy(min_price=0, max_price=None, num_cheapest=1, time_frame=TimeFrame.THIRTY_MIN)
    schedule = compile_schedule(prices, policy)
    assert [i for i, on in enumerate(schedule) if on] == [2, 3]


def test_has_usable_prices():
    assert not has_usable_prices([])
    assert not has_usable_prices([0.0] * 96)
    assert not has_usable_prices([0.0, 0.01])
    assert has_usable_prices([0.0] * 48 + [0.01] * 48)
    assert not has_usable_prices([0.0] * 96 + [0.10] * 96)


def test_compiling_twice_gives_the_same_schedule():
    prices = hourly_prices([0.12, 0.08, 0.08, 0.30] * 6)
    policy = DevicePolicy(min_price=0.05, max_price=0.25, num_cheapest=5, time_frame=TimeFrame.THIRTY_MIN)
    assert compile_schedule(prices, policy) == compile_schedule(list(prices), policy)


@pytest.mark.parametrize("time_frame", list(TimeFrame))
def test_num_cheapest_bounds_without_thresholds(time_frame):
    prices = hourly_prices([0.10 + hour / 100 for hour in range(24)])
    periods = 96 // slots_per_period(time_frame)

    none = DevicePolicy(min_price=0, max_price=None, num_cheapest=0, time_frame=time_frame)
    assert not any(compile_schedule(prices, none))

    for count in (periods, periods + 10):
        every = DevicePolicy(min_price=0, max_price=None, num_cheapest=count, time_frame=time_frame)
        assert all(compile_schedule(prices, every))

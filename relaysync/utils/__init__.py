"""
Utilities package: retry, periodic jobs, time/slot arithmetic and input validation.
"""

from .periodic import PeriodicJob, PeriodicScheduler
from .retry import retry_with_backoff
from .time_utils import normalize_sync_time, slot_index, utc_now
from .validation import is_valid_host

__all__ = [
    'PeriodicJob',
    'PeriodicScheduler',
    'retry_with_backoff',
    'normalize_sync_time',
    'slot_index',
    'utc_now',
    'is_valid_host'
]

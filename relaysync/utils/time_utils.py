"""
Time and slot helpers.

A slot is a 15-minute bucket of a UTC day (0-95).
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

SLOTS_PER_DAY = 96
SLOT_MINUTES = 15
SLOT_SECONDS = SLOT_MINUTES * 60

# Raw lastSync values above these are absolute epochs rather than uptimes
EPOCH_MILLIS_THRESHOLD = 1e12
EPOCH_SECONDS_THRESHOLD = 1e9


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def slot_index(moment: datetime) -> int:
    """Return the 15-minute slot (0-95) of ``moment`` in UTC."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.hour * 4 + moment.minute // SLOT_MINUTES


def slot_from_seconds(seconds_of_day: float) -> int:
    """Slot index for a number of seconds since midnight (wraps every day)."""
    return int(seconds_of_day % 86400) // SLOT_SECONDS


def parse_timestamp(value) -> Optional[datetime]:
    """Parse an ISO-8601 string (``Z`` suffix allowed) into an aware datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def normalize_sync_time(now: datetime, uptime, last_sync) -> Optional[datetime]:
    """
    Convert a device-reported ``lastSync`` into an absolute timestamp.

    Devices may lack a real-time clock, so they report ``lastSync`` as the
    value of their uptime counter at the time of the sync. When the current
    uptime is also reported and is not smaller than that value the sync
    happened ``uptime - last_sync`` seconds ago. Otherwise a large raw
    value is taken as an absolute epoch in milliseconds or seconds.

    Returns None when nothing sensible can be derived.
    """
    if last_sync is None:
        return None
    try:
        sync_value = float(last_sync)
    except (TypeError, ValueError):
        return None

    if uptime is not None:
        try:
            uptime_now = float(uptime)
        except (TypeError, ValueError):
            uptime_now = None
        if uptime_now is not None and uptime_now >= sync_value:
            return now - timedelta(seconds=uptime_now - sync_value)

    if sync_value > EPOCH_MILLIS_THRESHOLD:
        return datetime.fromtimestamp(sync_value / 1000, tz=timezone.utc)
    if sync_value > EPOCH_SECONDS_THRESHOLD:
        return datetime.fromtimestamp(sync_value, tz=timezone.utc)
    return None

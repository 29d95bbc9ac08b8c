"""Time bucket keys for trend series.

Keys are strings that sort lexically in chronological order:
- day:   2024-03-07
- week:  2024-03-03 (the Sunday that starts the week)
- month: 2024-03
- year:  2024
"""

from datetime import datetime, timedelta

from cm_core_lib.models.common import ensure_utc
from cm_core_lib.models.metrics import TimeInterval


def bucket_key(value: datetime, interval: TimeInterval = TimeInterval.MONTH) -> str:
    """Return the bucket key of ``value`` (interpreted in UTC) for ``interval``"""
    value = ensure_utc(value)
    interval = TimeInterval(interval)

    if interval is TimeInterval.DAY:
        return value.date().isoformat()
    if interval is TimeInterval.WEEK:
        # isoweekday(): Monday=1 .. Sunday=7
        days_since_sunday = value.isoweekday() % 7
        return (value.date() - timedelta(days=days_since_sunday)).isoformat()
    if interval is TimeInterval.YEAR:
        return f"{value.year:04d}"
    return f"{value.year:04d}-{value.month:02d}"

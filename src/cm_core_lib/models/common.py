"""Common helpers shared by the case and metrics models.

- parse_utc_timestamp(): ISO-8601 parsing into aware UTC datetimes
- ensure_utc(): normalize datetimes (naive values are assumed UTC)
- blank_timestamp_to_none(): pre-validation cleanup of timestamp columns
- previous_month(): (year, month) of the calendar month before a reference
"""

from datetime import date, datetime, timezone
from typing import Any, Optional, Tuple

from pydantic import TypeAdapter

_datetime_adapter = TypeAdapter(datetime)


def parse_utc_timestamp(timestamp_str: str) -> datetime:
    """Parse a timestamp string into a timezone-aware datetime in UTC.

    Parsing is pydantic's, so it handles the forms the data store emits:
    - '2025-10-17T04:02:59.12345+00:00' (any fraction width, any offset)
    - '2025-10-17T04:02:59Z' (Zulu time suffix)
    - '2025-10-17T04:02:59' (naive, assumed UTC)
    - '2025-10-17' (date only, midnight UTC)

    Args:
        timestamp_str: Timestamp string in one of the forms above

    Returns:
        datetime: Timezone-aware datetime converted to UTC

    Raises:
        ValueError: If the string is not a recognizable timestamp
            (pydantic.ValidationError is a ValueError)
    """
    return ensure_utc(_datetime_adapter.validate_python(timestamp_str.strip()))


def ensure_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime (naive is assumed UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def blank_timestamp_to_none(value: Any) -> Any:
    """Prepare a raw column value for pydantic's datetime validation.

    Empty strings are treated as absent and plain dates become midnight UTC.
    Strings are passed through for pydantic to parse.
    """
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        return value or None
    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    return value


def previous_month(reference: datetime) -> Tuple[int, int]:
    """Return (year, month) of the calendar month before ``reference``."""
    if reference.month == 1:
        return reference.year - 1, 12
    return reference.year, reference.month - 1

"""
Timezone helpers for Handlebook.

All timestamps stored by the registry are timezone-aware UTC.
"""

from datetime import datetime, timezone

from dateutil import parser as date_parser


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_utc_time_string(value: str) -> datetime:
    """
    Parse an ISO 8601 timestamp into an aware UTC datetime.

    Accepts the 'Z' suffix written by JavaScript's Date.toISOString()
    as well as explicit offsets. Naive strings are taken to be UTC.

    Raises:
        ValueError: If the string is not a valid ISO 8601 timestamp
    """
    if not value:
        raise ValueError("Timestamp string cannot be empty")
    return ensure_utc(date_parser.isoparse(value))


def format_utc_iso(value: datetime) -> str:
    """Format a datetime as ISO 8601 with millisecond precision and 'Z' suffix."""
    value = ensure_utc(value)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"

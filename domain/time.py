"""
Domain time utilities (pure).

Centralized timestamp validation, parsing and formatting helpers.

Behavior and error messages must remain consistent across the domain model.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any


def require_utc_timestamp(name: str, value: datetime) -> None:
    """
    Enforces the requirement that stored timestamps are UTC.

    Invariants:
    - Timestamps must be timezone-aware.
    - Timestamps must have UTC offset 0.
    """

    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"{name} must be timezone-aware (UTC)")
    if value.utcoffset() != timedelta(0):
        raise ValueError(f"{name} must be a UTC timestamp (offset 0)")


def truncate_to_millis(dt: datetime) -> datetime:
    """Drop sub-millisecond precision, matching what `to_iso_utc` can store."""
    return dt.replace(microsecond=dt.microsecond // 1000 * 1000)


def utc_now() -> datetime:
    return truncate_to_millis(datetime.now(timezone.utc))


def parse_utc_datetime(value: Any) -> datetime:
    """
    Parse an ISO-8601 timestamp into a timezone-aware UTC datetime.

    Accepts datetimes or strings, with or without a trailing 'Z'. Naive values
    are interpreted as UTC.
    """

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        # Python's fromisoformat doesn't consistently accept 'Z' across versions.
        text = value.strip().replace("Z", "+00:00")
        dt = datetime.fromisoformat(text)
    else:
        raise TypeError(f"Unsupported timestamp type: {type(value)!r}")

    if dt.tzinfo is None or dt.utcoffset() is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def to_iso_utc(dt: datetime) -> str:
    """Format a UTC datetime as `YYYY-MM-DDTHH:MM:SS.mmmZ`."""

    if dt.tzinfo is None or dt.utcoffset() is None:
        raise ValueError("timestamp must be timezone-aware (UTC)")
    text = dt.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")

"""Shared utility functions for Device Router.

Timestamps on stored profiles are timezone-aware UTC datetimes and are
serialized as ISO-8601 strings with a trailing ``Z`` so they match what
browser-side code produces with ``Date.prototype.toISOString``.
"""

import math
from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    """Get current UTC datetime (timezone-aware).

    Returns:
        A timezone-aware datetime object representing the current time in UTC.

    Example:
        >>> from device_router.core.utils import utc_now
        >>> now = utc_now()
        >>> now.tzinfo is not None
        True
    """
    return datetime.now(timezone.utc)


def add_seconds(dt: datetime, seconds: float) -> datetime:
    """Return ``dt`` shifted forward by ``seconds``."""
    return dt + timedelta(seconds=seconds)


def to_iso_z(dt: datetime) -> str:
    """Format a datetime as ISO-8601 UTC with millisecond precision.

    Naive datetimes are assumed to already be UTC.

    Args:
        dt: The datetime to format.

    Returns:
        A string like ``2024-01-15T10:30:00.000Z``.

    Example:
        >>> from datetime import datetime, timezone
        >>> to_iso_z(datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc))
        '2024-01-15T10:30:00.000Z'
    """
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def is_number(value: object) -> bool:
    """Check for a finite JSON number: int or float, but never bool.

    NaN and infinities are rejected because JSON has no literal for them,
    even though Python's json module will parse ``NaN`` and ``Infinity``.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return isinstance(value, int) or math.isfinite(value)

"""
Wire date format: ISO-8601 in UTC with millisecond precision, e.g.
``2015-06-01T12:30:45.123Z``.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone

# datetime.fromisoformat on 3.10 only takes 3 or 6 fractional digits
_FRACTION = re.compile(r"\.(\d+)")


def format_date(value: datetime) -> str:
    """Format a datetime for the wire. Naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_date(value: str) -> datetime:
    """Parse a wire date into an aware UTC datetime.

    Fractions of any precision are accepted; digits past microseconds
    are dropped.

    Raises:
        ValueError: If the string is not an ISO-8601 timestamp
    """
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)

# NetXMS Query Bridge
# File: shapers/timeutil.py
# Version: v1

"""Timestamp parsing and formatting for NetXMS payloads and requests."""

from __future__ import annotations

from datetime import datetime, timezone
import re

# date "T" time, optional fraction, mandatory zone ("Z" or +hh:mm).
_RFC3339_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}[Tt]\d{2}:\d{2}:\d{2}(\.\d+)?([Zz]|[+-]\d{2}:\d{2})$"
)


def parse_rfc3339(value: str) -> datetime:
    """Parse an RFC3339 timestamp into an aware datetime.

    Raises ValueError for anything that is not strict RFC3339.
    """
    if not isinstance(value, str) or not _RFC3339_RE.match(value):
        raise ValueError(f"invalid RFC3339 timestamp: {value!r}")

    text = value.upper()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"

    # datetime only keeps microseconds; trim longer fractions.
    head, sep, rest = text.partition(".")
    if sep:
        digits = rest[:-6]
        zone = rest[-6:]
        text = f"{head}.{digits[:6].ljust(6, '0')}{zone}"

    return datetime.fromisoformat(text)


def format_unix_date(value: datetime) -> str:
    """Format as the Unix date layout, e.g. ``Mon Jan  2 15:04:05 UTC 2006``.

    Naive datetimes are treated as UTC; aware ones are converted to UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return f"{value:%a %b} {value.day:>2} {value:%H:%M:%S} UTC {value.year}"

"""
Groupgate Output Formatters

Timestamp helpers shared by CLI output and persisted records.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone


def format_datetime(dt: datetime) -> str:
    """
    Format datetime for display.

    Args:
        dt: datetime object

    Returns:
        ISO format string
    """
    return dt.strftime("%Y-%m-%dT%H:%M:%SZ")


def format_unix_timestamp(ts: int | None) -> str | None:
    """Format a Unix timestamp as an ISO string, passing None through."""
    if ts is None:
        return None
    return format_datetime(datetime.fromtimestamp(ts, tz=timezone.utc))


def get_utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def get_utc_timestamp() -> str:
    """
    Get current UTC timestamp string.

    Returns:
        ISO format timestamp like "2026-01-15T12:30:00Z"
    """
    return format_datetime(get_utc_now())


def unix_now() -> int:
    """Current time as integer Unix seconds."""
    return int(time.time())

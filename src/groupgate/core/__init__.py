"""
Groupgate core infrastructure.

Configuration, logging, timestamps and the async ESI client.
"""

from .formatters import (
    format_datetime,
    format_unix_timestamp,
    get_utc_now,
    get_utc_timestamp,
    unix_now,
)

__all__ = [
    "format_datetime",
    "format_unix_timestamp",
    "get_utc_now",
    "get_utc_timestamp",
    "unix_now",
]

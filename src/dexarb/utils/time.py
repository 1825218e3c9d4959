"""
Time utilities.

Quotes are stamped in milliseconds; latency is measured in microseconds.
"""

import time
from datetime import UTC, datetime


def get_timestamp_us() -> int:
    """
    Get current timestamp in microseconds.

    Returns:
        Current Unix timestamp in microseconds.
    """
    return time.time_ns() // 1000


def get_timestamp_ms() -> int:
    """
    Get current timestamp in milliseconds.

    Returns:
        Current Unix timestamp in milliseconds.
    """
    return time.time_ns() // 1_000_000


def format_timestamp_ms(timestamp_ms: int, include_date: bool = False) -> str:
    """
    Format a millisecond timestamp for display.

    Example:
        >>> format_timestamp_ms(1704067200123)
        '00:00:00.123'
        >>> format_timestamp_ms(1704067200123, include_date=True)
        '2024-01-01 00:00:00.123'
    """
    seconds, millis = divmod(timestamp_ms, 1000)
    dt = datetime.fromtimestamp(seconds, tz=UTC)

    if include_date:
        return f"{dt.strftime('%Y-%m-%d %H:%M:%S')}.{millis:03d}"
    return f"{dt.strftime('%H:%M:%S')}.{millis:03d}"


def elapsed_us(start_us: int) -> int:
    """Microseconds elapsed since `start_us`."""
    return get_timestamp_us() - start_us

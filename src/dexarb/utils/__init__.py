"""Utility functions for the divergence monitor."""

from dexarb.utils.time import (
    elapsed_us,
    format_timestamp_ms,
    get_timestamp_ms,
    get_timestamp_us,
)


__all__ = [
    "elapsed_us",
    "format_timestamp_ms",
    "get_timestamp_ms",
    "get_timestamp_us",
]

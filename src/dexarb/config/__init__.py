"""Configuration module for the divergence monitor."""

from dexarb.config.constants import (
    DEFAULT_PAIRS,
    DEFAULT_POLL_INTERVAL_MS,
    DEFAULT_ROTATION_INTERVAL_MS,
    DEFAULT_THRESHOLD_PCT,
)
from dexarb.config.settings import Settings, get_settings


__all__ = [
    "Settings",
    "get_settings",
    "DEFAULT_PAIRS",
    "DEFAULT_POLL_INTERVAL_MS",
    "DEFAULT_ROTATION_INTERVAL_MS",
    "DEFAULT_THRESHOLD_PCT",
]

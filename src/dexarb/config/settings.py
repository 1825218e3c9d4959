"""
Application settings with environment variable support.

Uses Pydantic Settings for type-safe configuration with automatic
environment variable loading and validation.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dexarb.config.constants import (
    DEFAULT_DASHBOARD_HOST,
    DEFAULT_DASHBOARD_PORT,
    DEFAULT_GAS_COST_NATIVE,
    DEFAULT_HYSTERESIS_CYCLES,
    DEFAULT_NATIVE_PRICE,
    DEFAULT_PAIRS,
    DEFAULT_POLL_INTERVAL_MS,
    DEFAULT_REQUEST_TIMEOUT_S,
    DEFAULT_ROTATION_INTERVAL_MS,
    DEFAULT_SLIPPAGE_PCT,
    DEFAULT_THRESHOLD_PCT,
    PAIR_SEPARATOR,
    TOKEN_ADDRESSES,
    VENUE_A_NAME,
    VENUE_A_PRICE_PATH,
    VENUE_A_PRICE_URL,
    VENUE_B_NAME,
    VENUE_B_PRICE_PATH,
    VENUE_B_PRICE_URL,
)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables;
    list and dict values are read as JSON.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================================================================
    # Pairs & Detection
    # =========================================================================

    pairs: list[str] = Field(
        default_factory=lambda: list(DEFAULT_PAIRS),
        description="Trading pairs to monitor, as BASE/QUOTE",
    )

    threshold_pct: float = Field(
        default=DEFAULT_THRESHOLD_PCT,
        ge=0.0,
        le=100.0,
        description="Absolute profitability percentage above which a pair is an opportunity",
    )

    hysteresis_cycles: int = Field(
        default=DEFAULT_HYSTERESIS_CYCLES,
        ge=1,
        le=100,
        description="Consecutive cycles required before a pair's opportunity flag flips",
    )

    # =========================================================================
    # Polling
    # =========================================================================

    poll_interval_ms: int = Field(
        default=DEFAULT_POLL_INTERVAL_MS,
        ge=100,
        le=600_000,
        description="Interval between quote fetches in milliseconds",
    )

    rotation_interval_ms: int = Field(
        default=DEFAULT_ROTATION_INTERVAL_MS,
        ge=100,
        le=60_000,
        description="Interval between alert rotations in milliseconds",
    )

    fetch_policy: Literal["overlap", "skip"] = Field(
        default="overlap",
        description="Whether a tick may start while the previous fetch is in flight",
    )

    # =========================================================================
    # Quote Source
    # =========================================================================

    quote_source: Literal["simulated", "live"] = Field(
        default="simulated",
        description="Where quotes come from",
    )

    venue_a_name: str = Field(default=VENUE_A_NAME)
    venue_b_name: str = Field(default=VENUE_B_NAME)

    venue_a_price_url: str = Field(default=VENUE_A_PRICE_URL)
    venue_b_price_url: str = Field(default=VENUE_B_PRICE_URL)

    venue_a_price_path: str = Field(default=VENUE_A_PRICE_PATH)
    venue_b_price_path: str = Field(default=VENUE_B_PRICE_PATH)

    token_addresses: dict[str, str] = Field(
        default_factory=lambda: dict(TOKEN_ADDRESSES),
        description="Token symbol to contract address",
    )

    request_timeout_s: float = Field(
        default=DEFAULT_REQUEST_TIMEOUT_S,
        gt=0.0,
        le=60.0,
        description="Timeout for a single venue price request",
    )

    # =========================================================================
    # Trade Estimation
    # =========================================================================

    gas_cost_native: float = Field(default=DEFAULT_GAS_COST_NATIVE, ge=0.0)
    native_price: float = Field(default=DEFAULT_NATIVE_PRICE, gt=0.0)
    slippage_pct: float = Field(default=DEFAULT_SLIPPAGE_PCT, ge=0.0, le=50.0)

    # =========================================================================
    # Operation
    # =========================================================================

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )

    use_uvloop: bool = Field(
        default=True,
        description="Use uvloop for improved async performance",
    )

    dashboard_host: str = Field(default=DEFAULT_DASHBOARD_HOST)
    dashboard_port: int = Field(default=DEFAULT_DASHBOARD_PORT, ge=1, le=65535)

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("pairs", mode="after")
    @classmethod
    def validate_pairs(cls, v: list[str]) -> list[str]:
        """Ensure pairs are non-empty, well formed and unique."""
        if not v:
            raise ValueError("At least one pair must be configured")

        normalized: list[str] = []
        for pair in v:
            parts = pair.strip().upper().split(PAIR_SEPARATOR)
            if len(parts) != 2 or not all(parts):
                raise ValueError(f"Invalid pair {pair!r}, expected BASE/QUOTE")
            name = PAIR_SEPARATOR.join(parts)
            if name not in normalized:
                normalized.append(name)
        return normalized

    @field_validator("token_addresses", mode="after")
    @classmethod
    def normalize_token_symbols(cls, v: dict[str, str]) -> dict[str, str]:
        """Upper-case token symbols."""
        return {symbol.upper(): address for symbol, address in v.items()}

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def poll_interval_s(self) -> float:
        """Polling interval in seconds."""
        return self.poll_interval_ms / 1000.0

    @property
    def rotation_interval_s(self) -> float:
        """Alert rotation interval in seconds."""
        return self.rotation_interval_ms / 1000.0


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Clear cache with `get_settings.cache_clear()` if needed.
    """
    return Settings()

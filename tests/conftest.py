"""
Pytest configuration and shared fixtures.

Provides reusable test fixtures for all test modules.
"""

from collections.abc import Callable

import pytest

from dexarb.core.types import OpportunitySignal, Quote
from dexarb.strategy.calculator import ProfitabilityCalculator
from dexarb.strategy.classifier import OpportunityClassifier
from dexarb.utils.time import get_timestamp_ms


# =============================================================================
# Quote Fixtures
# =============================================================================


@pytest.fixture
def make_quote() -> Callable[..., Quote]:
    """Factory for quotes with sensible defaults."""

    def _make(
        pair: str = "WBNB/BUSD",
        venue_a_price: float = 310.45,
        venue_b_price: float = 312.18,
        volume_24h: float = 0.0,
    ) -> Quote:
        return Quote(
            pair=pair,
            venue_a_price=venue_a_price,
            venue_b_price=venue_b_price,
            volume_24h=volume_24h,
            observed_at=get_timestamp_ms(),
        )

    return _make


@pytest.fixture
def quote_wbnb_busd() -> Quote:
    """WBNB/BUSD priced higher on venue B."""
    return Quote(
        pair="WBNB/BUSD",
        venue_a_price=310.45,
        venue_b_price=312.18,
        volume_24h=1_250_000.0,
        observed_at=1704067200000,
    )


@pytest.fixture
def quote_busd_wbnb() -> Quote:
    """BUSD/WBNB priced lower on venue B."""
    return Quote(
        pair="BUSD/WBNB",
        venue_a_price=0.003223,
        venue_b_price=0.003201,
        volume_24h=0.0,
        observed_at=1704067200000,
    )


# =============================================================================
# Strategy Fixtures
# =============================================================================


@pytest.fixture
def calculator() -> ProfitabilityCalculator:
    """Create profitability calculator."""
    return ProfitabilityCalculator()


@pytest.fixture
def classifier() -> OpportunityClassifier:
    """Create classifier with the default 0.5% threshold."""
    return OpportunityClassifier(threshold_pct=0.5)


@pytest.fixture
def make_signal() -> Callable[..., OpportunitySignal]:
    """Factory for signals with a given profitability."""

    def _make(
        pair: str = "WBNB/BUSD",
        profitability_pct: float = 0.0,
        is_opportunity: bool = False,
        venue_a_price: float = 100.0,
    ) -> OpportunitySignal:
        venue_b_price = venue_a_price * (1 + profitability_pct / 100.0)
        return OpportunitySignal(
            pair=pair,
            venue_a_price=venue_a_price,
            venue_b_price=venue_b_price,
            volume_24h=0.0,
            observed_at=get_timestamp_ms(),
            price_delta=venue_b_price - venue_a_price,
            profitability_pct=profitability_pct,
            is_opportunity=is_opportunity,
        )

    return _make

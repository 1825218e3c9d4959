"""
Type definitions for the divergence monitor.

This module contains the dataclasses, enums and Protocol definitions
shared across components. Value types are frozen so a signal handed to
an observer can never be changed under another observer.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

from dexarb.config.constants import PAIR_SEPARATOR


# =============================================================================
# Enums
# =============================================================================


class TradeDirection(str, Enum):
    """Which venue to buy on and which to sell on."""

    A_TO_B = "A_TO_B"  # buy on venue A, sell on venue B
    B_TO_A = "B_TO_A"  # buy on venue B, sell on venue A


class HubState(str, Enum):
    """Subscription hub polling state."""

    IDLE = "IDLE"
    POLLING = "POLLING"


class TransactionStatus(str, Enum):
    """Status of a submitted arbitrage transaction."""

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    FAILED = "FAILED"


# =============================================================================
# Pair Helpers
# =============================================================================


def split_pair(pair: str) -> tuple[str, str]:
    """
    Split a pair identifier into base and quote tokens.

    Raises:
        ValueError: If the pair is not of the form BASE/QUOTE.
    """
    parts = pair.split(PAIR_SEPARATOR)
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise ValueError(f"Invalid pair {pair!r}, expected BASE/QUOTE")
    return parts[0], parts[1]


# =============================================================================
# Market Data Types
# =============================================================================


@dataclass(slots=True, frozen=True)
class Quote:
    """
    Prices for one pair on both venues at one point in time.

    Prices are BASE expressed in QUOTE units.
    """

    pair: str
    venue_a_price: float
    venue_b_price: float
    volume_24h: float
    observed_at: int  # ms

    @property
    def is_valid(self) -> bool:
        """Both prices are positive."""
        return self.venue_a_price > 0 and self.venue_b_price > 0


@dataclass(slots=True, frozen=True)
class OpportunitySignal:
    """
    Divergence signal derived from a single Quote.

    Recomputed every cycle and superseded by the next cycle's signal
    for the same pair; identity is (pair, observed_at).
    """

    pair: str
    venue_a_price: float
    venue_b_price: float
    volume_24h: float
    observed_at: int
    price_delta: float
    profitability_pct: float
    is_opportunity: bool = False

    @property
    def direction(self) -> TradeDirection:
        """Positive profitability means buy on A and sell on B."""
        if self.profitability_pct > 0:
            return TradeDirection.A_TO_B
        return TradeDirection.B_TO_A

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON surfaces."""
        return {
            "pair": self.pair,
            "venue_a_price": self.venue_a_price,
            "venue_b_price": self.venue_b_price,
            "volume_24h": self.volume_24h,
            "observed_at": self.observed_at,
            "price_delta": self.price_delta,
            "profitability_pct": self.profitability_pct,
            "is_opportunity": self.is_opportunity,
            "direction": self.direction.value,
        }


# =============================================================================
# Execution Types
# =============================================================================


@dataclass(slots=True, frozen=True)
class TradeEstimate:
    """Estimated outcome of a flash-loan arbitrage."""

    pair: str
    amount: float
    direction: TradeDirection
    profit_pct: float
    gross_profit: float
    gas_cost: float
    slippage_cost: float

    @property
    def net_profit(self) -> float:
        """Profit after gas and slippage."""
        return self.gross_profit - self.gas_cost - self.slippage_cost

    @property
    def is_profitable(self) -> bool:
        """Check if the trade is expected to make money."""
        return self.net_profit > 0

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON surfaces."""
        return {
            "pair": self.pair,
            "amount": self.amount,
            "direction": self.direction.value,
            "profit_pct": self.profit_pct,
            "gross_profit": self.gross_profit,
            "gas_cost": self.gas_cost,
            "slippage_cost": self.slippage_cost,
            "net_profit": self.net_profit,
            "is_profitable": self.is_profitable,
        }


@dataclass(slots=True, frozen=True)
class TransactionHandle:
    """Handle returned by the execution collaborator."""

    tx_hash: str
    pair: str
    amount: float
    direction: TradeDirection
    submitted_at: int
    status: TransactionStatus = TransactionStatus.PENDING

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON surfaces."""
        return {
            "tx_hash": self.tx_hash,
            "pair": self.pair,
            "amount": self.amount,
            "direction": self.direction.value,
            "submitted_at": self.submitted_at,
            "status": self.status.value,
        }


# =============================================================================
# Subscription Types
# =============================================================================

# Observers may be plain functions or coroutines
SignalCallback = Callable[[list[OpportunitySignal]], Awaitable[None] | None]


@dataclass(slots=True)
class Subscription:
    """An observer's registration of interest in a set of pairs."""

    id: str
    pairs: tuple[str, ...]
    callback: SignalCallback
    active: bool = True
    pair_set: frozenset[str] = field(init=False)

    def __post_init__(self) -> None:
        self.pair_set = frozenset(self.pairs)

    def select(self, signals: list[OpportunitySignal]) -> list[OpportunitySignal]:
        """Signals for this subscription's pairs, in requested order."""
        by_pair = {s.pair: s for s in signals if s.pair in self.pair_set}
        return [by_pair[p] for p in self.pairs if p in by_pair]


# =============================================================================
# Protocols (Interfaces)
# =============================================================================


class QuoteSource(Protocol):
    """Supplies best-effort quotes for a set of pairs."""

    async def fetch_quotes(self, pairs: frozenset[str]) -> list[Quote]:
        """Fetch one quote per pair; failed pairs are omitted."""
        ...


class ArbitrageExecutor(Protocol):
    """External collaborator that executes a flash-loan arbitrage."""

    async def execute_arbitrage(
        self,
        pair: str,
        amount: float,
        direction: TradeDirection,
    ) -> TransactionHandle:
        """Submit the arbitrage and return its transaction handle."""
        ...

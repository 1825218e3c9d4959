"""
Flash-loan trade estimation.

Rough profit estimate for acting on a signal: the divergence captured on
the loan amount, minus gas and slippage.
"""

from dexarb.config.constants import (
    DEFAULT_GAS_COST_NATIVE,
    DEFAULT_NATIVE_PRICE,
    DEFAULT_SLIPPAGE_PCT,
)
from dexarb.core.types import OpportunitySignal, TradeDirection, TradeEstimate


def directional_profit_pct(signal: OpportunitySignal, direction: TradeDirection) -> float:
    """
    Divergence percentage captured by trading in `direction`.

    Buying on A and selling on B earns (B - A) / A; the reverse earns
    (A - B) / B.
    """
    if direction == TradeDirection.A_TO_B:
        return signal.profitability_pct
    return (signal.venue_a_price - signal.venue_b_price) / signal.venue_b_price * 100.0


def estimate_trade(
    signal: OpportunitySignal,
    amount: float,
    direction: TradeDirection | None = None,
    gas_cost_native: float = DEFAULT_GAS_COST_NATIVE,
    native_price: float = DEFAULT_NATIVE_PRICE,
    slippage_pct: float = DEFAULT_SLIPPAGE_PCT,
) -> TradeEstimate:
    """
    Estimate the outcome of a flash-loan arbitrage on a signal.

    Args:
        signal: Current signal for the pair.
        amount: Flash-loan amount in QUOTE units.
        direction: Trade direction (default: the signal's own direction).
        gas_cost_native: Gas for the round trip in native token.
        native_price: Native token price in QUOTE units.
        slippage_pct: Expected slippage percentage on the amount.

    Returns:
        TradeEstimate for the trade.

    Raises:
        ValueError: If amount is not positive.
    """
    if amount <= 0:
        raise ValueError(f"amount must be positive, got {amount}")

    direction = direction or signal.direction
    profit_pct = directional_profit_pct(signal, direction)

    return TradeEstimate(
        pair=signal.pair,
        amount=amount,
        direction=direction,
        profit_pct=profit_pct,
        gross_profit=amount * profit_pct / 100.0,
        gas_cost=gas_cost_native * native_price,
        slippage_cost=amount * slippage_pct / 100.0,
    )

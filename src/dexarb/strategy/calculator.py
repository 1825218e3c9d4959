"""
Profitability calculation.

Turns a pair's two venue prices into a signed divergence percentage.
"""

import math

from dexarb.core.errors import DataIntegrityError
from dexarb.core.types import OpportunitySignal, Quote


class ProfitabilityCalculator:
    """
    Converts quotes into opportunity signals.

    Pure and deterministic: the same quote always yields the same signal.
    Positive profitability means venue B is priced above venue A
    (buy on A, sell on B). Venue A's price is the denominator.
    """

    __slots__ = ()

    def calculate(self, quote: Quote) -> OpportunitySignal:
        """
        Calculate the divergence signal for a quote.

        The returned signal is unclassified (``is_opportunity`` is False);
        see :class:`OpportunityClassifier`.

        Raises:
            DataIntegrityError: If either price is non-positive or not finite.
        """
        price_a = quote.venue_a_price
        price_b = quote.venue_b_price

        if not (math.isfinite(price_a) and math.isfinite(price_b)):
            raise DataIntegrityError(
                f"{quote.pair}: non-finite price (a={price_a}, b={price_b})",
                pair=quote.pair,
            )
        if price_a <= 0 or price_b <= 0:
            raise DataIntegrityError(
                f"{quote.pair}: non-positive price (a={price_a}, b={price_b})",
                pair=quote.pair,
            )

        price_delta = price_b - price_a
        profitability_pct = (price_delta / price_a) * 100.0

        return OpportunitySignal(
            pair=quote.pair,
            venue_a_price=price_a,
            venue_b_price=price_b,
            volume_24h=quote.volume_24h,
            observed_at=quote.observed_at,
            price_delta=price_delta,
            profitability_pct=profitability_pct,
        )

    def calculate_many(
        self, quotes: list[Quote]
    ) -> tuple[list[OpportunitySignal], list[DataIntegrityError]]:
        """
        Calculate signals for a batch, isolating per-pair failures.

        Returns:
            Tuple of (signals, errors) in input order.
        """
        signals: list[OpportunitySignal] = []
        errors: list[DataIntegrityError] = []

        for quote in quotes:
            try:
                signals.append(self.calculate(quote))
            except DataIntegrityError as e:
                errors.append(e)

        return signals, errors

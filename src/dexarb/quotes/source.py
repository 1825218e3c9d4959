"""
Quote sources.

Both sources are best effort: a pair whose price cannot be obtained on
both venues is left out of the batch instead of failing it.
"""

import asyncio
import logging
import random
from dataclasses import dataclass, field

from dexarb.config.constants import SIMULATED_BASE_PRICES, SIMULATED_DEFAULT_BASE
from dexarb.config.settings import Settings
from dexarb.core.errors import DataIntegrityError, FetchFailure
from dexarb.core.types import Quote, QuoteSource, split_pair
from dexarb.quotes.client import VenueClient
from dexarb.utils.time import get_timestamp_ms


logger = logging.getLogger(__name__)


class DexQuoteSource:
    """
    Quotes from two live venues.

    Each pair is fetched from both venues concurrently, and all pairs of
    a batch are fetched concurrently.
    """

    def __init__(self, venue_a: VenueClient, venue_b: VenueClient) -> None:
        self._venue_a = venue_a
        self._venue_b = venue_b

    async def fetch_quotes(self, pairs: frozenset[str]) -> list[Quote]:
        """
        Fetch a quote for every pair that both venues can price.

        Returns:
            Quotes sorted by pair.
        """
        ordered = sorted(pairs)
        results = await asyncio.gather(*(self._fetch_pair(p) for p in ordered))
        return [q for q in results if q is not None]

    async def _fetch_pair(self, pair: str) -> Quote | None:
        """Fetch both venue prices for a pair; None if either is missing."""
        price_a, price_b = await asyncio.gather(
            self._venue_a.fetch_pair_price(pair),
            self._venue_b.fetch_pair_price(pair),
            return_exceptions=True,
        )

        for result in (price_a, price_b):
            if isinstance(result, FetchFailure):
                logger.debug(f"{pair} omitted: {result}")
                return None
            if isinstance(result, DataIntegrityError):
                logger.error(f"{pair} omitted, bad venue data: {result}")
                return None
            if isinstance(result, Exception):
                logger.error(f"{pair} omitted, unexpected error: {result!r}")
                return None
            if isinstance(result, BaseException):
                raise result

        quote = Quote(
            pair=pair,
            venue_a_price=price_a,  # type: ignore[arg-type]
            venue_b_price=price_b,  # type: ignore[arg-type]
            volume_24h=0.0,
            observed_at=get_timestamp_ms(),
        )
        if not quote.is_valid:
            logger.debug(f"{pair} omitted: non-positive price")
            return None
        return quote

    async def close(self) -> None:
        """Close both venue clients."""
        await self._venue_a.close()
        await self._venue_b.close()


@dataclass
class SimulatedPair:
    """Random-walk state for one simulated pair."""

    pair: str
    base_a: float
    base_b: float
    volatility: float = 0.008  # Relative price change per fetch
    price_a: float = field(init=False)
    price_b: float = field(init=False)

    def __post_init__(self) -> None:
        self.price_a = self.base_a
        self.price_b = self.base_b


class SimulatedQuoteSource:
    """
    Simulated venue quotes for demo mode.

    Features:
    - Random-walk prices kept within 5% of the base price
    - Venue B moves partly with venue A, so divergence drifts slowly
    - Pairs without a configured base start from a default one
    - Optional per-pair fetch failure rate
    """

    def __init__(
        self,
        base_prices: dict[str, tuple[float, float]] | None = None,
        failure_rate: float = 0.0,
        latency_s: float = 0.0,
        rng: random.Random | None = None,
    ) -> None:
        """
        Initialize simulated source.

        Args:
            base_prices: Pair to (venue A, venue B) starting prices.
            failure_rate: Probability a pair is omitted from a batch.
            latency_s: Simulated network latency per batch.
            rng: Random generator (seed it for reproducible runs).
        """
        prices = base_prices or SIMULATED_BASE_PRICES
        self._pairs = {p: SimulatedPair(p, a, b) for p, (a, b) in prices.items()}
        self._failure_rate = failure_rate
        self._latency_s = latency_s
        self._rng = rng or random.Random()

    def _step(self, sim: SimulatedPair) -> None:
        """Advance one pair's random walk."""
        change = self._rng.uniform(-0.5, 0.5) * sim.volatility
        own = self._rng.uniform(-0.5, 0.5) * sim.volatility * 0.2

        sim.price_a *= 1.0 + change
        sim.price_b *= 1.0 + change * 0.8 + own

        sim.price_a = max(sim.base_a * 0.95, min(sim.base_a * 1.05, sim.price_a))
        sim.price_b = max(sim.base_b * 0.95, min(sim.base_b * 1.05, sim.price_b))

    def _pair_state(self, pair: str) -> SimulatedPair | None:
        """Random-walk state for a pair, created on first request."""
        sim = self._pairs.get(pair)
        if sim is not None:
            return sim
        try:
            split_pair(pair)
        except ValueError as e:
            logger.warning(f"{pair} omitted: {e}")
            return None

        base_a, base_b = SIMULATED_DEFAULT_BASE
        sim = SimulatedPair(pair, base_a, base_b)
        self._pairs[pair] = sim
        logger.debug(f"{pair} simulated from default base prices")
        return sim

    async def fetch_quotes(self, pairs: frozenset[str]) -> list[Quote]:
        """Produce one quote per well-formed pair."""
        if self._latency_s > 0:
            await asyncio.sleep(self._latency_s)

        quotes: list[Quote] = []
        now = get_timestamp_ms()

        for pair in sorted(pairs):
            sim = self._pair_state(pair)
            if sim is None:
                continue
            if self._failure_rate > 0 and self._rng.random() < self._failure_rate:
                logger.debug(f"{pair} omitted: simulated fetch failure")
                continue

            self._step(sim)
            quotes.append(
                Quote(
                    pair=pair,
                    venue_a_price=sim.price_a,
                    venue_b_price=sim.price_b,
                    volume_24h=self._rng.random() * 1_000_000,
                    observed_at=now,
                )
            )

        return quotes

    async def close(self) -> None:
        pass

    @property
    def pairs(self) -> list[str]:
        """Get simulated pair identifiers."""
        return list(self._pairs)


def create_quote_source(settings: Settings) -> QuoteSource:
    """Build the quote source selected in settings."""
    if settings.quote_source == "live":
        venue_a = VenueClient(
            name=settings.venue_a_name,
            price_url=settings.venue_a_price_url,
            price_path=settings.venue_a_price_path,
            token_addresses=settings.token_addresses,
            timeout_s=settings.request_timeout_s,
        )
        venue_b = VenueClient(
            name=settings.venue_b_name,
            price_url=settings.venue_b_price_url,
            price_path=settings.venue_b_price_path,
            token_addresses=settings.token_addresses,
            timeout_s=settings.request_timeout_s,
        )
        return DexQuoteSource(venue_a, venue_b)

    return SimulatedQuoteSource()

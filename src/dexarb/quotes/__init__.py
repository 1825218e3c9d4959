"""Quote sources for the two venues."""

from dexarb.quotes.client import VenueClient
from dexarb.quotes.models import VenuePrice, parse_venue_price
from dexarb.quotes.source import (
    DexQuoteSource,
    SimulatedQuoteSource,
    create_quote_source,
)


__all__ = [
    "DexQuoteSource",
    "SimulatedQuoteSource",
    "VenueClient",
    "VenuePrice",
    "create_quote_source",
    "parse_venue_price",
]

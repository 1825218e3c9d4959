"""Mock implementations for testing."""

from tests.mocks.quote_source import MockQuoteSource, wait_until


__all__ = [
    "MockQuoteSource",
    "wait_until",
]

"""Exception hierarchy for the divergence monitor."""


class DexArbError(Exception):
    """Base exception for all monitor errors."""


class FetchFailure(DexArbError):
    """A venue price could not be fetched for a pair."""

    def __init__(self, message: str, venue: str = "", pair: str = "") -> None:
        super().__init__(message)
        self.venue = venue
        self.pair = pair


class DataIntegrityError(DexArbError):
    """Malformed or non-positive price data crossed a component boundary."""

    def __init__(self, message: str, pair: str = "") -> None:
        super().__init__(message)
        self.pair = pair


class SubscriptionError(DexArbError):
    """Invalid subscription request."""


class ExecutionError(DexArbError):
    """The execution collaborator rejected or failed an arbitrage."""

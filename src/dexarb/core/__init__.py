"""Core module containing errors and type definitions."""

from dexarb.core.errors import (
    DataIntegrityError,
    DexArbError,
    ExecutionError,
    FetchFailure,
    SubscriptionError,
)
from dexarb.core.types import (
    ArbitrageExecutor,
    HubState,
    OpportunitySignal,
    Quote,
    QuoteSource,
    SignalCallback,
    Subscription,
    TradeDirection,
    TradeEstimate,
    TransactionHandle,
    TransactionStatus,
)


__all__ = [
    "ArbitrageExecutor",
    "DataIntegrityError",
    "DexArbError",
    "ExecutionError",
    "FetchFailure",
    "HubState",
    "OpportunitySignal",
    "Quote",
    "QuoteSource",
    "SignalCallback",
    "Subscription",
    "SubscriptionError",
    "TradeDirection",
    "TradeEstimate",
    "TransactionHandle",
    "TransactionStatus",
]

"""Strategy module for divergence calculation and opportunity classification."""

from dexarb.strategy.calculator import ProfitabilityCalculator
from dexarb.strategy.classifier import (
    ConsecutiveCycles,
    HysteresisPolicy,
    OpportunityClassifier,
    PassThrough,
    classify,
)
from dexarb.strategy.estimator import estimate_trade


__all__ = [
    "ConsecutiveCycles",
    "HysteresisPolicy",
    "OpportunityClassifier",
    "PassThrough",
    "ProfitabilityCalculator",
    "classify",
    "estimate_trade",
]

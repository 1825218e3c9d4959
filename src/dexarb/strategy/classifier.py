"""
Opportunity classification.

Applies the threshold policy to a signal, optionally smoothed by a
hysteresis policy so that rotating alerts do not flicker on noise.
"""

import dataclasses
import logging
from typing import Protocol

from dexarb.config.constants import DEFAULT_THRESHOLD_PCT
from dexarb.core.types import OpportunitySignal


logger = logging.getLogger(__name__)


def classify(signal: OpportunitySignal, threshold_pct: float) -> bool:
    """
    Decide whether a signal is actionable.

    Both directions count; the comparison is strict, so a signal exactly
    at the threshold is not an opportunity.
    """
    return abs(signal.profitability_pct) > threshold_pct


class HysteresisPolicy(Protocol):
    """Smooths raw per-cycle classifications for a pair."""

    def apply(self, pair: str, raw: bool) -> bool:
        """Return the effective flag given this cycle's raw flag."""
        ...

    def reset(self) -> None:
        """Forget all per-pair state."""
        ...


class PassThrough:
    """Each cycle is classified independently."""

    __slots__ = ()

    def apply(self, pair: str, raw: bool) -> bool:
        return raw

    def reset(self) -> None:
        pass


class ConsecutiveCycles:
    """
    Flip a pair's flag only after N consecutive disagreeing cycles.

    Pairs start as not-an-opportunity. With ``cycles=1`` this behaves
    like :class:`PassThrough`.
    """

    def __init__(self, cycles: int) -> None:
        if cycles < 1:
            raise ValueError(f"cycles must be >= 1, got {cycles}")
        self._cycles = cycles
        self._state: dict[str, bool] = {}
        self._streak: dict[str, int] = {}

    def apply(self, pair: str, raw: bool) -> bool:
        current = self._state.get(pair, False)

        if raw == current:
            self._streak[pair] = 0
            return current

        streak = self._streak.get(pair, 0) + 1
        if streak >= self._cycles:
            self._state[pair] = raw
            self._streak[pair] = 0
            logger.debug(f"{pair}: opportunity flag -> {raw} after {streak} cycles")
            return raw

        self._streak[pair] = streak
        return current

    def reset(self) -> None:
        self._state.clear()
        self._streak.clear()

    @property
    def cycles(self) -> int:
        return self._cycles


class OpportunityClassifier:
    """
    Threshold classifier with a pluggable hysteresis policy.

    Signals are never modified; :meth:`apply` returns a new signal
    carrying the final flag.
    """

    def __init__(
        self,
        threshold_pct: float = DEFAULT_THRESHOLD_PCT,
        policy: HysteresisPolicy | None = None,
    ) -> None:
        """
        Initialize classifier.

        Args:
            threshold_pct: Absolute profitability percentage threshold.
            policy: Hysteresis policy (default: none).
        """
        if threshold_pct < 0:
            raise ValueError(f"threshold_pct must be >= 0, got {threshold_pct}")
        self._threshold_pct = threshold_pct
        self._policy: HysteresisPolicy = policy or PassThrough()

    def apply(self, signal: OpportunitySignal) -> OpportunitySignal:
        """Classify a signal and return the classified copy."""
        raw = classify(signal, self._threshold_pct)
        flag = self._policy.apply(signal.pair, raw)
        return dataclasses.replace(signal, is_opportunity=flag)

    def apply_all(self, signals: list[OpportunitySignal]) -> list[OpportunitySignal]:
        """Classify a batch of signals."""
        return [self.apply(s) for s in signals]

    @property
    def threshold_pct(self) -> float:
        """Get the threshold percentage."""
        return self._threshold_pct

    def set_threshold(self, threshold_pct: float) -> None:
        """Update the threshold; hysteresis state is kept."""
        if threshold_pct < 0:
            raise ValueError(f"threshold_pct must be >= 0, got {threshold_pct}")
        self._threshold_pct = threshold_pct

    @property
    def policy(self) -> HysteresisPolicy:
        return self._policy

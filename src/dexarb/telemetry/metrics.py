"""
Metrics collection for the polling engine.

Tracks cycle latencies, counters, and opportunity statistics
with in-memory storage.
"""

import time
from collections import deque
from dataclasses import dataclass

from dexarb.config.constants import LATENCY_WINDOW_SIZE


@dataclass
class LatencyStats:
    """Aggregated latency statistics."""

    min_us: int = 0
    max_us: int = 0
    avg_us: float = 0.0
    p50_us: int = 0
    p99_us: int = 0
    count: int = 0


@dataclass
class OpportunityStats:
    """Opportunity detection statistics."""

    signals_computed: int = 0
    opportunities_found: int = 0
    best_abs_profit_pct: float = 0.0
    best_pair: str = ""

    @property
    def hit_rate(self) -> float:
        """Fraction of signals that were opportunities."""
        if self.signals_computed == 0:
            return 0.0
        return self.opportunities_found / self.signals_computed


class MetricsCollector:
    """
    Collects and aggregates engine metrics.

    Features:
    - Rolling window latency tracking
    - Counter-based event tracking
    - Best-opportunity tracking
    """

    def __init__(self, latency_window_size: int = LATENCY_WINDOW_SIZE) -> None:
        """
        Initialize metrics collector.

        Args:
            latency_window_size: Number of samples to keep for latency stats.
        """
        self._window_size = latency_window_size
        self._latencies: dict[str, deque[int]] = {}
        self._counters: dict[str, int] = {}
        self._opportunity_stats = OpportunityStats()
        self._start_time = time.time()

    def record_latency(self, name: str, latency_us: int) -> None:
        """
        Record a latency measurement.

        Args:
            name: Metric name (e.g., "fetch_cycle").
            latency_us: Latency in microseconds.
        """
        if name not in self._latencies:
            self._latencies[name] = deque(maxlen=self._window_size)

        self._latencies[name].append(latency_us)

    def increment_counter(self, name: str, value: int = 1) -> None:
        """Increment a counter."""
        self._counters[name] = self._counters.get(name, 0) + value

    def get_counter(self, name: str) -> int:
        """Get counter value."""
        return self._counters.get(name, 0)

    def record_signal(self, pair: str, profitability_pct: float, is_opportunity: bool) -> None:
        """
        Record a computed signal.

        Args:
            pair: Pair identifier.
            profitability_pct: Signed profitability percentage.
            is_opportunity: Final classification.
        """
        stats = self._opportunity_stats
        stats.signals_computed += 1

        if not is_opportunity:
            return

        stats.opportunities_found += 1
        if abs(profitability_pct) > stats.best_abs_profit_pct:
            stats.best_abs_profit_pct = abs(profitability_pct)
            stats.best_pair = pair

    def get_latency_stats(self, name: str) -> LatencyStats:
        """Get latency statistics for a metric."""
        samples = self._latencies.get(name)
        if not samples:
            return LatencyStats()

        sorted_samples = sorted(samples)
        n = len(sorted_samples)

        return LatencyStats(
            min_us=sorted_samples[0],
            max_us=sorted_samples[-1],
            avg_us=sum(sorted_samples) / n,
            p50_us=sorted_samples[n // 2],
            p99_us=sorted_samples[int(n * 0.99)] if n > 1 else sorted_samples[-1],
            count=n,
        )

    @property
    def opportunity_stats(self) -> OpportunityStats:
        """Get opportunity statistics."""
        return self._opportunity_stats

    @property
    def uptime_seconds(self) -> float:
        """Get uptime in seconds."""
        return time.time() - self._start_time

    def to_dict(self) -> dict[str, object]:
        """Export all metrics as a dict."""
        stats = self._opportunity_stats
        return {
            "uptime_seconds": self.uptime_seconds,
            "counters": dict(self._counters),
            "latencies": {
                name: {
                    "min": s.min_us,
                    "max": s.max_us,
                    "avg": s.avg_us,
                    "p50": s.p50_us,
                    "p99": s.p99_us,
                    "count": s.count,
                }
                for name, s in ((n, self.get_latency_stats(n)) for n in self._latencies)
            },
            "opportunities": {
                "signals_computed": stats.signals_computed,
                "opportunities_found": stats.opportunities_found,
                "best_abs_profit_pct": stats.best_abs_profit_pct,
                "best_pair": stats.best_pair,
                "hit_rate": stats.hit_rate,
            },
        }

    def reset(self) -> None:
        """Reset all metrics."""
        self._latencies.clear()
        self._counters.clear()
        self._opportunity_stats = OpportunityStats()
        self._start_time = time.time()

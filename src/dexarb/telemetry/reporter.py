"""
CLI reporter for the terminal surface.

Redraws a box-drawn panel with the latest signals every time the hub
delivers a batch.
"""

import sys
from datetime import timedelta
from typing import TextIO

from dexarb import __version__
from dexarb.core.types import OpportunitySignal
from dexarb.telemetry.metrics import MetricsCollector
from dexarb.utils.time import format_timestamp_ms


class CLIReporter:
    """
    Terminal panel showing the current divergence per pair.

    Used as a hub subscriber: pass :meth:`on_signals` as the callback.
    """

    BOX_TL = "╔"  # ╔
    BOX_TR = "╗"  # ╗
    BOX_BL = "╚"  # ╚
    BOX_BR = "╝"  # ╝
    BOX_H = "═"  # ═
    BOX_V = "║"  # ║
    BOX_LT = "╠"  # ╠
    BOX_RT = "╣"  # ╣
    THIN_V = "│"  # │

    def __init__(
        self,
        metrics: MetricsCollector,
        venue_a: str = "Venue A",
        venue_b: str = "Venue B",
        threshold_pct: float = 0.5,
        width: int = 72,
        output: TextIO | None = None,
        clear_screen: bool = True,
    ) -> None:
        """
        Initialize CLI reporter.

        Args:
            metrics: Metrics collector instance.
            venue_a: Venue A display name.
            venue_b: Venue B display name.
            threshold_pct: Threshold shown in the header.
            width: Panel width in characters.
            output: Output stream (default: stdout).
            clear_screen: Clear the terminal before each redraw.
        """
        self._metrics = metrics
        self._venue_a = venue_a
        self._venue_b = venue_b
        self._threshold_pct = threshold_pct
        self._width = width
        self._output = output or sys.stdout
        self._clear_screen = clear_screen
        self._signals: list[OpportunitySignal] = []

    def _format_uptime(self, seconds: float) -> str:
        """Format uptime as HH:MM:SS."""
        total = int(timedelta(seconds=int(seconds)).total_seconds())
        hours, remainder = divmod(total, 3600)
        minutes, secs = divmod(remainder, 60)
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"

    def _format_price(self, price: float) -> str:
        """Small prices need more decimals."""
        return f"{price:.6f}" if price < 1 else f"{price:.4f}"

    def _pad(self, text: str, width: int) -> str:
        return text.ljust(width)[:width]

    def _line(self, content: str) -> str:
        return f"{self.BOX_V}{self._pad(content, self._width - 2)}{self.BOX_V}"

    def _divider(self) -> str:
        return f"{self.BOX_LT}{self.BOX_H * (self._width - 2)}{self.BOX_RT}"

    def render(self) -> str:
        """
        Render the panel.

        Returns:
            Formatted panel string.
        """
        stats = self._metrics.opportunity_stats
        cycle = self._metrics.get_latency_stats("fetch_cycle")
        uptime = self._format_uptime(self._metrics.uptime_seconds)
        sep = self.THIN_V

        lines = [f"{self.BOX_TL}{self.BOX_H * (self._width - 2)}{self.BOX_TR}"]
        lines.append(
            self._line(
                f"  DEX DIVERGENCE MONITOR v{__version__} | "
                f"{self._venue_a} vs {self._venue_b} | >{self._threshold_pct:.2f}%"
            )
        )
        lines.append(self._divider())

        cycle_ms = f"{cycle.avg_us / 1000:.1f}ms" if cycle.count else "---"
        updated = (
            format_timestamp_ms(max(s.observed_at for s in self._signals))
            if self._signals
            else "---"
        )
        lines.append(
            self._line(
                f"  Up {uptime} | Cycles {self._metrics.get_counter('cycles')}"
                f" | Avg cycle {cycle_ms} | Last {updated}"
            )
        )
        lines.append(self._divider())

        header = (
            f"  {'PAIR':<11}{sep} {self._venue_a[:12]:>12} {sep} {self._venue_b[:12]:>12} "
            f"{sep} {'PROFIT':>8} {sep} SIGNAL"
        )
        lines.append(self._line(header))

        if not self._signals:
            lines.append(self._line("  waiting for quotes..."))

        for s in self._signals:
            flag = "OPPORTUNITY" if s.is_opportunity else "-"
            row = (
                f"  {s.pair:<11}{sep} {self._format_price(s.venue_a_price):>12} "
                f"{sep} {self._format_price(s.venue_b_price):>12} "
                f"{sep} {s.profitability_pct:>+7.3f}% {sep} {flag}"
            )
            lines.append(self._line(row))

        lines.append(self._divider())
        best = (
            f"{stats.best_pair} {stats.best_abs_profit_pct:.3f}%"
            if stats.best_pair
            else "---"
        )
        lines.append(
            self._line(
                f"  Opportunities: {stats.opportunities_found:,}  |  Best: {best}"
                f"  |  Omitted: {self._metrics.get_counter('pairs_omitted')}"
            )
        )
        lines.append(f"{self.BOX_BL}{self.BOX_H * (self._width - 2)}{self.BOX_BR}")

        return "\n".join(lines)

    def display(self) -> None:
        """Display the panel once."""
        if self._clear_screen:
            self._output.write("\033[2J\033[H")
        self._output.write(self.render())
        self._output.write("\n")
        self._output.flush()

    def on_signals(self, signals: list[OpportunitySignal]) -> None:
        """Hub callback: store the batch and redraw."""
        self._signals = list(signals)
        self.display()

    def print_summary(self) -> None:
        """Print a final summary."""
        stats = self._metrics.opportunity_stats
        uptime = self._format_uptime(self._metrics.uptime_seconds)

        out = self._output
        out.write("\n" + "=" * 50 + "\n")
        out.write("  SESSION SUMMARY\n")
        out.write("=" * 50 + "\n")
        out.write(f"  Uptime:            {uptime}\n")
        out.write(f"  Cycles:            {self._metrics.get_counter('cycles'):,}\n")
        out.write(f"  Signals computed:  {stats.signals_computed:,}\n")
        out.write(f"  Opportunities:     {stats.opportunities_found:,} ({stats.hit_rate:.1%})\n")
        if stats.best_pair:
            out.write(f"  Best divergence:   {stats.best_pair} {stats.best_abs_profit_pct:.3f}%\n")
        out.write(f"  Stale discards:    {self._metrics.get_counter('stale_discards'):,}\n")
        out.write(f"  Pairs omitted:     {self._metrics.get_counter('pairs_omitted'):,}\n")
        out.write("=" * 50 + "\n")
        out.flush()

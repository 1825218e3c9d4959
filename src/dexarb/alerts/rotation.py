"""
Rotating opportunity alert.

Cycles through the current opportunities one at a time, the way the
compact alert banner shows them.
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from dexarb.config.constants import DEFAULT_ROTATION_INTERVAL_MS
from dexarb.core.types import OpportunitySignal


logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class AlertView:
    """What the alert surface should display right now."""

    visible: bool
    index: int
    total: int
    signal: OpportunitySignal | None

    def to_dict(self) -> dict[str, object]:
        return {
            "visible": self.visible,
            "index": self.index,
            "total": self.total,
            "signal": self.signal.to_dict() if self.signal else None,
        }


AlertCallback = Callable[[AlertView], Awaitable[None] | None]


class AlertRotator:
    """
    Rotates through opportunities on a fixed interval.

    - Advances modulo the list length every interval (only with 2+ entries)
    - Hides when the list is empty
    - Resets the index to 0 when an update leaves it out of range
    """

    def __init__(
        self,
        interval_s: float = DEFAULT_ROTATION_INTERVAL_MS / 1000.0,
        on_change: AlertCallback | None = None,
    ) -> None:
        """
        Initialize rotator.

        Args:
            interval_s: Seconds between rotations.
            on_change: Called with the new view whenever it changes.
        """
        self._interval_s = interval_s
        self._on_change = on_change
        self._opportunities: list[OpportunitySignal] = []
        self._index = 0
        self._task: asyncio.Task[None] | None = None

    # =========================================================================
    # State transitions
    # =========================================================================

    def update(self, opportunities: list[OpportunitySignal]) -> AlertView:
        """Replace the opportunity list."""
        self._opportunities = list(opportunities)
        if self._index >= len(self._opportunities):
            self._index = 0
        return self.view

    def update_from_signals(self, signals: list[OpportunitySignal]) -> AlertView:
        """Replace the list with the actionable entries of a signal batch."""
        return self.update([s for s in signals if s.is_opportunity])

    def advance(self) -> AlertView:
        """Move to the next opportunity, wrapping around."""
        if self._opportunities:
            self._index = (self._index + 1) % len(self._opportunities)
        return self.view

    def select(self, index: int) -> AlertView:
        """
        Jump to a specific opportunity.

        Raises:
            IndexError: If index is out of range.
        """
        if not 0 <= index < len(self._opportunities):
            raise IndexError(f"No opportunity at index {index}")
        self._index = index
        return self.view

    def dismiss(self, index: int | None = None) -> AlertView:
        """
        Drop an opportunity (default: the one shown) until the next update.

        Raises:
            IndexError: If index is out of range.
        """
        target = self._index if index is None else index
        if not 0 <= target < len(self._opportunities):
            raise IndexError(f"No opportunity at index {target}")

        del self._opportunities[target]
        if target < self._index:
            self._index -= 1
        if self._index >= len(self._opportunities):
            self._index = 0
        return self.view

    @property
    def view(self) -> AlertView:
        """Current display state."""
        if not self._opportunities:
            return AlertView(visible=False, index=0, total=0, signal=None)
        return AlertView(
            visible=True,
            index=self._index,
            total=len(self._opportunities),
            signal=self._opportunities[self._index],
        )

    @property
    def index(self) -> int:
        return self._index

    @property
    def current(self) -> OpportunitySignal | None:
        """Opportunity currently shown, if any."""
        return self.view.signal

    # =========================================================================
    # Timer
    # =========================================================================

    async def start(self) -> None:
        """Start the rotation timer."""
        if self._task and not self._task.done():
            return
        self._task = asyncio.create_task(self._run(), name="dexarb-alert-rotation")

    async def stop(self) -> None:
        """Stop the rotation timer."""
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval_s)
            if len(self._opportunities) < 2:
                continue
            await self._notify(self.advance())

    async def _notify(self, view: AlertView) -> None:
        if self._on_change is None:
            return
        try:
            result = self._on_change(view)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(f"Alert callback error: {e!r}")

    async def publish(self, signals: list[OpportunitySignal]) -> None:
        """Hub callback: update from a signal batch and notify."""
        await self._notify(self.update_from_signals(signals))

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

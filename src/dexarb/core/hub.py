"""
Subscription/broadcast hub.

Owns the single polling loop and the latest signal cache, and fans each
cycle's classified signals out to every registered observer.
"""

import asyncio
import inspect
import logging
import uuid
from collections.abc import Iterable

from dexarb.config.constants import (
    DEFAULT_POLL_INTERVAL_MS,
    FETCH_POLICY_OVERLAP,
    FETCH_POLICY_SKIP,
)
from dexarb.config.settings import Settings
from dexarb.core.errors import DexArbError, SubscriptionError
from dexarb.core.types import (
    HubState,
    OpportunitySignal,
    Quote,
    QuoteSource,
    SignalCallback,
    Subscription,
    split_pair,
)
from dexarb.strategy.calculator import ProfitabilityCalculator
from dexarb.strategy.classifier import ConsecutiveCycles, OpportunityClassifier
from dexarb.telemetry.metrics import MetricsCollector
from dexarb.utils.time import elapsed_us, get_timestamp_us


logger = logging.getLogger(__name__)


class SubscriptionHub:
    """
    Multiplexes any number of observers over one polling loop.

    Lifecycle: IDLE -> POLLING on the first ``start``; back to IDLE on
    ``stop`` or when the last subscription leaves.

    Each tick fetches the union of all subscribed pairs, calculates and
    classifies every quote, replaces the cache, and invokes each
    callback with the signals for that subscription's own pairs.

    Ordering: every fetch batch carries a sequence number and a
    completion older than the last delivered batch is dropped, so
    observers never go back in time. With the ``skip`` fetch policy a
    tick is skipped while a fetch is still in flight.
    """

    def __init__(
        self,
        source: QuoteSource,
        calculator: ProfitabilityCalculator | None = None,
        classifier: OpportunityClassifier | None = None,
        interval_s: float = DEFAULT_POLL_INTERVAL_MS / 1000.0,
        fetch_policy: str = FETCH_POLICY_OVERLAP,
        metrics: MetricsCollector | None = None,
    ) -> None:
        """
        Initialize the hub.

        Args:
            source: Quote source polled each tick.
            calculator: Profitability calculator.
            classifier: Opportunity classifier (default threshold 0.5%).
            interval_s: Seconds between ticks.
            fetch_policy: "overlap" or "skip".
            metrics: Metrics collector.
        """
        if interval_s <= 0:
            raise ValueError(f"interval_s must be positive, got {interval_s}")
        if fetch_policy not in (FETCH_POLICY_OVERLAP, FETCH_POLICY_SKIP):
            raise ValueError(f"Unknown fetch policy {fetch_policy!r}")

        self._source = source
        self._calculator = calculator or ProfitabilityCalculator()
        self._classifier = classifier or OpportunityClassifier()
        self._interval_s = interval_s
        self._fetch_policy = fetch_policy
        self._metrics = metrics or MetricsCollector()

        self._state = HubState.IDLE
        self._subscriptions: dict[str, Subscription] = {}
        self._loop_task: asyncio.Task[None] | None = None
        self._inflight: set[asyncio.Task[None]] = set()

        # Latest signals by pair; replaced wholesale, never patched
        self._cache: dict[str, OpportunitySignal] = {}

        self._next_seq = 0
        self._delivered_seq = 0
        # Bumped on stop so in-flight work from a previous run is ignored
        self._epoch = 0

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self, pairs: Iterable[str], callback: SignalCallback) -> str:
        """
        Register an observer and make sure the polling loop runs.

        Args:
            pairs: Pair identifiers the observer is interested in.
            callback: Called with the observer's signals every cycle.

        Returns:
            Subscription id, for ``unsubscribe``.

        Raises:
            SubscriptionError: If no pairs are given or a pair is malformed.
        """
        if isinstance(pairs, str):
            pairs = [pairs]
        requested = tuple(dict.fromkeys(pairs))
        if not requested:
            raise SubscriptionError("Cannot subscribe to an empty pair set")
        for pair in requested:
            try:
                split_pair(pair)
            except ValueError as e:
                raise SubscriptionError(str(e)) from e

        subscription = Subscription(
            id=uuid.uuid4().hex[:12],
            pairs=requested,
            callback=callback,
        )
        self._subscriptions[subscription.id] = subscription
        logger.info(f"Subscription {subscription.id} added for {', '.join(requested)}")

        if self._state == HubState.IDLE:
            self._state = HubState.POLLING
            self._loop_task = asyncio.create_task(
                self._poll_loop(self._epoch),
                name="dexarb-hub-poll",
            )
            logger.info(f"Polling started every {self._interval_s:.2f}s")

        return subscription.id

    async def unsubscribe(self, subscription_id: str) -> bool:
        """
        Remove one observer; the hub stops when none are left.

        Returns:
            True if the subscription existed.
        """
        subscription = self._subscriptions.pop(subscription_id, None)
        if subscription is None:
            return False

        subscription.active = False
        logger.info(f"Subscription {subscription_id} removed")

        if not self._subscriptions:
            await self.stop()
        return True

    async def stop(self) -> None:
        """
        Stop polling and deactivate every subscription.

        No callback is invoked after this returns, even for fetches that
        were in flight. Safe to call when already idle.
        """
        if self._state == HubState.IDLE:
            return

        self._state = HubState.IDLE
        self._epoch += 1

        for subscription in self._subscriptions.values():
            subscription.active = False
        self._subscriptions.clear()

        # A callback may call stop() from inside a cycle task
        current = asyncio.current_task()
        tasks = [
            t
            for t in (self._loop_task, *self._inflight)
            if t is not None and t is not current and not t.done()
        ]
        for task in tasks:
            task.cancel()
        self._loop_task = None

        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        self._classifier.policy.reset()
        logger.info("Polling stopped")

    # =========================================================================
    # Polling
    # =========================================================================

    async def _poll_loop(self, epoch: int) -> None:
        """Fire a tick immediately, then every interval."""
        while self._state == HubState.POLLING and epoch == self._epoch:
            self._tick(epoch)
            await asyncio.sleep(self._interval_s)

    def _tick(self, epoch: int) -> None:
        """Start one fetch cycle according to the fetch policy."""
        if self._fetch_policy == FETCH_POLICY_SKIP and self._inflight:
            self._metrics.increment_counter("skipped_ticks")
            logger.debug("Tick skipped, previous fetch still in flight")
            return

        seq = self._allocate_seq()
        task = asyncio.create_task(self._run_cycle(seq, epoch))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    def _allocate_seq(self) -> int:
        self._next_seq += 1
        return self._next_seq

    async def _run_cycle(self, seq: int, epoch: int) -> None:
        """Fetch, compute and broadcast one batch."""
        pairs = self.pairs
        if not pairs:
            return

        start_us = get_timestamp_us()
        quotes = await self._fetch(pairs)
        if quotes is None:
            return

        if epoch != self._epoch:
            return
        if seq < self._delivered_seq:
            self._metrics.increment_counter("stale_discards")
            logger.debug(f"Discarding stale batch #{seq} (delivered #{self._delivered_seq})")
            return

        signals = self._compute(quotes)
        self._delivered_seq = seq
        self._cache = {s.pair: s for s in signals}

        self._metrics.increment_counter("cycles")
        self._metrics.record_latency("fetch_cycle", elapsed_us(start_us))

        await self._broadcast(signals, epoch)

    async def _fetch(self, pairs: frozenset[str]) -> list[Quote] | None:
        """Fetch quotes; a failing source skips the cycle."""
        try:
            quotes = await self._source.fetch_quotes(pairs)
        except DexArbError as e:
            self._metrics.increment_counter("fetch_errors")
            logger.warning(f"Quote fetch failed: {e}")
            return None
        except Exception as e:
            self._metrics.increment_counter("fetch_errors")
            logger.error(f"Quote source error: {e!r}")
            return None

        quotes = [q for q in quotes if q.pair in pairs]
        omitted = len(pairs) - len({q.pair for q in quotes})
        if omitted:
            self._metrics.increment_counter("pairs_omitted", omitted)
        return quotes

    def _compute(self, quotes: list[Quote]) -> list[OpportunitySignal]:
        """Calculate and classify quotes, excluding bad pairs."""
        signals, errors = self._calculator.calculate_many(quotes)

        for error in errors:
            self._metrics.increment_counter("integrity_errors")
            logger.error(f"Excluding {error.pair}: {error}")

        classified = self._classifier.apply_all(signals)
        for signal in classified:
            self._metrics.record_signal(
                signal.pair, signal.profitability_pct, signal.is_opportunity
            )
        return classified

    async def _broadcast(self, signals: list[OpportunitySignal], epoch: int) -> None:
        """Invoke every active callback with its own pairs' signals."""
        for subscription in list(self._subscriptions.values()):
            if epoch != self._epoch:
                return
            if not subscription.active:
                continue

            try:
                result = subscription.callback(subscription.select(signals))
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                self._metrics.increment_counter("callback_errors")
                logger.error(f"Subscription {subscription.id} callback error: {e!r}")

    # =========================================================================
    # On-demand access
    # =========================================================================

    async def refresh(self, pairs: Iterable[str] | None = None) -> list[OpportunitySignal]:
        """
        Fetch and compute once, without notifying observers.

        The cache is updated unless a newer batch was delivered meanwhile.

        Raises:
            SubscriptionError: If no pairs are given and none are subscribed.
        """
        requested = frozenset(pairs) if pairs is not None else self.pairs
        if not requested:
            raise SubscriptionError("No pairs to refresh")

        seq = self._allocate_seq()
        quotes = await self._fetch(requested)
        if quotes is None:
            return []

        signals = self._compute(quotes)
        if seq > self._delivered_seq:
            self._delivered_seq = seq
            self._cache = {s.pair: s for s in signals}
        return signals

    @property
    def latest(self) -> list[OpportunitySignal]:
        """Copy of the most recent signals, sorted by pair."""
        cache = self._cache
        return [cache[p] for p in sorted(cache)]

    def get_signal(self, pair: str) -> OpportunitySignal | None:
        """Most recent signal for a pair."""
        return self._cache.get(pair)

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def state(self) -> HubState:
        """Get polling state."""
        return self._state

    @property
    def is_polling(self) -> bool:
        return self._state == HubState.POLLING

    @property
    def pairs(self) -> frozenset[str]:
        """Union of all active subscriptions' pairs."""
        return frozenset(
            pair
            for s in self._subscriptions.values()
            if s.active
            for pair in s.pairs
        )

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)

    @property
    def interval_s(self) -> float:
        return self._interval_s

    @property
    def classifier(self) -> OpportunityClassifier:
        return self._classifier

    @property
    def metrics(self) -> MetricsCollector:
        """Get metrics collector."""
        return self._metrics


def create_hub(
    settings: Settings,
    source: QuoteSource,
    metrics: MetricsCollector | None = None,
) -> SubscriptionHub:
    """Build a hub configured from settings."""
    policy = (
        ConsecutiveCycles(settings.hysteresis_cycles)
        if settings.hysteresis_cycles > 1
        else None
    )
    return SubscriptionHub(
        source=source,
        classifier=OpportunityClassifier(settings.threshold_pct, policy=policy),
        interval_s=settings.poll_interval_s,
        fetch_policy=settings.fetch_policy,
        metrics=metrics,
    )

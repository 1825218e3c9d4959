"""
Integration tests for the subscription hub.

Drives the real polling loop against a scripted quote source.
"""

import asyncio

import pytest
import pytest_asyncio

from dexarb.config.settings import Settings
from dexarb.core.errors import FetchFailure, SubscriptionError
from dexarb.core.hub import SubscriptionHub, create_hub
from dexarb.core.types import HubState, OpportunitySignal
from dexarb.strategy.classifier import ConsecutiveCycles, OpportunityClassifier
from tests.mocks import MockQuoteSource, wait_until


PRICES = {
    "WBNB/BUSD": (310.45, 312.18),
    "BUSD/WBNB": (0.003223, 0.003201),
    "CAKE/BUSD": (2.45, 2.451),
}


class Recorder:
    """Collects every batch a callback receives."""

    def __init__(self) -> None:
        self.batches: list[list[OpportunitySignal]] = []

    def __call__(self, signals: list[OpportunitySignal]) -> None:
        self.batches.append(signals)

    @property
    def last(self) -> list[OpportunitySignal]:
        return self.batches[-1]


@pytest.fixture
def source() -> MockQuoteSource:
    return MockQuoteSource(PRICES)


@pytest_asyncio.fixture
async def hub(source: MockQuoteSource):
    hub = SubscriptionHub(source, interval_s=0.02)
    yield hub
    await hub.stop()


class TestHubLifecycle:
    """Tests for start/stop transitions."""

    def test_invalid_construction(self, source: MockQuoteSource) -> None:
        with pytest.raises(ValueError):
            SubscriptionHub(source, interval_s=0)
        with pytest.raises(ValueError):
            SubscriptionHub(source, fetch_policy="queue")

    @pytest.mark.asyncio
    async def test_start_polls_immediately(
        self, hub: SubscriptionHub, source: MockQuoteSource
    ) -> None:
        recorder = Recorder()

        await hub.start(["WBNB/BUSD"], recorder)
        assert hub.state == HubState.POLLING

        await wait_until(lambda: len(recorder.batches) >= 1, timeout=0.5)
        assert source.calls[0] == frozenset({"WBNB/BUSD"})

    @pytest.mark.asyncio
    async def test_reference_scenarios_delivered(self, hub: SubscriptionHub) -> None:
        recorder = Recorder()

        await hub.start(["WBNB/BUSD", "BUSD/WBNB"], recorder)
        await wait_until(lambda: len(recorder.batches) >= 1)

        up, down = recorder.batches[0]
        assert up.pair == "WBNB/BUSD"
        assert up.profitability_pct == pytest.approx(0.5573, rel=1e-3)
        assert up.is_opportunity is True
        assert down.pair == "BUSD/WBNB"
        assert down.profitability_pct == pytest.approx(-0.6826, rel=1e-3)
        assert down.is_opportunity is True

    @pytest.mark.asyncio
    async def test_empty_pairs_rejected(self, hub: SubscriptionHub) -> None:
        with pytest.raises(SubscriptionError):
            await hub.start([], Recorder())

        assert hub.state == HubState.IDLE

    @pytest.mark.asyncio
    async def test_malformed_pair_rejected(self, hub: SubscriptionHub) -> None:
        with pytest.raises(SubscriptionError):
            await hub.start(["WBNB/BUSD", "BADPAIR"], Recorder())

        assert hub.state == HubState.IDLE
        assert hub.subscription_count == 0

    @pytest.mark.asyncio
    async def test_second_start_reuses_loop(
        self, hub: SubscriptionHub, source: MockQuoteSource
    ) -> None:
        first, second = Recorder(), Recorder()

        id1 = await hub.start(["WBNB/BUSD"], first)
        id2 = await hub.start(["CAKE/BUSD"], second)

        assert id1 != id2
        assert hub.subscription_count == 2
        assert hub.pairs == frozenset({"WBNB/BUSD", "CAKE/BUSD"})

        await wait_until(lambda: len(second.batches) >= 1)
        await wait_until(lambda: source.calls[-1] == hub.pairs)

    @pytest.mark.asyncio
    async def test_stop_is_idempotent(self, hub: SubscriptionHub) -> None:
        await hub.stop()
        await hub.start(["WBNB/BUSD"], Recorder())
        await hub.stop()
        await hub.stop()

        assert hub.state == HubState.IDLE
        assert hub.subscription_count == 0

    @pytest.mark.asyncio
    async def test_stop_with_delayed_fetch_never_calls_back(
        self, source: MockQuoteSource
    ) -> None:
        hub = SubscriptionHub(source, interval_s=10.0)
        recorder = Recorder()
        gate = source.hold_next()

        await hub.start(["WBNB/BUSD"], recorder)
        await wait_until(lambda: source.call_count == 1)

        await hub.stop()
        gate.set()
        await asyncio.sleep(0.05)

        assert recorder.batches == []
        assert hub.latest == []

    @pytest.mark.asyncio
    async def test_restart_after_stop(self, hub: SubscriptionHub) -> None:
        await hub.start(["WBNB/BUSD"], Recorder())
        await hub.stop()

        recorder = Recorder()
        await hub.start(["CAKE/BUSD"], recorder)

        await wait_until(lambda: len(recorder.batches) >= 1)
        assert recorder.last[0].pair == "CAKE/BUSD"

    @pytest.mark.asyncio
    async def test_unsubscribe_last_stops(self, hub: SubscriptionHub) -> None:
        id1 = await hub.start(["WBNB/BUSD"], Recorder())
        id2 = await hub.start(["CAKE/BUSD"], Recorder())

        assert await hub.unsubscribe(id1) is True
        assert hub.is_polling
        assert hub.pairs == frozenset({"CAKE/BUSD"})

        assert await hub.unsubscribe(id2) is True
        assert hub.state == HubState.IDLE
        assert await hub.unsubscribe(id2) is False

    @pytest.mark.asyncio
    async def test_stop_from_callback(self, hub: SubscriptionHub) -> None:
        calls = 0

        async def stop_on_first(signals: list[OpportunitySignal]) -> None:
            nonlocal calls
            calls += 1
            await hub.stop()

        await hub.start(["WBNB/BUSD"], stop_on_first)
        await wait_until(lambda: hub.state == HubState.IDLE)
        await asyncio.sleep(0.06)

        assert calls == 1


class TestHubBroadcast:
    """Tests for fan-out and per-subscription filtering."""

    @pytest.mark.asyncio
    async def test_callbacks_receive_own_pairs_in_order(self, hub: SubscriptionHub) -> None:
        first, second = Recorder(), Recorder()

        await hub.start(["CAKE/BUSD", "WBNB/BUSD"], first)
        await hub.start(["BUSD/WBNB"], second)
        await wait_until(lambda: len(second.batches) >= 2 and len(first.batches) >= 2)

        assert [s.pair for s in first.last] == ["CAKE/BUSD", "WBNB/BUSD"]
        assert [s.pair for s in second.last] == ["BUSD/WBNB"]

    @pytest.mark.asyncio
    async def test_async_callback(self, hub: SubscriptionHub) -> None:
        received: list[list[OpportunitySignal]] = []

        async def on_signals(signals: list[OpportunitySignal]) -> None:
            await asyncio.sleep(0)
            received.append(signals)

        await hub.start(["WBNB/BUSD"], on_signals)

        await wait_until(lambda: len(received) >= 1)

    @pytest.mark.asyncio
    async def test_callback_error_isolated(self, hub: SubscriptionHub) -> None:
        recorder = Recorder()

        def broken(signals: list[OpportunitySignal]) -> None:
            raise RuntimeError("observer bug")

        await hub.start(["WBNB/BUSD"], broken)
        await hub.start(["WBNB/BUSD"], recorder)

        await wait_until(lambda: len(recorder.batches) >= 2)
        assert hub.is_polling
        assert hub.metrics.get_counter("callback_errors") >= 1

    @pytest.mark.asyncio
    async def test_latest_cache_replaced_each_cycle(
        self, hub: SubscriptionHub, source: MockQuoteSource
    ) -> None:
        recorder = Recorder()
        await hub.start(["WBNB/BUSD", "CAKE/BUSD"], recorder)
        await wait_until(lambda: len(hub.latest) == 2)

        source.remove("CAKE/BUSD")
        source.set_price("WBNB/BUSD", 300.0, 300.0)
        await wait_until(lambda: [s.pair for s in hub.latest] == ["WBNB/BUSD"])

        signal = hub.get_signal("WBNB/BUSD")
        assert signal is not None
        assert signal.profitability_pct == 0.0
        assert hub.get_signal("CAKE/BUSD") is None

    @pytest.mark.asyncio
    async def test_omitted_pairs_counted(self, hub: SubscriptionHub) -> None:
        recorder = Recorder()

        await hub.start(["WBNB/BUSD", "DOGE/BUSD"], recorder)
        await wait_until(lambda: len(recorder.batches) >= 1)

        assert [s.pair for s in recorder.last] == ["WBNB/BUSD"]
        assert hub.metrics.get_counter("pairs_omitted") >= 1

    @pytest.mark.asyncio
    async def test_integrity_error_excludes_pair(
        self, hub: SubscriptionHub, source: MockQuoteSource
    ) -> None:
        source.set_price("CAKE/BUSD", 0.0, 2.45)
        recorder = Recorder()

        await hub.start(["WBNB/BUSD", "CAKE/BUSD"], recorder)
        await wait_until(lambda: len(recorder.batches) >= 1)

        assert [s.pair for s in recorder.last] == ["WBNB/BUSD"]
        assert hub.metrics.get_counter("integrity_errors") >= 1

    @pytest.mark.asyncio
    async def test_source_failure_skips_cycle(
        self, hub: SubscriptionHub, source: MockQuoteSource
    ) -> None:
        source.fail_next(FetchFailure("venue down"))
        recorder = Recorder()

        await hub.start(["WBNB/BUSD"], recorder)
        await wait_until(lambda: len(recorder.batches) >= 1)

        assert hub.metrics.get_counter("fetch_errors") == 1
        assert hub.is_polling


class TestHubOrdering:
    """Tests for overlapping fetches."""

    @pytest.mark.asyncio
    async def test_stale_batch_discarded(self, source: MockQuoteSource) -> None:
        hub = SubscriptionHub(source, interval_s=0.05)
        recorder = Recorder()
        source.set_price("WBNB/BUSD", 100.0, 150.0)
        gate = source.hold_next()

        await hub.start(["WBNB/BUSD"], recorder)
        await wait_until(lambda: source.call_count == 1)
        source.set_price("WBNB/BUSD", 100.0, 101.0)

        await wait_until(lambda: len(recorder.batches) >= 1)
        gate.set()
        await wait_until(lambda: hub.metrics.get_counter("stale_discards") == 1)

        assert all(batch[0].venue_b_price == 101.0 for batch in recorder.batches)
        await hub.stop()

    @pytest.mark.asyncio
    async def test_skip_policy(self, source: MockQuoteSource) -> None:
        hub = SubscriptionHub(source, interval_s=0.01, fetch_policy="skip")
        recorder = Recorder()
        gate = source.hold_next()

        await hub.start(["WBNB/BUSD"], recorder)
        await asyncio.sleep(0.08)

        assert source.call_count == 1
        assert hub.metrics.get_counter("skipped_ticks") >= 2

        gate.set()
        await wait_until(lambda: len(recorder.batches) >= 2)
        await hub.stop()
        assert hub.metrics.get_counter("stale_discards") == 0

    @pytest.mark.asyncio
    async def test_hysteresis_reset_on_stop(self, source: MockQuoteSource) -> None:
        policy = ConsecutiveCycles(2)
        hub = SubscriptionHub(
            source,
            classifier=OpportunityClassifier(0.5, policy=policy),
            interval_s=0.01,
        )
        recorder = Recorder()

        await hub.start(["WBNB/BUSD"], recorder)
        await wait_until(lambda: len(recorder.batches) >= 3)

        assert recorder.batches[0][0].is_opportunity is False
        assert recorder.last[0].is_opportunity is True

        await hub.stop()
        assert policy.apply("WBNB/BUSD", True) is False


class TestHubRefresh:
    """Tests for on-demand refresh."""

    @pytest.mark.asyncio
    async def test_refresh_while_idle(self, hub: SubscriptionHub) -> None:
        signals = await hub.refresh(["WBNB/BUSD", "CAKE/BUSD"])

        assert {s.pair for s in signals} == {"WBNB/BUSD", "CAKE/BUSD"}
        assert [s.pair for s in hub.latest] == ["CAKE/BUSD", "WBNB/BUSD"]
        assert hub.state == HubState.IDLE

    @pytest.mark.asyncio
    async def test_refresh_without_pairs(self, hub: SubscriptionHub) -> None:
        with pytest.raises(SubscriptionError):
            await hub.refresh()

    @pytest.mark.asyncio
    async def test_refresh_does_not_notify(self, hub: SubscriptionHub) -> None:
        recorder = Recorder()
        await hub.start(["WBNB/BUSD"], recorder)
        await wait_until(lambda: len(recorder.batches) >= 1)
        await hub.stop()

        before = len(recorder.batches)
        await hub.refresh(["WBNB/BUSD"])

        assert len(recorder.batches) == before


class TestCreateHub:
    def test_from_settings(self, source: MockQuoteSource) -> None:
        settings = Settings(
            _env_file=None,
            threshold_pct=1.0,
            hysteresis_cycles=3,
            poll_interval_ms=250,
            fetch_policy="skip",
        )

        hub = create_hub(settings, source)

        assert hub.interval_s == pytest.approx(0.25)
        assert hub.classifier.threshold_pct == 1.0
        assert isinstance(hub.classifier.policy, ConsecutiveCycles)

"""
Integration tests for the terminal monitor.

Tests the full wiring from quote source to the terminal panel.
"""

import asyncio
import io

import pytest

from dexarb.config.settings import Settings
from dexarb.core.monitor import DivergenceMonitor
from dexarb.core.types import HubState
from dexarb.telemetry.metrics import MetricsCollector
from dexarb.telemetry.reporter import CLIReporter
from tests.mocks import MockQuoteSource, wait_until


class TestDivergenceMonitor:
    """Integration tests for DivergenceMonitor."""

    @pytest.mark.asyncio
    async def test_run_until_shutdown(self) -> None:
        settings = Settings(
            _env_file=None,
            pairs=["WBNB/BUSD", "BUSD/WBNB"],
            poll_interval_ms=100,
            log_level="WARNING",
        )
        source = MockQuoteSource(
            {"WBNB/BUSD": (310.45, 312.18), "BUSD/WBNB": (0.003223, 0.003201)}
        )
        output = io.StringIO()
        metrics = MetricsCollector()
        reporter = CLIReporter(metrics, output=output, clear_screen=False)
        monitor = DivergenceMonitor(settings, source=source, reporter=reporter)

        await monitor.setup()
        task = asyncio.create_task(monitor.run())

        await wait_until(lambda: "BUSD/WBNB" in output.getvalue())
        assert monitor.hub is not None
        assert monitor.hub.state == HubState.POLLING

        monitor.request_shutdown()
        await asyncio.wait_for(task, timeout=2.0)

        assert monitor.hub.state == HubState.IDLE
        assert source.closed is True
        text = output.getvalue()
        assert "OPPORTUNITY" in text
        assert "SESSION SUMMARY" in text

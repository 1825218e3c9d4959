"""
Terminal monitor.

Wires the quote source, hub and terminal reporter together and runs
until SIGINT/SIGTERM.
"""

import asyncio
import logging
import signal

from dexarb.config.settings import Settings
from dexarb.core.hub import SubscriptionHub, create_hub
from dexarb.core.types import QuoteSource
from dexarb.quotes.source import create_quote_source
from dexarb.telemetry.logger import AsyncLogger, setup_logging
from dexarb.telemetry.metrics import MetricsCollector
from dexarb.telemetry.reporter import CLIReporter


logger = logging.getLogger(__name__)


class DivergenceMonitor:
    """
    Command-line divergence monitor.

    Subscribes a CLIReporter to the hub for the configured pairs.
    """

    def __init__(
        self,
        settings: Settings,
        source: QuoteSource | None = None,
        reporter: CLIReporter | None = None,
    ) -> None:
        self._settings = settings
        self._source = source
        self._reporter = reporter
        self._metrics = MetricsCollector()
        self._hub: SubscriptionHub | None = None
        self._async_logger: AsyncLogger | None = None
        self._shutdown_event = asyncio.Event()
        self._subscription_id: str | None = None

    async def setup(self) -> None:
        """Initialize all components."""
        self._async_logger = setup_logging(level=self._settings.log_level)
        logger.info("Initializing divergence monitor...")

        if self._source is None:
            self._source = create_quote_source(self._settings)

        self._hub = create_hub(self._settings, self._source, metrics=self._metrics)

        if self._reporter is None:
            self._reporter = CLIReporter(
                self._metrics,
                venue_a=self._settings.venue_a_name,
                venue_b=self._settings.venue_b_name,
                threshold_pct=self._settings.threshold_pct,
            )

    async def run(self) -> None:
        """Poll until a shutdown signal arrives."""
        if self._hub is None or self._reporter is None:
            await self.setup()
        assert self._hub is not None and self._reporter is not None

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, self._handle_shutdown)

        try:
            logger.info(f"Monitoring {', '.join(self._settings.pairs)}")
            self._subscription_id = await self._hub.start(
                self._settings.pairs, self._reporter.on_signals
            )
            await self._shutdown_event.wait()
        finally:
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.remove_signal_handler(sig)
            await self.shutdown()

    def _handle_shutdown(self) -> None:
        """Handle shutdown signal."""
        logger.info("Shutdown signal received")
        self._shutdown_event.set()

    def request_shutdown(self) -> None:
        self._shutdown_event.set()

    async def shutdown(self) -> None:
        """Stop polling and release resources."""
        logger.info("Shutting down monitor...")

        if self._hub:
            await self._hub.stop()

        close = getattr(self._source, "close", None)
        if close is not None:
            await close()

        if self._reporter:
            self._reporter.print_summary()

        if self._async_logger:
            self._async_logger.stop()
            self._async_logger = None

    @property
    def hub(self) -> SubscriptionHub | None:
        return self._hub

    @property
    def metrics(self) -> MetricsCollector:
        return self._metrics

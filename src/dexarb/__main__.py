"""
Entry point for the divergence monitor.

Usage:
    python -m dexarb
    dexarb  # if installed via pip
"""

import asyncio
import sys


try:
    import uvloop

    UVLOOP_AVAILABLE = True
except ImportError:
    UVLOOP_AVAILABLE = False


def main() -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 for success).
    """
    from dexarb import __version__
    from dexarb.config.settings import get_settings
    from dexarb.core.monitor import DivergenceMonitor

    print(
        f"""
╔═══════════════════════════════════════════════════════════════╗
║     DEX DIVERGENCE MONITOR v{__version__:<28}      ║
╚═══════════════════════════════════════════════════════════════╝
    """
    )

    try:
        settings = get_settings()
    except Exception as e:
        print(f"Configuration error: {e}")
        print("\nCheck your environment variables or .env file (e.g. PAIRS, THRESHOLD_PCT).")
        return 1

    uvloop_enabled = settings.use_uvloop and UVLOOP_AVAILABLE
    if uvloop_enabled:
        uvloop.install()

    print("Configuration:")
    print(f"  Quote source:   {settings.quote_source}")
    print(f"  Venues:         {settings.venue_a_name} vs {settings.venue_b_name}")
    print(f"  Pairs:          {', '.join(settings.pairs)}")
    print(f"  Threshold:      {settings.threshold_pct:.3f}%")
    print(f"  Poll interval:  {settings.poll_interval_ms} ms ({settings.fetch_policy})")
    print(f"  Hysteresis:     {settings.hysteresis_cycles} cycle(s)")
    print(f"  uvloop:         {'Enabled' if uvloop_enabled else 'Disabled'}")
    print()

    async def run_monitor() -> int:
        monitor = DivergenceMonitor(settings)
        try:
            await monitor.setup()
            await monitor.run()
            return 0

        except KeyboardInterrupt:
            print("\nInterrupted by user")
            return 0

        except Exception as e:
            print(f"\nFatal error: {e}")
            import traceback

            traceback.print_exc()
            return 1

    return asyncio.run(run_monitor())


if __name__ == "__main__":
    sys.exit(main())

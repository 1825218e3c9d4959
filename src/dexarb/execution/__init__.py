"""Execution boundary (simulated)."""

from dexarb.execution.simulated import SimulatedExecutor


__all__ = [
    "SimulatedExecutor",
]

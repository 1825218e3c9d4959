"""Web dashboard for the divergence monitor."""

from dexarb.dashboard.server import create_app


__all__ = ["create_app"]

"""Alert surfaces fed by the subscription hub."""

from dexarb.alerts.rotation import AlertRotator, AlertView


__all__ = [
    "AlertRotator",
    "AlertView",
]

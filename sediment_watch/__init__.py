"""Drain sediment monitor.

Ingests turbidity readings from a time-series store, keeps a bounded window
of recent values, and derives rolling statistics, a trend, a multi-tier alert
level, a clogging projection and a value histogram for presentation.
"""

__all__ = [
    "config",
    "core",
    "data",
    "utils",
]

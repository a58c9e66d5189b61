"""Utility functions for the arbitrage engine."""

from dexarb.utils.math import clamp, format_usd, relative_delta, safe_divide
from dexarb.utils.time import (
    LatencyTimer,
    format_duration_us,
    get_timestamp,
    get_timestamp_us,
)


__all__ = [
    "LatencyTimer",
    "clamp",
    "format_duration_us",
    "format_usd",
    "get_timestamp",
    "get_timestamp_us",
    "relative_delta",
    "safe_divide",
]

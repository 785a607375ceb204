"""Utility functions for the arbitrage engine."""

from triarb.utils.numeric import (
    DECIMAL_CONTEXT,
    check_fraction,
    engine_context,
    format_amount,
    format_profit,
)
from triarb.utils.time import (
    LatencyTimer,
    format_duration_us,
    get_timestamp_us,
    monotonic_seconds,
)


__all__ = [
    "DECIMAL_CONTEXT",
    "LatencyTimer",
    "check_fraction",
    "engine_context",
    "format_amount",
    "format_duration_us",
    "format_profit",
    "get_timestamp_us",
    "monotonic_seconds",
]

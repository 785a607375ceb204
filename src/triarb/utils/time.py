"""
Clock helpers.

Wall-clock stamps label execution records. Durations are taken from the
monotonic performance counter.
"""

import time


_DURATION_UNITS = ((1_000_000, "s"), (1_000, "ms"))


def get_timestamp_us() -> int:
    """Current Unix time in microseconds."""
    return time.time_ns() // 1000


def monotonic_seconds() -> float:
    """Monotonic clock reading in seconds, for pacing and intervals."""
    return time.monotonic()


class LatencyTimer:
    """
    Context manager measuring the duration of a block in microseconds.

    The measurement is recorded even when the block raises, so a failed
    swap leg still reports how long it took.

    Example:
        >>> timer = LatencyTimer()
        >>> with timer:
        ...     await submitter.submit_swap(pool, asset, amount, floor)
        >>> timer.latency_us
    """

    __slots__ = ("_started_ns", "latency_us")

    def __init__(self) -> None:
        self._started_ns = 0
        self.latency_us = 0

    def __enter__(self) -> "LatencyTimer":
        self._started_ns = time.perf_counter_ns()
        return self

    def __exit__(self, *args: object) -> None:
        self.latency_us = (time.perf_counter_ns() - self._started_ns) // 1000


def format_duration_us(duration_us: int) -> str:
    """
    Render a microsecond duration in the largest unit that fits.

    Examples:
        >>> format_duration_us(500)
        '500μs'
        >>> format_duration_us(1500)
        '1.50ms'
        >>> format_duration_us(1500000)
        '1.50s'
    """
    for scale, unit in _DURATION_UNITS:
        if duration_us >= scale:
            return f"{duration_us / scale:.2f}{unit}"
    return f"{duration_us}μs"

"""
Error hierarchy for the arbitrage engine.

Every error raised inside a loop iteration derives from ArbitrageError
so the loop boundary can log it with its kind and carry on.
"""

from __future__ import annotations

from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from triarb.core.types import ExecutionResult


class ArbitrageError(Exception):
    """Base class for engine errors."""

    kind: str = "arbitrage_error"


class ConfigurationError(ArbitrageError):
    """Invalid static configuration, detected before the loop starts."""

    kind = "configuration_error"


class DataUnavailable(ArbitrageError):
    """A chain read failed, timed out or returned no value."""

    kind = "data_unavailable"


class IllegalPoolState(ArbitrageError):
    """A pool reported a zero or negative reserve."""

    kind = "illegal_pool_state"


class NoRouteFound(ArbitrageError):
    """No usable 3-pool cycle through the base asset."""

    kind = "no_route_found"


class SubmissionFailed(ArbitrageError):
    """
    A swap leg could not be submitted or was rejected.

    Carries the partial execution result so the caller can see which
    legs already landed and which asset the wallet now holds.
    """

    kind = "submission_failed"

    def __init__(
        self,
        message: str,
        leg_index: int,
        result: ExecutionResult | None = None,
    ) -> None:
        super().__init__(message)
        self.leg_index = leg_index
        self.result = result

"""Core module containing type definitions and the error hierarchy."""

from triarb.core.errors import (
    ArbitrageError,
    ConfigurationError,
    DataUnavailable,
    IllegalPoolState,
    NoRouteFound,
    SubmissionFailed,
)
from triarb.core.types import (
    Asset,
    CycleEvaluation,
    ExecutionResult,
    ExecutionStatus,
    LegResult,
    LoopState,
    Pool,
    PoolReserves,
    Quote,
    Route,
    RouteLeg,
    WalletContext,
)


__all__ = [
    "ArbitrageError",
    "Asset",
    "ConfigurationError",
    "CycleEvaluation",
    "DataUnavailable",
    "ExecutionResult",
    "ExecutionStatus",
    "IllegalPoolState",
    "LegResult",
    "LoopState",
    "NoRouteFound",
    "Pool",
    "PoolReserves",
    "Quote",
    "Route",
    "RouteLeg",
    "SubmissionFailed",
    "WalletContext",
]

"""Telemetry module for logging and metrics."""

from triarb.telemetry.logger import AsyncLogger, bind_iteration, setup_logging, unbind_iteration
from triarb.telemetry.metrics import MetricsCollector


__all__ = [
    "AsyncLogger",
    "MetricsCollector",
    "bind_iteration",
    "setup_logging",
    "unbind_iteration",
]

"""Execution module: leg sequencing and swap submission."""

from triarb.execution.paper import MinimumOutputViolation, PaperSwapSubmitter
from triarb.execution.sequencer import ExecutionSequencer


__all__ = [
    "ExecutionSequencer",
    "MinimumOutputViolation",
    "PaperSwapSubmitter",
]

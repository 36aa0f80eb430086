"""Process execution, output truncation and the log store interface."""

from shellgate.execution.engine import ExecutionEngine
from shellgate.execution.log_store import InMemoryLogStore, LogEntry, LogStore
from shellgate.execution.models import (
    ExecutionRequest,
    ExecutionResult,
    ExecutionState,
    Invocation,
    ProcessOutcome,
)
from shellgate.execution.truncation import (
    TruncatedOutput,
    build_truncation_message,
    format_truncated_output,
    truncate_output,
)

__all__ = [
    "ExecutionEngine",
    "InMemoryLogStore",
    "LogEntry",
    "LogStore",
    "ExecutionRequest",
    "ExecutionResult",
    "ExecutionState",
    "Invocation",
    "ProcessOutcome",
    "TruncatedOutput",
    "build_truncation_message",
    "format_truncated_output",
    "truncate_output",
]

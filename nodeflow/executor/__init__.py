"""Node execution contracts and primitives."""

from .context import (
    AbortSignal,
    LogEntry,
    LogLevel,
    NodeContext,
    NodeError,
    NodeResult,
    TokenUsage,
    create_log,
    create_node_error,
)
from .errors import (
    ExecutionError,
    NodeExecutionError,
    ExecutionTimeoutError,
    ExecutionCancelledError,
    DataValidationError,
    MissingCredentialsError,
)
from .retry import delay, with_abort, with_retry, with_timeout

__all__ = [
    "AbortSignal",
    "LogEntry",
    "LogLevel",
    "NodeContext",
    "NodeError",
    "NodeResult",
    "TokenUsage",
    "create_log",
    "create_node_error",
    "ExecutionError",
    "NodeExecutionError",
    "ExecutionTimeoutError",
    "ExecutionCancelledError",
    "DataValidationError",
    "MissingCredentialsError",
    "delay",
    "with_abort",
    "with_retry",
    "with_timeout",
]

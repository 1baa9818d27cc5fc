"""Execution contract types shared by the orchestrator and every executor."""

import asyncio
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class AbortSignal:
    """Cooperative cancellation token.

    The orchestrator keeps a reference and calls :meth:`abort`; executors pass
    the signal to :func:`nodeflow.executor.retry.with_abort` around network
    calls.
    """

    def __init__(self):
        self._event = asyncio.Event()
        self._reason: Optional[str] = None

    @property
    def aborted(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def abort(self, reason: str = "Execution was cancelled") -> None:
        """Trip the signal. Subsequent calls keep the first reason."""
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    async def wait(self) -> None:
        await self._event.wait()


class LogLevel(str, Enum):
    """Node log level."""
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class LogEntry(BaseModel):
    """A single entry of a node's execution log."""

    level: LogLevel
    message: str
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    data: Optional[Any] = None


class NodeError(BaseModel):
    """Structured failure reported by an executor."""

    code: str = Field(..., description="Stable error taxonomy key")
    message: str
    details: Optional[Any] = None
    retryable: bool = Field(default=False, description="Advisory hint for the caller")


class TokenUsage(BaseModel):
    """Token accounting for LLM calls."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class NodeContext(BaseModel):
    """Input bundle passed to an executor.

    Built by the orchestrator for one node invocation. ``node_config`` is the
    raw configuration payload; each executor parses it into its own config
    model.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    node_id: str
    node_type: str
    node_config: Dict[str, Any] = Field(default_factory=dict)
    variables: Dict[str, Any] = Field(default_factory=dict)
    inputs: Dict[str, Any] = Field(default_factory=dict)
    credentials: Dict[str, str] = Field(default_factory=dict)
    abort_signal: Optional[AbortSignal] = None

    @property
    def scope(self) -> Dict[str, Any]:
        """Variables overlaid with inputs, the lookup scope for templates."""
        return {**self.variables, **self.inputs}


class NodeResult(BaseModel):
    """Outcome of a single node execution."""

    success: bool
    outputs: Dict[str, Any] = Field(default_factory=dict)
    error: Optional[NodeError] = None
    logs: List[LogEntry] = Field(default_factory=list)
    usage: Optional[TokenUsage] = None
    duration: Optional[int] = Field(default=None, description="Duration in milliseconds")

    @model_validator(mode="after")
    def _check_error_matches_success(self) -> "NodeResult":
        if self.success and self.error is not None:
            raise ValueError("A successful result cannot carry an error")
        if not self.success and self.error is None:
            raise ValueError("A failed result must carry an error")
        return self


def create_log(
    level: Literal["debug", "info", "warn", "error"],
    message: str,
    data: Optional[Any] = None,
) -> LogEntry:
    """Create a timestamped log entry."""
    return LogEntry(level=LogLevel(level), message=message, data=data)


def create_node_error(
    code: str,
    message: str,
    details: Optional[Any] = None,
    retryable: bool = False,
) -> NodeError:
    """Create a node error."""
    return NodeError(code=code, message=message, details=details, retryable=retryable)

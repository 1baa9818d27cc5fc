"""Base executor class and the execution contract shared by every node type."""

import time
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Awaitable, Callable, ClassVar, Dict, Generic, List, Mapping, Optional, Tuple, Type, TypeVar, Union

import structlog
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from nodeflow.config import Settings, get_settings
from nodeflow.executor.context import (
    NodeContext,
    NodeError,
    NodeResult,
    TokenUsage,
    create_log,
    create_node_error,
)
from nodeflow.executor.errors import ExecutionError, NodeExecutionError
from nodeflow.metrics import metrics
from .schemas import NodeConfigModel

logger = structlog.get_logger()

ConfigT = TypeVar("ConfigT", bound=NodeConfigModel)


class NodeType(str, Enum):
    """Built-in node types (canonical keys)."""
    LLM = "llm"
    HTTP = "http"
    CONDITION = "condition"
    LOOP = "loop"
    VARIABLE = "variable"
    TRANSFORM = "transform"
    MERGE = "merge"
    TEMPLATE = "template"
    REGEX = "regex"
    SPLIT_JOIN = "split-join"
    INPUT = "input"
    OUTPUT = "output"


class ValidationResult(BaseModel):
    """Outcome of static config validation."""

    valid: bool
    errors: List[str] = Field(default_factory=list)

    @classmethod
    def from_errors(cls, errors: List[str]) -> "ValidationResult":
        return cls(valid=not errors, errors=errors)


def format_validation_errors(error: PydanticValidationError) -> List[str]:
    """Flatten pydantic errors into ``field: message`` strings."""
    messages = []
    for item in error.errors(include_url=False):
        location = ".".join(str(part) for part in item.get("loc", ()))
        messages.append(f"{location}: {item['msg']}" if location else item["msg"])
    return messages


class NodeRun:
    """Log and timing accumulator for one ``execute`` call."""

    def __init__(self, context: NodeContext):
        self.context = context
        self.logs = []
        self.started = time.perf_counter()
        self.logger = logger.bind(node_id=context.node_id, node_type=context.node_type)

    @property
    def duration_ms(self) -> int:
        return int((time.perf_counter() - self.started) * 1000)

    def log(self, level: str, message: str, data: Optional[Any] = None) -> None:
        """Append a node log entry and mirror it to the structured logger."""
        self.logs.append(create_log(level, message, data))
        log_method = {"warn": self.logger.warning}.get(level) or getattr(self.logger, level)
        if data is None:
            log_method(message)
        else:
            log_method(message, data=data)

    def succeed(self, outputs: Dict[str, Any], usage: Optional[TokenUsage] = None) -> NodeResult:
        return NodeResult(
            success=True,
            outputs=outputs,
            logs=list(self.logs),
            usage=usage,
            duration=self.duration_ms,
        )

    def fail(
        self,
        error: Union[NodeError, NodeExecutionError],
        outputs: Optional[Dict[str, Any]] = None,
        usage: Optional[TokenUsage] = None,
    ) -> NodeResult:
        if isinstance(error, NodeExecutionError):
            error = create_node_error(error.code, error.message, error.details or None, error.retryable)
        self.log("error", error.message, {"code": error.code})
        return NodeResult(
            success=False,
            outputs=outputs or {},
            error=error,
            logs=list(self.logs),
            usage=usage,
            duration=self.duration_ms,
        )


class NodeExecutor(ABC, Generic[ConfigT]):
    """Base class for all node executors.

    Subclasses declare their ``node_type``, ``config_model`` and implement
    :meth:`process`. :meth:`execute` never raises: every failure becomes a
    ``NodeResult`` with ``success=False``.
    """

    node_type: ClassVar[str]
    aliases: ClassVar[Tuple[str, ...]] = ()
    config_model: ClassVar[Type[NodeConfigModel]]
    failure_code: ClassVar[str] = "NODE_EXECUTION_FAILED"

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    @property
    def type(self) -> str:
        return self.node_type

    def parse_config(self, raw: Union[Mapping[str, Any], NodeConfigModel, None]) -> ConfigT:
        """Parse the raw node config into this executor's config model."""
        if isinstance(raw, self.config_model):
            return raw
        return self.config_model.model_validate(dict(raw or {}))

    async def execute(self, context: NodeContext) -> NodeResult:
        """Execute the node for one invocation."""
        run = NodeRun(context)
        run.logger.debug("Starting node execution")

        try:
            config = self.parse_config(context.node_config)
        except PydanticValidationError as e:
            result = run.fail(create_node_error(
                "INVALID_CONFIG",
                f"Invalid {self.node_type} node configuration",
                {"errors": format_validation_errors(e)},
            ))
            self._record(result)
            return result

        try:
            result = await self.process(context, config, run)
        except NodeExecutionError as e:
            result = run.fail(e)
        except ExecutionError as e:
            result = run.fail(create_node_error(self.failure_code, e.message, e.details or None, e.retryable))
        except Exception as e:
            run.logger.exception("Node execution failed", error_type=type(e).__name__)
            result = run.fail(create_node_error(
                self.failure_code,
                str(e) or type(e).__name__,
                {"error_type": type(e).__name__},
            ))

        self._record(result)
        return result

    @abstractmethod
    async def process(self, context: NodeContext, config: ConfigT, run: NodeRun) -> NodeResult:
        """Run the node. Must be implemented by subclasses."""
        raise NotImplementedError("Node execution not implemented")

    def validate(self, config: Union[Mapping[str, Any], NodeConfigModel, None]) -> ValidationResult:
        """Validate a node configuration without executing it."""
        try:
            parsed = self.parse_config(config)
        except PydanticValidationError as e:
            return ValidationResult.from_errors(format_validation_errors(e))
        return ValidationResult.from_errors(self.check_config(parsed))

    def check_config(self, config: ConfigT) -> List[str]:
        """Semantic checks beyond the config model's types."""
        return []

    def _record(self, result: NodeResult) -> None:
        if not self.settings.metrics_enabled:
            return
        tags = {"node_type": self.node_type}
        metrics.increment(
            "node_executions_total",
            tags={**tags, "status": "success" if result.success else "failure"},
        )
        if result.duration is not None:
            metrics.histogram("node_execution_duration_ms", result.duration, tags=tags)


class RawConfig(NodeConfigModel):
    """Pass-through config for executors that read their own payload."""

    model_config = ConfigDict(extra="allow", frozen=True)


NodeFunction = Callable[[NodeContext], Awaitable[Union[Dict[str, Any], NodeResult, None]]]


class FunctionExecutor(NodeExecutor[RawConfig]):
    """Adapt an async function into an executor for runtime-registered types."""

    config_model = RawConfig

    def __init__(self, node_type: str, fn: NodeFunction, settings: Optional[Settings] = None):
        super().__init__(settings)
        self.node_type = node_type
        self._fn = fn

    async def process(self, context: NodeContext, config: RawConfig, run: NodeRun) -> NodeResult:
        outputs = await self._fn(context)
        if isinstance(outputs, NodeResult):
            return outputs
        return run.succeed(dict(outputs or {}))

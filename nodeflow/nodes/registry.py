"""Executor registry: node type string to executor instance.

Built-in executors form a closed table keyed by :class:`NodeType`; runtime
registrations live in a separate override table that is consulted first.
"""

from typing import Callable, Dict, List, Optional, Type

import structlog

from nodeflow.config import Settings, get_settings
from nodeflow.exceptions import ConfigurationError, NotFoundError
from .actions.http import HTTPExecutor
from .base import FunctionExecutor, NodeExecutor, NodeFunction, NodeType
from .control import ConditionExecutor, LoopExecutor
from .data import MergeExecutor, TransformExecutor, VariableExecutor
from .io import InputExecutor, OutputExecutor
from .llm import LLMExecutor
from .text import RegexExecutor, SplitJoinExecutor, TemplateExecutor

logger = structlog.get_logger()

BUILTIN_EXECUTORS: Dict[NodeType, Type[NodeExecutor]] = {
    NodeType.LLM: LLMExecutor,
    NodeType.HTTP: HTTPExecutor,
    NodeType.CONDITION: ConditionExecutor,
    NodeType.LOOP: LoopExecutor,
    NodeType.VARIABLE: VariableExecutor,
    NodeType.TRANSFORM: TransformExecutor,
    NodeType.MERGE: MergeExecutor,
    NodeType.TEMPLATE: TemplateExecutor,
    NodeType.REGEX: RegexExecutor,
    NodeType.SPLIT_JOIN: SplitJoinExecutor,
    NodeType.INPUT: InputExecutor,
    NodeType.OUTPUT: OutputExecutor,
}


class ExecutorRegistry:
    """Registry of node executors for one process or test."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._builtin: Dict[str, NodeExecutor] = {}
        self._overrides: Dict[str, NodeExecutor] = {}
        self.logger = logger.bind(component="executor_registry")
        self._register_builtin_executors()

    def _register_builtin_executors(self) -> None:
        for node_type, executor_class in BUILTIN_EXECUTORS.items():
            executor = executor_class(self.settings)
            for type_key in (node_type.value, *executor_class.aliases):
                self._builtin[type_key] = executor

    def get_node_executor(self, node_type: str) -> Optional[NodeExecutor]:
        """Executor for ``node_type``, or None when nothing is registered."""
        if node_type in self._overrides:
            return self._overrides[node_type]
        return self._builtin.get(node_type)

    def require_executor(self, node_type: str) -> NodeExecutor:
        executor = self.get_node_executor(node_type)
        if executor is None:
            raise NotFoundError(f"No executor registered for node type '{node_type}'")
        return executor

    def register_node_executor(self, node_type: str, executor: NodeExecutor) -> None:
        """Register ``executor`` for ``node_type``, replacing any existing one.

        Built-in types can be overridden this way.
        """
        if not node_type:
            raise ConfigurationError("Node type is required to register an executor")
        if not callable(getattr(executor, "execute", None)):
            raise ConfigurationError(f"Executor for '{node_type}' has no execute() method")
        replaced = node_type in self._overrides or node_type in self._builtin
        self._overrides[node_type] = executor
        self.logger.info("Registered node executor", node_type=node_type, replaced=replaced)

    def register(self, node_type: str) -> Callable[[NodeFunction], NodeFunction]:
        """Decorator registering an async ``fn(context)`` as an executor."""
        def decorator(fn: NodeFunction) -> NodeFunction:
            self.register_node_executor(node_type, FunctionExecutor(node_type, fn, self.settings))
            return fn
        return decorator

    def unregister_node_executor(self, node_type: str) -> bool:
        """Remove a runtime registration. Built-in entries are restored, not removed."""
        removed = self._overrides.pop(node_type, None) is not None
        if removed:
            self.logger.info("Unregistered node executor", node_type=node_type)
        return removed

    def has_executor(self, node_type: str) -> bool:
        return node_type in self._overrides or node_type in self._builtin

    def list_node_types(self) -> List[str]:
        """All registered type keys, aliases included."""
        return sorted({*self._builtin, *self._overrides})


def create_default_registry(settings: Optional[Settings] = None) -> ExecutorRegistry:
    """Registry pre-populated with every built-in executor."""
    return ExecutorRegistry(settings)

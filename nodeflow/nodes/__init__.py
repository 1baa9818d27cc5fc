"""Node executors for workflow steps."""

from .base import (
    FunctionExecutor,
    NodeExecutor,
    NodeRun,
    NodeType,
    ValidationResult,
)

from .llm import LLMExecutor

from .actions import HTTPExecutor

from .control import (
    ConditionExecutor,
    LoopExecutor,
    evaluate_condition,
    evaluate_condition_config,
    evaluate_condition_group,
)

from .data import (
    MergeExecutor,
    TransformExecutor,
    VariableExecutor,
)

from .text import (
    RegexExecutor,
    SplitJoinExecutor,
    TemplateExecutor,
)

from .io import (
    InputExecutor,
    OutputExecutor,
)

from .registry import (
    BUILTIN_EXECUTORS,
    ExecutorRegistry,
    create_default_registry,
)

__all__ = [
    # Base
    "FunctionExecutor",
    "NodeExecutor",
    "NodeRun",
    "NodeType",
    "ValidationResult",

    # Executors
    "LLMExecutor",
    "HTTPExecutor",
    "ConditionExecutor",
    "LoopExecutor",
    "MergeExecutor",
    "TransformExecutor",
    "VariableExecutor",
    "RegexExecutor",
    "SplitJoinExecutor",
    "TemplateExecutor",
    "InputExecutor",
    "OutputExecutor",

    # Condition evaluation
    "evaluate_condition",
    "evaluate_condition_config",
    "evaluate_condition_group",

    # Registry
    "BUILTIN_EXECUTORS",
    "ExecutorRegistry",
    "create_default_registry",
]

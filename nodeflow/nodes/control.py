"""Control flow nodes: condition branching and bounded loops."""

import re
from typing import Any, Dict, Iterable, List, Mapping, Optional

from nodeflow.executor.context import NodeContext, NodeResult
from nodeflow.executor.errors import NodeExecutionError
from .base import NodeExecutor, NodeRun, NodeType
from .expression import resolve_reference, resolve_value, stringify
from .schemas import (
    ConditionConfig,
    ConditionGroup,
    ConditionOperator,
    LogicOperator,
    LoopConfig,
    LoopMode,
    SingleCondition,
)


def _to_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str) and value.strip():
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _as_text(value: Any) -> str:
    return "" if value is None else stringify(value)


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (str, list, tuple, dict)):
        return len(value) == 0
    return False


def _equals(left: Any, right: Any) -> bool:
    left_num, right_num = _to_number(left), _to_number(right)
    if left_num is not None and right_num is not None:
        return left_num == right_num
    if left == right:
        return True
    return _as_text(left) == _as_text(right)


def _order(left: Any, right: Any) -> int:
    """-1, 0 or 1; numeric when both sides are numeric, else by text."""
    left_num, right_num = _to_number(left), _to_number(right)
    if left_num is not None and right_num is not None:
        a, b = left_num, right_num
    else:
        a, b = _as_text(left), _as_text(right)
    return (a > b) - (a < b)


def _contains(container: Any, item: Any) -> bool:
    if container is None:
        return False
    if isinstance(container, (list, tuple)):
        return any(_equals(element, item) for element in container)
    if isinstance(container, Mapping):
        return _as_text(item) in container
    return _as_text(item) in _as_text(container)


def _matches(value: Any, pattern: Any) -> bool:
    try:
        return re.search(_as_text(pattern), _as_text(value)) is not None
    except re.error:
        return False


def evaluate_condition(condition: SingleCondition, scope: Mapping[str, Any]) -> bool:
    """Evaluate ``left <operator> right`` against ``scope``."""
    left = resolve_value(condition.left, scope)
    right = resolve_value(condition.right, scope)
    operator = condition.operator

    if operator == ConditionOperator.EQ:
        return _equals(left, right)
    if operator == ConditionOperator.NEQ:
        return not _equals(left, right)
    if operator == ConditionOperator.GT:
        return _order(left, right) > 0
    if operator == ConditionOperator.GTE:
        return _order(left, right) >= 0
    if operator == ConditionOperator.LT:
        return _order(left, right) < 0
    if operator == ConditionOperator.LTE:
        return _order(left, right) <= 0
    if operator == ConditionOperator.CONTAINS:
        return _contains(left, right)
    if operator == ConditionOperator.NOT_CONTAINS:
        return not _contains(left, right)
    if operator == ConditionOperator.STARTS_WITH:
        return _as_text(left).startswith(_as_text(right))
    if operator == ConditionOperator.ENDS_WITH:
        return _as_text(left).endswith(_as_text(right))
    if operator == ConditionOperator.MATCHES:
        return _matches(left, right)
    if operator == ConditionOperator.EMPTY:
        return _is_empty(left)
    if operator == ConditionOperator.NOT_EMPTY:
        return not _is_empty(left)
    raise ValueError(f"Unsupported operator: {operator}")


def combine(logic: LogicOperator, results: Iterable[bool]) -> bool:
    if logic == LogicOperator.OR:
        return any(results)
    return all(results)


def evaluate_condition_group(group: ConditionGroup, scope: Mapping[str, Any]) -> bool:
    """Combine a group's conditions with the group's own logic."""
    return combine(group.logic, (evaluate_condition(c, scope) for c in group.conditions))


def evaluate_groups(config: ConditionConfig, scope: Mapping[str, Any]) -> List[bool]:
    return [evaluate_condition_group(group, scope) for group in config.conditions]


def evaluate_condition_config(config: ConditionConfig, scope: Mapping[str, Any]) -> bool:
    """Combine group results with the top-level logic."""
    return combine(config.logic, evaluate_groups(config, scope))


class ConditionExecutor(NodeExecutor[ConditionConfig]):
    """Evaluate conditions and pick the ``true`` or ``false`` branch."""

    node_type = NodeType.CONDITION.value
    aliases = ("if",)
    config_model = ConditionConfig
    failure_code = "CONDITION_FAILED"

    async def process(self, context: NodeContext, config: ConditionConfig, run: NodeRun) -> NodeResult:
        if not config.conditions:
            run.log("warn", "No conditions configured")

        group_results = evaluate_groups(config, context.scope)
        result = combine(config.logic, group_results)

        run.log("debug", f"Condition evaluated to {result}", {"group_results": group_results})
        return run.succeed({
            "result": result,
            "branch": "true" if result else "false",
            "group_results": group_results,
        })

    def check_config(self, config: ConditionConfig) -> List[str]:
        errors = []
        if not config.conditions:
            errors.append("At least one condition is required")
        for index, group in enumerate(config.conditions):
            if not group.conditions:
                errors.append(f"Condition group {index + 1} is empty")
        return errors


def as_collection(value: Any) -> List[Any]:
    """Items a forEach loop iterates over."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, Mapping):
        return [{"key": key, "value": item} for key, item in value.items()]
    return [value]


class LoopExecutor(NodeExecutor[LoopConfig]):
    """Iterate over a collection, while a condition holds, or a fixed count."""

    node_type = NodeType.LOOP.value
    config_model = LoopConfig
    failure_code = "LOOP_FAILED"

    def iteration_limit(self, config: LoopConfig) -> int:
        requested = config.max_iterations or self.settings.loop_max_iterations
        return max(0, min(requested, self.settings.loop_iteration_limit))

    def resolve_source(self, context: NodeContext, config: LoopConfig) -> Any:
        scope = context.scope
        if config.source:
            return resolve_reference(config.source, scope)
        for key in ("items", "input"):
            if context.inputs.get(key) is not None:
                return context.inputs[key]
        return None

    async def process(self, context: NodeContext, config: LoopConfig, run: NodeRun) -> NodeResult:
        limit = self.iteration_limit(config)
        truncated = False
        items: List[Any] = []

        if config.mode == LoopMode.FOR_EACH:
            collection = as_collection(self.resolve_source(context, config))
            if not collection:
                run.log("warn", "Loop source resolved to an empty collection", {"source": config.source})
            truncated = len(collection) > limit
            items = collection[:limit]

        elif config.mode == LoopMode.COUNT:
            if config.count is None:
                raise NodeExecutionError("Count loop requires a count", code="LOOP_FAILED")
            total = max(config.count, 0)
            truncated = total > limit
            items = list(range(min(total, limit)))

        elif config.mode == LoopMode.WHILE:
            if config.condition is None:
                raise NodeExecutionError("While loop requires a condition", code="LOOP_FAILED")
            scope = context.scope
            index = 0
            while True:
                iteration_scope: Dict[str, Any] = {
                    **scope,
                    config.index_variable: index,
                    "iteration": index + 1,
                    config.item_variable: index,
                }
                if not evaluate_condition_config(config.condition, iteration_scope):
                    break
                if index >= limit:
                    truncated = True
                    break
                items.append(index)
                index += 1

        if truncated:
            run.log("warn", f"Loop stopped at the iteration limit of {limit}", {"mode": config.mode.value})

        iterations = [
            {"index": index, "item": item}
            for index, item in enumerate(items)
        ]
        run.log("info", f"Loop completed with {len(items)} iterations")
        return run.succeed({
            "items": items,
            "iterations": iterations,
            "count": len(items),
            "truncated": truncated,
        })

    def check_config(self, config: LoopConfig) -> List[str]:
        errors = []
        if config.mode == LoopMode.COUNT and config.count is None:
            errors.append("Count is required for count loops")
        if config.mode == LoopMode.WHILE and config.condition is None:
            errors.append("Condition is required for while loops")
        if config.count is not None and config.count < 0:
            errors.append("Count cannot be negative")
        if config.max_iterations is not None and config.max_iterations < 1:
            errors.append("Max iterations must be at least 1")
        if config.max_iterations is not None and config.max_iterations > self.settings.loop_iteration_limit:
            errors.append(f"Max iterations cannot exceed {self.settings.loop_iteration_limit}")
        return errors

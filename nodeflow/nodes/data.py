"""Data nodes: variable assignment, transforms and merges."""

import copy
import math
import re
from typing import Any, Dict, List, Mapping, Optional

from nodeflow.executor.context import NodeContext, NodeResult
from nodeflow.executor.errors import DataValidationError, NodeExecutionError
from .base import NodeExecutor, NodeRun, NodeType
from .control import evaluate_condition_group
from .expression import (
    get_value_by_path,
    render_template,
    resolve_reference,
    resolve_value,
    safe_json_parse,
    set_value_by_path,
    split_path,
    stringify,
)
from .schemas import MergeConfig, TransformConfig, VariableConfig

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

TRUE_STRINGS = {"true", "1", "yes"}
FALSE_STRINGS = {"false", "0", "no"}


def _preview(value: Any, length: int) -> str:
    return stringify(value)[:length]


def coerce_value(value: Any, value_type: Optional[str], scope: Mapping[str, Any]) -> Any:
    """Render string values, then coerce to ``value_type``."""
    if isinstance(value, str):
        value = render_template(value, scope)

    if value_type == "string":
        return "" if value is None else stringify(value)

    if value_type == "number":
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, (int, float)):
            return value
        text = str(value).strip() if value is not None else ""
        if not text:
            return 0
        try:
            number = float(text)
        except ValueError:
            number = math.nan
        if not math.isfinite(number):
            raise DataValidationError(
                f'Cannot convert "{value}" to number',
                field="value",
                expected_type="number",
                actual_value=value,
            )
        return int(number) if number.is_integer() and re.fullmatch(r"[+-]?\d+", text) else number

    if value_type == "boolean":
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in TRUE_STRINGS:
                return True
            if lowered in FALSE_STRINGS:
                return False
        return bool(value)

    if value_type == "object":
        if isinstance(value, dict):
            return value
        if isinstance(value, str):
            parsed = safe_json_parse(value, {})
            return parsed if isinstance(parsed, dict) else {}
        return {}

    if value_type == "array":
        if isinstance(value, list):
            return value
        if isinstance(value, str):
            parsed = safe_json_parse(value)
            if isinstance(parsed, list):
                return parsed
            return [part.strip() for part in value.split(",")]
        return [value]

    return value


class VariableExecutor(NodeExecutor[VariableConfig]):
    """Set a workflow variable."""

    node_type = NodeType.VARIABLE.value
    aliases = ("set-variable",)
    config_model = VariableConfig
    failure_code = "VARIABLE_SET_FAILED"

    async def process(self, context: NodeContext, config: VariableConfig, run: NodeRun) -> NodeResult:
        name = config.variable_name
        if not name:
            raise NodeExecutionError("Variable name is required", code="VARIABLE_SET_FAILED")

        value = coerce_value(config.value, config.value_type, context.scope)
        variables = copy.deepcopy(context.variables)
        try:
            set_value_by_path(variables, name, value)
        except ValueError as e:
            raise NodeExecutionError(str(e), code="VARIABLE_SET_FAILED")

        run.log(
            "info",
            f'Set variable "{name}" to {_preview(value, self.settings.log_preview_length)}',
            {"type": config.value_type},
        )
        return run.succeed({
            name: value,
            "value": value,
            "name": name,
            "type": config.value_type,
            "variables": variables,
        })

    def check_config(self, config: VariableConfig) -> List[str]:
        errors = []
        if not config.variable_name:
            errors.append("Variable name is required")
        else:
            try:
                tokens = split_path(config.variable_name)
            except ValueError:
                tokens = ()
            if not tokens or not isinstance(tokens[0], str) or not IDENTIFIER_PATTERN.match(tokens[0]):
                errors.append(
                    "Variable name must start with a letter or underscore, "
                    "followed by letters, digits, or underscores"
                )
        if not config.value_type:
            errors.append("Value type is required")
        return errors


def _map_item(item: Any, mapping: Mapping[str, Any], scope: Mapping[str, Any]) -> Dict[str, Any]:
    item_scope = {**scope, "item": item, "data": item}
    result = {}
    for key, source in mapping.items():
        if isinstance(source, str) and "{{" in source:
            result[key] = resolve_value(source, item_scope)
        elif isinstance(source, str):
            result[key] = get_value_by_path(item, source)
        else:
            result[key] = source
    return result


def _pick(value: Any, keys: List[str]) -> Any:
    if isinstance(value, list):
        return [_pick(item, keys) for item in value]
    if isinstance(value, Mapping):
        return {key: value[key] for key in keys if key in value}
    return value


class TransformExecutor(NodeExecutor[TransformConfig]):
    """Reshape an input value declaratively."""

    node_type = NodeType.TRANSFORM.value
    config_model = TransformConfig
    failure_code = "TRANSFORM_FAILED"

    def resolve_input(self, context: NodeContext, config: TransformConfig) -> Any:
        if config.source:
            return resolve_reference(config.source, context.scope)
        for value in (context.inputs.get("data"), context.inputs.get("input"), context.variables.get("input")):
            if value is not None:
                return value
        return None

    async def process(self, context: NodeContext, config: TransformConfig, run: NodeRun) -> NodeResult:
        data = self.resolve_input(context, config)
        scope = context.scope
        transform_type = config.transform_type or "passthrough"

        if transform_type == "jsonPath":
            if not config.json_path:
                raise NodeExecutionError("JSON Path is required", code="TRANSFORM_FAILED")
            result = get_value_by_path(data, config.json_path)

        elif transform_type == "expression":
            if not config.expression:
                raise NodeExecutionError("Expression is required", code="TRANSFORM_FAILED")
            result = render_template(config.expression, {**scope, "data": data})

        elif transform_type == "map":
            if not config.mapping:
                raise NodeExecutionError("Mapping is required", code="TRANSFORM_FAILED")
            if isinstance(data, list):
                result = [_map_item(item, config.mapping, scope) for item in data]
            else:
                result = _map_item(data, config.mapping, scope)

        elif transform_type == "pick":
            result = _pick(data, config.pick_fields)

        elif transform_type == "filter":
            if config.filter is None:
                raise NodeExecutionError("Filter conditions are required", code="TRANSFORM_FAILED")
            if not isinstance(data, list):
                raise NodeExecutionError("Filter requires a list input", code="TRANSFORM_FAILED")
            result = [
                item for item in data
                if evaluate_condition_group(config.filter, {**scope, "item": item})
            ]

        else:
            result = data

        run.log("info", f"Data transformed using {transform_type}")
        return run.succeed({"data": result, "output": result})

    def check_config(self, config: TransformConfig) -> List[str]:
        errors = []
        if not config.transform_type:
            errors.append("Transform type is required")
        elif config.transform_type == "jsonPath" and not config.json_path:
            errors.append("JSON Path is required")
        elif config.transform_type == "expression" and not config.expression:
            errors.append("Expression is required")
        elif config.transform_type == "map" and not config.mapping:
            errors.append("Mapping is required")
        elif config.transform_type == "filter" and config.filter is None:
            errors.append("Filter conditions are required")
        return errors


class MergeExecutor(NodeExecutor[MergeConfig]):
    """Combine several inputs into one value."""

    node_type = NodeType.MERGE.value
    config_model = MergeConfig
    failure_code = "MERGE_FAILED"

    def collect(self, context: NodeContext, config: MergeConfig) -> List[Any]:
        if config.sources:
            values = [resolve_reference(source, context.scope) for source in config.sources]
        else:
            values = list(context.inputs.values())
        return [value for value in values if value is not None]

    async def process(self, context: NodeContext, config: MergeConfig, run: NodeRun) -> NodeResult:
        values = self.collect(context, config)

        if config.merge_type == "object":
            result: Any = {}
            for value in values:
                if isinstance(value, Mapping):
                    result = {**result, **value}
                else:
                    run.log("warn", "Skipping non-object input in object merge", {"type": type(value).__name__})
        elif config.merge_type == "concat":
            result = []
            for value in values:
                if isinstance(value, (list, tuple)):
                    result.extend(value)
                else:
                    result.append(value)
        else:
            result = values

        run.log("info", f"Merged {len(values)} inputs using {config.merge_type or 'array'}")
        return run.succeed({"data": result, "output": result})

    def check_config(self, config: MergeConfig) -> List[str]:
        if not config.merge_type:
            return ["Merge type is required"]
        return []

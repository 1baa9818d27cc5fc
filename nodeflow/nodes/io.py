"""Workflow input and output nodes."""

from datetime import datetime, timezone
from typing import Any, List

from nodeflow.executor.context import NodeContext, NodeResult
from nodeflow.executor.errors import NodeExecutionError
from .base import NodeExecutor, NodeRun, NodeType
from .schemas import InputConfig, OutputConfig


class InputExecutor(NodeExecutor[InputConfig]):
    """Expose a workflow input value to downstream nodes."""

    node_type = NodeType.INPUT.value
    config_model = InputConfig
    failure_code = "INPUT_REQUIRED"

    async def process(self, context: NodeContext, config: InputConfig, run: NodeRun) -> NodeResult:
        name = config.name
        if not name:
            raise NodeExecutionError("Input name is required", code="INVALID_CONFIG")

        value = context.inputs.get(name)
        if value is None:
            value = context.variables.get(name)
        if value is None:
            value = config.default_value

        if value is None and config.required:
            raise NodeExecutionError(
                f'Required input "{config.label or name}" was not provided',
                code="INPUT_REQUIRED",
                details={"name": name},
            )

        run.log("debug", f'Resolved input "{name}"', {"type": config.input_type})
        return run.succeed({"value": value, "output": value, name: value})

    def check_config(self, config: InputConfig) -> List[str]:
        if not config.name:
            return ["Input name is required"]
        return []


class OutputExecutor(NodeExecutor[OutputConfig]):
    """Pass a value through with display metadata."""

    node_type = NodeType.OUTPUT.value
    config_model = OutputConfig
    failure_code = "OUTPUT_FAILED"

    @staticmethod
    def pick_value(inputs: dict) -> Any:
        for key in ("output", "value", "input"):
            if inputs.get(key) is not None:
                return inputs[key]
        for value in inputs.values():
            if value is not None:
                return value
        return None

    async def process(self, context: NodeContext, config: OutputConfig, run: NodeRun) -> NodeResult:
        value = self.pick_value(context.inputs)

        display: Any = value
        if isinstance(value, str) and config.max_length is not None and len(value) > config.max_length:
            display = value[:config.max_length]
            run.log("debug", f"Display value truncated to {config.max_length} characters")

        outputs = {
            "output": value,
            "display": display,
            "type": config.output_type,
            "title": config.title,
            "show_timestamp": config.show_timestamp,
            "max_length": config.max_length,
        }
        if config.show_timestamp:
            outputs["timestamp"] = datetime.now(timezone.utc).isoformat()
        return run.succeed(outputs)

"""Text nodes: template rendering, regex extraction and split/join."""

import re
from typing import Any, Dict, List, Optional

from nodeflow.executor.context import NodeContext, NodeResult
from nodeflow.executor.errors import NodeExecutionError
from .base import NodeExecutor, NodeRun, NodeType
from .expression import find_unresolved, render_template, resolve_reference, safe_json_parse, stringify
from .schemas import RegexConfig, SplitJoinConfig, TemplateConfig

REGEX_FLAGS = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "x": re.VERBOSE,
    # global matching is selected by mode, not by a flag
    "g": 0,
}


def _input_value(context: NodeContext, configured: Any, *fallback_keys: str) -> Any:
    if isinstance(configured, str) and configured:
        return resolve_reference(configured, context.scope)
    if configured is not None:
        return configured
    for key in fallback_keys:
        if context.inputs.get(key) is not None:
            return context.inputs[key]
    return None


class TemplateExecutor(NodeExecutor[TemplateConfig]):
    """Render a text template against workflow variables and inputs."""

    node_type = NodeType.TEMPLATE.value
    aliases = ("text-template",)
    config_model = TemplateConfig
    failure_code = "TEMPLATE_FAILED"

    async def process(self, context: NodeContext, config: TemplateConfig, run: NodeRun) -> NodeResult:
        if config.template is None:
            raise NodeExecutionError("Template is required", code="TEMPLATE_FAILED")

        scope = context.scope
        text = render_template(config.template, scope)
        unresolved = find_unresolved(config.template, scope)
        if unresolved:
            run.log("warn", "Template references unresolved variables", {"variables": unresolved})

        return run.succeed({"text": text, "output": text})

    def check_config(self, config: TemplateConfig) -> List[str]:
        if config.template is None:
            return ["Template is required"]
        return []


def compile_pattern(pattern: str, flags: str) -> "re.Pattern[str]":
    value = 0
    for flag in flags:
        if flag not in REGEX_FLAGS:
            raise NodeExecutionError(f"Unsupported regex flag: {flag}", code="REGEX_FAILED")
        value |= REGEX_FLAGS[flag]
    try:
        return re.compile(pattern, value)
    except re.error as e:
        raise NodeExecutionError(f"Invalid regex pattern: {e}", code="REGEX_FAILED", details={"pattern": pattern})


def _match_groups(match: "re.Match[str]") -> Any:
    named = match.groupdict()
    return named if named else list(match.groups())


class RegexExecutor(NodeExecutor[RegexConfig]):
    """Extract matches from text with a regular expression."""

    node_type = NodeType.REGEX.value
    config_model = RegexConfig
    failure_code = "REGEX_FAILED"

    async def process(self, context: NodeContext, config: RegexConfig, run: NodeRun) -> NodeResult:
        if not config.pattern:
            raise NodeExecutionError("Pattern is required", code="REGEX_FAILED")
        regex = compile_pattern(config.pattern, config.flags)

        value = _input_value(context, config.input, "text", "input")
        text = "" if value is None else stringify(value)

        outputs: Dict[str, Any]
        if config.mode == "all":
            found = list(regex.finditer(text))
            matches = [m.group(0) for m in found]
            outputs = {
                "matched": bool(found),
                "match": matches[0] if matches else None,
                "matches": matches,
                "groups": [_match_groups(m) for m in found],
                "output": matches,
            }
        else:
            match = regex.search(text)
            groups = _match_groups(match) if match else None
            outputs = {
                "matched": match is not None,
                "match": match.group(0) if match else None,
                "matches": [match.group(0)] if match else [],
                "groups": groups,
                "output": groups if config.mode == "groups" else (match.group(0) if match else None),
            }

        run.log("info", f"Regex matched {len(outputs['matches'])} time(s)", {"mode": config.mode})
        return run.succeed(outputs)

    def check_config(self, config: RegexConfig) -> List[str]:
        if not config.pattern:
            return ["Pattern is required"]
        try:
            compile_pattern(config.pattern, config.flags)
        except NodeExecutionError as e:
            return [e.message]
        return []


def _clean(parts: List[str], trim: bool, remove_empty: bool) -> List[str]:
    if trim:
        parts = [part.strip() for part in parts]
    if remove_empty:
        parts = [part for part in parts if part != ""]
    return parts


class SplitJoinExecutor(NodeExecutor[SplitJoinConfig]):
    """Split a string into a list, or join a list into a string."""

    node_type = NodeType.SPLIT_JOIN.value
    config_model = SplitJoinConfig
    failure_code = "SPLIT_JOIN_FAILED"

    async def process(self, context: NodeContext, config: SplitJoinConfig, run: NodeRun) -> NodeResult:
        value = _input_value(context, config.input, "input", "text", "items")

        if config.mode == "split":
            text = "" if value is None else stringify(value)
            parts = text.split(config.delimiter) if config.delimiter else list(text)
            result: Any = _clean(parts, config.trim, config.remove_empty)
            count = len(result)
        else:
            items = self._as_list(value)
            parts = _clean([stringify(item) for item in items if item is not None], config.trim, config.remove_empty)
            result = config.delimiter.join(parts)
            count = len(parts)

        run.log("info", f"{config.mode.capitalize()} produced {count} item(s)")
        return run.succeed({"output": result, "result": result, "count": count})

    @staticmethod
    def _as_list(value: Any) -> List[Any]:
        if value is None:
            return []
        if isinstance(value, (list, tuple)):
            return list(value)
        if isinstance(value, str):
            parsed: Optional[Any] = safe_json_parse(value)
            if isinstance(parsed, list):
                return parsed
        return [value]

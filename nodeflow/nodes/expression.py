"""Path resolution and ``{{path}}`` template rendering."""

import json
import re
from collections.abc import Mapping, MutableMapping
from typing import Any, List, Optional, Tuple, Union

# Regex to find template tokens in strings
TEMPLATE_PATTERN = re.compile(r"\{\{\s*([^{}]+?)\s*\}\}")
SINGLE_TOKEN_PATTERN = re.compile(r"^\s*\{\{\s*([^{}]+?)\s*\}\}\s*$")
SEGMENT_PATTERN = re.compile(r"^([^\[\]]*)((?:\[\d+\])*)$")
INDEX_PATTERN = re.compile(r"\[(\d+)\]")

PathToken = Union[str, int]

_SCALARS = (str, bytes, int, float, bool)


def _parse_path(path: str) -> Optional[List[PathToken]]:
    """Split ``a.b[2].c`` into ``["a", "b", 2, "c"]``; None when malformed."""
    tokens: List[PathToken] = []
    for segment in path.strip().split("."):
        match = SEGMENT_PATTERN.match(segment.strip())
        if not match:
            return None
        name, indexes = match.groups()
        if name:
            tokens.append(name)
        elif not indexes:
            return None
        tokens.extend(int(i) for i in INDEX_PATTERN.findall(indexes))
    return tokens


def _step(current: Any, token: PathToken) -> Any:
    if current is None:
        return None
    if isinstance(token, int):
        if isinstance(current, (list, tuple)) and 0 <= token < len(current):
            return current[token]
        return None
    if isinstance(current, Mapping):
        return current.get(token)
    if isinstance(current, (list, tuple)):
        if token.isdigit() and int(token) < len(current):
            return current[int(token)]
        return None
    if isinstance(current, _SCALARS) or token.startswith("_"):
        return None
    return getattr(current, token, None)


def get_value_by_path(obj: Any, path: str) -> Any:
    """Resolve a dotted path with optional ``[index]`` suffixes.

    Returns None for any missing segment, out-of-range index or malformed
    path. Never raises.
    """
    if not isinstance(path, str) or not path.strip():
        return None
    tokens = _parse_path(path)
    if tokens is None:
        return None
    current = obj
    for token in tokens:
        current = _step(current, token)
        if current is None:
            return None
    return current


def set_value_by_path(obj: MutableMapping, path: str, value: Any) -> MutableMapping:
    """Write ``value`` at ``path``, creating intermediate containers."""
    tokens = _parse_path(path)
    if not tokens:
        raise ValueError(f"Invalid path: {path!r}")

    current: Any = obj
    for token, next_token in zip(tokens, tokens[1:]):
        child = _step(current, token)
        if not isinstance(child, (MutableMapping, list)):
            child = [] if isinstance(next_token, int) else {}
            _assign(current, token, child)
        current = child

    _assign(current, tokens[-1], value)
    return obj


def _assign(container: Any, token: PathToken, value: Any) -> None:
    if isinstance(token, int):
        if not isinstance(container, list):
            raise ValueError(f"Cannot index non-list with [{token}]")
        while len(container) <= token:
            container.append(None)
        container[token] = value
    else:
        container[token] = value


def stringify(value: Any) -> str:
    """Render a resolved value into template text."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, ensure_ascii=False, default=str)
    return str(value)


def render_template(template: Any, variables: Mapping) -> Any:
    """Replace every ``{{path}}`` with its resolved value.

    Unresolved tokens are left untouched so they stay visible downstream.
    Non-string templates are returned as-is.
    """
    if not isinstance(template, str) or "{{" not in template:
        return template

    def replace(match: "re.Match[str]") -> str:
        value = get_value_by_path(variables, match.group(1))
        if value is None:
            return match.group(0)
        return stringify(value)

    return TEMPLATE_PATTERN.sub(replace, template)


def extract_template_variables(template: str) -> List[str]:
    """List referenced paths, de-duplicated in first-seen order."""
    if not isinstance(template, str):
        return []
    seen: List[str] = []
    for match in TEMPLATE_PATTERN.finditer(template):
        path = match.group(1).strip()
        if path and path not in seen:
            seen.append(path)
    return seen


def resolve_value(value: Any, variables: Mapping) -> Any:
    """Resolve a configured operand.

    A string made of exactly one ``{{path}}`` token yields the raw value
    (None when unresolved); other strings are rendered; anything else is
    returned unchanged.
    """
    if not isinstance(value, str):
        return value
    match = SINGLE_TOKEN_PATTERN.match(value)
    if match:
        return get_value_by_path(variables, match.group(1))
    return render_template(value, variables)


def render_object(value: Any, variables: Mapping) -> Any:
    """Render every string nested inside dicts and lists."""
    if isinstance(value, str):
        return render_template(value, variables)
    if isinstance(value, Mapping):
        return {key: render_object(item, variables) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [render_object(item, variables) for item in value]
    return value


def safe_json_parse(text: Any, fallback: Any = None) -> Any:
    """Parse JSON text, returning ``fallback`` on any failure."""
    if not isinstance(text, (str, bytes)):
        return fallback
    try:
        return json.loads(text)
    except ValueError:
        return fallback


def find_unresolved(template: str, variables: Mapping) -> List[str]:
    """Referenced paths that do not resolve against ``variables``."""
    return [
        path for path in extract_template_variables(template)
        if get_value_by_path(variables, path) is None
    ]


def split_path(path: str) -> Tuple[PathToken, ...]:
    """Public form of the path tokenizer, used for validation."""
    tokens = _parse_path(path) if isinstance(path, str) else None
    if tokens is None:
        raise ValueError(f"Invalid path: {path!r}")
    return tuple(tokens)


def resolve_reference(reference: str, variables: Mapping) -> Any:
    """Resolve a configured source: a ``{{path}}`` template or a bare path."""
    if "{{" in reference:
        return resolve_value(reference, variables)
    return get_value_by_path(variables, reference)

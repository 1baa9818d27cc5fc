"""Per-node-type configuration models.

Node configuration arrives from the editor as JSON with camelCase keys;
every model accepts both the camelCase alias and the snake_case field name.
Configs are frozen: an executor never mutates the config it was given.
"""

from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class NodeConfigModel(BaseModel):
    """Base class for node configuration payloads."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


# ==================== LLM ====================

class ChatMessage(NodeConfigModel):
    """A chat message in provider wire format."""
    role: Literal["system", "user", "assistant", "tool"]
    content: str = ""


class LLMConfig(NodeConfigModel):
    """LLM chat node configuration."""
    model: Optional[str] = Field(None, description="Model name, e.g. gpt-4o")
    provider: Optional[str] = Field(None, description="Explicit provider name")
    system_prompt: Optional[str] = None
    user_prompt: Optional[str] = None
    messages: List[ChatMessage] = Field(default_factory=list, description="History messages")

    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    top_p: Optional[float] = None
    frequency_penalty: Optional[float] = None
    presence_penalty: Optional[float] = None
    stop: Optional[List[str]] = None
    response_format: Literal["text", "json"] = "text"
    stream: bool = False

    timeout: Optional[int] = Field(None, description="Call timeout in milliseconds")
    retry_count: Optional[int] = None
    retry_delay: Optional[int] = Field(None, description="Delay between retries in milliseconds")

    api_key: Optional[str] = None
    base_url: Optional[str] = None


# ==================== HTTP ====================

class HTTPAuthConfig(NodeConfigModel):
    """Credentials for the HTTP node's auth schemes."""
    username: Optional[str] = None
    password: Optional[str] = None
    token: Optional[str] = None
    api_key: Optional[str] = None
    api_key_name: str = "X-API-Key"
    api_key_in: Literal["header", "query"] = "header"


class HTTPConfig(NodeConfigModel):
    """HTTP request node configuration."""
    method: Optional[str] = "GET"
    url: Optional[str] = None
    headers: Dict[str, Any] = Field(default_factory=dict)
    query_params: Dict[str, Any] = Field(default_factory=dict)
    body: Any = None
    body_type: Literal["none", "json", "form", "raw"] = "none"
    auth_type: Literal["none", "basic", "bearer", "apiKey"] = "none"
    auth_config: HTTPAuthConfig = Field(default_factory=HTTPAuthConfig)
    timeout: Optional[int] = Field(None, description="Request timeout in milliseconds")
    follow_redirects: bool = True
    validate_status: bool = True


# ==================== Logic ====================

class ConditionOperator(str, Enum):
    """Comparison operator of a single condition."""
    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    CONTAINS = "contains"
    NOT_CONTAINS = "notContains"
    STARTS_WITH = "startsWith"
    ENDS_WITH = "endsWith"
    MATCHES = "matches"
    EMPTY = "empty"
    NOT_EMPTY = "notEmpty"


class LogicOperator(str, Enum):
    """How a list of boolean results is combined."""
    AND = "and"
    OR = "or"


class SingleCondition(NodeConfigModel):
    """``left <operator> right``."""
    left: Any = None
    operator: ConditionOperator
    right: Any = None


class ConditionGroup(NodeConfigModel):
    """Conditions combined with the group's own logic."""
    conditions: List[SingleCondition] = Field(default_factory=list)
    logic: LogicOperator = LogicOperator.AND


class ConditionConfig(NodeConfigModel):
    """Condition node configuration: groups combined with ``logic``."""
    conditions: List[ConditionGroup] = Field(default_factory=list)
    logic: LogicOperator = LogicOperator.AND

    @field_validator("conditions", mode="before")
    @classmethod
    def _wrap_flat_conditions(cls, value: Any) -> Any:
        # A flat list of single conditions is treated as one implicit group.
        if isinstance(value, list) and value and all(
            isinstance(item, dict) and "operator" in item for item in value
        ):
            return [{"conditions": value, "logic": "and"}]
        return value


class LoopMode(str, Enum):
    """Loop iteration mode."""
    FOR_EACH = "forEach"
    WHILE = "while"
    COUNT = "count"


class LoopConfig(NodeConfigModel):
    """Loop node configuration."""
    mode: LoopMode = LoopMode.FOR_EACH
    source: Optional[str] = Field(None, description="Path or {{token}} of the collection")
    count: Optional[int] = None
    condition: Optional[ConditionConfig] = None
    max_iterations: Optional[int] = None
    item_variable: str = "item"
    index_variable: str = "index"


# ==================== Data ====================

ValueType = Literal["string", "number", "boolean", "object", "array"]


class VariableConfig(NodeConfigModel):
    """Variable node configuration."""
    variable_name: Optional[str] = None
    value: Any = None
    value_type: Optional[ValueType] = None


class TransformConfig(NodeConfigModel):
    """Transform node configuration."""
    transform_type: Optional[
        Literal["jsonPath", "expression", "map", "pick", "filter", "passthrough"]
    ] = None
    source: Optional[str] = None
    json_path: Optional[str] = None
    expression: Optional[str] = None
    mapping: Dict[str, Any] = Field(default_factory=dict)
    pick_fields: List[str] = Field(default_factory=list)
    filter: Optional[ConditionGroup] = None


class MergeConfig(NodeConfigModel):
    """Merge node configuration."""
    merge_type: Optional[Literal["object", "array", "concat"]] = None
    sources: List[str] = Field(default_factory=list)


# ==================== Text ====================

class TemplateConfig(NodeConfigModel):
    """Text template node configuration."""
    template: Optional[str] = None


class RegexConfig(NodeConfigModel):
    """Regex extraction node configuration."""
    pattern: Optional[str] = None
    flags: str = ""
    input: Optional[Any] = None
    mode: Literal["first", "all", "groups"] = "first"


class SplitJoinConfig(NodeConfigModel):
    """Split/join node configuration."""
    mode: Literal["split", "join"] = "split"
    delimiter: str = ","
    input: Optional[Any] = None
    trim: bool = True
    remove_empty: bool = False


# ==================== IO ====================

class InputConfig(NodeConfigModel):
    """Workflow input node configuration."""
    name: Optional[str] = None
    label: Optional[str] = None
    input_type: str = "text"
    required: bool = False
    default_value: Any = None


class OutputConfig(NodeConfigModel):
    """Workflow output node configuration."""
    output_type: str = Field("text", alias="type")
    title: Optional[str] = None
    show_timestamp: bool = False
    max_length: Optional[int] = None

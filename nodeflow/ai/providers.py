"""LLM provider profiles and chat-completion wire helpers.

Every supported provider is reached through its OpenAI-compatible
``/chat/completions`` endpoint, so a provider is described by data (base URL,
known models, credential lookup) rather than by a client class.
"""

import codecs
import json
from enum import Enum
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field

from nodeflow.config import Settings
from nodeflow.executor.context import TokenUsage
from nodeflow.executor.errors import NodeExecutionError

logger = structlog.get_logger()

SSE_DATA_PREFIX = "data:"
SSE_DONE = "[DONE]"


class ProviderType(str, Enum):
    """AI provider types."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    LOCAL = "local"


class ProviderProfile(BaseModel):
    """Connection profile of one chat-completion provider."""

    type: ProviderType
    base_url: str
    models: List[str] = Field(default_factory=list)
    requires_api_key: bool = True
    credential_keys: List[str] = Field(default_factory=list)
    settings_key: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @property
    def name(self) -> str:
        return self.type.value

    def matches(self, model: str) -> bool:
        """Case-insensitive substring match against the known model list."""
        lowered = model.lower()
        return any(known.lower() in lowered for known in self.models)

    def completions_url(self, base_url: Optional[str] = None) -> str:
        return f"{(base_url or self.base_url).rstrip('/')}/chat/completions"

    def build_headers(self, api_key: Optional[str]) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        return headers


def get_provider_profiles(settings: Settings) -> List[ProviderProfile]:
    """Provider profiles in match order; the last one is the fallback."""
    return [
        ProviderProfile(
            type=ProviderType.ANTHROPIC,
            base_url=settings.anthropic_base_url,
            models=["claude-3-5-sonnet", "claude-3-5-haiku", "claude-3-opus", "claude-sonnet", "claude-opus", "claude"],
            credential_keys=["anthropic"],
            settings_key="anthropic_api_key",
        ),
        ProviderProfile(
            type=ProviderType.LOCAL,
            base_url=settings.local_llm_base_url,
            models=["llama", "mistral", "mixtral", "qwen", "gemma", "phi3", "deepseek"],
            requires_api_key=False,
            credential_keys=["local"],
            settings_key="local_llm_api_key",
        ),
        ProviderProfile(
            type=ProviderType.OPENAI,
            base_url=settings.openai_base_url,
            models=["gpt-4o-mini", "gpt-4o", "gpt-4-turbo", "gpt-4", "gpt-3.5-turbo", "o1-mini", "o3-mini"],
            credential_keys=["openai"],
            settings_key="openai_api_key",
        ),
    ]


def resolve_provider(
    model: Optional[str],
    settings: Settings,
    provider: Optional[str] = None,
) -> ProviderProfile:
    """Select the provider profile for a model.

    An explicit ``provider`` wins; otherwise the first profile whose known
    models match is used, falling back to the OpenAI-compatible profile.
    """
    if not model or not model.strip():
        raise NodeExecutionError("A model must be configured", code="UNSUPPORTED_MODEL")

    profiles = get_provider_profiles(settings)
    if provider:
        for profile in profiles:
            if profile.name == provider.strip().lower():
                return profile
        raise NodeExecutionError(
            f"Unsupported provider: {provider}",
            code="UNSUPPORTED_MODEL",
            details={"provider": provider, "model": model},
        )

    for profile in profiles:
        if profile.matches(model):
            return profile
    return profiles[-1]


def resolve_api_key(
    profile: ProviderProfile,
    settings: Settings,
    credentials: Optional[Mapping[str, str]] = None,
    config_key: Optional[str] = None,
    inputs: Optional[Mapping[str, Any]] = None,
) -> Optional[str]:
    """Find an API key for ``profile``.

    Lookup order: injected credentials (provider name, then ``api_key``),
    the node config, ``inputs["api_key"]``, then settings.
    """
    credentials = credentials or {}
    for key in [*profile.credential_keys, "api_key"]:
        if credentials.get(key):
            return credentials[key]
    if config_key:
        return config_key
    if inputs and isinstance(inputs.get("api_key"), str) and inputs["api_key"]:
        return inputs["api_key"]
    if profile.settings_key:
        return getattr(settings, profile.settings_key, None) or None
    return None


class StreamChunk(BaseModel):
    """One increment of a streamed completion."""

    content: str = ""
    done: bool = False
    finish_reason: Optional[str] = None


class ChatCompletion(BaseModel):
    """Parsed non-streaming completion."""

    content: str = ""
    model: Optional[str] = None
    finish_reason: Optional[str] = None
    usage: Optional[TokenUsage] = None


def parse_usage(data: Any) -> Optional[TokenUsage]:
    if not isinstance(data, dict):
        return None
    prompt = int(data.get("prompt_tokens") or 0)
    completion = int(data.get("completion_tokens") or 0)
    return TokenUsage(
        prompt_tokens=prompt,
        completion_tokens=completion,
        total_tokens=int(data.get("total_tokens") or prompt + completion),
    )


def parse_completion(data: Mapping[str, Any]) -> ChatCompletion:
    """Extract content, finish reason and usage from a completion body."""
    choices = data.get("choices") or []
    choice = choices[0] if choices else {}
    message = choice.get("message") or {}
    return ChatCompletion(
        content=message.get("content") or "",
        model=data.get("model"),
        finish_reason=choice.get("finish_reason"),
        usage=parse_usage(data.get("usage")),
    )


def parse_stream_event(payload: str) -> Optional[StreamChunk]:
    """Turn one SSE ``data`` payload into a chunk; None when malformed."""
    try:
        event = json.loads(payload)
    except ValueError:
        logger.debug("Skipping malformed stream event", payload=payload[:100])
        return None
    if not isinstance(event, dict):
        return None
    choices = event.get("choices") or []
    if not choices:
        return None
    choice = choices[0]
    delta = choice.get("delta") or {}
    return StreamChunk(
        content=delta.get("content") or "",
        finish_reason=choice.get("finish_reason"),
    )


async def decode_sse_data(chunks: AsyncIterator[bytes]) -> AsyncIterator[str]:
    """Yield the ``data:`` payloads of a server-sent-event byte stream.

    Lines may be split across network chunks; a trailing unterminated line is
    flushed when the stream ends.
    """
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    buffer = ""
    async for chunk in chunks:
        buffer += decoder.decode(chunk) if isinstance(chunk, bytes) else chunk
        *lines, buffer = buffer.split("\n")
        for line in lines:
            line = line.strip()
            if line.startswith(SSE_DATA_PREFIX):
                yield line[len(SSE_DATA_PREFIX):].strip()

    buffer += decoder.decode(b"", final=True)
    line = buffer.strip()
    if line.startswith(SSE_DATA_PREFIX):
        yield line[len(SSE_DATA_PREFIX):].strip()

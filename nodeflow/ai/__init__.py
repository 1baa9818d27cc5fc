"""AI provider support for the LLM node.

Providers (OpenAI, Anthropic, local OpenAI-compatible servers) are reached
through their chat-completion HTTP endpoints.
"""

from .providers import (
    ChatCompletion,
    ProviderProfile,
    ProviderType,
    StreamChunk,
    decode_sse_data,
    get_provider_profiles,
    parse_completion,
    parse_stream_event,
    resolve_api_key,
    resolve_provider,
)

__all__ = [
    "ChatCompletion",
    "ProviderProfile",
    "ProviderType",
    "StreamChunk",
    "decode_sse_data",
    "get_provider_profiles",
    "parse_completion",
    "parse_stream_event",
    "resolve_api_key",
    "resolve_provider",
]

"""LLM chat node."""

from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

import aiohttp

from nodeflow.ai.providers import (
    ChatCompletion,
    ProviderProfile,
    StreamChunk,
    decode_sse_data,
    parse_completion,
    parse_stream_event,
    resolve_api_key,
    resolve_provider,
    SSE_DONE,
)
from nodeflow.executor.context import AbortSignal, NodeContext, NodeResult
from nodeflow.executor.errors import (
    ExecutionCancelledError,
    ExecutionTimeoutError,
    MissingCredentialsError,
    NodeExecutionError,
)
from nodeflow.executor.retry import with_abort, with_retry, with_timeout
from nodeflow.metrics import metrics
from .base import NodeExecutor, NodeRun, NodeType
from .expression import render_template, safe_json_parse
from .schemas import ChatMessage, LLMConfig

MAX_TOKENS_LIMIT = 128000


class LLMRequest:
    """A fully prepared chat-completion call."""

    def __init__(self, profile: ProviderProfile, url: str, headers: Dict[str, str], payload: Dict[str, Any]):
        self.profile = profile
        self.url = url
        self.headers = headers
        self.payload = payload


class LLMExecutor(NodeExecutor[LLMConfig]):
    """Chat completion against OpenAI, Anthropic or a local model server."""

    node_type = NodeType.LLM.value
    aliases = ("llm-chat", "ai-chat")
    config_model = LLMConfig
    failure_code = "LLM_CALL_FAILED"

    def build_messages(self, context: NodeContext, config: LLMConfig) -> List[Dict[str, str]]:
        """System prompt, history, then user prompt, each rendered against the scope."""
        scope = context.scope
        messages = []
        if config.system_prompt:
            messages.append({"role": "system", "content": render_template(config.system_prompt, scope)})

        history = list(config.messages)
        if not history and isinstance(context.inputs.get("messages"), list):
            history = [
                ChatMessage.model_validate(item) for item in context.inputs["messages"]
                if isinstance(item, dict)
            ]
        for message in history:
            messages.append({"role": message.role, "content": render_template(message.content, scope)})

        if config.user_prompt:
            messages.append({"role": "user", "content": render_template(config.user_prompt, scope)})
        return messages

    def prepare_request(self, context: NodeContext, config: LLMConfig, stream: bool) -> LLMRequest:
        """Resolve provider and API key and build the request payload.

        Raises before any network traffic when the model is unsupported or a
        required key is missing.
        """
        profile = resolve_provider(config.model, self.settings, config.provider)
        api_key = resolve_api_key(
            profile,
            self.settings,
            credentials=context.credentials,
            config_key=config.api_key,
            inputs=context.inputs,
        )
        if profile.requires_api_key and not api_key:
            raise MissingCredentialsError(
                f"No API key configured for provider '{profile.name}'",
                credential_type=profile.name,
            )

        payload: Dict[str, Any] = {
            "model": config.model,
            "messages": self.build_messages(context, config),
            "stream": stream,
        }
        optional = {
            "temperature": config.temperature,
            "max_tokens": config.max_tokens,
            "top_p": config.top_p,
            "frequency_penalty": config.frequency_penalty,
            "presence_penalty": config.presence_penalty,
            "stop": config.stop,
        }
        payload.update({key: value for key, value in optional.items() if value is not None})
        if config.response_format == "json":
            payload["response_format"] = {"type": "json_object"}

        return LLMRequest(
            profile=profile,
            url=profile.completions_url(config.base_url),
            headers=profile.build_headers(api_key),
            payload=payload,
        )

    async def _complete(self, request: LLMRequest) -> ChatCompletion:
        async with aiohttp.ClientSession() as session:
            async with session.post(request.url, json=request.payload, headers=request.headers) as response:
                if response.status >= 400:
                    body = await response.text(errors="replace")
                    raise NodeExecutionError(
                        f"LLM provider returned HTTP {response.status}",
                        code="LLM_CALL_FAILED",
                        retryable=True,
                        details={"status": response.status, "body": body},
                    )
                data = await response.json(content_type=None)
        return parse_completion(data or {})

    async def _stream_chunks(
        self,
        request: LLMRequest,
        signal: Optional[AbortSignal] = None,
    ) -> AsyncIterator[StreamChunk]:
        async with aiohttp.ClientSession() as session:
            async with session.post(request.url, json=request.payload, headers=request.headers) as response:
                if response.status >= 400:
                    body = await response.text(errors="replace")
                    raise NodeExecutionError(
                        f"LLM provider returned HTTP {response.status}",
                        code="LLM_CALL_FAILED",
                        retryable=True,
                        details={"status": response.status, "body": body},
                    )
                finish_reason = None
                async for payload in decode_sse_data(response.content.iter_any()):
                    if signal is not None and signal.aborted:
                        raise ExecutionCancelledError(signal.reason or "Execution was cancelled")
                    if payload == SSE_DONE:
                        break
                    chunk = parse_stream_event(payload)
                    if chunk is None:
                        continue
                    finish_reason = chunk.finish_reason or finish_reason
                    if chunk.content:
                        yield chunk
                yield StreamChunk(content="", done=True, finish_reason=finish_reason)

    async def stream(self, context: NodeContext) -> AsyncIterator[StreamChunk]:
        """Stream the completion as chunks; the last chunk has ``done=True``.

        Configuration and credential problems raise :class:`NodeExecutionError`
        before the request is sent.
        """
        config = self.parse_config(context.node_config)
        request = self.prepare_request(context, config, stream=True)
        async for chunk in self._stream_chunks(request, context.abort_signal):
            yield chunk

    async def _drain(self, request: LLMRequest, signal: Optional[AbortSignal]) -> ChatCompletion:
        parts = []
        finish_reason = None
        async for chunk in self._stream_chunks(request, signal):
            parts.append(chunk.content)
            if chunk.done:
                finish_reason = chunk.finish_reason
        return ChatCompletion(
            content="".join(parts),
            model=request.payload["model"],
            finish_reason=finish_reason,
        )

    def _call_policy(self, config: LLMConfig) -> Tuple[int, int, int]:
        retries = config.retry_count if config.retry_count is not None else self.settings.llm_retry_count
        retry_delay = config.retry_delay if config.retry_delay is not None else self.settings.llm_retry_delay_ms
        timeout = config.timeout if config.timeout is not None else self.settings.llm_timeout_ms
        return retries, retry_delay, timeout

    async def process(self, context: NodeContext, config: LLMConfig, run: NodeRun) -> NodeResult:
        request = self.prepare_request(context, config, stream=config.stream)
        retries, retry_delay, timeout = self._call_policy(config)
        signal = context.abort_signal

        run.log("info", f"Calling {request.profile.name} model {config.model}", {
            "messages": len(request.payload["messages"]),
            "stream": config.stream,
        })

        def call():
            if config.stream:
                return self._drain(request, signal)
            return self._complete(request)

        def on_retry(error: Exception, attempt: int) -> None:
            run.log("warn", f"LLM call failed, retrying ({attempt}/{retries})", {"error": str(error)})
            metrics.increment("llm_retries_total", tags={"provider": request.profile.name})

        try:
            completion = await with_retry(
                lambda: with_timeout(
                    lambda: with_abort(call, signal),
                    timeout,
                    f"LLM call timed out after {timeout}ms",
                ),
                retries=retries,
                delay=retry_delay,
                on_retry=on_retry,
            )
        except NodeExecutionError:
            raise
        except ExecutionCancelledError as e:
            raise NodeExecutionError(e.message, code="LLM_CALL_FAILED", retryable=False)
        except ExecutionTimeoutError as e:
            raise NodeExecutionError(e.message, code="LLM_CALL_FAILED", retryable=True, details=e.details)
        except (aiohttp.ClientError, OSError, ValueError) as e:
            raise NodeExecutionError(
                f"LLM call failed: {e}",
                code="LLM_CALL_FAILED",
                retryable=True,
                details={"error_type": type(e).__name__},
            )

        outputs = {
            "content": completion.content,
            "output": completion.content,
            "text": completion.content,
            "model": completion.model or config.model,
            "provider": request.profile.name,
            "finish_reason": completion.finish_reason,
            "usage": completion.usage.model_dump() if completion.usage else None,
        }
        if config.response_format == "json":
            outputs["json"] = safe_json_parse(completion.content)

        run.log("info", "LLM call completed", {
            "finish_reason": completion.finish_reason,
            "length": len(completion.content),
        })
        return run.succeed(outputs, usage=completion.usage)

    def check_config(self, config: LLMConfig) -> List[str]:
        errors = []
        if not config.model or not config.model.strip():
            errors.append("Model is required")
        if config.temperature is not None and not 0 <= config.temperature <= 2:
            errors.append("Temperature must be between 0 and 2")
        if config.max_tokens is not None and not 1 <= config.max_tokens <= MAX_TOKENS_LIMIT:
            errors.append(f"Max tokens must be between 1 and {MAX_TOKENS_LIMIT}")
        if config.timeout is not None and config.timeout < 1000:
            errors.append("Timeout must be at least 1000ms")
        if config.retry_count is not None and config.retry_count < 0:
            errors.append("Retry count cannot be negative")
        return errors

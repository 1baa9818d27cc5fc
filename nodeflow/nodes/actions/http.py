"""HTTP request node."""

import base64
import json
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import urlencode, urlparse

import aiohttp

from nodeflow.executor.context import NodeContext, NodeResult, create_node_error
from nodeflow.executor.errors import (
    ExecutionCancelledError,
    ExecutionTimeoutError,
    NodeExecutionError,
)
from nodeflow.executor.retry import with_abort, with_timeout
from nodeflow.nodes.base import NodeExecutor, NodeRun, NodeType
from nodeflow.nodes.expression import render_object, render_template, safe_json_parse, stringify
from nodeflow.nodes.schemas import HTTPConfig

VALID_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]

BODY_CONTENT_TYPES = {
    "json": "application/json",
    "form": "application/x-www-form-urlencoded",
    "raw": "text/plain",
}


class HTTPResponse:
    """Buffered response of one request."""

    def __init__(self, status: int, reason: Optional[str], headers: Dict[str, str], text: str, url: str):
        self.status = status
        self.reason = reason
        self.headers = headers
        self.text = text
        self.url = url

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def content_type(self) -> str:
        for name, value in self.headers.items():
            if name.lower() == "content-type":
                return value.lower()
        return ""


def append_query(url: str, params: Mapping[str, Any]) -> str:
    """Append URL-encoded ``params`` to ``url``."""
    if not params:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{urlencode(params)}"


def parse_response_body(text: str, content_type: str) -> Any:
    """Decode a response body according to its content type."""
    if "json" in content_type:
        return safe_json_parse(text, fallback=text)
    if content_type.startswith("text/"):
        return text
    return safe_json_parse(text, fallback=text)


class HTTPExecutor(NodeExecutor[HTTPConfig]):
    """Node for making HTTP requests."""

    node_type = NodeType.HTTP.value
    aliases = ("http-request",)
    config_model = HTTPConfig
    failure_code = "HTTP_REQUEST_FAILED"

    def build_url(self, config: HTTPConfig, scope: Mapping[str, Any]) -> str:
        url = render_template(config.url, scope)
        params = {
            key: stringify(render_object(value, scope))
            for key, value in config.query_params.items()
            if value is not None
        }
        return append_query(url, params)

    def build_headers(self, config: HTTPConfig, scope: Mapping[str, Any]) -> Dict[str, str]:
        """Body-type default, then custom headers, then auth."""
        headers = {}
        content_type = BODY_CONTENT_TYPES.get(config.body_type)
        if content_type:
            headers["Content-Type"] = content_type

        for name, value in config.headers.items():
            if value is None:
                continue
            if name.lower() == "content-type":
                headers.pop("Content-Type", None)
            headers[name] = stringify(render_object(value, scope))

        auth = config.auth_config
        if config.auth_type == "basic":
            username = render_template(auth.username or "", scope)
            password = render_template(auth.password or "", scope)
            credentials = base64.b64encode(f"{username}:{password}".encode()).decode()
            headers["Authorization"] = f"Basic {credentials}"
        elif config.auth_type == "bearer" and auth.token:
            headers["Authorization"] = f"Bearer {render_template(auth.token, scope)}"
        elif config.auth_type == "apiKey" and auth.api_key and auth.api_key_in == "header":
            headers[auth.api_key_name] = render_template(auth.api_key, scope)
        return headers

    def build_body(self, config: HTTPConfig, scope: Mapping[str, Any]) -> Optional[str]:
        body = config.body
        if config.body_type == "none" or body is None:
            return None

        if config.body_type == "json":
            if isinstance(body, str):
                return render_template(body, scope)
            return json.dumps(render_object(body, scope), ensure_ascii=False, default=str)

        if config.body_type == "form":
            if isinstance(body, Mapping):
                return urlencode({
                    key: stringify(render_object(value, scope))
                    for key, value in body.items()
                    if value is not None
                })
            return render_template(str(body), scope)

        if isinstance(body, str):
            return render_template(body, scope)
        return stringify(body)

    async def _send(
        self,
        method: str,
        url: str,
        headers: Dict[str, str],
        body: Optional[str],
        config: HTTPConfig,
        timeout_ms: int,
    ) -> HTTPResponse:
        timeout = aiohttp.ClientTimeout(total=timeout_ms / 1000.0)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.request(
                method,
                url,
                headers=headers,
                data=body,
                allow_redirects=config.follow_redirects,
            ) as response:
                text = await response.text(errors="replace")
                return HTTPResponse(
                    status=response.status,
                    reason=response.reason,
                    headers=dict(response.headers),
                    text=text,
                    url=url,
                )

    async def process(self, context: NodeContext, config: HTTPConfig, run: NodeRun) -> NodeResult:
        if not config.url:
            raise NodeExecutionError("URL is required", code="INVALID_CONFIG")
        method = (config.method or "").upper()
        if method not in VALID_METHODS:
            raise NodeExecutionError(f"Invalid HTTP method: {config.method}", code="INVALID_CONFIG")

        scope = context.scope
        url = self.build_url(config, scope)
        headers = self.build_headers(config, scope)
        auth = config.auth_config
        if config.auth_type == "apiKey" and auth.api_key and auth.api_key_in == "query":
            url = append_query(url, {auth.api_key_name: render_template(auth.api_key, scope)})

        body = self.build_body(config, scope)
        if body is not None and method in ("GET", "HEAD"):
            run.log("warn", f"Ignoring request body for {method} request")
            body = None

        timeout_ms = config.timeout or self.settings.http_timeout_ms
        run.log("info", f"{method} {url}")

        try:
            response = await with_timeout(
                lambda: with_abort(
                    lambda: self._send(method, url, headers, body, config, timeout_ms),
                    context.abort_signal,
                ),
                timeout_ms,
                f"Request timed out after {timeout_ms}ms",
            )
        except ExecutionCancelledError as e:
            raise NodeExecutionError(e.message, code="HTTP_REQUEST_FAILED", retryable=False)
        except ExecutionTimeoutError as e:
            raise NodeExecutionError(e.message, code="HTTP_REQUEST_FAILED", retryable=True, details=e.details)
        except (aiohttp.ClientError, OSError) as e:
            raise NodeExecutionError(
                f"HTTP request failed: {e}",
                code="HTTP_REQUEST_FAILED",
                retryable=True,
                details={"url": url, "method": method, "error_type": type(e).__name__},
            )

        outputs = {
            "status": response.status,
            "status_text": response.reason,
            "headers": response.headers,
            "data": parse_response_body(response.text, response.content_type),
            "ok": response.ok,
            "url": response.url,
            "method": method,
        }
        run.log("info", f"Response {response.status}", {"ok": response.ok})

        if config.validate_status and not response.ok:
            return run.fail(
                create_node_error(
                    "HTTP_ERROR",
                    f"HTTP {response.status}: {response.reason or 'request failed'}",
                    {"status": response.status, "body": response.text},
                    retryable=response.status >= 500,
                ),
                outputs=outputs,
            )
        return run.succeed(outputs)

    def check_config(self, config: HTTPConfig) -> List[str]:
        errors = []
        if not config.url:
            errors.append("URL is required")
        elif "{{" not in config.url:
            parsed = urlparse(config.url)
            if parsed.scheme not in ("http", "https") or not parsed.netloc:
                errors.append(f"Invalid URL: {config.url}")

        if not config.method:
            errors.append("HTTP method is required")
        elif config.method.upper() not in VALID_METHODS:
            errors.append(f"Invalid HTTP method: {config.method}")

        if config.timeout is not None and config.timeout < 1000:
            errors.append("Timeout must be at least 1000ms")
        return errors

"""Test execution contracts and the base executor."""

from typing import List

import pytest
from pydantic import ValidationError

from nodeflow.executor.context import (
    LogLevel,
    NodeContext,
    NodeResult,
    create_log,
    create_node_error,
)
from nodeflow.executor.errors import DataValidationError, NodeExecutionError
from nodeflow.metrics import metrics
from nodeflow.nodes.base import NodeExecutor, NodeRun
from nodeflow.nodes.schemas import NodeConfigModel


class EchoConfig(NodeConfigModel):
    """Config for the test executor."""
    message: str
    fail_with: str = ""
    limit: int = 10


class EchoExecutor(NodeExecutor[EchoConfig]):
    """Executor whose behaviour is driven by its config."""

    node_type = "echo"
    config_model = EchoConfig
    failure_code = "ECHO_FAILED"

    async def process(self, context, config, run):
        if config.fail_with == "node":
            raise NodeExecutionError("explicit", code="CUSTOM", retryable=True, details={"x": 1})
        if config.fail_with == "execution":
            raise DataValidationError("bad data", field="message")
        if config.fail_with == "crash":
            raise KeyError("missing")
        run.log("info", "echoing", {"message": config.message})
        return run.succeed({"message": config.message})

    def check_config(self, config: EchoConfig) -> List[str]:
        if config.limit > 100:
            return ["Limit must be at most 100"]
        return []


@pytest.fixture
def echo(test_settings):
    """Echo executor instance."""
    return EchoExecutor(test_settings)


@pytest.mark.unit
class TestContracts:
    """Test contract models."""

    def test_scope_overlays_inputs_on_variables(self, make_context):
        context = make_context("echo", variables={"a": 1, "b": 1}, inputs={"b": 2})
        assert context.scope == {"a": 1, "b": 2}

    def test_success_cannot_carry_error(self):
        with pytest.raises(ValidationError):
            NodeResult(success=True, error=create_node_error("X", "x"))

    def test_failure_requires_error(self):
        with pytest.raises(ValidationError):
            NodeResult(success=False)

    def test_create_log(self):
        entry = create_log("warn", "careful", {"k": "v"})
        assert entry.level == LogLevel.WARN
        assert entry.message == "careful"
        assert entry.data == {"k": "v"}
        assert entry.timestamp

    def test_create_node_error_defaults(self):
        error = create_node_error("CODE", "message")
        assert error.retryable is False
        assert error.details is None

    def test_context_defaults(self):
        context = NodeContext(node_id="n1", node_type="echo")
        assert context.node_config == {}
        assert context.credentials == {}
        assert context.abort_signal is None


@pytest.mark.unit
class TestNodeExecutor:
    """Test the shared execute() behaviour."""

    @pytest.mark.asyncio
    async def test_success_result(self, echo, make_context):
        result = await echo.execute(make_context("echo", {"message": "hi"}))

        assert result.success is True
        assert result.outputs == {"message": "hi"}
        assert result.error is None
        assert result.duration is not None and result.duration >= 0
        assert [log.message for log in result.logs] == ["echoing"]

    @pytest.mark.asyncio
    async def test_invalid_config(self, echo, make_context):
        result = await echo.execute(make_context("echo", {"limit": "many"}))

        assert result.success is False
        assert result.error.code == "INVALID_CONFIG"
        assert any(error.startswith("message") for error in result.error.details["errors"])

    @pytest.mark.asyncio
    async def test_node_execution_error_keeps_code(self, echo, make_context):
        result = await echo.execute(make_context("echo", {"message": "x", "failWith": "node"}))

        assert result.error.code == "CUSTOM"
        assert result.error.retryable is True
        assert result.error.details == {"x": 1}
        assert result.logs[-1].level == LogLevel.ERROR

    @pytest.mark.asyncio
    async def test_execution_error_uses_failure_code(self, echo, make_context):
        result = await echo.execute(make_context("echo", {"message": "x", "failWith": "execution"}))

        assert result.error.code == "ECHO_FAILED"
        assert result.error.message == "bad data"
        assert result.error.details["field"] == "message"

    @pytest.mark.asyncio
    async def test_unexpected_exception_never_escapes(self, echo, make_context):
        result = await echo.execute(make_context("echo", {"message": "x", "failWith": "crash"}))

        assert result.success is False
        assert result.error.code == "ECHO_FAILED"
        assert result.error.details == {"error_type": "KeyError"}

    @pytest.mark.asyncio
    async def test_records_metrics(self, echo, make_context):
        await echo.execute(make_context("echo", {"message": "x"}))
        await echo.execute(make_context("echo", {"message": "x", "failWith": "crash"}))

        assert metrics.get_counter("node_executions_total", {"node_type": "echo", "status": "success"}) == 1
        assert metrics.get_counter("node_executions_total", {"node_type": "echo", "status": "failure"}) == 1
        assert len(metrics.get_histogram("node_execution_duration_ms", {"node_type": "echo"})) == 2

    @pytest.mark.asyncio
    async def test_metrics_can_be_disabled(self, test_settings, make_context):
        executor = EchoExecutor(test_settings.model_copy(update={"metrics_enabled": False}))
        await executor.execute(make_context("echo", {"message": "x"}))

        assert metrics.get_counter("node_executions_total", {"node_type": "echo", "status": "success"}) == 0

    def test_validate(self, echo):
        assert echo.validate({"message": "x"}).valid is True

        result = echo.validate({"message": "x", "limit": 500})
        assert result.valid is False
        assert result.errors == ["Limit must be at most 100"]

        assert echo.validate({}).valid is False

    def test_config_accepts_both_key_styles(self, echo):
        assert echo.parse_config({"message": "x", "fail_with": "node"}).fail_with == "node"
        assert echo.parse_config({"message": "x", "failWith": "node"}).fail_with == "node"


@pytest.mark.unit
def test_node_run_fail_converts_exceptions(make_context):
    """Test that NodeRun.fail accepts a NodeExecutionError."""
    run = NodeRun(make_context("echo"))
    result = run.fail(NodeExecutionError("nope", code="X", retryable=True))

    assert result.error.code == "X"
    assert result.error.retryable is True
    assert result.logs[0].data == {"code": "X"}

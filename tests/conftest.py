"""Pytest configuration and fixtures."""

import pytest

from nodeflow.catalog import NodeCatalog
from nodeflow.config import Settings
from nodeflow.executor.context import AbortSignal, NodeContext
from nodeflow.metrics import metrics
from nodeflow.nodes.registry import create_default_registry


@pytest.fixture
def test_settings():
    """Settings isolated from the host environment and any .env file."""
    return Settings(
        _env_file=None,
        environment="testing",
        debug=False,
        log_level="INFO",
        node_sdk_version="1.0.0",
        openai_base_url="https://api.openai.com/v1",
        anthropic_base_url="https://api.anthropic.com/v1",
        local_llm_base_url="http://localhost:11434/v1",
        openai_api_key=None,
        anthropic_api_key=None,
        local_llm_api_key=None,
        llm_retry_count=0,
        llm_retry_delay_ms=0,
        llm_timeout_ms=60000,
        http_timeout_ms=30000,
        log_preview_length=100,
        loop_max_iterations=100,
        loop_iteration_limit=1000,
        metrics_enabled=True,
    )


@pytest.fixture(autouse=True)
def reset_metrics():
    """Start every test with empty metrics."""
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def registry(test_settings):
    """Executor registry with every built-in executor."""
    return create_default_registry(test_settings)


@pytest.fixture
def catalog(test_settings):
    """Empty node catalog (built-ins only)."""
    return NodeCatalog(test_settings)


# Test data factories
class ContextFactory:
    """Factory for node execution contexts."""

    @staticmethod
    def build(node_type: str, config=None, **overrides) -> NodeContext:
        data = {
            "node_id": f"{node_type}-1",
            "node_type": node_type,
            "node_config": config or {},
            "variables": {},
            "inputs": {},
            "credentials": {},
        }
        data.update(overrides)
        return NodeContext(**data)


@pytest.fixture
def make_context():
    """Build a ``NodeContext`` for a node type and config."""
    return ContextFactory.build


@pytest.fixture
def abort_signal():
    """Fresh abort signal."""
    return AbortSignal()

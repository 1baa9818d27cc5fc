"""Test workflow input and output nodes."""

import pytest

from nodeflow.nodes.io import InputExecutor, OutputExecutor


@pytest.fixture
def input_node(test_settings):
    return InputExecutor(test_settings)


@pytest.fixture
def output_node(test_settings):
    return OutputExecutor(test_settings)


@pytest.mark.unit
class TestInputExecutor:
    """Test the input node."""

    @pytest.mark.asyncio
    async def test_value_from_inputs(self, input_node, make_context):
        context = make_context("input", {"name": "query"}, inputs={"query": "weather"},
                               variables={"query": "ignored"})

        result = await input_node.execute(context)

        assert result.outputs == {"value": "weather", "output": "weather", "query": "weather"}

    @pytest.mark.asyncio
    async def test_value_from_variables(self, input_node, make_context):
        result = await input_node.execute(make_context("input", {"name": "city"}, variables={"city": "Oslo"}))
        assert result.outputs["value"] == "Oslo"

    @pytest.mark.asyncio
    async def test_default_value(self, input_node, make_context):
        result = await input_node.execute(make_context("input", {"name": "limit", "defaultValue": 10}))
        assert result.outputs["value"] == 10

    @pytest.mark.asyncio
    async def test_required_input_missing(self, input_node, make_context):
        result = await input_node.execute(make_context(
            "input", {"name": "email", "label": "Email address", "required": True}
        ))

        assert result.success is False
        assert result.error.code == "INPUT_REQUIRED"
        assert "Email address" in result.error.message

    @pytest.mark.asyncio
    async def test_optional_input_missing(self, input_node, make_context):
        result = await input_node.execute(make_context("input", {"name": "note"}))

        assert result.success is True
        assert result.outputs["value"] is None

    @pytest.mark.asyncio
    async def test_name_required(self, input_node, make_context):
        result = await input_node.execute(make_context("input", {}))
        assert result.error.code == "INVALID_CONFIG"

    def test_validate(self, input_node):
        assert input_node.validate({"name": "q"}).valid is True
        assert input_node.validate({}).errors == ["Input name is required"]


@pytest.mark.unit
class TestOutputExecutor:
    """Test the output node."""

    @pytest.mark.asyncio
    async def test_passes_value_through(self, output_node, make_context):
        context = make_context("output", {"type": "json", "title": "Result"}, inputs={"output": {"a": 1}})

        result = await output_node.execute(context)

        assert result.outputs["output"] == {"a": 1}
        assert result.outputs["display"] == {"a": 1}
        assert result.outputs["type"] == "json"
        assert result.outputs["title"] == "Result"
        assert "timestamp" not in result.outputs

    @pytest.mark.asyncio
    async def test_display_truncation(self, output_node, make_context):
        context = make_context("output", {"maxLength": 5}, inputs={"value": "abcdefgh"})

        result = await output_node.execute(context)

        assert result.outputs["output"] == "abcdefgh"
        assert result.outputs["display"] == "abcde"
        assert result.outputs["type"] == "text"

    @pytest.mark.asyncio
    async def test_timestamp(self, output_node, make_context):
        context = make_context("output", {"showTimestamp": True}, inputs={"anything": 1})

        result = await output_node.execute(context)

        assert result.outputs["output"] == 1
        assert result.outputs["timestamp"]

    @pytest.mark.asyncio
    async def test_no_inputs(self, output_node, make_context):
        result = await output_node.execute(make_context("output", {}))

        assert result.success is True
        assert result.outputs["output"] is None

"""Tests for tools/list and tools/call handlers."""

import asyncio

from mcp_schema_server.plugins.registry import ToolRegistry
from mcp_schema_server.protocol.tools import ToolsCallResult, ToolsHandler, ToolsListResult


def make_handler(plugin) -> ToolsHandler:
    registry = ToolRegistry()
    registry.register_plugin(plugin)
    return ToolsHandler(registry)


class TestToolsHandler:
    """Tests for ToolsHandler class."""

    def test_handles_tools_list(self, echo_plugin):
        """Should return list of all registered tools."""
        handler = make_handler(echo_plugin)

        result = handler.handle_list()

        assert isinstance(result, ToolsListResult)
        assert [t["name"] for t in result.tools] == ["echo", "explode"]

    def test_handles_tools_call_success(self, echo_plugin):
        """Should execute tool and return result."""
        handler = make_handler(echo_plugin)

        result = asyncio.run(handler.handle_call("echo", {"message": "Hello"}))

        assert isinstance(result, ToolsCallResult)
        assert result.is_error is False
        assert result.content[0]["text"] == "Hello"

    def test_handles_unknown_tool(self, echo_plugin):
        """Should return error for unknown tool."""
        handler = make_handler(echo_plugin)

        result = asyncio.run(handler.handle_call("nonexistent", {}))

        assert result.is_error is True
        assert result.content[0]["text"] == "Tool not found: nonexistent"

    def test_handles_invalid_arguments(self, echo_plugin):
        """Should report schema violations as an error result."""
        handler = make_handler(echo_plugin)

        result = asyncio.run(handler.handle_call("echo", {"message": 5}))

        assert result.is_error is True
        assert result.content[0]["text"].startswith("Invalid arguments: message:")

    def test_handles_tool_execution_error(self, echo_plugin):
        """Should return error when tool crashes."""
        handler = make_handler(echo_plugin)

        result = asyncio.run(handler.handle_call("explode", {}))

        assert result.is_error is True
        assert result.content[0]["text"] == "Error: boom"


class TestToolsListResult:
    """Tests for ToolsListResult dataclass."""

    def test_converts_to_dict(self):
        """Should convert to MCP result format."""
        tools = [{"name": "test", "description": "Test", "inputSchema": {"type": "object"}}]

        d = ToolsListResult(tools=tools).to_dict()

        assert d == {"tools": tools}


class TestToolsCallResult:
    """Tests for ToolsCallResult dataclass."""

    def test_converts_success_to_dict(self):
        """Should convert success result to MCP format."""
        result = ToolsCallResult(content=[{"type": "text", "text": "Success"}])

        d = result.to_dict()

        assert d["isError"] is False
        assert len(d["content"]) == 1

    def test_builds_error_result(self):
        """Should build an error result with one text item."""
        d = ToolsCallResult.error("Failed").to_dict()

        assert d == {"content": [{"type": "text", "text": "Failed"}], "isError": True}

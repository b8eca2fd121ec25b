"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from mcp_schema_server.plugins.base import PluginBase, ToolDefinition, ToolResult
from mcp_schema_server.protocol.jsonrpc import JsonRpcNotification, JsonRpcRequest
from mcp_schema_server.server import MCPServer


class EchoPlugin(PluginBase):
    """Plugin with a single echo tool and a tool that always fails."""

    def __init__(self) -> None:
        self.cleaned_up = False

    @property
    def name(self) -> str:
        return "echo"

    @property
    def version(self) -> str:
        return "1.0.0"

    def get_tools(self) -> list[ToolDefinition]:
        return [
            ToolDefinition(
                name="echo",
                description="Echoes input",
                input_schema={
                    "type": "object",
                    "properties": {"message": {"type": "string"}},
                    "required": ["message"],
                },
            ),
            ToolDefinition(
                name="explode",
                description="Always fails",
                input_schema={"type": "object", "properties": {}},
            ),
        ]

    async def execute(self, tool_name: str, arguments: dict[str, Any]) -> ToolResult:
        if tool_name == "echo":
            return ToolResult.text(arguments["message"])
        if tool_name == "explode":
            raise RuntimeError("boom")
        return ToolResult.text("Unknown tool", is_error=True)

    async def cleanup(self) -> None:
        self.cleaned_up = True


@pytest.fixture
def echo_plugin() -> EchoPlugin:
    """Create an echo plugin."""
    return EchoPlugin()


@pytest.fixture
def server(echo_plugin: EchoPlugin) -> MCPServer:
    """Create a server with the echo plugin registered."""
    server = MCPServer()
    server.register_plugin(echo_plugin)
    return server


@pytest.fixture
def ready_server(server: MCPServer) -> MCPServer:
    """Create a server that completed the initialize handshake."""

    async def handshake() -> None:
        await server.process_request(
            JsonRpcRequest(
                id=1,
                method="initialize",
                params={
                    "protocolVersion": "2024-11-05",
                    "clientInfo": {"name": "test", "version": "1.0"},
                    "capabilities": {},
                },
            )
        )
        await server.handle_notification(JsonRpcNotification(method="notifications/initialized"))

    asyncio.run(handshake())
    return server

"""Tool registry - validates tool calls and routes them to the owning plugin."""

from __future__ import annotations

import logging
from typing import Any

from jsonschema import Draft202012Validator

from mcp_schema_server.plugins.base import PluginBase, ToolResult

logger = logging.getLogger(__name__)


class ToolNotFoundError(Exception):
    """Raised when a tool is not found."""

    pass


class ToolArgumentsError(Exception):
    """Raised when tool arguments do not match the tool's input schema."""

    pass


class ToolExecutionError(Exception):
    """Raised when a tool fails to execute."""

    pass


class ToolRegistry:
    """Routes tool calls to registered plugins.

    Maintains a registry of plugins and their tools. Arguments are validated
    once here against the tool's JSON Schema, so plugins only ever see
    well-formed input.
    """

    def __init__(self) -> None:
        """Initialize the registry."""
        self._plugins: list[PluginBase] = []
        self._tool_map: dict[str, PluginBase] = {}
        self._validators: dict[str, Draft202012Validator] = {}

    def register_plugin(self, plugin: PluginBase) -> None:
        """Register a plugin and index its tools.

        Args:
            plugin: Plugin instance to register.
        """
        self._plugins.append(plugin)

        for tool in plugin.get_tools():
            Draft202012Validator.check_schema(tool.input_schema)
            self._tool_map[tool.name] = plugin
            self._validators[tool.name] = Draft202012Validator(tool.input_schema)

        logger.debug("Registered plugin %s %s", plugin.name, plugin.version)

    def list_tools(self) -> list[dict[str, Any]]:
        """List all available tools in MCP format.

        Returns:
            List of tool definitions in MCP format.
        """
        tools = []
        for plugin in self._plugins:
            for tool in plugin.get_tools():
                tools.append(tool.to_dict())
        return tools

    def validate_arguments(self, tool_name: str, arguments: dict[str, Any]) -> None:
        """Validate arguments against the tool's input schema.

        Args:
            tool_name: Name of the tool.
            arguments: Arguments to validate.

        Raises:
            ToolNotFoundError: If the tool is not registered.
            ToolArgumentsError: If the arguments are invalid.
        """
        validator = self._validators.get(tool_name)
        if validator is None:
            raise ToolNotFoundError(f"Tool not found: {tool_name}")

        errors = sorted(validator.iter_errors(arguments), key=lambda e: list(e.path))
        if errors:
            messages = []
            for error in errors:
                location = "/".join(str(p) for p in error.path) or "arguments"
                messages.append(f"{location}: {error.message}")
            raise ToolArgumentsError("; ".join(messages))

    async def call_tool(self, tool_name: str, arguments: dict[str, Any]) -> ToolResult:
        """Call a tool by name.

        Args:
            tool_name: Name of the tool to call.
            arguments: Arguments to pass to the tool.

        Returns:
            ToolResult from the tool execution.

        Raises:
            ToolNotFoundError: If the tool is not registered.
            ToolArgumentsError: If the arguments are invalid.
            ToolExecutionError: If the tool fails to execute.
        """
        self.validate_arguments(tool_name, arguments)
        plugin = self._tool_map[tool_name]

        try:
            return await plugin.execute(tool_name, arguments)
        except ToolArgumentsError:
            raise
        except Exception as e:
            raise ToolExecutionError(f"Tool '{tool_name}' execution failed: {e}") from e

    async def cleanup(self) -> None:
        """Clean up all registered plugins.

        Called by MCPServer.close() during shutdown.
        """
        for plugin in self._plugins:
            await plugin.cleanup()

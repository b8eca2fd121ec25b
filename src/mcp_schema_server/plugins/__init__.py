"""Plugin system for MCP tools."""

from mcp_schema_server.plugins.base import PluginBase, ToolDefinition, ToolResult
from mcp_schema_server.plugins.registry import (
    ToolArgumentsError,
    ToolExecutionError,
    ToolNotFoundError,
    ToolRegistry,
)
from mcp_schema_server.plugins.schema_tools import SchemaToolsPlugin

__all__ = [
    "PluginBase",
    "SchemaToolsPlugin",
    "ToolArgumentsError",
    "ToolDefinition",
    "ToolExecutionError",
    "ToolNotFoundError",
    "ToolRegistry",
    "ToolResult",
]

"""MCP tools/list and tools/call handlers.

Handles tool-related MCP requests, routing them through the tool registry.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from mcp_schema_server.plugins.registry import (
    ToolArgumentsError,
    ToolExecutionError,
    ToolNotFoundError,
    ToolRegistry,
)

logger = logging.getLogger(__name__)


@dataclass
class ToolsListResult:
    """Result of tools/list request."""

    tools: list[dict[str, Any]]

    def to_dict(self) -> dict[str, Any]:
        """Convert to MCP result format."""
        return {"tools": self.tools}


@dataclass
class ToolsCallResult:
    """Result of tools/call request."""

    content: list[dict[str, Any]]
    is_error: bool = False

    @classmethod
    def error(cls, text: str) -> ToolsCallResult:
        """Build an error result with a single text item."""
        return cls(content=[{"type": "text", "text": text}], is_error=True)

    def to_dict(self) -> dict[str, Any]:
        """Convert to MCP result format."""
        return {
            "content": self.content,
            "isError": self.is_error,
        }


class ToolsHandler:
    """Handles tools/list and tools/call MCP requests.

    Tool failures are reported inside the result (``isError``) rather than
    as JSON-RPC errors, as MCP expects.
    """

    def __init__(self, registry: ToolRegistry) -> None:
        """Initialize the handler.

        Args:
            registry: Tool registry for routing calls.
        """
        self._registry = registry

    def handle_list(self) -> ToolsListResult:
        """Handle tools/list request."""
        return ToolsListResult(tools=self._registry.list_tools())

    async def handle_call(self, name: str, arguments: dict[str, Any]) -> ToolsCallResult:
        """Handle tools/call request.

        Args:
            name: Name of the tool to call.
            arguments: Tool arguments.

        Returns:
            ToolsCallResult with execution result.
        """
        try:
            result = await self._registry.call_tool(name, arguments)
            return ToolsCallResult(
                content=result.content,
                is_error=result.is_error,
            )
        except ToolNotFoundError:
            return ToolsCallResult.error(f"Tool not found: {name}")
        except ToolArgumentsError as e:
            return ToolsCallResult.error(f"Invalid arguments: {e}")
        except ToolExecutionError as e:
            logger.error("Error calling tool %s: %s", name, e.__cause__ or e)
            return ToolsCallResult.error(f"Error: {e.__cause__ or e}")

"""MCP Server - request and notification routing.

Integrates lifecycle handling and tool routing behind the two calls the
dispatcher makes: ``process_request`` and ``handle_notification``.
"""

from __future__ import annotations

import logging
from typing import Any

from mcp_schema_server.plugins.base import PluginBase
from mcp_schema_server.plugins.registry import ToolRegistry
from mcp_schema_server.protocol.jsonrpc import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    METHOD_NOT_FOUND,
    JsonRpcNotification,
    JsonRpcRequest,
    JsonRpcResponse,
)
from mcp_schema_server.protocol.lifecycle import LifecycleManager, ProtocolError
from mcp_schema_server.protocol.tools import ToolsHandler

logger = logging.getLogger(__name__)


class MCPServer:
    """MCP Server implementation.

    Provides a complete MCP server that handles:
    - Lifecycle management (initialize/initialized)
    - Liveness checks (ping)
    - Tool listing and execution
    """

    def __init__(self, server_info: dict[str, str] | None = None) -> None:
        """Initialize the server.

        Args:
            server_info: Name and version advertised during initialize.
        """
        self._lifecycle = LifecycleManager()
        if server_info:
            self._lifecycle.server_info = dict(server_info)
        self._registry = ToolRegistry()
        self._tools_handler = ToolsHandler(self._registry)

    @property
    def lifecycle(self) -> LifecycleManager:
        """Connection lifecycle of the current peer."""
        return self._lifecycle

    def register_plugin(self, plugin: PluginBase) -> None:
        """Register a plugin.

        Args:
            plugin: Plugin to register.
        """
        self._registry.register_plugin(plugin)

    def list_tools(self) -> list[dict[str, Any]]:
        """List all registered tools."""
        return self._registry.list_tools()

    async def process_request(self, request: JsonRpcRequest) -> JsonRpcResponse:
        """Handle a request and build its response.

        Args:
            request: The decoded request.

        Returns:
            Response echoing the request id.
        """
        method = request.method
        params = request.params or {}
        msg_id = request.id

        # Initialize is special - allowed before ready
        if method == "initialize":
            try:
                result = self._lifecycle.handle_initialize(params)
                return JsonRpcResponse.success(msg_id, result)
            except ProtocolError as e:
                return JsonRpcResponse.failure(msg_id, INTERNAL_ERROR, str(e))

        if method == "ping":
            return JsonRpcResponse.success(msg_id, {})

        # All other methods require ready state
        try:
            self._lifecycle.require_ready()
        except ProtocolError as e:
            return JsonRpcResponse.failure(msg_id, INTERNAL_ERROR, str(e))

        if method == "tools/list":
            result = self._tools_handler.handle_list()
            return JsonRpcResponse.success(msg_id, result.to_dict())

        elif method == "tools/call":
            name = params.get("name")
            arguments = params.get("arguments") or {}
            if not isinstance(name, str) or not isinstance(arguments, dict):
                return JsonRpcResponse.failure(
                    msg_id, INVALID_PARAMS, "tools/call requires a name and an arguments object"
                )

            logger.info("Calling tool: %s", name)
            call_result = await self._tools_handler.handle_call(name, arguments)
            return JsonRpcResponse.success(msg_id, call_result.to_dict())

        else:
            return JsonRpcResponse.failure(msg_id, METHOD_NOT_FOUND, f"Unknown method: {method}")

    async def handle_notification(self, notification: JsonRpcNotification) -> None:
        """Handle a notification (no response).

        Args:
            notification: The notification to handle.
        """
        if notification.method == "notifications/initialized":
            try:
                self._lifecycle.handle_initialized()
            except ProtocolError as e:
                logger.warning("Ignoring initialized notification: %s", e)
        else:
            logger.debug("Ignoring notification: %s", notification.method)

    async def close(self) -> None:
        """Close the server and clean up plugin resources."""
        self._lifecycle.handle_shutdown()
        await self._registry.cleanup()

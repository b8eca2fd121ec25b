"""MCP Protocol layer for JSON-RPC communication."""

from mcp_schema_server.protocol.jsonrpc import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    ErrorObject,
    JsonRpcError,
    JsonRpcNotification,
    JsonRpcRequest,
    JsonRpcResponse,
    extract_id,
    format_error,
    format_notification,
    format_response,
    has_id,
    parse_message,
    parse_notification,
    parse_request,
    serialize_response,
)
from mcp_schema_server.protocol.lifecycle import (
    MCP_PROTOCOL_VERSION,
    LifecycleManager,
    LifecycleState,
    ProtocolError,
)
from mcp_schema_server.protocol.tools import ToolsCallResult, ToolsHandler, ToolsListResult

__all__ = [
    "ErrorObject",
    "INTERNAL_ERROR",
    "INVALID_PARAMS",
    "INVALID_REQUEST",
    "JsonRpcError",
    "JsonRpcNotification",
    "JsonRpcRequest",
    "JsonRpcResponse",
    "LifecycleManager",
    "LifecycleState",
    "MCP_PROTOCOL_VERSION",
    "METHOD_NOT_FOUND",
    "PARSE_ERROR",
    "ProtocolError",
    "ToolsCallResult",
    "ToolsHandler",
    "ToolsListResult",
    "extract_id",
    "format_error",
    "format_notification",
    "format_response",
    "has_id",
    "parse_message",
    "parse_notification",
    "parse_request",
    "serialize_response",
]

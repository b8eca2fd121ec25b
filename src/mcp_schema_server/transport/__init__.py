"""Transports carrying JSON-RPC frames between the server and its peer."""

from mcp_schema_server.transport.base import (
    ChannelClosedError,
    FrameHandler,
    QueueFullError,
    ResponseFrameHandler,
    Transport,
    TransportError,
    TransportState,
)
from mcp_schema_server.transport.http_sse import HttpSseTransport
from mcp_schema_server.transport.outbound import OutboundQueue, OverflowPolicy
from mcp_schema_server.transport.stdio import StdioTransport

__all__ = [
    "ChannelClosedError",
    "FrameHandler",
    "HttpSseTransport",
    "OutboundQueue",
    "OverflowPolicy",
    "QueueFullError",
    "ResponseFrameHandler",
    "StdioTransport",
    "Transport",
    "TransportError",
    "TransportState",
]

"""Message dispatcher - classifies inbound frames and routes them to the server.

Every frame goes through one handling cycle:

1. Probe the frame for an ``id`` member (request) or its absence (notification).
2. Decode it into the matching shape and invoke the server.
3. For requests, serialize the response and send it back over the transport
   the frame arrived on. Notifications never get a reply.

Any failure while decoding or handling a request is turned into a
best-effort ``-32603`` error frame carrying whatever ``id`` can still be
recovered from the raw text. Failures never escape the cycle, so the
transport keeps reading the next frame.
"""

from __future__ import annotations

import logging
from typing import Protocol

from mcp_schema_server.protocol.jsonrpc import (
    INTERNAL_ERROR,
    JsonRpcNotification,
    JsonRpcRequest,
    JsonRpcResponse,
    extract_id,
    format_error,
    has_id,
    parse_notification,
    parse_request,
    serialize_response,
)
from mcp_schema_server.transport.base import Transport

logger = logging.getLogger(__name__)


class RequestServer(Protocol):
    """Call contract the dispatcher needs from the MCP server."""

    async def process_request(self, request: JsonRpcRequest) -> JsonRpcResponse: ...

    async def handle_notification(self, notification: JsonRpcNotification) -> None: ...


class MessageDispatcher:
    """Routes frames to the server and serializes replies.

    Keeps no record of outstanding ids: identical frames are handled as
    independent cycles, and concurrently dispatched frames may complete in
    any order.
    """

    def __init__(self, server: RequestServer) -> None:
        """Initialize the dispatcher.

        Args:
            server: Server handling decoded requests and notifications.
        """
        self._server = server

    async def dispatch(self, frame: str, transport: Transport) -> None:
        """Handle one frame, sending any reply over ``transport``.

        Args:
            frame: Raw inbound frame.
            transport: Transport the frame arrived on.
        """
        reply = await self.respond(frame)
        if reply is None:
            return

        try:
            await transport.send(reply)
        except Exception:
            logger.exception("Failed to send reply frame")

    async def respond(self, frame: str) -> str | None:
        """Handle one frame and return the reply frame instead of sending it.

        Args:
            frame: Raw inbound frame.

        Returns:
            Serialized response, or None for notifications.
        """
        logger.debug("Processing incoming MCP message: %d characters", len(frame))

        try:
            is_request = has_id(frame)
        except Exception as e:
            return self._error_reply(frame, e)

        if is_request:
            try:
                return await self._handle_request(frame)
            except Exception as e:
                return self._error_reply(frame, e)

        try:
            await self._handle_notification(frame)
        except Exception:
            logger.exception("Error handling MCP notification: %s", frame)
        return None

    async def _handle_request(self, frame: str) -> str:
        request = parse_request(frame)
        logger.info("Processing MCP request: %s", request.method)

        response = await self._server.process_request(request)
        reply = serialize_response(response)

        logger.info("Sending MCP response: %d characters", len(reply))
        return reply

    async def _handle_notification(self, frame: str) -> None:
        notification = parse_notification(frame)
        logger.info("Handling MCP notification: %s", notification.method)
        await self._server.handle_notification(notification)

    def _error_reply(self, frame: str, error: Exception) -> str:
        logger.error("Error processing MCP message: %s", frame, exc_info=error)
        return format_error(extract_id(frame), INTERNAL_ERROR, str(error))

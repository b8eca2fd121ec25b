"""Server host - owns the transport and dispatcher for the process lifetime."""

from __future__ import annotations

import logging
from typing import TextIO

from mcp_schema_server.config import ServerConfig
from mcp_schema_server.dispatcher import MessageDispatcher
from mcp_schema_server.server import MCPServer
from mcp_schema_server.transport.base import Transport
from mcp_schema_server.transport.http_sse import HttpSseTransport
from mcp_schema_server.transport.outbound import OutboundQueue
from mcp_schema_server.transport.stdio import StdioTransport

logger = logging.getLogger(__name__)


class McpServerHost:
    """Wires a transport to the dispatcher and runs it.

    The stdio transport hands each frame to the dispatcher, which sends the
    reply back over stdout. The HTTP transport asks the dispatcher for the
    reply and returns it inline as the POST response.
    """

    def __init__(
        self,
        server: MCPServer,
        config: ServerConfig,
        stdin: TextIO | None = None,
        stdout: TextIO | None = None,
    ) -> None:
        """Initialize the host.

        Args:
            server: MCP server handling decoded messages.
            config: Server configuration (selects the transport).
            stdin: Input stream for the stdio transport.
            stdout: Output stream for the stdio transport.
        """
        self._server = server
        self._config = config
        self._dispatcher = MessageDispatcher(server)
        self._transport = self._build_transport(stdin, stdout)

    @property
    def transport(self) -> Transport:
        """The transport in use."""
        return self._transport

    @property
    def dispatcher(self) -> MessageDispatcher:
        """The frame dispatcher."""
        return self._dispatcher

    def _build_transport(self, stdin: TextIO | None, stdout: TextIO | None) -> Transport:
        settings = self._config.transport
        if settings.kind == "stdio":
            return StdioTransport(self._on_frame, stdin=stdin, stdout=stdout)

        queue = OutboundQueue(
            maxsize=settings.queue.maxsize,
            overflow=settings.queue.overflow,
            frame_ttl=settings.queue.frame_ttl,
        )
        return HttpSseTransport(
            on_frame_with_response=self._dispatcher.respond,
            host=settings.host,
            port=settings.port,
            base_path=settings.base_path,
            cors_origin=settings.cors_origin,
            queue=queue,
            log_level=self._config.log_level.lower(),
        )

    async def _on_frame(self, frame: str) -> None:
        await self._dispatcher.dispatch(frame, self._transport)

    async def start(self) -> None:
        """Start the transport. Failures propagate to the caller."""
        kind = self._config.transport.kind
        logger.info("Starting MCP Server with %s transport", kind)

        try:
            await self._transport.start()
        except Exception:
            logger.exception("Failed to start MCP Server")
            raise

        logger.info("MCP Server started successfully with %s transport", kind)

    async def stop(self) -> None:
        """Stop the transport and release server resources."""
        logger.info("Stopping MCP Server")

        try:
            await self._transport.stop(timeout=self._config.transport.stop_timeout)
        except Exception:
            logger.exception("Error stopping transport")

        try:
            await self._server.close()
        except Exception:
            logger.exception("Error closing server")

        logger.info("MCP Server stopped")

    async def run(self) -> None:
        """Start, wait for the transport to finish, then stop."""
        await self.start()
        try:
            await self._transport.wait_closed()
        finally:
            await self.stop()

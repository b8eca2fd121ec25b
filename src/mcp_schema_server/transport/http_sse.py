"""HTTP Server-Sent Events transport for MCP communication.

Inbound frames arrive as HTTP POST bodies, one frame per request. Outbound
frames are either returned inline as the POST response or pushed to the
peer's long-lived GET connection as SSE ``message`` events.

Routes (relative to ``base_path``):
    GET  /sse      - SSE stream; first event is ``endpoint`` with the POST URL
    POST /message  - one JSON-RPC frame per request
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable

import uvicorn
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response, StreamingResponse
from starlette.routing import Route
from starlette.types import Message, Receive, Scope, Send

from mcp_schema_server.transport.base import (
    ChannelClosedError,
    FrameHandler,
    ResponseFrameHandler,
    Transport,
    TransportError,
    TransportState,
)
from mcp_schema_server.transport.outbound import OutboundQueue

logger = logging.getLogger(__name__)


def format_sse_event(event: str, data: str) -> str:
    """Format one SSE event block."""
    return f"event: {event}\ndata: {data}\n\n"


def message_endpoint_url(request: Request) -> str:
    """Absolute URL the peer should POST frames to.

    Derived from the SSE request URL by dropping a trailing ``/sse`` and
    appending ``/message``.
    """
    path = request.url.path
    if path.endswith("/sse"):
        path = path[: -len("/sse")]
    return f"{request.url.scheme}://{request.url.netloc}{path.rstrip('/')}/message"


class _AsgiEndpoint:
    """Wraps a coroutine so Starlette routes to it as a raw ASGI app."""

    def __init__(self, handler: Callable[[Scope, Receive, Send], Awaitable[None]]) -> None:
        self._handler = handler

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        await self._handler(scope, receive, send)


class HttpSseTransport(Transport):
    """HTTP POST + SSE transport.

    ``send`` always enqueues into the outbound queue; it is never observed by
    an in-flight POST's inline response. The two delivery paths are
    independent.
    """

    def __init__(
        self,
        on_frame: FrameHandler | None = None,
        on_frame_with_response: ResponseFrameHandler | None = None,
        *,
        host: str = "127.0.0.1",
        port: int = 8080,
        base_path: str = "/mcp",
        cors_origin: str = "*",
        queue: OutboundQueue | None = None,
        log_level: str = "info",
    ) -> None:
        """Initialize the transport.

        Args:
            on_frame: Fire-and-forget handler for inbound frames.
            on_frame_with_response: Handler whose return value is sent back
                as the POST response body. Takes precedence over on_frame.
            host: Interface to bind when started.
            port: Port to bind when started.
            base_path: Prefix for the ``/sse`` and ``/message`` routes.
            cors_origin: Value of Access-Control-Allow-Origin on SSE streams.
            queue: Outbound queue (defaults to an unbounded queue).
            log_level: uvicorn log level.
        """
        super().__init__()
        self._on_frame = on_frame
        self._on_frame_with_response = on_frame_with_response
        self._host = host
        self._port = port
        self._base_path = "/" + base_path.strip("/") if base_path.strip("/") else ""
        self._cors_origin = cors_origin
        self._queue = queue if queue is not None else OutboundQueue()
        self._log_level = log_level
        self._server: uvicorn.Server | None = None
        self._server_task: asyncio.Task[None] | None = None
        self._app = Starlette(
            routes=[
                Route(f"{self._base_path}/sse", self._handle_sse, methods=["GET"]),
                Route(
                    f"{self._base_path}/message",
                    _AsgiEndpoint(self._handle_post),
                    methods=["POST"],
                ),
            ]
        )

    @property
    def app(self) -> Starlette:
        """ASGI application serving the SSE and POST routes."""
        return self._app

    @property
    def queue(self) -> OutboundQueue:
        """Outbound queue drained by SSE connections."""
        return self._queue

    async def start(self) -> None:
        """Serve the application with uvicorn in a background task.

        Raises:
            TransportError: If the server stops before finishing startup.
        """
        self._mark_running()
        logger.info(
            "Starting HTTP SSE transport on %s:%d%s", self._host, self._port, self._base_path
        )

        config = uvicorn.Config(
            self._app,
            host=self._host,
            port=self._port,
            log_config=None,
            log_level=self._log_level,
        )
        self._server = uvicorn.Server(config)
        self._server_task = asyncio.create_task(
            self._serve(self._server), name="http-sse-server"
        )

        while not self._server.started:
            if self._server_task.done():
                error = self._server_task.exception()
                raise TransportError("HTTP server exited during startup") from error
            await asyncio.sleep(0.05)

    async def _serve(self, server: uvicorn.Server) -> None:
        try:
            await server.serve()
        except SystemExit as e:
            # uvicorn exits the process when it cannot bind
            raise TransportError(f"HTTP server exited with status {e.code}") from e

    async def stop(self, timeout: float | None = None) -> None:
        """Complete the outbound queue and shut the HTTP server down."""
        if self._state == TransportState.STOPPED:
            return
        self._state = TransportState.STOPPED
        logger.info("Stopping HTTP SSE transport")

        # Ends every open SSE stream once its pending frames are written
        self._queue.close()

        task = self._server_task
        if self._server is not None:
            self._server.should_exit = True
        if task is not None and not task.done():
            done, _ = await asyncio.wait({task}, timeout=timeout)
            if not done:
                logger.warning("HTTP server did not stop within %ss, cancelling", timeout)
                task.cancel()
                await asyncio.wait({task})

    async def wait_closed(self) -> None:
        """Wait until the HTTP server exits."""
        if self._server_task is not None:
            await asyncio.wait({self._server_task})

    async def send(self, frame: str) -> None:
        """Queue a frame for delivery over the SSE stream.

        Raises:
            ChannelClosedError: If the transport has been stopped.
        """
        try:
            await self._queue.put(frame)
        except ChannelClosedError:
            logger.warning("Failed to queue message - channel is closed")
            raise
        logger.debug("Message queued for sending: %d characters", len(frame))

    async def _handle_sse(self, request: Request) -> Response:
        endpoint = message_endpoint_url(request)
        client = request.client.host if request.client else "unknown"
        logger.info("SSE connection established from %s", client)

        headers = {
            "Content-Type": "text/event-stream",
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "Access-Control-Allow-Origin": self._cors_origin,
            "Access-Control-Allow-Headers": "Cache-Control",
            "X-Accel-Buffering": "no",
        }
        return StreamingResponse(self._event_stream(endpoint), headers=headers)

    async def _event_stream(self, endpoint: str) -> AsyncIterator[str]:
        # Compatibility with the 2024-11-05 HTTP+SSE transport
        yield format_sse_event("endpoint", endpoint)
        logger.info("Sent endpoint event: %s", endpoint)

        try:
            # Ends when the queue is completed; a client disconnect cancels it
            async for frame in self._queue:
                yield format_sse_event("message", frame)
                logger.debug("Sent SSE message: %d characters", len(frame))
        except asyncio.CancelledError:
            logger.info("SSE connection cancelled")
            raise
        finally:
            logger.info("SSE connection closed")

    async def _handle_post(self, scope: Scope, receive: Receive, send: Send) -> None:
        response_started = False

        async def tracked_send(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            request = Request(scope, receive)
            body = await request.body()
            frame = body.decode("utf-8", errors="replace")
            logger.debug("Received HTTP message: %d characters", len(frame))

            response = await self._reply_for(frame)
            await response(scope, receive, tracked_send)
        except Exception:
            logger.exception("Error handling HTTP POST request")
            if not response_started:
                error_response = PlainTextResponse("Internal Server Error", status_code=500)
                await error_response(scope, receive, send)

    async def _reply_for(self, frame: str) -> Response:
        if self._on_frame_with_response is not None:
            reply = await self._on_frame_with_response(frame)
            if reply is not None:
                logger.info("Sending response directly via POST: %d characters", len(reply))
                return Response(reply, status_code=200, media_type="application/json")
        elif self._on_frame is not None:
            await self._on_frame(frame)

        # Always acknowledge so the client does not retry
        return PlainTextResponse("OK", status_code=200)

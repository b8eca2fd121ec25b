"""STDIO transport layer for MCP communication.

Reads newline-delimited JSON-RPC frames from stdin and writes frames to
stdout, one per line. Logging goes to stderr to avoid corrupting the
protocol stream.
"""

from __future__ import annotations

import asyncio
import io
import logging
import sys
import threading
from typing import TextIO

from mcp_schema_server.transport.base import (
    ChannelClosedError,
    FrameHandler,
    Transport,
    TransportError,
    TransportState,
)

logger = logging.getLogger(__name__)


def _lenient_stdin() -> TextIO:
    """Return sys.stdin set to replace undecodable bytes instead of raising."""
    stdin = sys.stdin
    if isinstance(stdin, io.TextIOWrapper):
        # A bad byte must become a malformed frame, not end the read loop
        stdin.reconfigure(errors="replace")
    return stdin


def _resolve(future: asyncio.Future[str], line: str | None, error: BaseException | None) -> None:
    if future.done():
        return
    if error is not None:
        future.set_exception(error)
    else:
        future.set_result(line or "")


class StdioTransport(Transport):
    """STDIO transport for MCP communication.

    Inbound frames are handled strictly one at a time: the next line is not
    read until the handler has finished with the previous one. Outbound
    writes are serialized by a lock so concurrent sends never interleave.
    """

    def __init__(
        self,
        on_frame: FrameHandler | None = None,
        stdin: TextIO | None = None,
        stdout: TextIO | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            on_frame: Coroutine function receiving each inbound frame.
            stdin: Input stream (defaults to sys.stdin, decoded with
                undecodable bytes replaced).
            stdout: Output stream (defaults to sys.stdout).
        """
        super().__init__()
        self._on_frame = on_frame
        self._stdin = stdin if stdin is not None else _lenient_stdin()
        self._stdout = stdout or sys.stdout
        self._write_lock: asyncio.Lock | None = asyncio.Lock()
        self._read_task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        """Start the background read loop."""
        self._mark_running()
        logger.info("Starting STDIO transport")
        self._read_task = asyncio.create_task(self._read_loop(), name="stdio-read-loop")

    async def stop(self, timeout: float | None = None) -> None:
        """Cancel the read loop, wait for it, and release the write lock."""
        if self._state == TransportState.STOPPED:
            return
        self._state = TransportState.STOPPED
        logger.info("Stopping STDIO transport")

        task = self._read_task
        if task is not None and not task.done():
            task.cancel()
            # asyncio.wait never raises the task's CancelledError
            done, _ = await asyncio.wait({task}, timeout=timeout)
            if not done:
                logger.warning("STDIO read loop did not finish within %ss", timeout)

        self._write_lock = None

    async def wait_closed(self) -> None:
        """Wait until the read loop ends (EOF, read error, or stop)."""
        if self._read_task is not None:
            await asyncio.wait({self._read_task})

    async def send(self, frame: str) -> None:
        """Write one frame to stdout as a single line and flush.

        Raises:
            ChannelClosedError: If the transport has been stopped.
            TransportError: If writing to stdout fails.
        """
        lock = self._write_lock
        if self._state == TransportState.STOPPED or lock is None:
            raise ChannelClosedError("STDIO transport is stopped")

        async with lock:
            try:
                await asyncio.to_thread(self._write_line, frame)
            except (OSError, ValueError) as e:
                logger.error("Error writing to stdout: %s", e)
                raise TransportError(f"Failed to write frame: {e}") from e

        logger.debug("Sent message to stdout: %d characters", len(frame))

    def _write_line(self, frame: str) -> None:
        self._stdout.write(frame + "\n")
        self._stdout.flush()

    async def _readline(self) -> str:
        """Read one line without blocking the event loop.

        The read runs on a daemon thread so a read blocked on an idle stdin
        never holds up interpreter exit.
        """
        loop = asyncio.get_running_loop()
        future: asyncio.Future[str] = loop.create_future()

        def read() -> None:
            try:
                line = self._stdin.readline()
            except Exception as e:
                result: tuple[str | None, BaseException | None] = (None, e)
            else:
                result = (line, None)
            try:
                loop.call_soon_threadsafe(_resolve, future, *result)
            except RuntimeError:
                pass  # event loop already closed

        threading.Thread(target=read, name="stdio-reader", daemon=True).start()
        return await future

    async def _read_loop(self) -> None:
        logger.debug("Started reading from stdin")

        try:
            while True:
                try:
                    line = await self._readline()
                except (OSError, ValueError) as e:
                    logger.error("Error reading from stdin: %s", e)
                    break

                if not line:
                    logger.info("EOF reached on stdin, stopping transport")
                    break

                frame = line.strip()
                if not frame:
                    continue

                logger.debug("Received message from stdin: %d characters", len(frame))

                if self._on_frame is None:
                    logger.debug("No frame handler registered, dropping frame")
                    continue

                try:
                    await self._on_frame(frame)
                except Exception:
                    logger.exception("Error handling inbound frame")
        except asyncio.CancelledError:
            logger.debug("Stdin reading cancelled")
            raise

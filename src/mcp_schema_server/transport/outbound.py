"""Outbound frame queue feeding the SSE push channel."""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from collections.abc import AsyncIterator
from enum import Enum

from mcp_schema_server.transport.base import ChannelClosedError, QueueFullError

logger = logging.getLogger(__name__)


class OverflowPolicy(Enum):
    """What ``put`` does when a bounded queue is full."""

    BLOCK = "block"
    DROP_OLDEST = "drop_oldest"
    FAIL = "fail"


class OutboundQueue:
    """FIFO queue of frames waiting to be pushed to the peer.

    ``maxsize=0`` means unbounded: producers never wait and a slow or absent
    consumer lets the queue grow without limit. Once closed, ``put`` raises
    ChannelClosedError and consumers drain what is left, then get None.
    """

    def __init__(
        self,
        maxsize: int = 0,
        overflow: OverflowPolicy = OverflowPolicy.BLOCK,
        frame_ttl: float | None = None,
    ) -> None:
        """Initialize the queue.

        Args:
            maxsize: Maximum number of queued frames, 0 for unbounded.
            overflow: Policy applied when a bounded queue is full.
            frame_ttl: Seconds after which an undelivered frame is dropped,
                None to keep frames until delivered.
        """
        if maxsize < 0:
            raise ValueError("maxsize must be >= 0")
        if frame_ttl is not None and frame_ttl <= 0:
            raise ValueError("frame_ttl must be positive")

        self._maxsize = maxsize
        self._overflow = overflow
        self._frame_ttl = frame_ttl
        self._frames: deque[tuple[float, str]] = deque()
        self._closed = False
        # Set whenever a frame is queued or the queue is closed
        self._readable = asyncio.Event()
        # Set whenever a bounded queue has room
        self._writable = asyncio.Event()
        self._writable.set()

    @property
    def closed(self) -> bool:
        """Whether the queue has been marked complete."""
        return self._closed

    @property
    def maxsize(self) -> int:
        """Maximum number of queued frames (0 means unbounded)."""
        return self._maxsize

    def qsize(self) -> int:
        """Number of frames currently queued."""
        return len(self._frames)

    def full(self) -> bool:
        """Whether a bounded queue has reached its limit."""
        return self._maxsize > 0 and len(self._frames) >= self._maxsize

    async def put(self, frame: str) -> None:
        """Enqueue a frame.

        Raises:
            ChannelClosedError: If the queue has been closed.
            QueueFullError: If the queue is full and the policy is FAIL.
        """
        while True:
            if self._closed:
                raise ChannelClosedError("Outbound channel is closed")
            if not self.full():
                break

            if self._overflow is OverflowPolicy.FAIL:
                raise QueueFullError(f"Outbound queue is full ({self._maxsize} frames)")
            if self._overflow is OverflowPolicy.DROP_OLDEST:
                self._frames.popleft()
                logger.warning("Outbound queue full, dropped oldest frame")
                break

            self._writable.clear()
            await self._writable.wait()

        self._frames.append((time.monotonic(), frame))
        self._readable.set()
        if self.full():
            self._writable.clear()

    async def get(self) -> str | None:
        """Dequeue the next live frame, waiting if none is queued.

        Returns:
            The frame, or None once the queue is closed and drained.
        """
        while True:
            frame = self._pop_live()
            if frame is not None:
                return frame
            if self._closed:
                return None

            self._readable.clear()
            await self._readable.wait()

    def _pop_live(self) -> str | None:
        while self._frames:
            enqueued_at, frame = self._frames.popleft()
            self._writable.set()
            if self._frame_ttl is not None and time.monotonic() - enqueued_at > self._frame_ttl:
                logger.warning("Dropping expired outbound frame: %d characters", len(frame))
                continue
            return frame
        return None

    def close(self) -> None:
        """Mark the queue complete, waking every waiting producer and consumer."""
        if self._closed:
            return
        self._closed = True
        self._readable.set()
        self._writable.set()
        if self._frames:
            logger.debug("Outbound queue closed with %d frames pending", len(self._frames))

    def __aiter__(self) -> AsyncIterator[str]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[str]:
        while True:
            frame = await self.get()
            if frame is None:
                return
            yield frame

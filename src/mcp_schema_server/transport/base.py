"""Transport contract shared by the stdio and HTTP+SSE transports."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from enum import Enum

# Receives one inbound frame; any reply is sent separately via Transport.send
FrameHandler = Callable[[str], Awaitable[None]]

# Receives one inbound frame and returns the reply frame (None for no reply)
ResponseFrameHandler = Callable[[str], Awaitable["str | None"]]


class TransportError(Exception):
    """Raised when a transport cannot perform an operation."""

    pass


class ChannelClosedError(TransportError):
    """Raised when sending into a transport whose outbound channel is closed."""

    pass


class QueueFullError(TransportError):
    """Raised when a bounded outbound queue is full and configured to fail."""

    pass


class TransportState(Enum):
    """Transport lifecycle states."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    STOPPED = "stopped"


class Transport(ABC):
    """A channel moving frames between the peer and the dispatcher.

    The inbound subscriber is handed to the constructor and receives each
    frame exactly once, in the order frames arrived. ``send`` may be called
    concurrently; each frame is written atomically but concurrent sends are
    not ordered relative to each other.
    """

    def __init__(self) -> None:
        self._state = TransportState.NOT_STARTED

    @property
    def state(self) -> TransportState:
        """Current lifecycle state."""
        return self._state

    def _mark_running(self) -> None:
        if self._state != TransportState.NOT_STARTED:
            raise TransportError(f"Transport cannot start from state {self._state.value}")
        self._state = TransportState.RUNNING

    @abstractmethod
    async def start(self) -> None:
        """Start receiving frames. May be called once."""
        pass

    @abstractmethod
    async def stop(self, timeout: float | None = None) -> None:
        """Stop the transport and release its resources.

        Background work is cancelled and awaited, waiting at most
        ``timeout`` seconds when given.
        """
        pass

    @abstractmethod
    async def wait_closed(self) -> None:
        """Wait until the transport stops receiving frames on its own."""
        pass

    @abstractmethod
    async def send(self, frame: str) -> None:
        """Send one frame to the peer.

        Raises:
            ChannelClosedError: If the transport no longer accepts frames.
        """
        pass

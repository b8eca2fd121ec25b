"""MCP lifecycle management.

The connection moves through a fixed sequence of states:

    UNINITIALIZED --initialize--> INITIALIZING --initialized--> READY
                                                    any state --close--> SHUTDOWN

Only ``initialize`` and ``ping`` are served before READY.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

# Advertised when the client does not request a version
MCP_PROTOCOL_VERSION = "2024-11-05"


class LifecycleState(Enum):
    """MCP connection lifecycle states."""

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    SHUTDOWN = "shutdown"


class ProtocolError(Exception):
    """Raised when a message arrives in a state that does not accept it."""

    pass


# event -> (required source state, target state, error when the source does not match)
_TRANSITIONS: dict[str, tuple[LifecycleState, LifecycleState, str]] = {
    "initialize": (
        LifecycleState.UNINITIALIZED,
        LifecycleState.INITIALIZING,
        "Server already initialized",
    ),
    "initialized": (
        LifecycleState.INITIALIZING,
        LifecycleState.READY,
        "Server not initializing",
    ),
}


@dataclass
class LifecycleManager:
    """Tracks the handshake with the single connected peer."""

    server_info: dict[str, str] = field(
        default_factory=lambda: {"name": "mcp-schema-server", "version": "1.0.0"}
    )
    capabilities: dict[str, Any] = field(default_factory=lambda: {"tools": {"listChanged": False}})
    state: LifecycleState = LifecycleState.UNINITIALIZED
    client_info: dict[str, str] | None = None
    client_capabilities: dict[str, Any] | None = None
    protocol_version: str | None = None

    @property
    def is_ready(self) -> bool:
        return self.state == LifecycleState.READY

    def _transition(self, event: str) -> None:
        source, target, error = _TRANSITIONS[event]
        if self.state != source:
            raise ProtocolError(error)
        logger.debug("Lifecycle %s -> %s on %s", self.state.value, target.value, event)
        self.state = target

    def require_ready(self) -> None:
        """Check that regular requests may be served.

        Raises:
            ProtocolError: If the handshake has not completed or the
                connection is shut down.
        """
        if self.state == LifecycleState.SHUTDOWN:
            raise ProtocolError("Connection is shutdown")
        if self.state != LifecycleState.READY:
            raise ProtocolError("Connection is not ready")

    def handle_initialize(self, params: dict[str, Any]) -> dict[str, Any]:
        """Record the client's hello and build the initialize result.

        The server echoes whatever protocol version the client requests.

        Args:
            params: Initialize request parameters.

        Returns:
            Result carrying protocol version, capabilities and server info.

        Raises:
            ProtocolError: If initialize was already received.
        """
        self._transition("initialize")

        self.protocol_version = params.get("protocolVersion", MCP_PROTOCOL_VERSION)
        self.client_info = params.get("clientInfo")
        self.client_capabilities = params.get("capabilities", {})
        logger.info(
            "Client initializing: %s (protocol %s)", self.client_info, self.protocol_version
        )

        return {
            "protocolVersion": self.protocol_version,
            "capabilities": self.capabilities,
            "serverInfo": self.server_info,
        }

    def handle_initialized(self) -> None:
        """Complete the handshake.

        Raises:
            ProtocolError: If initialize has not been received.
        """
        self._transition("initialized")
        logger.info("Client ready")

    def handle_shutdown(self) -> None:
        self.state = LifecycleState.SHUTDOWN

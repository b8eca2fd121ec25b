"""Tests for the server host wiring transports to the dispatcher."""

import asyncio
import io
import json
import sys

import pytest
from starlette.testclient import TestClient

from mcp_schema_server.config import QueueConfig, ServerConfig, TransportConfig
from mcp_schema_server.host import McpServerHost
from mcp_schema_server.protocol.jsonrpc import INTERNAL_ERROR
from mcp_schema_server.protocol.lifecycle import LifecycleState
from mcp_schema_server.server import MCPServer
from mcp_schema_server.transport.base import TransportError, TransportState
from mcp_schema_server.transport.http_sse import HttpSseTransport
from mcp_schema_server.transport.outbound import OverflowPolicy
from mcp_schema_server.transport.stdio import StdioTransport


def frames(*messages) -> str:
    return "".join(
        (m if isinstance(m, str) else json.dumps(m)) + "\n" for m in messages
    )


def http_config(**queue) -> ServerConfig:
    return ServerConfig(transport=TransportConfig(kind="http", queue=QueueConfig(**queue)))


class TestStdioHost:
    """End-to-end tests over the stdio transport."""

    def test_full_session(self, server: MCPServer, echo_plugin):
        """Should answer every request in order and exit on EOF."""
        stdin = io.StringIO(
            frames(
                {
                    "jsonrpc": "2.0",
                    "id": 1,
                    "method": "initialize",
                    "params": {"protocolVersion": "2024-11-05", "capabilities": {}},
                },
                {"jsonrpc": "2.0", "method": "notifications/initialized"},
                {"jsonrpc": "2.0", "id": 2, "method": "tools/list"},
                "this is not json",
                {
                    "jsonrpc": "2.0",
                    "id": "call-1",
                    "method": "tools/call",
                    "params": {"name": "echo", "arguments": {"message": "hi"}},
                },
            )
        )
        stdout = io.StringIO()
        host = McpServerHost(server, ServerConfig(), stdin=stdin, stdout=stdout)

        asyncio.run(asyncio.wait_for(host.run(), timeout=10))

        replies = [json.loads(line) for line in stdout.getvalue().splitlines()]
        assert [r["id"] for r in replies] == [1, 2, None, "call-1"]
        assert replies[0]["result"]["serverInfo"]["name"] == "mcp-schema-server"
        assert len(replies[1]["result"]["tools"]) == 2
        assert replies[2]["error"]["code"] == INTERNAL_ERROR
        assert replies[3]["result"]["content"][0]["text"] == "hi"

        assert host.transport.state == TransportState.STOPPED
        assert server.lifecycle.state == LifecycleState.SHUTDOWN
        assert echo_plugin.cleaned_up

    def test_invalid_utf8_line_gets_error_reply(self, server: MCPServer, monkeypatch):
        """Should answer a line of invalid UTF-8 and keep serving later frames."""
        raw = b'\xff\xfe garbage\n{"jsonrpc":"2.0","id":1,"method":"ping"}\n'
        monkeypatch.setattr(sys, "stdin", io.TextIOWrapper(io.BytesIO(raw), encoding="utf-8"))
        stdout = io.StringIO()
        host = McpServerHost(server, ServerConfig(), stdout=stdout)

        asyncio.run(asyncio.wait_for(host.run(), timeout=10))

        replies = [json.loads(line) for line in stdout.getvalue().splitlines()]
        assert replies[0]["id"] is None
        assert replies[0]["error"]["code"] == INTERNAL_ERROR
        assert replies[1] == {"jsonrpc": "2.0", "id": 1, "result": {}}

    def test_builds_stdio_transport(self, server: MCPServer):
        """Should pick the stdio transport by default."""
        host = McpServerHost(server, ServerConfig(), stdin=io.StringIO(), stdout=io.StringIO())

        assert isinstance(host.transport, StdioTransport)

    def test_start_failure_propagates(self, server: MCPServer):
        """Should raise when the transport cannot start."""
        host = McpServerHost(server, ServerConfig(), stdin=io.StringIO(), stdout=io.StringIO())

        async def run() -> None:
            await host.start()
            try:
                await host.start()
            finally:
                await host.stop()

        with pytest.raises(TransportError):
            asyncio.run(run())

    def test_stop_swallows_transport_errors(self, server: MCPServer, echo_plugin):
        """Should still close the server when stopping the transport fails."""
        host = McpServerHost(server, ServerConfig(), stdin=io.StringIO(), stdout=io.StringIO())

        async def failing_stop(timeout=None) -> None:
            raise TransportError("stop failed")

        host.transport.stop = failing_stop

        asyncio.run(host.stop())

        assert echo_plugin.cleaned_up


class TestHttpHost:
    """Tests for the HTTP transport wiring."""

    def test_builds_http_transport_with_queue(self, server: MCPServer):
        """Should configure the outbound queue from settings."""
        host = McpServerHost(server, http_config(maxsize=5, overflow=OverflowPolicy.FAIL))

        assert isinstance(host.transport, HttpSseTransport)
        assert host.transport.queue.maxsize == 5

    def test_post_returns_inline_reply(self, server: MCPServer):
        """Should answer POSTed requests in the response body."""
        host = McpServerHost(server, http_config())

        with TestClient(host.transport.app) as client:
            response = client.post(
                "/mcp/message", content='{"jsonrpc":"2.0","id":9,"method":"ping"}'
            )
            notification = client.post(
                "/mcp/message", content='{"jsonrpc":"2.0","method":"notifications/cancelled"}'
            )
            garbage = client.post("/mcp/message", content="{{{")

        assert response.status_code == 200
        assert response.json() == {"jsonrpc": "2.0", "id": 9, "result": {}}
        assert notification.text == "OK"
        assert garbage.json()["id"] is None
        assert garbage.json()["error"]["code"] == INTERNAL_ERROR

    def test_invalid_utf8_post_gets_error_reply(self, server: MCPServer):
        """Should answer an undecodable body with an inline JSON-RPC error."""
        host = McpServerHost(server, http_config())

        with TestClient(host.transport.app) as client:
            response = client.post("/mcp/message", content=b'{"id":1,"method":"ping\xff"}')

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/json")
        assert response.json()["error"]["code"] == INTERNAL_ERROR

#!/usr/bin/env python3
"""MCP Schema Server - Main entry point.

Exposes the Schema Manager API as MCP tools over either newline-delimited
stdio or HTTP POST + Server-Sent Events.

================================================================================
DEVELOPER GUIDE: Choosing a Transport
================================================================================

stdio (default)
    The host process launches the server and talks to it over stdin/stdout.
    Logs go to stderr so they never corrupt the protocol stream.

        mcp-schema-server --config config/server.yaml

http
    Clients open ``GET {base_path}/sse`` to receive an ``endpoint`` event,
    then POST JSON-RPC frames to the advertised URL. Replies come back in the
    POST response body.

        mcp-schema-server --transport http --host 0.0.0.0 --port 8080

The Schema Manager location comes from ``schema_manager.base_url`` in the
config file, which may reference environment variables:

    schema_manager:
      base_url: "${SCHEMA_MANAGER_URL}"

================================================================================
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from mcp_schema_server import __version__
from mcp_schema_server.clients.schema_manager import SchemaManagerClient
from mcp_schema_server.config import (
    LOG_LEVELS,
    TRANSPORT_KINDS,
    ConfigError,
    ServerConfig,
    load_config,
)
from mcp_schema_server.host import McpServerHost
from mcp_schema_server.logging_setup import configure_logging
from mcp_schema_server.plugins.schema_tools import SchemaToolsPlugin
from mcp_schema_server.server import MCPServer

logger = logging.getLogger("mcp_schema_server")


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line parser."""
    parser = argparse.ArgumentParser(
        description="MCP Schema Server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=None,
        help="Path to server configuration YAML file (default: built-in defaults)",
    )
    parser.add_argument(
        "--transport",
        "-t",
        choices=TRANSPORT_KINDS,
        default=None,
        help="Transport to serve on (overrides transport.kind)",
    )
    parser.add_argument("--host", default=None, help="HTTP bind host (overrides transport.host)")
    parser.add_argument(
        "--port", type=int, default=None, help="HTTP bind port (overrides transport.port)"
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=None,
        help="Log level (overrides logging.level)",
    )
    parser.add_argument(
        "--version",
        "-v",
        action="version",
        version=f"mcp-schema-server {__version__}",
    )
    return parser


def apply_overrides(config: ServerConfig, args: argparse.Namespace) -> ServerConfig:
    """Apply command-line overrides on top of the file configuration."""
    if args.transport is not None:
        config.transport.kind = args.transport
    if args.host is not None:
        config.transport.host = args.host
    if args.port is not None:
        config.transport.port = args.port
    if args.log_level is not None:
        config.log_level = args.log_level
    return config


def build_server(config: ServerConfig) -> MCPServer:
    """Create the MCP server with the Schema Manager tools registered.

    Args:
        config: Server configuration.

    Returns:
        Server ready to be hosted on a transport.
    """
    server = MCPServer(server_info=config.server_info)
    client = SchemaManagerClient(
        config.schema_manager_url, timeout=config.schema_manager_timeout
    )
    server.register_plugin(SchemaToolsPlugin(client))
    return server


def main(argv: list[str] | None = None) -> int:
    """Run the MCP server.

    Args:
        argv: Command-line arguments (defaults to sys.argv).

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    args = build_parser().parse_args(argv)

    try:
        config = apply_overrides(load_config(args.config), args)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    configure_logging(config.log_level)
    if args.config is not None:
        logger.info("Configuration loaded from: %s", args.config)
    logger.info("Schema Manager at %s", config.schema_manager_url)

    try:
        server = build_server(config)
        host = McpServerHost(server, config)
    except Exception as e:
        logger.error("Error loading server: %s", e)
        return 1

    try:
        asyncio.run(host.run())
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
        return 130

    except Exception as e:
        logger.error("Error: %s", e)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())

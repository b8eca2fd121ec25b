"""MCP server exposing the Schema Manager API over stdio or HTTP + SSE."""

__version__ = "1.0.0"

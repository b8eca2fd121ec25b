"""Clients for external services."""

from mcp_schema_server.clients.schema_manager import SchemaManagerClient, SchemaManagerError

__all__ = ["SchemaManagerClient", "SchemaManagerError"]

"""Tool plugin contract.

A plugin groups related MCP tools behind one object. The registry asks it
for its tool definitions once at registration, validates every call against
the advertised input schema, and only then hands the arguments to
``execute``. ``SchemaToolsPlugin`` is the plugin that fronts the Schema
Manager API.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass
class ToolDefinition:
    """One tool as advertised in ``tools/list``.

    ``input_schema`` must itself be a valid JSON Schema document; the
    registry rejects the plugin otherwise.
    """

    name: str
    description: str
    input_schema: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


@dataclass
class ToolResult:
    """Content items returned from a tool call.

    Failures the caller should see (schema not found, API rejected the
    definition) are reported with ``is_error`` set rather than raised.
    """

    content: list[dict[str, Any]]
    is_error: bool = False

    @classmethod
    def text(cls, text: str, is_error: bool = False) -> ToolResult:
        return cls(content=[{"type": "text", "text": text}], is_error=is_error)

    @classmethod
    def json(cls, payload: Any) -> ToolResult:
        """Wrap a DTO payload as indented JSON text (UUIDs and dates via ``str``)."""
        return cls.text(json.dumps(payload, indent=2, default=str))

    def to_dict(self) -> dict[str, Any]:
        return {"content": self.content, "isError": self.is_error}


class PluginBase(ABC):
    """Base class for tool plugins registered with ``MCPServer``."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Short identifier used in logs."""

    @property
    @abstractmethod
    def version(self) -> str:
        """Plugin version used in logs."""

    @abstractmethod
    def get_tools(self) -> list[ToolDefinition]:
        """Return the tools this plugin serves.

        Called at registration and again for every ``tools/list``, so the
        result should be cheap to build and stable.
        """

    @abstractmethod
    async def execute(self, tool_name: str, arguments: dict[str, Any]) -> ToolResult:
        """Run one of this plugin's tools.

        Args:
            tool_name: A name returned by ``get_tools``.
            arguments: Call arguments, already validated against the tool's
                input schema.

        Returns:
            The tool's content. Unexpected exceptions are wrapped by the
            registry into ``ToolExecutionError``.
        """

    async def cleanup(self) -> None:
        """Release clients or connections at server shutdown."""
        return None

"""Schema management tools backed by the Schema Manager API.

Each tool has a typed argument class built once from the schema-validated
arguments, so handlers never deal with raw dictionaries.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from mcp_schema_server.clients.schema_manager import SchemaEntity, SchemaManagerClient
from mcp_schema_server.plugins.base import PluginBase, ToolDefinition, ToolResult
from mcp_schema_server.plugins.registry import ToolArgumentsError

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 50
DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 10


def _parse_uuid(value: str) -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except ValueError:
        raise ToolArgumentsError("Valid schema ID (GUID) is required") from None


def _non_empty(value: str | None) -> str | None:
    return value if value else None


def _contains(haystack: str | None, needle: str) -> bool:
    return haystack is not None and needle.casefold() in haystack.casefold()


@dataclass(frozen=True)
class GetSchemaArgs:
    """Arguments for get-schema. ``id`` wins when both are given."""

    id: uuid.UUID | None
    composite_key: str | None

    @classmethod
    def from_arguments(cls, arguments: dict[str, Any]) -> GetSchemaArgs:
        raw_id = _non_empty(arguments.get("id"))
        composite_key = _non_empty(arguments.get("composite_key"))
        if raw_id is None and composite_key is None:
            raise ToolArgumentsError("Either id or composite_key is required")
        return cls(id=_parse_uuid(raw_id) if raw_id else None, composite_key=composite_key)


@dataclass(frozen=True)
class ListSchemasArgs:
    version: str | None
    name: str | None
    limit: int

    @classmethod
    def from_arguments(cls, arguments: dict[str, Any]) -> ListSchemasArgs:
        return cls(
            version=_non_empty(arguments.get("version")),
            name=_non_empty(arguments.get("name")),
            limit=arguments.get("limit", DEFAULT_LIST_LIMIT),
        )


@dataclass(frozen=True)
class DefinitionArgs:
    """Arguments for tools taking a single schema definition."""

    definition: str

    @classmethod
    def from_arguments(cls, arguments: dict[str, Any]) -> DefinitionArgs:
        return cls(definition=arguments["definition"])


@dataclass(frozen=True)
class BreakingChangesArgs:
    old_definition: str
    new_definition: str

    @classmethod
    def from_arguments(cls, arguments: dict[str, Any]) -> BreakingChangesArgs:
        return cls(
            old_definition=arguments["old_definition"],
            new_definition=arguments["new_definition"],
        )


@dataclass(frozen=True)
class SearchSchemasArgs:
    query: str
    version: str | None
    schema_type: str | None

    @classmethod
    def from_arguments(cls, arguments: dict[str, Any]) -> SearchSchemasArgs:
        return cls(
            query=arguments["query"],
            version=_non_empty(arguments.get("version")),
            schema_type=_non_empty(arguments.get("schema_type")),
        )

    def matches(self, schema: SchemaEntity) -> bool:
        """Case-insensitive match of the query and the optional filters."""
        if self.version and not _contains(schema.version, self.version):
            return False
        if self.schema_type and not _contains(schema.schema_type, self.schema_type):
            return False
        return (
            _contains(schema.name, self.query)
            or _contains(schema.description, self.query)
            or _contains(schema.definition, self.query)
        )


@dataclass(frozen=True)
class PagedSchemasArgs:
    page: int
    page_size: int

    @classmethod
    def from_arguments(cls, arguments: dict[str, Any]) -> PagedSchemasArgs:
        return cls(
            page=arguments.get("page", DEFAULT_PAGE),
            page_size=arguments.get("page_size", DEFAULT_PAGE_SIZE),
        )


@dataclass(frozen=True)
class SchemaIdArgs:
    """Arguments for tools addressing one schema by id."""

    id: uuid.UUID

    @classmethod
    def from_arguments(cls, arguments: dict[str, Any]) -> SchemaIdArgs:
        return cls(id=_parse_uuid(arguments["id"]))


@dataclass(frozen=True)
class SchemaFieldsArgs:
    """Arguments for create-schema and update-schema."""

    id: uuid.UUID | None
    version: str
    name: str
    definition: str
    description: str | None
    schema_type: str | None

    @classmethod
    def from_arguments(cls, arguments: dict[str, Any]) -> SchemaFieldsArgs:
        raw_id = arguments.get("id")
        return cls(
            id=_parse_uuid(raw_id) if raw_id is not None else None,
            version=arguments["version"],
            name=arguments["name"],
            definition=arguments["definition"],
            description=_non_empty(arguments.get("description")),
            schema_type=_non_empty(arguments.get("schema_type")),
        )

    def to_entity(self) -> SchemaEntity:
        return SchemaEntity(
            id=self.id,
            version=self.version,
            name=self.name,
            description=self.description,
            definition=self.definition,
            schema_type=self.schema_type,
        )


_STRING = {"type": "string"}
_NON_EMPTY = {"type": "string", "minLength": 1}


def _schema_fields(require_id: bool) -> dict[str, Any]:
    properties: dict[str, Any] = {
        "version": {**_NON_EMPTY, "description": "Schema version"},
        "name": {**_NON_EMPTY, "description": "Schema name"},
        "description": {**_STRING, "description": "Schema description (optional)"},
        "definition": {**_NON_EMPTY, "description": "JSON schema definition"},
        "schema_type": {**_STRING, "description": "Schema type (optional)"},
    }
    required = ["version", "name", "definition"]
    if require_id:
        properties = {"id": {**_STRING, "description": "Schema ID (GUID)"}, **properties}
        required = ["id", *required]
    return {"type": "object", "properties": properties, "required": required}


TOOL_DEFINITIONS = [
    ToolDefinition(
        name="get-schema",
        description="Retrieve a specific schema by ID or composite key",
        input_schema={
            "type": "object",
            "properties": {
                "id": {**_STRING, "description": "Schema ID (GUID)"},
                "composite_key": {**_STRING, "description": "Composite key (version_name)"},
            },
            "anyOf": [{"required": ["id"]}, {"required": ["composite_key"]}],
        },
    ),
    ToolDefinition(
        name="list-schemas",
        description="List schemas with optional filtering",
        input_schema={
            "type": "object",
            "properties": {
                "version": {**_STRING, "description": "Filter by version"},
                "name": {**_STRING, "description": "Filter by name"},
                "limit": {
                    "type": "integer",
                    "description": "Maximum number of results",
                    "minimum": 1,
                    "maximum": 100,
                },
            },
        },
    ),
    ToolDefinition(
        name="validate-schema",
        description="Validate a schema definition",
        input_schema={
            "type": "object",
            "properties": {
                "definition": {**_NON_EMPTY, "description": "Schema definition to validate"},
            },
            "required": ["definition"],
        },
    ),
    ToolDefinition(
        name="analyze-breaking-changes",
        description="Analyze breaking changes between two schema versions",
        input_schema={
            "type": "object",
            "properties": {
                "old_definition": {**_NON_EMPTY, "description": "Old schema definition"},
                "new_definition": {**_NON_EMPTY, "description": "New schema definition"},
            },
            "required": ["old_definition", "new_definition"],
        },
    ),
    ToolDefinition(
        name="search-schemas",
        description="Search schemas by various criteria",
        input_schema={
            "type": "object",
            "properties": {
                "query": {**_NON_EMPTY, "description": "Search query"},
                "version": {**_STRING, "description": "Filter by version"},
                "schema_type": {**_STRING, "description": "Filter by schema type"},
            },
            "required": ["query"],
        },
    ),
    ToolDefinition(
        name="get-paged-schemas",
        description="Get paginated list of schemas with metadata",
        input_schema={
            "type": "object",
            "properties": {
                "page": {"type": "integer", "description": "Page number (1-based)", "minimum": 1},
                "page_size": {
                    "type": "integer",
                    "description": "Page size (1-100)",
                    "minimum": 1,
                    "maximum": 100,
                },
            },
        },
    ),
    ToolDefinition(
        name="get-schemas-by-definition",
        description="Find all schemas that match a specific definition",
        input_schema={
            "type": "object",
            "properties": {
                "definition": {**_NON_EMPTY, "description": "Schema definition to search for"},
            },
            "required": ["definition"],
        },
    ),
    ToolDefinition(
        name="check-schema-exists",
        description="Check if a schema exists by ID",
        input_schema={
            "type": "object",
            "properties": {"id": {**_STRING, "description": "Schema ID (GUID)"}},
            "required": ["id"],
        },
    ),
    ToolDefinition(
        name="create-schema",
        description="Create a new schema entity",
        input_schema=_schema_fields(require_id=False),
    ),
    ToolDefinition(
        name="update-schema",
        description="Update an existing schema (validates for breaking changes and references)",
        input_schema=_schema_fields(require_id=True),
    ),
    ToolDefinition(
        name="delete-schema",
        description="Delete a schema (validates for references before deletion)",
        input_schema={
            "type": "object",
            "properties": {"id": {**_STRING, "description": "Schema ID (GUID)"}},
            "required": ["id"],
        },
    ),
]


class SchemaToolsPlugin(PluginBase):
    """Exposes Schema Manager operations as MCP tools."""

    def __init__(self, client: SchemaManagerClient) -> None:
        """Initialize the plugin.

        Args:
            client: Schema Manager API client, owned by the plugin.
        """
        self._client = client
        self._handlers: dict[str, Callable[[dict[str, Any]], Awaitable[ToolResult]]] = {
            "get-schema": self._get_schema,
            "list-schemas": self._list_schemas,
            "validate-schema": self._validate_schema,
            "analyze-breaking-changes": self._analyze_breaking_changes,
            "search-schemas": self._search_schemas,
            "get-paged-schemas": self._get_paged_schemas,
            "get-schemas-by-definition": self._get_schemas_by_definition,
            "check-schema-exists": self._check_schema_exists,
            "create-schema": self._create_schema,
            "update-schema": self._update_schema,
            "delete-schema": self._delete_schema,
        }

    @property
    def name(self) -> str:
        """Return plugin identifier."""
        return "schema"

    @property
    def version(self) -> str:
        """Return plugin version."""
        return "1.0.0"

    def get_tools(self) -> list[ToolDefinition]:
        """Return the schema management tools."""
        return list(TOOL_DEFINITIONS)

    async def execute(self, tool_name: str, arguments: dict[str, Any]) -> ToolResult:
        """Execute a schema tool.

        Raises:
            ToolArgumentsError: If the arguments cannot be converted.
        """
        handler = self._handlers.get(tool_name)
        if handler is None:
            return ToolResult.text(f"Unknown tool: {tool_name}", is_error=True)

        logger.debug("Calling schema tool: %s", tool_name)
        return await handler(arguments)

    async def cleanup(self) -> None:
        """Close the Schema Manager client."""
        await self._client.close()

    async def _get_schema(self, arguments: dict[str, Any]) -> ToolResult:
        args = GetSchemaArgs.from_arguments(arguments)
        if args.id is not None:
            schema = await self._client.get_schema(args.id)
        else:
            schema = await self._client.get_schema_by_composite_key(args.composite_key or "")

        if schema is None:
            return ToolResult.text("Schema not found")
        return ToolResult.json(schema.to_dict())

    async def _list_schemas(self, arguments: dict[str, Any]) -> ToolResult:
        args = ListSchemasArgs.from_arguments(arguments)
        if args.version:
            schemas = await self._client.list_schemas_by_version(args.version)
        elif args.name:
            schemas = await self._client.list_schemas_by_name(args.name)
        else:
            schemas = await self._client.list_schemas()

        return ToolResult.json([schema.to_dict() for schema in schemas[: args.limit]])

    async def _validate_schema(self, arguments: dict[str, Any]) -> ToolResult:
        args = DefinitionArgs.from_arguments(arguments)
        result = await self._client.validate_schema(args.definition)
        return ToolResult.json(result.to_dict())

    async def _analyze_breaking_changes(self, arguments: dict[str, Any]) -> ToolResult:
        args = BreakingChangesArgs.from_arguments(arguments)
        result = await self._client.analyze_breaking_changes(
            args.old_definition, args.new_definition
        )
        return ToolResult.json(result.to_dict())

    async def _search_schemas(self, arguments: dict[str, Any]) -> ToolResult:
        args = SearchSchemasArgs.from_arguments(arguments)
        schemas = await self._client.list_schemas()
        return ToolResult.json([schema.to_dict() for schema in schemas if args.matches(schema)])

    async def _get_paged_schemas(self, arguments: dict[str, Any]) -> ToolResult:
        args = PagedSchemasArgs.from_arguments(arguments)
        result = await self._client.get_paged_schemas(args.page, args.page_size)
        return ToolResult.json(result.to_dict())

    async def _get_schemas_by_definition(self, arguments: dict[str, Any]) -> ToolResult:
        args = DefinitionArgs.from_arguments(arguments)
        schemas = await self._client.list_schemas_by_definition(args.definition)
        return ToolResult.json([schema.to_dict() for schema in schemas])

    async def _check_schema_exists(self, arguments: dict[str, Any]) -> ToolResult:
        args = SchemaIdArgs.from_arguments(arguments)
        exists = await self._client.schema_exists(args.id)
        return ToolResult.json({"exists": exists})

    async def _create_schema(self, arguments: dict[str, Any]) -> ToolResult:
        args = SchemaFieldsArgs.from_arguments(arguments)
        created = await self._client.create_schema(args.to_entity())
        return ToolResult.json(created.to_dict())

    async def _update_schema(self, arguments: dict[str, Any]) -> ToolResult:
        args = SchemaFieldsArgs.from_arguments(arguments)
        if args.id is None:
            raise ToolArgumentsError("Valid schema ID (GUID) is required")
        updated = await self._client.update_schema(args.id, args.to_entity())
        return ToolResult.json(updated.to_dict())

    async def _delete_schema(self, arguments: dict[str, Any]) -> ToolResult:
        args = SchemaIdArgs.from_arguments(arguments)
        success = await self._client.delete_schema(args.id)
        if success:
            message = "Schema deleted successfully"
        else:
            message = "Schema not found or could not be deleted"
        return ToolResult.json({"success": success, "message": message})

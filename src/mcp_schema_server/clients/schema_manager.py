"""HTTP client for the Schema Manager API.

All schema operations are pass-through calls to the remote ``/api/Schema``
endpoints. Field names are camelCase on the wire and read case-insensitively.
"""

from __future__ import annotations

import logging
import urllib.parse
import uuid
from dataclasses import dataclass, field
from typing import Any

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
USER_AGENT = "mcp-schema-server/1.0"


class SchemaManagerError(Exception):
    """Raised when a Schema Manager call fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        """Initialize the error.

        Args:
            message: Human-readable error message.
            status_code: HTTP status returned by the Schema Manager, if any.
        """
        super().__init__(message)
        self.status_code = status_code


def _normalize(key: str) -> str:
    return key.replace("_", "").lower()


def _lookup(data: dict[str, Any], name: str, default: Any = None) -> Any:
    """Read a field regardless of its casing (``schemaType``, ``SchemaType``, ``schema_type``)."""
    wanted = _normalize(name)
    for key, value in data.items():
        if _normalize(key) == wanted:
            return value
    return default


def _segment(value: str) -> str:
    return urllib.parse.quote(value, safe="")


@dataclass
class SchemaEntity:
    """A schema stored in the Schema Manager."""

    version: str
    name: str
    id: uuid.UUID | None = None
    description: str | None = None
    definition: str | None = None
    schema_type: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def composite_key(self) -> str:
        """Key of the form ``version_name``."""
        return f"{self.version}_{self.name}"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SchemaEntity:
        """Build an entity from API JSON."""
        raw_id = _lookup(data, "id")
        return cls(
            id=uuid.UUID(str(raw_id)) if raw_id else None,
            version=_lookup(data, "version", "") or "",
            name=_lookup(data, "name", "") or "",
            description=_lookup(data, "description"),
            definition=_lookup(data, "definition"),
            schema_type=_lookup(data, "schema_type"),
            created_at=_lookup(data, "created_at"),
            updated_at=_lookup(data, "updated_at"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to API JSON, omitting unset fields."""
        data: dict[str, Any] = {
            "id": str(self.id) if self.id else None,
            "version": self.version,
            "name": self.name,
            "description": self.description,
            "definition": self.definition,
            "schemaType": self.schema_type,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "compositeKey": self.composite_key,
        }
        return {key: value for key, value in data.items() if value is not None}


@dataclass
class SchemaValidationResult:
    """Outcome of validating a schema definition."""

    is_valid: bool = False
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SchemaValidationResult:
        """Build a result from API JSON."""
        return cls(
            is_valid=bool(_lookup(data, "is_valid", False)),
            errors=list(_lookup(data, "errors") or []),
            warnings=list(_lookup(data, "warnings") or []),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to camelCase JSON."""
        return {"isValid": self.is_valid, "errors": self.errors, "warnings": self.warnings}


@dataclass
class BreakingChangeAnalysisResult:
    """Outcome of comparing two schema definitions."""

    has_breaking_changes: bool = False
    breaking_changes: list[str] = field(default_factory=list)
    non_breaking_changes: list[str] = field(default_factory=list)
    summary: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BreakingChangeAnalysisResult:
        """Build a result from API JSON."""
        return cls(
            has_breaking_changes=bool(_lookup(data, "has_breaking_changes", False)),
            breaking_changes=list(_lookup(data, "breaking_changes") or []),
            non_breaking_changes=list(_lookup(data, "non_breaking_changes") or []),
            summary=_lookup(data, "summary", "") or "",
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to camelCase JSON."""
        return {
            "hasBreakingChanges": self.has_breaking_changes,
            "breakingChanges": self.breaking_changes,
            "nonBreakingChanges": self.non_breaking_changes,
            "summary": self.summary,
        }


@dataclass
class PagedSchemaResult:
    """One page of schemas with paging metadata."""

    data: list[SchemaEntity] = field(default_factory=list)
    page: int = 1
    page_size: int = 10
    total_count: int = 0
    total_pages: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PagedSchemaResult:
        """Build a result from API JSON."""
        return cls(
            data=[SchemaEntity.from_dict(item) for item in _lookup(data, "data") or []],
            page=int(_lookup(data, "page", 1)),
            page_size=int(_lookup(data, "page_size", 10)),
            total_count=int(_lookup(data, "total_count", 0)),
            total_pages=int(_lookup(data, "total_pages", 0)),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to camelCase JSON."""
        return {
            "data": [entity.to_dict() for entity in self.data],
            "page": self.page,
            "pageSize": self.page_size,
            "totalCount": self.total_count,
            "totalPages": self.total_pages,
        }


class SchemaManagerClient:
    """Async client for the Schema Manager HTTP API.

    Every failure is logged and re-raised as SchemaManagerError. Lookups that
    the API answers with 404 return None (or False for deletes).
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Root URL of the Schema Manager.
            timeout: Request timeout in seconds.
            client: Preconfigured HTTP client (used by tests).
        """
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
        )

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        url: str,
        *,
        json: Any | None = None,
        params: dict[str, Any] | None = None,
        not_found_ok: bool = False,
    ) -> httpx.Response | None:
        try:
            response = await self._client.request(method, url, json=json, params=params)
        except httpx.HTTPError as e:
            logger.error("Schema Manager request %s %s failed: %s", method, url, e)
            raise SchemaManagerError(f"Schema Manager request failed: {e}") from e

        if not_found_ok and response.status_code == httpx.codes.NOT_FOUND:
            logger.debug("Schema Manager returned 404 for %s %s", method, url)
            return None

        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                "Schema Manager returned %d for %s %s", response.status_code, method, url
            )
            raise SchemaManagerError(
                f"Schema Manager returned {response.status_code} for {method} {url}",
                status_code=response.status_code,
            ) from e

        return response

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise SchemaManagerError(f"Schema Manager returned invalid JSON: {e}") from e

    async def _get_list(self, url: str) -> list[SchemaEntity]:
        response = await self._request("GET", url)
        data = self._json(response) or []
        schemas = [SchemaEntity.from_dict(item) for item in data]
        logger.debug("Retrieved %d schemas from %s", len(schemas), url)
        return schemas

    async def _get_one(self, url: str) -> SchemaEntity | None:
        response = await self._request("GET", url, not_found_ok=True)
        if response is None:
            return None
        return SchemaEntity.from_dict(self._json(response))

    async def list_schemas(self) -> list[SchemaEntity]:
        """Get all schemas."""
        return await self._get_list("/api/Schema")

    async def get_schema(self, schema_id: uuid.UUID) -> SchemaEntity | None:
        """Get a schema by id, or None if it does not exist."""
        return await self._get_one(f"/api/Schema/{schema_id}")

    async def get_schema_by_composite_key(self, composite_key: str) -> SchemaEntity | None:
        """Get a schema by its ``version_name`` key.

        The key is split on the first underscore. A key without one is
        invalid and yields None.
        """
        version, sep, name = composite_key.partition("_")
        if not sep:
            logger.warning(
                "Invalid composite key format: %s. Expected format: 'version_name'", composite_key
            )
            return None
        return await self._get_one(f"/api/Schema/composite/{_segment(version)}/{_segment(name)}")

    async def list_schemas_by_version(self, version: str) -> list[SchemaEntity]:
        """Get schemas with the given version."""
        return await self._get_list(f"/api/Schema/version/{_segment(version)}")

    async def list_schemas_by_name(self, name: str) -> list[SchemaEntity]:
        """Get schemas with the given name."""
        return await self._get_list(f"/api/Schema/name/{_segment(name)}")

    async def list_schemas_by_definition(self, definition: str) -> list[SchemaEntity]:
        """Get schemas whose definition matches exactly."""
        return await self._get_list(f"/api/Schema/definition/{_segment(definition)}")

    async def validate_schema(self, definition: str) -> SchemaValidationResult:
        """Validate a schema definition."""
        response = await self._request(
            "POST", "/api/Schema/validate", json={"definition": definition}
        )
        result = SchemaValidationResult.from_dict(self._json(response) or {})
        logger.debug("Schema validation completed. Valid: %s", result.is_valid)
        return result

    async def analyze_breaking_changes(
        self, old_definition: str, new_definition: str
    ) -> BreakingChangeAnalysisResult:
        """Compare two schema definitions for breaking changes."""
        response = await self._request(
            "POST",
            "/api/Schema/analyze-breaking-changes",
            json={"oldDefinition": old_definition, "newDefinition": new_definition},
        )
        result = BreakingChangeAnalysisResult.from_dict(self._json(response) or {})
        logger.debug("Breaking change analysis completed: %s", result.has_breaking_changes)
        return result

    async def get_paged_schemas(self, page: int, page_size: int) -> PagedSchemaResult:
        """Get one page of schemas."""
        response = await self._request(
            "GET", "/api/Schema/paged", params={"page": page, "pageSize": page_size}
        )
        result = PagedSchemaResult.from_dict(self._json(response) or {})
        logger.debug(
            "Retrieved %d schemas (page %d/%d)", len(result.data), result.page, result.total_pages
        )
        return result

    async def schema_exists(self, schema_id: uuid.UUID) -> bool:
        """Check whether a schema exists."""
        response = await self._request("GET", f"/api/Schema/{schema_id}/exists")
        return bool(self._json(response))

    async def create_schema(self, schema: SchemaEntity) -> SchemaEntity:
        """Create a schema and return the stored entity."""
        response = await self._request("POST", "/api/Schema", json=schema.to_dict())
        created = SchemaEntity.from_dict(self._json(response))
        logger.debug("Created schema %s", created.id)
        return created

    async def update_schema(self, schema_id: uuid.UUID, schema: SchemaEntity) -> SchemaEntity:
        """Replace a schema and return the stored entity."""
        response = await self._request("PUT", f"/api/Schema/{schema_id}", json=schema.to_dict())
        updated = SchemaEntity.from_dict(self._json(response))
        logger.debug("Updated schema %s", updated.id)
        return updated

    async def delete_schema(self, schema_id: uuid.UUID) -> bool:
        """Delete a schema. Returns False if it did not exist."""
        response = await self._request("DELETE", f"/api/Schema/{schema_id}", not_found_ok=True)
        if response is None:
            return False
        logger.debug("Deleted schema %s", schema_id)
        return True

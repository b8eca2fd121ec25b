"""Tests for the Schema Manager HTTP client."""

import asyncio
import json
import uuid

import httpx
import pytest

from mcp_schema_server.clients.schema_manager import (
    PagedSchemaResult,
    SchemaEntity,
    SchemaManagerClient,
    SchemaManagerError,
)

SCHEMA_ID = uuid.UUID("3fa85f64-5717-4562-b3fc-2c963f66afa6")

SCHEMA_JSON = {
    "id": str(SCHEMA_ID),
    "version": "v1",
    "name": "Customer",
    "description": "Customer record",
    "definition": '{"type": "object"}',
    "schemaType": "json",
    "createdAt": "2024-01-01T00:00:00Z",
}


class Recorder:
    """Mock transport handler that records requests and replays canned responses."""

    def __init__(self, responder) -> None:
        self.requests: list[httpx.Request] = []
        self._responder = responder

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._responder(request)


def make_client(responder) -> tuple[SchemaManagerClient, Recorder]:
    recorder = Recorder(responder)
    http = httpx.AsyncClient(
        base_url="http://schemas.test", transport=httpx.MockTransport(recorder)
    )
    return SchemaManagerClient("http://schemas.test", client=http), recorder


def run(coro):
    return asyncio.run(coro)


class TestSchemaEntity:
    """Tests for the schema DTO."""

    def test_reads_any_casing(self):
        """Should read camelCase, PascalCase and snake_case fields."""
        entity = SchemaEntity.from_dict(
            {"Id": str(SCHEMA_ID), "Version": "v2", "Name": "Order", "schema_type": "avro"}
        )

        assert entity.id == SCHEMA_ID
        assert entity.version == "v2"
        assert entity.schema_type == "avro"

    def test_composite_key(self):
        """Should join version and name."""
        assert SchemaEntity(version="v1", name="Customer").composite_key == "v1_Customer"

    def test_to_dict_omits_unset_fields(self):
        """Should write camelCase and skip None values."""
        d = SchemaEntity(version="v1", name="Customer", definition="{}").to_dict()

        assert d == {
            "version": "v1",
            "name": "Customer",
            "definition": "{}",
            "compositeKey": "v1_Customer",
        }


class TestSchemaManagerClient:
    """Tests for SchemaManagerClient requests and error handling."""

    def test_list_schemas(self):
        """Should GET /api/Schema and parse every entity."""
        client, recorder = make_client(lambda r: httpx.Response(200, json=[SCHEMA_JSON]))

        schemas = run(client.list_schemas())

        assert recorder.requests[0].method == "GET"
        assert recorder.requests[0].url.path == "/api/Schema"
        assert schemas[0].name == "Customer"
        assert schemas[0].id == SCHEMA_ID

    def test_get_schema(self):
        """Should GET a schema by id."""
        client, recorder = make_client(lambda r: httpx.Response(200, json=SCHEMA_JSON))

        schema = run(client.get_schema(SCHEMA_ID))

        assert recorder.requests[0].url.path == f"/api/Schema/{SCHEMA_ID}"
        assert schema.description == "Customer record"

    def test_get_schema_not_found(self):
        """Should return None on 404."""
        client, _ = make_client(lambda r: httpx.Response(404))

        assert run(client.get_schema(SCHEMA_ID)) is None

    def test_composite_key_splits_on_first_underscore(self):
        """Should keep later underscores in the name."""
        client, recorder = make_client(lambda r: httpx.Response(200, json=SCHEMA_JSON))

        run(client.get_schema_by_composite_key("v1_my_schema"))

        assert recorder.requests[0].url.path == "/api/Schema/composite/v1/my_schema"

    def test_composite_key_escapes_segments(self):
        """Should URL-escape path segments."""
        client, recorder = make_client(lambda r: httpx.Response(200, json=SCHEMA_JSON))

        run(client.get_schema_by_composite_key("1.0_a/b c"))

        assert recorder.requests[0].url.raw_path == b"/api/Schema/composite/1.0/a%2Fb%20c"

    def test_invalid_composite_key(self):
        """Should return None without calling the API."""
        client, recorder = make_client(lambda r: httpx.Response(200, json=SCHEMA_JSON))

        assert run(client.get_schema_by_composite_key("nounderscore")) is None
        assert recorder.requests == []

    @pytest.mark.parametrize(
        "method,argument,path",
        [
            ("list_schemas_by_version", "v1", "/api/Schema/version/v1"),
            ("list_schemas_by_name", "Customer", "/api/Schema/name/Customer"),
        ],
    )
    def test_filtered_lists(self, method, argument, path):
        """Should call the filter endpoints."""
        client, recorder = make_client(lambda r: httpx.Response(200, json=[SCHEMA_JSON]))

        schemas = run(getattr(client, method)(argument))

        assert recorder.requests[0].url.path == path
        assert len(schemas) == 1

    def test_list_by_definition_escapes(self):
        """Should escape the definition into one path segment."""
        client, recorder = make_client(lambda r: httpx.Response(200, json=[]))

        run(client.list_schemas_by_definition('{"type": "object"}'))

        assert b"%7B%22type%22%3A%20%22object%22%7D" in recorder.requests[0].url.raw_path

    def test_validate_schema(self):
        """Should POST the definition and parse the result."""
        client, recorder = make_client(
            lambda r: httpx.Response(
                200, json={"isValid": False, "errors": ["bad"], "warnings": []}
            )
        )

        result = run(client.validate_schema("{}"))

        request = recorder.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/api/Schema/validate"
        assert json.loads(request.content) == {"definition": "{}"}
        assert result.is_valid is False
        assert result.errors == ["bad"]

    def test_analyze_breaking_changes(self):
        """Should POST both definitions."""
        client, recorder = make_client(
            lambda r: httpx.Response(
                200,
                json={
                    "hasBreakingChanges": True,
                    "breakingChanges": ["removed field"],
                    "nonBreakingChanges": [],
                    "summary": "1 breaking change",
                },
            )
        )

        result = run(client.analyze_breaking_changes("old", "new"))

        body = json.loads(recorder.requests[0].content)
        assert body == {"oldDefinition": "old", "newDefinition": "new"}
        assert result.has_breaking_changes is True
        assert result.to_dict()["breakingChanges"] == ["removed field"]

    def test_get_paged_schemas(self):
        """Should pass page and pageSize as query parameters."""
        client, recorder = make_client(
            lambda r: httpx.Response(
                200,
                json={
                    "data": [SCHEMA_JSON],
                    "page": 2,
                    "pageSize": 5,
                    "totalCount": 6,
                    "totalPages": 2,
                },
            )
        )

        result = run(client.get_paged_schemas(2, 5))

        params = recorder.requests[0].url.params
        assert params["page"] == "2"
        assert params["pageSize"] == "5"
        assert isinstance(result, PagedSchemaResult)
        assert result.total_count == 6
        assert result.data[0].name == "Customer"

    def test_schema_exists(self):
        """Should GET the exists endpoint."""
        client, recorder = make_client(lambda r: httpx.Response(200, json=True))

        assert run(client.schema_exists(SCHEMA_ID)) is True
        assert recorder.requests[0].url.path == f"/api/Schema/{SCHEMA_ID}/exists"

    def test_create_schema(self):
        """Should POST the entity in camelCase."""
        client, recorder = make_client(lambda r: httpx.Response(201, json=SCHEMA_JSON))
        entity = SchemaEntity(version="v1", name="Customer", definition="{}", schema_type="json")

        created = run(client.create_schema(entity))

        body = json.loads(recorder.requests[0].content)
        assert body["schemaType"] == "json"
        assert "id" not in body
        assert created.id == SCHEMA_ID

    def test_update_schema(self):
        """Should PUT to the schema's URL."""
        client, recorder = make_client(lambda r: httpx.Response(200, json=SCHEMA_JSON))
        entity = SchemaEntity(id=SCHEMA_ID, version="v1", name="Customer", definition="{}")

        run(client.update_schema(SCHEMA_ID, entity))

        assert recorder.requests[0].method == "PUT"
        assert recorder.requests[0].url.path == f"/api/Schema/{SCHEMA_ID}"

    def test_delete_schema(self):
        """Should report True on success and False on 404."""
        ok_client, _ = make_client(lambda r: httpx.Response(204))
        missing_client, _ = make_client(lambda r: httpx.Response(404))

        assert run(ok_client.delete_schema(SCHEMA_ID)) is True
        assert run(missing_client.delete_schema(SCHEMA_ID)) is False

    def test_error_status_raises(self):
        """Should raise SchemaManagerError carrying the status."""
        client, _ = make_client(lambda r: httpx.Response(500, text="boom"))

        with pytest.raises(SchemaManagerError) as exc_info:
            run(client.list_schemas())

        assert exc_info.value.status_code == 500
        assert isinstance(exc_info.value.__cause__, httpx.HTTPStatusError)

    def test_not_found_on_list_raises(self):
        """Should treat 404 as an error where None is not meaningful."""
        client, _ = make_client(lambda r: httpx.Response(404))

        with pytest.raises(SchemaManagerError):
            run(client.list_schemas())

    def test_network_error_raises(self):
        """Should wrap transport failures."""

        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client, _ = make_client(refuse)

        with pytest.raises(SchemaManagerError, match="connection refused"):
            run(client.list_schemas())

    def test_invalid_json_raises(self):
        """Should wrap undecodable bodies."""
        client, _ = make_client(lambda r: httpx.Response(200, text="not json"))

        with pytest.raises(SchemaManagerError, match="invalid JSON"):
            run(client.list_schemas())

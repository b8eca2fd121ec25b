"""JSON-RPC 2.0 message parsing and formatting.

Implements the JSON-RPC 2.0 framing used by MCP: one JSON object per frame,
requests carry an ``id``, notifications do not. Batch arrays are not supported.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, fields
from typing import Any

# Standard JSON-RPC 2.0 error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

JSONRPC_VERSION = "2.0"

# Maximum frame size (1 MB)
MAX_FRAME_SIZE = 1_048_576


class JsonRpcError(Exception):
    """JSON-RPC error with code and message."""

    def __init__(self, code: int, message: str, data: Any | None = None) -> None:
        """Initialize the error.

        Args:
            code: JSON-RPC error code.
            message: Human-readable error message.
            data: Optional additional error data.
        """
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data


@dataclass
class JsonRpcRequest:
    """Represents a JSON-RPC request (has id)."""

    id: int | str
    method: str
    params: dict[str, Any] | None = None
    jsonrpc: str = JSONRPC_VERSION


@dataclass
class JsonRpcNotification:
    """Represents a JSON-RPC notification (no id)."""

    method: str
    params: dict[str, Any] | None = None
    jsonrpc: str = JSONRPC_VERSION


@dataclass
class ErrorObject:
    """Failure detail carried inside a response."""

    code: int
    message: str
    data: Any | None = None


@dataclass
class JsonRpcResponse:
    """Result or error for a request.

    Exactly one of ``result`` and ``error`` is set.
    """

    id: int | str | None
    result: Any | None = None
    error: ErrorObject | None = None
    jsonrpc: str = JSONRPC_VERSION

    @classmethod
    def success(cls, msg_id: int | str | None, result: Any) -> JsonRpcResponse:
        """Build a success response."""
        return cls(id=msg_id, result=result)

    @classmethod
    def failure(
        cls,
        msg_id: int | str | None,
        code: int,
        message: str,
        data: Any | None = None,
    ) -> JsonRpcResponse:
        """Build an error response."""
        return cls(id=msg_id, error=ErrorObject(code=code, message=message, data=data))


def _load_object(raw: str) -> dict[str, Any]:
    """Decode a frame into a JSON object.

    Raises:
        JsonRpcError: If the frame is too large, not JSON, or not an object.
    """
    # Check frame size before parsing
    if len(raw) > MAX_FRAME_SIZE:
        raise JsonRpcError(
            PARSE_ERROR, f"Message too large: {len(raw)} bytes exceeds {MAX_FRAME_SIZE} limit"
        )

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise JsonRpcError(PARSE_ERROR, f"Parse error: {e}") from e

    if isinstance(data, list):
        raise JsonRpcError(INVALID_REQUEST, "Invalid Request: batch messages are not supported")
    if not isinstance(data, dict):
        raise JsonRpcError(INVALID_REQUEST, "Invalid Request: message must be an object")

    return data


def has_id(raw: str) -> bool:
    """Probe a frame for an ``id`` member.

    Only the top level is inspected, so malformed method or params fields
    never fail the probe.

    Args:
        raw: Raw frame text.

    Returns:
        True if the frame is a request, False for a notification.

    Raises:
        JsonRpcError: If the frame is not a JSON object.
    """
    return "id" in _load_object(raw)


def _method_and_params(data: dict[str, Any]) -> tuple[str, dict[str, Any] | None]:
    method = data.get("method")
    if not isinstance(method, str):
        raise JsonRpcError(INVALID_REQUEST, "Invalid Request: method must be a string")

    params = data.get("params")
    if params is not None and not isinstance(params, dict):
        raise JsonRpcError(INVALID_REQUEST, "Invalid Request: params must be an object")

    return method, params


def parse_request(raw: str) -> JsonRpcRequest:
    """Deserialize a frame into a request.

    Args:
        raw: Raw frame text.

    Returns:
        Parsed request.

    Raises:
        JsonRpcError: If the frame is not a valid request.
    """
    data = _load_object(raw)
    if "id" not in data:
        raise JsonRpcError(INVALID_REQUEST, "Invalid Request: id is required")

    msg_id = data["id"]
    if isinstance(msg_id, bool) or not isinstance(msg_id, int | str):
        raise JsonRpcError(INVALID_REQUEST, "Invalid Request: id must be integer or string")

    method, params = _method_and_params(data)
    return JsonRpcRequest(id=msg_id, method=method, params=params)


def parse_notification(raw: str) -> JsonRpcNotification:
    """Deserialize a frame into a notification.

    Args:
        raw: Raw frame text.

    Returns:
        Parsed notification.

    Raises:
        JsonRpcError: If the frame is not a valid notification.
    """
    data = _load_object(raw)
    if "id" in data:
        raise JsonRpcError(INVALID_REQUEST, "Invalid Request: notifications must not carry an id")

    method, params = _method_and_params(data)
    return JsonRpcNotification(method=method, params=params)


def parse_message(raw: str) -> JsonRpcRequest | JsonRpcNotification:
    """Parse a frame as either a request or a notification.

    Args:
        raw: Raw frame text.

    Returns:
        Parsed request or notification.

    Raises:
        JsonRpcError: If the frame is invalid.
    """
    if has_id(raw):
        return parse_request(raw)
    return parse_notification(raw)


def extract_id(raw: str) -> int | str | None:
    """Recover the ``id`` of a frame, or give up.

    Numeric ids are coerced to int and string ids are kept. Anything else,
    including text that is not JSON at all, yields None. Never raises.

    Args:
        raw: Raw frame text.

    Returns:
        The recovered id, or None.
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError, RecursionError):
        return None

    if not isinstance(data, dict):
        return None

    msg_id = data.get("id")
    if isinstance(msg_id, bool):
        return None
    if isinstance(msg_id, str | int):
        return msg_id
    if isinstance(msg_id, float) and msg_id.is_integer():
        return int(msg_id)
    return None


def _camel_case(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _to_wire(value: Any) -> Any:
    """Render a response model as wire data, omitting None-valued fields."""
    if isinstance(value, ErrorObject | JsonRpcResponse):
        wire = {}
        for f in fields(value):
            item = getattr(value, f.name)
            if item is None:
                continue
            wire[_camel_case(f.name)] = _to_wire(item)
        return wire
    if isinstance(value, dict):
        return {key: _to_wire(item) for key, item in value.items() if item is not None}
    if isinstance(value, list):
        return [_to_wire(item) for item in value]
    return value


def serialize_response(response: JsonRpcResponse) -> str:
    """Serialize a response frame.

    Null-valued fields are omitted and field names are camelCase. ``id``
    is always present, also when it is null.

    Args:
        response: Response to serialize.

    Returns:
        JSON string.
    """
    wire = {"jsonrpc": response.jsonrpc, "id": response.id}
    wire.update(_to_wire(response))
    return json.dumps(wire, separators=(",", ":"))


def format_response(msg_id: int | str, result: Any) -> str:
    """Format a successful JSON-RPC response.

    Args:
        msg_id: Request ID to echo back.
        result: Result payload.

    Returns:
        JSON string.
    """
    return serialize_response(JsonRpcResponse.success(msg_id, result))


def format_error(
    msg_id: int | str | None,
    code: int,
    message: str,
    data: Any | None = None,
) -> str:
    """Format a JSON-RPC error response.

    Args:
        msg_id: Request ID (or None when it could not be recovered).
        code: Error code.
        message: Error message.
        data: Optional error data.

    Returns:
        JSON string.
    """
    error_obj: dict[str, Any] = {
        "code": code,
        "message": message,
    }
    if data is not None:
        error_obj["data"] = data

    response = {
        "jsonrpc": JSONRPC_VERSION,
        "id": msg_id,
        "error": error_obj,
    }
    return json.dumps(response, separators=(",", ":"))


def format_notification(method: str, params: dict[str, Any] | None = None) -> str:
    """Format a JSON-RPC notification (server to client).

    Args:
        method: Notification method name.
        params: Optional parameters.

    Returns:
        JSON string.
    """
    notification: dict[str, Any] = {
        "jsonrpc": JSONRPC_VERSION,
        "method": method,
    }
    if params is not None:
        notification["params"] = params

    return json.dumps(notification, separators=(",", ":"))

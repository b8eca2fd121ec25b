"""Server configuration loader.

This module loads the server configuration from a YAML file. String values
may reference environment variables with ``${VAR_NAME}`` syntax, which is
how deployments inject the Schema Manager URL without editing the file.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from mcp_schema_server.transport.outbound import OverflowPolicy

TRANSPORT_KINDS = ("stdio", "http")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(Exception):
    """Raised when configuration loading or validation fails."""

    pass


def expand_env_vars(value: str) -> str:
    """Expand environment variables in a string.

    Supports ${VAR_NAME} syntax. Unknown variables are left unchanged.

    Args:
        value: String potentially containing environment variable references.

    Returns:
        String with known environment variables expanded.
    """
    pattern = re.compile(r"\$\{([^}]+)\}")

    def replacer(match: re.Match[str]) -> str:
        env_value = os.environ.get(match.group(1))
        if env_value is not None:
            return env_value
        return match.group(0)

    return pattern.sub(replacer, value)


def _expand(value: Any) -> Any:
    if isinstance(value, str):
        return expand_env_vars(value)
    if isinstance(value, dict):
        return {key: _expand(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_expand(item) for item in value]
    return value


def _as_int(value: Any, name: str, minimum: int = 0) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from e
    if number < minimum:
        raise ConfigError(f"{name} must be >= {minimum}, got {number}")
    return number


def _as_float(value: Any, name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{name} must be a number, got {value!r}") from e
    if number <= 0:
        raise ConfigError(f"{name} must be positive, got {number}")
    return number


@dataclass
class QueueConfig:
    """Outbound SSE queue settings."""

    maxsize: int = 0
    overflow: OverflowPolicy = OverflowPolicy.BLOCK
    frame_ttl: float | None = None


@dataclass
class TransportConfig:
    """Transport selection and HTTP settings."""

    kind: str = "stdio"
    host: str = "127.0.0.1"
    port: int = 8080
    base_path: str = "/mcp"
    cors_origin: str = "*"
    stop_timeout: float = 5.0
    queue: QueueConfig = field(default_factory=QueueConfig)


@dataclass
class ServerConfig:
    """Complete server configuration."""

    name: str = "mcp-schema-server"
    version: str = "1.0.0"
    transport: TransportConfig = field(default_factory=TransportConfig)
    schema_manager_url: str = "http://localhost:5000"
    schema_manager_timeout: float = 30.0
    log_level: str = "INFO"

    @property
    def server_info(self) -> dict[str, str]:
        """Name and version advertised to the peer."""
        return {"name": self.name, "version": self.version}

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> ServerConfig:
        """Create a ServerConfig from a configuration dictionary.

        Args:
            config: Dictionary parsed from YAML configuration.

        Returns:
            ServerConfig instance with all settings populated.

        Raises:
            ConfigError: If a value is invalid.
        """
        config = _expand(config)
        server = config.get("server") or {}
        transport = config.get("transport") or {}
        queue = transport.get("queue") or {}
        schema_manager = config.get("schema_manager") or {}
        logging_section = config.get("logging") or {}

        kind = str(transport.get("kind", "stdio")).lower()
        if kind not in TRANSPORT_KINDS:
            raise ConfigError(f"transport.kind must be one of {TRANSPORT_KINDS}, got {kind!r}")

        overflow_name = str(queue.get("overflow", OverflowPolicy.BLOCK.value)).lower()
        try:
            overflow = OverflowPolicy(overflow_name)
        except ValueError as e:
            raise ConfigError(f"transport.queue.overflow is invalid: {overflow_name!r}") from e

        frame_ttl = queue.get("frame_ttl")
        log_level = str(logging_section.get("level", "INFO")).upper()
        if log_level not in LOG_LEVELS:
            raise ConfigError(f"logging.level must be one of {LOG_LEVELS}, got {log_level!r}")

        return cls(
            name=str(server.get("name", "mcp-schema-server")),
            version=str(server.get("version", "1.0.0")),
            transport=TransportConfig(
                kind=kind,
                host=str(transport.get("host", "127.0.0.1")),
                port=_as_int(transport.get("port", 8080), "transport.port", minimum=0),
                base_path=str(transport.get("base_path", "/mcp")),
                cors_origin=str(transport.get("cors_origin", "*")),
                stop_timeout=_as_float(
                    transport.get("stop_timeout", 5.0), "transport.stop_timeout"
                ),
                queue=QueueConfig(
                    maxsize=_as_int(queue.get("maxsize", 0), "transport.queue.maxsize"),
                    overflow=overflow,
                    frame_ttl=(
                        None
                        if frame_ttl is None
                        else _as_float(frame_ttl, "transport.queue.frame_ttl")
                    ),
                ),
            ),
            schema_manager_url=str(schema_manager.get("base_url", "http://localhost:5000")),
            schema_manager_timeout=_as_float(
                schema_manager.get("timeout", 30.0), "schema_manager.timeout"
            ),
            log_level=log_level,
        )


def load_config(path: Path | None) -> ServerConfig:
    """Load server configuration from a YAML file.

    Args:
        path: Path to the YAML file, or None for defaults.

    Returns:
        ServerConfig instance.

    Raises:
        ConfigError: If the file cannot be found, parsed, or validated.
    """
    if path is None:
        return ServerConfig()

    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse config YAML: {e}") from e

    if config is None:
        return ServerConfig()
    if not isinstance(config, dict):
        raise ConfigError("Config must be a YAML mapping")

    return ServerConfig.from_dict(config)

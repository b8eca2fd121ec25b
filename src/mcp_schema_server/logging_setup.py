"""Process-wide logging setup.

Logs always go to stderr: stdout carries the protocol stream when the stdio
transport is in use.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

LOG_FORMAT = "[MCP] %(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO", stream: TextIO | None = None) -> logging.Handler:
    """Install a single stderr handler on the root logger.

    Args:
        level: Log level name.
        stream: Output stream (defaults to sys.stderr).

    Returns:
        The installed handler.
    """
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level.upper())

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    return handler

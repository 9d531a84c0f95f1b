"""Server runtime detection.

Classifies a server artifact path into the runtime needed to launch it,
first by file extension and then by keywords found in the path.
"""

from __future__ import annotations

import logging
import os
from enum import Enum

from mcp_evals.models import ServerConfiguration

logger = logging.getLogger(__name__)


class ServerType(str, Enum):
    """Runtime category of a server artifact."""

    TYPESCRIPT_SCRIPT = "typescript"
    NODE_SCRIPT = "node"
    NATIVE_EXECUTABLE = "executable"
    PYTHON_SCRIPT = "python"
    UNKNOWN = "unknown"


EXTENSION_TYPES: dict[str, ServerType] = {
    ".exe": ServerType.NATIVE_EXECUTABLE,
    ".ts": ServerType.TYPESCRIPT_SCRIPT,
    ".js": ServerType.NODE_SCRIPT,
    ".py": ServerType.PYTHON_SCRIPT,
}

# Checked in order; first row with a keyword present in the path wins
PATH_KEYWORD_TYPES: list[tuple[tuple[str, ...], ServerType]] = [
    (("typescript", "node"), ServerType.TYPESCRIPT_SCRIPT),
    (("csharp", "dotnet"), ServerType.NATIVE_EXECUTABLE),
    (("python", "py"), ServerType.PYTHON_SCRIPT),
]


def detect_server_type(path: str | None, config: ServerConfiguration | None = None) -> ServerType:
    """Detect the runtime needed to launch a server artifact.

    Args:
        path: Filesystem path of the server artifact.
        config: Server configuration, used only for log context.

    Returns:
        The detected ServerType, UNKNOWN if nothing matches.
    """
    if not path:
        return ServerType.UNKNOWN

    extension = os.path.splitext(path)[1].lower()
    if extension in EXTENSION_TYPES:
        return EXTENSION_TYPES[extension]

    lowered = path.lower()
    for keywords, server_type in PATH_KEYWORD_TYPES:
        if any(keyword in lowered for keyword in keywords):
            logger.debug(f"Detected {server_type.value} server from path keywords: {path}")
            return server_type

    if config is not None:
        logger.debug(f"Could not detect server type for {config.config_key()}")
    return ServerType.UNKNOWN

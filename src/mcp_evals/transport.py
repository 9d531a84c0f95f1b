"""Transport resolution and creation for MCP server connections.

Resolves which transport a server configuration asks for and builds the
handle a client connects through. HTTP servers with a local path are
launched and probed here; stdio servers are only described, since the
MCP client spawns the process itself when it connects.
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass, field
from urllib.parse import urlparse

from mcp_evals.detection import ServerType, detect_server_type
from mcp_evals.errors import InvalidConfigurationError, ServerStartError
from mcp_evals.models import ServerConfiguration
from mcp_evals.process_manager import ServerProcessManager, build_launch_command

logger = logging.getLogger(__name__)

STDIO = "stdio"
HTTP = "http"


def resolve_transport_type(config: ServerConfiguration) -> str:
    """Decide which transport a server configuration uses.

    An explicit transport always wins and is returned lower-cased without
    validation. Otherwise a URL implies http and a path implies stdio.
    """
    if config.transport:
        return config.transport.lower()
    if config.url:
        return HTTP
    return STDIO


@dataclass
class StdioTransportHandle:
    """Launch description for a server spoken to over stdin/stdout."""

    command: str
    args: list[str] = field(default_factory=list)
    cwd: str | None = None
    server_type: ServerType = ServerType.UNKNOWN

    @property
    def process(self) -> None:
        """Stdio processes belong to the MCP client, never to the cache."""
        return None

    def describe(self) -> str:
        return " ".join([self.command, *self.args])


@dataclass
class HttpTransportHandle:
    """HTTP endpoint, optionally backed by a process launched here."""

    url: str
    process: asyncio.subprocess.Process | None = None

    def describe(self) -> str:
        return self.url


TransportHandle = StdioTransportHandle | HttpTransportHandle


class TransportFactory:
    """Builds transport handles, launching HTTP servers when needed."""

    def __init__(self, process_manager: ServerProcessManager) -> None:
        self._process_manager = process_manager

    async def create(self, kind: str, config: ServerConfiguration) -> TransportHandle:
        """Create a transport handle for a resolved transport kind.

        Args:
            kind: Transport kind from resolve_transport_type.
            config: Server configuration.

        Returns:
            A StdioTransportHandle or HttpTransportHandle.

        Raises:
            InvalidConfigurationError: If required fields are missing or malformed,
                or the transport kind is unsupported.
            ServerStartError: If a launched HTTP server exits or never becomes ready.
        """
        if kind == HTTP:
            return await self._create_http(config)
        if kind == STDIO:
            return self._create_stdio(config)
        raise InvalidConfigurationError(f"Unsupported transport type: {kind}")

    async def _create_http(self, config: ServerConfiguration) -> HttpTransportHandle:
        url = config.url
        if not url:
            raise InvalidConfigurationError("HTTP transport requires a 'url' field in server configuration")

        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise InvalidConfigurationError(f"Invalid HTTP URL: {url}")

        if not config.path:
            logger.debug(f"Connecting to already running server at {url}")
            return HttpTransportHandle(url=url)

        server_type = detect_server_type(config.path, config)
        process = await self._process_manager.start_server(server_type, config.path, config)

        try:
            ready = await self._process_manager.is_server_ready(url, timeout=config.timeout)
        except asyncio.CancelledError:
            await self._process_manager.stop(process)
            raise

        if not ready:
            output = self._process_manager.output_tail(process)
            await self._process_manager.stop(process)
            raise ServerStartError(
                f"Server at {url} did not become ready within {config.timeout}s",
                exit_code=process.returncode,
                output=output,
            )

        logger.info(f"HTTP server ready at {url}")
        return HttpTransportHandle(url=url, process=process)

    def _create_stdio(self, config: ServerConfiguration) -> StdioTransportHandle:
        path = config.path
        if not path:
            raise InvalidConfigurationError("Stdio transport requires a 'path' field in server configuration")

        server_type = detect_server_type(path, config)
        if server_type == ServerType.UNKNOWN:
            logger.warning(f"Unknown server type for {path}, running it directly")
            command = [os.path.abspath(path), *config.args]
        else:
            command = build_launch_command(server_type, path, config.args)

        return StdioTransportHandle(
            command=command[0],
            args=command[1:],
            cwd=os.path.dirname(os.path.abspath(path)),
            server_type=server_type,
        )

"""Connection and process cache for MCP servers.

Keeps at most one live client, and at most one launched process, per
distinct server configuration for the lifetime of an evaluation run, so
parallel evaluations against the same server share a single connection.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from types import TracebackType
from typing import Any, Protocol

from mcp.types import CallToolResult

from mcp_evals.client import McpClient, ToolInfo
from mcp_evals.errors import InvalidConfigurationError, McpConnectionError, ServerStartError
from mcp_evals.metrics import MetricsCollector, NullMetricsCollector
from mcp_evals.models import ServerConfiguration
from mcp_evals.process_manager import ServerProcessManager
from mcp_evals.transport import TransportFactory, TransportHandle, resolve_transport_type

logger = logging.getLogger(__name__)


class ClientLike(Protocol):
    """The subset of McpClient the cache and planner rely on."""

    @property
    def is_connected(self) -> bool: ...

    async def connect(self) -> None: ...

    async def list_tools(self) -> list[ToolInfo]: ...

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> CallToolResult: ...

    async def aclose(self) -> None: ...


ClientFactory = Callable[[TransportHandle], ClientLike]


@dataclass
class CachedConnection:
    """A live client and the process the cache launched for it, if any."""

    key: str
    client: ClientLike
    process: asyncio.subprocess.Process | None = None

    @property
    def is_alive(self) -> bool:
        """Whether the owned process is running and the client is connected."""
        if self.process is not None and self.process.returncode is not None:
            return False
        return self.client.is_connected


class ConnectionManager:
    """Hands out one shared client per server configuration.

    Usage:
        async with ConnectionManager() as connections:
            client = await connections.get_or_create_client(server_config)
            tools = await client.list_tools()
    """

    def __init__(
        self,
        process_manager: ServerProcessManager | None = None,
        transport_factory: TransportFactory | None = None,
        client_factory: ClientFactory | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._process_manager = process_manager or ServerProcessManager()
        self._transports = transport_factory or TransportFactory(self._process_manager)
        self._client_factory: ClientFactory = client_factory or McpClient
        self._metrics: MetricsCollector = metrics or NullMetricsCollector()
        self._connections: dict[str, CachedConnection] = {}
        self._key_locks: dict[str, asyncio.Lock] = {}
        self._registry_lock = asyncio.Lock()

    async def __aenter__(self) -> ConnectionManager:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close_all()

    @property
    def active_connections(self) -> int:
        """Get the number of cached connections."""
        return len(self._connections)

    async def _get_lock(self, key: str) -> asyncio.Lock:
        """Get the lock for a configuration key, creating it if needed."""
        async with self._registry_lock:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = asyncio.Lock()
                self._key_locks[key] = lock
            return lock

    async def get_or_create_client(self, config: ServerConfiguration) -> ClientLike:
        """Get the shared client for a server, connecting on first use.

        Concurrent callers with the same configuration key wait for the
        first one to finish connecting and then share its client. An entry
        whose process has exited or whose session has dropped is replaced.

        Args:
            config: Server configuration.

        Returns:
            A connected client.

        Raises:
            InvalidConfigurationError: If the configuration is malformed.
            ServerStartError: If a launched server fails to start.
            McpConnectionError: If the MCP session cannot be established.
        """
        key = config.config_key()
        lock = await self._get_lock(key)

        async with lock:
            conn = self._connections.get(key)
            if conn is not None:
                if conn.is_alive:
                    logger.debug(f"Reusing MCP connection: {key}")
                    return conn.client

                logger.info(f"Discarding stale MCP connection: {key}")
                del self._connections[key]
                await self._dispose(conn)

            conn = await self._connect(key, config)
            self._connections[key] = conn
            return conn.client

    async def _connect(self, key: str, config: ServerConfiguration) -> CachedConnection:
        kind = resolve_transport_type(config)
        logger.info(f"Connecting to MCP server over {kind}: {key}")

        handle = await self._transports.create(kind, config)
        try:
            client = self._client_factory(handle)
            await client.connect()
        except McpConnectionError:
            await self._stop_process(handle.process)
            raise
        except Exception as e:
            await self._stop_process(handle.process)
            raise McpConnectionError(f"Failed to connect to MCP server: {e}", server=key) from e
        except asyncio.CancelledError:
            await self._stop_process(handle.process)
            raise

        logger.info(f"Connected to MCP server: {key}")
        return CachedConnection(key=key, client=client, process=handle.process)

    async def test_connection(self, config: ServerConfiguration) -> bool:
        """Check that a server is reachable and advertises at least one tool.

        Configuration and startup errors propagate so their messages reach
        the caller. Any other failure is logged and reported as False. A
        cached session found dead is replaced once before giving up.
        """
        key = config.config_key()
        try:
            tools = await self._list_tools(config)
        except (InvalidConfigurationError, ServerStartError):
            self._metrics.connection_attempt(key, success=False)
            raise
        except Exception as e:
            logger.error(f"Connection test failed for {key}: {e}")
            self._metrics.connection_attempt(key, success=False)
            return False

        success = len(tools) > 0
        if not success:
            logger.warning(f"MCP server {key} advertises no tools")
        self._metrics.connection_attempt(key, success=success)
        return success

    async def _list_tools(self, config: ServerConfiguration) -> list[ToolInfo]:
        client = await self.get_or_create_client(config)
        try:
            return await client.list_tools()
        except McpConnectionError:
            if client.is_connected:
                raise

        # The cached session died since it was last used; one fresh connection is allowed
        logger.info(f"MCP connection dropped, reconnecting: {config.config_key()}")
        client = await self.get_or_create_client(config)
        return await client.list_tools()

    async def close_all(self) -> None:
        """Close every cached client and stop every owned process.

        Errors are logged, never raised. Safe to call more than once.
        """
        async with self._registry_lock:
            connections = list(self._connections.values())
            self._connections.clear()
            self._key_locks.clear()

        if not connections:
            logger.debug("No MCP connections to close")
            return

        results = await asyncio.gather(
            *(conn.client.aclose() for conn in connections),
            return_exceptions=True,
        )
        for conn, result in zip(connections, results):
            if isinstance(result, BaseException):
                logger.error(f"Error closing MCP client {conn.key}: {result}")

        await asyncio.gather(*(self._stop_process(conn.process) for conn in connections))
        logger.info("All MCP connections closed")

    async def _dispose(self, conn: CachedConnection) -> None:
        try:
            await conn.client.aclose()
        except Exception as e:
            logger.error(f"Error closing MCP client {conn.key}: {e}")
        await self._stop_process(conn.process)

    async def _stop_process(self, process: asyncio.subprocess.Process | None) -> None:
        if process is None:
            return
        try:
            await self._process_manager.stop(process)
        except Exception as e:
            logger.error(f"Error stopping server process {process.pid}: {e}")

"""MCP protocol client over stdio or streamable HTTP.

The SDK's transport and session context managers must be entered and
exited in the same task, so each client runs them inside a dedicated
owner task that lives until the client is closed.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

import anyio
from mcp import ClientSession, StdioServerParameters
from mcp.client.stdio import stdio_client
from mcp.client.streamable_http import streamablehttp_client
from mcp.types import CallToolResult

from mcp_evals.errors import McpConnectionError
from mcp_evals.transport import StdioTransportHandle, TransportHandle

logger = logging.getLogger(__name__)

# Raised by the SDK streams once the server side of the transport is gone
_STREAM_CLOSED_ERRORS = (anyio.ClosedResourceError, anyio.BrokenResourceError, anyio.EndOfStream)


@dataclass
class ToolInfo:
    """A tool advertised by a server."""

    name: str
    description: str = ""
    input_schema: dict[str, Any] = field(default_factory=dict)


def _root_cause(exc: BaseException) -> BaseException:
    """Unwrap single-member exception groups raised by task groups."""
    while isinstance(exc, BaseExceptionGroup) and len(exc.exceptions) == 1:
        exc = exc.exceptions[0]
    return exc


class McpClient:
    """Connected MCP session for one transport handle.

    Calls are serialized: a stdio pipe carries one request/response
    exchange at a time, so concurrent evaluations sharing a client queue
    on an internal lock.
    """

    def __init__(
        self,
        handle: TransportHandle,
        connect_timeout: float = 30.0,
        close_timeout: float = 10.0,
    ) -> None:
        self._handle = handle
        self._connect_timeout = connect_timeout
        self._close_timeout = close_timeout
        self._session: ClientSession | None = None
        self._owner: asyncio.Task[None] | None = None
        self._closing = asyncio.Event()
        self._call_lock = asyncio.Lock()
        self._broken = False

    @property
    def handle(self) -> TransportHandle:
        """Get the transport handle this client connects through."""
        return self._handle

    @property
    def is_connected(self) -> bool:
        """Whether the session is initialized, its owner task is alive and its streams are open."""
        if self._broken:
            return False
        return self._session is not None and self._owner is not None and not self._owner.done()

    async def connect(self) -> None:
        """Open the transport and initialize the MCP session.

        Raises:
            McpConnectionError: If the session cannot be established.
        """
        if self._owner is not None:
            raise McpConnectionError("Client is already connected", server=self._handle.describe())

        ready: asyncio.Future[ClientSession] = asyncio.get_running_loop().create_future()
        self._owner = asyncio.create_task(self._run(ready))

        try:
            self._session = await asyncio.wait_for(asyncio.shield(ready), timeout=self._connect_timeout)
        except asyncio.TimeoutError as e:
            await self.aclose()
            raise McpConnectionError(
                f"Timed out after {self._connect_timeout}s initializing MCP session",
                server=self._handle.describe(),
            ) from e
        except McpConnectionError:
            await self.aclose()
            raise
        except asyncio.CancelledError:
            await self.aclose()
            raise

        logger.debug(f"MCP session initialized: {self._handle.describe()}")

    async def _run(self, ready: asyncio.Future[ClientSession]) -> None:
        try:
            async with self._open_streams() as (read_stream, write_stream):
                async with ClientSession(read_stream, write_stream) as session:
                    await session.initialize()
                    ready.set_result(session)
                    await self._closing.wait()
        except Exception as e:
            cause = _root_cause(e)
            if not ready.done():
                ready.set_exception(
                    McpConnectionError(f"Failed to start MCP session: {cause}", server=self._handle.describe())
                )
            else:
                logger.warning(f"MCP session for {self._handle.describe()} ended with error: {cause}")
        finally:
            self._session = None
            if not ready.done():
                ready.set_exception(
                    McpConnectionError("MCP session closed before initialization", server=self._handle.describe())
                )

    @asynccontextmanager
    async def _open_streams(self) -> AsyncIterator[tuple[Any, Any]]:
        if isinstance(self._handle, StdioTransportHandle):
            params = StdioServerParameters(
                command=self._handle.command,
                args=self._handle.args,
                cwd=self._handle.cwd,
            )
            # Server stderr is discarded so it does not interleave with reports
            with open(os.devnull, "w") as errlog:
                async with stdio_client(params, errlog=errlog) as (read_stream, write_stream):
                    yield read_stream, write_stream
        else:
            async with streamablehttp_client(self._handle.url) as (read_stream, write_stream, _):
                yield read_stream, write_stream

    def _require_session(self) -> ClientSession:
        if self._session is None or not self.is_connected:
            raise McpConnectionError("MCP client is not connected", server=self._handle.describe())
        return self._session

    async def list_tools(self) -> list[ToolInfo]:
        """List tools advertised by the server."""
        session = self._require_session()
        async with self._call_lock:
            try:
                result = await session.list_tools()
            except _STREAM_CLOSED_ERRORS as e:
                raise self._mark_broken(e) from e
        return [
            ToolInfo(
                name=tool.name,
                description=tool.description or "",
                input_schema=tool.inputSchema or {},
            )
            for tool in result.tools
        ]

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> CallToolResult:
        """Invoke a tool by name.

        Args:
            name: Tool name.
            arguments: Tool arguments.

        Returns:
            The raw CallToolResult from the server.
        """
        session = self._require_session()
        async with self._call_lock:
            try:
                return await session.call_tool(name, arguments)
            except _STREAM_CLOSED_ERRORS as e:
                raise self._mark_broken(e) from e

    def _mark_broken(self, exc: BaseException) -> McpConnectionError:
        """Flag the session as dead and let the owner task tear the transport down."""
        logger.warning(f"MCP session for {self._handle.describe()} lost its transport: {type(exc).__name__}")
        self._broken = True
        self._closing.set()
        return McpConnectionError("MCP server connection was closed", server=self._handle.describe())

    async def aclose(self) -> None:
        """Close the session and wait for the owner task to finish."""
        owner, self._owner = self._owner, None
        if owner is None:
            return

        self._closing.set()
        try:
            await asyncio.wait_for(owner, timeout=self._close_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"MCP session for {self._handle.describe()} did not close in time")
        self._session = None

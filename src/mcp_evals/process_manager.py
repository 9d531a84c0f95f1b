"""Server process manager for locally launched MCP servers.

Launches server artifacts through the runtime their type requires,
confirms they survive a short startup window, polls HTTP servers until
they answer, and stops processes with a bounded grace period.
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from collections import deque
from dataclasses import dataclass, field

import httpx

from mcp_evals.config import EvalSettings
from mcp_evals.detection import ServerType
from mcp_evals.errors import InvalidConfigurationError, ServerStartError
from mcp_evals.models import ServerConfiguration

logger = logging.getLogger(__name__)

# Minimal JSON-RPC request used to check that an HTTP server is accepting requests
PING_REQUEST = {"jsonrpc": "2.0", "method": "ping", "id": 1}

# Lines of child output kept for error reports
OUTPUT_TAIL_LINES = 50


@dataclass(frozen=True)
class LaunchRule:
    """How to launch one server type."""

    interpreter: tuple[str, ...]


LAUNCH_RULES: dict[ServerType, LaunchRule] = {
    ServerType.TYPESCRIPT_SCRIPT: LaunchRule(interpreter=("npx", "tsx")),
    ServerType.NODE_SCRIPT: LaunchRule(interpreter=("node",)),
    ServerType.NATIVE_EXECUTABLE: LaunchRule(interpreter=()),
    ServerType.PYTHON_SCRIPT: LaunchRule(interpreter=(sys.executable,)),
}


def build_launch_command(server_type: ServerType, path: str, args: list[str] | None = None) -> list[str]:
    """Build the command line that launches a server artifact.

    Args:
        server_type: Detected runtime of the artifact.
        path: Path to the server artifact.
        args: Extra arguments appended after the path.

    Returns:
        The full command as a list of strings.

    Raises:
        InvalidConfigurationError: If the server type cannot be launched.
    """
    rule = LAUNCH_RULES.get(server_type)
    if rule is None:
        raise InvalidConfigurationError(f"Server type not supported for launching: {server_type.value} ({path})")

    # Servers run from their own directory, so a relative path would not resolve
    return [*rule.interpreter, os.path.abspath(path), *(args or [])]


@dataclass
class _OutputCapture:
    """Background readers draining a child's stdout and stderr."""

    tail: deque[str] = field(default_factory=lambda: deque(maxlen=OUTPUT_TAIL_LINES))
    tasks: list[asyncio.Task[None]] = field(default_factory=list)


async def _drain(stream: asyncio.StreamReader, tail: deque[str]) -> None:
    while True:
        line = await stream.readline()
        if not line:
            break
        tail.append(line.decode(errors="replace").rstrip())


class ServerProcessManager:
    """Starts, probes and stops MCP server processes.

    Usage:
        manager = ServerProcessManager(settings)
        process = await manager.start_server(ServerType.PYTHON_SCRIPT, "server.py", config)
        ready = await manager.is_server_ready("http://localhost:8000/mcp")
        await manager.stop(process)
    """

    def __init__(
        self,
        settings: EvalSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = settings or EvalSettings()
        self._startup_grace = settings.startup_grace_seconds
        self._max_attempts = settings.readiness_attempts
        self._interval = settings.readiness_interval_seconds
        self._request_timeout = settings.readiness_request_timeout
        self._shutdown_grace = settings.shutdown_grace_seconds
        self._transport = transport
        self._captures: dict[int, _OutputCapture] = {}

    async def start_server(
        self,
        server_type: ServerType,
        path: str,
        config: ServerConfiguration,
    ) -> asyncio.subprocess.Process:
        """Launch a server and confirm it survives the startup window.

        Args:
            server_type: Detected runtime of the artifact.
            path: Path to the server artifact.
            config: Server configuration supplying launch arguments.

        Returns:
            The running server process.

        Raises:
            InvalidConfigurationError: If the server type cannot be launched.
            ServerStartError: If the process cannot be spawned or exits immediately.
        """
        command = build_launch_command(server_type, path, config.args)
        cwd = os.path.dirname(os.path.abspath(path))

        logger.info(f"Starting {server_type.value} server: {' '.join(command)}")

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=cwd,
            )
        except OSError as e:
            raise ServerStartError(f"Failed to launch server {path}: {e}") from e

        self._start_capture(process)

        try:
            await asyncio.wait_for(process.wait(), timeout=self._startup_grace)
        except asyncio.TimeoutError:
            logger.info(f"Server process started (pid={process.pid})")
            return process
        except asyncio.CancelledError:
            await self.stop(process)
            raise

        output = await self._finish_capture(process)
        raise ServerStartError(
            f"Server process exited immediately with code: {process.returncode}",
            exit_code=process.returncode,
            output=output,
        )

    async def is_server_ready(self, url: str, timeout: float | None = None) -> bool:
        """Poll an HTTP server until it answers the readiness probe.

        Any HTTP response, including an error status, counts as ready.

        Args:
            url: Endpoint to probe.
            timeout: Overall bound for the whole poll in seconds.

        Returns:
            True if the server answered, False after exhausting attempts,
            on timeout, or on a non-retryable transport failure.
        """
        if timeout is None:
            return await self._poll_ready(url)

        try:
            return await asyncio.wait_for(self._poll_ready(url), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Server at {url} not ready within {timeout}s")
            return False

    async def _poll_ready(self, url: str) -> bool:
        async with httpx.AsyncClient(timeout=self._request_timeout, transport=self._transport) as client:
            for attempt in range(1, self._max_attempts + 1):
                try:
                    response = await client.post(url, json=PING_REQUEST)
                    logger.debug(f"Readiness probe to {url} answered with HTTP {response.status_code}")
                    return True
                except (httpx.TimeoutException, httpx.ConnectError) as e:
                    logger.debug(f"Readiness probe {attempt}/{self._max_attempts} to {url} failed: {e}")
                except httpx.HTTPError as e:
                    logger.warning(f"Readiness probe to {url} failed: {e}")
                    return False

                if attempt < self._max_attempts:
                    await asyncio.sleep(self._interval)

        logger.warning(f"Server at {url} not ready after {self._max_attempts} attempts")
        return False

    async def stop(self, process: asyncio.subprocess.Process) -> None:
        """Terminate a process, killing it if it ignores the grace period."""
        if process.returncode is None:
            logger.info(f"Stopping server process (pid={process.pid})")
            try:
                process.terminate()
                await asyncio.wait_for(process.wait(), timeout=self._shutdown_grace)
            except ProcessLookupError:
                pass
            except asyncio.TimeoutError:
                logger.warning(f"Server process {process.pid} did not exit, killing it")
                try:
                    process.kill()
                except ProcessLookupError:
                    pass
                await process.wait()

        await self._finish_capture(process)

    def output_tail(self, process: asyncio.subprocess.Process) -> str:
        """Get the most recent output lines captured from a process."""
        capture = self._captures.get(process.pid)
        return "\n".join(capture.tail) if capture else ""

    def _start_capture(self, process: asyncio.subprocess.Process) -> None:
        capture = _OutputCapture()
        for stream in (process.stdout, process.stderr):
            if stream is not None:
                capture.tasks.append(asyncio.create_task(_drain(stream, capture.tail)))
        self._captures[process.pid] = capture

    async def _finish_capture(self, process: asyncio.subprocess.Process) -> str:
        """Stop draining a finished process and return its output tail."""
        capture = self._captures.pop(process.pid, None)
        if capture is None:
            return ""

        # Grandchildren may hold the pipes open past the parent's exit
        if capture.tasks:
            _done, pending = await asyncio.wait(capture.tasks, timeout=1.0)
            for task in pending:
                task.cancel()
        return "\n".join(capture.tail)

"""Minimal MCP server used by end-to-end tests."""

import os

from mcp.server.fastmcp import FastMCP

mcp = FastMCP("stub")


@mcp.tool()
def add(a: float, b: float) -> str:
    """Add two numbers together."""
    return str(a + b)


@mcp.tool()
def echo(message: str) -> str:
    """Echo the given message back."""
    return message


@mcp.tool()
def server_pid() -> int:
    """Report the process id of this server."""
    return os.getpid()


if __name__ == "__main__":
    mcp.run()

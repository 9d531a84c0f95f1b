"""Exception hierarchy for the MCP evaluation harness."""

from __future__ import annotations


class McpEvalsError(Exception):
    """Base error for all harness failures."""

    pass


class InvalidConfigurationError(McpEvalsError):
    """Server or transport configuration is malformed or contradictory."""

    pass


class ServerStartError(McpEvalsError):
    """A launched server exited immediately or never became ready."""

    def __init__(self, message: str, exit_code: int | None = None, output: str = "") -> None:
        self.exit_code = exit_code
        self.output = output
        super().__init__(message)


class McpConnectionError(McpEvalsError):
    """Client construction or connectivity probe failed."""

    def __init__(self, message: str, server: str | None = None) -> None:
        self.server = server
        super().__init__(message)


class PlanningError(McpEvalsError):
    """The LLM planning call failed or returned unusable output."""

    pass


class ToolInvocationError(McpEvalsError):
    """A single planned tool call failed at the protocol layer."""

    def __init__(self, tool_name: str, message: str) -> None:
        self.tool_name = tool_name
        super().__init__(message)


class ScoringError(McpEvalsError):
    """The scoring call failed or returned unparseable output."""

    pass


class ConfigurationError(McpEvalsError):
    """An evaluation suite file could not be loaded."""

    def __init__(self, message: str, path: str | None = None) -> None:
        self.path = path
        super().__init__(message)


class LanguageModelError(McpEvalsError):
    """A language model provider call failed."""

    def __init__(self, message: str, provider: str, model: str) -> None:
        self.provider = provider
        self.model = model
        super().__init__(f"{provider}/{model}: {message}")

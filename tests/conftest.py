"""Shared pytest fixtures for MCP evaluation tests."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from mcp_evals.client import ToolInfo
from mcp_evals.config import EvalSettings, LLMProvider
from mcp_evals.providers.base import LanguageModel

FIXTURES_DIR = Path(__file__).parent / "fixtures"


class ScriptedLanguageModel(LanguageModel):
    """Language model returning canned responses, or raising when given an exception."""

    provider = LLMProvider.OPENAI

    def __init__(self, *responses: str | Exception) -> None:
        super().__init__("test-model")
        self._responses = list(responses)
        self.calls: list[dict] = []

    async def _complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        json_mode: bool,
        max_tokens: int,
        temperature: float,
    ) -> str:
        self.calls.append(
            {
                "system_prompt": system_prompt,
                "user_prompt": user_prompt,
                "json_mode": json_mode,
                "max_tokens": max_tokens,
                "temperature": temperature,
            }
        )
        response = self._responses.pop(0) if len(self._responses) > 1 else self._responses[0]
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def scripted_llm() -> Callable[..., ScriptedLanguageModel]:
    """Factory for language models with canned responses."""
    return ScriptedLanguageModel


@pytest.fixture
def failing_llm() -> ScriptedLanguageModel:
    """Language model whose every call fails."""
    return ScriptedLanguageModel(RuntimeError("model unavailable"))


@pytest.fixture
def calculator_tools() -> list[ToolInfo]:
    """Tools advertised by a simple calculator/echo server."""
    return [
        ToolInfo(
            name="add",
            description="Add two numbers together",
            input_schema={"type": "object", "properties": {"a": {}, "b": {}}},
        ),
        ToolInfo(
            name="echo",
            description="Echo the given message back",
            input_schema={"type": "object", "properties": {"message": {}}},
        ),
    ]


@pytest.fixture
def fast_settings() -> EvalSettings:
    """Settings with short process and readiness timings."""
    return EvalSettings(
        startup_grace_seconds=0.2,
        readiness_attempts=3,
        readiness_interval_seconds=0.0,
        readiness_request_timeout=1.0,
        shutdown_grace_seconds=2.0,
    )


@pytest.fixture
def stub_server_path() -> str:
    """Absolute path of the stub MCP server script."""
    return str(FIXTURES_DIR / "stub_server.py")

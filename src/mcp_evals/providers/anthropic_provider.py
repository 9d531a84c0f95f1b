"""Anthropic language model provider."""

from __future__ import annotations

from typing import Any

from anthropic import AsyncAnthropic

from mcp_evals.config import LLMProvider
from mcp_evals.providers.base import LanguageModel

# The Messages API has no JSON response format, so the constraint goes in the system prompt
_JSON_INSTRUCTION = "\n\nRespond with a single JSON object and nothing else."


class AnthropicLanguageModel(LanguageModel):
    """Language model backed by the Anthropic Messages API."""

    provider = LLMProvider.ANTHROPIC

    def __init__(
        self,
        model: str,
        api_key: str | None,
        max_tokens: int = 4000,
        temperature: float = 0.1,
    ) -> None:
        super().__init__(model, max_tokens=max_tokens, temperature=temperature)
        self._client = AsyncAnthropic(api_key=api_key or None)

    async def _complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        json_mode: bool,
        max_tokens: int,
        temperature: float,
    ) -> str:
        kwargs: dict[str, Any] = {
            "model": self._model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "system": system_prompt + _JSON_INSTRUCTION if json_mode else system_prompt,
            "messages": [{"role": "user", "content": user_prompt}],
        }
        response = await self._client.messages.create(**kwargs)

        text_parts = []
        for block in response.content:
            if block.type == "text":
                text_parts.append(block.text)
        return "\n".join(text_parts)

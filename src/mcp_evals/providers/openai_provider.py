"""OpenAI-compatible language model provider.

Covers OpenAI, OpenAI-compatible endpoints and Azure OpenAI, which all
use the same OpenAI Python client.
"""

from __future__ import annotations

from typing import Any

from openai import AsyncAzureOpenAI, AsyncOpenAI

from mcp_evals.config import LLMProvider
from mcp_evals.providers.base import LanguageModel


class OpenAILanguageModel(LanguageModel):
    """Language model backed by the OpenAI chat completions API."""

    provider = LLMProvider.OPENAI

    def __init__(
        self,
        model: str,
        api_key: str | None,
        base_url: str | None = None,
        max_tokens: int = 4000,
        temperature: float = 0.1,
    ) -> None:
        super().__init__(model, max_tokens=max_tokens, temperature=temperature)
        self._client: AsyncOpenAI = self._create_client(api_key, base_url)

    @staticmethod
    def _create_client(api_key: str | None, base_url: str | None) -> AsyncOpenAI:
        """Create an OpenAI-compatible async client."""
        kwargs: dict[str, Any] = {"api_key": api_key or None}
        if base_url:
            kwargs["base_url"] = base_url
        return AsyncOpenAI(**kwargs)

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
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        response = await self._client.chat.completions.create(**kwargs)
        return response.choices[0].message.content or ""


class AzureOpenAILanguageModel(OpenAILanguageModel):
    """Language model backed by an Azure OpenAI deployment."""

    provider = LLMProvider.AZURE_OPENAI

    def __init__(
        self,
        model: str,
        api_key: str | None,
        endpoint: str | None,
        api_version: str,
        max_tokens: int = 4000,
        temperature: float = 0.1,
    ) -> None:
        if not endpoint:
            raise ValueError("An endpoint is required for the azure-openai provider")
        LanguageModel.__init__(self, model, max_tokens=max_tokens, temperature=temperature)
        self._client = AsyncAzureOpenAI(
            api_key=api_key or None,
            azure_endpoint=endpoint,
            api_version=api_version,
        )

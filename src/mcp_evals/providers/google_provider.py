"""Google GenAI language model provider."""

from __future__ import annotations

from google import genai
from google.genai import types

from mcp_evals.config import LLMProvider
from mcp_evals.providers.base import LanguageModel


class GoogleLanguageModel(LanguageModel):
    """Language model backed by Google Gemini."""

    provider = LLMProvider.GOOGLE_GENAI

    def __init__(
        self,
        model: str,
        api_key: str | None,
        max_tokens: int = 4000,
        temperature: float = 0.1,
    ) -> None:
        super().__init__(model, max_tokens=max_tokens, temperature=temperature)
        self._client = genai.Client(api_key=api_key or None)

    async def _complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        json_mode: bool,
        max_tokens: int,
        temperature: float,
    ) -> str:
        config = types.GenerateContentConfig(
            system_instruction=system_prompt,
            max_output_tokens=max_tokens,
            temperature=temperature,
            response_mime_type="application/json" if json_mode else None,
        )

        response = await self._client.aio.models.generate_content(
            model=self._model,
            contents=user_prompt,
            config=config,
        )
        return response.text or ""

"""Base class for language model providers.

Planning and scoring only need plain text generation: a system prompt and
a user prompt in, text out, optionally constrained to a JSON object.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from mcp_evals.config import LLMProvider
from mcp_evals.errors import LanguageModelError


class LanguageModel(ABC):
    """Abstract text-generation capability.

    Subclasses implement _complete; generate applies defaults and wraps
    provider SDK failures in LanguageModelError.
    """

    provider: LLMProvider

    def __init__(self, model: str, max_tokens: int = 4000, temperature: float = 0.1) -> None:
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature

    @property
    def model(self) -> str:
        """Get the model name."""
        return self._model

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        json_mode: bool = False,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> str:
        """Generate a response for a system and user prompt.

        Args:
            system_prompt: Instructions for the model.
            user_prompt: The user message.
            json_mode: Constrain the response to a single JSON object.
            max_tokens: Response token budget, defaults to the configured value.
            temperature: Sampling temperature, defaults to the configured value.

        Returns:
            The generated text.

        Raises:
            LanguageModelError: If the provider call fails.
        """
        try:
            return await self._complete(
                system_prompt,
                user_prompt,
                json_mode=json_mode,
                max_tokens=max_tokens if max_tokens is not None else self._max_tokens,
                temperature=temperature if temperature is not None else self._temperature,
            )
        except LanguageModelError:
            raise
        except Exception as e:
            raise LanguageModelError(str(e), self.provider.value, self._model) from e

    @abstractmethod
    async def _complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        json_mode: bool,
        max_tokens: int,
        temperature: float,
    ) -> str:
        """Send one request to the provider.

        Args:
            system_prompt: Instructions for the model.
            user_prompt: The user message.
            json_mode: Constrain the response to a single JSON object.
            max_tokens: Response token budget.
            temperature: Sampling temperature.

        Returns:
            The generated text, empty if the provider returned none.
        """

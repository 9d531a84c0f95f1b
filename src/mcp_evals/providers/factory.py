"""Factory for language model providers.

Dispatches on LLMProvider values to instantiate the right provider.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from mcp_evals.config import EvalSettings, LLMProvider
from mcp_evals.errors import LanguageModelError

if TYPE_CHECKING:
    from mcp_evals.models import LanguageModelConfiguration
    from mcp_evals.providers.base import LanguageModel


def resolve_provider(name: str) -> LLMProvider:
    """Map a provider name from a suite file to an LLMProvider.

    Raises:
        ValueError: If the provider is not supported.
    """
    try:
        return LLMProvider(name.strip().lower())
    except ValueError:
        raise ValueError(f"Unsupported language model provider: {name}") from None


def create_language_model(
    model_config: LanguageModelConfiguration,
    settings: EvalSettings | None = None,
    api_key: str | None = None,
    endpoint: str | None = None,
) -> LanguageModel:
    """Create a language model for the configured provider.

    The API key is taken from the api_key argument, then the suite's model
    configuration, then the provider's environment setting. The endpoint
    argument overrides the Azure endpoint or OpenAI base URL from settings.

    Args:
        model_config: Model section of an evaluation suite.
        settings: Environment settings.
        api_key: API key override, typically from the command line.
        endpoint: Endpoint override, typically from the command line.

    Returns:
        A LanguageModel instance.

    Raises:
        ValueError: If the provider is not supported or misconfigured.
        LanguageModelError: If the provider client cannot be created.
    """
    settings = settings or EvalSettings()
    provider = resolve_provider(model_config.provider)
    key = api_key or model_config.api_key or settings.api_key_for(provider)
    common = {"max_tokens": model_config.max_tokens, "temperature": model_config.temperature}

    try:
        if provider == LLMProvider.OPENAI:
            from mcp_evals.providers.openai_provider import OpenAILanguageModel

            return OpenAILanguageModel(
                model_config.name,
                api_key=key,
                base_url=endpoint or settings.base_url,
                **common,
            )

        if provider == LLMProvider.AZURE_OPENAI:
            from mcp_evals.providers.openai_provider import AzureOpenAILanguageModel

            return AzureOpenAILanguageModel(
                model_config.name,
                api_key=key,
                endpoint=endpoint or settings.azure_endpoint,
                api_version=settings.azure_api_version,
                **common,
            )

        if provider == LLMProvider.ANTHROPIC:
            from mcp_evals.providers.anthropic_provider import AnthropicLanguageModel

            return AnthropicLanguageModel(model_config.name, api_key=key, **common)

        if provider == LLMProvider.GOOGLE_GENAI:
            from mcp_evals.providers.google_provider import GoogleLanguageModel

            return GoogleLanguageModel(model_config.name, api_key=key, **common)
    except ValueError:
        raise
    except Exception as e:
        raise LanguageModelError(f"Failed to create client: {e}", provider.value, model_config.name) from e

    raise ValueError(f"Unsupported language model provider: {provider}")

"""Language model providers used for tool planning and scoring."""

from mcp_evals.providers.base import LanguageModel
from mcp_evals.providers.factory import create_language_model

__all__ = ["LanguageModel", "create_language_model"]

"""Runtime settings for the MCP evaluation harness."""

from __future__ import annotations

from enum import Enum

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LLMProvider(str, Enum):
    """Language model provider used for planning and scoring."""

    OPENAI = "openai"
    AZURE_OPENAI = "azure-openai"
    ANTHROPIC = "anthropic"
    GOOGLE_GENAI = "google-genai"


class LogLevel(str, Enum):
    """Logging verbosity."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class EvalSettings(BaseSettings):
    """Settings for evaluation runs.

    Loaded from environment variables with MCP_EVALS_ prefix
    or from a .env.eval file. Values from a suite file or the
    command line take precedence over these.
    """

    model_config = SettingsConfigDict(
        env_prefix="MCP_EVALS_",
        env_file=".env.eval",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Provider credentials
    openai_api_key: str = Field(
        default="",
        description="API key for OpenAI",
    )
    anthropic_api_key: str = Field(
        default="",
        description="API key for Anthropic",
    )
    azure_openai_api_key: str = Field(
        default="",
        description="API key for Azure OpenAI",
    )
    google_api_key: str = Field(
        default="",
        description="API key for Google GenAI",
    )
    azure_endpoint: str | None = Field(
        default=None,
        description="Azure OpenAI endpoint URL",
    )
    azure_api_version: str = Field(
        default="2024-10-21",
        description="Azure OpenAI API version",
    )
    base_url: str | None = Field(
        default=None,
        description="Custom base URL for OpenAI-compatible endpoints",
    )

    # Run settings
    parallelism: int | None = Field(
        default=None,
        ge=1,
        le=256,
        description="Maximum concurrent evaluations (default: CPU count)",
    )
    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Logging level",
    )

    # Server process lifecycle
    startup_grace_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="Time a launched server must survive to count as started",
    )
    readiness_attempts: int = Field(
        default=15,
        ge=1,
        description="Maximum readiness probes for HTTP-launched servers",
    )
    readiness_interval_seconds: float = Field(
        default=2.0,
        ge=0.0,
        description="Delay between readiness probes",
    )
    readiness_request_timeout: float = Field(
        default=2.0,
        gt=0.0,
        description="Timeout for a single readiness probe request",
    )
    shutdown_grace_seconds: float = Field(
        default=5.0,
        ge=0.0,
        description="Time allowed for a server process to exit before it is killed",
    )

    def api_key_for(self, provider: LLMProvider) -> str:
        """Get the configured API key for a provider."""
        keys = {
            LLMProvider.OPENAI: self.openai_api_key,
            LLMProvider.AZURE_OPENAI: self.azure_openai_api_key,
            LLMProvider.ANTHROPIC: self.anthropic_api_key,
            LLMProvider.GOOGLE_GENAI: self.google_api_key,
        }
        return keys[provider]

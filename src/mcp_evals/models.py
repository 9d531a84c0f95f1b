"""Pydantic models for evaluation suites, servers and results."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    """Base model accepting both camelCase and snake_case keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ServerConfiguration(_CamelModel):
    """Identifies one target MCP server."""

    transport: str | None = Field(None, description="Transport type: stdio or http")
    path: str | None = Field(None, description="Filesystem path to a launchable server")
    url: str | None = Field(None, description="HTTP endpoint of the server")
    args: list[str] = Field(default_factory=list, description="Extra launch arguments")
    timeout: float = Field(30.0, gt=0, description="Readiness wait bound in seconds")

    def config_key(self) -> str:
        """Canonical key used to deduplicate connections and processes."""
        parts = [self.transport or "stdio", self.path or "", self.url or ""]
        if self.args:
            parts.append("|".join(self.args))
        return ":".join(parts)


class LanguageModelConfiguration(_CamelModel):
    """Language model used for planning and scoring."""

    provider: str = Field("openai", description="Provider name")
    name: str = Field("gpt-4o", description="Model name")
    api_key: str | None = Field(None, description="API key, overrides environment settings")
    max_tokens: int = Field(4000, description="Response token budget for scoring")
    temperature: float = Field(0.1, description="Sampling temperature")


class EvaluationRequest(_CamelModel):
    """One prompt to evaluate."""

    name: str = Field(..., description="Evaluation name")
    description: str = Field("", description="What the evaluation checks")
    prompt: str = Field(..., description="Prompt sent to the server")
    expected_result: str | None = Field(None, description="Reference answer for the scorer")


class EvaluationScore(_CamelModel):
    """Five sub-scores in [1, 5] plus free-text commentary."""

    accuracy: int = Field(..., ge=1, le=5)
    completeness: int = Field(..., ge=1, le=5)
    relevance: int = Field(..., ge=1, le=5)
    clarity: int = Field(..., ge=1, le=5)
    reasoning: int = Field(..., ge=1, le=5)
    overall_comments: str = Field("", description="Scorer commentary")

    @property
    def average_score(self) -> float:
        """Arithmetic mean of the five sub-scores."""
        total = self.accuracy + self.completeness + self.relevance + self.clarity + self.reasoning
        return total / 5.0

    @classmethod
    def uniform(cls, value: int, comments: str) -> EvaluationScore:
        """Create a score with every dimension set to the same value."""
        return cls(
            accuracy=value,
            completeness=value,
            relevance=value,
            clarity=value,
            reasoning=value,
            overall_comments=comments,
        )


class EvaluationResult(_CamelModel):
    """Outcome of evaluating one request."""

    name: str
    description: str = ""
    prompt: str
    response: str = ""
    score: EvaluationScore
    duration: float = Field(0.0, description="Wall-clock seconds")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    error_message: str | None = None

    @property
    def is_success(self) -> bool:
        """Whether the evaluation completed without error."""
        return not self.error_message


class EvaluationConfiguration(_CamelModel):
    """A complete evaluation suite."""

    model: LanguageModelConfiguration = Field(default_factory=LanguageModelConfiguration)
    server: ServerConfiguration
    evaluations: list[EvaluationRequest] = Field(default_factory=list, alias="evals")
    name: str | None = None
    description: str | None = None

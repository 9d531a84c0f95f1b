"""Tests for evaluation data models."""

import pytest
from pydantic import ValidationError

from mcp_evals.models import (
    EvaluationConfiguration,
    EvaluationResult,
    EvaluationScore,
    ServerConfiguration,
)


def _score(**overrides: int) -> EvaluationScore:
    values = {"accuracy": 3, "completeness": 3, "relevance": 3, "clarity": 3, "reasoning": 3}
    values.update(overrides)
    return EvaluationScore(**values)


class TestEvaluationScore:
    """Test EvaluationScore bounds and averages."""

    @pytest.mark.parametrize("field", ["accuracy", "completeness", "relevance", "clarity", "reasoning"])
    @pytest.mark.parametrize("value", [0, 6])
    def test_out_of_range_rejected(self, field: str, value: int) -> None:
        """Sub-scores outside 1-5 fail at construction instead of clamping."""
        with pytest.raises(ValidationError):
            _score(**{field: value})

    def test_average_of_threes(self) -> None:
        assert _score().average_score == 3.0

    def test_average_mixed(self) -> None:
        score = _score(accuracy=5, completeness=4, relevance=3, clarity=2, reasoning=1)
        assert score.average_score == 3.0

    def test_uniform(self) -> None:
        score = EvaluationScore.uniform(1, "Evaluation failed: boom")
        assert score.average_score == 1.0
        assert score.overall_comments == "Evaluation failed: boom"

    def test_accepts_snake_case_json(self) -> None:
        score = EvaluationScore.model_validate_json(
            '{"accuracy": 4, "completeness": 4, "relevance": 5, "clarity": 4, '
            '"reasoning": 3, "overall_comments": "solid"}'
        )
        assert score.overall_comments == "solid"


class TestServerConfiguration:
    """Test configuration key derivation."""

    def test_key_defaults(self) -> None:
        assert ServerConfiguration(path="/srv/server.py").config_key() == "stdio:/srv/server.py:"

    def test_key_includes_args(self) -> None:
        config = ServerConfiguration(transport="http", path="s.py", url="http://h:1", args=["--a", "b"])
        assert config.config_key() == "http:s.py:http://h:1:--a|b"

    def test_distinct_args_distinct_keys(self) -> None:
        first = ServerConfiguration(path="s.py", args=["--port", "1"])
        second = ServerConfiguration(path="s.py", args=["--port", "2"])
        assert first.config_key() != second.config_key()


class TestEvaluationResult:
    """Test EvaluationResult success flag."""

    def test_success_without_error(self) -> None:
        result = EvaluationResult(name="n", prompt="p", score=_score())
        assert result.is_success

    def test_failure_with_error(self) -> None:
        result = EvaluationResult(name="n", prompt="p", score=_score(), error_message="boom")
        assert not result.is_success


class TestEvaluationConfiguration:
    """Test suite parsing from camelCase data."""

    def test_camel_case_keys(self) -> None:
        config = EvaluationConfiguration.model_validate(
            {
                "model": {"provider": "anthropic", "name": "claude", "maxTokens": 1000},
                "server": {"path": "server.py", "args": ["-v"]},
                "evals": [{"name": "e1", "description": "d", "prompt": "p", "expectedResult": "r"}],
            }
        )

        assert config.model.provider == "anthropic"
        assert config.model.max_tokens == 1000
        assert config.model.temperature == 0.1
        assert config.server.args == ["-v"]
        assert config.evaluations[0].expected_result == "r"

    def test_defaults(self) -> None:
        config = EvaluationConfiguration.model_validate(
            {"server": {"path": "server.py"}, "evals": [{"name": "e", "prompt": "p"}]}
        )

        assert config.model.provider == "openai"
        assert config.model.name == "gpt-4o"
        assert config.server.timeout == 30.0

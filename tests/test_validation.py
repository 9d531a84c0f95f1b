"""Tests for suite validation."""

from pathlib import Path

import pytest

from mcp_evals.models import (
    EvaluationConfiguration,
    EvaluationRequest,
    LanguageModelConfiguration,
    ServerConfiguration,
)
from mcp_evals.validation import (
    MAX_NAME_LENGTH,
    MAX_PROMPT_LENGTH,
    validate_configuration,
    validate_model,
    validate_request,
    validate_server,
)


def _request(**overrides: str) -> EvaluationRequest:
    values = {"name": "addition", "description": "Adds numbers", "prompt": "add 5 and 3"}
    values.update(overrides)
    return EvaluationRequest(**values)


class TestValidateRequest:
    """Test per-request checks."""

    def test_valid(self) -> None:
        assert validate_request(_request()) == []

    def test_blank_fields(self) -> None:
        errors = validate_request(_request(name=" ", description="", prompt=""))
        assert "Evaluation name is required" in errors
        assert len(errors) == 3

    def test_length_limits(self) -> None:
        errors = validate_request(_request(name="n" * (MAX_NAME_LENGTH + 1), prompt="p" * (MAX_PROMPT_LENGTH + 1)))
        assert any("name exceeds" in e for e in errors)
        assert any("prompt exceeds" in e for e in errors)


class TestValidateModel:
    """Test language model checks."""

    def test_valid_defaults(self) -> None:
        assert validate_model(LanguageModelConfiguration()) == []

    def test_unsupported_provider(self) -> None:
        errors = validate_model(LanguageModelConfiguration(provider="llama-local"))
        assert errors[0].startswith("Unsupported model provider 'llama-local'")

    def test_provider_case_insensitive(self) -> None:
        assert validate_model(LanguageModelConfiguration(provider="Anthropic")) == []

    @pytest.mark.parametrize("max_tokens", [0, 100001])
    def test_max_tokens_range(self, max_tokens: int) -> None:
        errors = validate_model(LanguageModelConfiguration(max_tokens=max_tokens))
        assert errors == ["maxTokens must be between 1 and 100000"]

    @pytest.mark.parametrize("temperature", [-0.1, 2.5])
    def test_temperature_range(self, temperature: float) -> None:
        errors = validate_model(LanguageModelConfiguration(temperature=temperature))
        assert errors == ["temperature must be between 0 and 2"]


class TestValidateServer:
    """Test server checks per transport."""

    def test_stdio_existing_file(self, tmp_path: Path) -> None:
        script = tmp_path / "server.py"
        script.write_text("")
        assert validate_server(ServerConfiguration(path=str(script))) == []

    def test_stdio_missing_file(self, tmp_path: Path) -> None:
        missing = tmp_path / "server.py"
        assert validate_server(ServerConfiguration(path=str(missing))) == [f"Server file not found: {missing}"]

    def test_stdio_missing_file_skipped(self) -> None:
        assert validate_server(ServerConfiguration(path="/nowhere/server.py"), check_files=False) == []

    def test_stdio_requires_path(self) -> None:
        errors = validate_server(ServerConfiguration())
        assert errors == ["Stdio transport requires a 'path' field in server configuration"]

    def test_http_requires_url(self) -> None:
        errors = validate_server(ServerConfiguration(transport="http"))
        assert errors == ["HTTP transport requires a 'url' field in server configuration"]

    def test_http_invalid_url(self) -> None:
        errors = validate_server(ServerConfiguration(url="ftp://example.com/mcp"))
        assert errors == ["Invalid HTTP URL: ftp://example.com/mcp"]

    def test_http_valid(self) -> None:
        assert validate_server(ServerConfiguration(url="https://example.com/mcp")) == []

    def test_unsupported_transport(self) -> None:
        errors = validate_server(ServerConfiguration(transport="websocket", path="s.py"), check_files=False)
        assert errors == ["Unsupported transport type: websocket"]


class TestValidateConfiguration:
    """Test whole-suite validation."""

    def test_collects_all_problems(self) -> None:
        config = EvaluationConfiguration(
            model=LanguageModelConfiguration(provider="unknown"),
            server=ServerConfiguration(transport="http"),
            evaluations=[_request(), _request(prompt="")],
        )

        errors = validate_configuration(config)

        assert any(e.startswith("Unsupported model provider") for e in errors)
        assert "HTTP transport requires a 'url' field in server configuration" in errors
        assert "Evaluation 'addition': prompt is required" in errors
        assert "Duplicate evaluation name: addition" in errors

    def test_no_evaluations(self) -> None:
        config = EvaluationConfiguration(server=ServerConfiguration(url="http://localhost:8000/mcp"), evaluations=[])
        assert validate_configuration(config) == ["No evaluations found in configuration"]

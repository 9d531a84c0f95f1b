"""Tests for evaluation suite loading."""

import json
from pathlib import Path

import pytest

from mcp_evals.errors import ConfigurationError
from mcp_evals.loaders import JsonConfigurationLoader, YamlConfigurationLoader, load_configuration

SUITE_YAML = """\
name: Calculator suite
model:
  provider: anthropic
  name: claude-sonnet-4-5
  maxTokens: 2000
server:
  path: ./server.py
  args: ["--quiet"]
evals:
  - name: addition
    description: Adds two numbers
    prompt: add 5 and 3
    expectedResult: "8"
"""


class TestLoadConfiguration:
    """Test loading suites from disk."""

    def test_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "suite.yaml"
        path.write_text(SUITE_YAML)

        config = load_configuration(path)

        assert config.name == "Calculator suite"
        assert config.model.provider == "anthropic"
        assert config.model.max_tokens == 2000
        assert config.server.args == ["--quiet"]
        assert config.evaluations[0].expected_result == "8"

    def test_relative_server_path_resolved(self, tmp_path: Path) -> None:
        path = tmp_path / "suite.yml"
        path.write_text(SUITE_YAML)

        config = load_configuration(path)

        assert config.server.path == str((tmp_path / "server.py").resolve())

    def test_absolute_server_path_kept(self, tmp_path: Path) -> None:
        path = tmp_path / "suite.json"
        path.write_text(
            json.dumps({"server": {"path": "/opt/server.py"}, "evals": [{"name": "e", "prompt": "p"}]})
        )

        config = load_configuration(path)

        assert config.server.path == "/opt/server.py"
        assert config.model.provider == "openai"

    def test_http_server_without_path(self, tmp_path: Path) -> None:
        path = tmp_path / "suite.json"
        path.write_text(
            json.dumps(
                {"server": {"transport": "http", "url": "http://localhost:8000/mcp"}, "evals": [{"name": "e", "prompt": "p"}]}
            )
        )

        config = load_configuration(path)

        assert config.server.path is None
        assert config.server.url == "http://localhost:8000/mcp"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="Configuration file not found"):
            load_configuration(tmp_path / "missing.yaml")

    def test_unsupported_extension(self, tmp_path: Path) -> None:
        path = tmp_path / "suite.toml"
        path.write_text("")

        with pytest.raises(ConfigurationError, match=r"Unsupported configuration file format: \.toml"):
            load_configuration(path)

    def test_malformed_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "suite.yaml"
        path.write_text("evals: [unclosed")

        with pytest.raises(ConfigurationError, match="Failed to parse configuration file"):
            load_configuration(path)

    def test_non_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "suite.yaml"
        path.write_text("- just\n- a list\n")

        with pytest.raises(ConfigurationError, match="must contain a mapping"):
            load_configuration(path)

    def test_no_evaluations(self, tmp_path: Path) -> None:
        path = tmp_path / "suite.yaml"
        path.write_text("server:\n  path: server.py\nevals: []\n")

        with pytest.raises(ConfigurationError, match="No evaluations found in configuration") as exc_info:
            load_configuration(path)
        assert exc_info.value.path == str(path)

    def test_no_server(self, tmp_path: Path) -> None:
        path = tmp_path / "suite.yaml"
        path.write_text("evals:\n  - name: e\n    prompt: p\n")

        with pytest.raises(ConfigurationError, match="Server configuration is required"):
            load_configuration(path)

    def test_invalid_field(self, tmp_path: Path) -> None:
        path = tmp_path / "suite.yaml"
        path.write_text("server:\n  path: server.py\nevals:\n  - name: e\n")

        with pytest.raises(ConfigurationError, match="Invalid configuration"):
            load_configuration(path)


class TestLoaders:
    def test_json_loader_rejects_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "suite.json"
        path.write_text(SUITE_YAML)

        with pytest.raises(ConfigurationError, match="Failed to parse"):
            JsonConfigurationLoader().load(path)

    def test_yaml_loader_reads_json(self, tmp_path: Path) -> None:
        path = tmp_path / "suite.txt"
        path.write_text(json.dumps({"server": {"path": "/opt/s.py"}, "evals": [{"name": "e", "prompt": "p"}]}))

        config = YamlConfigurationLoader().load(path)

        assert config.evaluations[0].name == "e"

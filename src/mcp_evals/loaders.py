"""Evaluation suite loading from YAML and JSON files."""

from __future__ import annotations

import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from mcp_evals.errors import ConfigurationError
from mcp_evals.models import EvaluationConfiguration

logger = logging.getLogger(__name__)


class ConfigurationLoader(ABC):
    """Loads an EvaluationConfiguration from a file."""

    def load(self, path: str | Path) -> EvaluationConfiguration:
        """Load and build a suite configuration.

        Args:
            path: Path to the suite file.

        Returns:
            The parsed configuration, with a relative server path resolved
            against the file's directory.

        Raises:
            ConfigurationError: If the file is missing, malformed or incomplete.
        """
        path = Path(path)
        if not path.is_file():
            raise ConfigurationError(f"Configuration file not found: {path}", str(path))

        try:
            data = self._parse(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Failed to parse configuration file: {e}", str(path)) from e

        if not isinstance(data, dict):
            raise ConfigurationError("Configuration file must contain a mapping", str(path))

        return build_configuration(data, path)

    @abstractmethod
    def _parse(self, text: str) -> Any:
        """Parse raw file contents into plain Python data."""


class YamlConfigurationLoader(ConfigurationLoader):
    """Loads suites written in YAML."""

    def _parse(self, text: str) -> Any:
        return yaml.safe_load(text)


class JsonConfigurationLoader(ConfigurationLoader):
    """Loads suites written in JSON."""

    def _parse(self, text: str) -> Any:
        return json.loads(text)


LOADERS: dict[str, type[ConfigurationLoader]] = {
    ".yaml": YamlConfigurationLoader,
    ".yml": YamlConfigurationLoader,
    ".json": JsonConfigurationLoader,
}


def build_configuration(data: dict[str, Any], source: Path) -> EvaluationConfiguration:
    """Build a suite configuration from parsed file data.

    Raises:
        ConfigurationError: If required sections are missing or invalid.
    """
    if not data.get("evals") and not data.get("evaluations"):
        raise ConfigurationError("No evaluations found in configuration", str(source))
    if not data.get("server"):
        raise ConfigurationError("Server configuration is required", str(source))

    try:
        config = EvaluationConfiguration.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}", str(source)) from e

    server_path = config.server.path
    if server_path and not os.path.isabs(server_path):
        config.server.path = str((source.parent / server_path).resolve())
        logger.debug(f"Resolved server path to {config.server.path}")

    return config


def load_configuration(path: str | Path) -> EvaluationConfiguration:
    """Load a suite, choosing the loader from the file extension.

    Raises:
        ConfigurationError: If the format is unsupported or loading fails.
    """
    path = Path(path)
    loader_cls = LOADERS.get(path.suffix.lower())
    if loader_cls is None:
        raise ConfigurationError(f"Unsupported configuration file format: {path.suffix or '(none)'}", str(path))
    return loader_cls().load(path)

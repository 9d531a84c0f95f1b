"""Well-formedness checks for evaluation suites.

Each check returns a list of human-readable problems; an empty list
means the checked part is valid.
"""

from __future__ import annotations

import os
from urllib.parse import urlparse

from mcp_evals.config import LLMProvider
from mcp_evals.models import (
    EvaluationConfiguration,
    EvaluationRequest,
    LanguageModelConfiguration,
    ServerConfiguration,
)
from mcp_evals.transport import HTTP, STDIO, resolve_transport_type

MAX_NAME_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 500
MAX_PROMPT_LENGTH = 10000
MAX_TOKENS_LIMIT = 100000
SUPPORTED_PROVIDERS = {provider.value for provider in LLMProvider}


def validate_request(request: EvaluationRequest) -> list[str]:
    """Check one evaluation request."""
    errors = []
    label = request.name or "<unnamed>"

    if not request.name.strip():
        errors.append("Evaluation name is required")
    elif len(request.name) > MAX_NAME_LENGTH:
        errors.append(f"Evaluation '{label}': name exceeds {MAX_NAME_LENGTH} characters")

    if not request.description.strip():
        errors.append(f"Evaluation '{label}': description is required")
    elif len(request.description) > MAX_DESCRIPTION_LENGTH:
        errors.append(f"Evaluation '{label}': description exceeds {MAX_DESCRIPTION_LENGTH} characters")

    if not request.prompt.strip():
        errors.append(f"Evaluation '{label}': prompt is required")
    elif len(request.prompt) > MAX_PROMPT_LENGTH:
        errors.append(f"Evaluation '{label}': prompt exceeds {MAX_PROMPT_LENGTH} characters")

    return errors


def validate_model(model: LanguageModelConfiguration) -> list[str]:
    """Check the language model section."""
    errors = []
    if model.provider.lower() not in SUPPORTED_PROVIDERS:
        errors.append(
            f"Unsupported model provider '{model.provider}'. "
            f"Supported: {', '.join(sorted(SUPPORTED_PROVIDERS))}"
        )
    if not model.name.strip():
        errors.append("Model name is required")
    if not 0 < model.max_tokens <= MAX_TOKENS_LIMIT:
        errors.append(f"maxTokens must be between 1 and {MAX_TOKENS_LIMIT}")
    if not 0 <= model.temperature <= 2:
        errors.append("temperature must be between 0 and 2")
    return errors


def validate_server(server: ServerConfiguration, check_files: bool = True) -> list[str]:
    """Check the server section against its transport's requirements."""
    errors = []
    transport = resolve_transport_type(server)

    if transport == STDIO:
        if not server.path:
            errors.append("Stdio transport requires a 'path' field in server configuration")
        elif check_files and not os.path.exists(server.path):
            errors.append(f"Server file not found: {server.path}")
    elif transport == HTTP:
        if not server.url:
            errors.append("HTTP transport requires a 'url' field in server configuration")
        else:
            parsed = urlparse(server.url)
            if parsed.scheme not in ("http", "https") or not parsed.netloc:
                errors.append(f"Invalid HTTP URL: {server.url}")
        if server.path and check_files and not os.path.exists(server.path):
            errors.append(f"Server file not found: {server.path}")
    else:
        errors.append(f"Unsupported transport type: {transport}")

    return errors


def validate_configuration(config: EvaluationConfiguration, check_files: bool = True) -> list[str]:
    """Check a whole suite and collect every problem found."""
    errors = validate_model(config.model)
    errors.extend(validate_server(config.server, check_files=check_files))

    if not config.evaluations:
        errors.append("No evaluations found in configuration")

    seen: set[str] = set()
    for request in config.evaluations:
        errors.extend(validate_request(request))
        if request.name in seen:
            errors.append(f"Duplicate evaluation name: {request.name}")
        seen.add(request.name)

    return errors

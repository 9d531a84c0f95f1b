"""Tool execution planning and execution.

A prompt is turned into an ordered list of tool calls by asking the
language model for a JSON plan. When that call fails or yields nothing
usable, a deterministic pattern matcher picks a tool from its name or
description and extracts arguments from numbers and quoted text in the
prompt. The plan is then executed against a live MCP client.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from mcp_evals.errors import PlanningError, ToolInvocationError

if TYPE_CHECKING:
    from mcp_evals.client import ToolInfo
    from mcp_evals.connections import ClientLike
    from mcp_evals.models import ServerConfiguration
    from mcp_evals.providers.base import LanguageModel

logger = logging.getLogger(__name__)

PLANNING_MAX_TOKENS = 500
PLANNING_TEMPERATURE = 0.1

NO_TOOLS_MESSAGE = "No appropriate tools were found for this request."
NO_RESPONSES_MESSAGE = "No tool responses generated."

# Text extractions that carry no tool output
_PLACEHOLDER_TEXTS = {"No text content", "Unable to extract response content"}

_QUOTED = re.compile(r"['\"]([^'\"]*)['\"]")
_NUMBER = re.compile(r"[-+]?(\d+(\.\d*)?|\.\d+)")
_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")

_PLANNING_RULES = """Respond with a JSON object describing the tool to call:
{"toolName": "<tool name>", "arguments": {"<argument>": <value>}}

If no tool applies, respond with {}.

Rules:
- Only use tools from the list above.
- For math operations, pass the numbers found in the request as arguments "a" and "b".
- For echo or message tools, pass a "message" argument with the quoted text from the request, or the whole request if nothing is quoted.
- Respond with JSON only."""

ArgumentValue = str | int | float | bool | None


class PlanSource(str, Enum):
    """Which planning path produced a plan."""

    LLM = "llm"
    FALLBACK = "fallback"


@dataclass
class ToolExecution:
    """A planned call of one tool."""

    tool_name: str
    arguments: dict[str, ArgumentValue] = field(default_factory=dict)


@dataclass
class ToolPlan:
    """Ordered tool executions and the path that produced them."""

    executions: list[ToolExecution]
    source: PlanSource

    @property
    def is_empty(self) -> bool:
        return not self.executions


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown code fence from model output."""
    return _FENCE.sub("", text.strip()).strip()


def build_planning_prompt(tools: list[ToolInfo]) -> str:
    """Build the system prompt listing the available tools."""
    lines = ["You are a tool selection assistant. Available tools:"]
    lines.extend(f"- {tool.name}: {tool.description}" for tool in tools)
    lines.append("")
    lines.append(_PLANNING_RULES)
    return "\n".join(lines)


def _normalize_value(value: Any) -> ArgumentValue:
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    return json.dumps(value)


def parse_tool_executions(text: str) -> list[ToolExecution]:
    """Parse a planning response into tool executions.

    Accepts a single {"toolName", "arguments"} object, an object with a
    "tools" array of those, or a bare array. Anything else, including
    malformed JSON, yields an empty list.
    """
    try:
        data = json.loads(strip_code_fences(text))
    except (json.JSONDecodeError, TypeError):
        return []

    if isinstance(data, dict):
        if isinstance(data.get("tools"), list):
            items = data["tools"]
        elif data.get("toolName"):
            items = [data]
        else:
            return []
    elif isinstance(data, list):
        items = data
    else:
        return []

    executions = []
    for item in items:
        if not isinstance(item, dict):
            continue
        name = item.get("toolName")
        if not isinstance(name, str) or not name:
            continue
        arguments = item.get("arguments")
        if not isinstance(arguments, dict):
            arguments = {}
        executions.append(
            ToolExecution(
                tool_name=name,
                arguments={str(k): _normalize_value(v) for k, v in arguments.items()},
            )
        )
    return executions


def _parse_number(token: str) -> int | float | None:
    if not _NUMBER.fullmatch(token):
        return None
    if "." in token:
        return float(token)
    return int(token)


def extract_arguments(prompt: str) -> dict[str, ArgumentValue]:
    """Heuristically extract tool arguments from a prompt.

    Two or more numbers become "a" and "b", a single number becomes both
    "value" and "number". The first quoted substring, or else the whole
    prompt, is passed under each of "message", "text" and "input" since
    the tool's argument name is not known.
    """
    numbers = []
    for token in prompt.split():
        number = _parse_number(token.strip(".,!?"))
        if number is not None:
            numbers.append(number)

    arguments: dict[str, ArgumentValue] = {}
    if len(numbers) >= 2:
        arguments["a"] = numbers[0]
        arguments["b"] = numbers[1]
    elif len(numbers) == 1:
        arguments["value"] = numbers[0]
        arguments["number"] = numbers[0]

    match = _QUOTED.search(prompt)
    message = match.group(1) if match else prompt
    arguments["message"] = message
    arguments["text"] = message
    arguments["input"] = message
    return arguments


def _matches_tool(prompt_lower: str, tool: ToolInfo) -> bool:
    if tool.name and tool.name.lower() in prompt_lower:
        return True
    words = {word.strip(".,!?:;()'\"") for word in tool.description.lower().split()}
    hits = sum(1 for word in words if len(word) > 3 and word in prompt_lower)
    return hits >= 2


def plan_with_pattern_matching(prompt: str, tools: list[ToolInfo]) -> list[ToolExecution]:
    """Pick the first tool whose name or description matches the prompt."""
    prompt_lower = prompt.lower()
    for tool in tools:
        if _matches_tool(prompt_lower, tool):
            logger.debug(f"Pattern matching selected tool: {tool.name}")
            return [ToolExecution(tool_name=tool.name, arguments=extract_arguments(prompt))]
    return []


async def _plan_with_llm(prompt: str, tools: list[ToolInfo], llm: LanguageModel) -> list[ToolExecution]:
    try:
        text = await llm.generate(
            build_planning_prompt(tools),
            prompt,
            json_mode=True,
            max_tokens=PLANNING_MAX_TOKENS,
            temperature=PLANNING_TEMPERATURE,
        )
    except Exception as e:
        raise PlanningError(f"Planning call failed: {e}") from e

    executions = parse_tool_executions(text)
    known = {tool.name for tool in tools}
    unknown = [execution.tool_name for execution in executions if execution.tool_name not in known]
    if unknown:
        logger.warning(f"Ignoring planned tools the server does not advertise: {unknown}")
    return [execution for execution in executions if execution.tool_name in known]


async def plan_tool_executions(prompt: str, tools: list[ToolInfo], llm: LanguageModel) -> ToolPlan:
    """Plan which tools to call for a prompt.

    Args:
        prompt: The user prompt.
        tools: Tools advertised by the server.
        llm: Language model used for planning.

    Returns:
        A ToolPlan from the model, or from pattern matching if the model
        call failed or produced no usable executions.
    """
    if not tools:
        return ToolPlan(executions=[], source=PlanSource.FALLBACK)

    try:
        executions = await _plan_with_llm(prompt, tools, llm)
    except PlanningError as e:
        logger.warning(f"{e}; falling back to pattern matching")
        executions = []

    if executions:
        logger.debug(f"Planned tools: {[execution.tool_name for execution in executions]}")
        return ToolPlan(executions=executions, source=PlanSource.LLM)

    return ToolPlan(executions=plan_with_pattern_matching(prompt, tools), source=PlanSource.FALLBACK)


def extract_text(result: Any) -> str:
    """Extract plain text from a tool result.

    Prefers text content blocks, then structured content, then the other
    content blocks serialized as JSON. Returns an empty string when the
    result carries nothing.
    """
    content = getattr(result, "content", None) or []
    texts = [block.text for block in content if getattr(block, "type", None) == "text"]
    if texts:
        return "\n".join(texts).strip()

    structured = getattr(result, "structuredContent", None)
    if structured:
        return json.dumps(structured, default=str)

    if content:
        return json.dumps(
            [block.model_dump(mode="json", exclude_none=True) for block in content],
            default=str,
        )
    return ""


async def _invoke(client: ClientLike, execution: ToolExecution) -> str:
    try:
        result = await client.call_tool(execution.tool_name, execution.arguments)
    except Exception as e:
        raise ToolInvocationError(execution.tool_name, str(e) or type(e).__name__) from e

    text = extract_text(result)
    if getattr(result, "isError", False):
        raise ToolInvocationError(execution.tool_name, text or "Tool reported an error")
    return text


async def execute_tool_interaction(
    client: ClientLike,
    config: ServerConfiguration,
    prompt: str,
    llm: LanguageModel,
) -> str:
    """Plan and run the tool calls for a prompt.

    A failing tool call adds an error line and does not stop the calls
    after it.

    Args:
        client: Connected MCP client.
        config: Server configuration, used for log context.
        prompt: The user prompt.
        llm: Language model used for planning.

    Returns:
        Newline-joined tool outputs and error lines, or a fixed message
        when the planned calls produced no output at all.
    """
    tools = await client.list_tools()
    plan = await plan_tool_executions(prompt, tools, llm)

    if plan.is_empty:
        logger.info(f"No tools planned for prompt on {config.config_key()}")
        return NO_TOOLS_MESSAGE

    lines = []
    for execution in plan.executions:
        logger.debug(f"Calling tool: {execution.tool_name}({execution.arguments})")
        try:
            text = await _invoke(client, execution)
        except ToolInvocationError as e:
            logger.warning(f"Tool {e.tool_name} failed: {e}")
            lines.append(f"Error calling tool {e.tool_name}: {e}")
            continue

        if text and text not in _PLACEHOLDER_TEXTS:
            lines.append(text)

    if not lines:
        return NO_RESPONSES_MESSAGE
    return "\n".join(lines)

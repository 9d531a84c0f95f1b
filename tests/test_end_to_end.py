"""End-to-end tests against a real MCP server over stdio."""

import asyncio
import os
import signal

import pytest

from mcp_evals.connections import ConnectionManager
from mcp_evals.models import EvaluationConfiguration, EvaluationRequest, ServerConfiguration
from mcp_evals.orchestrator import EvaluationOrchestrator
from mcp_evals.planner import extract_text
from mcp_evals.scoring import LLMEvaluationScorer

GOOD_SCORE = (
    '{"accuracy": 5, "completeness": 5, "relevance": 5, "clarity": 5, "reasoning": 4, '
    '"overall_comments": "Echoed correctly"}'
)


@pytest.fixture
def server(stub_server_path: str) -> ServerConfiguration:
    return ServerConfiguration(path=stub_server_path)


class TestStdioServer:
    """Drive the stub server through the whole pipeline."""

    async def test_lists_tools(self, server: ServerConfiguration) -> None:
        async with ConnectionManager() as connections:
            assert await connections.test_connection(server) is True
            client = await connections.get_or_create_client(server)
            tools = await client.list_tools()

        assert {tool.name for tool in tools} == {"add", "echo", "server_pid"}

    async def test_killed_server_is_replaced(self, server: ServerConfiguration) -> None:
        async with ConnectionManager() as connections:
            first = await connections.get_or_create_client(server)
            pid = int(extract_text(await first.call_tool("server_pid", {})))
            os.kill(pid, signal.SIGKILL)
            await asyncio.sleep(0.5)

            assert await connections.test_connection(server) is True
            second = await connections.get_or_create_client(server)
            reply = await second.call_tool("echo", {"message": "still answering"})

        assert second is not first
        assert not first.is_connected
        assert extract_text(reply) == "still answering"

    async def test_echo_with_fallback_planning(self, scripted_llm, server: ServerConfiguration) -> None:
        llm = scripted_llm(RuntimeError("planning unavailable"), GOOD_SCORE)
        connections = ConnectionManager()
        orchestrator = EvaluationOrchestrator(llm, LLMEvaluationScorer(llm), connections)
        config = EvaluationConfiguration(
            server=server,
            evaluations=[EvaluationRequest(name="echo", description="Echo text", prompt="echo 'hello world'")],
        )

        run = await orchestrator.run_all_evaluations(config, parallelism=1)

        result = run.results[0]
        assert result.is_success, result.error_message
        assert "hello world" in result.response
        assert result.score.average_score == pytest.approx(4.8)
        assert connections.active_connections == 0

    async def test_parallel_evaluations_share_server(self, scripted_llm, server: ServerConfiguration) -> None:
        llm = scripted_llm('{"toolName": "add", "arguments": {"a": 2, "b": 3}}')
        connections = ConnectionManager()
        orchestrator = EvaluationOrchestrator(llm, LLMEvaluationScorer(llm), connections)
        config = EvaluationConfiguration(
            server=server,
            evaluations=[EvaluationRequest(name=f"add-{i}", prompt="add 2 and 3") for i in range(4)],
        )

        run = await orchestrator.run_all_evaluations(config, parallelism=4)

        assert all(result.is_success for result in run.results)
        assert all(result.response == "5.0" for result in run.results)

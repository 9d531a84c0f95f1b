"""Evaluation orchestration.

Drives each request through connect, plan, execute and score, and fans a
suite out across requests with bounded parallelism. All requests in a run
share one ConnectionManager, which is closed once the run ends.
"""

from __future__ import annotations

import asyncio
import logging
import os
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from mcp_evals.errors import McpConnectionError
from mcp_evals.loaders import load_configuration
from mcp_evals.metrics import MetricsCollector, NullMetricsCollector
from mcp_evals.models import (
    EvaluationConfiguration,
    EvaluationRequest,
    EvaluationResult,
    EvaluationScore,
    ServerConfiguration,
)
from mcp_evals.planner import execute_tool_interaction

if TYPE_CHECKING:
    from mcp_evals.connections import ConnectionManager
    from mcp_evals.providers.base import LanguageModel
    from mcp_evals.scoring import LLMEvaluationScorer

logger = logging.getLogger(__name__)

# Score recorded for failed evaluations; marks the failure, not a quality judgment
FAILURE_SCORE = 1


@dataclass
class EvaluationRun:
    """Results of evaluating one suite."""

    results: list[EvaluationResult] = field(default_factory=list)
    name: str | None = None
    description: str | None = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    duration: float = 0.0

    @property
    def successful(self) -> list[EvaluationResult]:
        return [r for r in self.results if r.is_success]

    @property
    def failed(self) -> list[EvaluationResult]:
        return [r for r in self.results if not r.is_success]

    @property
    def success_rate(self) -> float:
        """Fraction of evaluations that succeeded."""
        if not self.results:
            return 0.0
        return len(self.successful) / len(self.results)

    @property
    def average_score(self) -> float:
        """Mean average score over successful evaluations."""
        successful = self.successful
        if not successful:
            return 0.0
        return sum(r.score.average_score for r in successful) / len(successful)

    @property
    def all_succeeded(self) -> bool:
        return not self.failed

    def result_for(self, name: str) -> EvaluationResult | None:
        """Find the result for a request by name."""
        for result in self.results:
            if result.name == name:
                return result
        return None


class EvaluationOrchestrator:
    """Runs evaluation requests against an MCP server.

    Usage:
        async with ConnectionManager() as connections:
            orchestrator = EvaluationOrchestrator(llm, scorer, connections)
            run = await orchestrator.run_all_evaluations(config)
    """

    def __init__(
        self,
        llm: LanguageModel,
        scorer: LLMEvaluationScorer,
        connections: ConnectionManager,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._llm = llm
        self._scorer = scorer
        self._connections = connections
        self._metrics: MetricsCollector = metrics or NullMetricsCollector()

    async def run_evaluation(self, request: EvaluationRequest, server: ServerConfiguration) -> EvaluationResult:
        """Evaluate one request.

        Never raises for evaluation failures; they become a failed result
        carrying the error message and the minimum score.
        """
        logger.info(f"Starting evaluation: {request.name}")
        self._metrics.evaluation_started(request.name)
        started = time.monotonic()

        try:
            if not await self._connections.test_connection(server):
                raise McpConnectionError("Unable to connect to MCP server", server=server.config_key())

            client = await self._connections.get_or_create_client(server)
            response = await execute_tool_interaction(client, server, request.prompt, self._llm)
            score = await self._scorer.score(request.prompt, response, request.expected_result)
        except Exception as e:
            duration = time.monotonic() - started
            logger.error(f"Evaluation '{request.name}' failed: {e}")
            self._metrics.evaluation_failed(request.name, duration, type(e).__name__)
            return EvaluationResult(
                name=request.name,
                description=request.description,
                prompt=request.prompt,
                score=EvaluationScore.uniform(FAILURE_SCORE, f"Evaluation failed: {e}"),
                duration=duration,
                error_message=str(e) or type(e).__name__,
            )

        duration = time.monotonic() - started
        logger.info(f"Completed evaluation '{request.name}' in {duration:.2f}s (score {score.average_score:.2f})")
        self._metrics.evaluation_completed(request.name, duration, score.average_score)
        return EvaluationResult(
            name=request.name,
            description=request.description,
            prompt=request.prompt,
            response=response,
            score=score,
            duration=duration,
        )

    async def run_all_evaluations(
        self,
        config: EvaluationConfiguration,
        parallelism: int | None = None,
    ) -> EvaluationRun:
        """Evaluate every request in a suite with bounded parallelism.

        The connection cache is closed when the run ends, including on
        error or cancellation.
        """
        limit = parallelism or os.cpu_count() or 1
        semaphore = asyncio.Semaphore(limit)
        run = EvaluationRun(name=config.name, description=config.description)
        started = time.monotonic()

        logger.info(f"Running {len(config.evaluations)} evaluations with parallelism {limit}")

        async def _bounded(request: EvaluationRequest) -> EvaluationResult:
            async with semaphore:
                return await self.run_evaluation(request, config.server)

        try:
            run.results = list(await asyncio.gather(*(_bounded(r) for r in config.evaluations)))
        finally:
            await self._connections.close_all()

        run.duration = time.monotonic() - started
        logger.info(
            f"Evaluation run finished: {len(run.successful)} succeeded, {len(run.failed)} failed, "
            f"average score {run.average_score:.2f}"
        )
        return run

    async def run_evaluations_from_file(self, path: str | Path, parallelism: int | None = None) -> EvaluationRun:
        """Load a suite file and evaluate it."""
        config = load_configuration(path)
        return await self.run_all_evaluations(config, parallelism=parallelism)

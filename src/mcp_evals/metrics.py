"""Metrics hooks for evaluation runs.

The orchestrator and connection manager report events to a collector.
Collectors decide what to do with them: discard them, log them, keep
counters for an end-of-run summary or export them to Prometheus.
"""

from __future__ import annotations

import logging
import statistics
from typing import Protocol

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class MetricsCollector(Protocol):
    """Receives evaluation and connection events."""

    def evaluation_started(self, name: str) -> None: ...

    def evaluation_completed(self, name: str, duration: float, score: float) -> None: ...

    def evaluation_failed(self, name: str, duration: float, error_type: str) -> None: ...

    def connection_attempt(self, config_key: str, success: bool) -> None: ...


class NullMetricsCollector:
    """Collector that discards every event."""

    def evaluation_started(self, name: str) -> None:
        pass

    def evaluation_completed(self, name: str, duration: float, score: float) -> None:
        pass

    def evaluation_failed(self, name: str, duration: float, error_type: str) -> None:
        pass

    def connection_attempt(self, config_key: str, success: bool) -> None:
        pass


class LoggingMetricsCollector:
    """Collector that logs each event."""

    def evaluation_started(self, name: str) -> None:
        logger.info(f"evaluation_started name={name}")

    def evaluation_completed(self, name: str, duration: float, score: float) -> None:
        logger.info(f"evaluation_completed name={name} duration={duration:.3f}s score={score:.2f}")

    def evaluation_failed(self, name: str, duration: float, error_type: str) -> None:
        logger.info(f"evaluation_failed name={name} duration={duration:.3f}s error_type={error_type}")

    def connection_attempt(self, config_key: str, success: bool) -> None:
        logger.info(f"connection_attempt server={config_key} success={success}")


class MetricsSnapshot(BaseModel):
    """Aggregated counters for one run."""

    evaluations_started: int = Field(0, description="Evaluations started")
    evaluations_completed: int = Field(0, description="Evaluations completed successfully")
    evaluations_failed: int = Field(0, description="Evaluations that failed")
    connection_attempts: int = Field(0, description="Connectivity checks performed")
    connection_failures: int = Field(0, description="Connectivity checks that failed")
    mean_duration: float | None = Field(None, description="Mean evaluation duration in seconds")
    max_duration: float | None = Field(None, description="Longest evaluation duration in seconds")
    mean_score: float | None = Field(None, description="Mean score of completed evaluations")
    error_types: dict[str, int] = Field(default_factory=dict, description="Failures by error type")


class InMemoryMetricsCollector:
    """Collector that keeps counters for a run summary."""

    def __init__(self) -> None:
        self._started = 0
        self._completed = 0
        self._failed = 0
        self._connection_attempts = 0
        self._connection_failures = 0
        self._durations: list[float] = []
        self._scores: list[float] = []
        self._error_types: dict[str, int] = {}

    def evaluation_started(self, name: str) -> None:
        self._started += 1

    def evaluation_completed(self, name: str, duration: float, score: float) -> None:
        self._completed += 1
        self._durations.append(duration)
        self._scores.append(score)

    def evaluation_failed(self, name: str, duration: float, error_type: str) -> None:
        self._failed += 1
        self._durations.append(duration)
        self._error_types[error_type] = self._error_types.get(error_type, 0) + 1

    def connection_attempt(self, config_key: str, success: bool) -> None:
        self._connection_attempts += 1
        if not success:
            self._connection_failures += 1

    def snapshot(self) -> MetricsSnapshot:
        """Summarize everything recorded so far."""
        return MetricsSnapshot(
            evaluations_started=self._started,
            evaluations_completed=self._completed,
            evaluations_failed=self._failed,
            connection_attempts=self._connection_attempts,
            connection_failures=self._connection_failures,
            mean_duration=statistics.mean(self._durations) if self._durations else None,
            max_duration=max(self._durations) if self._durations else None,
            mean_score=statistics.mean(self._scores) if self._scores else None,
            error_types=dict(self._error_types),
        )


class CompositeMetricsCollector:
    """Forwards every event to several collectors."""

    def __init__(self, *collectors: MetricsCollector) -> None:
        self._collectors = collectors

    def evaluation_started(self, name: str) -> None:
        for collector in self._collectors:
            collector.evaluation_started(name)

    def evaluation_completed(self, name: str, duration: float, score: float) -> None:
        for collector in self._collectors:
            collector.evaluation_completed(name, duration, score)

    def evaluation_failed(self, name: str, duration: float, error_type: str) -> None:
        for collector in self._collectors:
            collector.evaluation_failed(name, duration, error_type)

    def connection_attempt(self, config_key: str, success: bool) -> None:
        for collector in self._collectors:
            collector.connection_attempt(config_key, success)


# Scores are integers in [1, 5] averaged over five dimensions
SCORE_BUCKETS = (1.0, 1.5, 2.0, 2.5, 3.0, 3.5, 4.0, 4.5, 5.0)


class PrometheusMetricsCollector:
    """Collector that records events as Prometheus counters and histograms.

    Metrics are registered on the given registry, or on the process-wide
    default registry served by the metrics server.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        registry = registry if registry is not None else REGISTRY
        self.evaluations_started = Counter(
            "mcp_evaluations_started",
            "Total number of evaluations started",
            ["evaluation_name"],
            registry=registry,
        )
        self.evaluations_completed = Counter(
            "mcp_evaluations_completed",
            "Total number of evaluations completed",
            ["evaluation_name"],
            registry=registry,
        )
        self.evaluations_failed = Counter(
            "mcp_evaluations_failed",
            "Total number of evaluations failed",
            ["evaluation_name", "error_type"],
            registry=registry,
        )
        self.evaluation_duration = Histogram(
            "mcp_evaluation_duration_seconds",
            "Duration of evaluations in seconds",
            ["evaluation_name"],
            registry=registry,
        )
        self.evaluation_scores = Histogram(
            "mcp_evaluation_scores",
            "Average evaluation scores",
            ["evaluation_name"],
            buckets=SCORE_BUCKETS,
            registry=registry,
        )
        self.connection_attempts = Counter(
            "mcp_connection_attempts",
            "Total MCP connection attempts",
            ["server"],
            registry=registry,
        )
        self.connection_failures = Counter(
            "mcp_connection_failures",
            "Total failed MCP connection attempts",
            ["server"],
            registry=registry,
        )

    def evaluation_started(self, name: str) -> None:
        self.evaluations_started.labels(evaluation_name=name).inc()

    def evaluation_completed(self, name: str, duration: float, score: float) -> None:
        self.evaluations_completed.labels(evaluation_name=name).inc()
        self.evaluation_duration.labels(evaluation_name=name).observe(duration)
        self.evaluation_scores.labels(evaluation_name=name).observe(score)

    def evaluation_failed(self, name: str, duration: float, error_type: str) -> None:
        self.evaluations_failed.labels(evaluation_name=name, error_type=error_type).inc()
        self.evaluation_duration.labels(evaluation_name=name).observe(duration)

    def connection_attempt(self, config_key: str, success: bool) -> None:
        self.connection_attempts.labels(server=config_key).inc()
        if not success:
            self.connection_failures.labels(server=config_key).inc()

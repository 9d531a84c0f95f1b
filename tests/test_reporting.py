"""Tests for report rendering."""

import json

import pytest

from mcp_evals.models import EvaluationResult, EvaluationScore
from mcp_evals.orchestrator import EvaluationRun
from mcp_evals.reporting import format_results, format_table, score_label, truncate


@pytest.fixture
def run() -> EvaluationRun:
    return EvaluationRun(
        name="Calculator suite",
        results=[
            EvaluationResult(
                name="addition",
                description="Adds two numbers",
                prompt="add 5 and 3",
                response="8",
                score=EvaluationScore(
                    accuracy=5, completeness=5, relevance=5, clarity=4, reasoning=4, overall_comments="Correct"
                ),
                duration=1.25,
            ),
            EvaluationResult(
                name="echo",
                prompt="echo 'hi'",
                score=EvaluationScore.uniform(1, "Evaluation failed: Unable to connect to MCP server"),
                error_message="Unable to connect to MCP server",
            ),
        ],
    )


class TestScoreLabel:
    @pytest.mark.parametrize(
        ("score", "label"),
        [(5.0, "Excellent"), (4.5, "Excellent"), (4.0, "Good"), (3.0, "Fair"), (2.0, "Poor"), (1.0, "Critical")],
    )
    def test_thresholds(self, score: float, label: str) -> None:
        assert score_label(score) == label


class TestFormatTable:
    def test_terminal(self) -> None:
        table = format_table(["Name", "Score"], [["addition", "4.6"]], ["l", "r"])
        lines = table.splitlines()
        assert lines[0] == "+----------+-------+"
        assert lines[1] == "| Name     | Score |"
        assert lines[3] == "| addition |   4.6 |"

    def test_markdown(self) -> None:
        table = format_table(["Name", "Score"], [["addition", "4.6"]], ["l", "r"], fmt="markdown")
        assert table.splitlines()[1] == "| -------- | ----: |"

    def test_no_headers(self) -> None:
        assert format_table([], []) == ""


def test_truncate() -> None:
    assert truncate("short", 10) == "short"
    assert truncate("a long evaluation name", 10) == "a long ev…"


class TestFormatResults:
    """Test each output format."""

    def test_json(self, run: EvaluationRun) -> None:
        payload = json.loads(format_results(run, "json"))

        assert payload["summary"]["total"] == 2
        assert payload["summary"]["successful"] == 1
        assert payload["summary"]["failed"] == 1
        assert payload["summary"]["averageScore"] == 4.6
        first, second = payload["results"]
        assert first["isSuccess"] is True
        assert first["score"]["averageScore"] == 4.6
        assert first["score"]["overallComments"] == "Correct"
        assert second["errorMessage"] == "Unable to connect to MCP server"

    def test_summary(self, run: EvaluationRun) -> None:
        text = format_results(run, "summary")

        assert "Evaluation Summary: Calculator suite" in text
        assert "Success rate: 50.0%" in text
        assert "Average score: 4.60/5" in text

    def test_detailed(self, run: EvaluationRun) -> None:
        text = format_results(run, "detailed")

        assert "=== addition ===" in text
        assert "Status: FAILED" in text
        assert "Error: Unable to connect to MCP server" in text

    def test_clean(self, run: EvaluationRun) -> None:
        text = format_results(run, "clean")

        assert text.startswith("# Calculator suite\n")
        assert "**1/2** evaluations succeeded" in text
        assert "## addition" in text
        assert "## echo" in text
        assert "**Error:** Unable to connect to MCP server" in text
        assert "```\n8\n```" in text

    def test_unknown_format(self, run: EvaluationRun) -> None:
        with pytest.raises(ValueError, match="Unknown output format: xml"):
            format_results(run, "xml")

"""Report rendering for evaluation runs."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

from mcp_evals.models import EvaluationResult
from mcp_evals.orchestrator import EvaluationRun

FORMATS = ("json", "summary", "detailed", "clean")

_SCORE_LABELS = [
    (4.5, "Excellent"),
    (3.5, "Good"),
    (2.5, "Fair"),
    (1.5, "Poor"),
]


def score_label(score: float) -> str:
    """Describe an average score in words."""
    for threshold, label in _SCORE_LABELS:
        if score >= threshold:
            return label
    return "Critical"


def truncate(text: str, width: int) -> str:
    """Truncate text to width, adding ellipsis if needed."""
    if len(text) <= width:
        return text
    return text[: width - 1] + "…"


def format_table(
    headers: list[str],
    rows: list[list[str]],
    alignments: list[str] | None = None,
    fmt: str = "terminal",
) -> str:
    """Render a fixed-width table.

    Args:
        headers: Column header strings.
        rows: Row data, one list of strings per row.
        alignments: Per-column alignment ('l', 'r', 'c'). Defaults to left.
        fmt: 'terminal' for ASCII borders, 'markdown' for a GFM table.
    """
    if not headers:
        return ""

    num_cols = len(headers)
    if alignments is None:
        alignments = ["l"] * num_cols

    col_widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row[:num_cols]):
            col_widths[i] = max(col_widths[i], len(cell))

    def _pad(text: str, width: int, align: str) -> str:
        if align == "r":
            return text.rjust(width)
        if align == "c":
            return text.center(width)
        return text.ljust(width)

    def _line(cells: list[str]) -> str:
        padded = [
            _pad(cells[i] if i < len(cells) else "", col_widths[i], alignments[i])
            for i in range(num_cols)
        ]
        return "| " + " | ".join(padded) + " |"

    header_line = _line(headers)
    data_lines = [_line(row) for row in rows]

    if fmt == "markdown":
        sep_parts = []
        for width, align in zip(col_widths, alignments):
            if align == "r":
                sep_parts.append("-" * (width - 1) + ":")
            elif align == "c":
                sep_parts.append(":" + "-" * max(width - 2, 1) + ":")
            else:
                sep_parts.append("-" * width)
        sep_line = "| " + " | ".join(sep_parts) + " |"
        return "\n".join([header_line, sep_line, *data_lines])

    border = "+-" + "-+-".join("-" * w for w in col_widths) + "-+"
    return "\n".join([border, header_line, border, *data_lines, border])


def _result_dict(result: EvaluationResult) -> dict[str, Any]:
    data = result.model_dump(mode="json", by_alias=True)
    data["isSuccess"] = result.is_success
    data["score"]["averageScore"] = result.score.average_score
    return data


def format_json(run: EvaluationRun) -> str:
    """Render a run as JSON with a summary block."""
    payload = {
        "summary": {
            "name": run.name,
            "total": len(run.results),
            "successful": len(run.successful),
            "failed": len(run.failed),
            "averageScore": round(run.average_score, 2),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
        "results": [_result_dict(r) for r in run.results],
    }
    return json.dumps(payload, indent=2)


def format_summary(run: EvaluationRun) -> str:
    """Render counts, success rate and average score."""
    lines = [
        f"Evaluation Summary{f': {run.name}' if run.name else ''}",
        f"Total evaluations: {len(run.results)}",
        f"Successful: {len(run.successful)}",
        f"Failed: {len(run.failed)}",
        f"Success rate: {run.success_rate:.1%}",
        f"Average score: {run.average_score:.2f}/5",
    ]
    return "\n".join(lines)


def format_detailed(run: EvaluationRun) -> str:
    """Render every result with its sub-scores, response and error."""
    blocks = [format_summary(run)]
    for result in run.results:
        score = result.score
        lines = [
            "",
            f"=== {result.name} ===",
            f"Description: {result.description}",
            f"Status: {'SUCCESS' if result.is_success else 'FAILED'}",
            f"Duration: {result.duration:.2f}s",
            f"Prompt: {result.prompt}",
            f"Response: {result.response}",
            f"Scores: accuracy={score.accuracy} completeness={score.completeness} "
            f"relevance={score.relevance} clarity={score.clarity} reasoning={score.reasoning} "
            f"(average {score.average_score:.2f})",
            f"Comments: {score.overall_comments}",
        ]
        if result.error_message:
            lines.append(f"Error: {result.error_message}")
        blocks.append("\n".join(lines))
    return "\n".join(blocks)


def format_clean(run: EvaluationRun) -> str:
    """Render a run as a markdown report."""
    title = run.name or "MCP Evaluation Report"
    sections = [f"# {title}"]
    if run.description:
        sections.append(run.description)

    sections.append(
        f"**{len(run.successful)}/{len(run.results)}** evaluations succeeded, "
        f"average score **{run.average_score:.2f}/5** ({score_label(run.average_score)})"
    )

    rows = [
        [
            truncate(r.name, 40),
            "Pass" if r.is_success else "Fail",
            f"{r.score.average_score:.1f}",
            score_label(r.score.average_score),
            f"{r.duration:.1f}s",
        ]
        for r in run.results
    ]
    sections.append(
        format_table(
            ["Evaluation", "Status", "Score", "Rating", "Duration"],
            rows,
            ["l", "c", "r", "l", "r"],
            fmt="markdown",
        )
    )

    for result in run.results:
        score = result.score
        lines = [
            f"## {result.name}",
            "",
            f"*{result.description}*" if result.description else "",
            "",
            f"**Prompt:** {result.prompt}",
            "",
            f"**Score:** {score.average_score:.1f}/5 ({score_label(score.average_score)})",
            "",
            format_table(
                ["Accuracy", "Completeness", "Relevance", "Clarity", "Reasoning"],
                [[str(score.accuracy), str(score.completeness), str(score.relevance),
                  str(score.clarity), str(score.reasoning)]],
                ["c"] * 5,
                fmt="markdown",
            ),
            "",
            f"**Comments:** {score.overall_comments}",
        ]
        if result.error_message:
            lines.extend(["", f"**Error:** {result.error_message}"])
        elif result.response:
            lines.extend(["", "**Response:**", "", "```", result.response, "```"])
        sections.append("\n".join(lines))

    return "\n\n".join(sections) + "\n"


def format_results(run: EvaluationRun, fmt: str = "clean") -> str:
    """Render a run in one of the supported formats.

    Raises:
        ValueError: If the format is unknown.
    """
    formatters = {
        "json": format_json,
        "summary": format_summary,
        "detailed": format_detailed,
        "clean": format_clean,
    }
    formatter = formatters.get(fmt)
    if formatter is None:
        raise ValueError(f"Unknown output format: {fmt}")
    return formatter(run)

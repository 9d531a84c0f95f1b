"""Tests for LLM-based response scoring."""

import pytest

from mcp_evals.errors import ScoringError
from mcp_evals.scoring import (
    NEUTRAL_SCORE,
    SCORING_SYSTEM_PROMPT,
    LLMEvaluationScorer,
    build_scoring_prompt,
    parse_score,
)

VALID_SCORE = (
    '{"accuracy": 5, "completeness": 4, "relevance": 5, "clarity": 4, "reasoning": 4, '
    '"overall_comments": "Correct sum"}'
)


class TestBuildScoringPrompt:
    def test_without_expected_result(self) -> None:
        assert build_scoring_prompt("add 5 and 3", "8") == (
            "Here is the user input: add 5 and 3\nHere is the LLM's answer: 8"
        )

    def test_with_expected_result(self) -> None:
        text = build_scoring_prompt("add 5 and 3", "8", "8")
        assert text.endswith("\nExpected result for reference: 8")


class TestParseScore:
    """Test parsing of scoring responses."""

    def test_plain_json(self) -> None:
        score = parse_score(VALID_SCORE)
        assert score.accuracy == 5
        assert score.overall_comments == "Correct sum"
        assert score.average_score == pytest.approx(4.4)

    def test_fenced_json_with_prose(self) -> None:
        score = parse_score(f"Here is my evaluation:\n```json\n{VALID_SCORE}\n```")
        assert score.relevance == 5

    def test_camel_case_comments(self) -> None:
        score = parse_score(
            '{"accuracy": 3, "completeness": 3, "relevance": 3, "clarity": 3, "reasoning": 3, '
            '"overallComments": "ok"}'
        )
        assert score.overall_comments == "ok"

    def test_no_json(self) -> None:
        with pytest.raises(ScoringError, match="No JSON object"):
            parse_score("I would rate this highly")

    def test_out_of_range(self) -> None:
        with pytest.raises(ScoringError, match="Invalid scoring response"):
            parse_score('{"accuracy": 9, "completeness": 4, "relevance": 5, "clarity": 4, "reasoning": 4}')


class TestLLMEvaluationScorer:
    """Test the scorer's model call and fallbacks."""

    async def test_scores_response(self, scripted_llm) -> None:
        llm = scripted_llm(VALID_SCORE)
        scorer = LLMEvaluationScorer(llm, max_tokens=1000, temperature=0.0)

        score = await scorer.score("add 5 and 3", "8", "8")

        assert score.accuracy == 5
        call = llm.calls[0]
        assert call["system_prompt"] == SCORING_SYSTEM_PROMPT
        assert call["json_mode"] is True
        assert call["max_tokens"] == 1000
        assert call["temperature"] == 0.0
        assert "Expected result for reference: 8" in call["user_prompt"]

    async def test_model_failure_gives_neutral_score(self, failing_llm) -> None:
        score = await LLMEvaluationScorer(failing_llm).score("p", "r")

        assert score.average_score == float(NEUTRAL_SCORE)
        assert score.overall_comments.startswith("Failed to obtain evaluation result:")
        assert "model unavailable" in score.overall_comments

    async def test_unparseable_response_gives_neutral_score(self, scripted_llm) -> None:
        raw = "This answer is great! " * 20
        score = await LLMEvaluationScorer(scripted_llm(raw)).score("p", "r")

        assert score.average_score == 3.0
        assert score.overall_comments == f"Failed to parse evaluation result. Raw result: {raw[:200]}"

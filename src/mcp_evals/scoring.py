"""LLM-based response scoring."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import ValidationError

from mcp_evals.errors import ScoringError
from mcp_evals.models import EvaluationScore
from mcp_evals.planner import strip_code_fences

if TYPE_CHECKING:
    from mcp_evals.providers.base import LanguageModel

logger = logging.getLogger(__name__)

# Mid-range value used when no real judgment could be obtained
NEUTRAL_SCORE = 3

SCORING_SYSTEM_PROMPT = """You are an expert evaluator of AI assistant responses.
Rate the assistant's answer to the user's input on each dimension from 1 (poor) to 5 (excellent):
- accuracy: Is the information correct?
- completeness: Does it address everything the user asked?
- relevance: Does it stay on topic?
- clarity: Is it clear and well organized?
- reasoning: Is the reasoning sound?

Respond with JSON only, in exactly this format:
{"accuracy": <1-5>, "completeness": <1-5>, "relevance": <1-5>, "clarity": <1-5>, "reasoning": <1-5>, "overall_comments": "<short explanation>"}"""


def build_scoring_prompt(prompt: str, response: str, expected_result: str | None = None) -> str:
    """Build the user message for a scoring request."""
    text = f"Here is the user input: {prompt}\nHere is the LLM's answer: {response}"
    if expected_result:
        text += f"\nExpected result for reference: {expected_result}"
    return text


def parse_score(text: str) -> EvaluationScore:
    """Parse a scoring response into an EvaluationScore.

    Raises:
        ScoringError: If no valid score object is found.
    """
    cleaned = strip_code_fences(text)
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start == -1 or end <= start:
        raise ScoringError("No JSON object found in scoring response")

    try:
        return EvaluationScore.model_validate_json(cleaned[start : end + 1])
    except ValidationError as e:
        raise ScoringError(f"Invalid scoring response: {e}") from e


class LLMEvaluationScorer:
    """Scores responses with a language model judge.

    Never raises for model or parse failures: those produce a neutral
    score whose comments say what went wrong.
    """

    def __init__(self, llm: LanguageModel, max_tokens: int | None = None, temperature: float | None = None) -> None:
        self._llm = llm
        self._max_tokens = max_tokens
        self._temperature = temperature

    async def score(self, prompt: str, response: str, expected_result: str | None = None) -> EvaluationScore:
        """Score a response to a prompt."""
        try:
            raw = await self._llm.generate(
                SCORING_SYSTEM_PROMPT,
                build_scoring_prompt(prompt, response, expected_result),
                json_mode=True,
                max_tokens=self._max_tokens,
                temperature=self._temperature,
            )
        except Exception as e:
            logger.error(f"Scoring call failed: {e}")
            return EvaluationScore.uniform(NEUTRAL_SCORE, f"Failed to obtain evaluation result: {e}")

        try:
            return parse_score(raw)
        except ScoringError as e:
            logger.warning(f"Scoring response rejected: {e}")
            return EvaluationScore.uniform(
                NEUTRAL_SCORE,
                f"Failed to parse evaluation result. Raw result: {raw[:200]}",
            )

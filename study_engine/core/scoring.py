# core/scoring.py

"""
Response scoring.

Two interchangeable strategies share one contract:

    score(prompt, response, canonical_answer=None) -> Optional[Analysis]

- DelegatedScorer asks an external reasoning capability for a strict
  {"score", "feedback"} JSON verdict. It returns None when the capability
  is missing or its answer cannot be used.
- HeuristicScorer is local and deterministic. It always returns an Analysis.

FallbackScorer composes the two: the delegated call runs under a timeout
and the heuristic covers every case where it produced nothing.
"""

import json
import logging
import math
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from typing import Any, Dict, Optional, Tuple

from study_engine.config import (
    BRIEF_RESPONSE_CHARS,
    COMPLETE_RESPONSE_CHARS,
    DETAILED_RESPONSE_CHARS,
    HEURISTIC_BASE_SCORE,
    SCORING_TIMEOUT_SEC,
)
from study_engine.core.errors import DelegatedScoringUnavailable
from study_engine.core.models import HEURISTIC_PROVENANCE, Analysis

logger = logging.getLogger(__name__)

SYSTEM_ROLE = "You are an educational assessment AI. Provide constructive feedback."


class ScoringStrategy:
    """Common interface for scorers."""

    name = "base"

    def score(self, prompt: str, response: str,
              canonical_answer: Optional[str] = None) -> Optional[Analysis]:
        raise NotImplementedError


# ============================================================
# HEURISTIC
# ============================================================

class HeuristicScorer(ScoringStrategy):
    name = HEURISTIC_PROVENANCE

    def score(self, prompt: str, response: str,
              canonical_answer: Optional[str] = None) -> Analysis:
        text = (response or "").strip()
        length = len(text)

        if length == 0:
            return Analysis(0.0, "No response provided.", HEURISTIC_PROVENANCE)

        score = HEURISTIC_BASE_SCORE
        notes = []

        if length < BRIEF_RESPONSE_CHARS:
            score -= 0.2
            notes.append("Response is very brief.")
        elif length > DETAILED_RESPONSE_CHARS:
            score += 0.1
            notes.append("Good detail provided.")

        if has_canonical_answer(canonical_answer):
            ratio = match_ratio(canonical_answer, text)
            score += ratio * 0.3
            if ratio > 0.5:
                notes.append("Key concepts identified.")
            else:
                notes.append("Consider reviewing the key concepts.")
        else:
            if length > COMPLETE_RESPONSE_CHARS:
                score += 0.2
            notes.append("Response evaluated for completeness.")

        # no ceiling here; Analysis clamps to [0, 1]
        return Analysis(score, " ".join(notes) or "Response received.", HEURISTIC_PROVENANCE)


def has_canonical_answer(canonical_answer: Optional[str]) -> bool:
    return bool(canonical_answer and canonical_answer.strip())


def match_ratio(canonical_answer: str, response: str) -> float:
    """Share of canonical-answer words (case-insensitive) that appear in the response."""
    answer_words = canonical_answer.lower().split()
    if not answer_words:
        return 0.0
    response_words = set(response.lower().split())
    matching = [w for w in answer_words if w in response_words]
    return len(matching) / len(answer_words)


# ============================================================
# DELEGATED
# ============================================================

def build_grading_prompt(prompt: str, response: str,
                         canonical_answer: Optional[str] = None) -> str:
    if has_canonical_answer(canonical_answer):
        return (
            f"Question: {prompt}\n\n"
            f"Canonical Answer: {canonical_answer}\n\n"
            f"Student Response: {response}\n\n"
            "Evaluate the student's response against the canonical answer. "
            "Provide a score (0.0 to 1.0) and brief feedback. "
            'Return JSON: {"score": number, "feedback": string}'
        )
    return (
        f"Question: {prompt}\n\n"
        f"Student Response: {response}\n\n"
        "Evaluate the student's response quality, clarity, and completeness. "
        "Provide a score (0.0 to 1.0) and brief feedback. "
        'Return JSON: {"score": number, "feedback": string}'
    )


def clean_json_block(s: str) -> str:
    """Remove markdown fences and whitespace so json.loads has a cleaner shot."""
    return s.replace("```json", "").replace("```", "").strip()


def parse_grading_payload(raw: Any) -> Tuple[float, str]:
    """Read the two-field verdict; anything else in the payload is ignored."""
    if not isinstance(raw, str) or not raw.strip():
        raise DelegatedScoringUnavailable("empty grading payload")
    try:
        data: Dict[str, Any] = json.loads(clean_json_block(raw))
    except json.JSONDecodeError as e:
        raise DelegatedScoringUnavailable(f"grading payload is not JSON: {e}") from e
    if not isinstance(data, dict):
        raise DelegatedScoringUnavailable("grading payload is not a JSON object")

    value = data.get("score")
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise DelegatedScoringUnavailable(f"unusable score: {value!r}")
    try:
        score = float(value)
    except ValueError as e:
        raise DelegatedScoringUnavailable(f"unusable score: {value!r}") from e
    if math.isnan(score):
        raise DelegatedScoringUnavailable("score is NaN")

    feedback = data.get("feedback")
    if not isinstance(feedback, str) or not feedback.strip():
        feedback = "No feedback available."
    return score, feedback.strip()


class DelegatedScorer(ScoringStrategy):
    """
    Scores through a reasoning capability: any object exposing a `model`
    attribute and `complete(system_role, user_prompt) -> str`.
    """

    name = "delegated"

    def __init__(self, capability=None):
        self.capability = capability

    @property
    def available(self) -> bool:
        return self.capability is not None

    def score(self, prompt: str, response: str,
              canonical_answer: Optional[str] = None) -> Optional[Analysis]:
        try:
            return self.score_or_raise(prompt, response, canonical_answer)
        except DelegatedScoringUnavailable as e:
            logger.warning("Delegated scoring unavailable: %s", e)
            return None

    def score_or_raise(self, prompt: str, response: str,
                       canonical_answer: Optional[str] = None) -> Analysis:
        if self.capability is None:
            raise DelegatedScoringUnavailable("no reasoning capability configured")

        user_prompt = build_grading_prompt(prompt, response, canonical_answer)
        try:
            raw = self.capability.complete(SYSTEM_ROLE, user_prompt)
        except Exception as e:
            raise DelegatedScoringUnavailable(f"{type(e).__name__}: {e}") from e

        score, feedback = parse_grading_payload(raw)
        return Analysis(score, feedback, str(self.capability.model))


# ============================================================
# FALLBACK CHAIN
# ============================================================

class FallbackScorer(ScoringStrategy):
    """Delegated first, heuristic whenever the delegated strategy gives nothing."""

    name = "fallback"

    def __init__(self, primary: Optional[ScoringStrategy] = None,
                 fallback: Optional[HeuristicScorer] = None,
                 timeout: Optional[float] = SCORING_TIMEOUT_SEC):
        self.primary = primary
        self.fallback = fallback or HeuristicScorer()
        self.timeout = timeout
        self._executor: Optional[ThreadPoolExecutor] = None

    def score(self, prompt: str, response: str,
              canonical_answer: Optional[str] = None) -> Analysis:
        result = self._run_primary(prompt, response, canonical_answer)
        if result is None:
            result = self.fallback.score(prompt, response, canonical_answer)
        return result

    def _run_primary(self, prompt, response, canonical_answer) -> Optional[Analysis]:
        if self.primary is None:
            return None
        if not getattr(self.primary, "available", True):
            logger.debug("Delegated scorer has no capability; using heuristic")
            return None

        if self.timeout is None:
            return self._call_primary(prompt, response, canonical_answer)

        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="delegated-scoring")
        future = self._executor.submit(self._call_primary, prompt, response, canonical_answer)
        try:
            return future.result(timeout=self.timeout)
        except FutureTimeout:
            future.cancel()
            logger.warning("Delegated scoring timed out after %.1fs; using heuristic", self.timeout)
            return None

    def _call_primary(self, prompt, response, canonical_answer) -> Optional[Analysis]:
        try:
            return self.primary.score(prompt, response, canonical_answer)
        except Exception:
            logger.exception("Delegated scorer raised; using heuristic")
            return None

    def close(self):
        if self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None

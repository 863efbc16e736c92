# core/models.py

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple

from study_engine.config import DEFAULT_DURATION


# ============================================================
# QUESTION OBJECT
# ============================================================

class QuestionKind(str, Enum):
    SINGLE_CHOICE = "single_choice"
    OPEN_ENDED = "open_ended"


@dataclass(frozen=True)
class Choice:
    choice_id: str
    label: str


@dataclass(frozen=True)
class Question:
    """
    One exam item. Immutable once a session starts.

    `weight` feeds aggregate grading in the session report; the
    scoring policy never reads it.
    """
    question_id: str
    kind: QuestionKind
    prompt: str
    choices: Tuple[Choice, ...] = ()
    canonical_answer: Optional[str] = None
    weight: float = 1.0

    def __post_init__(self):
        if not str(self.question_id).strip():
            raise ValueError("question_id cannot be empty")
        if not self.prompt.strip():
            raise ValueError(f"Question {self.question_id} has an empty prompt")
        if not 0.0 <= self.weight <= 1.0:
            raise ValueError(f"Question weight must be in [0, 1], got {self.weight}")

        # accept plain strings and lists from loaders
        object.__setattr__(self, "kind", QuestionKind(self.kind))
        object.__setattr__(self, "choices", tuple(self.choices))

        if self.kind is QuestionKind.SINGLE_CHOICE:
            if not self.choices:
                raise ValueError(f"Single-choice question {self.question_id} has no choices")
            ids = [c.choice_id for c in self.choices]
            if len(set(ids)) != len(ids):
                raise ValueError(f"Duplicate choice ids in question {self.question_id}")

    @property
    def choice_ids(self) -> Tuple[str, ...]:
        return tuple(c.choice_id for c in self.choices)

    def choice_label(self, choice_id: str) -> Optional[str]:
        for c in self.choices:
            if c.choice_id == choice_id:
                return c.label
        return None


# ============================================================
# ANALYSIS OBJECT
# ============================================================

HEURISTIC_PROVENANCE = "heuristic"


@dataclass(frozen=True)
class Analysis:
    score: float
    feedback: str
    provenance: str

    def __post_init__(self):
        object.__setattr__(self, "score", clamp_score(self.score))

    @property
    def is_heuristic(self) -> bool:
        return self.provenance == HEURISTIC_PROVENANCE


def clamp_score(value: float) -> float:
    return float(max(0.0, min(1.0, value)))


# ============================================================
# TIMER STATE
# ============================================================

@dataclass(frozen=True)
class TimerState:
    base_duration: int = DEFAULT_DURATION
    remaining: int = DEFAULT_DURATION
    running: bool = False


# ============================================================
# PRENA DIAGNOSTIC
# ============================================================

TRAITS = ("practical", "reflective", "experimental", "narrative")


@dataclass(frozen=True)
class DiagnosticAnswer:
    question_id: str
    option_id: str
    scores: Dict[str, float] = field(default_factory=dict)
    weight: float = 1.0

    def subscore(self, trait: str) -> float:
        return float(self.scores.get(trait, 0.0) or 0.0)


@dataclass(frozen=True)
class LearningStyleProfile:
    practical_score: float
    reflective_score: float
    experimental_score: float
    narrative_score: float
    dominant_style: str

    def as_dict(self) -> Dict[str, float]:
        return {
            "practical": self.practical_score,
            "reflective": self.reflective_score,
            "experimental": self.experimental_score,
            "narrative": self.narrative_score,
        }

import json

import pytest

from study_engine.core.models import Choice, Question, QuestionKind
from study_engine.core.scoring import HeuristicScorer


class FakeCapability:
    """Stands in for a reasoning provider; returns canned text or raises."""

    def __init__(self, reply=None, error=None, model="fake-model"):
        self.model = model
        self.reply = reply
        self.error = error
        self.calls = []

    def complete(self, system_role, user_prompt):
        self.calls.append((system_role, user_prompt))
        if self.error is not None:
            raise self.error
        return self.reply


def verdict(score, feedback="Nice work."):
    return json.dumps({"score": score, "feedback": feedback})


@pytest.fixture
def choice_question():
    return Question(
        question_id="q1",
        kind=QuestionKind.SINGLE_CHOICE,
        prompt="Which structure is FIFO?",
        choices=(Choice("A", "Stack"), Choice("B", "Queue")),
        canonical_answer="B",
        weight=0.5,
    )


@pytest.fixture
def open_question():
    return Question(
        question_id="q2",
        kind=QuestionKind.OPEN_ENDED,
        prompt="Explain what a hash function does.",
        canonical_answer="maps a key to an index",
    )


@pytest.fixture
def free_question():
    return Question(
        question_id="q3",
        kind=QuestionKind.OPEN_ENDED,
        prompt="Why write tests before refactoring?",
    )


@pytest.fixture
def questions(choice_question, open_question, free_question):
    return [choice_question, open_question, free_question]


@pytest.fixture
def heuristic():
    return HeuristicScorer()


@pytest.fixture
def fake_capability():
    return FakeCapability(reply=verdict(0.9))

# core/session.py

"""
Exam session state machine.

    AWAITING_RESPONSE(i) --submit--> SCORING(i) --analysis--> REVIEWING(i)
    AWAITING_RESPONSE(i) --next (i not last)--> AWAITING_RESPONSE(i+1)
    REVIEWING(i)         --next--> AWAITING/REVIEWING(i+1), or COMPLETE at the last index
    any                  --previous--> cursor max(i-1, 0)

Submissions are split into begin/complete so scoring may run off the
caller's thread. A ticket carries the session generation; `start` bumps
it, so results that resolve after a restart are dropped.
"""

import logging
import threading
import uuid
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Sequence, Tuple

from study_engine.core.errors import InvalidTransition
from study_engine.core.models import Analysis, Question, QuestionKind
from study_engine.core.scoring import HeuristicScorer

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    AWAITING_RESPONSE = "awaiting_response"
    SCORING = "scoring"
    REVIEWING = "reviewing"
    COMPLETE = "complete"


def score_or_fallback(scorer, question: Question, content: str) -> Analysis:
    """Run `scorer`; a missing result or a raised error is scored heuristically."""
    try:
        analysis = scorer.score(question.prompt, content, question.canonical_answer)
    except Exception:
        logger.warning("Scorer failed on %s; using heuristic", question.question_id, exc_info=True)
        analysis = None
    if analysis is None:
        analysis = HeuristicScorer().score(question.prompt, content, question.canonical_answer)
    return analysis


@dataclass(frozen=True)
class SubmissionTicket:
    generation: int
    session_id: str
    question_id: str
    content: str


class ExamSession:
    def __init__(self, session_id: Optional[str] = None):
        self.session_id = session_id or uuid.uuid4().hex
        self._questions: Tuple[Question, ...] = ()
        self._cursor = 0
        self._responses = {}
        self._analyses = {}
        self._pending: Optional[SubmissionTicket] = None
        self._generation = 0
        self._completed = False
        self._lock = threading.RLock()

    # ---------------------------------------------------
    # Read accessors
    # ---------------------------------------------------
    @property
    def started(self) -> bool:
        return bool(self._questions)

    @property
    def questions(self) -> Tuple[Question, ...]:
        return self._questions

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def current_question(self) -> Question:
        self._require_started()
        return self._questions[self._cursor]

    @property
    def responses(self) -> Mapping[str, str]:
        return MappingProxyType(self._responses)

    @property
    def analyses(self) -> Mapping[str, Analysis]:
        return MappingProxyType(self._analyses)

    @property
    def busy(self) -> bool:
        return self._pending is not None

    @property
    def is_last(self) -> bool:
        return self.started and self._cursor == len(self._questions) - 1

    @property
    def is_complete(self) -> bool:
        return self._completed

    @property
    def state(self) -> SessionState:
        q = self.current_question
        if self._pending is not None and self._pending.question_id == q.question_id:
            return SessionState.SCORING
        if self._completed and self.is_last:
            return SessionState.COMPLETE
        if q.question_id in self._analyses:
            return SessionState.REVIEWING
        return SessionState.AWAITING_RESPONSE

    def _require_started(self):
        if not self._questions:
            raise InvalidTransition("Session has not been started")

    # ---------------------------------------------------
    # Start
    # ---------------------------------------------------
    def start(self, questions: Sequence[Question], session_id: Optional[str] = None):
        questions = tuple(questions)
        if not questions:
            raise InvalidTransition("Cannot start a session without questions")
        ids = [q.question_id for q in questions]
        if len(set(ids)) != len(ids):
            raise InvalidTransition("Question ids must be unique within a session")

        with self._lock:
            if self._pending is not None:
                logger.info("Discarding outstanding submission for %s", self._pending.question_id)
            self._generation += 1
            if session_id:
                self.session_id = session_id
            self._questions = questions
            self._cursor = 0
            self._responses = {}
            self._analyses = {}
            self._pending = None
            self._completed = False

        logger.debug("Session %s started with %d questions", self.session_id, len(questions))

    # ---------------------------------------------------
    # Submit
    # ---------------------------------------------------
    def begin_submission(self, question_id: str, content: str) -> SubmissionTicket:
        """Validate a submission and mark the session busy."""
        with self._lock:
            self._require_started()
            if self._pending is not None:
                raise InvalidTransition("A submission is already being scored")

            q = self.current_question
            if question_id != q.question_id:
                raise InvalidTransition(
                    f"Question {question_id} is not the current question ({q.question_id})"
                )
            if question_id in self._analyses:
                raise InvalidTransition(f"Question {question_id} has already been analysed")

            text = content.strip() if isinstance(content, str) else ""
            if not text:
                raise InvalidTransition("Response content cannot be empty")

            if q.kind is QuestionKind.SINGLE_CHOICE:
                if text not in q.choice_ids:
                    raise InvalidTransition(
                        f"'{text}' is not a choice of question {question_id}"
                    )
                content = text

            ticket = SubmissionTicket(self._generation, self.session_id, question_id, content)
            self._pending = ticket
            return ticket

    def complete_submission(self, ticket: SubmissionTicket, analysis: Analysis) -> bool:
        """Store a scored submission. Returns False when the ticket is stale."""
        with self._lock:
            if ticket.generation != self._generation or self._pending != ticket:
                logger.info(
                    "Dropping stale analysis for %s (generation %d, current %d)",
                    ticket.question_id, ticket.generation, self._generation,
                )
                return False

            self._responses[ticket.question_id] = ticket.content
            self._analyses[ticket.question_id] = analysis
            self._pending = None
            return True

    def abandon_submission(self, ticket: SubmissionTicket):
        with self._lock:
            if self._pending == ticket:
                self._pending = None

    def submit(self, question_id: str, content: str, scorer) -> Analysis:
        """Validate, score and store a response for the current question."""
        ticket = self.begin_submission(question_id, content)
        q = self.current_question
        try:
            analysis = score_or_fallback(scorer, q, ticket.content)
        except Exception:
            self.abandon_submission(ticket)
            raise

        self.complete_submission(ticket, analysis)
        logger.debug("Question %s scored %.2f by %s", question_id, analysis.score, analysis.provenance)
        return analysis

    # ---------------------------------------------------
    # Navigation
    # ---------------------------------------------------
    def next(self) -> SessionState:
        with self._lock:
            state = self.state
            if state is SessionState.SCORING:
                raise InvalidTransition("Cannot move on while the answer is being scored")

            if self.is_last:
                if state is SessionState.AWAITING_RESPONSE:
                    raise InvalidTransition("The last question must be answered before finishing")
                self._completed = True
                return SessionState.COMPLETE

            self._cursor += 1
            return self.state

    def previous(self) -> SessionState:
        with self._lock:
            self._require_started()
            self._cursor = max(self._cursor - 1, 0)
            return self.state

# core/controller.py

import logging
from concurrent.futures import Executor, Future
from typing import Callable, Optional, Sequence

from study_engine.core.models import Analysis, Question
from study_engine.core.scoring import DelegatedScorer, FallbackScorer, HeuristicScorer
from study_engine.core.session import ExamSession, SessionState, SubmissionTicket, score_or_fallback
from study_engine.core.timer import AdaptiveTimer

logger = logging.getLogger(__name__)

AnalysisHook = Callable[[str, Question, str, Analysis], None]


def build_default_scorer(capability=None) -> FallbackScorer:
    """Delegated scoring when a provider is configured, heuristic otherwise."""
    if capability is None:
        from study_engine.core.reasoning import build_capability
        capability = build_capability()
    return FallbackScorer(primary=DelegatedScorer(capability), fallback=HeuristicScorer())


class ExamController:
    """
    Orchestrates one exam: a session, its timer and a scorer.

    - the timer restarts whenever the cursor moves forward, tuned by the
      score of the question just left
    - an expired countdown moves on only if the current question was answered
    - `on_analysis` receives every stored analysis (persistence hook)
    """

    def __init__(self, scorer=None, timer: Optional[AdaptiveTimer] = None,
                 session: Optional[ExamSession] = None,
                 on_analysis: Optional[AnalysisHook] = None):
        self.scorer = scorer if scorer is not None else build_default_scorer()
        self.timer = timer or AdaptiveTimer()
        self.session = session or ExamSession()
        self.on_analysis = on_analysis
        self._adapted = set()

    # ---------------------------------------------------
    # Accessors
    # ---------------------------------------------------
    @property
    def current_question(self) -> Question:
        return self.session.current_question

    @property
    def state(self) -> SessionState:
        return self.session.state

    @property
    def current_analysis(self) -> Optional[Analysis]:
        return self.session.analyses.get(self.current_question.question_id)

    @property
    def current_response(self) -> Optional[str]:
        return self.session.responses.get(self.current_question.question_id)

    # ---------------------------------------------------
    # Session operations
    # ---------------------------------------------------
    def start(self, questions: Sequence[Question], session_id: Optional[str] = None):
        self.session.start(questions, session_id=session_id)
        self._adapted = set()
        self.timer.reset()

    def submit(self, question_id: str, content: str) -> Analysis:
        analysis = self.session.submit(question_id, content, self.scorer)
        self._persist(self.session.current_question, self.session.responses[question_id], analysis)
        return analysis

    def submit_in_background(self, question_id: str, content: str, executor: Executor) -> Future:
        """
        Score on `executor`. The future resolves to the stored Analysis, or
        None when the session was restarted before scoring finished.
        """
        ticket = self.session.begin_submission(question_id, content)
        question = self.session.current_question
        try:
            return executor.submit(self._score_ticket, ticket, question)
        except Exception:
            self.session.abandon_submission(ticket)
            raise

    def _score_ticket(self, ticket: SubmissionTicket, question: Question) -> Optional[Analysis]:
        try:
            analysis = score_or_fallback(self.scorer, question, ticket.content)
        except Exception:
            self.session.abandon_submission(ticket)
            raise

        if not self.session.complete_submission(ticket, analysis):
            return None
        self._persist(question, ticket.content, analysis)
        return analysis

    def _persist(self, question: Question, content: str, analysis: Analysis):
        if self.on_analysis is None:
            return
        try:
            self.on_analysis(self.session.session_id, question, content, analysis)
        except OSError:
            logger.exception("Could not persist analysis for %s", question.question_id)

    def next(self) -> SessionState:
        leaving = self.session.current_question
        state = self.session.next()

        if state is SessionState.COMPLETE:
            self.timer.pause()
            return state

        # each score tunes the timer once, on the first move past its question
        analysis = self.session.analyses.get(leaving.question_id)
        if analysis is not None and leaving.question_id not in self._adapted:
            self._adapted.add(leaving.question_id)
            self.timer.adapt(score=analysis.score)
        self.timer.reset()
        return state

    def previous(self) -> SessionState:
        state = self.session.previous()
        self.timer.pause()
        return state

    # ---------------------------------------------------
    # Clock
    # ---------------------------------------------------
    def tick(self, elapsed_seconds: float = 1) -> bool:
        """Advance the countdown. Returns True when it expired on this tick."""
        expired = self.timer.tick(elapsed_seconds)
        if expired:
            q = self.session.current_question
            if q.question_id in self.session.responses and self.session.state is SessionState.REVIEWING:
                logger.info("Time is up on %s; moving on", q.question_id)
                self.next()
            else:
                logger.info("Time is up on %s; waiting for an answer", q.question_id)
        return expired

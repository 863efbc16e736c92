import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from conftest import FakeCapability, verdict
from study_engine.core.controller import ExamController, build_default_scorer
from study_engine.core.errors import InvalidTransition
from study_engine.core.models import Analysis
from study_engine.core.scoring import FallbackScorer
from study_engine.core.session import SessionState
from study_engine.core.timer import AdaptiveTimer


class FixedScorer:
    def __init__(self, score):
        self.value = score

    def score(self, prompt, response, canonical_answer=None):
        return Analysis(self.value, "Graded.", "fixed")


class GatedScorer:
    """Blocks until released so a restart can overtake the scoring call."""

    def __init__(self):
        self.entered = threading.Event()
        self.release = threading.Event()

    def score(self, prompt, response, canonical_answer=None):
        self.entered.set()
        self.release.wait(5)
        return Analysis(1.0, "Late verdict.", "gated")


@pytest.fixture
def controller(questions):
    c = ExamController(scorer=FixedScorer(0.9))
    c.start(questions, session_id="s1")
    return c


class TestTimerCoupling:

    def test_start_resets_timer(self, questions):
        timer = AdaptiveTimer()
        timer.start()
        timer.tick(100)
        c = ExamController(scorer=FixedScorer(0.5), timer=timer)
        c.start(questions)
        assert timer.state.remaining == 1500
        assert not timer.state.running

    def test_high_score_grows_next_countdown(self, controller):
        controller.submit("q1", "B")
        controller.next()
        assert controller.timer.state.base_duration == 1575
        assert controller.timer.state.remaining == 1575
        assert not controller.timer.state.running

    def test_low_score_shrinks_next_countdown(self, questions):
        c = ExamController(scorer=FixedScorer(0.1))
        c.start(questions)
        c.submit("q1", "A")
        c.next()
        assert c.timer.state.base_duration == 1350

    def test_review_round_trips_do_not_readapt(self, controller):
        controller.submit("q1", "B")
        controller.next()
        assert controller.timer.state.base_duration == 1575
        for _ in range(5):
            controller.previous()
            controller.next()
            assert controller.timer.state.base_duration == 1575

    def test_restart_allows_adapting_again(self, controller, questions):
        controller.submit("q1", "B")
        controller.next()
        controller.start(questions)
        controller.submit("q1", "B")
        controller.next()
        assert controller.timer.state.base_duration == 1654

    def test_skip_keeps_base_duration(self, controller):
        controller.timer.start()
        controller.timer.tick(30)
        controller.next()
        assert controller.timer.state.base_duration == 1500
        assert controller.timer.state.remaining == 1500

    def test_finish_pauses_timer(self, controller):
        controller.next()
        controller.next()
        controller.submit("q3", "They catch regressions while the code changes.")
        controller.timer.start()
        assert controller.next() is SessionState.COMPLETE
        assert not controller.timer.state.running

    def test_previous_pauses_timer(self, controller):
        controller.next()
        controller.timer.start()
        controller.previous()
        assert controller.current_question.question_id == "q1"
        assert not controller.timer.state.running


class TestExpiry:

    def test_expiry_with_answer_moves_on(self, controller):
        controller.submit("q1", "B")
        controller.timer.start()
        assert controller.tick(1500) is True
        assert controller.current_question.question_id == "q2"

    def test_expiry_without_answer_waits(self, controller):
        controller.timer.start()
        assert controller.tick(1500) is True
        assert controller.current_question.question_id == "q1"
        assert controller.state is SessionState.AWAITING_RESPONSE

    def test_expiry_on_answered_last_question_completes(self, controller):
        controller.next()
        controller.next()
        controller.submit("q3", "Refactors stay honest.")
        controller.timer.start()
        controller.tick(1500)
        assert controller.state is SessionState.COMPLETE

    def test_tick_before_expiry(self, controller):
        controller.timer.start()
        assert controller.tick(1) is False
        assert controller.timer.state.remaining == 1499


class TestSubmission:

    def test_current_accessors(self, controller):
        assert controller.current_analysis is None
        controller.submit("q1", " B ")
        assert controller.current_response == "B"
        assert controller.current_analysis.score == pytest.approx(0.9)

    def test_hook_receives_stored_analysis(self, questions):
        seen = []
        c = ExamController(scorer=FixedScorer(0.6),
                           on_analysis=lambda sid, q, content, a: seen.append((sid, q.question_id, content, a.score)))
        c.start(questions, session_id="s9")
        c.submit("q1", "A")
        assert seen == [("s9", "q1", "A", 0.6)]

    def test_hook_io_error_does_not_break_submit(self, questions):
        def broken(*args):
            raise OSError("disk full")

        c = ExamController(scorer=FixedScorer(0.6), on_analysis=broken)
        c.start(questions)
        assert c.submit("q1", "A").score == pytest.approx(0.6)
        assert c.state is SessionState.REVIEWING

    def test_invalid_submission_propagates(self, controller):
        with pytest.raises(InvalidTransition):
            controller.submit("q1", "Z")

    def test_background_submission_stores_result(self, controller):
        with ThreadPoolExecutor(max_workers=1) as pool:
            analysis = controller.submit_in_background("q1", "B", pool).result(timeout=5)
        assert analysis.score == pytest.approx(0.9)
        assert controller.state is SessionState.REVIEWING

    def test_raising_scorer_stores_heuristic_analysis(self, questions):
        class Broken:
            def score(self, *args):
                raise RuntimeError("provider bug")

        c = ExamController(scorer=Broken())
        c.start(questions)
        assert c.submit("q1", "B").is_heuristic
        with ThreadPoolExecutor(max_workers=1) as pool:
            c.next()
            analysis = c.submit_in_background("q2", "It maps keys.", pool).result(timeout=5)
        assert analysis.is_heuristic
        assert c.state is SessionState.REVIEWING

    def test_rejected_background_submission_releases_session(self, controller):
        pool = ThreadPoolExecutor(max_workers=1)
        pool.shutdown()
        with pytest.raises(RuntimeError):
            controller.submit_in_background("q1", "B", pool)
        assert not controller.session.busy
        assert controller.state is SessionState.AWAITING_RESPONSE
        assert controller.submit("q1", "B").score == pytest.approx(0.9)

    def test_stale_background_result_is_discarded(self, questions):
        scorer = GatedScorer()
        seen = []
        c = ExamController(scorer=scorer, on_analysis=lambda *args: seen.append(args))
        c.start(questions)
        with ThreadPoolExecutor(max_workers=1) as pool:
            future = c.submit_in_background("q1", "B", pool)
            assert scorer.entered.wait(5)
            c.start(questions)
            scorer.release.set()
            assert future.result(timeout=5) is None
        assert c.session.analyses == {}
        assert not c.session.busy
        assert seen == []


class TestDefaultScorer:

    def test_uses_given_capability(self):
        scorer = build_default_scorer(FakeCapability(reply=verdict(0.7)))
        assert isinstance(scorer, FallbackScorer)
        assert scorer.score("Q?", "resp").provenance == "fake-model"
        scorer.close()

    def test_without_keys_scores_heuristically(self, monkeypatch):
        monkeypatch.setattr("study_engine.config.OPENAI_API_KEY", "")
        monkeypatch.setattr("study_engine.config.ANTHROPIC_API_KEY", "")
        scorer = build_default_scorer()
        assert scorer.score("Q?", "resp").is_heuristic
        scorer.close()

# ui/exam.py
import time

import streamlit as st

from study_engine.config import DEFAULT_EXAM_ID
from study_engine.core.controller import ExamController
from study_engine.core.data_access import append_analysis_log, load_exam_questions
from study_engine.core.errors import InvalidTransition
from study_engine.core.models import Analysis, QuestionKind
from study_engine.core.report import session_frame, summarize_session
from study_engine.core.session import SessionState
from study_engine.core.timer import format_seconds


# ---------------------------
# SESSION INITIALIZATION
# ---------------------------
def initialize_exam_state():
    defaults = {
        "exam_controller": None,
        "exam_id": DEFAULT_EXAM_ID,
        "last_tick": None,
        "timer_expired": False,
    }
    for k, v in defaults.items():
        if k not in st.session_state:
            st.session_state[k] = v


def start_exam(exam_id: str):
    """Load the exam and build a fresh controller for it."""
    questions = load_exam_questions(exam_id)
    if not questions:
        return None

    taker_id = st.session_state.get("user_id") or "guest"

    def persist(session_id, question, content, analysis):
        append_analysis_log(taker_id, session_id, question, content, analysis)

    controller = ExamController(on_analysis=persist)
    controller.start(questions)

    st.session_state.exam_controller = controller
    st.session_state.last_tick = time.monotonic()
    st.session_state.timer_expired = False
    return controller


def _widget_key(controller: ExamController, name: str) -> str:
    q = controller.current_question
    return f"{name}_{controller.session.generation}_{q.question_id}"


# ---------------------------
# TIMER
# ---------------------------
def _advance_clock(controller: ExamController) -> bool:
    """Feed wall-clock time since the last render into the countdown."""
    now = time.monotonic()
    last = st.session_state.last_tick or now
    st.session_state.last_tick = now

    cursor_before = controller.session.cursor
    if controller.tick(now - last):
        st.session_state.timer_expired = True
    return controller.session.cursor != cursor_before or controller.session.is_complete


@st.fragment(run_every=1.0)
def render_timer(controller: ExamController):
    if _advance_clock(controller):
        st.rerun()

    timer = controller.timer
    state = timer.state

    col1, col2 = st.columns([1, 2])
    with col1:
        st.metric("⏱️ Time left", timer.format_remaining())
        st.caption(f"Base duration: {format_seconds(state.base_duration)}")

    with col2:
        b1, b2, b3, b4 = st.columns(4)
        if b1.button("⏸️ Pause" if state.running else "▶️ Start", key="timer_toggle"):
            timer.toggle()
            st.session_state.last_tick = time.monotonic()
            st.rerun()
        if b2.button("🔁 Reset", key="timer_reset"):
            timer.reset()
            st.session_state.timer_expired = False
            st.rerun()
        if b3.button("−30s", key="timer_down"):
            timer.adapt("down")
            st.rerun()
        if b4.button("+30s", key="timer_up"):
            timer.adapt("up")
            st.rerun()

    if st.session_state.timer_expired and timer.expired:
        st.warning("⌛ Time is up for this question.")


# ---------------------------
# QUESTION CARD
# ---------------------------
def render_question(controller: ExamController):
    q = controller.current_question
    analysis = controller.current_analysis
    submitted = analysis is not None

    st.markdown(f"### {q.prompt}")

    if q.kind is QuestionKind.SINGLE_CHOICE:
        ids = list(q.choice_ids)
        previous = controller.current_response
        content = st.radio(
            "Choose an answer:",
            ids,
            index=ids.index(previous) if previous in ids else None,
            format_func=lambda cid: f"{cid}. {q.choice_label(cid)}",
            key=_widget_key(controller, "choice"),
            disabled=submitted,
        )
    else:
        content = st.text_area(
            "Your answer:",
            value=controller.current_response or "",
            height=160,
            placeholder="Type your answer here...",
            key=_widget_key(controller, "answer"),
            disabled=submitted,
        )

    if submitted:
        render_feedback(analysis)
        return

    if st.button("✅ Submit", key=_widget_key(controller, "submit"), use_container_width=True):
        if not content or not str(content).strip():
            st.warning("Please enter an answer.")
            return
        try:
            with st.spinner("Scoring your answer..."):
                controller.submit(q.question_id, content)
        except InvalidTransition as e:
            st.warning(str(e))
            return
        st.rerun()


def render_feedback(analysis: Analysis):
    pct = int(round(analysis.score * 100))

    st.subheader("Feedback")
    st.metric("Score", f"{pct}%")
    st.progress(pct)

    if analysis.score >= 0.7:
        st.success(analysis.feedback)
    elif analysis.score >= 0.4:
        st.info(analysis.feedback)
    else:
        st.error(analysis.feedback)

    st.caption(f"Analyzed by: {analysis.provenance}")


# ---------------------------
# NAVIGATION
# ---------------------------
def render_navigation(controller: ExamController):
    session = controller.session
    state = controller.state

    col1, col2 = st.columns(2)
    with col1:
        if st.button("⬅️ Previous", disabled=session.cursor == 0, use_container_width=True):
            controller.previous()
            st.rerun()

    with col2:
        if session.is_last:
            label = "🏁 Finish"
            disabled = state is not SessionState.REVIEWING
        elif state is SessionState.AWAITING_RESPONSE:
            label = "⏭️ Skip"
            disabled = False
        else:
            label = "➡️ Next"
            disabled = state is SessionState.SCORING

        if st.button(label, disabled=disabled, use_container_width=True):
            try:
                controller.next()
            except InvalidTransition as e:
                st.warning(str(e))
                return
            st.session_state.timer_expired = False
            st.session_state.last_tick = time.monotonic()
            st.rerun()


# ---------------------------
# SESSION SUMMARY
# ---------------------------
def show_session_summary(controller: ExamController):
    summary = summarize_session(controller.session)

    st.header("🎉 Exam complete")
    col1, col2, col3 = st.columns(3)
    col1.metric("Answered", f"{summary['answered']} / {summary['total_questions']}")
    col2.metric("Average score", f"{summary['mean_score'] * 100:.1f}%")
    col3.metric("Weighted score", f"{summary['score_percentage']:.1f}%")

    st.dataframe(session_frame(controller.session), use_container_width=True)

    c1, c2 = st.columns(2)
    if c1.button("🔍 Review answers"):
        controller.previous()
        st.rerun()
    if c2.button("🔄 Start New Exam"):
        st.session_state.exam_controller = None
        st.rerun()


# ---------------------------
# ENTRY
# ---------------------------
def run_exam_mode():
    initialize_exam_state()
    controller = st.session_state.exam_controller

    if controller is None:
        st.header("📝 Exam")
        st.write("Answer each question before the timer runs out. The time budget adapts to how you are doing.")
        if st.button("▶️ Start Exam", key="start_exam"):
            if start_exam(st.session_state.exam_id) is None:
                st.error("No questions available.")
                return
            st.rerun()
        return

    if controller.state is SessionState.COMPLETE:
        show_session_summary(controller)
        return

    session = controller.session
    total = len(session.questions)

    st.header("Exam Progress")
    st.caption(f"Question {session.cursor + 1} of {total}")
    st.progress((session.cursor + 1) / total)

    render_timer(controller)
    render_question(controller)
    render_navigation(controller)

# main.py

import streamlit as st

from study_engine.config import configure_logging
from study_engine.ui.diagnostic import run_diagnostic_mode
from study_engine.ui.exam import run_exam_mode

configure_logging()

st.set_page_config(page_title="Study Engine", layout="wide")

# ---------------------------
# Session State Init
# ---------------------------
for key, default in {
    "user_id": "",
    "mode": "📝 Exam",
}.items():
    if key not in st.session_state:
        st.session_state[key] = default


# ---------------------------
# SIDEBAR
# ---------------------------
with st.sidebar:
    st.title("📚 Study Engine")
    st.text_input("Your ID:", key="user_id")
    st.radio("Mode", ["📝 Exam", "🧭 Learning Style"], key="mode")


# ---------------------------
# MAIN ROUTING
# ---------------------------
if st.session_state.mode == "📝 Exam":
    run_exam_mode()
else:
    run_diagnostic_mode()

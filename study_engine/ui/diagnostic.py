# ui/diagnostic.py
import pandas as pd
import streamlit as st

from study_engine.core.data_access import load_diagnostic_items
from study_engine.core.errors import EmptyAggregationInput
from study_engine.core.learning_style import aggregate_learning_style, answers_from_selections

STYLE_BLURBS = {
    "practical": "🛠️ You learn by doing: worked examples and past papers suit you.",
    "reflective": "📓 You learn by thinking it over: notes and quiet review suit you.",
    "experimental": "🧪 You learn by trying: build, test and break things.",
    "narrative": "📖 You learn through stories: case studies and explaining to others.",
}


def run_diagnostic_mode():
    st.header("🧭 Learning Style Check")

    items = load_diagnostic_items()
    selections = {}

    for question_id, group in items.groupby("question_id", sort=False):
        options = dict(zip(group["option_id"], group["option_text"]))
        pick = st.radio(
            group["prompt"].iloc[0],
            list(options.keys()),
            index=None,
            format_func=lambda oid, opts=options: opts[oid],
            key=f"prena_{question_id}",
        )
        if pick is not None:
            selections[question_id] = pick

    if not st.button("🧭 See my learning style", key="prena_submit", use_container_width=True):
        return

    if len(selections) < items["question_id"].nunique():
        st.warning("Please answer every question.")
        return

    try:
        profile = aggregate_learning_style(answers_from_selections(items, selections))
    except EmptyAggregationInput as e:
        st.warning(str(e))
        return

    st.session_state.learning_style = profile

    st.success(f"Your dominant style is **{profile.dominant_style.title()}**")
    st.write(STYLE_BLURBS.get(profile.dominant_style, ""))

    scores = pd.DataFrame({"score": profile.as_dict()})
    st.bar_chart(scores)

# core/report.py

from typing import Any, Dict

import pandas as pd

from study_engine.core.session import ExamSession

REPORT_COLUMNS = ["question_id", "kind", "weight", "response", "score", "provenance", "feedback"]


def session_frame(session: ExamSession) -> pd.DataFrame:
    """One row per question in session order; unanswered rows have NaN score."""
    rows = []
    for q in session.questions:
        analysis = session.analyses.get(q.question_id)
        rows.append({
            "question_id": q.question_id,
            "kind": q.kind.value,
            "weight": q.weight,
            "response": session.responses.get(q.question_id),
            "score": analysis.score if analysis else float("nan"),
            "provenance": analysis.provenance if analysis else None,
            "feedback": analysis.feedback if analysis else None,
        })
    return pd.DataFrame(rows, columns=REPORT_COLUMNS)


def summarize_session(session: ExamSession) -> Dict[str, Any]:
    """Aggregate scores over analysed questions (skipped ones are left out)."""
    df = session_frame(session)
    scored = df.dropna(subset=["score"])

    if scored.empty:
        mean_score = 0.0
        weighted = 0.0
    else:
        mean_score = float(scored["score"].mean())
        total_weight = scored["weight"].sum()
        weighted = float((scored["score"] * scored["weight"]).sum() / total_weight) if total_weight > 0 else 0.0

    return {
        "total_questions": len(df),
        "answered": len(scored),
        "mean_score": mean_score,
        "weighted_score": weighted,
        "score_percentage": round(weighted * 100, 1),
    }

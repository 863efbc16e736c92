# core/data_access.py

import logging
import os
import time
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from study_engine.config import DEFAULT_EXAM_ID, DIAGNOSTIC_CSV, EXAM_CSV, LOGS_DIR
from study_engine.core.models import TRAITS, Analysis, Choice, Question, QuestionKind

logger = logging.getLogger(__name__)

OPTION_COLUMNS = ["option_a", "option_b", "option_c", "option_d"]

# question types as stored by the authoring side
KIND_ALIASES = {
    "mcq": QuestionKind.SINGLE_CHOICE,
    "single_choice": QuestionKind.SINGLE_CHOICE,
    "open_ended": QuestionKind.OPEN_ENDED,
    "open": QuestionKind.OPEN_ENDED,
}

LOG_COLUMNS = [
    "timestamp", "taker_id", "session_id", "question_id", "kind",
    "response", "score", "feedback", "provenance", "weight",
]


# ============================================================
# QUESTION BANK
# ============================================================

def parse_kind(raw: Any) -> QuestionKind:
    key = str(raw or "").strip().lower()
    if key not in KIND_ALIASES:
        raise ValueError(f"Unknown question kind: {raw!r}")
    return KIND_ALIASES[key]


def question_from_record(record: Dict[str, Any]) -> Question:
    """Build a Question from a flat row (option_a..option_d hold the choices)."""
    kind = parse_kind(record.get("kind"))

    choices = []
    if kind is QuestionKind.SINGLE_CHOICE:
        for col in OPTION_COLUMNS:
            label = str(record.get(col, "") or "").strip()
            if label:
                choices.append(Choice(choice_id=col[-1].upper(), label=label))

    canonical = str(record.get("canonical_answer", "") or "").strip() or None

    raw_weight = str(record.get("weight", "") or "").strip()
    weight = float(raw_weight) if raw_weight else 1.0

    return Question(
        question_id=str(record["question_id"]).strip(),
        kind=kind,
        prompt=str(record.get("prompt", "") or "").strip(),
        choices=tuple(choices),
        canonical_answer=canonical,
        weight=weight,
    )


def questions_from_records(records: Iterable[Dict[str, Any]]) -> List[Question]:
    return [question_from_record(r) for r in records]


def load_exam_questions(exam_id: str = DEFAULT_EXAM_ID, path: str = EXAM_CSV) -> List[Question]:
    """Ordered questions for one exam; file order is question order."""
    if not os.path.exists(path):
        raise FileNotFoundError(f"Exam CSV not found at: {path}")

    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    if "exam_id" in df.columns:
        df = df[df["exam_id"] == str(exam_id)]

    if df.empty:
        logger.warning("No questions found for exam %s in %s", exam_id, path)
        return []

    return questions_from_records(df.to_dict(orient="records"))


# ============================================================
# PRENA DIAGNOSTIC ITEMS
# ============================================================

def load_diagnostic_items(path: str = DIAGNOSTIC_CSV) -> pd.DataFrame:
    """One row per (question, option) with the four trait sub-scores."""
    if not os.path.exists(path):
        raise FileNotFoundError(f"Diagnostic CSV not found at: {path}")

    df = pd.read_csv(path, dtype={"question_id": str, "option_id": str})
    missing = [c for c in ["question_id", "prompt", "option_id", "option_text", *TRAITS] if c not in df.columns]
    if missing:
        raise ValueError(f"Diagnostic CSV is missing columns: {missing}")

    for trait in TRAITS:
        df[trait] = pd.to_numeric(df[trait], errors="coerce").fillna(0.0)
    return df


# ============================================================
# ANALYSIS LOG
# ============================================================

def _log_path(taker_id: str, logs_dir: str) -> str:
    return os.path.join(logs_dir, f"taker_{taker_id}.csv")


def append_analysis_log(taker_id: str, session_id: str, question: Question,
                        content: str, analysis: Analysis, logs_dir: Optional[str] = None):
    """Append one Response/Analysis row to a taker's log CSV."""
    logs_dir = logs_dir or LOGS_DIR
    os.makedirs(logs_dir, exist_ok=True)
    path = _log_path(taker_id, logs_dir)

    row = {
        "timestamp": time.strftime("%Y-%m-%d %H:%M:%S"),
        "taker_id": taker_id,
        "session_id": session_id,
        "question_id": question.question_id,
        "kind": question.kind.value,
        "response": content,
        "score": analysis.score,
        "feedback": analysis.feedback,
        "provenance": analysis.provenance,
        "weight": question.weight,
    }
    new_df = pd.DataFrame([row], columns=LOG_COLUMNS)
    new_df.to_csv(path, mode="a", header=not os.path.exists(path), index=False)


def load_analysis_log(taker_id: str, logs_dir: Optional[str] = None) -> pd.DataFrame:
    path = _log_path(taker_id, logs_dir or LOGS_DIR)
    if not os.path.exists(path):
        return pd.DataFrame(columns=LOG_COLUMNS)
    return pd.read_csv(path, dtype={"question_id": str, "session_id": str, "taker_id": str})

# core/learning_style.py

"""
PRENA learning-style aggregation.

Each diagnostic answer carries four raw sub-scores (practical, reflective,
experimental, narrative) and a weight. A trait score is the weighted mean
sub-score scaled to 0-100; the dominant style is the highest trait, ties
going to the earlier trait in PRENA order.
"""

from typing import Dict, Iterable, List, Mapping

import numpy as np
import pandas as pd

from study_engine.core.errors import EmptyAggregationInput
from study_engine.core.models import TRAITS, DiagnosticAnswer, LearningStyleProfile


def answers_frame(answers: Iterable[DiagnosticAnswer]) -> pd.DataFrame:
    rows = []
    for a in answers:
        row = {"question_id": a.question_id, "option_id": a.option_id, "weight": float(a.weight)}
        for trait in TRAITS:
            row[trait] = a.subscore(trait)
        rows.append(row)
    return pd.DataFrame(rows, columns=["question_id", "option_id", "weight", *TRAITS])


def aggregate_learning_style(answers: Iterable[DiagnosticAnswer]) -> LearningStyleProfile:
    df = answers_frame(answers)
    if df.empty:
        raise EmptyAggregationInput("Learning-style aggregation needs at least one answer")

    weights = df["weight"].to_numpy(dtype=float)
    if (weights < 0).any():
        raise ValueError("Diagnostic answer weights cannot be negative")
    total_weight = weights.sum()
    if total_weight <= 0:
        raise EmptyAggregationInput("Diagnostic answers carry no weight")

    trait_scores = df[list(TRAITS)].mul(weights, axis=0).sum() / total_weight * 100.0
    values = trait_scores.to_numpy(dtype=float)

    # argmax returns the first maximum, i.e. PRENA order on ties
    dominant = TRAITS[int(np.argmax(values))]

    return LearningStyleProfile(
        practical_score=float(values[0]),
        reflective_score=float(values[1]),
        experimental_score=float(values[2]),
        narrative_score=float(values[3]),
        dominant_style=dominant,
    )


def answers_from_selections(items: pd.DataFrame, selections: Mapping[str, str]) -> List[DiagnosticAnswer]:
    """
    Turn {question_id: option_id} picks into DiagnosticAnswers using the
    diagnostic item bank (one row per option).
    """
    answers = []
    for question_id, option_id in selections.items():
        row = items[(items["question_id"] == question_id) & (items["option_id"] == option_id)]
        if row.empty:
            raise ValueError(f"Unknown option {option_id!r} for diagnostic question {question_id!r}")
        r = row.iloc[0]
        scores: Dict[str, float] = {t: float(r[t]) for t in TRAITS if t in row.columns}
        answers.append(DiagnosticAnswer(question_id=question_id, option_id=option_id, scores=scores))
    return answers

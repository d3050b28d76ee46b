"""
Exam analytics - Instructor-facing summaries of submitted attempts.

Provides:
- Per-attempt table with percentage and time spent
- Per-student best score and attempt counts
- Per-question correct rate
- CSV export
"""

from pathlib import Path
from typing import Iterable

import pandas as pd

from coursetrack.schemas import AttemptStatus, ExamAttempt

ATTEMPT_COLUMNS = [
    "attempt_id",
    "exam_id",
    "student_id",
    "score",
    "max_score",
    "percentage",
    "passed",
    "started_at",
    "submitted_at",
    "minutes_spent",
]

STUDENT_COLUMNS = [
    "student_id",
    "total_attempts",
    "best_score",
    "best_percentage",
    "passed_any",
    "latest_submission",
]

QUESTION_COLUMNS = ["question_id", "responses", "correct", "correct_rate", "mean_score"]


def _submitted(attempts: Iterable[ExamAttempt]) -> list[ExamAttempt]:
    return [a for a in attempts if a.status == AttemptStatus.SUBMITTED]


def attempts_frame(attempts: Iterable[ExamAttempt]) -> pd.DataFrame:
    """One row per submitted attempt, most recent submission first."""
    rows = []
    for a in _submitted(attempts):
        minutes = 0.0
        if a.submitted_at:
            minutes = round((a.submitted_at - a.started_at).total_seconds() / 60, 2)
        rows.append({
            "attempt_id": a.id,
            "exam_id": a.exam_id,
            "student_id": a.student_id,
            "score": a.score,
            "max_score": a.max_score,
            "percentage": round(a.score / a.max_score * 100, 2) if a.max_score > 0 else 0.0,
            "passed": a.passed,
            "started_at": a.started_at,
            "submitted_at": a.submitted_at,
            "minutes_spent": minutes,
        })

    df = pd.DataFrame(rows, columns=ATTEMPT_COLUMNS)
    if df.empty:
        return df
    return df.sort_values("submitted_at", ascending=False, kind="stable").reset_index(drop=True)


def student_performance(attempts: Iterable[ExamAttempt]) -> pd.DataFrame:
    """
    One row per student.

    best_percentage belongs to the best-scoring attempt; on equal scores
    the most recent attempt wins.
    """
    df = attempts_frame(attempts)
    if df.empty:
        return pd.DataFrame(columns=STUDENT_COLUMNS)

    best = df.loc[df.groupby("student_id")["score"].idxmax(), ["student_id", "score", "percentage"]]
    best = best.rename(columns={"score": "best_score", "percentage": "best_percentage"})

    summary = df.groupby("student_id").agg(
        total_attempts=("attempt_id", "count"),
        passed_any=("passed", "any"),
        latest_submission=("submitted_at", "max"),
    ).reset_index()

    merged = summary.merge(best, on="student_id")
    return merged[STUDENT_COLUMNS].sort_values("student_id").reset_index(drop=True)


def question_stats(attempts: Iterable[ExamAttempt]) -> pd.DataFrame:
    """Correct rate and mean score per question over submitted attempts."""
    rows = [
        {"question_id": ans.question_id, "is_correct": ans.is_correct, "score": ans.score}
        for a in _submitted(attempts)
        for ans in a.answers
    ]
    if not rows:
        return pd.DataFrame(columns=QUESTION_COLUMNS)

    df = pd.DataFrame(rows)
    stats = df.groupby("question_id").agg(
        responses=("is_correct", "size"),
        correct=("is_correct", "sum"),
        mean_score=("score", "mean"),
    ).reset_index()
    stats["correct_rate"] = (stats["correct"] / stats["responses"]).round(4)
    return stats[QUESTION_COLUMNS]


def export_csv(attempts: Iterable[ExamAttempt], output_path: Path) -> Path:
    """Write the per-attempt table to CSV and return the path."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    attempts_frame(attempts).to_csv(output_path, index=False)
    return output_path

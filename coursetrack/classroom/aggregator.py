"""
Aggregator - Combine a student's attempts on one exam into one outcome.

Only submitted attempts are scored; attempts in any status count toward
the attempt limit.
"""

from collections import defaultdict
from typing import Iterable, Optional, Sequence

from coursetrack.schemas import (
    AttemptStatus,
    EffectiveOutcome,
    Exam,
    ExamAttempt,
    OutcomeStatus,
    ScoringMethod,
)


def select_score(method: ScoringMethod, submitted: Sequence[ExamAttempt]) -> Optional[float]:
    """Effective score of submitted attempts under a scoring method."""
    if not submitted:
        return None
    if method == ScoringMethod.HIGHEST:
        return max(a.score for a in submitted)
    if method == ScoringMethod.LATEST:
        return _latest_submitted(submitted).score
    return sum(a.score for a in submitted) / len(submitted)


def _latest_submitted(submitted: Sequence[ExamAttempt]) -> ExamAttempt:
    # max() keeps the first of equal keys, so ties resolve to input order
    return max(submitted, key=lambda a: a.submitted_at or a.started_at)


def aggregate(exam: Exam, attempts: Sequence[ExamAttempt]) -> EffectiveOutcome:
    """
    Compute the effective outcome for one (student, exam) pair.

    Args:
        exam: Exam definition (scoring method, passing score, attempt limit)
        attempts: Every attempt of the student on this exam, any status

    Returns:
        EffectiveOutcome
    """
    remaining = None
    if exam.max_attempts is not None:
        remaining = max(0, exam.max_attempts - len(attempts))

    if not attempts:
        return EffectiveOutcome(exam_id=exam.id, remaining_attempts=remaining)

    submitted = [a for a in attempts if a.status == AttemptStatus.SUBMITTED]
    effective = select_score(exam.scoring_method, submitted)
    passed = effective is not None and effective >= exam.passing_score

    most_recent = max(attempts, key=lambda a: a.started_at)
    if most_recent.status == AttemptStatus.IN_PROGRESS:
        status = OutcomeStatus.IN_PROGRESS
    elif passed:
        status = OutcomeStatus.PASSED
    else:
        status = OutcomeStatus.FAILED

    return EffectiveOutcome(
        exam_id=exam.id,
        status=status,
        effective_score=effective,
        best_score=select_score(ScoringMethod.HIGHEST, submitted),
        latest_score=select_score(ScoringMethod.LATEST, submitted),
        average_score=select_score(ScoringMethod.AVERAGE, submitted),
        attempts_count=len(attempts),
        submitted_count=len(submitted),
        passed=passed,
        remaining_attempts=remaining,
    )


def aggregate_many(exams: Iterable[Exam], attempts: Iterable[ExamAttempt]) -> dict[str, EffectiveOutcome]:
    """Aggregate one student's attempts across several exams, keyed by exam id."""
    by_exam: dict[str, list[ExamAttempt]] = defaultdict(list)
    for attempt in attempts:
        by_exam[attempt.exam_id].append(attempt)
    return {exam.id: aggregate(exam, by_exam.get(exam.id, [])) for exam in exams}

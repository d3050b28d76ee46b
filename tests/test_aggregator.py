"""
Aggregator tests for CourseTrack.
"""

from datetime import datetime, timedelta, timezone

from coursetrack.classroom import aggregate, aggregate_many
from coursetrack.schemas import (
    AttemptStatus,
    Exam,
    ExamAttempt,
    OutcomeStatus,
    ScoringMethod,
)

T0 = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)


def make_exam(method=ScoringMethod.HIGHEST, passing=5, max_attempts=None, exam_id="exam1"):
    return Exam(
        id=exam_id,
        section_id="s1",
        position_in_section=1,
        scoring_method=method,
        passing_score=passing,
        max_attempts=max_attempts,
    )


def attempt(n, score=0.0, status=AttemptStatus.SUBMITTED, exam_id="exam1", submitted_offset=None):
    started = T0 + timedelta(hours=n)
    submitted = None
    if status == AttemptStatus.SUBMITTED:
        submitted = started + (submitted_offset or timedelta(minutes=30))
    return ExamAttempt(
        id=f"att{n}",
        exam_id=exam_id,
        student_id="alice",
        started_at=started,
        submitted_at=submitted,
        status=status,
        score=score,
        max_score=10,
    )


class TestScoringMethods:
    """Effective score selection."""

    def test_highest(self):
        outcome = aggregate(make_exam(ScoringMethod.HIGHEST), [attempt(1, 7), attempt(2, 3), attempt(3, 5)])
        assert outcome.effective_score == 7
        assert outcome.passed is True
        assert outcome.status == OutcomeStatus.PASSED

    def test_latest(self):
        outcome = aggregate(make_exam(ScoringMethod.LATEST), [attempt(1, 7), attempt(2, 3)])
        assert outcome.effective_score == 3
        assert outcome.passed is False
        assert outcome.status == OutcomeStatus.FAILED

    def test_latest_uses_submitted_at_not_start(self):
        # att1 started first but was submitted last
        early = attempt(1, 9, submitted_offset=timedelta(hours=5))
        late = attempt(2, 2)
        outcome = aggregate(make_exam(ScoringMethod.LATEST), [late, early])
        assert outcome.effective_score == 9

    def test_average(self):
        outcome = aggregate(make_exam(ScoringMethod.AVERAGE), [attempt(1, 4), attempt(2, 5), attempt(3, 7)])
        assert abs(outcome.effective_score - 16 / 3) < 1e-9
        assert outcome.passed is True

    def test_all_summaries_reported(self):
        outcome = aggregate(make_exam(ScoringMethod.AVERAGE), [attempt(1, 8), attempt(2, 2)])
        assert outcome.best_score == 8
        assert outcome.latest_score == 2
        assert outcome.average_score == 5

    def test_highest_is_monotonic(self):
        exam = make_exam(ScoringMethod.HIGHEST)
        attempts = []
        previous = None
        for n, score in enumerate([3, 8, 1, 8, 6, 9]):
            attempts.append(attempt(n, score))
            current = aggregate(exam, attempts).effective_score
            if previous is not None:
                assert current >= previous
            previous = current


class TestStatuses:
    """Outcome status and attempt counting."""

    def test_no_attempts(self):
        outcome = aggregate(make_exam(max_attempts=3), [])
        assert outcome.status == OutcomeStatus.NOT_STARTED
        assert outcome.effective_score is None
        assert outcome.passed is False
        assert outcome.attempts_count == 0
        assert outcome.remaining_attempts == 3

    def test_latest_in_progress(self):
        outcome = aggregate(make_exam(), [attempt(1, 7), attempt(2, status=AttemptStatus.IN_PROGRESS)])
        assert outcome.status == OutcomeStatus.IN_PROGRESS
        assert outcome.passed is True
        assert outcome.effective_score == 7

    def test_non_submitted_attempts_do_not_score(self):
        attempts = [
            attempt(1, 3),
            attempt(2, 10, status=AttemptStatus.EXPIRED),
            attempt(3, 10, status=AttemptStatus.ABANDONED),
        ]
        outcome = aggregate(make_exam(max_attempts=5), attempts)
        assert outcome.effective_score == 3
        assert outcome.attempts_count == 3
        assert outcome.submitted_count == 1
        assert outcome.remaining_attempts == 2
        assert outcome.status == OutcomeStatus.FAILED

    def test_only_expired_attempts_fail(self):
        outcome = aggregate(make_exam(), [attempt(1, status=AttemptStatus.EXPIRED)])
        assert outcome.status == OutcomeStatus.FAILED
        assert outcome.effective_score is None

    def test_remaining_attempts_floor_at_zero(self):
        outcome = aggregate(make_exam(max_attempts=2), [attempt(1), attempt(2), attempt(3)])
        assert outcome.remaining_attempts == 0

    def test_unlimited_attempts(self):
        outcome = aggregate(make_exam(), [attempt(1)])
        assert outcome.remaining_attempts is None

    def test_pass_uses_greater_or_equal(self):
        outcome = aggregate(make_exam(passing=5), [attempt(1, 5)])
        assert outcome.passed is True


class TestAggregateMany:

    def test_groups_by_exam(self):
        exams = [make_exam(exam_id="e1"), make_exam(exam_id="e2"), make_exam(exam_id="e3")]
        attempts = [attempt(1, 9, exam_id="e1"), attempt(2, 1, exam_id="e2"), attempt(3, 6, exam_id="e1")]
        outcomes = aggregate_many(exams, attempts)

        assert set(outcomes) == {"e1", "e2", "e3"}
        assert outcomes["e1"].attempts_count == 2
        assert outcomes["e1"].passed is True
        assert outcomes["e2"].passed is False
        assert outcomes["e3"].status == OutcomeStatus.NOT_STARTED

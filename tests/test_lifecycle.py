"""
Attempt lifecycle tests for CourseTrack.
"""

import pytest
from datetime import datetime, timedelta, timezone

from coursetrack.classroom import (
    AttemptExpired,
    AttemptFinalized,
    AttemptLimitExceeded,
    ExamNotOpen,
    ExamNotPublished,
    SubmissionWindowClosed,
    abandon_attempt,
    attempt_questions,
    expire_if_overdue,
    start_attempt,
    submit_attempt,
)
from coursetrack.schemas import (
    AttemptStatus,
    ChoiceOption,
    Exam,
    ExamAttempt,
    ExamQuestionRef,
    ExamStatus,
    MultipleChoiceQuestion,
    SingleChoiceQuestion,
    SubmittedAnswer,
)

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)

QUESTION = SingleChoiceQuestion(
    id="q1",
    points=5,
    options=[ChoiceOption(id="a", is_correct=True), ChoiceOption(id="b")],
)
QUESTIONS = {"q1": QUESTION}


def make_exam(**kwargs):
    kwargs.setdefault("passing_score", 5)
    kwargs.setdefault("total_points", 5)
    return Exam(
        id="exam1",
        section_id="s1",
        position_in_section=1,
        questions=[ExamQuestionRef(question_id="q1")],
        **kwargs,
    )


def submitted(n):
    return ExamAttempt(
        id=f"old{n}",
        exam_id="exam1",
        student_id="alice",
        started_at=NOW - timedelta(days=n),
        submitted_at=NOW - timedelta(days=n),
        status=AttemptStatus.SUBMITTED,
    )


class TestStartAttempt:

    def test_new_attempt(self):
        attempt = start_attempt(make_exam(duration_minutes=30), "alice", [], NOW, QUESTIONS, attempt_id="a1")
        assert attempt.id == "a1"
        assert attempt.status == AttemptStatus.IN_PROGRESS
        assert attempt.started_at == NOW
        assert attempt.expires_at == NOW + timedelta(minutes=30)
        assert attempt.max_score == 5

    def test_no_duration_no_expiry(self):
        attempt = start_attempt(make_exam(), "alice", [], NOW)
        assert attempt.expires_at is None
        assert len(attempt.id) == 32

    def test_resumes_live_attempt(self):
        live = ExamAttempt(id="live", exam_id="exam1", student_id="alice", started_at=NOW - timedelta(minutes=5))
        attempt = start_attempt(make_exam(max_attempts=1), "alice", [live], NOW)
        assert attempt is live

    def test_limit_rejected_before_creation(self):
        with pytest.raises(AttemptLimitExceeded):
            start_attempt(make_exam(max_attempts=2), "alice", [submitted(1), submitted(2)], NOW)

    def test_abandoned_attempts_count_toward_limit(self):
        abandoned = submitted(1).model_copy(update={"status": AttemptStatus.ABANDONED})
        with pytest.raises(AttemptLimitExceeded):
            start_attempt(make_exam(max_attempts=1), "alice", [abandoned], NOW)

    def test_not_open(self):
        with pytest.raises(ExamNotOpen) as exc_info:
            start_attempt(make_exam(open_at=NOW + timedelta(hours=1)), "alice", [], NOW)
        assert exc_info.value.open_at == NOW + timedelta(hours=1)

    def test_closed(self):
        with pytest.raises(SubmissionWindowClosed):
            start_attempt(make_exam(close_at=NOW - timedelta(hours=1)), "alice", [], NOW)

    def test_closed_but_late_allowed(self):
        exam = make_exam(close_at=NOW - timedelta(hours=1), allow_late_submission=True)
        assert start_attempt(exam, "alice", [], NOW).status == AttemptStatus.IN_PROGRESS


class TestSubmitAttempt:

    def _live(self, **kwargs):
        return ExamAttempt(id="a1", exam_id="exam1", student_id="alice", started_at=NOW - timedelta(minutes=10), **kwargs)

    def test_submit_grades_and_finalizes(self):
        live = self._live()
        result = submit_attempt(live, make_exam(), QUESTIONS, [SubmittedAnswer(question_id="q1", answer_single="a")], NOW)

        assert result.status == AttemptStatus.SUBMITTED
        assert result.submitted_at == NOW
        assert result.score == 5
        assert result.passed is True
        assert live.status == AttemptStatus.IN_PROGRESS

    def test_cannot_resubmit(self):
        done = self._live().model_copy(update={"status": AttemptStatus.SUBMITTED})
        with pytest.raises(AttemptFinalized):
            submit_attempt(done, make_exam(), QUESTIONS, [], NOW)

    def test_overdue_attempt_expires(self):
        overdue = self._live(expires_at=NOW - timedelta(minutes=1))
        with pytest.raises(AttemptExpired) as exc_info:
            submit_attempt(overdue, make_exam(), QUESTIONS, [], NOW)
        assert exc_info.value.attempt.status == AttemptStatus.EXPIRED

    def test_late_closed_submission_rejected(self):
        exam = make_exam(close_at=NOW - timedelta(minutes=1))
        with pytest.raises(SubmissionWindowClosed):
            submit_attempt(self._live(), exam, QUESTIONS, [], NOW)

    def test_limit_rechecked_with_other_attempts(self):
        with pytest.raises(AttemptLimitExceeded):
            submit_attempt(self._live(), make_exam(max_attempts=1), QUESTIONS, [], NOW, other_attempts=[submitted(1)])


class TestTerminalTransitions:

    def test_expire_if_overdue(self):
        live = ExamAttempt(id="a1", exam_id="exam1", student_id="alice", started_at=NOW, expires_at=NOW + timedelta(minutes=5))
        assert expire_if_overdue(live, NOW) is live
        assert expire_if_overdue(live, NOW + timedelta(minutes=6)).status == AttemptStatus.EXPIRED

    def test_abandon(self):
        live = ExamAttempt(id="a1", exam_id="exam1", student_id="alice", started_at=NOW)
        assert abandon_attempt(live).status == AttemptStatus.ABANDONED

    def test_terminal_attempts_cannot_change(self):
        for status in (AttemptStatus.SUBMITTED, AttemptStatus.EXPIRED, AttemptStatus.ABANDONED):
            attempt = ExamAttempt(id="a1", exam_id="exam1", student_id="alice", started_at=NOW, status=status)
            with pytest.raises(AttemptFinalized):
                abandon_attempt(attempt)


class TestPublishAndExamChecks:

    def test_draft_exam_rejects_attempts(self):
        for status in (ExamStatus.DRAFT, ExamStatus.ARCHIVED):
            with pytest.raises(ExamNotPublished) as exc_info:
                start_attempt(make_exam(status=status), "alice", [], NOW)
            assert exc_info.value.status == status.value

    def test_submit_against_other_exam_rejected(self):
        live = ExamAttempt(id="a1", exam_id="other", student_id="alice", started_at=NOW)
        with pytest.raises(ValueError):
            submit_attempt(live, make_exam(), QUESTIONS, [], NOW)


class TestNaiveTimestamps:

    def test_start_and_submit_with_naive_now(self):
        exam = make_exam(duration_minutes=30, open_at=NOW - timedelta(days=1), close_at=NOW + timedelta(days=1))
        attempt = start_attempt(exam, "alice", [], datetime(2025, 3, 1, 12, 0), QUESTIONS)
        assert attempt.started_at == NOW
        assert attempt.expires_at == NOW + timedelta(minutes=30)

        done = submit_attempt(
            attempt, exam, QUESTIONS,
            [SubmittedAnswer(question_id="q1", answer_single="a")],
            datetime(2025, 3, 1, 12, 10),
        )
        assert done.status == AttemptStatus.SUBMITTED
        assert done.submitted_at == NOW + timedelta(minutes=10)

    def test_naive_overdue_check(self):
        live = ExamAttempt(id="a1", exam_id="exam1", student_id="alice", started_at=NOW, expires_at=NOW + timedelta(minutes=5))
        assert expire_if_overdue(live, datetime(2025, 3, 1, 12, 6)).status == AttemptStatus.EXPIRED


class TestAttemptQuestions:
    """Presentation order, optionally shuffled per attempt."""

    BANK = {
        f"q{i}": MultipleChoiceQuestion(
            id=f"q{i}",
            options=[ChoiceOption(id=c, is_correct=c == "a") for c in "abcdef"],
        )
        for i in range(8)
    }

    def _exam(self, **kwargs):
        refs = [ExamQuestionRef(question_id=f"q{i}", order=8 - i) for i in range(8)]
        refs.append(ExamQuestionRef(question_id="ghost"))
        return Exam(id="exam1", section_id="s1", position_in_section=1, questions=refs, **kwargs)

    def _attempt(self, attempt_id):
        return ExamAttempt(id=attempt_id, exam_id="exam1", student_id="alice", started_at=NOW)

    def test_unshuffled_follows_ref_order(self):
        questions = attempt_questions(self._exam(), self._attempt("a1"), self.BANK)
        assert [q.id for q in questions] == [f"q{i}" for i in reversed(range(8))]
        assert [o.id for o in questions[0].options] == list("abcdef")

    def test_shuffle_is_stable_per_attempt(self):
        exam = self._exam(shuffle_questions=True, shuffle_answers=True)
        first = attempt_questions(exam, self._attempt("a1"), self.BANK)
        again = attempt_questions(exam, self._attempt("a1"), self.BANK)
        assert [q.id for q in first] == [q.id for q in again]
        assert [o.id for o in first[0].options] == [o.id for o in again[0].options]
        assert sorted(q.id for q in first) == sorted(self.BANK)

    def test_shuffle_varies_across_attempts(self):
        exam = self._exam(shuffle_questions=True)
        orders = {
            tuple(q.id for q in attempt_questions(exam, self._attempt(f"a{n}"), self.BANK))
            for n in range(20)
        }
        assert len(orders) > 1

    def test_shuffled_options_keep_correctness(self):
        exam = self._exam(shuffle_answers=True)
        for question in attempt_questions(exam, self._attempt("a7"), self.BANK):
            assert question.correct_option_ids == {"a"}
        assert [o.id for o in self.BANK["q0"].options] == list("abcdef")

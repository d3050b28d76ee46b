"""
Attempt lifecycle - Pure transitions over ExamAttempt.

in_progress -> submitted | expired | abandoned; the last three are terminal.
Each function returns a new attempt and never mutates its input.
"""

import random
import uuid
from datetime import datetime, timedelta
from typing import Iterable, Optional, Sequence

from coursetrack.schemas import (
    AttemptStatus,
    Exam,
    ExamAttempt,
    Question,
    SubmittedAnswer,
    ensure_utc,
)

from .errors import (
    AttemptExpired,
    AttemptFinalized,
    ExamNotOpen,
    ExamNotPublished,
    SubmissionWindowClosed,
)
from .grader import check_attempt_limit, compute_max_score, grade, is_past_close


def start_attempt(
    exam: Exam,
    student_id: str,
    attempts: Sequence[ExamAttempt],
    now: datetime,
    questions_by_id: Optional[dict[str, Question]] = None,
    attempt_id: Optional[str] = None,
) -> ExamAttempt:
    """
    Start a new attempt, or resume the student's live one.

    Args:
        exam: Exam definition
        student_id: Student starting the attempt
        attempts: The student's existing attempts on this exam
        now: Current instant
        questions_by_id: Question bank, used to pre-fill max_score
        attempt_id: ID for the new attempt (default: random UUID)

    Raises:
        ExamNotPublished: Exam is a draft or archived
        ExamNotOpen: Before open_at
        SubmissionWindowClosed: After close_at without late allowance
        AttemptLimitExceeded: No attempts left
    """
    now = ensure_utc(now)
    if not exam.is_published:
        raise ExamNotPublished(exam.id, exam.status.value)

    for attempt in attempts:
        if attempt.status == AttemptStatus.IN_PROGRESS and not attempt.is_overdue(now):
            return attempt

    if exam.open_at is not None and now < exam.open_at:
        raise ExamNotOpen(exam.id, exam.open_at)
    if is_past_close(exam, now) and not exam.allow_late_submission:
        raise SubmissionWindowClosed(exam.id, exam.close_at)
    check_attempt_limit(exam, attempts)

    expires_at = None
    if exam.duration_minutes:
        expires_at = now + timedelta(minutes=exam.duration_minutes)

    return ExamAttempt(
        id=attempt_id or uuid.uuid4().hex,
        exam_id=exam.id,
        student_id=student_id,
        started_at=now,
        expires_at=expires_at,
        status=AttemptStatus.IN_PROGRESS,
        max_score=compute_max_score(exam, questions_by_id) if questions_by_id else 0.0,
    )


def attempt_questions(
    exam: Exam,
    attempt: ExamAttempt,
    questions_by_id: dict[str, Question],
) -> list[Question]:
    """
    Questions in the order this attempt presents them.

    Without shuffling, questions follow ExamQuestionRef.order. With
    shuffle_questions / shuffle_answers the order is drawn from a generator
    seeded by the attempt id, so a resumed attempt sees the same layout.
    Questions missing from the bank are skipped.
    """
    refs = sorted(exam.questions, key=lambda ref: ref.order)
    questions = [questions_by_id[ref.question_id] for ref in refs if ref.question_id in questions_by_id]

    rng = random.Random(attempt.id)
    if exam.shuffle_questions:
        rng.shuffle(questions)
    if exam.shuffle_answers:
        shuffled = []
        for question in questions:
            options = getattr(question, "options", None)
            if options:
                options = list(options)
                rng.shuffle(options)
                question = question.model_copy(update={"options": options})
            shuffled.append(question)
        questions = shuffled
    return questions


def submit_attempt(
    attempt: ExamAttempt,
    exam: Exam,
    questions_by_id: dict[str, Question],
    answers: Iterable[SubmittedAnswer],
    now: datetime,
    other_attempts: Optional[Sequence[ExamAttempt]] = None,
) -> ExamAttempt:
    """
    Grade an in-progress attempt and return it as submitted.

    other_attempts are the student's remaining attempts on the exam (the
    one being submitted excluded); when given, the attempt limit is
    re-checked before grading.

    Raises:
        ValueError: Attempt belongs to another exam
        AttemptFinalized: Attempt is not in progress
        AttemptExpired: Attempt ran past expires_at (carries the expired copy)
        SubmissionWindowClosed, AttemptLimitExceeded: from the grader
    """
    if attempt.exam_id != exam.id:
        raise ValueError(f"Attempt {attempt.id} belongs to exam {attempt.exam_id}, not {exam.id}")
    now = ensure_utc(now)
    if attempt.status.is_terminal:
        raise AttemptFinalized(attempt.id, attempt.status.value)
    if attempt.is_overdue(now):
        raise AttemptExpired(expire(attempt))

    graded = grade(exam, questions_by_id, answers, now, previous_attempts=other_attempts)

    return attempt.model_copy(update={
        "status": AttemptStatus.SUBMITTED,
        "submitted_at": graded.submitted_at,
        "answers": graded.answers,
        "score": graded.score,
        "max_score": graded.max_score,
        "passed": graded.passed,
    })


def expire(attempt: ExamAttempt) -> ExamAttempt:
    if attempt.status.is_terminal:
        raise AttemptFinalized(attempt.id, attempt.status.value)
    return attempt.model_copy(update={"status": AttemptStatus.EXPIRED})


def expire_if_overdue(attempt: ExamAttempt, now: datetime) -> ExamAttempt:
    """Expired copy if the attempt is past its time limit, else the attempt unchanged."""
    if attempt.is_overdue(now):
        return expire(attempt)
    return attempt


def abandon_attempt(attempt: ExamAttempt) -> ExamAttempt:
    if attempt.status.is_terminal:
        raise AttemptFinalized(attempt.id, attempt.status.value)
    return attempt.model_copy(update={"status": AttemptStatus.ABANDONED})

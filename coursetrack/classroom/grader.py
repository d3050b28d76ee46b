"""
Grader - Score one exam submission against its question set.

Provides:
- One grading strategy per question type
- Effective points (point override x weight) and max score
- Negative marking, late penalty and score clamping
- Attempt-limit pre-check

Grading is a pure computation: nothing here persists the attempt.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional, Sequence

from coursetrack.schemas import (
    Exam,
    ExamAttempt,
    ExamQuestionRef,
    GradedAnswer,
    GradedAttempt,
    GradingNotice,
    MultipleChoiceQuestion,
    Question,
    ShortAnswerQuestion,
    SingleChoiceQuestion,
    SubmittedAnswer,
    ensure_utc,
)

from .errors import AttemptLimitExceeded, SubmissionWindowClosed

logger = logging.getLogger(__name__)


@dataclass
class QuestionResult:
    """Outcome of comparing one answer with one question."""
    is_correct: bool
    answered: bool
    invalid_reason: Optional[str] = None


# -----------------------------------------------------------------------------
# Grading strategies
# -----------------------------------------------------------------------------

class GradingStrategy:
    """Compares a submitted answer with a question of one type."""

    def evaluate(self, question, answer: Optional[SubmittedAnswer]) -> QuestionResult:
        raise NotImplementedError


class SingleChoiceStrategy(GradingStrategy):

    def evaluate(self, question: SingleChoiceQuestion, answer: Optional[SubmittedAnswer]) -> QuestionResult:
        selected = answer.answer_single if answer else None
        if not selected:
            return QuestionResult(is_correct=False, answered=False)

        correct_ids = question.correct_option_ids
        is_correct = len(correct_ids) == 1 and selected == correct_ids[0]
        return QuestionResult(is_correct=is_correct, answered=True)


class MultipleChoiceStrategy(GradingStrategy):
    """All-or-nothing: the selection must equal the correct set exactly."""

    def evaluate(self, question: MultipleChoiceQuestion, answer: Optional[SubmittedAnswer]) -> QuestionResult:
        selected = {oid for oid in (answer.answer_multiple or []) if oid} if answer else set()
        if not selected:
            return QuestionResult(is_correct=False, answered=False)

        if question.max_selectable is not None and len(selected) > question.max_selectable:
            return QuestionResult(
                is_correct=False,
                answered=True,
                invalid_reason=(
                    f"{len(selected)} options selected, at most "
                    f"{question.max_selectable} allowed"
                ),
            )

        correct_ids = question.correct_option_ids
        is_correct = bool(correct_ids) and selected == correct_ids
        return QuestionResult(is_correct=is_correct, answered=True)


class ShortAnswerStrategy(GradingStrategy):
    """Exact match after trimming; case-insensitive unless configured."""

    def evaluate(self, question: ShortAnswerQuestion, answer: Optional[SubmittedAnswer]) -> QuestionResult:
        text = ((answer.answer_text if answer else None) or "").strip()
        if not text:
            return QuestionResult(is_correct=False, answered=False)

        def normalize(value: str) -> str:
            value = value.strip()
            return value if question.case_sensitive else value.casefold()

        submitted = normalize(text)
        is_correct = any(submitted == normalize(expected) for expected in question.expected_answers)
        return QuestionResult(is_correct=is_correct, answered=True)


STRATEGIES: dict[str, GradingStrategy] = {
    "single_choice": SingleChoiceStrategy(),
    "multiple_choice": MultipleChoiceStrategy(),
    "short_answer": ShortAnswerStrategy(),
}


# -----------------------------------------------------------------------------
# Points
# -----------------------------------------------------------------------------

def effective_points(ref: ExamQuestionRef, question: Question) -> float:
    """Question's maximum contribution to this exam."""
    points = ref.question_points if ref.question_points is not None else question.points
    return points * ref.weight


def compute_max_score(exam: Exam, questions_by_id: dict[str, Question]) -> float:
    """Sum of effective points over the exam's resolvable questions."""
    return sum(
        effective_points(ref, questions_by_id[ref.question_id])
        for ref in exam.questions
        if ref.question_id in questions_by_id
    )


def score_question(result: QuestionResult, question: Question, ref: ExamQuestionRef) -> float:
    """
    Per-question score.

    Omitted and invalid answers score 0. A wrong answer loses
    negative_points x weight when negative marking is on; there is no
    per-question floor.
    """
    if result.is_correct:
        return effective_points(ref, question)
    if result.answered and result.invalid_reason is None and question.negative_marking:
        return -question.negative_points * ref.weight
    return 0.0


# -----------------------------------------------------------------------------
# Pre-checks
# -----------------------------------------------------------------------------

def check_attempt_limit(exam: Exam, attempts: Sequence[ExamAttempt]):
    """Raise AttemptLimitExceeded if no attempt is left, counting every status."""
    if exam.max_attempts is not None and len(attempts) >= exam.max_attempts:
        raise AttemptLimitExceeded(exam.id, exam.max_attempts, len(attempts))


def is_past_close(exam: Exam, at: datetime) -> bool:
    return exam.close_at is not None and ensure_utc(at) > exam.close_at


# -----------------------------------------------------------------------------
# Grading
# -----------------------------------------------------------------------------

def grade(
    exam: Exam,
    questions_by_id: dict[str, Question],
    answers: Iterable[SubmittedAnswer],
    submitted_at: datetime,
    previous_attempts: Optional[Sequence[ExamAttempt]] = None,
) -> GradedAttempt:
    """
    Grade a submission.

    Args:
        exam: Exam definition
        questions_by_id: Question bank, keyed by question id
        answers: Submitted answers (the last answer per question wins)
        submitted_at: Submission instant, compared with exam.close_at
        previous_attempts: Other attempts by the same student on this exam;
            when given, the attempt limit is enforced before grading

    Returns:
        GradedAttempt with clamped score and any non-fatal notices

    Raises:
        AttemptLimitExceeded: No attempts left
        SubmissionWindowClosed: Submitted after close_at without late allowance
    """
    submitted_at = ensure_utc(submitted_at)

    if previous_attempts is not None:
        check_attempt_limit(exam, previous_attempts)

    late = is_past_close(exam, submitted_at)
    if late and not exam.allow_late_submission:
        raise SubmissionWindowClosed(exam.id, exam.close_at)

    notices: list[GradingNotice] = []
    exam_question_ids = {ref.question_id for ref in exam.questions}

    answers_by_question: dict[str, SubmittedAnswer] = {}
    for answer in answers:
        if answer.question_id not in exam_question_ids:
            notices.append(GradingNotice(
                kind="invalid_answer_ignored",
                question_id=answer.question_id,
                message="Answer references a question that is not on this exam",
            ))
            continue
        answers_by_question[answer.question_id] = answer

    graded_answers: list[GradedAnswer] = []
    raw_score = 0.0
    max_score = 0.0

    for ref in exam.questions:
        question = questions_by_id.get(ref.question_id)
        if question is None:
            notices.append(GradingNotice(
                kind="data_integrity",
                question_id=ref.question_id,
                message="Exam references a question missing from the question bank",
            ))
            continue

        answer = answers_by_question.get(ref.question_id)
        result = STRATEGIES[question.type].evaluate(question, answer)
        if result.invalid_reason:
            notices.append(GradingNotice(
                kind="invalid_answer_ignored",
                question_id=question.id,
                message=result.invalid_reason,
            ))

        score = score_question(result, question, ref)
        question_max = effective_points(ref, question)
        raw_score += score
        max_score += question_max

        graded_answers.append(GradedAnswer(
            question_id=question.id,
            answer_single=answer.answer_single if answer else None,
            answer_multiple=answer.answer_multiple if answer else None,
            answer_text=answer.answer_text if answer else None,
            is_correct=result.is_correct,
            score=score,
            max_score=question_max,
        ))

    if not math.isclose(exam.total_points, max_score):
        notices.append(GradingNotice(
            kind="data_integrity",
            message=(
                f"Stored total_points {exam.total_points} differs from "
                f"computed max score {max_score}"
            ),
        ))
        logger.warning(
            f"Exam {exam.id}: total_points {exam.total_points} != computed max score {max_score}"
        )

    total = raw_score
    if late:
        total = total * (100 - exam.late_penalty_percent) / 100

    score = min(max(total, 0.0), max_score)

    return GradedAttempt(
        exam_id=exam.id,
        submitted_at=submitted_at,
        answers=graded_answers,
        raw_score=raw_score,
        late_penalty_applied=late,
        score=score,
        max_score=max_score,
        passed=score >= exam.passing_score,
        notices=notices,
    )

"""
Review - What a student may see of a graded attempt.

The exam's show_correct_answers policy decides whether correct options and
expected answers are revealed; show_score_to_student decides whether
scores and the pass flag are.
"""

from datetime import datetime

from coursetrack.schemas import (
    AttemptResultView,
    AttemptStatus,
    Exam,
    ExamAttempt,
    Question,
    QuestionReview,
    ReviewOption,
    ShortAnswerQuestion,
    ShowCorrectAnswers,
    ensure_utc,
)

from .grader import effective_points


def correct_answers_visible(exam: Exam, attempt: ExamAttempt, now: datetime) -> bool:
    """
    Whether correct answers may be shown for this attempt.

    Only submitted attempts qualify. after_close without a close_at counts
    as already closed.
    """
    if attempt.status != AttemptStatus.SUBMITTED:
        return False
    if exam.show_correct_answers == ShowCorrectAnswers.AFTER_SUBMIT:
        return True
    if exam.show_correct_answers == ShowCorrectAnswers.AFTER_CLOSE:
        return exam.close_at is None or ensure_utc(now) > exam.close_at
    return False


def _review_question(
    question: Question,
    max_score: float,
    attempt: ExamAttempt,
    reveal: bool,
    show_score: bool,
) -> QuestionReview:
    review = QuestionReview(question_id=question.id, type=question.type, text=question.text)

    if isinstance(question, ShortAnswerQuestion):
        if reveal:
            review.expected_answers = list(question.expected_answers)
    else:
        review.options = [ReviewOption(id=opt.id, text=opt.text) for opt in question.options]
        if reveal:
            review.correct_option_ids = [opt.id for opt in question.options if opt.is_correct]

    graded = next((a for a in attempt.answers if a.question_id == question.id), None)
    if graded is not None:
        review.answer_single = graded.answer_single
        review.answer_multiple = graded.answer_multiple
        review.answer_text = graded.answer_text
        review.answered = bool(graded.answer_single or graded.answer_multiple or graded.answer_text)

    if show_score:
        review.score = graded.score if graded is not None else 0.0
        review.max_score = graded.max_score if graded is not None else max_score
    return review


def attempt_result_view(
    exam: Exam,
    attempt: ExamAttempt,
    questions_by_id: dict[str, Question],
    now: datetime,
) -> AttemptResultView:
    """
    Build the student-facing view of an attempt.

    Args:
        exam: Exam the attempt belongs to (review policy)
        attempt: The attempt, in any status
        questions_by_id: Question bank
        now: Current instant, compared with close_at for after_close

    Raises:
        ValueError: Attempt belongs to another exam
    """
    if attempt.exam_id != exam.id:
        raise ValueError(f"Attempt {attempt.id} belongs to exam {attempt.exam_id}, not {exam.id}")

    reveal = correct_answers_visible(exam, attempt, now)
    show_score = exam.show_score_to_student

    questions = []
    for ref in exam.questions:
        question = questions_by_id.get(ref.question_id)
        if question is None:
            continue
        questions.append(_review_question(
            question, effective_points(ref, question), attempt, reveal, show_score
        ))

    return AttemptResultView(
        attempt_id=attempt.id,
        exam_id=exam.id,
        status=attempt.status,
        started_at=attempt.started_at,
        submitted_at=attempt.submitted_at,
        expires_at=attempt.expires_at,
        correct_answers_visible=reveal,
        score_visible=show_score,
        score=attempt.score if show_score else None,
        max_score=attempt.max_score if show_score else None,
        passed=attempt.passed if show_score else None,
        questions=questions,
    )

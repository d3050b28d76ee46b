"""
CourseTrack Schemas - Pydantic models for the learning-progression engine.

This module exports all schema classes for:
- Catalog: sections, lessons, exams, question references
- Question: single choice, multiple choice, short answer
- Attempt: submitted and graded answers, exam attempts
- Progress: lesson status, effective outcomes, unlock decisions
"""

# Question schemas
from .question import (
    ChoiceOption,
    QuestionBase,
    SingleChoiceQuestion,
    MultipleChoiceQuestion,
    ShortAnswerQuestion,
    Question,
)

# Catalog schemas
from .catalog import (
    ensure_utc,
    ScoringMethod,
    ExamStatus,
    ShowCorrectAnswers,
    Section,
    Lesson,
    ExamQuestionRef,
    Exam,
    ContentItem,
    CourseCatalog,
    CourseBundle,
)

# Attempt schemas
from .attempt import (
    AttemptStatus,
    SubmittedAnswer,
    GradedAnswer,
    GradingNotice,
    GradedAttempt,
    ExamAttempt,
    ReviewOption,
    QuestionReview,
    AttemptResultView,
)

# Progress schemas
from .progress import (
    LessonStatus,
    LessonProgress,
    OutcomeStatus,
    EffectiveOutcome,
    StudentFacts,
    LockReason,
    UnlockDecision,
)

__all__ = [
    # Question
    'ChoiceOption',
    'QuestionBase',
    'SingleChoiceQuestion',
    'MultipleChoiceQuestion',
    'ShortAnswerQuestion',
    'Question',
    # Catalog
    'ensure_utc',
    'ScoringMethod',
    'ExamStatus',
    'ShowCorrectAnswers',
    'Section',
    'Lesson',
    'ExamQuestionRef',
    'Exam',
    'ContentItem',
    'CourseCatalog',
    'CourseBundle',
    # Attempt
    'AttemptStatus',
    'SubmittedAnswer',
    'GradedAnswer',
    'GradingNotice',
    'GradedAttempt',
    'ExamAttempt',
    'ReviewOption',
    'QuestionReview',
    'AttemptResultView',
    # Progress
    'LessonStatus',
    'LessonProgress',
    'OutcomeStatus',
    'EffectiveOutcome',
    'StudentFacts',
    'LockReason',
    'UnlockDecision',
]

"""
CourseTrack Classroom - Runtime components for grading and sequencing.

This module provides:
- grade: Score one exam submission
- aggregate: Combine attempts into an effective outcome
- Sequencer / is_unlocked: Lesson and exam availability
- Attempt lifecycle transitions
- attempt_result_view: Student-facing review of an attempt
- ProgressTracker: Track student progress
"""

from .errors import (
    CourseTrackError,
    SubmissionWindowClosed,
    ExamNotOpen,
    ExamNotPublished,
    AttemptLimitExceeded,
    AttemptFinalized,
    AttemptExpired,
)

from .grader import (
    grade,
    effective_points,
    compute_max_score,
    check_attempt_limit,
    GradingStrategy,
    SingleChoiceStrategy,
    MultipleChoiceStrategy,
    ShortAnswerStrategy,
    STRATEGIES,
)

from .aggregator import (
    aggregate,
    aggregate_many,
)

from .sequencer import (
    Sequencer,
    SequenceEntry,
    SequencedItem,
    ItemKind,
    flatten_catalog,
    is_unlocked,
    build_student_facts,
)

from .lifecycle import (
    start_attempt,
    submit_attempt,
    attempt_questions,
    expire_if_overdue,
    abandon_attempt,
)

from .review import attempt_result_view, correct_answers_visible

from .progress import ProgressTracker

from .integrity import check_bundle

__all__ = [
    # Errors
    "CourseTrackError",
    "SubmissionWindowClosed",
    "ExamNotOpen",
    "ExamNotPublished",
    "AttemptLimitExceeded",
    "AttemptFinalized",
    "AttemptExpired",
    # Grader
    "grade",
    "effective_points",
    "compute_max_score",
    "check_attempt_limit",
    "GradingStrategy",
    "SingleChoiceStrategy",
    "MultipleChoiceStrategy",
    "ShortAnswerStrategy",
    "STRATEGIES",
    # Aggregator
    "aggregate",
    "aggregate_many",
    # Sequencer
    "Sequencer",
    "SequenceEntry",
    "SequencedItem",
    "ItemKind",
    "flatten_catalog",
    "is_unlocked",
    "build_student_facts",
    # Lifecycle
    "start_attempt",
    "submit_attempt",
    "attempt_questions",
    "expire_if_overdue",
    "abandon_attempt",
    # Review
    "attempt_result_view",
    "correct_answers_visible",
    # Progress
    "ProgressTracker",
    # Integrity
    "check_bundle",
]

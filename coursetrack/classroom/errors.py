"""
Errors raised by the grading and attempt lifecycle components.

Only fatal conditions are exceptions. Non-fatal ones (stored total_points
drift, ignored answers) are reported as GradingNotice entries instead.
"""

from datetime import datetime
from typing import Optional


class CourseTrackError(Exception):
    """Base class for CourseTrack errors."""


class SubmissionWindowClosed(CourseTrackError):
    """Exam is closed and does not accept late submissions."""

    def __init__(self, exam_id: str, close_at: Optional[datetime]):
        self.exam_id = exam_id
        self.close_at = close_at
        super().__init__(f"Exam {exam_id} closed at {close_at}")


class ExamNotOpen(CourseTrackError):
    """Exam has an open_at in the future."""

    def __init__(self, exam_id: str, open_at: datetime):
        self.exam_id = exam_id
        self.open_at = open_at
        super().__init__(f"Exam {exam_id} opens at {open_at}")


class ExamNotPublished(CourseTrackError):
    """Exam is a draft or archived and accepts no attempts."""

    def __init__(self, exam_id: str, status: str):
        self.exam_id = exam_id
        self.status = status
        super().__init__(f"Exam {exam_id} is {status}, not published")


class AttemptLimitExceeded(CourseTrackError):
    """Student already used every attempt the exam allows."""

    def __init__(self, exam_id: str, max_attempts: int, attempts_count: int):
        self.exam_id = exam_id
        self.max_attempts = max_attempts
        self.attempts_count = attempts_count
        super().__init__(
            f"Maximum attempts ({max_attempts}) reached for exam {exam_id}"
        )


class AttemptFinalized(CourseTrackError):
    """Attempt is already submitted, expired or abandoned."""

    def __init__(self, attempt_id: str, status: str):
        self.attempt_id = attempt_id
        self.status = status
        super().__init__(f"Attempt {attempt_id} is already {status}")


class AttemptExpired(CourseTrackError):
    """Attempt ran past its time limit; carries the expired copy to persist."""

    def __init__(self, attempt):
        self.attempt = attempt
        super().__init__(f"Time limit exceeded for attempt {attempt.id}")

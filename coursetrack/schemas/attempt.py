"""
Exam attempt schemas for CourseTrack.

Defines Pydantic models for:
- Submitted answers (one field per question variant)
- Graded answers and the pure grading result
- Persisted exam attempts and their lifecycle status
"""

from datetime import datetime
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from .catalog import ensure_utc


class AttemptStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    EXPIRED = "expired"
    ABANDONED = "abandoned"

    @property
    def is_terminal(self) -> bool:
        return self is not AttemptStatus.IN_PROGRESS


class SubmittedAnswer(BaseModel):
    """A student's raw answer; only the field matching the question type is read."""
    question_id: str
    answer_single: Optional[str] = None
    answer_multiple: Optional[list[str]] = None
    answer_text: Optional[str] = None


class GradedAnswer(SubmittedAnswer):
    is_correct: bool = False
    score: float = 0.0        # negative under negative marking
    max_score: float = Field(default=0.0, ge=0)


class GradingNotice(BaseModel):
    """Non-fatal condition absorbed during grading."""
    kind: Literal["data_integrity", "invalid_answer_ignored"]
    question_id: Optional[str] = None
    message: str


class GradedAttempt(BaseModel):
    exam_id: str
    submitted_at: datetime
    answers: list[GradedAnswer]
    raw_score: float               # before late penalty and clamping
    late_penalty_applied: bool = False
    score: float = Field(..., ge=0)
    max_score: float = Field(..., ge=0)
    passed: bool
    notices: list[GradingNotice] = []


class ExamAttempt(BaseModel):
    """One sitting of one exam by one student."""
    id: str
    exam_id: str
    student_id: str
    started_at: datetime
    submitted_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    status: AttemptStatus = AttemptStatus.IN_PROGRESS
    answers: list[GradedAnswer] = []
    score: float = 0.0
    max_score: float = Field(default=0.0, ge=0)
    passed: bool = False

    @field_validator('started_at', 'submitted_at', 'expires_at')
    @classmethod
    def timestamps_aware(cls, v):
        return ensure_utc(v)

    def is_overdue(self, now: datetime) -> bool:
        return (
            self.status == AttemptStatus.IN_PROGRESS
            and self.expires_at is not None
            and ensure_utc(now) > self.expires_at
        )


# -----------------------------------------------------------------------------
# Student-facing result view
# -----------------------------------------------------------------------------

class ReviewOption(BaseModel):
    """Choice option as shown to the student; correctness is never included."""
    id: str
    text: str = ""


class QuestionReview(BaseModel):
    question_id: str
    type: str
    text: str = ""
    options: list[ReviewOption] = []
    correct_option_ids: Optional[list[str]] = None  # None while hidden
    expected_answers: Optional[list[str]] = None    # None while hidden
    answer_single: Optional[str] = None
    answer_multiple: Optional[list[str]] = None
    answer_text: Optional[str] = None
    answered: bool = False
    score: Optional[float] = None                   # None while scores are hidden
    max_score: Optional[float] = None


class AttemptResultView(BaseModel):
    """What a student may see of one attempt under the exam's review policy."""
    attempt_id: str
    exam_id: str
    status: AttemptStatus
    started_at: datetime
    submitted_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    correct_answers_visible: bool = False
    score_visible: bool = True
    score: Optional[float] = None
    max_score: Optional[float] = None
    passed: Optional[bool] = None
    questions: list[QuestionReview] = []

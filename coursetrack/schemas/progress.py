"""
Progress tracking schemas for CourseTrack.

Defines Pydantic models for student progress including:
- Lesson status tracking
- Effective exam outcomes across attempts
- Unlock decisions returned by the sequencer
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from enum import Enum


class LessonStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class LessonProgress(BaseModel):
    lesson_id: str
    status: LessonStatus = LessonStatus.NOT_STARTED
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class OutcomeStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    PASSED = "passed"
    FAILED = "failed"


class EffectiveOutcome(BaseModel):
    """A student's standing on one exam, derived from all their attempts."""
    exam_id: str
    status: OutcomeStatus = OutcomeStatus.NOT_STARTED
    effective_score: Optional[float] = None  # per the exam's scoring method
    best_score: Optional[float] = None
    latest_score: Optional[float] = None
    average_score: Optional[float] = None
    attempts_count: int = Field(default=0, ge=0)    # every status
    submitted_count: int = Field(default=0, ge=0)
    passed: bool = False
    remaining_attempts: Optional[int] = None  # None = unlimited


class StudentFacts(BaseModel):
    """Snapshot of one student's progress, as consumed by the sequencer."""
    student_id: str = "default"
    completed_lesson_ids: set[str] = set()
    exam_outcomes: dict[str, EffectiveOutcome] = {}

    def exam_passed(self, exam_id: str) -> bool:
        outcome = self.exam_outcomes.get(exam_id)
        return outcome is not None and outcome.passed


class LockReason(str, Enum):
    PREREQUISITES_INCOMPLETE = "prerequisites_incomplete"
    NOT_OPEN_YET = "not_open_yet"
    CLOSED = "closed"
    NOT_PUBLISHED = "not_published"
    NOT_FOUND = "not_found"


class UnlockDecision(BaseModel):
    item_id: str
    unlocked: bool
    reason: Optional[LockReason] = None
    blocking_item_id: Optional[str] = None  # first unsatisfied predecessor
    opens_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None

"""
Catalog schemas for CourseTrack.

Defines Pydantic models for course structure including:
- Sections (ordered by `order`)
- Lessons and exams sharing one position axis per section
- Exam question references with weight and point overrides
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from .question import Question


# =============================================================================
# TIMESTAMP CONVENTION: all datetimes are timezone-aware; naive input is UTC
# =============================================================================

def ensure_utc(v: Optional[datetime]) -> Optional[datetime]:
    """Shared timestamp validation: attach UTC to naive datetimes."""
    if v is not None and v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v


class ScoringMethod(str, Enum):
    HIGHEST = "highest"
    LATEST = "latest"
    AVERAGE = "average"


class ExamStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class ShowCorrectAnswers(str, Enum):
    NEVER = "never"
    AFTER_SUBMIT = "after_submit"
    AFTER_CLOSE = "after_close"


# -----------------------------------------------------------------------------
# Sections and content items
# -----------------------------------------------------------------------------


class Section(BaseModel):
    id: str
    order: int
    title: Optional[str] = None


class Lesson(BaseModel):
    """A lesson; completion is tracked by the progress store, not here."""
    id: str
    section_id: str
    position_in_section: int
    is_free: bool = False
    title: Optional[str] = None


class ExamQuestionRef(BaseModel):
    """
    Reference from an exam to a question in the bank.
    question_points, when set, replaces the question's own points for this exam.
    """
    question_id: str
    weight: float = Field(default=1.0, ge=0)
    question_points: Optional[float] = Field(default=None, ge=0)
    order: int = Field(default=0, ge=0)


class Exam(BaseModel):
    """
    An exam placed in a section. Only published exams take part in
    sequencing and accept attempts.
    """
    id: str
    section_id: str
    position_in_section: int
    status: ExamStatus = ExamStatus.PUBLISHED
    is_free: bool = False  # skips prerequisites, never the time window
    title: Optional[str] = None
    open_at: Optional[datetime] = None
    close_at: Optional[datetime] = None
    allow_late_submission: bool = False
    late_penalty_percent: float = Field(default=0, ge=0, le=100)
    max_attempts: Optional[int] = Field(default=None, ge=1)
    duration_minutes: Optional[int] = Field(default=None, ge=1)
    scoring_method: ScoringMethod = ScoringMethod.HIGHEST
    passing_score: float = Field(default=0, ge=0)
    total_points: float = Field(default=0, ge=0)  # display value, may drift
    shuffle_questions: bool = False
    shuffle_answers: bool = False
    show_correct_answers: ShowCorrectAnswers = ShowCorrectAnswers.AFTER_SUBMIT
    show_score_to_student: bool = True
    questions: list[ExamQuestionRef] = []

    @field_validator('open_at', 'close_at')
    @classmethod
    def window_aware(cls, v):
        return ensure_utc(v)

    @property
    def is_published(self) -> bool:
        return self.status == ExamStatus.PUBLISHED


ContentItem = Union[Lesson, Exam]


class CourseCatalog(BaseModel):
    """
    Course structure as two typed collections joined by section_id.

    Duplicate positions and items pointing at unknown sections are accepted
    here; the sequencer resolves them deterministically.
    """
    sections: list[Section] = []
    lessons: list[Lesson] = []
    exams: list[Exam] = []

    def get_item(self, item_id: str) -> Optional[ContentItem]:
        for lesson in self.lessons:
            if lesson.id == item_id:
                return lesson
        for exam in self.exams:
            if exam.id == item_id:
                return exam
        return None

    def get_exam(self, exam_id: str) -> Optional[Exam]:
        return next((e for e in self.exams if e.id == exam_id), None)


class CourseBundle(BaseModel):
    """A catalog together with the question bank its exams draw from."""
    course_id: str
    title: Optional[str] = None
    catalog: CourseCatalog
    questions: list[Question] = []

    @model_validator(mode="after")
    def unique_question_ids(self):
        seen = set()
        for question in self.questions:
            if question.id in seen:
                raise ValueError(f"Duplicate question id: {question.id}")
            seen.add(question.id)
        return self

    @property
    def questions_by_id(self) -> dict[str, Question]:
        return {q.id: q for q in self.questions}

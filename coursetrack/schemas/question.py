"""
Question schemas for CourseTrack.

Three question variants form a closed union discriminated by `type`:
- single_choice: one correct option
- multiple_choice: a correct subset, optionally capped by max_selectable
- short_answer: a list of acceptable strings
"""

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field


class ChoiceOption(BaseModel):
    id: str
    text: str = ""
    is_correct: bool = False


# -----------------------------------------------------------------------------
# Question variants
# -----------------------------------------------------------------------------

class QuestionBase(BaseModel):
    id: str
    type: str
    text: str = ""
    points: float = Field(default=1.0, ge=0)
    negative_marking: bool = False
    negative_points: float = Field(default=0.0, ge=0)


class SingleChoiceQuestion(QuestionBase):
    type: Literal["single_choice"] = "single_choice"
    options: list[ChoiceOption] = []

    @property
    def correct_option_ids(self) -> list[str]:
        return [opt.id for opt in self.options if opt.is_correct]


class MultipleChoiceQuestion(QuestionBase):
    type: Literal["multiple_choice"] = "multiple_choice"
    options: list[ChoiceOption] = []
    max_selectable: Optional[int] = Field(default=None, ge=1)

    @property
    def correct_option_ids(self) -> set[str]:
        return {opt.id for opt in self.options if opt.is_correct}


class ShortAnswerQuestion(QuestionBase):
    type: Literal["short_answer"] = "short_answer"
    expected_answers: list[str] = []
    case_sensitive: bool = False


Question = Annotated[
    Union[
        SingleChoiceQuestion,
        MultipleChoiceQuestion,
        ShortAnswerQuestion,
    ],
    Field(discriminator="type"),
]

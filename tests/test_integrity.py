"""
Course bundle integrity check tests.
"""

from datetime import datetime, timezone

from coursetrack.classroom import check_bundle
from coursetrack.schemas import (
    ChoiceOption,
    CourseBundle,
    CourseCatalog,
    Exam,
    ExamQuestionRef,
    Lesson,
    Section,
    SingleChoiceQuestion,
)
from coursetrack.utils import load_bundle


def bundle(lessons=(), exams=(), questions=(), sections=None):
    return CourseBundle(
        course_id="c1",
        catalog=CourseCatalog(
            sections=sections if sections is not None else [Section(id="s1", order=1)],
            lessons=list(lessons),
            exams=list(exams),
        ),
        questions=list(questions),
    )


Q1 = SingleChoiceQuestion(id="q1", points=2, options=[ChoiceOption(id="a", is_correct=True)])


class TestCheckBundle:

    def test_sample_course_is_clean(self):
        assert check_bundle(load_bundle("intro_python")) == []

    def test_duplicate_positions(self):
        issues = check_bundle(bundle(
            lessons=[Lesson(id="l1", section_id="s1", position_in_section=1)],
            exams=[Exam(id="e1", section_id="s1", position_in_section=1)],
        ))
        assert issues == ["Section s1 has 2 items at position 1"]

    def test_duplicate_ids(self):
        issues = check_bundle(bundle(
            sections=[Section(id="s1", order=1), Section(id="s1", order=2)],
            lessons=[
                Lesson(id="x", section_id="s1", position_in_section=1),
                Lesson(id="x", section_id="s1", position_in_section=2),
            ],
        ))
        assert "Section s1 is defined 2 times" in issues
        assert "Item id x is used 2 times" in issues

    def test_orphaned_item(self):
        issues = check_bundle(bundle(lessons=[Lesson(id="l1", section_id="gone", position_in_section=1)]))
        assert issues == ["Item l1 references unknown section gone"]

    def test_unknown_question_and_drift(self):
        exam = Exam(
            id="e1",
            section_id="s1",
            position_in_section=1,
            total_points=10,
            questions=[ExamQuestionRef(question_id="q1"), ExamQuestionRef(question_id="q9")],
        )
        issues = check_bundle(bundle(exams=[exam], questions=[Q1]))
        assert "Exam e1 references unknown question q9" in issues
        assert any("total_points" in issue for issue in issues)

    def test_window_and_unreachable_pass(self):
        exam = Exam(
            id="e1",
            section_id="s1",
            position_in_section=1,
            open_at=datetime(2025, 6, 1, tzinfo=timezone.utc),
            close_at=datetime(2025, 5, 1, tzinfo=timezone.utc),
            total_points=2,
            passing_score=3,
            questions=[ExamQuestionRef(question_id="q1")],
        )
        issues = check_bundle(bundle(exams=[exam], questions=[Q1]))
        assert "Exam e1 closes before it opens" in issues
        assert any("unreachable" in issue for issue in issues)

    def test_single_choice_needs_one_correct_option(self):
        q = SingleChoiceQuestion(
            id="q2",
            options=[ChoiceOption(id="a", is_correct=True), ChoiceOption(id="b", is_correct=True)],
        )
        assert check_bundle(bundle(questions=[q])) == [
            "Question q2 is single choice with 2 correct options"
        ]

"""
Integrity checks for course bundles.

Reports problems the runtime tolerates silently (duplicate positions,
orphaned items, total_points drift) so authors can fix them at the source.
"""

import math
from collections import Counter

from coursetrack.schemas import CourseBundle, SingleChoiceQuestion

from .grader import compute_max_score


def check_bundle(bundle: CourseBundle) -> list[str]:
    """Run every check; returns human-readable issues (empty if clean)."""
    issues = []
    catalog = bundle.catalog
    questions_by_id = bundle.questions_by_id
    section_ids = {s.id for s in catalog.sections}

    # Duplicate section ids
    for section_id, count in Counter(s.id for s in catalog.sections).items():
        if count > 1:
            issues.append(f"Section {section_id} is defined {count} times")

    # Duplicate item ids across lessons and exams
    item_ids = [i.id for i in catalog.lessons] + [e.id for e in catalog.exams]
    for item_id, count in Counter(item_ids).items():
        if count > 1:
            issues.append(f"Item id {item_id} is used {count} times")

    # Orphaned items
    for item in [*catalog.lessons, *catalog.exams]:
        if item.section_id not in section_ids:
            issues.append(f"Item {item.id} references unknown section {item.section_id}")

    # Duplicate positions within a section (lessons and exams share one axis)
    positions = Counter(
        (item.section_id, item.position_in_section)
        for item in [*catalog.lessons, *catalog.exams]
    )
    for (section_id, position), count in sorted(positions.items()):
        if count > 1:
            issues.append(f"Section {section_id} has {count} items at position {position}")

    for exam in catalog.exams:
        for ref in exam.questions:
            if ref.question_id not in questions_by_id:
                issues.append(f"Exam {exam.id} references unknown question {ref.question_id}")

        max_score = compute_max_score(exam, questions_by_id)
        if not math.isclose(exam.total_points, max_score):
            issues.append(
                f"Exam {exam.id} total_points {exam.total_points} != computed max score {max_score}"
            )

        if exam.open_at and exam.close_at and exam.close_at < exam.open_at:
            issues.append(f"Exam {exam.id} closes before it opens")

        if exam.passing_score > max_score:
            issues.append(f"Exam {exam.id} passing score {exam.passing_score} is unreachable (max {max_score})")

    for question in bundle.questions:
        if isinstance(question, SingleChoiceQuestion) and len(question.correct_option_ids) != 1:
            issues.append(
                f"Question {question.id} is single choice with "
                f"{len(question.correct_option_ids)} correct options"
            )

    return issues

"""
Sequencer - Lesson and exam unlocking over one flattened course order.

Provides:
- Flattening of sections, lessons and exams onto one order axis
- Unlock decisions with lock reasons
- Course-wide sequence with per-item decisions
- Recommended next item and completion stats

Decisions are recomputed from the supplied facts on every call; nothing is
cached between calls.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable, Optional

from coursetrack.schemas import (
    ContentItem,
    CourseCatalog,
    Exam,
    ExamAttempt,
    LockReason,
    StudentFacts,
    UnlockDecision,
    ensure_utc,
)

from .aggregator import aggregate_many

logger = logging.getLogger(__name__)


class ItemKind(str, Enum):
    LESSON = "lesson"
    EXAM = "exam"


@dataclass(frozen=True)
class SequenceEntry:
    """A content item at its place in the flattened course order."""
    index: int
    kind: ItemKind
    item: ContentItem

    @property
    def id(self) -> str:
        return self.item.id


@dataclass
class SequencedItem:
    """Sequence entry with the student's decision and completion state."""
    entry: SequenceEntry
    decision: UnlockDecision
    satisfied: bool


# -----------------------------------------------------------------------------
# Flattening
# -----------------------------------------------------------------------------

def _position_key(item: ContentItem) -> tuple[int, str]:
    return (item.position_in_section, item.id)


def flatten_catalog(catalog: CourseCatalog) -> list[SequenceEntry]:
    """
    Build the global order: sections by (order, id), then lessons and exams
    interleaved by (position_in_section, id).

    Items whose section is unknown come after every section, ordered by
    (section_id, position_in_section, id). Draft and archived exams are
    left out. Never raises.
    """
    items_by_section: dict[str, list[tuple[ItemKind, ContentItem]]] = defaultdict(list)
    for lesson in catalog.lessons:
        items_by_section[lesson.section_id].append((ItemKind.LESSON, lesson))
    for exam in catalog.exams:
        if not exam.is_published:
            logger.debug(f"Exam {exam.id} is {exam.status.value}; left out of the course order")
            continue
        items_by_section[exam.section_id].append((ItemKind.EXAM, exam))

    ordered: list[tuple[ItemKind, ContentItem]] = []
    seen_sections = set()
    for section in sorted(catalog.sections, key=lambda s: (s.order, s.id)):
        if section.id in seen_sections:
            continue
        seen_sections.add(section.id)

        section_items = sorted(items_by_section.get(section.id, []), key=lambda ki: _position_key(ki[1]))
        positions = [item.position_in_section for _, item in section_items]
        if len(positions) != len(set(positions)):
            logger.debug(f"Section {section.id} has duplicate positions; ordering ties by item id")
        ordered.extend(section_items)

    orphans = [
        ki for sid, items in items_by_section.items()
        if sid not in seen_sections
        for ki in items
    ]
    if orphans:
        logger.warning(f"{len(orphans)} items reference unknown sections; placing them last")
        orphans.sort(key=lambda ki: (ki[1].section_id,) + _position_key(ki[1]))
        ordered.extend(orphans)

    return [SequenceEntry(index=i, kind=kind, item=item) for i, (kind, item) in enumerate(ordered)]


# -----------------------------------------------------------------------------
# Sequencer
# -----------------------------------------------------------------------------

class Sequencer:
    """
    Decide lesson and exam availability from a student's facts.

    Holds only the flattened catalog, so one instance can serve any number
    of students and threads.
    """

    def __init__(self, catalog: CourseCatalog):
        self.catalog = catalog
        self.entries = flatten_catalog(catalog)
        self._index: dict[str, int] = {}
        for entry in self.entries:
            self._index.setdefault(entry.id, entry.index)
        self._unpublished = {e.id for e in catalog.exams if not e.is_published} - set(self._index)

    @property
    def total_items(self) -> int:
        return len(self.entries)

    def is_satisfied(self, entry: SequenceEntry, facts: StudentFacts) -> bool:
        """Whether the item no longer blocks later items."""
        if entry.kind == ItemKind.LESSON:
            return entry.item.is_free or entry.id in facts.completed_lesson_ids
        return facts.exam_passed(entry.id)

    def _decide(
        self,
        entry: SequenceEntry,
        blocker: Optional[SequenceEntry],
        facts: StudentFacts,
        now: datetime,
    ) -> UnlockDecision:
        item = entry.item

        if entry.kind == ItemKind.LESSON:
            if item.is_free or item.id in facts.completed_lesson_ids or blocker is None:
                return UnlockDecision(item_id=item.id, unlocked=True)
            return UnlockDecision(
                item_id=item.id,
                unlocked=False,
                reason=LockReason.PREREQUISITES_INCOMPLETE,
                blocking_item_id=blocker.id,
            )

        # Passed exams stay open for review outside their window
        if facts.exam_passed(item.id):
            return UnlockDecision(item_id=item.id, unlocked=True)

        if blocker is not None and not item.is_free:
            return UnlockDecision(
                item_id=item.id,
                unlocked=False,
                reason=LockReason.PREREQUISITES_INCOMPLETE,
                blocking_item_id=blocker.id,
            )

        window = exam_window_lock(item, now)
        if window is not None:
            return window

        return UnlockDecision(item_id=item.id, unlocked=True)

    def is_unlocked(self, item_id: str, facts: StudentFacts, now: datetime) -> UnlockDecision:
        """
        Check whether an item is accessible to the student right now.

        Args:
            item_id: Lesson or exam ID
            facts: Student's completion and exam outcome snapshot
            now: Current instant, compared with exam windows

        Returns:
            UnlockDecision; unknown IDs are locked with reason not_found,
            draft and archived exams with reason not_published
        """
        now = ensure_utc(now)
        target = self._index.get(item_id)
        if target is None:
            reason = LockReason.NOT_PUBLISHED if item_id in self._unpublished else LockReason.NOT_FOUND
            return UnlockDecision(item_id=item_id, unlocked=False, reason=reason)

        blocker = None
        for entry in self.entries[:target]:
            if not self.is_satisfied(entry, facts):
                blocker = entry
                break

        return self._decide(self.entries[target], blocker, facts, now)

    def sequence(self, facts: StudentFacts, now: datetime) -> list[SequencedItem]:
        """Decide every item in course order in a single pass."""
        now = ensure_utc(now)
        result = []
        blocker = None
        for entry in self.entries:
            satisfied = self.is_satisfied(entry, facts)
            result.append(SequencedItem(
                entry=entry,
                decision=self._decide(entry, blocker, facts, now),
                satisfied=satisfied,
            ))
            if blocker is None and not satisfied:
                blocker = entry
        return result

    def next_item(self, facts: StudentFacts, now: datetime) -> Optional[SequenceEntry]:
        """
        Recommended next step: the first unlocked item not yet satisfied.

        Returns None when everything is done or nothing is reachable.
        """
        for sequenced in self.sequence(facts, now):
            if sequenced.decision.unlocked and not sequenced.satisfied:
                return sequenced.entry
        return None

    def completion(self, facts: StudentFacts) -> dict:
        """
        Completion statistics for the student.

        Free lessons count as done only when actually completed.
        """
        lessons = [e for e in self.entries if e.kind == ItemKind.LESSON]
        exams = [e for e in self.entries if e.kind == ItemKind.EXAM]
        lessons_completed = sum(1 for e in lessons if e.id in facts.completed_lesson_ids)
        exams_passed = sum(1 for e in exams if facts.exam_passed(e.id))
        done = lessons_completed + exams_passed
        total = len(self.entries)

        return {
            "total_items": total,
            "total_lessons": len(lessons),
            "total_exams": len(exams),
            "lessons_completed": lessons_completed,
            "exams_passed": exams_passed,
            "completion_percent": round(done / total * 100, 1) if total > 0 else 0,
        }


def exam_window_lock(exam: Exam, now: datetime) -> Optional[UnlockDecision]:
    """Locked decision if `now` falls outside the exam's window, else None."""
    now = ensure_utc(now)
    if exam.open_at is not None and now < exam.open_at:
        return UnlockDecision(
            item_id=exam.id,
            unlocked=False,
            reason=LockReason.NOT_OPEN_YET,
            opens_at=exam.open_at,
        )
    if exam.close_at is not None and now > exam.close_at and not exam.allow_late_submission:
        return UnlockDecision(
            item_id=exam.id,
            unlocked=False,
            reason=LockReason.CLOSED,
            closed_at=exam.close_at,
        )
    return None


# -----------------------------------------------------------------------------
# Module-level entry points
# -----------------------------------------------------------------------------

def is_unlocked(catalog: CourseCatalog, item_id: str, facts: StudentFacts, now: datetime) -> UnlockDecision:
    """Unlock decision for one item; see Sequencer.is_unlocked."""
    return Sequencer(catalog).is_unlocked(item_id, facts, now)


def build_student_facts(
    catalog: CourseCatalog,
    completed_lesson_ids: Iterable[str],
    attempts: Iterable[ExamAttempt],
    student_id: str = "default",
) -> StudentFacts:
    """Assemble sequencer input, aggregating exam attempts per exam."""
    return StudentFacts(
        student_id=student_id,
        completed_lesson_ids=set(completed_lesson_ids),
        exam_outcomes=aggregate_many(catalog.exams, attempts),
    )

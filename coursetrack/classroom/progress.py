"""
ProgressTracker - Track student progress in ~/.coursetrack/progress.db.

Stores per-student progress:
- Lesson completion status
- Exam attempts with graded answers

Attempt creation runs its count check and insert in one write transaction,
so concurrent starts cannot exceed an exam's max_attempts.
"""

import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

from coursetrack.config import DEFAULT_PROGRESS_DB
from coursetrack.schemas import (
    AttemptStatus,
    CourseCatalog,
    Exam,
    ExamAttempt,
    LessonProgress,
    LessonStatus,
    Question,
    StudentFacts,
    SubmittedAnswer,
)

from .errors import AttemptExpired, AttemptFinalized
from .lifecycle import abandon_attempt, start_attempt, submit_attempt
from .sequencer import build_student_facts

logger = logging.getLogger(__name__)


class ProgressTracker:
    """
    Track student progress in SQLite database.

    Progress is stored separately from course content so that:
    - Content can be updated without losing progress
    - Progress is user-specific, content is shared
    """

    def __init__(self, db_path: Optional[Path] = None, student_id: str = "default"):
        """
        Initialize progress tracker.

        Args:
            db_path: Path to progress.db (default: COURSETRACK_PROGRESS_DB)
            student_id: Student identifier for multi-user support
        """
        self.db_path = Path(db_path) if db_path else DEFAULT_PROGRESS_DB
        self.student_id = student_id
        self._ensure_database()

    def _ensure_database(self):
        """Create database and tables if they don't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(str(self.db_path))
        try:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS lesson_progress (
                    student_id TEXT NOT NULL,
                    lesson_id TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'not_started',
                    started_at TEXT,
                    completed_at TEXT,
                    PRIMARY KEY (student_id, lesson_id)
                );

                CREATE TABLE IF NOT EXISTS exam_attempts (
                    id TEXT PRIMARY KEY,
                    exam_id TEXT NOT NULL,
                    student_id TEXT NOT NULL,
                    started_at TEXT NOT NULL,
                    submitted_at TEXT,
                    expires_at TEXT,
                    status TEXT NOT NULL DEFAULT 'in_progress',
                    answers JSON NOT NULL DEFAULT '[]',
                    score REAL NOT NULL DEFAULT 0,
                    max_score REAL NOT NULL DEFAULT 0,
                    passed INTEGER NOT NULL DEFAULT 0
                );

                CREATE INDEX IF NOT EXISTS idx_lesson_progress_student
                ON lesson_progress(student_id);

                CREATE INDEX IF NOT EXISTS idx_exam_attempts_student_exam
                ON exam_attempts(student_id, exam_id);
            """)
            conn.commit()
        finally:
            conn.close()

    def _get_connection(self) -> sqlite3.Connection:
        """Get a new database connection."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        return conn

    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat()

    # -------------------------------------------------------------------------
    # Lesson Progress
    # -------------------------------------------------------------------------

    def _row_to_lesson_progress(self, row: sqlite3.Row) -> LessonProgress:
        return LessonProgress(
            lesson_id=row["lesson_id"],
            status=LessonStatus(row["status"]),
            started_at=row["started_at"],
            completed_at=row["completed_at"],
        )

    def get_lesson_progress(self, lesson_id: str) -> LessonProgress:
        """Get progress for a specific lesson."""
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                """SELECT lesson_id, status, started_at, completed_at
                   FROM lesson_progress
                   WHERE student_id = ? AND lesson_id = ?""",
                (self.student_id, lesson_id)
            )
            row = cursor.fetchone()
            if not row:
                return LessonProgress(lesson_id=lesson_id)
            return self._row_to_lesson_progress(row)
        finally:
            conn.close()

    def get_all_lesson_progress(self) -> dict[str, LessonProgress]:
        """Get progress for all lessons."""
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                """SELECT lesson_id, status, started_at, completed_at
                   FROM lesson_progress
                   WHERE student_id = ?""",
                (self.student_id,)
            )
            return {row["lesson_id"]: self._row_to_lesson_progress(row) for row in cursor.fetchall()}
        finally:
            conn.close()

    def start_lesson(self, lesson_id: str):
        """Mark a lesson as started (in progress)."""
        conn = self._get_connection()
        try:
            now = self._now()
            conn.execute(
                """INSERT INTO lesson_progress (student_id, lesson_id, status, started_at)
                   VALUES (?, ?, ?, ?)
                   ON CONFLICT(student_id, lesson_id) DO UPDATE SET
                     status = CASE
                       WHEN status = 'not_started' THEN 'in_progress'
                       ELSE status
                     END,
                     started_at = CASE
                       WHEN started_at IS NULL THEN ?
                       ELSE started_at
                     END""",
                (self.student_id, lesson_id, LessonStatus.IN_PROGRESS.value, now, now)
            )
            conn.commit()
        finally:
            conn.close()

    def complete_lesson(self, lesson_id: str):
        """Mark a lesson as completed."""
        conn = self._get_connection()
        try:
            now = self._now()
            conn.execute(
                """INSERT INTO lesson_progress (student_id, lesson_id, status, completed_at)
                   VALUES (?, ?, ?, ?)
                   ON CONFLICT(student_id, lesson_id) DO UPDATE SET
                     status = 'completed',
                     completed_at = ?""",
                (self.student_id, lesson_id, LessonStatus.COMPLETED.value, now, now)
            )
            conn.commit()
        finally:
            conn.close()

    def reset_lesson(self, lesson_id: str):
        """Reset a lesson to not started."""
        conn = self._get_connection()
        try:
            conn.execute(
                """DELETE FROM lesson_progress
                   WHERE student_id = ? AND lesson_id = ?""",
                (self.student_id, lesson_id)
            )
            conn.commit()
        finally:
            conn.close()

    def get_completed_lesson_ids(self) -> set[str]:
        """Get set of completed lesson IDs."""
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                """SELECT lesson_id FROM lesson_progress
                   WHERE student_id = ? AND status = 'completed'""",
                (self.student_id,)
            )
            return {row["lesson_id"] for row in cursor.fetchall()}
        finally:
            conn.close()

    # -------------------------------------------------------------------------
    # Exam Attempts
    # -------------------------------------------------------------------------

    def _row_to_attempt(self, row: sqlite3.Row) -> ExamAttempt:
        return ExamAttempt.model_validate({
            "id": row["id"],
            "exam_id": row["exam_id"],
            "student_id": row["student_id"],
            "started_at": row["started_at"],
            "submitted_at": row["submitted_at"],
            "expires_at": row["expires_at"],
            "status": row["status"],
            "answers": json.loads(row["answers"]),
            "score": row["score"],
            "max_score": row["max_score"],
            "passed": bool(row["passed"]),
        })

    def _fetch_attempts(self, conn: sqlite3.Connection, exam_id: Optional[str] = None) -> list[ExamAttempt]:
        if exam_id is None:
            cursor = conn.execute(
                """SELECT * FROM exam_attempts
                   WHERE student_id = ?
                   ORDER BY started_at, id""",
                (self.student_id,)
            )
        else:
            cursor = conn.execute(
                """SELECT * FROM exam_attempts
                   WHERE student_id = ? AND exam_id = ?
                   ORDER BY started_at, id""",
                (self.student_id, exam_id)
            )
        return [self._row_to_attempt(row) for row in cursor.fetchall()]

    def _update_attempt(self, conn: sqlite3.Connection, attempt: ExamAttempt) -> int:
        """Write a transition; only rows still in progress are updated."""
        cursor = conn.execute(
            """UPDATE exam_attempts SET
                 status = ?, submitted_at = ?, answers = ?,
                 score = ?, max_score = ?, passed = ?
               WHERE id = ? AND student_id = ? AND status = 'in_progress'""",
            (
                attempt.status.value,
                attempt.submitted_at.isoformat() if attempt.submitted_at else None,
                json.dumps([a.model_dump(mode="json") for a in attempt.answers]),
                attempt.score,
                attempt.max_score,
                int(attempt.passed),
                attempt.id,
                self.student_id,
            )
        )
        return cursor.rowcount

    def list_attempts(self, exam_id: Optional[str] = None) -> list[ExamAttempt]:
        """List the student's attempts, optionally for one exam, oldest first."""
        conn = self._get_connection()
        try:
            return self._fetch_attempts(conn, exam_id)
        finally:
            conn.close()

    def list_exam_attempts_all_students(self, exam_id: str) -> list[ExamAttempt]:
        """Every student's attempts on an exam (instructor analytics)."""
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                """SELECT * FROM exam_attempts
                   WHERE exam_id = ?
                   ORDER BY started_at, id""",
                (exam_id,)
            )
            return [self._row_to_attempt(row) for row in cursor.fetchall()]
        finally:
            conn.close()

    def get_attempt(self, attempt_id: str) -> Optional[ExamAttempt]:
        conn = self._get_connection()
        try:
            row = conn.execute(
                "SELECT * FROM exam_attempts WHERE id = ? AND student_id = ?",
                (attempt_id, self.student_id)
            ).fetchone()
            return self._row_to_attempt(row) if row else None
        finally:
            conn.close()

    def create_attempt(
        self,
        exam: Exam,
        now: datetime,
        questions_by_id: Optional[dict[str, Question]] = None,
    ) -> ExamAttempt:
        """
        Start (or resume) an attempt on an exam.

        Overdue in-progress attempts are expired first. The attempt-count
        check and insert share one IMMEDIATE transaction.

        Raises:
            ExamNotOpen, SubmissionWindowClosed, AttemptLimitExceeded
        """
        conn = self._get_connection()
        conn.isolation_level = None
        try:
            conn.execute("BEGIN IMMEDIATE")
            attempts = self._fetch_attempts(conn, exam.id)

            for attempt in attempts:
                if attempt.is_overdue(now):
                    conn.execute(
                        "UPDATE exam_attempts SET status = ? WHERE id = ?",
                        (AttemptStatus.EXPIRED.value, attempt.id)
                    )
            attempts = [
                a.model_copy(update={"status": AttemptStatus.EXPIRED}) if a.is_overdue(now) else a
                for a in attempts
            ]

            attempt = start_attempt(exam, self.student_id, attempts, now, questions_by_id)
            if all(a.id != attempt.id for a in attempts):
                conn.execute(
                    """INSERT INTO exam_attempts
                       (id, exam_id, student_id, started_at, expires_at, status, max_score)
                       VALUES (?, ?, ?, ?, ?, ?, ?)""",
                    (
                        attempt.id,
                        attempt.exam_id,
                        attempt.student_id,
                        attempt.started_at.isoformat(),
                        attempt.expires_at.isoformat() if attempt.expires_at else None,
                        attempt.status.value,
                        attempt.max_score,
                    )
                )
                logger.info(f"Student {self.student_id} started attempt {attempt.id} on exam {exam.id}")
            conn.execute("COMMIT")
            return attempt
        except Exception:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        finally:
            conn.close()

    def submit(
        self,
        exam: Exam,
        attempt_id: str,
        questions_by_id: dict[str, Question],
        answers: Iterable[SubmittedAnswer],
        now: datetime,
    ) -> ExamAttempt:
        """
        Grade and store an in-progress attempt.

        An overdue attempt is stored as expired before AttemptExpired
        propagates.
        """
        attempt = self.get_attempt(attempt_id)
        if attempt is None:
            raise KeyError(f"Attempt not found: {attempt_id}")

        try:
            submitted = submit_attempt(attempt, exam, questions_by_id, answers, now)
        except AttemptExpired as exc:
            self.save_attempt(exc.attempt)
            raise

        self.save_attempt(submitted)
        logger.info(
            f"Student {self.student_id} submitted attempt {attempt_id}: "
            f"{submitted.score}/{submitted.max_score} passed={submitted.passed}"
        )
        return submitted

    def save_attempt(self, attempt: ExamAttempt):
        """
        Persist a transition of an in-progress attempt.

        Raises:
            AttemptFinalized: The stored attempt is no longer in progress
        """
        conn = self._get_connection()
        try:
            if self._update_attempt(conn, attempt) == 0:
                row = conn.execute(
                    "SELECT status FROM exam_attempts WHERE id = ?", (attempt.id,)
                ).fetchone()
                raise AttemptFinalized(attempt.id, row["status"] if row else "missing")
            conn.commit()
        finally:
            conn.close()

    def abandon_attempt(self, attempt_id: str) -> ExamAttempt:
        attempt = self.get_attempt(attempt_id)
        if attempt is None:
            raise KeyError(f"Attempt not found: {attempt_id}")
        abandoned = abandon_attempt(attempt)
        self.save_attempt(abandoned)
        return abandoned

    def expire_overdue_attempts(self, now: datetime) -> int:
        """Expire every overdue in-progress attempt; returns how many changed."""
        expired = 0
        conn = self._get_connection()
        try:
            for attempt in self._fetch_attempts(conn):
                if attempt.is_overdue(now):
                    conn.execute(
                        """UPDATE exam_attempts SET status = ?
                           WHERE id = ? AND status = 'in_progress'""",
                        (AttemptStatus.EXPIRED.value, attempt.id)
                    )
                    expired += 1
            conn.commit()
        finally:
            conn.close()
        if expired:
            logger.info(f"Expired {expired} overdue attempts for student {self.student_id}")
        return expired

    # -------------------------------------------------------------------------
    # Sequencer input
    # -------------------------------------------------------------------------

    def get_student_facts(self, catalog: CourseCatalog) -> StudentFacts:
        """Completion and exam outcomes for the sequencer."""
        return build_student_facts(
            catalog,
            self.get_completed_lesson_ids(),
            self.list_attempts(),
            student_id=self.student_id,
        )

    def reset_all_progress(self):
        """Reset all progress for the current student."""
        conn = self._get_connection()
        try:
            conn.execute(
                "DELETE FROM lesson_progress WHERE student_id = ?",
                (self.student_id,)
            )
            conn.execute(
                "DELETE FROM exam_attempts WHERE student_id = ?",
                (self.student_id,)
            )
            conn.commit()
        finally:
            conn.close()

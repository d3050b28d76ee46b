#!/usr/bin/env python3
"""
audit_course.py - Check a course bundle and report student progress.

Runs integrity checks over a course bundle and, given a progress database,
prints a student's sequence and exports exam analytics.

Usage:
  python scripts/audit_course.py courses/intro.yaml
  python scripts/audit_course.py intro --progress-db data/progress.db --student alice
  python scripts/audit_course.py intro --progress-db data/progress.db --export-dir data/analytics
"""

import argparse
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from coursetrack.classroom import ProgressTracker, Sequencer, check_bundle
from coursetrack.classroom.analytics import export_csv, question_stats, student_performance
from coursetrack.config import setup_logging
from coursetrack.utils import load_bundle

setup_logging()
logger = logging.getLogger(__name__)


def report_student(bundle, tracker: ProgressTracker, now: datetime) -> dict:
    """Log the student's sequence and return completion stats."""
    sequencer = Sequencer(bundle.catalog)
    facts = tracker.get_student_facts(bundle.catalog)

    for sequenced in sequencer.sequence(facts, now):
        decision = sequenced.decision
        if sequenced.satisfied:
            marker = "done"
        elif decision.unlocked:
            marker = "open"
        else:
            marker = f"locked ({decision.reason.value})"
        logger.info(f"  {sequenced.entry.kind.value:6} {sequenced.entry.id}: {marker}")

    stats = sequencer.completion(facts)
    next_entry = sequencer.next_item(facts, now)
    stats["next_item_id"] = next_entry.id if next_entry else None
    return stats


def export_analytics(bundle, tracker: ProgressTracker, export_dir: Path):
    """Write per-exam attempt, student and question tables."""
    for exam in bundle.catalog.exams:
        attempts = tracker.list_exam_attempts_all_students(exam.id)
        if not attempts:
            continue
        export_csv(attempts, export_dir / f"{exam.id}_attempts.csv")
        student_performance(attempts).to_csv(export_dir / f"{exam.id}_students.csv", index=False)
        question_stats(attempts).to_csv(export_dir / f"{exam.id}_questions.csv", index=False)
        logger.info(f"  Exported {len(attempts)} attempts for exam {exam.id}")


def main():
    parser = argparse.ArgumentParser(
        description="Audit a course bundle and report progress",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument(
        "bundle",
        help="Bundle file path, or bundle name in courses/"
    )
    parser.add_argument(
        "--progress-db",
        type=Path,
        default=None,
        help="Path to progress database"
    )
    parser.add_argument(
        "--student",
        default=None,
        help="Student ID to report on (requires --progress-db)"
    )
    parser.add_argument(
        "--export-dir",
        type=Path,
        default=None,
        help="Directory for exam analytics CSVs (requires --progress-db)"
    )
    parser.add_argument(
        "--stats-output",
        type=Path,
        default=None,
        help="Output path for student stats JSON"
    )

    args = parser.parse_args()

    logger.info("Loading course bundle...")
    bundle = load_bundle(args.bundle)
    catalog = bundle.catalog
    logger.info(
        f"  {len(catalog.sections)} sections, {len(catalog.lessons)} lessons, "
        f"{len(catalog.exams)} exams, {len(bundle.questions)} questions"
    )

    logger.info("Running integrity checks...")
    issues = check_bundle(bundle)
    if issues:
        logger.warning(f"Found {len(issues)} integrity issues:")
        for issue in issues[:10]:
            logger.warning(f"  - {issue}")
        if len(issues) > 10:
            logger.warning(f"  ... and {len(issues) - 10} more")
    else:
        logger.info("  All integrity checks passed!")

    if args.progress_db and args.student:
        logger.info(f"Progress for student {args.student}:")
        tracker = ProgressTracker(args.progress_db, student_id=args.student)
        stats = report_student(bundle, tracker, datetime.now(timezone.utc))
        logger.info(f"Completion: {stats['completion_percent']}% (next: {stats['next_item_id']})")
        if args.stats_output:
            with open(args.stats_output, "w", encoding="utf-8") as f:
                json.dump(stats, f, indent=2, ensure_ascii=False)
            logger.info(f"Saved stats to: {args.stats_output}")

    if args.progress_db and args.export_dir:
        logger.info("Exporting analytics...")
        export_analytics(bundle, ProgressTracker(args.progress_db), args.export_dir)

    return 1 if issues else 0


if __name__ == "__main__":
    sys.exit(main())

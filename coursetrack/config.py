"""
Runtime configuration for CourseTrack.

Values come from the environment (optionally a .env file in the working
directory) with defaults suitable for a single-user local setup.
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


DEFAULT_PROGRESS_DIR = Path(
    os.environ.get("COURSETRACK_PROGRESS_DIR", Path.home() / ".coursetrack")
)
DEFAULT_PROGRESS_DB = Path(
    os.environ.get("COURSETRACK_PROGRESS_DB", DEFAULT_PROGRESS_DIR / "progress.db")
)
LOG_LEVEL = os.environ.get("COURSETRACK_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def setup_logging(level: str | None = None):
    """Configure root logging the same way for every script."""
    logging.basicConfig(
        level=getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO),
        format=LOG_FORMAT,
    )

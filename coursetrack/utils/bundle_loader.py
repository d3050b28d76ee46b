"""
Course bundle loader for CourseTrack.

Loads a course catalog and its question bank from a YAML or JSON file in
the courses/ directory.
"""

import json
from pathlib import Path
from typing import Any

import yaml

from coursetrack.schemas import CourseBundle


# Default courses directory (relative to project root)
COURSES_DIR = Path(__file__).parent.parent.parent / "courses"

BUNDLE_SUFFIXES = (".yaml", ".yml", ".json")


def read_bundle_file(file_path: Path) -> dict[str, Any]:
    """
    Parse a bundle file without validating it.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the suffix is not a supported format
        yaml.YAMLError / json.JSONDecodeError: If parsing fails
    """
    if not file_path.exists():
        raise FileNotFoundError(f"Course bundle not found: {file_path}")

    with open(file_path, "r", encoding="utf-8") as f:
        if file_path.suffix == ".json":
            return json.load(f)
        if file_path.suffix in (".yaml", ".yml"):
            return yaml.safe_load(f)
    raise ValueError(f"Unsupported course bundle format: {file_path.suffix}")


def load_bundle(name_or_path: str | Path, courses_dir: Path | None = None) -> CourseBundle:
    """
    Load and validate a course bundle.

    Args:
        name_or_path: Path to a bundle file, or a bundle name looked up in
            courses_dir with each supported suffix
        courses_dir: Optional custom courses directory

    Returns:
        Validated CourseBundle

    Raises:
        FileNotFoundError: If no matching file exists
        pydantic.ValidationError: If the content does not match the schema
    """
    path = Path(name_or_path)
    if path.suffix not in BUNDLE_SUFFIXES:
        dir_path = courses_dir or COURSES_DIR
        candidates = [dir_path / f"{name_or_path}{suffix}" for suffix in BUNDLE_SUFFIXES]
        path = next((c for c in candidates if c.exists()), candidates[0])

    return CourseBundle.model_validate(read_bundle_file(path))


def get_available_bundles(courses_dir: Path | None = None) -> list[str]:
    """
    List all bundle names in the courses directory.

    Returns:
        Sorted bundle names (without extension)
    """
    dir_path = courses_dir or COURSES_DIR
    if not dir_path.exists():
        return []
    return sorted({p.stem for p in dir_path.iterdir() if p.suffix in BUNDLE_SUFFIXES})

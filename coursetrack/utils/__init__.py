"""CourseTrack utilities."""

from .bundle_loader import load_bundle, read_bundle_file, get_available_bundles

__all__ = ["load_bundle", "read_bundle_file", "get_available_bundles"]

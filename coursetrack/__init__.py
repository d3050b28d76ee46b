"""CourseTrack - learning progression and assessment engine for online courses."""

__version__ = "0.1.0"

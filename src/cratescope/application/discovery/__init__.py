"""Discovery of the source files to analyze."""

from cratescope.application.discovery.collector import CollectionResult, collect_files

__all__ = [
    "CollectionResult",
    "collect_files",
]

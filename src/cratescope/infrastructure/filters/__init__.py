"""Path filters for file collection."""

from cratescope.infrastructure.filters.path import matches, matches_any

__all__ = [
    "matches",
    "matches_any",
]

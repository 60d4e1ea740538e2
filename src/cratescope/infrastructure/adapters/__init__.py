"""Parser adapters."""

from cratescope.infrastructure.adapters.rust_parser import get_parser, parse_source, read_source

__all__ = [
    "get_parser",
    "parse_source",
    "read_source",
]

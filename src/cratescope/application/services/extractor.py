"""Extractor service: parse one Rust source file into a FileExtraction.

Orchestrates the tree-sitter adapter and the declaration analyzer.
FAIL-FIRST: ParseError on unreadable files and syntax errors; the pipeline
decides how to recover.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from cratescope.infrastructure.adapters.rust_parser import parse_source, read_source
from cratescope.infrastructure.analyzers.base import compute_module_path
from cratescope.infrastructure.analyzers.declaration_analyzer import DeclarationAnalyzer

if TYPE_CHECKING:
    from pathlib import Path

    from cratescope.domain.extraction import FileExtraction

logger = logging.getLogger(__name__)

_ANALYZER = DeclarationAnalyzer()


def extract_file(path: Path, root: Path, crate_name: str) -> FileExtraction:
    """Read, parse and analyze a single source file.

    Args:
        path: Absolute path of the .rs file
        root: Collection root, for the relative path and module path
        crate_name: First segment of every module path

    Returns:
        FileExtraction of the file

    Raises:
        ParseError: File unreadable, not UTF-8, or contains syntax errors
    """
    relative = path.relative_to(root).as_posix()
    module_path = compute_module_path(relative, crate_name)
    source = read_source(path, relative)
    return extract_source(source, relative, module_path)


def extract_source(source: bytes | str, rel_path: str, module_path: str) -> FileExtraction:
    """Analyze Rust source text. Pure: no file system access.

    Args:
        source: Source text (str is encoded as UTF-8)
        rel_path: Path recorded on items, tests and call sites
        module_path: Qualified module path of the file

    Returns:
        FileExtraction with items, tests and call sites in source order

    Raises:
        ParseError: Source contains syntax errors

    Example:
        >>> extraction = extract_source("fn run() {}", "lib.rs", "crate")
        >>> [item.id for item in extraction.items]
        ['crate::run']
    """
    data = source.encode("utf-8") if isinstance(source, str) else source
    tree = parse_source(data, rel_path)
    extraction = _ANALYZER.analyze(tree.root_node, rel_path, module_path)
    logger.debug(
        "%s: %d items, %d tests, %d call sites",
        rel_path,
        len(extraction.items),
        len(extraction.tests),
        len(extraction.call_sites),
    )
    return extraction

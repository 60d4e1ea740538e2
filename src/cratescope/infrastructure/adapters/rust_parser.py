"""tree-sitter adapter for Rust sources.

One parser per worker thread: tree_sitter.Parser is not safe to share
between threads, the compiled language is.

FAIL-FIRST: raises ParseError on unreadable files, non-UTF-8 content and
trees containing syntax errors.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

import tree_sitter
import tree_sitter_rust

from cratescope.domain.exceptions import ParseError

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

RUST_LANGUAGE = tree_sitter.Language(tree_sitter_rust.language())

_LOCAL = threading.local()


def get_parser() -> tree_sitter.Parser:
    """Return the calling thread's Rust parser, creating it on first use."""
    parser: tree_sitter.Parser | None = getattr(_LOCAL, "parser", None)
    if parser is None:
        parser = tree_sitter.Parser(RUST_LANGUAGE)
        _LOCAL.parser = parser
        logger.debug("created tree-sitter parser for thread %s", threading.get_ident())
    return parser


def read_source(path: Path, display_path: str) -> bytes:
    """Read a source file as UTF-8 bytes.

    Args:
        path: File to read
        display_path: Path used in error messages (relative to the root)

    Returns:
        Raw file content, guaranteed to decode as UTF-8

    Raises:
        ParseError: If file cannot be read or is not UTF-8
    """
    try:
        data = path.read_bytes()
    except FileNotFoundError as e:
        raise ParseError(path=display_path, reason="file not found") from e
    except PermissionError as e:
        raise ParseError(path=display_path, reason="permission denied") from e
    except OSError as e:
        raise ParseError(path=display_path, reason=f"read error: {e.strerror or e}") from e

    try:
        data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ParseError(path=display_path, reason=f"encoding error: {e.reason}") from e

    return data


def parse_source(source: bytes, display_path: str) -> tree_sitter.Tree:
    """Parse Rust source into a concrete syntax tree.

    Raises:
        ParseError: If the tree contains ERROR or MISSING nodes
    """
    tree = get_parser().parse(source)
    root = tree.root_node
    if root.has_error:
        line = _first_error_line(root)
        raise ParseError(path=display_path, reason=f"syntax error at line {line}")
    return tree


def _first_error_line(root: tree_sitter.Node) -> int:
    """1-based line of the first ERROR or MISSING node, depth-first."""
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            return node.start_point[0] + 1
        if node.has_error:
            stack.extend(reversed(node.children))
    return root.start_point[0] + 1

"""Structure writer: analysis result → sharded JSON files.

Layout under ``<output_dir>/structure/``::

    index.json
    <relative source path>.json         (one per source file)
    call_graph/edges.json
    call_graph/unresolved.json

Field names and nesting are read by the downstream viewer; keep them stable.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from cratescope.domain.exceptions import OutputRootError, OutputWriteError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from cratescope.domain.call_graph import CallContext, CallEdge, CallGraph, UnresolvedEdge
    from cratescope.domain.extraction import FileExtraction
    from cratescope.domain.items import Item, TestCase

logger = logging.getLogger(__name__)

FORMAT_VERSION = "1"
INDEX_FILE = "index.json"
CALL_GRAPH_DIR = "call_graph"
EDGES_FILE = "edges.json"
UNRESOLVED_FILE = "unresolved.json"
FILE_SUFFIX = ".json"


@dataclass(frozen=True, slots=True)
class WriteSummary:
    """What the writer produced.

    Attributes:
        root: Structure directory
        files_written: Number of JSON files written
    """

    root: Path
    files_written: int


class StructureWriter:
    """Writes per-file structure, call graph and index as JSON.

    Output is deterministic: keys in fixed order, lists in the order they
    are given (the pipeline sorts them), trailing newline, UTF-8.
    """

    def __init__(self, root: Path, *, indent: int | None = 2) -> None:
        """Initialize writer.

        Args:
            root: Structure directory (``<output_dir>/structure``)
            indent: JSON indentation. None for compact output.
        """
        self._root = root
        self._indent = indent

    def write(
        self,
        extractions: Sequence[FileExtraction],
        graph: CallGraph,
        *,
        generated_at: str,
        target_dir: str,
    ) -> WriteSummary:
        """Write every artifact of one run.

        Per-file failures do not stop the run: every other artifact is
        still written, then all failures are raised together.

        Args:
            extractions: Extractions sorted by path, tested_by already set
            graph: Sorted call graph
            generated_at: ISO-8601 timestamp recorded in the output
            target_dir: Analyzed root as shown in index.json

        Returns:
            WriteSummary

        Raises:
            OutputRootError: Structure directory cannot be created
            OutputWriteError: One or more files could not be written
        """
        try:
            self._root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise OutputRootError(str(self._root), e.strerror or str(e)) from e

        failures: list[tuple[str, str]] = []
        written = 0

        for extraction in extractions:
            if self._write(file_output_path(extraction.path), _file_to_dict(extraction), failures):
                written += 1

        edges_path = f"{CALL_GRAPH_DIR}/{EDGES_FILE}"
        if self._write(edges_path, _edges_to_dict(graph, generated_at), failures):
            written += 1

        unresolved_path = f"{CALL_GRAPH_DIR}/{UNRESOLVED_FILE}"
        if self._write(unresolved_path, _unresolved_to_dict(graph, generated_at), failures):
            written += 1

        index = _index_to_dict(extractions, graph, generated_at, target_dir)
        if self._write(INDEX_FILE, index, failures):
            written += 1

        if failures:
            raise OutputWriteError(failures, files_written=written)

        logger.info("wrote %d files under %s", written, self._root)
        return WriteSummary(root=self._root, files_written=written)

    def _write(self, relative: str, data: dict[str, object], failures: list[tuple[str, str]]) -> bool:
        """Write one JSON file, recording the failure instead of raising."""
        target = self._root / relative
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            text = json.dumps(data, indent=self._indent, ensure_ascii=False)
            target.write_text(text + "\n", encoding="utf-8")
        except OSError as e:
            reason = e.strerror or str(e)
            logger.warning("cannot write %s: %s", relative, reason)
            failures.append((relative, reason))
            return False
        logger.debug("wrote %s", relative)
        return True


def file_output_path(source_path: str) -> str:
    """Output path of a source file, relative to the structure directory.

    a/b/mod.rs → a/b/mod.rs.json
    """
    return source_path + FILE_SUFFIX


# =============================================================================
# Serialization
# =============================================================================


def _context_to_dict(context: CallContext) -> dict[str, object]:
    """Convert CallContext to dict, omitting absent condition/pattern."""
    data: dict[str, object] = {"type": context.type.value}
    if context.condition is not None:
        data["condition"] = context.condition
    if context.arm_pattern is not None:
        data["arm_pattern"] = context.arm_pattern
    return data


def _item_to_dict(item: Item) -> dict[str, object]:
    """Convert Item to dict."""
    return {
        "id": item.id,
        "kind": item.kind.value,
        "name": item.name,
        "visibility": item.visibility.value,
        "file": item.file,
        "line_start": item.line_start,
        "line_end": item.line_end,
        "signature": item.signature,
        "owner": item.owner,
        "tested_by": list(item.tested_by),
    }


def _test_to_dict(test: TestCase) -> dict[str, object]:
    """Convert TestCase to dict."""
    return {
        "id": test.id,
        "enclosing_function_id": test.enclosing_function_id,
        "name": test.name,
        "file": test.file,
        "line": test.line,
        "module": test.module,
    }


def _edge_to_dict(edge: CallEdge) -> dict[str, object]:
    """Convert CallEdge to dict."""
    return {
        "from": edge.from_id,
        "to": edge.to_id,
        "file": edge.file,
        "line": edge.line,
        "context": _context_to_dict(edge.context),
    }


def _unresolved_edge_to_dict(edge: UnresolvedEdge) -> dict[str, object]:
    """Convert UnresolvedEdge to dict."""
    return {
        "from": edge.from_id,
        "file": edge.file,
        "line": edge.line,
        "receiver_type": edge.receiver_type,
        "receiver_text": edge.receiver_text,
        "method": edge.method,
        "reason": edge.reason.value,
    }


def _file_to_dict(extraction: FileExtraction) -> dict[str, object]:
    return {
        "path": extraction.path,
        "module": extraction.module_path,
        "items": [_item_to_dict(item) for item in extraction.items],
        "tests": [_test_to_dict(test) for test in extraction.tests],
    }


def _edges_to_dict(graph: CallGraph, generated_at: str) -> dict[str, object]:
    return {
        "generated_at": generated_at,
        "total_edges": len(graph.edges),
        "edges": [_edge_to_dict(edge) for edge in graph.edges],
    }


def _unresolved_to_dict(graph: CallGraph, generated_at: str) -> dict[str, object]:
    return {
        "generated_at": generated_at,
        "total_unresolved": len(graph.unresolved),
        "by_reason": dict(graph.unresolved_by_reason()),
        "unresolved": [_unresolved_edge_to_dict(edge) for edge in graph.unresolved],
    }


def _index_to_dict(
    extractions: Sequence[FileExtraction],
    graph: CallGraph,
    generated_at: str,
    target_dir: str,
) -> dict[str, object]:
    return {
        "version": FORMAT_VERSION,
        "generated_at": generated_at,
        "target_dir": target_dir,
        "stats": {
            "total_files": len(extractions),
            "total_items": sum(len(e.items) for e in extractions),
            "total_tests": sum(len(e.tests) for e in extractions),
            "total_edges": len(graph.edges),
            "total_unresolved": len(graph.unresolved),
        },
        "files": [
            {
                "path": e.path,
                "items": len(e.items),
                "tests": len(e.tests),
                "output": file_output_path(e.path),
            }
            for e in extractions
        ],
    }

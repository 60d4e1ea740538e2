"""Static call graph builder from per-file extractions."""

from __future__ import annotations

import logging
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING

from cratescope.domain.call_graph import CallGraph
from cratescope.infrastructure.analyzers.call_resolver import resolve_file

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from cratescope.application.static_analysis.item_index import ItemIndex
    from cratescope.application.static_analysis.registry import TypeRegistry
    from cratescope.domain.call_graph import CallEdge, UnresolvedEdge
    from cratescope.domain.extraction import FileExtraction

logger = logging.getLogger(__name__)


class CallGraphBuilder:
    """Builds CallGraph from extractions, an item index and a type registry.

    Files are resolved independently against the frozen index and registry,
    so resolution runs on a thread pool. The result is sorted canonically,
    independent of worker count.

    Stateless - no state between build() calls.
    """

    def __init__(self, workers: int = 1) -> None:
        """Initialize builder.

        Args:
            workers: Resolver threads, 1 = sequential

        Raises:
            ValueError: If workers < 1 (FAIL-FIRST)
        """
        if workers < 1:
            raise ValueError(f"workers must be >= 1, got {workers}")
        self._workers = workers

    def build(
        self,
        extractions: Sequence[FileExtraction],
        index: ItemIndex,
        registry: TypeRegistry,
    ) -> CallGraph:
        """Resolve every call site of every extraction.

        Args:
            extractions: All extractions of the run
            index: Frozen item index
            registry: Frozen type registry

        Returns:
            CallGraph with edges sorted by (from, line, to) and unresolved
            edges sorted by (from, line, method)
        """

        def resolve(extraction: FileExtraction) -> tuple[
            tuple[CallEdge, ...], tuple[UnresolvedEdge, ...]
        ]:
            result = resolve_file(extraction, index, registry)
            logger.debug(
                "%s: %d resolved, %d unresolved", extraction.path, len(result[0]), len(result[1])
            )
            return result

        if self._workers == 1:
            results = [resolve(extraction) for extraction in extractions]
        else:
            with ThreadPoolExecutor(max_workers=self._workers) as executor:
                results = list(executor.map(resolve, extractions))

        edges: list[CallEdge] = []
        unresolved: list[UnresolvedEdge] = []
        for file_edges, file_unresolved in results:
            edges.extend(file_edges)
            unresolved.extend(file_unresolved)

        edges.sort(key=lambda e: e.sort_key)
        unresolved.sort(key=lambda e: e.sort_key)

        graph = CallGraph(edges=tuple(edges), unresolved=tuple(unresolved))
        logger.info(
            "resolved %d of %d call sites (%d unresolved)",
            len(graph.edges),
            graph.call_site_count,
            len(graph.unresolved),
        )
        return graph


def build_call_graph(
    extractions: Sequence[FileExtraction],
    index: ItemIndex,
    registry: TypeRegistry,
    workers: int = 1,
) -> CallGraph:
    """Resolve all call sites into a CallGraph. See CallGraphBuilder."""
    return CallGraphBuilder(workers).build(extractions, index, registry)


def compute_tested_by(
    graph: CallGraph,
    extractions: Iterable[FileExtraction],
) -> Mapping[str, tuple[str, ...]]:
    """Map each item id to the tests whose test function calls it.

    Only direct, resolved calls count.

    Returns:
        item id → sorted test ids
    """
    test_of: dict[str, str] = {}
    for extraction in extractions:
        for test in extraction.tests:
            test_of[test.enclosing_function_id] = test.id

    tested_by: dict[str, set[str]] = defaultdict(set)
    for edge in graph.edges:
        test_id = test_of.get(edge.from_id)
        if test_id is not None:
            tested_by[edge.to_id].add(test_id)

    return {item_id: tuple(sorted(ids)) for item_id, ids in tested_by.items()}

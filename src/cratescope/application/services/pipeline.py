"""Pipeline service: one full analysis run.

Collector → parallel extraction → barrier → item index and type registry →
parallel resolution → barrier → structure writer.

Only configuration and output-root failures abort the run. Everything else
is recorded in the DiagnosticsReport.
"""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from cratescope.application.discovery.collector import collect_files
from cratescope.application.reporters.structure_writer import StructureWriter
from cratescope.application.services.extractor import extract_file
from cratescope.application.static_analysis.graph_builder import (
    build_call_graph,
    compute_tested_by,
)
from cratescope.application.static_analysis.item_index import ItemIndex
from cratescope.application.static_analysis.registry import build_type_registry
from cratescope.domain.diagnostics import Diagnostic, DiagnosticsReport, Stage
from cratescope.domain.exceptions import OutputWriteError, ParseError
from cratescope.domain.extraction import FileExtraction
from cratescope.infrastructure.analyzers.base import compute_module_path

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from cratescope.application.discovery.collector import CollectionResult
    from cratescope.domain.call_graph import CallGraph
    from cratescope.domain.configuration import AnalysisConfig

logger = logging.getLogger(__name__)

SOURCE_DATE_EPOCH = "SOURCE_DATE_EPOCH"


@dataclass(frozen=True, slots=True)
class AnalysisResult:
    """Everything one run produced.

    Attributes:
        config: Configuration of the run
        generated_at: Timestamp recorded in the output
        extractions: Per-file extractions sorted by path, tested_by filled in
        graph: Sorted call graph
        diagnostics: Recoverable problems and unresolved counts
        files_written: Number of JSON files written, including partial output
        output_error: Aggregated write failure, None when every file was written
    """

    config: AnalysisConfig
    generated_at: str
    extractions: tuple[FileExtraction, ...]
    graph: CallGraph
    diagnostics: DiagnosticsReport
    files_written: int = 0
    output_error: OutputWriteError | None = None

    @property
    def ok(self) -> bool:
        """True when every output file was written."""
        return self.output_error is None

    @property
    def item_count(self) -> int:
        """Number of items across all files."""
        return sum(len(e.items) for e in self.extractions)

    @property
    def test_count(self) -> int:
        """Number of tests across all files."""
        return sum(len(e.tests) for e in self.extractions)


def run_analysis(config: AnalysisConfig) -> AnalysisResult:
    """Run the full pipeline for one configuration.

    Args:
        config: Validated configuration

    Returns:
        AnalysisResult; output_error is set when some files could not be written

    Raises:
        ConfigError: target_dir is not a directory
        OutputRootError: Output root cannot be created
    """
    generated_at = resolve_generated_at(config.generated_at)
    diagnostics: list[Diagnostic] = []

    collection = collect_files(config.target_dir, config.extensions, config.exclude)
    diagnostics.extend(collection.diagnostics)

    extractions = extract_all(collection, config.crate_name, config.workers, diagnostics)
    extractions = deduplicate_ids(extractions, diagnostics)

    index = ItemIndex.from_extractions(extractions)
    registry = build_type_registry(extractions, index)
    graph = build_call_graph(extractions, index, registry, config.workers)
    extractions = apply_tested_by(extractions, compute_tested_by(graph, extractions))

    writer = StructureWriter(config.structure_dir)
    files_written = 0
    output_error: OutputWriteError | None = None
    try:
        files_written = writer.write(
            extractions,
            graph,
            generated_at=generated_at,
            target_dir=config.target_dir.as_posix(),
        ).files_written
    except OutputWriteError as e:
        output_error = e
        files_written = e.files_written
        for path, reason in e.failures:
            diagnostics.append(Diagnostic(Stage.OUTPUT, path, reason))

    report = DiagnosticsReport(
        diagnostics=tuple(diagnostics),
        unresolved_by_reason=graph.unresolved_by_reason(),
    )
    logger.info(
        "analysis finished: %d files, %d edges, %d unresolved, %d diagnostics",
        len(extractions),
        len(graph.edges),
        len(graph.unresolved),
        len(report.diagnostics),
    )
    return AnalysisResult(
        config=config,
        generated_at=generated_at,
        extractions=extractions,
        graph=graph,
        diagnostics=report,
        files_written=files_written,
        output_error=output_error,
    )


def resolve_generated_at(configured: str | None) -> str:
    """Timestamp for the output: configured, else SOURCE_DATE_EPOCH, else now (UTC)."""
    if configured is not None:
        return configured

    epoch = os.environ.get(SOURCE_DATE_EPOCH)
    if epoch:
        try:
            moment = datetime.fromtimestamp(int(epoch), tz=UTC)
        except (ValueError, OverflowError, OSError):
            logger.warning("ignoring invalid %s=%r", SOURCE_DATE_EPOCH, epoch)
        else:
            return _iso(moment)

    return _iso(datetime.now(tz=UTC))


def _iso(moment: datetime) -> str:
    return moment.replace(microsecond=0).isoformat().replace("+00:00", "Z")


def extract_all(
    collection: CollectionResult,
    crate_name: str,
    workers: int,
    diagnostics: list[Diagnostic],
) -> tuple[FileExtraction, ...]:
    """Extract every collected file; unparsable files become empty extractions.

    executor.map keeps the collector's order, so results stay sorted by path.
    """

    def extract(relative: str) -> FileExtraction | ParseError:
        try:
            return extract_file(collection.absolute(relative), collection.root, crate_name)
        except ParseError as e:
            return e

    if workers == 1:
        outcomes = [extract(relative) for relative in collection.files]
    else:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            outcomes = list(executor.map(extract, collection.files))

    extractions: list[FileExtraction] = []
    for relative, outcome in zip(collection.files, outcomes, strict=True):
        if isinstance(outcome, ParseError):
            logger.warning("skipping %s: %s", relative, outcome.reason)
            diagnostics.append(Diagnostic(Stage.EXTRACTION, relative, outcome.reason))
            module_path = compute_module_path(relative, crate_name)
            extractions.append(FileExtraction.failed(relative, module_path, outcome.reason))
        else:
            extractions.append(outcome)

    logger.info(
        "extracted %d files (%d failed)",
        len(extractions),
        sum(1 for e in extractions if not e.ok),
    )
    return tuple(extractions)


def deduplicate_ids(
    extractions: Sequence[FileExtraction],
    diagnostics: list[Diagnostic],
) -> tuple[FileExtraction, ...]:
    """Make item ids unique across files.

    Two files can map to the same module path (lib.rs and main.rs at the
    root). The first file in path order keeps its ids; later files get
    ``#2``, ``#3``... suffixes on every colliding id.
    """
    taken = {item.id for extraction in extractions for item in extraction.items}
    claimed: set[str] = set()
    result: list[FileExtraction] = []

    for extraction in extractions:
        renames: dict[str, str] = {}
        for item in extraction.items:
            if item.id not in claimed:
                claimed.add(item.id)
                continue
            renamed = _next_free(item.id, taken)
            taken.add(renamed)
            claimed.add(renamed)
            renames[item.id] = renamed

        if renames:
            logger.warning(
                "%s: %d item ids collide with earlier files, renamed", extraction.path, len(renames)
            )
            diagnostics.append(
                Diagnostic(
                    Stage.IDENTITY,
                    extraction.path,
                    f"{len(renames)} duplicate item id(s) renamed: "
                    + ", ".join(f"{old} -> {new}" for old, new in sorted(renames.items())),
                )
            )
            extraction = extraction.rename_ids(renames)
        result.append(extraction)

    return tuple(result)


def _next_free(item_id: str, taken: set[str]) -> str:
    counter = 2
    while f"{item_id}#{counter}" in taken:
        counter += 1
    return f"{item_id}#{counter}"


def apply_tested_by(
    extractions: Sequence[FileExtraction],
    tested_by: Mapping[str, tuple[str, ...]],
) -> tuple[FileExtraction, ...]:
    """Copy of extractions with Item.tested_by filled in."""
    if not tested_by:
        return tuple(extractions)
    return tuple(
        replace(
            extraction,
            items=tuple(
                replace(item, tested_by=tested_by[item.id]) if item.id in tested_by else item
                for item in extraction.items
            ),
        )
        for extraction in extractions
    )


"""Application layer for Rust structure analysis.

- discovery: Source file collection
- static_analysis: Item index, type registry, call graph
- reporters: Output formatting (structure JSON, console summary)
- services: Extraction and the full pipeline
"""

from cratescope.application.discovery import CollectionResult, collect_files
from cratescope.application.reporters import ConsoleReporter, StructureWriter
from cratescope.application.services import AnalysisResult, extract_file, run_analysis
from cratescope.application.static_analysis import (
    CallGraphBuilder,
    ItemIndex,
    TypeRegistry,
    build_call_graph,
    build_type_registry,
)

__all__ = [
    # Discovery
    "CollectionResult",
    "collect_files",
    # Static analysis
    "CallGraphBuilder",
    "ItemIndex",
    "TypeRegistry",
    "build_call_graph",
    "build_type_registry",
    # Reporters
    "ConsoleReporter",
    "StructureWriter",
    # Services
    "AnalysisResult",
    "extract_file",
    "run_analysis",
]

"""Syntax tree analyzers.

Extraction (per file, no shared state):
    DeclarationAnalyzer, BodyAnalyzer, UseAnalyzer

Resolution (after the extraction barrier):
    resolve_file
"""

from cratescope.infrastructure.analyzers.base import compute_module_path
from cratescope.infrastructure.analyzers.body_analyzer import BodyAnalyzer, FunctionScope
from cratescope.infrastructure.analyzers.call_resolver import resolve_file
from cratescope.infrastructure.analyzers.context import AnalysisContext
from cratescope.infrastructure.analyzers.declaration_analyzer import DeclarationAnalyzer
from cratescope.infrastructure.analyzers.use_analyzer import UseAnalyzer

__all__ = [
    "AnalysisContext",
    "BodyAnalyzer",
    "DeclarationAnalyzer",
    "FunctionScope",
    "UseAnalyzer",
    "compute_module_path",
    "resolve_file",
]

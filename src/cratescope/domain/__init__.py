"""cratescope domain layer.

Pure domain logic with no external dependencies.
Only imports: typing, dataclasses, enum, pathlib, datetime, collections.abc
"""

from cratescope.domain.call_graph import (
    CallContext,
    CallContextType,
    CallEdge,
    CallGraph,
    CallSite,
    ChainRoot,
    ChainStep,
    ReceiverChain,
    ReceiverHint,
    StepKind,
    UnresolvedEdge,
    UnresolvedReason,
)
from cratescope.domain.configuration import DEFAULT_EXCLUDES, AnalysisConfig
from cratescope.domain.diagnostics import Diagnostic, DiagnosticsReport, Stage
from cratescope.domain.exceptions import (
    ConfigError,
    CrateScopeError,
    OutputRootError,
    OutputWriteError,
    ParseError,
    RegistryFrozenError,
)
from cratescope.domain.extraction import (
    FieldDecl,
    FileExtraction,
    ImplDecl,
    ReturnDecl,
    TypeDecl,
    UseDecl,
)
from cratescope.domain.items import Item, ItemKind, TestCase, Visibility

__all__ = [
    # Configuration
    "AnalysisConfig",
    "DEFAULT_EXCLUDES",
    # Items
    "Item",
    "ItemKind",
    "TestCase",
    "Visibility",
    # Extraction
    "FieldDecl",
    "FileExtraction",
    "ImplDecl",
    "ReturnDecl",
    "TypeDecl",
    "UseDecl",
    # Call graph
    "CallContext",
    "CallContextType",
    "CallEdge",
    "CallGraph",
    "CallSite",
    "ChainRoot",
    "ChainStep",
    "ReceiverChain",
    "ReceiverHint",
    "StepKind",
    "UnresolvedEdge",
    "UnresolvedReason",
    # Diagnostics
    "Diagnostic",
    "DiagnosticsReport",
    "Stage",
    # Exceptions
    "ConfigError",
    "CrateScopeError",
    "OutputRootError",
    "OutputWriteError",
    "ParseError",
    "RegistryFrozenError",
]

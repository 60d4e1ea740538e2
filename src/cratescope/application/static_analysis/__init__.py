"""Static analysis components for call resolution.

Exports:
    - ItemIndex: Declared item set with name resolution
    - TypeRegistry: Frozen (type, member) → type lookup
    - CallGraphBuilder: Resolves call sites into a CallGraph
"""

from cratescope.application.static_analysis.graph_builder import (
    CallGraphBuilder,
    build_call_graph,
    compute_tested_by,
)
from cratescope.application.static_analysis.item_index import ItemIndex
from cratescope.application.static_analysis.registry import (
    TypeRegistry,
    TypeRegistryBuilder,
    build_type_registry,
)

__all__ = [
    "CallGraphBuilder",
    "ItemIndex",
    "TypeRegistry",
    "TypeRegistryBuilder",
    "build_call_graph",
    "build_type_registry",
    "compute_tested_by",
]

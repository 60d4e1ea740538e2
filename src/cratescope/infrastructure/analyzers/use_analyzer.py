"""Use declaration analyzer."""

from __future__ import annotations

from typing import TYPE_CHECKING

from cratescope.domain.extraction import UseDecl
from cratescope.domain.items import absolutize_path, join_id, last_segment
from cratescope.infrastructure.analyzers.base import node_text, strip_generics

if TYPE_CHECKING:
    from tree_sitter import Node

_GLOB = "*"
_DISCARD = "_"


class UseAnalyzer:
    """Flattens ``use`` trees into one UseDecl per bound name.

    Handles:
    - use a::b::C;              → C → a::b::C
    - use a::b::C as D;         → D → a::b::C
    - use a::{b, c::D, self};   → b → a::b, D → a::c::D, a → a
    - use a::*;                 → * → a
    - use super::x, self::y;    → leading segments resolved against the module

    Stateless analyzer - no state between analyze() calls.
    """

    def analyze(self, node: Node, module_path: str) -> tuple[UseDecl, ...]:
        """Extract bound names of one use_declaration.

        Args:
            node: use_declaration node
            module_path: Module the declaration appears in

        Returns:
            UseDecl per bound name, in source order ("_" aliases dropped)
        """
        if node.type != "use_declaration":
            raise ValueError(f"expected use_declaration, got {node.type}")

        argument = node.child_by_field_name("argument")
        if argument is None:
            return ()

        decls: list[UseDecl] = []
        for alias, target in self._flatten(argument, ""):
            if alias == _DISCARD:
                continue
            decls.append(UseDecl(module_path, alias, absolutize_path(target, module_path)))
        return tuple(decls)

    def _flatten(self, node: Node, prefix: str) -> list[tuple[str, str]]:
        match node.type:
            case "identifier" | "crate" | "super" | "self" | "metavariable":
                name = node_text(node)
                if name == "self" and prefix:
                    return [(last_segment(prefix), prefix)]
                return [(name, join_id(prefix, name))]

            case "scoped_identifier":
                path = join_id(prefix, strip_generics(node_text(node)))
                name = node_text(node.child_by_field_name("name"))
                if name == "self":
                    path = path.removesuffix("::self")
                    return [(last_segment(path), path)]
                return [(name, path)]

            case "use_as_clause":
                path = join_id(prefix, strip_generics(node_text(node.child_by_field_name("path"))))
                alias = node_text(node.child_by_field_name("alias"))
                return [(alias, path.removesuffix("::self"))]

            case "scoped_use_list":
                path_node = node.child_by_field_name("path")
                inner_prefix = join_id(prefix, strip_generics(node_text(path_node)))
                list_node = node.child_by_field_name("list")
                if list_node is None:
                    return []
                return self._flatten(list_node, inner_prefix)

            case "use_list":
                pairs: list[tuple[str, str]] = []
                for child in node.named_children:
                    pairs.extend(self._flatten(child, prefix))
                return pairs

            case "use_wildcard":
                path = node_text(node).replace(" ", "").removesuffix(_GLOB).removesuffix("::")
                return [(_GLOB, join_id(prefix, path))]

            case _:
                return []

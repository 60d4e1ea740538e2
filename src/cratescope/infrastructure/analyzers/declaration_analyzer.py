"""Declaration analyzer: items, tests and type facts of one Rust file.

Walks module-level declarations (recursing into inline ``mod`` bodies,
``impl`` blocks and ``trait`` bodies) and hands function bodies to the
BodyAnalyzer.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import TYPE_CHECKING

from cratescope.domain.extraction import (
    FieldDecl,
    FileExtraction,
    ImplDecl,
    ReturnDecl,
    TypeDecl,
)
from cratescope.domain.items import Item, ItemKind, TestCase, Visibility, join_id, last_segment
from cratescope.infrastructure.analyzers.base import (
    bound_names,
    declaration_head,
    end_line_of,
    generic_bounds,
    is_test_attribute,
    line_of,
    node_text,
    parse_visibility,
    pattern_bindings,
    strip_generics,
    type_name,
)
from cratescope.infrastructure.analyzers.body_analyzer import (
    BodyAnalyzer,
    FunctionScope,
    chain_for_type,
)
from cratescope.infrastructure.analyzers.use_analyzer import UseAnalyzer

if TYPE_CHECKING:
    from collections.abc import Mapping

    from tree_sitter import Node

    from cratescope.domain.call_graph import CallSite, ReceiverChain
    from cratescope.domain.extraction import UseDecl

_IMPL_SEGMENT = "impl"
_SKIPPED_SIBLINGS = frozenset({"inner_attribute_item", "line_comment", "block_comment"})


class DeclarationAnalyzer:
    """Extracts a FileExtraction from a parsed Rust file.

    Stateless analyzer - no state between analyze() calls.
    """

    def __init__(self) -> None:
        self._use_analyzer = UseAnalyzer()
        self._body_analyzer = BodyAnalyzer()

    def analyze(self, root: Node, path: str, module_path: str) -> FileExtraction:
        """Analyze one source file.

        Args:
            root: source_file node
            path: Source path relative to the collection root
            module_path: Qualified module path of the file

        Returns:
            FileExtraction with items in source order
        """
        if not module_path:
            raise ValueError("module_path must be non-empty string")

        collector = _FileCollector(path, self._use_analyzer, self._body_analyzer)
        collector.visit_module(root, module_path)
        return collector.result(module_path)


class _FileCollector:
    """Accumulates declarations of one file."""

    def __init__(self, path: str, use_analyzer: UseAnalyzer, body_analyzer: BodyAnalyzer) -> None:
        self.path = path
        self.use_analyzer = use_analyzer
        self.body_analyzer = body_analyzer

        self.items: list[Item] = []
        self.tests: list[TestCase] = []
        self.call_sites: list[CallSite] = []
        self.types: list[TypeDecl] = []
        self.fields: list[FieldDecl] = []
        self.returns: list[ReturnDecl] = []
        self.impls: list[ImplDecl] = []
        self.uses: list[UseDecl] = []
        self.modules: list[str] = []
        self.trait_methods: list[tuple[str, str, str]] = []
        self._id_counts: dict[str, int] = {}

    def result(self, module_path: str) -> FileExtraction:
        return FileExtraction(
            path=self.path,
            module_path=module_path,
            items=tuple(self.items),
            tests=tuple(self.tests),
            call_sites=tuple(self.call_sites),
            types=tuple(self.types),
            fields=tuple(self.fields),
            returns=tuple(self.returns),
            impls=tuple(self.impls),
            uses=tuple(self.uses),
            modules=tuple(dict.fromkeys(self.modules)),
            trait_methods=tuple(self.trait_methods),
        )

    # -------------------------------------------------------------------------
    # Modules
    # -------------------------------------------------------------------------

    def visit_module(self, container: Node, module_path: str) -> None:
        self.modules.append(module_path)
        self._visit_items(container, module_path)

    def _visit_items(self, container: Node, module_path: str) -> None:
        attributes: list[str] = []
        for child in container.named_children:
            match child.type:
                case "attribute_item":
                    attributes.append(node_text(child))
                    continue
                case kind if kind in _SKIPPED_SIBLINGS:
                    continue
                case "function_item":
                    self._function(child, module_path, attributes)
                case "struct_item" | "union_item":
                    self._struct(child, module_path)
                case "enum_item":
                    self._enum(child, module_path)
                case "trait_item":
                    self._trait(child, module_path)
                case "impl_item":
                    self._impl(child, module_path)
                case "const_item":
                    self._value(child, module_path, ItemKind.CONST)
                case "static_item":
                    self._value(child, module_path, ItemKind.STATIC)
                case "type_item":
                    self._type_alias(child, module_path)
                case "mod_item":
                    self._mod(child, module_path)
                case "use_declaration":
                    self.uses.extend(self.use_analyzer.analyze(child, module_path))
                case _:
                    pass
            attributes = []

    def _mod(self, node: Node, module_path: str) -> None:
        name = node_text(node.child_by_field_name("name"))
        inner_path = join_id(module_path, name)
        self._add_item(
            inner_path,
            ItemKind.MOD,
            name,
            node,
            signature=declaration_head(node, "body"),
        )
        body = node.child_by_field_name("body")
        if body is not None:
            self.visit_module(body, inner_path)

    # -------------------------------------------------------------------------
    # Items
    # -------------------------------------------------------------------------

    def _add_item(
        self,
        base_id: str,
        kind: ItemKind,
        name: str,
        node: Node,
        *,
        signature: str,
        owner: str | None = None,
        visibility: Visibility | None = None,
    ) -> Item:
        item = Item(
            id=self._unique_id(base_id),
            kind=kind,
            name=name,
            visibility=visibility if visibility is not None else parse_visibility(node),
            file=self.path,
            line_start=line_of(node),
            line_end=end_line_of(node),
            signature=signature,
            owner=owner,
        )
        self.items.append(item)
        return item

    def _unique_id(self, base_id: str) -> str:
        """Deterministic #N suffix for repeated ids within the file."""
        count = self._id_counts.get(base_id, 0) + 1
        self._id_counts[base_id] = count
        return base_id if count == 1 else f"{base_id}#{count}"

    def _function(
        self,
        node: Node,
        module_path: str,
        attributes: list[str],
        *,
        owner: str | None = None,
        owner_segments: tuple[str, ...] = (),
        generics: Mapping[str, tuple[str, ...]] | None = None,
        visibility: Visibility | None = None,
    ) -> Item:
        name = node_text(node.child_by_field_name("name"))
        item = self._add_item(
            join_id(module_path, *owner_segments, name),
            ItemKind.FUNCTION,
            name,
            node,
            signature=declaration_head(node, "body"),
            owner=owner,
            visibility=visibility,
        )

        return_name = type_name(node.child_by_field_name("return_type"))
        if return_name is not None:
            self.returns.append(ReturnDecl(owner, name, return_name, module_path))

        if any(is_test_attribute(attribute) for attribute in attributes):
            self.tests.append(TestCase.for_function(item, module_path))

        body = node.child_by_field_name("body")
        if body is not None:
            scope_generics = {**(generics or {}), **generic_bounds(node)}
            scope = FunctionScope(
                function_id=item.id,
                module_path=module_path,
                file=self.path,
                self_type=owner,
                generics=MappingProxyType(scope_generics),
                parameters=MappingProxyType(
                    _parameter_bindings(node.child_by_field_name("parameters"), scope_generics)
                ),
            )
            self.call_sites.extend(self.body_analyzer.analyze(body, scope))

        return item

    def _struct(self, node: Node, module_path: str) -> None:
        name = node_text(node.child_by_field_name("name"))
        item = self._add_item(
            join_id(module_path, name),
            ItemKind.STRUCT,
            name,
            node,
            signature=declaration_head(node, "body"),
        )

        body = node.child_by_field_name("body")
        is_tuple = body is not None and body.type == "ordered_field_declaration_list"
        if body is not None and body.type == "field_declaration_list":
            for declaration in body.named_children:
                if declaration.type != "field_declaration":
                    continue
                field_type = type_name(declaration.child_by_field_name("type"))
                if field_type is not None:
                    field_name = node_text(declaration.child_by_field_name("name"))
                    self.fields.append(FieldDecl(item.id, field_name, field_type, module_path))
        elif is_tuple:
            for index, type_node in enumerate(body.children_by_field_name("type")):
                field_type = type_name(type_node)
                if field_type is not None:
                    self.fields.append(FieldDecl(item.id, str(index), field_type, module_path))

        self.types.append(
            TypeDecl(item.id, name, ItemKind.STRUCT, module_path, is_tuple=is_tuple)
        )

    def _enum(self, node: Node, module_path: str) -> None:
        name = node_text(node.child_by_field_name("name"))
        item = self._add_item(
            join_id(module_path, name),
            ItemKind.ENUM,
            name,
            node,
            signature=declaration_head(node, "body"),
        )
        variants: list[str] = []
        body = node.child_by_field_name("body")
        if body is not None:
            for variant in body.named_children:
                if variant.type == "enum_variant":
                    variants.append(node_text(variant.child_by_field_name("name")))
        self.types.append(
            TypeDecl(item.id, name, ItemKind.ENUM, module_path, variants=tuple(variants))
        )

    def _trait(self, node: Node, module_path: str) -> None:
        name = node_text(node.child_by_field_name("name"))
        item = self._add_item(
            join_id(module_path, name),
            ItemKind.TRAIT,
            name,
            node,
            signature=declaration_head(node, "body"),
        )
        self.types.append(
            TypeDecl(
                item.id,
                name,
                ItemKind.TRAIT,
                module_path,
                supertraits=bound_names(node.child_by_field_name("bounds")),
            )
        )

        body = node.child_by_field_name("body")
        if body is None:
            return
        generics = generic_bounds(node)

        member_attributes: list[str] = []
        for child in body.named_children:
            match child.type:
                case "attribute_item":
                    member_attributes.append(node_text(child))
                    continue
                case kind if kind in _SKIPPED_SIBLINGS:
                    continue
                case "function_item" | "function_signature_item":
                    method = self._function(
                        child,
                        module_path,
                        member_attributes,
                        owner=name,
                        owner_segments=(name,),
                        generics=generics,
                        visibility=item.visibility,
                    )
                    self.trait_methods.append((item.id, method.name, method.id))
                case _:
                    pass
            member_attributes = []

    def _impl(self, node: Node, module_path: str) -> None:
        type_node = node.child_by_field_name("type")
        self_type = type_name(type_node) or strip_generics(node_text(type_node))
        type_segment = last_segment(self_type)

        trait_node = node.child_by_field_name("trait")
        trait_name = strip_generics(node_text(trait_node)) if trait_node is not None else None
        trait_segment = last_segment(trait_name) if trait_name else None

        if trait_name:
            display_name = f"impl {trait_name} for {self_type}"
            owner_segments: tuple[str, ...] = (type_segment, trait_segment or "")
        else:
            display_name = f"impl {self_type}"
            owner_segments = (type_segment,)

        item = self._add_item(
            join_id(module_path, type_segment, _IMPL_SEGMENT, trait_segment or ""),
            ItemKind.IMPL,
            display_name,
            node,
            signature=declaration_head(node, "body"),
            owner=self_type,
        )

        method_ids: list[tuple[str, str]] = []
        body = node.child_by_field_name("body")
        generics = generic_bounds(node)

        member_attributes: list[str] = []
        for child in (body.named_children if body is not None else ()):
            match child.type:
                case "attribute_item":
                    member_attributes.append(node_text(child))
                    continue
                case kind if kind in _SKIPPED_SIBLINGS:
                    continue
                case "function_item":
                    method = self._function(
                        child,
                        module_path,
                        member_attributes,
                        owner=self_type,
                        owner_segments=owner_segments,
                        generics=generics,
                    )
                    method_ids.append((method.name, method.id))
                case "const_item":
                    const_name = node_text(child.child_by_field_name("name"))
                    self._add_item(
                        join_id(module_path, type_segment, const_name),
                        ItemKind.CONST,
                        const_name,
                        child,
                        signature=declaration_head(child, "value"),
                        owner=self_type,
                    )
                case _:
                    pass
            member_attributes = []

        self.impls.append(
            ImplDecl(item.id, self_type, trait_name, module_path, tuple(method_ids))
        )

    def _value(self, node: Node, module_path: str, kind: ItemKind) -> None:
        """const or static item; its type registers under the module path."""
        name = node_text(node.child_by_field_name("name"))
        self._add_item(
            join_id(module_path, name),
            kind,
            name,
            node,
            signature=declaration_head(node, "value"),
        )
        value_type = type_name(node.child_by_field_name("type"))
        if value_type is not None:
            self.fields.append(FieldDecl(module_path, name, value_type, module_path))

    def _type_alias(self, node: Node, module_path: str) -> None:
        name = node_text(node.child_by_field_name("name"))
        item = self._add_item(
            join_id(module_path, name),
            ItemKind.TYPE,
            name,
            node,
            signature=declaration_head(node, None),
        )
        self.types.append(
            TypeDecl(
                item.id,
                name,
                ItemKind.TYPE,
                module_path,
                alias_of=type_name(node.child_by_field_name("type")),
            )
        )


def _parameter_bindings(
    parameters: Node | None,
    generics: Mapping[str, tuple[str, ...]],
) -> dict[str, ReceiverChain | None]:
    """Bindings introduced by a function's parameter list (self excluded)."""
    bindings: dict[str, ReceiverChain | None] = {}
    if parameters is None:
        return bindings
    for param in parameters.named_children:
        if param.type != "parameter":
            continue
        pattern = param.child_by_field_name("pattern")
        chain = chain_for_type(param.child_by_field_name("type"), generics)
        if pattern is not None and pattern.type == "identifier":
            bindings[node_text(pattern)] = chain
        else:
            for name in pattern_bindings(pattern):
                bindings[name] = None
    return bindings

"""Base utilities for tree-sitter analyzers."""

from __future__ import annotations

import re
from collections.abc import Iterator
from pathlib import PurePosixPath
from typing import TYPE_CHECKING

from cratescope.domain.items import Visibility, join_id

if TYPE_CHECKING:
    from tree_sitter import Node

_WHITESPACE = re.compile(r"\s+")

# Wrappers whose method calls act on the wrapped value (Deref, unwrap, ?)
TRANSPARENT_WRAPPERS = frozenset(
    {"Box", "Rc", "Arc", "RefCell", "Cell", "Mutex", "RwLock", "Cow", "Option", "Result"}
)

# Items declared inside a function body are not part of the item set
NESTED_ITEM_NODES = frozenset(
    {
        "function_item",
        "struct_item",
        "enum_item",
        "union_item",
        "trait_item",
        "impl_item",
        "mod_item",
        "const_item",
        "static_item",
        "type_item",
        "use_declaration",
        "macro_definition",
        "extern_crate_declaration",
        "foreign_mod_item",
    }
)

_FILE_ROOT_STEMS = frozenset({"lib", "main"})
_DIR_MODULE_STEM = "mod"


def node_text(node: Node | None) -> str:
    """Source text of a node ("" for None)."""
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8")


def collapse_whitespace(text: str) -> str:
    """Collapse runs of whitespace into single spaces and strip."""
    return _WHITESPACE.sub(" ", text).strip()


def line_of(node: Node) -> int:
    """1-based start line."""
    return node.start_point[0] + 1


def end_line_of(node: Node) -> int:
    """1-based end line (inclusive)."""
    return node.end_point[0] + 1


def strip_generics(path: str) -> str:
    """Drop generic arguments and turbofish: "Vec::<T>::new" → "Vec::new"."""
    out: list[str] = []
    depth = 0
    for ch in path:
        if ch == "<":
            depth += 1
        elif ch == ">":
            depth = max(depth - 1, 0)
        elif depth == 0:
            out.append(ch)
    return "".join(out).replace("::::", "::").removesuffix("::").replace(" ", "")


def compute_module_path(relative_path: str, crate_name: str) -> str:
    """Module path of a source file relative to the collection root.

    Examples (crate_name="crate"):
        lib.rs          → crate
        main.rs         → crate
        a.rs            → crate::a
        a/mod.rs        → crate::a
        a/b/mod.rs      → crate::a::b
        a/lib.rs        → crate::a::lib

    Args:
        relative_path: Posix path relative to the root
        crate_name: First segment of every module path
    """
    path = PurePosixPath(relative_path)
    segments = list(path.parent.parts)
    stem = path.stem

    if stem == _DIR_MODULE_STEM:
        pass
    elif stem in _FILE_ROOT_STEMS and not segments:
        pass
    else:
        segments.append(stem)

    return join_id(crate_name, *segments)


def parse_visibility(node: Node) -> Visibility:
    """Visibility of a declaration from its visibility_modifier child.

    pub           → PUBLIC
    pub(crate)    → CRATE
    pub(in path)  → CRATE
    crate         → CRATE
    pub(super)    → SUPER
    pub(self)     → PRIVATE
    (none)        → PRIVATE
    """
    for child in node.named_children:
        if child.type != "visibility_modifier":
            continue
        text = node_text(child).replace(" ", "")
        match text:
            case "pub":
                return Visibility.PUBLIC
            case "pub(super)":
                return Visibility.SUPER
            case "pub(self)":
                return Visibility.PRIVATE
            case _:
                return Visibility.CRATE
    return Visibility.PRIVATE


def declaration_head(node: Node, stop_field: str | None) -> str:
    """Declaration text before the given field, whitespace collapsed.

    ``pub fn heal(&mut self, n: i32) -> i32 { ... }`` with stop_field="body"
    → ``pub fn heal(&mut self, n: i32) -> i32``
    """
    stop = node.child_by_field_name(stop_field) if stop_field else None
    source = node.text or b""
    if stop is not None:
        source = source[: stop.start_byte - node.start_byte]
    head = collapse_whitespace(source.decode("utf-8"))
    return head.removesuffix(";").removesuffix("=").rstrip()


def attribute_path(attribute_text: str) -> str:
    """Path of an attribute: "#[tokio::test(flavor = "x")]" → "tokio::test"."""
    inner = attribute_text.strip().removeprefix("#!").removeprefix("#")
    inner = inner.strip().removeprefix("[").removesuffix("]").strip()
    for index, ch in enumerate(inner):
        if ch in "(=[ \t\n":
            return inner[:index]
    return inner


def is_test_attribute(attribute_text: str) -> bool:
    """True for #[test], #[rstest] and any #[...::test]."""
    path = attribute_path(attribute_text)
    return (
        path in ("test", "rstest")
        or path.endswith("::test")
        or path.endswith("::rstest")
    )


# =============================================================================
# TYPES - written type nodes → normalized names
# =============================================================================


def unwrap_type(node: Node) -> Node:
    """Strip references, pointers and transparent wrappers.

    &mut Box<Option<Unit>> → Unit
    """
    while True:
        match node.type:
            case "reference_type" | "pointer_type":
                inner = node.child_by_field_name("type")
            case "generic_type" if _generic_base(node) in TRANSPARENT_WRAPPERS:
                inner = _first_type_argument(node)
            case _:
                inner = None
        if inner is None:
            return node
        node = inner


def type_name(node: Node | None) -> str | None:
    """Normalized type name of a written type.

    Examples:
        &Unit                 → "Unit"
        Arc<Mutex<Unit>>      → "Unit"
        crate::a::Unit<T>     → "crate::a::Unit"
        impl Speak + Clone    → "impl Speak + Clone"
        &dyn Speak            → "dyn Speak"
        (i32, i32)            → None
    """
    if node is None:
        return None
    node = unwrap_type(node)
    match node.type:
        case "type_identifier" | "primitive_type" | "scoped_type_identifier":
            return strip_generics(node_text(node))
        case "generic_type":
            return strip_generics(node_text(node.child_by_field_name("type")))
        case "abstract_type":
            return "impl " + " + ".join(bound_names(node.child_by_field_name("trait")))
        case "dynamic_type":
            return "dyn " + " + ".join(bound_names(node.child_by_field_name("trait")))
        case _:
            return None


def bound_names(node: Node | None) -> tuple[str, ...]:
    """Trait names of a bound list, generics stripped, lifetimes and ?Sized skipped.

    ``Speak + Clone + 'static`` → ("Speak", "Clone")
    ``Iterator<Item = u8>``    → ("Iterator",)
    """
    if node is None:
        return ()
    match node.type:
        case "trait_bounds" | "bounded_type":
            names: list[str] = []
            for child in node.named_children:
                names.extend(bound_names(child))
            return tuple(names)
        case "type_identifier" | "scoped_type_identifier":
            return (strip_generics(node_text(node)),)
        case "generic_type":
            return (strip_generics(node_text(node.child_by_field_name("type"))),)
        case "higher_ranked_trait_bound":
            return bound_names(node.child_by_field_name("type"))
        case _:
            return ()


def parse_bounded_name(name: str) -> tuple[str, ...] | None:
    """Bounds of an "impl A + B" / "dyn A + B" type name, None for other names."""
    for prefix in ("impl ", "dyn "):
        if name.startswith(prefix):
            return tuple(b.strip() for b in name.removeprefix(prefix).split("+") if b.strip())
    return None


def generic_bounds(node: Node) -> dict[str, tuple[str, ...]]:
    """Generic parameters of a declaration with their bounds.

    Merges ``<T: A>`` and ``where T: B`` into {"T": ("A", "B")}.
    Lifetimes and const generics are skipped.
    """
    params: dict[str, tuple[str, ...]] = {}

    type_parameters = node.child_by_field_name("type_parameters")
    if type_parameters is not None:
        for param in type_parameters.named_children:
            match param.type:
                case "type_identifier":
                    params[node_text(param)] = ()
                case "type_parameter":
                    name = node_text(param.child_by_field_name("name"))
                    params[name] = bound_names(param.child_by_field_name("bounds"))
                case "constrained_type_parameter":
                    name = node_text(param.child_by_field_name("left"))
                    params[name] = bound_names(param.child_by_field_name("bounds"))
                case "optional_type_parameter":
                    inner = param.child_by_field_name("name")
                    if inner is not None:
                        params.update(_single_param(inner))

    for child in node.named_children:
        if child.type != "where_clause":
            continue
        for predicate in child.named_children:
            if predicate.type != "where_predicate":
                continue
            left = node_text(predicate.child_by_field_name("left"))
            if left in params:
                params[left] = params[left] + bound_names(predicate.child_by_field_name("bounds"))

    return params


def _single_param(node: Node) -> dict[str, tuple[str, ...]]:
    match node.type:
        case "type_identifier":
            return {node_text(node): ()}
        case "type_parameter":
            return {
                node_text(node.child_by_field_name("name")): bound_names(
                    node.child_by_field_name("bounds")
                )
            }
        case "constrained_type_parameter":
            return {
                node_text(node.child_by_field_name("left")): bound_names(
                    node.child_by_field_name("bounds")
                )
            }
        case _:
            return {}


def _generic_base(node: Node) -> str:
    base = node_text(node.child_by_field_name("type"))
    return strip_generics(base).rpartition("::")[2]


def _first_type_argument(node: Node) -> Node | None:
    arguments = node.child_by_field_name("type_arguments")
    if arguments is None:
        return None
    for child in arguments.named_children:
        if child.type not in ("lifetime", "type_binding", "block"):
            return child
    return None


# =============================================================================
# PATTERNS - identifiers bound by let/for/match/closure patterns
# =============================================================================


def pattern_bindings(node: Node | None) -> Iterator[str]:
    """Names bound by a pattern.

    Type paths of tuple-struct and struct patterns are not bindings, nor are
    capitalized identifiers (unit variants and constants like ``None``).

    ``(a, Some(b))``        → a, b
    ``Point { x, y: py }``  → x, py
    """
    if node is None:
        return
    stack = [node]
    while stack:
        current = stack.pop()
        match current.type:
            case "identifier" | "shorthand_field_identifier":
                name = node_text(current)
                if name and not name[0].isupper():
                    yield name
            case "tuple_struct_pattern" | "struct_pattern":
                type_node = current.child_by_field_name("type")
                stack.extend(
                    reversed([c for c in current.named_children if c != type_node])
                )
            case "field_pattern":
                pattern = current.child_by_field_name("pattern")
                if pattern is not None:
                    stack.append(pattern)
                else:
                    stack.extend(reversed(current.named_children))
            case "scoped_identifier" | "scoped_type_identifier" | "type_identifier":
                continue
            case _:
                stack.extend(reversed(current.named_children))

"""Domain layer: declared items and tests of a Rust source tree.

Immutable value objects. Identity of every item is its qualified id,
module path segments joined with ``::`` and ending in the item name.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

ID_SEPARATOR = "::"
TEST_SUFFIX = "test"


class ItemKind(Enum):
    """Kind of declaration.

    FUNCTION covers free functions, methods and trait methods.
    """

    FUNCTION = "fn"
    STRUCT = "struct"
    ENUM = "enum"
    TRAIT = "trait"
    IMPL = "impl"
    CONST = "const"
    STATIC = "static"
    MOD = "mod"
    TYPE = "type"


class Visibility(Enum):
    """Rust visibility levels.

    pub          → PUBLIC
    pub(crate)   → CRATE (also pub(in path))
    pub(super)   → SUPER
    (none)       → PRIVATE (also pub(self))
    """

    PUBLIC = "pub"
    CRATE = "pub(crate)"
    SUPER = "pub(super)"
    PRIVATE = "private"


def join_id(*segments: str) -> str:
    """Join non-empty segments into a qualified id."""
    return ID_SEPARATOR.join(s for s in segments if s)


def parent_id(qualified_id: str) -> str:
    """Drop the last segment: "crate::a::Unit::heal" → "crate::a::Unit"."""
    head, _sep, _tail = qualified_id.rpartition(ID_SEPARATOR)
    return head


def last_segment(path: str) -> str:
    """Last segment of a ``::`` path."""
    return path.rpartition(ID_SEPARATOR)[2]


def absolutize_path(path: str, module_path: str) -> str:
    """Resolve leading ``crate``/``self``/``super`` segments against a module.

    Examples (module_path="crate::a::b"):
        crate::x::Y   → crate::x::Y
        self::Y       → crate::a::b::Y
        super::super::f → crate::f
        std::fmt      → std::fmt (unchanged)

    super above the crate root stays at the root.
    """
    segments = path.removeprefix(ID_SEPARATOR).split(ID_SEPARATOR)
    crate_root = module_path.split(ID_SEPARATOR, 1)[0]

    match segments[0]:
        case "crate":
            return join_id(crate_root, *segments[1:])
        case "self":
            return join_id(module_path, *segments[1:])
        case "super":
            base = module_path
            while segments and segments[0] == "super":
                base = parent_id(base) or crate_root
                segments = segments[1:]
            return join_id(base, *segments)
        case _:
            return path


@dataclass(frozen=True, slots=True)
class Item:
    """Declared item.

    Examples:
        pub fn run()             → Item("crate::a::run", FUNCTION, "run", PUBLIC, ...)
        impl Unit { fn heal() }  → Item("crate::a::Unit::heal", FUNCTION, "heal", ...,
                                        owner="Unit")
        impl Display for Unit    → Item("crate::a::Unit::impl::Display", IMPL, ...)

    Invariants (FAIL-FIRST):
        - id and name non-empty
        - 1 <= line_start <= line_end

    Attributes:
        id: Qualified id, unique within one run
        kind: Declaration kind
        name: Declared name (impl blocks: "impl Trait for Type")
        visibility: Visibility modifier
        file: Source path relative to the collection root
        line_start: First line (1-based)
        line_end: Last line (1-based, inclusive)
        signature: Declaration head, whitespace collapsed
        owner: Owning type or trait name for associated items
        tested_by: Test ids whose test function calls this item
    """

    id: str
    kind: ItemKind
    name: str
    visibility: Visibility
    file: str
    line_start: int
    line_end: int
    signature: str = ""
    owner: str | None = None
    tested_by: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        """Validate invariants. FAIL-FIRST on invalid span or identity."""
        if not self.id:
            raise ValueError("item id must not be empty")
        if not self.name:
            raise ValueError(f"item name must not be empty: {self.id}")
        if self.line_start < 1:
            raise ValueError(f"line_start must be >= 1, got {self.line_start}")
        if self.line_end < self.line_start:
            raise ValueError(
                f"line_end must be >= line_start, got {self.line_end} < {self.line_start}"
            )


@dataclass(frozen=True, slots=True)
class TestCase:
    """Test function detected by its marker attribute.

    ``#[test] fn check()`` inside ``mod tests`` of module ``crate::a`` →
    TestCase(id="crate::a::tests::check::test",
             enclosing_function_id="crate::a::tests::check", ...)

    Attributes:
        id: Test id, the enclosing function id plus "::test"
        enclosing_function_id: Id of the test function item
        name: Test function name
        file: Source path relative to the collection root
        line: Line of the function declaration
        module: Qualified module path the test lives in
    """

    __test__ = False  # not a pytest class

    id: str
    enclosing_function_id: str
    name: str
    file: str
    line: int
    module: str

    @classmethod
    def for_function(cls, function: Item, module: str) -> TestCase:
        """Build the test case for a test function item."""
        if function.kind is not ItemKind.FUNCTION:
            raise ValueError(f"test must be a function, got {function.kind.value}: {function.id}")
        return cls(
            id=join_id(function.id, TEST_SUFFIX),
            enclosing_function_id=function.id,
            name=function.name,
            file=function.file,
            line=function.line_start,
            module=module,
        )

"""Domain layer: per-file extraction result.

Everything the later phases need from one source file. Extraction runs per
file with no shared state; the type facts recorded here feed the item index
and the type registry after the extraction barrier.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from cratescope.domain.items import TEST_SUFFIX, join_id

if TYPE_CHECKING:
    from collections.abc import Mapping

    from cratescope.domain.call_graph import CallContext, CallSite
    from cratescope.domain.items import Item, ItemKind, TestCase


@dataclass(frozen=True, slots=True)
class FieldDecl:
    """Struct field (or module-level const/static) with its written type.

    Examples:
        struct Unit { hp: i32 }      → FieldDecl("crate::a::Unit", "hp", "i32", "crate::a")
        struct P(f32, f32)           → FieldDecl("crate::a::P", "0", "f32", "crate::a")
        static CONFIG: Config = ...  → FieldDecl("crate::a", "CONFIG", "Config", "crate::a")
    """

    owner_id: str
    name: str
    type_name: str
    module_path: str


@dataclass(frozen=True, slots=True)
class ReturnDecl:
    """Return type of a function, method or trait method.

    owner_name is the owning type/trait as written ("Unit") for associated
    functions, None for free functions (owned by module_path).
    """

    owner_name: str | None
    name: str
    type_name: str
    module_path: str


@dataclass(frozen=True, slots=True)
class ImplDecl:
    """``impl [Trait for] Type`` block.

    Attributes:
        id: Qualified id of the impl item
        self_type: Implementing type as written (generics stripped)
        trait_name: Implemented trait as written, None for inherent impls
        module_path: Module the block appears in
        method_ids: name → qualified id of methods declared in the block
    """

    id: str
    self_type: str
    trait_name: str | None
    module_path: str
    method_ids: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True, slots=True)
class UseDecl:
    """One name brought into scope by ``use``.

    Examples (in module crate::a):
        use crate::b::Unit;          → UseDecl("crate::a", "Unit", "crate::b::Unit")
        use std::fmt::Display as D;  → UseDecl("crate::a", "D", "std::fmt::Display")
        use super::*;                → UseDecl("crate::a", "*", "super")
    """

    module_path: str
    alias: str
    target: str

    @property
    def is_glob(self) -> bool:
        """True for ``use path::*``."""
        return self.alias == "*"


@dataclass(frozen=True, slots=True)
class TypeDecl:
    """Declared type-like item with the facts the index needs.

    Attributes:
        id: Qualified id
        name: Simple name
        kind: STRUCT, ENUM, TRAIT or TYPE
        module_path: Declaring module
        variants: Enum variant names
        supertraits: Trait bounds of a trait declaration
        alias_of: Aliased type as written, for type aliases
        is_tuple: Tuple struct (callable as constructor)
    """

    id: str
    name: str
    kind: ItemKind
    module_path: str
    variants: tuple[str, ...] = ()
    supertraits: tuple[str, ...] = ()
    alias_of: str | None = None
    is_tuple: bool = False


@dataclass(frozen=True, slots=True)
class FileExtraction:
    """Structural facts of one source file.

    A file that failed to parse has every collection empty and error set.

    Attributes:
        path: Path relative to the collection root (posix)
        module_path: Qualified module path of the file
        items: Declared items in source order
        tests: Detected tests
        call_sites: Raw call sites in source order
        types: Type-like declarations
        fields: Struct fields and module-level const/static types
        returns: Declared return types
        impls: Impl blocks
        uses: Use declarations
        modules: Module paths declared by the file (its own and inline mods)
        trait_methods: (trait id, method name, method id) triples
        error: Parse failure description, None on success
    """

    path: str
    module_path: str
    items: tuple[Item, ...] = ()
    tests: tuple[TestCase, ...] = ()
    call_sites: tuple[CallSite, ...] = ()
    types: tuple[TypeDecl, ...] = ()
    fields: tuple[FieldDecl, ...] = ()
    returns: tuple[ReturnDecl, ...] = ()
    impls: tuple[ImplDecl, ...] = ()
    uses: tuple[UseDecl, ...] = ()
    modules: tuple[str, ...] = ()
    trait_methods: tuple[tuple[str, str, str], ...] = ()
    error: str | None = None

    @classmethod
    def failed(cls, path: str, module_path: str, error: str) -> FileExtraction:
        """Empty extraction for a file that could not be parsed."""
        return cls(path=path, module_path=module_path, modules=(module_path,), error=error)

    @property
    def contexts(self) -> tuple[CallContext, ...]:
        """Control-flow contexts of the raw call sites, in source order."""
        return tuple(site.context for site in self.call_sites)

    @property
    def ok(self) -> bool:
        """True when the file parsed."""
        return self.error is None

    def rename_ids(self, renames: Mapping[str, str]) -> FileExtraction:
        """Copy with item ids replaced everywhere they are referenced.

        Used to make ids unique across files. Ids not in renames are kept.
        """
        if not renames:
            return self

        def rid(value: str) -> str:
            return renames.get(value, value)

        # module-level const/static types are owned by module paths, not items
        type_ids = {decl.id for decl in self.types}

        return replace(
            self,
            items=tuple(replace(item, id=rid(item.id)) for item in self.items),
            tests=tuple(
                replace(
                    test,
                    id=join_id(rid(test.enclosing_function_id), TEST_SUFFIX),
                    enclosing_function_id=rid(test.enclosing_function_id),
                )
                for test in self.tests
            ),
            call_sites=tuple(replace(site, from_id=rid(site.from_id)) for site in self.call_sites),
            types=tuple(replace(decl, id=rid(decl.id)) for decl in self.types),
            fields=tuple(
                replace(decl, owner_id=rid(decl.owner_id)) if decl.owner_id in type_ids else decl
                for decl in self.fields
            ),
            impls=tuple(
                replace(
                    decl,
                    id=rid(decl.id),
                    method_ids=tuple((name, rid(mid)) for name, mid in decl.method_ids),
                )
                for decl in self.impls
            ),
            trait_methods=tuple(
                (rid(trait_id), name, rid(mid)) for trait_id, name, mid in self.trait_methods
            ),
        )

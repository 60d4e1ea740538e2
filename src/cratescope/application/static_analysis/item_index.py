"""Item index: the declared item set of one run, with name resolution.

Built once after the extraction barrier, read-only during resolution.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import TYPE_CHECKING

from cratescope.domain.items import (
    ID_SEPARATOR,
    ItemKind,
    absolutize_path,
    join_id,
    last_segment,
    parent_id,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from cratescope.domain.extraction import FileExtraction, TypeDecl
    from cratescope.domain.items import Item

logger = logging.getLogger(__name__)

PRIMITIVE_TYPES = frozenset(
    {
        "bool", "char", "str",
        "i8", "i16", "i32", "i64", "i128", "isize",
        "u8", "u16", "u32", "u64", "u128", "usize",
        "f32", "f64",
    }
)  # fmt: skip

# Names in scope without an import (std prelude plus the common std types)
STD_TYPES = frozenset(
    {
        "String", "Vec", "Box", "Option", "Result", "Rc", "Arc", "RefCell", "Cell",
        "Mutex", "RwLock", "Cow", "HashMap", "HashSet", "BTreeMap", "BTreeSet",
        "VecDeque", "BinaryHeap", "Path", "PathBuf", "Duration", "Instant",
        "Iterator", "IntoIterator", "Default", "Clone", "Copy", "Debug", "Display",
        "From", "Into", "TryFrom", "TryInto", "ToString", "ToOwned", "AsRef", "AsMut",
        "PartialEq", "Eq", "PartialOrd", "Ord", "Hash", "Drop", "Fn", "FnMut", "FnOnce",
        "Send", "Sync", "Sized", "Error", "Ordering", "Some", "None", "Ok", "Err",
    }
)  # fmt: skip

PRELUDE_FUNCTIONS = frozenset(
    {"Some", "Ok", "Err", "drop", "Box", "String", "Vec", "Default", "panic", "assert"}
)

EXTERNAL_ROOTS = frozenset({"std", "core", "alloc"})

_MAX_DEPTH = 8


def _frozen(mapping: Mapping[str, Mapping[str, str]]) -> Mapping[str, Mapping[str, str]]:
    return MappingProxyType({key: MappingProxyType(dict(value)) for key, value in mapping.items()})


_EMPTY: Mapping[str, str] = MappingProxyType({})


def _empty_mapping() -> Mapping[str, object]:
    return MappingProxyType({})


@dataclass(frozen=True, slots=True)
class ItemIndex:
    """Immutable item set with lookup and name resolution.

    Attributes:
        items: Item id → Item
        types: Type-like item id → TypeDecl
        types_by_name: Simple name → type ids declaring it
        functions: Module path → free function name → id
        file_functions: Source file → qualified name → id of free functions
            declared in that file (ids may carry a #N suffix)
        modules: Known module paths
        uses: Module path → bound name → absolute target path
        globs: Module path → glob-imported paths
        inherent_methods: Type id → method name → id
        impl_methods: Type id → trait-impl method name → id
        traits_of: Type id → ids of implemented traits declared in the tree
        trait_methods: Trait id → method name → id
        supertraits: Trait id → supertrait ids declared in the tree
    """

    items: Mapping[str, Item]
    types: Mapping[str, TypeDecl]
    types_by_name: Mapping[str, tuple[str, ...]]
    functions: Mapping[str, Mapping[str, str]]
    file_functions: Mapping[str, Mapping[str, str]]
    modules: frozenset[str]
    uses: Mapping[str, Mapping[str, str]]
    globs: Mapping[str, tuple[str, ...]]
    crate_roots: frozenset[str] = frozenset()
    inherent_methods: Mapping[str, Mapping[str, str]] = field(default_factory=_empty_mapping)
    impl_methods: Mapping[str, Mapping[str, str]] = field(default_factory=_empty_mapping)
    traits_of: Mapping[str, tuple[str, ...]] = field(default_factory=_empty_mapping)
    trait_methods: Mapping[str, Mapping[str, str]] = field(default_factory=_empty_mapping)
    supertraits: Mapping[str, tuple[str, ...]] = field(default_factory=_empty_mapping)

    @classmethod
    def empty(cls) -> ItemIndex:
        """Create empty index."""
        return cls.from_extractions(())

    @classmethod
    def from_extractions(cls, extractions: Iterable[FileExtraction]) -> ItemIndex:
        """Build index from per-file extractions.

        Two passes: declarations first, then everything that needs type
        resolution (impl targets, implemented traits, supertraits).

        Args:
            extractions: Extractions with run-unique item ids

        Returns:
            Frozen ItemIndex
        """
        extractions = tuple(extractions)

        items: dict[str, Item] = {}
        types: dict[str, TypeDecl] = {}
        types_by_name: dict[str, list[str]] = defaultdict(list)
        functions: dict[str, dict[str, str]] = defaultdict(dict)
        file_functions: dict[str, dict[str, str]] = defaultdict(dict)
        modules: set[str] = set()
        uses: dict[str, dict[str, str]] = defaultdict(dict)
        globs: dict[str, list[str]] = defaultdict(list)

        # First pass: declarations
        for extraction in extractions:
            modules.update(extraction.modules)
            for item in extraction.items:
                items[item.id] = item
                if item.kind is ItemKind.FUNCTION and item.owner is None:
                    functions[parent_id(item.id)].setdefault(item.name, item.id)
                    local = join_id(parent_id(item.id), item.name)
                    file_functions[item.file].setdefault(local, item.id)
            for decl in extraction.types:
                types[decl.id] = decl
                types_by_name[decl.name].append(decl.id)
            for use in extraction.uses:
                if use.is_glob:
                    globs[use.module_path].append(use.target)
                else:
                    uses[use.module_path][use.alias] = use.target

        base = cls(
            items=MappingProxyType(items),
            types=MappingProxyType(types),
            types_by_name=MappingProxyType(
                {name: tuple(sorted(ids)) for name, ids in types_by_name.items()}
            ),
            functions=_frozen(functions),
            file_functions=_frozen(file_functions),
            modules=frozenset(modules),
            crate_roots=frozenset(_root(m) for m in modules),
            uses=_frozen(uses),
            globs=MappingProxyType({m: tuple(g) for m, g in globs.items()}),
        )

        # Second pass: relations that need type resolution
        inherent: dict[str, dict[str, str]] = defaultdict(dict)
        via_trait: dict[str, dict[str, str]] = defaultdict(dict)
        traits_of: dict[str, list[str]] = defaultdict(list)
        trait_methods: dict[str, dict[str, str]] = defaultdict(dict)
        supertraits: dict[str, tuple[str, ...]] = {}

        for extraction in extractions:
            for trait_id, name, method_id in extraction.trait_methods:
                trait_methods[trait_id].setdefault(name, method_id)

            for impl in extraction.impls:
                type_id = base.resolve_type(impl.self_type, impl.module_path)
                if type_id is None:
                    logger.debug("impl target %s not in tree (%s)", impl.self_type, impl.id)
                    continue
                target = inherent if impl.trait_name is None else via_trait
                for name, method_id in impl.method_ids:
                    target[type_id].setdefault(name, method_id)
                if impl.trait_name is not None:
                    trait_id = base.resolve_type(impl.trait_name, impl.module_path)
                    if trait_id is not None and trait_id not in traits_of[type_id]:
                        traits_of[type_id].append(trait_id)

            for decl in extraction.types:
                if decl.kind is ItemKind.TRAIT and decl.supertraits:
                    resolved = (base.resolve_type(s, decl.module_path) for s in decl.supertraits)
                    supertraits[decl.id] = tuple(r for r in resolved if r is not None)

        index = replace(
            base,
            inherent_methods=_frozen(inherent),
            impl_methods=_frozen(via_trait),
            traits_of=MappingProxyType({t: tuple(ids) for t, ids in traits_of.items()}),
            trait_methods=_frozen(trait_methods),
            supertraits=MappingProxyType(supertraits),
        )
        logger.info(
            "indexed %d items, %d types, %d modules",
            len(index.items),
            len(index.types),
            len(index.modules),
        )
        return index

    # -------------------------------------------------------------------------
    # Types
    # -------------------------------------------------------------------------

    def resolve_type(
        self,
        name: str | None,
        module_path: str,
        self_type: str | None = None,
        _depth: int = 0,
    ) -> str | None:
        """Resolve a type name as written in module_path to a type id.

        Order: Self, qualified paths (crate/self/super, imports, child
        modules), same module, imports, glob imports, then the unique global
        match (nearest module on ties). std and primitive names are external.

        Args:
            name: Type name as written, generics stripped
            module_path: Module the name appears in
            self_type: Implementing type for resolving Self

        Returns:
            Type id, or None when the type is not declared in the tree
        """
        if not name or _depth > _MAX_DEPTH:
            return None

        if name == "Self":
            if self_type is None or self_type == "Self":
                return None
            return self.resolve_type(self_type, module_path, None, _depth + 1)

        if ID_SEPARATOR in name:
            for candidate in self._path_candidates(name, module_path):
                found = self._lookup_type_path(candidate, _depth + 1)
                if found is not None:
                    return found
            return None

        local = join_id(module_path, name)
        if local in self.types:
            return self._follow_alias(local, _depth)

        imported = self.uses.get(module_path, _EMPTY).get(name)
        if imported is not None:
            return self._lookup_type_path(imported, _depth + 1)

        for glob in self.globs.get(module_path, ()):
            found = self._lookup_type_path(join_id(glob, name), _depth + 1)
            if found is not None:
                return found

        if name in PRIMITIVE_TYPES or name in STD_TYPES:
            return None

        candidates = self.types_by_name.get(name, ())
        if not candidates:
            return None
        if len(candidates) == 1:
            return self._follow_alias(candidates[0], _depth)
        return self._follow_alias(_nearest(candidates, module_path), _depth)

    def type_decl(self, type_id: str) -> TypeDecl | None:
        """Declaration of a type id."""
        return self.types.get(type_id)

    def is_trait(self, type_id: str) -> bool:
        """True when type_id names a trait."""
        decl = self.types.get(type_id)
        return decl is not None and decl.kind is ItemKind.TRAIT

    def is_external_name(self, name: str, module_path: str) -> bool:
        """True for names that come from outside the tree.

        std/core/alloc paths, primitives, prelude names, names imported from
        a path outside the tree, and paths rooted at an unknown crate.
        """
        head = name.split(ID_SEPARATOR, 1)[0]
        if head in EXTERNAL_ROOTS:
            return True

        imported = self.uses.get(module_path, _EMPTY).get(head)
        if imported is not None:
            return not self._in_tree(imported)

        if ID_SEPARATOR not in name:
            return name in PRIMITIVE_TYPES or name in STD_TYPES or name in PRELUDE_FUNCTIONS

        if head in ("crate", "self", "super", "Self"):
            return False
        candidates = (join_id(module_path, head), head, join_id(_root(module_path), head))
        return not any(c in self.modules for c in candidates)

    # -------------------------------------------------------------------------
    # Members
    # -------------------------------------------------------------------------

    def lookup_method(self, type_id: str, name: str) -> str | None:
        """Method of a type: inherent, trait impls, then trait defaults.

        For a trait id, the trait's own (or a supertrait's) method.
        """
        if self.is_trait(type_id):
            return self.trait_method(type_id, name)

        found = self.inherent_methods.get(type_id, _EMPTY).get(name)
        if found is not None:
            return found
        found = self.impl_methods.get(type_id, _EMPTY).get(name)
        if found is not None:
            return found
        for trait_id in self.traits_of.get(type_id, ()):
            found = self.trait_method(trait_id, name)
            if found is not None:
                return found
        return None

    def trait_method(self, trait_id: str, name: str) -> str | None:
        """Method declared by a trait or any of its supertraits."""
        seen: set[str] = set()
        stack = [trait_id]
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            found = self.trait_methods.get(current, _EMPTY).get(name)
            if found is not None:
                return found
            stack.extend(reversed(self.supertraits.get(current, ())))
        return None

    def implemented_traits(self, type_id: str) -> tuple[str, ...]:
        """Traits implemented by a type, supertraits not expanded."""
        return self.traits_of.get(type_id, ())

    def resolve_function(
        self, name: str, module_path: str, file: str | None = None
    ) -> str | None:
        """Free function visible as a bare name: module, imports, globs.

        When several files declare the same module path, a function declared
        in the calling file wins over the module table entry.
        """
        if file is not None:
            found = self.file_functions.get(file, _EMPTY).get(join_id(module_path, name))
            if found is not None:
                return found

        found = self.functions.get(module_path, _EMPTY).get(name)
        if found is not None:
            return found

        imported = self.uses.get(module_path, _EMPTY).get(name)
        if imported is not None:
            return self._lookup_function_path(imported, 0)

        for glob in self.globs.get(module_path, ()):
            found = self._lookup_function_path(join_id(glob, name), 0)
            if found is not None:
                return found
        return None

    def resolve_module(self, path: str, module_path: str) -> str | None:
        """Module path named by ``path`` as written in module_path."""
        for candidate in self._path_candidates(path, module_path):
            if candidate in self.modules:
                return candidate
        return None

    def module_function(self, module: str, name: str) -> str | None:
        """Free function declared in (or re-exported by) a module."""
        return self._lookup_function_path(join_id(module, name), 0)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _path_candidates(self, path: str, module_path: str) -> list[str]:
        absolute = absolutize_path(path, module_path)
        if absolute != path:
            return [absolute]

        head, _sep, rest = path.partition(ID_SEPARATOR)
        candidates: list[str] = []
        imported = self.uses.get(module_path, _EMPTY).get(head)
        if imported is not None:
            candidates.append(join_id(imported, rest))
        candidates.append(join_id(module_path, path))
        candidates.append(path)
        candidates.append(join_id(_root(module_path), path))
        return candidates

    def _lookup_type_path(self, path: str, depth: int) -> str | None:
        """Type at an absolute path, following re-exports and aliases."""
        if depth > _MAX_DEPTH:
            return None
        if path in self.types:
            return self._follow_alias(path, depth)

        module, name = parent_id(path), last_segment(path)
        reexported = self.uses.get(module, _EMPTY).get(name)
        if reexported is not None and reexported != path:
            return self._lookup_type_path(reexported, depth + 1)
        for glob in self.globs.get(module, ()):
            found = self._lookup_type_path(join_id(glob, name), depth + 1)
            if found is not None:
                return found
        return None

    def _lookup_function_path(self, path: str, depth: int) -> str | None:
        if depth > _MAX_DEPTH:
            return None
        module, name = parent_id(path), last_segment(path)
        found = self.functions.get(module, _EMPTY).get(name)
        if found is not None:
            return found
        reexported = self.uses.get(module, _EMPTY).get(name)
        if reexported is not None and reexported != path:
            return self._lookup_function_path(reexported, depth + 1)
        for glob in self.globs.get(module, ()):
            found = self._lookup_function_path(join_id(glob, name), depth + 1)
            if found is not None:
                return found
        return None

    def _follow_alias(self, type_id: str, depth: int) -> str:
        decl = self.types[type_id]
        if decl.kind is ItemKind.TYPE and decl.alias_of:
            target = self.resolve_type(decl.alias_of, decl.module_path, None, depth + 1)
            if target is not None:
                return target
        return type_id

    def _in_tree(self, path: str) -> bool:
        return path.split(ID_SEPARATOR, 1)[0] in self.crate_roots


def _root(module_path: str) -> str:
    return module_path.split(ID_SEPARATOR, 1)[0]


def _nearest(candidates: Iterable[str], module_path: str) -> str:
    """Candidate sharing the longest module prefix, lexicographic on ties."""
    origin = module_path.split(ID_SEPARATOR)

    def shared(type_id: str) -> int:
        count = 0
        for a, b in zip(parent_id(type_id).split(ID_SEPARATOR), origin):
            if a != b:
                break
            count += 1
        return count

    return min(candidates, key=lambda c: (-shared(c), c))

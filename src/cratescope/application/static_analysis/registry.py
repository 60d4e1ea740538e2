"""Type registry: field and return types of declared items."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

from cratescope.domain.exceptions import RegistryFrozenError
from cratescope.infrastructure.analyzers.base import parse_bounded_name

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from cratescope.application.static_analysis.item_index import ItemIndex
    from cratescope.domain.extraction import FileExtraction

logger = logging.getLogger(__name__)

_SELF = "Self"


@dataclass(frozen=True, slots=True)
class TypeRegistry:
    """Immutable (type, member) → type name lookup.

    Values are qualified type ids when the type is declared in the tree,
    the written name otherwise ("String", "impl crate::a::Speak").

    Attributes:
        fields: (type id or module path, field name) → field type
        returns: (type or trait id, or module path; function name) → return type
    """

    fields: Mapping[tuple[str, str], str]
    returns: Mapping[tuple[str, str], str]

    def field_type(self, owner: str, name: str) -> str | None:
        """Type of a struct field, or of a const/static when owner is a module."""
        return self.fields.get((owner, name))

    def return_type(self, owner: str, name: str) -> str | None:
        """Return type of a method, or of a free function when owner is a module."""
        return self.returns.get((owner, name))

    @property
    def size(self) -> int:
        """Number of registered entries."""
        return len(self.fields) + len(self.returns)

    @classmethod
    def empty(cls) -> TypeRegistry:
        """Create empty registry."""
        return cls(fields=MappingProxyType({}), returns=MappingProxyType({}))


@dataclass(slots=True)
class TypeRegistryBuilder:
    """Mutable accumulator for a TypeRegistry.

    Last write wins. Once freeze() is called every further write raises
    RegistryFrozenError.
    """

    _fields: dict[tuple[str, str], str] = field(default_factory=dict)
    _returns: dict[tuple[str, str], str] = field(default_factory=dict)
    _frozen: bool = False

    def register_field(self, owner: str, name: str, type_name: str) -> None:
        """Record the type of a field (or const/static under a module path)."""
        self._check_writable()
        self._fields[(owner, name)] = type_name

    def register_return(self, owner: str, name: str, type_name: str) -> None:
        """Record the return type of a method (or free function under a module path)."""
        self._check_writable()
        self._returns[(owner, name)] = type_name

    def freeze(self) -> TypeRegistry:
        """Stop accepting writes and return the immutable snapshot."""
        self._frozen = True
        return TypeRegistry(
            fields=MappingProxyType(dict(self._fields)),
            returns=MappingProxyType(dict(self._returns)),
        )

    @property
    def frozen(self) -> bool:
        """True once freeze() was called."""
        return self._frozen

    def _check_writable(self) -> None:
        if self._frozen:
            raise RegistryFrozenError()


def build_type_registry(extractions: Iterable[FileExtraction], index: ItemIndex) -> TypeRegistry:
    """Reduce per-file type facts into a frozen TypeRegistry.

    Sequential, run after the extraction barrier. Owners and values are
    resolved through the index in the module that declared them; Self is
    replaced by the owning type.

    Args:
        extractions: All extractions of the run
        index: Item index built from the same extractions

    Returns:
        Frozen TypeRegistry
    """
    builder = TypeRegistryBuilder()

    for extraction in extractions:
        for decl in extraction.fields:
            value = _normalize(decl.type_name, decl.module_path, decl.owner_id, index)
            builder.register_field(decl.owner_id, decl.name, value)

        for decl in extraction.returns:
            if decl.owner_name is None:
                owner = decl.module_path
            else:
                owner = index.resolve_type(decl.owner_name, decl.module_path) or decl.owner_name
            value = _normalize(decl.type_name, decl.module_path, owner, index)
            builder.register_return(owner, decl.name, value)

    registry = builder.freeze()
    logger.info("type registry frozen with %d entries", registry.size)
    return registry


def _normalize(type_name: str, module_path: str, owner: str, index: ItemIndex) -> str:
    if type_name == _SELF:
        return owner

    bounds = parse_bounded_name(type_name)
    if bounds is not None:
        prefix = type_name.split(" ", 1)[0]
        resolved = (index.resolve_type(b, module_path) or b for b in bounds)
        return f"{prefix} " + " + ".join(resolved)

    return index.resolve_type(type_name, module_path, owner) or type_name

"""Call resolver: resolve raw call sites to qualified item ids.

Item index + type registry → CallEdge or UnresolvedEdge.
Data Completeness: every call site yields exactly one outcome; unresolved
calls are tracked with a closed-set reason.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from cratescope.domain.call_graph import (
    CallEdge,
    ChainRoot,
    ReceiverHint,
    StepKind,
    UnresolvedEdge,
    UnresolvedReason,
)
from cratescope.domain.items import ID_SEPARATOR, ItemKind, last_segment, parent_id
from cratescope.infrastructure.analyzers.base import parse_bounded_name

if TYPE_CHECKING:
    from cratescope.application.static_analysis.item_index import ItemIndex
    from cratescope.application.static_analysis.registry import TypeRegistry
    from cratescope.domain.call_graph import CallSite, ChainStep, ReceiverChain
    from cratescope.domain.extraction import FileExtraction

# Methods that hand back (a view of) the receiver's own type
PASSTHROUGH_METHODS = frozenset(
    {
        "unwrap",
        "expect",
        "clone",
        "as_ref",
        "as_mut",
        "borrow",
        "borrow_mut",
        "lock",
        "unwrap_or_default",
        "to_owned",
    }
)

_SELF = "Self"


@dataclass(frozen=True, slots=True)
class _TypeRef:
    """Receiver type while walking a chain.

    type_id: Declared type, None when outside the tree or generic
    bounds: Trait bounds for generics, impl Trait and dyn Trait, else None
    """

    name: str
    type_id: str | None = None
    bounds: tuple[str, ...] | None = None


@dataclass(frozen=True, slots=True)
class _Miss:
    """Resolution failure with the best known receiver type."""

    reason: UnresolvedReason
    receiver_type: str


@dataclass(frozen=True, slots=True)
class _ResolveContext:
    """Context for call resolution within one file."""

    index: ItemIndex
    registry: TypeRegistry
    edges: list[CallEdge]
    unresolved: list[UnresolvedEdge]


def resolve_file(
    extraction: FileExtraction,
    index: ItemIndex,
    registry: TypeRegistry,
) -> tuple[tuple[CallEdge, ...], tuple[UnresolvedEdge, ...]]:
    """Resolve all call sites of one file.

    Read-only over index and registry, safe to run concurrently.

    Args:
        extraction: File with raw call sites
        index: Frozen item index of the run
        registry: Frozen type registry of the run

    Returns:
        Tuple of (resolved edges, unresolved edges), in call-site order
    """
    ctx = _ResolveContext(index=index, registry=registry, edges=[], unresolved=[])
    for site in extraction.call_sites:
        _resolve_site(site, ctx)
    return tuple(ctx.edges), tuple(ctx.unresolved)


def _outcome(site: CallSite, index: ItemIndex, registry: TypeRegistry) -> str | _Miss:
    """Resolve one call site: target item id, or the reason it failed."""
    match site.receiver_hint:
        case ReceiverHint.SELF_REF | ReceiverHint.LOCAL_VAR:
            return _resolve_receiver(site, index, registry)
        case ReceiverHint.EXPLICIT_TYPE:
            return _resolve_explicit(site, index, registry)
        case ReceiverHint.MODULE_PATH:
            return _resolve_module_path(site, index)
        case ReceiverHint.UNKNOWN:
            return _resolve_bare(site, index)


def _resolve_site(site: CallSite, ctx: _ResolveContext) -> None:
    outcome = _outcome(site, ctx.index, ctx.registry)
    if isinstance(outcome, _Miss):
        ctx.unresolved.append(
            UnresolvedEdge(
                from_id=site.from_id,
                file=site.file,
                line=site.line,
                receiver_type=outcome.receiver_type,
                receiver_text=site.receiver_text,
                method=site.method_name,
                reason=outcome.reason,
            )
        )
        return
    ctx.edges.append(
        CallEdge(
            from_id=site.from_id,
            to_id=outcome,
            file=site.file,
            line=site.line,
            context=site.context,
        )
    )


# =============================================================================
# Rules by receiver hint
# =============================================================================


def _resolve_receiver(site: CallSite, index: ItemIndex, registry: TypeRegistry) -> str | _Miss:
    """self.m(), self.a.m(), x.m(), make().m(): walk the chain, then look up m."""
    chain = site.receiver_chain
    if chain is None or chain.root is ChainRoot.UNKNOWN:
        return _Miss(UnresolvedReason.AMBIGUOUS_BINDING, site.receiver_hint.value)

    current = _chain_root(chain, site, index, registry)
    for step in chain.steps:
        if isinstance(current, _Miss):
            break
        current = _step(current, step, site, index, registry)

    if isinstance(current, _Miss):
        return current
    return _resolve_member(current, site, index)


def _resolve_explicit(site: CallSite, index: ItemIndex, registry: TypeRegistry) -> str | _Miss:
    """Type::m(), Self::m(), Enum::Variant(), <T as Trait>::m()."""
    chain = site.receiver_chain
    if chain is None or chain.root is not ChainRoot.TYPE:
        return _Miss(UnresolvedReason.UNKNOWN_TYPE, site.receiver_text or site.receiver_hint.value)

    if chain.is_generic:
        return _resolve_member(_TypeRef(chain.name, None, chain.bounds), site, index)

    type_id = index.resolve_type(chain.name, site.module_path, site.self_type)
    if type_id is None:
        name = site.self_type if chain.name == _SELF and site.self_type else chain.name
        return _Miss(UnresolvedReason.EXTERNAL_SYMBOL, name)
    return _resolve_member(_TypeRef(chain.name, type_id), site, index)


def _resolve_module_path(site: CallSite, index: ItemIndex) -> str | _Miss:
    """module::f(), crate::a::f(), module::TupleStruct()."""
    path = site.receiver_text.replace(" ", "")
    module = index.resolve_module(path, site.module_path)
    if module is None:
        if index.is_external_name(path, site.module_path):
            return _Miss(UnresolvedReason.EXTERNAL_SYMBOL, path)
        # lowercase type paths are rare but legal
        type_id = index.resolve_type(path, site.module_path, site.self_type)
        if type_id is not None:
            return _resolve_member(_TypeRef(path, type_id), site, index)
        return _Miss(UnresolvedReason.EXTERNAL_SYMBOL, path)

    found = index.module_function(module, site.method_name)
    if found is not None:
        return found
    constructor = _tuple_struct(f"{module}{ID_SEPARATOR}{site.method_name}", module, index)
    if constructor is not None:
        return constructor
    return _Miss(UnresolvedReason.NO_MATCHING_MEMBER, module)


def _resolve_bare(site: CallSite, index: ItemIndex) -> str | _Miss:
    """f(): module function, imports, glob imports, tuple-struct constructor."""
    receiver_type = site.receiver_hint.value
    if site.callee_bound_locally:
        return _Miss(UnresolvedReason.AMBIGUOUS_BINDING, receiver_type)

    found = index.resolve_function(site.method_name, site.module_path, site.file)
    if found is not None:
        return found

    constructor = _tuple_struct(site.method_name, site.module_path, index)
    if constructor is not None:
        return constructor

    if index.is_external_name(site.method_name, site.module_path):
        return _Miss(UnresolvedReason.EXTERNAL_SYMBOL, receiver_type)
    return _Miss(UnresolvedReason.NO_MATCHING_MEMBER, receiver_type)


# =============================================================================
# Receiver chains
# =============================================================================


def _chain_root(
    chain: ReceiverChain,
    site: CallSite,
    index: ItemIndex,
    registry: TypeRegistry,
) -> _TypeRef | _Miss:
    match chain.root:
        case ChainRoot.SELF:
            return _self_ref(site, index)

        case ChainRoot.TYPE:
            if chain.is_generic:
                return _TypeRef(chain.name, None, chain.bounds)
            if chain.name == _SELF:
                return _self_ref(site, index)
            bounds = parse_bounded_name(chain.name)
            if bounds is not None:
                return _TypeRef(chain.name, None, bounds)
            return _TypeRef(chain.name, index.resolve_type(chain.name, site.module_path, site.self_type))

        case ChainRoot.FUNCTION:
            return _function_result(chain.name, site, index, registry)

        case ChainRoot.STATIC:
            return _static_type(chain.name, site, index, registry)

        case _:
            return _Miss(UnresolvedReason.AMBIGUOUS_BINDING, site.receiver_hint.value)


def _self_ref(site: CallSite, index: ItemIndex) -> _TypeRef | _Miss:
    if site.self_type is None:
        return _Miss(UnresolvedReason.AMBIGUOUS_BINDING, _SELF)
    return _TypeRef(site.self_type, index.resolve_type(site.self_type, site.module_path))


def _function_result(
    name: str,
    site: CallSite,
    index: ItemIndex,
    registry: TypeRegistry,
) -> _TypeRef | _Miss:
    """Type produced by calling a free function or tuple-struct constructor."""
    if ID_SEPARATOR in name:
        module = index.resolve_module(parent_id(name), site.module_path)
        function_id = index.module_function(module, last_segment(name)) if module else None
    else:
        function_id = index.resolve_function(name, site.module_path, site.file)

    if function_id is not None:
        item = index.items.get(function_id)
        callee = item.name if item is not None else last_segment(name)
        value = registry.return_type(parent_id(function_id), callee)
        if value is not None:
            return _type_ref(value, site, index)
        return _Miss(UnresolvedReason.AMBIGUOUS_BINDING, name)

    constructor = _tuple_struct(name, site.module_path, index)
    if constructor is not None:
        return _TypeRef(name, constructor)
    return _Miss(UnresolvedReason.AMBIGUOUS_BINDING, name)


def _static_type(
    name: str,
    site: CallSite,
    index: ItemIndex,
    registry: TypeRegistry,
) -> _TypeRef | _Miss:
    """Type of a const or static referenced by name or path."""
    candidates: list[tuple[str, str]] = []
    if ID_SEPARATOR in name:
        module = index.resolve_module(parent_id(name), site.module_path)
        if module is not None:
            candidates.append((module, last_segment(name)))
    else:
        candidates.append((site.module_path, name))
        imported = index.uses.get(site.module_path, {}).get(name)
        if imported is not None:
            candidates.append((parent_id(imported), last_segment(imported)))

    for owner, member in candidates:
        value = registry.field_type(owner, member)
        if value is not None:
            return _type_ref(value, site, index)
    return _Miss(UnresolvedReason.AMBIGUOUS_BINDING, name)


def _step(
    current: _TypeRef,
    step: ChainStep,
    site: CallSite,
    index: ItemIndex,
    registry: TypeRegistry,
) -> _TypeRef | _Miss:
    """Apply one field access or method call to a receiver type."""
    if step.kind is StepKind.CALL and step.name in PASSTHROUGH_METHODS:
        value = registry.return_type(current.type_id, step.name) if current.type_id else None
        return _type_ref(value, site, index) if value else current

    if current.bounds is not None:
        if step.kind is StepKind.CALL:
            for bound in current.bounds:
                trait_id = index.resolve_type(bound, site.module_path, site.self_type)
                value = registry.return_type(trait_id, step.name) if trait_id else None
                if value is not None:
                    return _type_ref(value, site, index)
        return _Miss(UnresolvedReason.AMBIGUOUS_BINDING, current.name)

    if current.type_id is None:
        return _Miss(UnresolvedReason.AMBIGUOUS_BINDING, current.name)

    if step.kind is StepKind.FIELD:
        value = registry.field_type(current.type_id, step.name)
        if value is not None:
            return _type_ref(value, site, index)
        return _Miss(UnresolvedReason.AMBIGUOUS_BINDING, current.type_id)

    value = registry.return_type(current.type_id, step.name)
    if value is not None:
        return _type_ref(value, site, index)

    # trait default methods register under the trait
    for trait_id in index.implemented_traits(current.type_id):
        value = registry.return_type(trait_id, step.name)
        if value is not None:
            return _type_ref(value, site, index)

    # enum variant and tuple-struct constructors produce the type itself
    decl = index.type_decl(current.type_id)
    if decl is not None and step.name in decl.variants:
        return current

    return _Miss(UnresolvedReason.AMBIGUOUS_BINDING, current.type_id)


def _type_ref(value: str, site: CallSite, index: ItemIndex) -> _TypeRef:
    """Registry value → receiver type."""
    bounds = parse_bounded_name(value)
    if bounds is not None:
        return _TypeRef(value, None, bounds)
    if value in index.types:
        return _TypeRef(value, value)
    return _TypeRef(value, index.resolve_type(value, site.module_path, site.self_type))


def _resolve_member(current: _TypeRef, site: CallSite, index: ItemIndex) -> str | _Miss:
    """Find site.method_name on the final receiver type."""
    method = site.method_name

    if current.bounds is not None:
        for bound in current.bounds:
            trait_id = index.resolve_type(bound, site.module_path, site.self_type)
            if trait_id is None or not index.is_trait(trait_id):
                continue
            found = index.trait_method(trait_id, method)
            if found is not None:
                return found
        return _Miss(UnresolvedReason.UNBOUND_GENERIC, current.name)

    if current.type_id is None:
        if current.name == _SELF or index.is_external_name(current.name, site.module_path):
            return _Miss(UnresolvedReason.EXTERNAL_SYMBOL, current.name)
        return _Miss(UnresolvedReason.UNKNOWN_TYPE, current.name)

    found = index.lookup_method(current.type_id, method)
    if found is not None:
        return found

    decl = index.type_decl(current.type_id)
    if decl is not None and method in decl.variants:
        return current.type_id

    # Wrapper types are stripped at registration, so the real receiver of
    # unwrap() and the other passthrough methods lives outside the tree.
    if method in PASSTHROUGH_METHODS:
        return _Miss(UnresolvedReason.EXTERNAL_SYMBOL, current.type_id)
    return _Miss(UnresolvedReason.NO_MATCHING_MEMBER, current.type_id)


def _tuple_struct(name: str, module_path: str, index: ItemIndex) -> str | None:
    """Tuple struct callable as ``Name(..)`` from module_path."""
    type_id = index.resolve_type(name, module_path)
    if type_id is None:
        return None
    decl = index.type_decl(type_id)
    if decl is None or decl.kind is not ItemKind.STRUCT or not decl.is_tuple:
        return None
    return type_id

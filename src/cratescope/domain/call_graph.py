"""Domain layer: call sites and the static call graph.

Immutable value objects representing call relationships found in source code.
Data Completeness: every call site ends up as exactly one resolved edge or
one unresolved edge, never dropped.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping


class CallContextType(Enum):
    """Innermost lexically enclosing control construct of a call."""

    NORMAL = "normal"
    IF = "if"
    ELSE = "else"
    MATCH_ARM = "match_arm"
    LOOP = "loop"
    WHILE = "while"
    FOR = "for"


@dataclass(frozen=True, slots=True)
class CallContext:
    """Control-flow provenance of a call site.

    Examples:
        if hp > 0 { a.heal() }        → CallContext(IF, condition="hp > 0")
        match s { Some(x) => x.f() }  → CallContext(MATCH_ARM, condition="s",
                                                    arm_pattern="Some(x)")
        for u in units { u.f() }      → CallContext(FOR, condition="u in units")
    """

    type: CallContextType = CallContextType.NORMAL
    condition: str | None = None
    arm_pattern: str | None = None

    @classmethod
    def normal(cls) -> CallContext:
        """Context of a call outside any control construct."""
        return _NORMAL


_NORMAL = CallContext()


class ReceiverHint(Enum):
    """Coarse classification of a call's receiver.

    SELF_REF:      self.heal(), self.pos.norm()
    EXPLICIT_TYPE: Unit::new(), Self::new(), <T as Trait>::f()
    LOCAL_VAR:     unit.heal(), make().heal(), a.b.c()
    MODULE_PATH:   utils::helper(), crate::a::run()
    UNKNOWN:       run() (no receiver)
    """

    SELF_REF = "self_ref"
    EXPLICIT_TYPE = "explicit_type"
    LOCAL_VAR = "local_var"
    MODULE_PATH = "module_path"
    UNKNOWN = "unknown"


class ChainRoot(Enum):
    """Where a receiver chain starts."""

    SELF = "self"
    TYPE = "type"
    FUNCTION = "function"
    STATIC = "static"
    UNKNOWN = "unknown"


class StepKind(Enum):
    """Single link of a receiver chain."""

    FIELD = "field"
    CALL = "call"


@dataclass(frozen=True, slots=True)
class ChainStep:
    """Field access (``.hp``) or method call (``.get()``) applied to a value."""

    kind: StepKind
    name: str


@dataclass(frozen=True, slots=True)
class ReceiverChain:
    """Recipe for computing a receiver's type.

    The root gives a starting type, each step maps a type to the next one
    through the type registry.

    Examples:
        unit: &Unit; unit.heal()        → ReceiverChain(TYPE, "Unit")
        let u = Unit::new(); u.heal()   → ReceiverChain(TYPE, "Unit", steps=(CALL new,))
        self.pos.norm()                 → ReceiverChain(SELF, steps=(FIELD pos,))
        fn f<T: Speak>(t: T) { t.say() } → ReceiverChain(TYPE, "T", bounds=("Speak",),
                                                         generic=True)
        let x = make(); x.run()         → ReceiverChain(FUNCTION, "make")
        CONFIG.get()                    → ReceiverChain(STATIC, "CONFIG")

    Attributes:
        root: Root kind
        name: Type path, function path or static name (empty for SELF/UNKNOWN)
        bounds: Trait bounds when the root type is generic, impl Trait or dyn Trait
        steps: Field/call links applied after the root
        generic: Root is a type parameter, impl Trait or dyn Trait (bounds may be empty)
    """

    root: ChainRoot
    name: str = ""
    bounds: tuple[str, ...] = ()
    steps: tuple[ChainStep, ...] = ()
    generic: bool = False

    def extend(self, step: ChainStep) -> ReceiverChain:
        """Return a new chain with one more step."""
        return ReceiverChain(self.root, self.name, self.bounds, (*self.steps, step), self.generic)

    @property
    def is_generic(self) -> bool:
        """True when the root type is only known through its trait bounds."""
        return self.root is ChainRoot.TYPE and self.generic

    @classmethod
    def unknown(cls) -> ReceiverChain:
        """Chain for a receiver whose origin cannot be determined."""
        return _UNKNOWN_CHAIN


_UNKNOWN_CHAIN = ReceiverChain(ChainRoot.UNKNOWN)


@dataclass(frozen=True, slots=True)
class CallSite:
    """Raw call expression as seen in source.

    Resolution to a qualified target happens in call_resolver.

    Attributes:
        from_id: Qualified id of the enclosing function
        file: Source path relative to the collection root
        line: Line of the called member name
        receiver_text: Receiver as written ("" for bare calls)
        receiver_hint: Coarse receiver classification
        method_name: Called member name
        context: Innermost control-flow context
        module_path: Module the call appears in
        self_type: Implementing type or trait name when inside impl/trait
        receiver_chain: How to compute the receiver type (None for bare and
            module-path calls)
        callee_bound_locally: Bare call whose callee is a local binding (closure)
    """

    from_id: str
    file: str
    line: int
    receiver_text: str
    receiver_hint: ReceiverHint
    method_name: str
    context: CallContext = field(default_factory=CallContext.normal)
    module_path: str = ""
    self_type: str | None = None
    receiver_chain: ReceiverChain | None = None
    callee_bound_locally: bool = False


@dataclass(frozen=True, slots=True)
class CallEdge:
    """Resolved call: caller → callee, both qualified item ids."""

    from_id: str
    to_id: str
    file: str
    line: int
    context: CallContext = field(default_factory=CallContext.normal)

    @property
    def sort_key(self) -> tuple[str, int, str]:
        """Canonical ordering key."""
        return (self.from_id, self.line, self.to_id)


class UnresolvedReason(Enum):
    """Why a call site could not be resolved. Closed set."""

    UNKNOWN_TYPE = "unknown_type"
    EXTERNAL_SYMBOL = "external_symbol"
    UNBOUND_GENERIC = "unbound_generic"
    AMBIGUOUS_BINDING = "ambiguous_binding"
    NO_MATCHING_MEMBER = "no_matching_member"


@dataclass(frozen=True, slots=True)
class UnresolvedEdge:
    """Call site that could not be resolved to a declared item.

    Data Completeness: track what we couldn't resolve and why.

    Attributes:
        from_id: Qualified id of the enclosing function
        file: Source path relative to the collection root
        line: Line of the call
        receiver_type: Best known receiver type, or the receiver hint value
        receiver_text: Receiver as written
        method: Called member name
        reason: Closed-set reason
    """

    from_id: str
    file: str
    line: int
    receiver_type: str
    receiver_text: str
    method: str
    reason: UnresolvedReason

    @property
    def sort_key(self) -> tuple[str, int, str]:
        """Canonical ordering key."""
        return (self.from_id, self.line, self.method)


@dataclass(frozen=True, slots=True)
class CallGraph:
    """Static call graph of one run.

    edges: resolved calls, sorted canonically
    unresolved: calls we couldn't resolve (Data Completeness), sorted canonically
    """

    edges: tuple[CallEdge, ...]
    unresolved: tuple[UnresolvedEdge, ...]

    @classmethod
    def empty(cls) -> CallGraph:
        """Create empty graph for tests or empty trees."""
        return cls(edges=(), unresolved=())

    @property
    def call_site_count(self) -> int:
        """Number of call sites accounted for."""
        return len(self.edges) + len(self.unresolved)

    def unresolved_by_reason(self) -> Mapping[str, int]:
        """Count unresolved edges per reason, every reason present."""
        counts = {reason.value: 0 for reason in UnresolvedReason}
        for edge in self.unresolved:
            counts[edge.reason.value] += 1
        return MappingProxyType(counts)

"""Function body analyzer: raw call sites with receiver chains.

Walks a function body in source order, tracking local bindings (parameters,
let, for/match/if-let patterns, closure parameters) and the innermost
control-flow construct. Every call_expression becomes one CallSite.

Does NOT enter nested item declarations or macro token trees.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from cratescope.domain.call_graph import (
    CallContext,
    CallContextType,
    CallSite,
    ChainRoot,
    ChainStep,
    ReceiverChain,
    ReceiverHint,
    StepKind,
)
from cratescope.domain.items import join_id, last_segment
from cratescope.infrastructure.analyzers.base import (
    NESTED_ITEM_NODES,
    bound_names,
    collapse_whitespace,
    line_of,
    node_text,
    pattern_bindings,
    strip_generics,
    type_name,
    unwrap_type,
)
from cratescope.infrastructure.analyzers.context import AnalysisContext

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from tree_sitter import Node

# Local name → how to compute its type (None = bound, type unknown)
Bindings = dict[str, ReceiverChain | None]

_LITERAL_TYPES = {
    "string_literal": "str",
    "raw_string_literal": "str",
    "integer_literal": "i32",
    "float_literal": "f64",
    "boolean_literal": "bool",
    "char_literal": "char",
}

_MACRO_TYPES = {"format": "String", "vec": "Vec"}

_TRANSPARENT_EXPRESSIONS = frozenset(
    {"try_expression", "parenthesized_expression", "unary_expression", "await_expression"}
)

_SELF_TYPE = "Self"

# Method names reported for calls whose callee is not a path
_CLOSURE_CALLEE = "<closure>"
_EXPR_CALLEE = "<expr>"


@dataclass(frozen=True, slots=True)
class FunctionScope:
    """Static facts about the function whose body is analyzed.

    Attributes:
        function_id: Qualified id of the function (CallSite.from_id)
        module_path: Module the function is declared in
        file: Source path relative to the collection root
        self_type: Implementing type or trait name, None for free functions
        generics: Generic parameter → trait bounds, including impl/trait level
        parameters: Parameter bindings
    """

    function_id: str
    module_path: str
    file: str
    self_type: str | None
    generics: Mapping[str, tuple[str, ...]]
    parameters: Mapping[str, ReceiverChain | None]


def chain_for_type(
    node: Node | None,
    generics: Mapping[str, tuple[str, ...]],
) -> ReceiverChain | None:
    """Receiver chain rooted at a written type.

    Examples (generics={"T": ("Speak",)}):
        &mut Unit      → TYPE "Unit"
        Arc<Unit>      → TYPE "Unit"
        T              → TYPE "T", bounds ("Speak",), generic
        &dyn Speak     → TYPE "dyn Speak", bounds ("Speak",), generic
        (i32, i32)     → None
    """
    if node is None:
        return None
    core = unwrap_type(node)
    match core.type:
        case "abstract_type" | "dynamic_type":
            bounds = bound_names(core.child_by_field_name("trait"))
            return ReceiverChain(ChainRoot.TYPE, type_name(core) or "", bounds, generic=True)
        case "type_identifier":
            name = node_text(core)
            if name in generics:
                return ReceiverChain(ChainRoot.TYPE, name, generics[name], generic=True)
            return ReceiverChain(ChainRoot.TYPE, name)
        case "scoped_type_identifier" | "primitive_type" | "generic_type":
            name = type_name(core)
            return ReceiverChain(ChainRoot.TYPE, name) if name else None
        case _:
            return None


class BodyAnalyzer:
    """Extracts raw call sites from a function body.

    Stateless - no state between analyze() calls.
    """

    def analyze(self, body: Node, scope: FunctionScope) -> tuple[CallSite, ...]:
        """Analyze one function body.

        Args:
            body: Function body block
            scope: Enclosing function facts

        Returns:
            Call sites in traversal order
        """
        walker = _BodyWalker(scope)
        walker.walk(body)
        return tuple(walker.calls)


class _BodyWalker:
    """Single-use walker over one function body."""

    def __init__(self, scope: FunctionScope) -> None:
        self.scope = scope
        self.context = AnalysisContext()
        self.calls: list[CallSite] = []
        self._scopes: list[Bindings] = [dict(scope.parameters)]

    # -------------------------------------------------------------------------
    # Traversal
    # -------------------------------------------------------------------------

    def walk(self, node: Node | None) -> None:
        if node is None:
            return
        match node.type:
            case "macro_invocation" | "line_comment" | "block_comment":
                return
            case kind if kind in NESTED_ITEM_NODES:
                return
            case "call_expression":
                self._record_call(node)
                self._walk_children(node)
            case "let_declaration":
                self._let(node)
            case "block":
                self._scoped(lambda: self._walk_children(node))
            case "if_expression":
                self._if(node)
            case "match_expression":
                self._match(node)
            case "while_expression":
                self._while(node)
            case "loop_expression":
                self._control(
                    CallContext(CallContextType.LOOP), node.child_by_field_name("body")
                )
            case "for_expression":
                self._for(node)
            case "closure_expression":
                self._closure(node)
            case _:
                self._walk_children(node)

    def _walk_children(self, node: Node) -> None:
        for child in node.named_children:
            self.walk(child)

    def _scoped(self, action: Callable[[], None]) -> None:
        self._scopes.append({})
        try:
            action()
        finally:
            self._scopes.pop()

    def _control(self, call_context: CallContext, node: Node | None) -> None:
        self.context.push(call_context)
        try:
            self.walk(node)
        finally:
            self.context.pop()

    def _let(self, node: Node) -> None:
        value = node.child_by_field_name("value")
        self.walk(value)
        self.walk(node.child_by_field_name("alternative"))

        pattern = node.child_by_field_name("pattern")
        type_node = node.child_by_field_name("type")
        if type_node is not None:
            chain = chain_for_type(type_node, self.scope.generics)
        elif value is not None:
            chain = self._chain_for_expr(value)
            if chain.root is ChainRoot.UNKNOWN:
                chain = None
        else:
            chain = None

        if pattern is not None and pattern.type == "identifier":
            self._bind(node_text(pattern), chain)
        else:
            for name in pattern_bindings(pattern):
                self._bind(name, None)

    def _if(self, node: Node) -> None:
        condition = node.child_by_field_name("condition")
        condition_text = collapse_whitespace(node_text(condition))

        def consequence() -> None:
            self.walk(condition)
            self._bind_condition(condition)
            self._control(
                CallContext(CallContextType.IF, condition=condition_text),
                node.child_by_field_name("consequence"),
            )

        self._scoped(consequence)

        alternative = node.child_by_field_name("alternative")
        if alternative is None:
            return
        branch = alternative.named_children[0] if alternative.named_children else None
        self._control(CallContext(CallContextType.ELSE, condition=condition_text), branch)

    def _match(self, node: Node) -> None:
        value = node.child_by_field_name("value")
        self.walk(value)
        value_text = collapse_whitespace(node_text(value))

        body = node.child_by_field_name("body")
        if body is None:
            return
        for arm in body.named_children:
            if arm.type != "match_arm":
                continue
            pattern = arm.child_by_field_name("pattern")
            arm_context = CallContext(
                CallContextType.MATCH_ARM,
                condition=value_text,
                arm_pattern=collapse_whitespace(node_text(pattern)),
            )

            def walk_arm() -> None:
                for name in pattern_bindings(pattern):
                    self._bind(name, None)
                self.context.push(arm_context)
                try:
                    # guard expressions live inside the pattern node
                    self.walk(pattern)
                    self.walk(arm.child_by_field_name("value"))
                finally:
                    self.context.pop()

            self._scoped(walk_arm)

    def _while(self, node: Node) -> None:
        condition = node.child_by_field_name("condition")
        condition_text = collapse_whitespace(node_text(condition))

        def loop() -> None:
            self.walk(condition)
            self._bind_condition(condition)
            self._control(
                CallContext(CallContextType.WHILE, condition=condition_text),
                node.child_by_field_name("body"),
            )

        self._scoped(loop)

    def _for(self, node: Node) -> None:
        pattern = node.child_by_field_name("pattern")
        value = node.child_by_field_name("value")
        self.walk(value)
        condition_text = collapse_whitespace(f"{node_text(pattern)} in {node_text(value)}")

        def loop() -> None:
            for name in pattern_bindings(pattern):
                self._bind(name, None)
            self._control(
                CallContext(CallContextType.FOR, condition=condition_text),
                node.child_by_field_name("body"),
            )

        self._scoped(loop)

    def _closure(self, node: Node) -> None:
        def body() -> None:
            parameters = node.child_by_field_name("parameters")
            if parameters is not None:
                for param in parameters.named_children:
                    if param.type == "parameter":
                        chain = chain_for_type(
                            param.child_by_field_name("type"), self.scope.generics
                        )
                        inner = param.child_by_field_name("pattern")
                        if inner is not None and inner.type == "identifier":
                            self._bind(node_text(inner), chain)
                            continue
                        for name in pattern_bindings(inner):
                            self._bind(name, None)
                    else:
                        for name in pattern_bindings(param):
                            self._bind(name, None)
            self.walk(node.child_by_field_name("body"))

        self._scoped(body)

    def _bind_condition(self, condition: Node | None) -> None:
        """Bind names of ``if let`` / ``while let`` patterns (type unknown)."""
        if condition is None:
            return
        match condition.type:
            case "let_condition":
                for name in pattern_bindings(condition.child_by_field_name("pattern")):
                    self._bind(name, None)
            case "let_chain":
                for child in condition.named_children:
                    self._bind_condition(child)
            case _:
                pass

    # -------------------------------------------------------------------------
    # Bindings
    # -------------------------------------------------------------------------

    def _bind(self, name: str, chain: ReceiverChain | None) -> None:
        self._scopes[-1][name] = chain

    def _lookup(self, name: str) -> tuple[bool, ReceiverChain | None]:
        for bindings in reversed(self._scopes):
            if name in bindings:
                return True, bindings[name]
        return False, None

    # -------------------------------------------------------------------------
    # Call sites
    # -------------------------------------------------------------------------

    def _record_call(self, node: Node) -> None:
        function = node.child_by_field_name("function")
        if function is None:
            return
        if function.type == "generic_function":
            function = function.child_by_field_name("function") or function

        scope = self.scope
        receiver_text = ""
        chain: ReceiverChain | None = None
        bound_locally = False

        match function.type:
            case "field_expression":
                receiver = function.child_by_field_name("value")
                member = function.child_by_field_name("field")
                method_name = node_text(member)
                line = line_of(member) if member is not None else line_of(function)
                receiver_text = collapse_whitespace(node_text(receiver))
                chain = self._chain_for_expr(receiver)
                hint = ReceiverHint.SELF_REF if chain.root is ChainRoot.SELF else ReceiverHint.LOCAL_VAR

            case "identifier":
                method_name = node_text(function)
                line = line_of(function)
                hint = ReceiverHint.UNKNOWN
                bound_locally, _chain = self._lookup(method_name)

            case "scoped_identifier":
                member = function.child_by_field_name("name")
                method_name = node_text(member)
                line = line_of(member) if member is not None else line_of(function)
                path = function.child_by_field_name("path")
                receiver_text = collapse_whitespace(node_text(path))
                chain = self._type_path_chain(path)
                hint = ReceiverHint.MODULE_PATH if chain is None else ReceiverHint.EXPLICIT_TYPE

            case _:
                # Callee is a computed value: (|| x())(), f()(), table[i]()
                callee = function
                while callee.type == "parenthesized_expression" and callee.named_child_count:
                    callee = callee.named_children[0]
                is_closure = callee.type == "closure_expression"
                method_name = _CLOSURE_CALLEE if is_closure else _EXPR_CALLEE
                line = line_of(function)
                receiver_text = collapse_whitespace(node_text(function))
                hint = ReceiverHint.UNKNOWN
                bound_locally = True

        self.calls.append(
            CallSite(
                from_id=scope.function_id,
                file=scope.file,
                line=line,
                receiver_text=receiver_text,
                receiver_hint=hint,
                method_name=method_name,
                context=self.context.call_context,
                module_path=scope.module_path,
                self_type=scope.self_type,
                receiver_chain=chain,
                callee_bound_locally=bound_locally,
            )
        )

    def _type_path_chain(self, path: Node | None) -> ReceiverChain | None:
        """Chain for the path of ``Path::member``, None when it names a module.

        Self, generic parameters, ``<T as Trait>`` and capitalized last
        segments are types; everything else is a module path.
        """
        if path is None:
            return None

        if path.type == "bracketed_type":
            inner = path.named_children[0] if path.named_children else None
            if inner is not None and inner.type == "qualified_type":
                chain = chain_for_type(inner.child_by_field_name("type"), self.scope.generics)
                trait = strip_generics(node_text(inner.child_by_field_name("alias")))
                if chain is None or chain.is_generic:
                    bounds = (trait, *(chain.bounds if chain else ()))
                    return ReceiverChain(ChainRoot.TYPE, trait, bounds, generic=True)
                return chain
            return chain_for_type(inner, self.scope.generics) or ReceiverChain.unknown()

        text = strip_generics(node_text(path))
        if text in self.scope.generics:
            return ReceiverChain(ChainRoot.TYPE, text, self.scope.generics[text], generic=True)
        if text == _SELF_TYPE or last_segment(text)[:1].isupper():
            return ReceiverChain(ChainRoot.TYPE, text)
        return None

    def _chain_for_expr(self, expr: Node | None) -> ReceiverChain:
        """How to compute the type of a receiver expression."""
        if expr is None:
            return ReceiverChain.unknown()

        match expr.type:
            case "self":
                return ReceiverChain(ChainRoot.SELF)

            case "identifier":
                name = node_text(expr)
                bound, chain = self._lookup(name)
                if bound:
                    return chain if chain is not None else ReceiverChain.unknown()
                return ReceiverChain(ChainRoot.STATIC, name)

            case "scoped_identifier":
                return ReceiverChain(ChainRoot.STATIC, strip_generics(node_text(expr)))

            case "field_expression":
                base = self._chain_for_expr(expr.child_by_field_name("value"))
                if base.root is ChainRoot.UNKNOWN:
                    return base
                field_name = node_text(expr.child_by_field_name("field"))
                return base.extend(ChainStep(StepKind.FIELD, field_name))

            case "call_expression":
                return self._chain_for_call(expr)

            case "reference_expression":
                return self._chain_for_expr(expr.child_by_field_name("value"))

            case kind if kind in _TRANSPARENT_EXPRESSIONS:
                inner = expr.named_children[0] if expr.named_children else None
                return self._chain_for_expr(inner)

            case "struct_expression":
                name = strip_generics(node_text(expr.child_by_field_name("name")))
                return ReceiverChain(ChainRoot.TYPE, name) if name else ReceiverChain.unknown()

            case "type_cast_expression":
                chain = chain_for_type(expr.child_by_field_name("type"), self.scope.generics)
                return chain or ReceiverChain.unknown()

            case "macro_invocation":
                macro = node_text(expr.child_by_field_name("macro"))
                if macro in _MACRO_TYPES:
                    return ReceiverChain(ChainRoot.TYPE, _MACRO_TYPES[macro])
                return ReceiverChain.unknown()

            case kind if kind in _LITERAL_TYPES:
                return ReceiverChain(ChainRoot.TYPE, _LITERAL_TYPES[kind])

            case _:
                return ReceiverChain.unknown()

    def _chain_for_call(self, expr: Node) -> ReceiverChain:
        function = expr.child_by_field_name("function")
        if function is not None and function.type == "generic_function":
            function = function.child_by_field_name("function")
        if function is None:
            return ReceiverChain.unknown()

        match function.type:
            case "field_expression":
                base = self._chain_for_expr(function.child_by_field_name("value"))
                if base.root is ChainRoot.UNKNOWN:
                    return base
                method = node_text(function.child_by_field_name("field"))
                return base.extend(ChainStep(StepKind.CALL, method))

            case "identifier":
                name = node_text(function)
                bound, _chain = self._lookup(name)
                if bound:
                    return ReceiverChain.unknown()
                return ReceiverChain(ChainRoot.FUNCTION, name)

            case "scoped_identifier":
                member = node_text(function.child_by_field_name("name"))
                path = function.child_by_field_name("path")
                type_chain = self._type_path_chain(path)
                if type_chain is None:
                    path_text = strip_generics(node_text(path))
                    return ReceiverChain(ChainRoot.FUNCTION, join_id(path_text, member))
                if type_chain.root is ChainRoot.UNKNOWN:
                    return type_chain
                return type_chain.extend(ChainStep(StepKind.CALL, member))

            case _:
                return ReceiverChain.unknown()

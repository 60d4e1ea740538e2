"""Stack-based control-flow tracking for function body traversal."""

from __future__ import annotations

from dataclasses import dataclass, field

from cratescope.domain.call_graph import CallContext


@dataclass(slots=True)
class AnalysisContext:
    """Control-flow constructs enclosing the expression being walked.

    Mutable - push/pop during traversal. Closures push nothing, so calls
    inside a closure keep the context the closure is written in.

    Attributes:
        _stack: Entered constructs, innermost last
    """

    _stack: list[CallContext] = field(default_factory=list)

    def push(self, call_context: CallContext) -> None:
        """Enter if/else/match arm/loop/while/for. O(1).

        Raises:
            TypeError: If call_context is not a CallContext (FAIL-FIRST)
        """
        if not isinstance(call_context, CallContext):
            raise TypeError(
                f"call_context must be CallContext, got {type(call_context).__name__}"
            )
        self._stack.append(call_context)

    def pop(self) -> CallContext:
        """Exit the innermost construct. O(1).

        Raises:
            IndexError: If stack is empty
        """
        if not self._stack:
            raise IndexError("cannot pop from empty context stack")
        return self._stack.pop()

    @property
    def call_context(self) -> CallContext:
        """Innermost control-flow context, NORMAL outside any construct. O(1)."""
        return self._stack[-1] if self._stack else CallContext.normal()

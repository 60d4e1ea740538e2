"""Tests for infrastructure/analyzers/context.py."""

import pytest

from cratescope.domain.call_graph import CallContext, CallContextType
from cratescope.infrastructure.analyzers.context import AnalysisContext

LOOP = CallContext(CallContextType.LOOP)
IF = CallContext(CallContextType.IF, condition="hp > 0")


class TestAnalysisContext:
    """Tests for push/pop and call_context."""

    def test_empty_is_normal(self) -> None:
        assert AnalysisContext().call_context == CallContext.normal()

    def test_innermost_wins(self) -> None:
        ctx = AnalysisContext()

        ctx.push(LOOP)
        ctx.push(IF)

        assert ctx.call_context == IF

    def test_pop_restores_outer(self) -> None:
        ctx = AnalysisContext()
        ctx.push(LOOP)
        ctx.push(IF)

        assert ctx.pop() == IF
        assert ctx.call_context == LOOP
        assert ctx.pop() == LOOP
        assert ctx.call_context == CallContext.normal()


class TestAnalysisContextValidation:
    """FAIL-FIRST on misuse."""

    def test_push_rejects_non_call_context(self) -> None:
        with pytest.raises(TypeError, match="CallContext"):
            AnalysisContext().push("loop")  # type: ignore[arg-type]

    def test_pop_empty(self) -> None:
        with pytest.raises(IndexError, match="empty"):
            AnalysisContext().pop()

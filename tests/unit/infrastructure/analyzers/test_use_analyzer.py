"""Tests for infrastructure/analyzers/use_analyzer.py (via extraction)."""

from tests.factories import extract


def _uses(source: str, path: str = "x.rs") -> list[tuple[str, str]]:
    return [(use.alias, use.target) for use in extract(source, path).uses]


class TestUseAnalyzer:
    """Tests for use declaration flattening."""

    def test_simple(self) -> None:
        assert _uses("use crate::a::Unit;") == [("Unit", "crate::a::Unit")]

    def test_alias(self) -> None:
        assert _uses("use std::fmt::Display as D;") == [("D", "std::fmt::Display")]

    def test_grouped_with_super(self) -> None:
        uses = _uses("use super::{b, c::E};", path="x/y.rs")

        assert uses == [("b", "crate::x::b"), ("E", "crate::x::c::E")]

    def test_glob_with_self(self) -> None:
        assert _uses("use self::inner::*;") == [("*", "crate::x::inner")]

    def test_glob_super(self) -> None:
        assert _uses("use super::*;", path="a/b.rs") == [("*", "crate::a")]

    def test_external_crate_kept_as_is(self) -> None:
        assert _uses("use serde::Serialize;") == [("Serialize", "serde::Serialize")]

    def test_nested_groups(self) -> None:
        uses = _uses("use crate::a::{b::{C, D}, E};")

        assert uses == [("C", "crate::a::b::C"), ("D", "crate::a::b::D"), ("E", "crate::a::E")]

    def test_module_path_recorded(self) -> None:
        extraction = extract("use crate::a::Unit;", "combat/mod.rs")

        assert extraction.uses[0].module_path == "crate::combat"

    def test_use_inside_inline_module(self) -> None:
        extraction = extract("mod inner { use super::Unit; }", "x.rs")

        assert [(u.module_path, u.alias, u.target) for u in extraction.uses] == [
            ("crate::x::inner", "Unit", "crate::x::Unit")
        ]

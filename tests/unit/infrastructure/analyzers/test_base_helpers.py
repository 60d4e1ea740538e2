"""Tests for infrastructure/analyzers/base.py string helpers."""

import pytest

from cratescope.infrastructure.analyzers.base import (
    attribute_path,
    collapse_whitespace,
    compute_module_path,
    is_test_attribute,
    parse_bounded_name,
    strip_generics,
)


class TestComputeModulePath:
    """Tests for compute_module_path()."""

    @pytest.mark.parametrize(
        ("relative", "expected"),
        [
            ("lib.rs", "crate"),
            ("main.rs", "crate"),
            ("a.rs", "crate::a"),
            ("a/mod.rs", "crate::a"),
            ("a/b/mod.rs", "crate::a::b"),
            ("a/b/c.rs", "crate::a::b::c"),
            ("a/lib.rs", "crate::a::lib"),
            ("mod.rs", "crate"),
        ],
    )
    def test_paths(self, relative: str, expected: str) -> None:
        assert compute_module_path(relative, "crate") == expected

    def test_custom_crate_name(self) -> None:
        assert compute_module_path("combat/unit.rs", "game") == "game::combat::unit"


class TestAttributes:
    """Tests for attribute_path() and is_test_attribute()."""

    def test_attribute_path(self) -> None:
        assert attribute_path("#[test]") == "test"
        assert attribute_path('#[tokio::test(flavor = "multi_thread")]') == "tokio::test"
        assert attribute_path("#[cfg(test)]") == "cfg"
        assert attribute_path("#![allow(dead_code)]") == "allow"

    @pytest.mark.parametrize(
        "attribute",
        ["#[test]", "#[tokio::test]", "#[async_std::test]", "#[rstest]", "#[ tokio::test ]"],
    )
    def test_test_markers(self, attribute: str) -> None:
        assert is_test_attribute(attribute)

    @pytest.mark.parametrize(
        "attribute",
        ["#[cfg(test)]", "#[derive(Debug)]", "#[inline]", "#[testing]", "#[should_panic]"],
    )
    def test_non_test_markers(self, attribute: str) -> None:
        assert not is_test_attribute(attribute)


class TestTypeNames:
    """Tests for strip_generics() and parse_bounded_name()."""

    def test_strip_generics(self) -> None:
        assert strip_generics("Vec<T>") == "Vec"
        assert strip_generics("HashMap<K, Vec<V>>") == "HashMap"
        assert strip_generics("Vec::<T>::new") == "Vec::new"
        assert strip_generics("crate::a::Unit") == "crate::a::Unit"

    def test_parse_bounded_name(self) -> None:
        assert parse_bounded_name("impl Speak") == ("Speak",)
        assert parse_bounded_name("dyn Speak + Clone") == ("Speak", "Clone")
        assert parse_bounded_name("crate::a::Unit") is None

    def test_collapse_whitespace(self) -> None:
        assert collapse_whitespace("  pub fn\n    run(\n) ") == "pub fn run( )"

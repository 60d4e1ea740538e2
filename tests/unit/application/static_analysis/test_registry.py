"""Tests for application/static_analysis/registry.py."""

import pytest

from cratescope.application.static_analysis.item_index import ItemIndex
from cratescope.application.static_analysis.registry import (
    TypeRegistry,
    TypeRegistryBuilder,
    build_type_registry,
)
from cratescope.domain.exceptions import RegistryFrozenError
from cratescope.domain.extraction import FieldDecl, FileExtraction, ReturnDecl, TypeDecl
from cratescope.domain.items import ItemKind
from tests.factories import extract, make_item


class TestTypeRegistryBuilder:
    """Tests for TypeRegistryBuilder."""

    def test_register_and_freeze(self) -> None:
        builder = TypeRegistryBuilder()
        builder.register_field("crate::Unit", "hp", "i32")
        builder.register_return("crate::Unit", "new", "crate::Unit")

        registry = builder.freeze()

        assert builder.frozen
        assert registry.field_type("crate::Unit", "hp") == "i32"
        assert registry.return_type("crate::Unit", "new") == "crate::Unit"
        assert registry.size == 2

    def test_last_write_wins(self) -> None:
        builder = TypeRegistryBuilder()
        builder.register_field("crate::Unit", "hp", "i32")
        builder.register_field("crate::Unit", "hp", "u32")

        assert builder.freeze().field_type("crate::Unit", "hp") == "u32"

    def test_write_after_freeze_raises(self) -> None:
        builder = TypeRegistryBuilder()
        builder.freeze()

        with pytest.raises(RegistryFrozenError, match="frozen"):
            builder.register_field("crate::Unit", "hp", "i32")
        with pytest.raises(RegistryFrozenError):
            builder.register_return("crate::Unit", "new", "crate::Unit")

    def test_snapshot_is_independent(self) -> None:
        builder = TypeRegistryBuilder()
        builder.register_field("crate::Unit", "hp", "i32")
        registry = builder.freeze()

        with pytest.raises(TypeError):
            registry.fields[("crate::Unit", "mp")] = "i32"  # type: ignore[index]

    def test_missing_entries(self) -> None:
        registry = TypeRegistry.empty()

        assert registry.field_type("crate::Unit", "hp") is None
        assert registry.return_type("crate::Unit", "new") is None
        assert registry.size == 0


class TestBuildTypeRegistry:
    """Tests for build_type_registry()."""

    @pytest.fixture
    def extractions(self) -> tuple[FileExtraction, ...]:
        return (
            extract(
                """
                pub struct Engine;

                pub trait Speak {
                    fn voice(&self) -> Engine;
                }

                pub struct Unit {
                    engine: Engine,
                    name: String,
                }

                impl Unit {
                    pub fn new() -> Unit {
                        Unit { engine: Engine, name: String::new() }
                    }
                    pub fn speaker(&self) -> impl Speak {
                        self.engine
                    }
                }

                pub static MAIN: Unit = Unit { engine: Engine, name: String::new() };

                pub fn make() -> Unit {
                    Unit::new()
                }
                """
            ),
        )

    def test_fields_normalized_to_type_ids(self, extractions) -> None:
        registry = build_type_registry(extractions, ItemIndex.from_extractions(extractions))

        assert registry.field_type("crate::Unit", "engine") == "crate::Engine"
        assert registry.field_type("crate::Unit", "name") == "String"

    def test_static_owned_by_module(self, extractions) -> None:
        registry = build_type_registry(extractions, ItemIndex.from_extractions(extractions))

        assert registry.field_type("crate", "MAIN") == "crate::Unit"

    def test_method_and_function_returns(self, extractions) -> None:
        registry = build_type_registry(extractions, ItemIndex.from_extractions(extractions))

        assert registry.return_type("crate::Unit", "new") == "crate::Unit"
        assert registry.return_type("crate", "make") == "crate::Unit"
        assert registry.return_type("crate::Speak", "voice") == "crate::Engine"

    def test_impl_trait_return_keeps_bounds(self, extractions) -> None:
        registry = build_type_registry(extractions, ItemIndex.from_extractions(extractions))

        assert registry.return_type("crate::Unit", "speaker") == "impl crate::Speak"

    def test_self_replaced_by_owner(self) -> None:
        unit = make_item("crate::Unit", kind=ItemKind.STRUCT)
        extraction = FileExtraction(
            path="lib.rs",
            module_path="crate",
            items=(unit,),
            types=(TypeDecl("crate::Unit", "Unit", ItemKind.STRUCT, "crate"),),
            fields=(FieldDecl("crate::Unit", "next", "Self", "crate"),),
            returns=(ReturnDecl("Unit", "new", "Self", "crate"),),
        )

        registry = build_type_registry((extraction,), ItemIndex.from_extractions((extraction,)))

        assert registry.return_type("crate::Unit", "new") == "crate::Unit"
        assert registry.field_type("crate::Unit", "next") == "crate::Unit"

    def test_unknown_owner_kept_as_written(self) -> None:
        extraction = FileExtraction(
            path="lib.rs",
            module_path="crate",
            returns=(ReturnDecl("Foreign", "make", "u8", "crate"),),
        )

        registry = build_type_registry((extraction,), ItemIndex.from_extractions((extraction,)))

        assert registry.return_type("Foreign", "make") == "u8"

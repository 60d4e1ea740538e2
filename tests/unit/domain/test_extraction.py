"""Tests for domain/extraction.py."""

from cratescope.domain.extraction import (
    FieldDecl,
    FileExtraction,
    ImplDecl,
    TypeDecl,
    UseDecl,
)
from cratescope.domain.items import ItemKind, TestCase
from tests.factories import make_call_site, make_item


class TestFileExtraction:
    """Tests for FileExtraction."""

    def test_failed_is_empty(self) -> None:
        extraction = FileExtraction.failed("a.rs", "crate::a", "syntax error at line 2")

        assert not extraction.ok
        assert extraction.items == ()
        assert extraction.call_sites == ()
        assert extraction.modules == ("crate::a",)
        assert extraction.error == "syntax error at line 2"

    def test_contexts_follow_call_sites(self) -> None:
        extraction = FileExtraction(
            path="lib.rs",
            module_path="crate",
            call_sites=(make_call_site("crate::run", "a"), make_call_site("crate::run", "b")),
        )

        assert len(extraction.contexts) == 2
        assert extraction.ok

    def test_use_glob(self) -> None:
        assert UseDecl("crate::a", "*", "crate").is_glob
        assert not UseDecl("crate::a", "Unit", "crate::b::Unit").is_glob


class TestRenameIds:
    """Tests for FileExtraction.rename_ids()."""

    def _extraction(self) -> FileExtraction:
        run = make_item("crate::run", file="main.rs")
        unit = make_item("crate::Unit", kind=ItemKind.STRUCT, file="main.rs")
        return FileExtraction(
            path="main.rs",
            module_path="crate",
            items=(run, unit),
            tests=(TestCase.for_function(run, "crate"),),
            call_sites=(make_call_site("crate::run", "helper"),),
            types=(TypeDecl("crate::Unit", "Unit", ItemKind.STRUCT, "crate"),),
            fields=(
                FieldDecl("crate::Unit", "hp", "i32", "crate"),
                FieldDecl("crate", "MAX", "u32", "crate"),
            ),
            impls=(ImplDecl("crate::Unit::impl", "Unit", None, "crate", (("heal", "crate::Unit::heal"),)),),
            trait_methods=(("crate::Unit", "x", "crate::run"),),
        )

    def test_no_renames_returns_self(self) -> None:
        extraction = self._extraction()

        assert extraction.rename_ids({}) is extraction

    def test_renames_everywhere(self) -> None:
        renames = {"crate::run": "crate::run#2", "crate::Unit": "crate::Unit#2"}

        renamed = self._extraction().rename_ids(renames)

        assert [item.id for item in renamed.items] == ["crate::run#2", "crate::Unit#2"]
        assert renamed.tests[0].id == "crate::run#2::test"
        assert renamed.tests[0].enclosing_function_id == "crate::run#2"
        assert renamed.call_sites[0].from_id == "crate::run#2"
        assert renamed.types[0].id == "crate::Unit#2"
        assert renamed.fields[0].owner_id == "crate::Unit#2"
        assert renamed.trait_methods == (("crate::Unit#2", "x", "crate::run#2"),)

    def test_module_owned_fields_untouched(self) -> None:
        renamed = self._extraction().rename_ids({"crate": "crate#2", "crate::Unit": "crate::Unit#2"})

        assert renamed.fields[1].owner_id == "crate"

    def test_ids_not_in_renames_kept(self) -> None:
        renamed = self._extraction().rename_ids({"crate::Unit": "crate::Unit#2"})

        assert renamed.items[0].id == "crate::run"
        assert renamed.impls[0].method_ids == (("heal", "crate::Unit::heal"),)

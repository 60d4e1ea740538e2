"""Tests for the pipeline steps in application/services/pipeline.py.

Tests:
- resolve_generated_at: configured value, SOURCE_DATE_EPOCH, current time
- extract_all: unparsable files recovered as empty extractions
- deduplicate_ids: cross-file collisions, and calls to renamed functions
- apply_tested_by
"""

import re
from pathlib import Path

import pytest

from cratescope.application.discovery.collector import collect_files
from cratescope.application.services.pipeline import (
    SOURCE_DATE_EPOCH,
    apply_tested_by,
    deduplicate_ids,
    extract_all,
    resolve_generated_at,
)
from cratescope.application.static_analysis.graph_builder import build_call_graph
from cratescope.application.static_analysis.item_index import ItemIndex
from cratescope.application.static_analysis.registry import build_type_registry
from cratescope.domain.diagnostics import Diagnostic, Stage
from cratescope.domain.extraction import FileExtraction
from cratescope.domain.items import TestCase
from tests.factories import extract, make_call_site, make_item, write_tree

ISO_UTC = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z$")


class TestResolveGeneratedAt:
    """Tests for resolve_generated_at()."""

    def test_configured_wins(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(SOURCE_DATE_EPOCH, "0")

        assert resolve_generated_at("2024-05-01T12:00:00Z") == "2024-05-01T12:00:00Z"

    def test_source_date_epoch(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(SOURCE_DATE_EPOCH, "1700000000")

        assert resolve_generated_at(None) == "2023-11-14T22:13:20Z"

    def test_invalid_epoch_falls_back_to_now(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(SOURCE_DATE_EPOCH, "yesterday")

        assert ISO_UTC.match(resolve_generated_at(None))

    def test_now(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv(SOURCE_DATE_EPOCH, raising=False)

        assert ISO_UTC.match(resolve_generated_at(None))


class TestExtractAll:
    """Tests for extract_all()."""

    FILES = {
        "lib.rs": "pub fn run() {}\n",
        "broken.rs": "fn broken( {\n",
        "combat/mod.rs": "pub struct Unit;\n",
    }

    @pytest.mark.parametrize("workers", [1, 3])
    def test_order_and_recovery(self, tmp_path: Path, workers: int) -> None:
        write_tree(tmp_path, self.FILES)
        diagnostics: list[Diagnostic] = []

        extractions = extract_all(collect_files(tmp_path), "crate", workers, diagnostics)

        assert [e.path for e in extractions] == ["broken.rs", "combat/mod.rs", "lib.rs"]
        broken = extractions[0]
        assert not broken.ok
        assert broken.module_path == "crate::broken"
        assert broken.items == ()
        [diagnostic] = diagnostics
        assert (diagnostic.stage, diagnostic.path) == (Stage.EXTRACTION, "broken.rs")
        assert diagnostic.message.startswith("syntax error at line")
        assert broken.error == diagnostic.message

    def test_non_utf8_file(self, tmp_path: Path) -> None:
        (tmp_path / "latin1.rs").write_bytes(b"// caf\xe9\nfn run() {}\n")
        diagnostics: list[Diagnostic] = []

        [extraction] = extract_all(collect_files(tmp_path), "crate", 1, diagnostics)

        assert not extraction.ok
        assert diagnostics[0].message.startswith("encoding error")


class TestDeduplicateIds:
    """Tests for deduplicate_ids()."""

    def _file(self, path: str, *ids: str) -> FileExtraction:
        items = tuple(make_item(item_id, file=path) for item_id in ids)
        return FileExtraction(
            path=path,
            module_path="crate",
            items=items,
            tests=tuple(TestCase.for_function(i, "crate") for i in items if i.name == "check"),
            call_sites=tuple(make_call_site(i.id, "helper") for i in items),
        )

    def test_unique_ids_untouched(self) -> None:
        extractions = (self._file("a.rs", "crate::a"), self._file("b.rs", "crate::b"))
        diagnostics: list[Diagnostic] = []

        assert deduplicate_ids(extractions, diagnostics) == extractions
        assert diagnostics == []

    def test_later_file_renamed(self) -> None:
        extractions = (
            self._file("lib.rs", "crate::run", "crate::check"),
            self._file("main.rs", "crate::run", "crate::check", "crate::main"),
        )
        diagnostics: list[Diagnostic] = []

        lib, main = deduplicate_ids(extractions, diagnostics)

        assert [i.id for i in lib.items] == ["crate::run", "crate::check"]
        assert [i.id for i in main.items] == ["crate::run#2", "crate::check#2", "crate::main"]
        assert main.tests[0].id == "crate::check#2::test"
        assert [s.from_id for s in main.call_sites] == [
            "crate::run#2",
            "crate::check#2",
            "crate::main",
        ]
        assert diagnostics == [
            Diagnostic(
                Stage.IDENTITY,
                "main.rs",
                "2 duplicate item id(s) renamed: "
                "crate::check -> crate::check#2, crate::run -> crate::run#2",
            )
        ]

    def test_suffix_skips_taken_ids(self) -> None:
        extractions = (
            self._file("lib.rs", "crate::run", "crate::run#2"),
            self._file("main.rs", "crate::run"),
        )

        _lib, main = deduplicate_ids(extractions, [])

        assert main.items[0].id == "crate::run#3"

    def test_three_files(self) -> None:
        extractions = (
            self._file("a.rs", "crate::run"),
            self._file("b.rs", "crate::run"),
            self._file("c.rs", "crate::run"),
        )

        result = deduplicate_ids(extractions, [])

        assert [e.items[0].id for e in result] == ["crate::run", "crate::run#2", "crate::run#3"]

    def test_renamed_function_called_from_own_file(self) -> None:
        extractions = deduplicate_ids(
            (
                extract("fn helper() {}\nfn api() { helper(); }\n", "lib.rs", module="crate"),
                extract("fn helper() {}\nfn main() { helper(); }\n", "main.rs", module="crate"),
            ),
            [],
        )
        index = ItemIndex.from_extractions(extractions)

        graph = build_call_graph(extractions, index, build_type_registry(extractions, index), 1)

        assert sorted((e.from_id, e.to_id) for e in graph.edges) == [
            ("crate::api", "crate::helper"),
            ("crate::main", "crate::helper#2"),
        ]
        assert graph.unresolved == ()


class TestApplyTestedBy:
    """Tests for apply_tested_by()."""

    def test_fills_items(self) -> None:
        extraction = FileExtraction(
            path="lib.rs",
            module_path="crate",
            items=(make_item("crate::run"), make_item("crate::other")),
        )

        [result] = apply_tested_by((extraction,), {"crate::run": ("crate::tests::t::test",)})

        assert result.items[0].tested_by == ("crate::tests::t::test",)
        assert result.items[1].tested_by == ()

    def test_empty_mapping(self) -> None:
        extraction = FileExtraction(path="lib.rs", module_path="crate")

        assert apply_tested_by((extraction,), {}) == (extraction,)

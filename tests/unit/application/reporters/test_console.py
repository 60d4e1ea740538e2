"""Tests for ConsoleReporter.

Tests:
- ConsoleConfig default values and customization
- ConsoleReporter report() summary, unresolved table and diagnostics
"""

from pathlib import Path

from cratescope.application.reporters.console import ConsoleConfig, ConsoleReporter
from cratescope.application.services.pipeline import AnalysisResult
from cratescope.domain.call_graph import CallGraph, UnresolvedReason
from cratescope.domain.configuration import AnalysisConfig
from cratescope.domain.diagnostics import Diagnostic, DiagnosticsReport, Stage
from cratescope.domain.extraction import FileExtraction
from tests.factories import make_edge, make_item, make_unresolved


def _result(
    diagnostics: tuple[Diagnostic, ...] = (),
    unresolved: bool = True,
) -> AnalysisResult:
    graph = CallGraph(
        edges=(make_edge("crate::run", "crate::helper"),),
        unresolved=(
            (make_unresolved("crate::run", "drop", UnresolvedReason.EXTERNAL_SYMBOL),)
            if unresolved
            else ()
        ),
    )
    return AnalysisResult(
        config=AnalysisConfig(target_dir=Path("src"), output_dir=Path("out")),
        generated_at="2024-01-01T00:00:00Z",
        extractions=(
            FileExtraction(
                path="lib.rs",
                module_path="crate",
                items=(make_item("crate::run"), make_item("crate::helper")),
            ),
            FileExtraction.failed("broken.rs", "crate::broken", "syntax error at line 1"),
        ),
        graph=graph,
        diagnostics=DiagnosticsReport(
            diagnostics=diagnostics,
            unresolved_by_reason=graph.unresolved_by_reason(),
        ),
        files_written=5,
    )


def _rows(text: str) -> dict[str, str]:
    """Summary table rows: metric → value."""
    rows: dict[str, str] = {}
    for line in text.splitlines():
        parts = [p.strip() for p in line.strip("│ ").split("│")]
        if len(parts) == 2 and parts[0]:
            rows[parts[0]] = parts[1]
    return rows


class TestConsoleConfig:
    """Tests for ConsoleConfig."""

    def test_default_values(self) -> None:
        config = ConsoleConfig()
        assert config.show_diagnostics is True
        assert config.max_diagnostics is None
        assert config.width == 100

    def test_custom_values(self) -> None:
        config = ConsoleConfig(show_diagnostics=False, max_diagnostics=3, width=80)
        assert config.show_diagnostics is False
        assert config.max_diagnostics == 3
        assert config.width == 80


class TestConsoleReporter:
    """Tests for ConsoleReporter.report()."""

    def test_summary(self) -> None:
        output = ConsoleReporter().report(_result(), color=False)

        assert "CRATESCOPE" in output
        rows = _rows(output)
        assert rows["Files"] == "2"
        assert rows["Unparsable files"] == "1"
        assert rows["Items"] == "2"
        assert rows["Edges"] == "1"
        assert rows["Unresolved"] == "1"
        assert rows["Output"] == str(Path("out") / "structure")

    def test_no_ansi_without_color(self) -> None:
        output = ConsoleReporter().report(_result(), color=False)

        assert "\x1b[" not in output

    def test_unresolved_by_reason(self) -> None:
        output = ConsoleReporter().report(_result(), color=False)

        assert "Unresolved by reason" in output
        assert "external_symbol" in output
        assert "unbound_generic" not in output

    def test_unresolved_table_hidden_when_all_resolved(self) -> None:
        output = ConsoleReporter().report(_result(unresolved=False), color=False)

        assert "Unresolved by reason" not in output

    def test_diagnostics_listed(self) -> None:
        diagnostics = (Diagnostic(Stage.EXTRACTION, "broken.rs", "syntax error at line 1"),)

        output = ConsoleReporter().report(_result(diagnostics), color=False)

        assert "DIAGNOSTICS (1)" in output
        assert "[extraction] broken.rs: syntax error at line 1" in output

    def test_diagnostics_limit(self) -> None:
        diagnostics = tuple(
            Diagnostic(Stage.EXTRACTION, f"f{i}.rs", "encoding error") for i in range(4)
        )

        output = ConsoleReporter(ConsoleConfig(max_diagnostics=1)).report(
            _result(diagnostics), color=False
        )

        assert "f0.rs" in output
        assert "f1.rs" not in output
        assert "... 3 more" in output

    def test_diagnostics_hidden(self) -> None:
        diagnostics = (Diagnostic(Stage.OUTPUT, "index.json", "disk full"),)

        output = ConsoleReporter(ConsoleConfig(show_diagnostics=False)).report(
            _result(diagnostics), color=False
        )

        assert "DIAGNOSTICS" not in output
        assert "disk full" not in output

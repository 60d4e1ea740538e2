"""Tests for domain/diagnostics.py and domain/exceptions.py."""

import pytest

from cratescope.domain.diagnostics import Diagnostic, DiagnosticsReport, Stage
from cratescope.domain.exceptions import (
    ConfigError,
    CrateScopeError,
    OutputRootError,
    OutputWriteError,
    ParseError,
    RegistryFrozenError,
)


class TestDiagnostic:
    """Tests for Diagnostic."""

    def test_empty_message_raises(self) -> None:
        with pytest.raises(ValueError, match="message must not be empty"):
            Diagnostic(Stage.EXTRACTION, "a.rs", "")


class TestDiagnosticsReport:
    """Tests for DiagnosticsReport."""

    def test_empty_report(self) -> None:
        report = DiagnosticsReport()

        assert not report.has_problems
        assert report.unresolved_by_reason == {}

    def test_has_problems(self) -> None:
        report = DiagnosticsReport(
            diagnostics=(Diagnostic(Stage.COLLECTION, "x", "cannot list directory"),)
        )

        assert report.has_problems


class TestExceptions:
    """Tests for the exception hierarchy."""

    def test_all_errors_share_base(self) -> None:
        errors = [
            ConfigError("workers", "must be >= 1"),
            ParseError(path="a.rs", reason="syntax error at line 3"),
            RegistryFrozenError(),
            OutputRootError("out", "permission denied"),
            OutputWriteError([("index.json", "disk full")]),
        ]

        for error in errors:
            assert isinstance(error, CrateScopeError)

    def test_builtin_bases(self) -> None:
        assert isinstance(ConfigError("x", "y"), ValueError)
        assert isinstance(ParseError(path="a.rs", reason="r"), SyntaxError)
        assert isinstance(RegistryFrozenError(), RuntimeError)
        assert isinstance(OutputRootError("out", "r"), OSError)
        assert isinstance(OutputWriteError([("a", "b")]), OSError)

    def test_config_error_message(self) -> None:
        error = ConfigError("workers", "must be >= 1, got 0")

        assert error.field == "workers"
        assert str(error) == "invalid workers: must be >= 1, got 0"

    def test_parse_error_attributes(self) -> None:
        error = ParseError(path="a.rs", reason="syntax error at line 3")

        assert error.path == "a.rs"
        assert error.reason == "syntax error at line 3"

    def test_output_write_error_lists_failures(self) -> None:
        error = OutputWriteError([("a.rs.json", "disk full"), ("index.json", "disk full")])

        assert len(error.failures) == 2
        assert "2 output artifact(s) failed" in str(error)
        assert "a.rs.json: disk full" in str(error)

    def test_output_write_error_requires_failures(self) -> None:
        with pytest.raises(ValueError, match="at least one failure"):
            OutputWriteError([])

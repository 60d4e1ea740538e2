"""Console reporter: AnalysisResult → rich formatted summary."""

from __future__ import annotations

from dataclasses import dataclass
from io import StringIO
from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table

if TYPE_CHECKING:
    from cratescope.application.services.pipeline import AnalysisResult


@dataclass(frozen=True, slots=True)
class ConsoleConfig:
    """Configuration for console reporter.

    Attributes:
        show_diagnostics: List every diagnostic below the summary tables.
        max_diagnostics: Max diagnostics to list. None = unlimited.
        width: Console width used for rendering.
    """

    show_diagnostics: bool = True
    max_diagnostics: int | None = None
    width: int = 100


class ConsoleReporter:
    """Console reporter: outputs rich formatted text.

    Output is str, not print(). Caller decides destination.
    """

    def __init__(self, config: ConsoleConfig | None = None) -> None:
        """Initialize reporter.

        Args:
            config: Reporter configuration. Uses defaults if None.
        """
        self._config = config or ConsoleConfig()

    def report(self, result: AnalysisResult, *, color: bool = True) -> str:
        """Format analysis result as rich formatted string.

        Args:
            result: Result of one run.
            color: Emit ANSI styles.

        Returns:
            Formatted string with summary tables.
        """
        output = StringIO()
        console = Console(
            file=output,
            force_terminal=color,
            no_color=not color,
            width=self._config.width,
        )

        self._render_summary(console, result)
        self._render_unresolved(console, result)
        if self._config.show_diagnostics and result.diagnostics.has_problems:
            self._render_diagnostics(console, result)

        return output.getvalue()

    def _render_summary(self, console: Console, result: AnalysisResult) -> None:
        console.print()
        console.rule("[bold]CRATESCOPE[/bold]")
        console.print()

        table = Table(title="Summary", show_header=False, title_justify="left")
        table.add_column("metric", style="bold")
        table.add_column("value", justify="right")

        failed = sum(1 for e in result.extractions if not e.ok)
        table.add_row("Files", str(len(result.extractions)))
        table.add_row("Unparsable files", str(failed))
        table.add_row("Items", str(result.item_count))
        table.add_row("Tests", str(result.test_count))
        table.add_row("Edges", str(len(result.graph.edges)))
        table.add_row("Unresolved", str(len(result.graph.unresolved)))
        table.add_row("Diagnostics", str(len(result.diagnostics.diagnostics)))
        table.add_row("Output", str(result.config.structure_dir))
        console.print(table)
        console.print()

    def _render_unresolved(self, console: Console, result: AnalysisResult) -> None:
        counts = result.diagnostics.unresolved_by_reason
        if not any(counts.values()):
            return

        table = Table(title="Unresolved by reason", title_justify="left")
        table.add_column("reason")
        table.add_column("count", justify="right")
        for reason, count in sorted(counts.items()):
            if count:
                table.add_row(reason, str(count))
        console.print(table)
        console.print()

    def _render_diagnostics(self, console: Console, result: AnalysisResult) -> None:
        diagnostics = result.diagnostics.diagnostics
        console.print(f"[bold yellow]DIAGNOSTICS[/bold yellow] ({len(diagnostics)})")
        console.print()

        limit = self._config.max_diagnostics
        shown = diagnostics if limit is None else diagnostics[:limit]
        for diagnostic in shown:
            console.print(
                f"  [{diagnostic.stage.value}] {diagnostic.path}: {diagnostic.message}",
                markup=False,
            )
        if len(shown) < len(diagnostics):
            console.print(f"  [dim]... {len(diagnostics) - len(shown)} more[/dim]")
        console.print()

"""Rich terminal formatter for depaudit."""

from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ..analysis.report import AnalysisReport
from ..models import ViolationKind
from .base import BaseFormatter

_KIND_STYLE = {
    ViolationKind.USED_UNDECLARED: "[red]used, undeclared[/red]",
    ViolationKind.UNUSED_DECLARED: "[yellow]declared, unused[/yellow]",
}


def _scope(configuration: str) -> str:
    return escape(f"[{configuration}]")


class RichFormatter(BaseFormatter):
    """Summary panel, violation table, then warnings and diagnostics."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def render(self, report: AnalysisReport) -> None:
        self._print_summary(report)
        self._print_violations(report)
        self._print_warnings(report)
        self._print_diagnostics(report)

    def format(self, report: AnalysisReport) -> str:
        # Rich output goes directly to console; return empty string
        self.render(report)
        return ""

    # -- private helpers --

    def _print_summary(self, report: AnalysisReport) -> None:
        if report.passed:
            status = "[green bold]PASSED[/green bold]"
        else:
            status = "[red bold]FAILED[/red bold]"
        summary_text = (
            f"{status}  |  "
            f"[bold]{len(report.results)}[/bold] configuration(s)  |  "
            f"[red]{len(report.violations)}[/red] violation(s)  |  "
            f"[yellow]{report.warning_count}[/yellow] warning(s)  |  "
            f"[dim]{len(report.diagnostics)} diagnostic(s)[/dim]"
        )
        self.console.print(
            Panel(summary_text, title="[bold cyan]Dependency Analysis[/bold cyan]", expand=False)
        )
        self.console.print()

    def _print_violations(self, report: AnalysisReport) -> None:
        if not report.violations:
            return
        table = Table(title="Violations", expand=True)
        table.add_column("Configuration", style="cyan")
        table.add_column("Kind", justify="center")
        table.add_column("Artifact", style="yellow", ratio=3)
        for v in report.violations:
            table.add_row(escape(v.configuration), _KIND_STYLE[v.kind], str(v.coordinate))
        self.console.print(table)
        self.console.print()

    def _print_warnings(self, report: AnalysisReport) -> None:
        if not report.has_warnings:
            return
        self.console.print("[bold yellow]Warnings:[/bold yellow]")
        for v in report.warnings:
            self.console.print(
                f"  [yellow]![/yellow] {_scope(v.configuration)} "
                f"{_KIND_STYLE[v.kind]}: {v.coordinate}",
                highlight=False,
            )
        for c in report.compile_only:
            self.console.print(
                f"  [yellow]![/yellow] {_scope(c.configuration)} "
                f"compile-only {c.coordinate} is not referenced",
                highlight=False,
            )
        for s in report.superfluous:
            self.console.print(
                f"  [yellow]![/yellow] {_scope(s.configuration)} {s.coordinate} "
                f"is already provided by aggregator {s.aggregator}",
                highlight=False,
            )
        for s in report.stale_permits:
            self.console.print(
                f"  [yellow]![/yellow] {_scope(s.configuration)} "
                f"permit {s.permit} suppresses nothing",
                highlight=False,
            )
        self.console.print()

    def _print_diagnostics(self, report: AnalysisReport) -> None:
        if not report.diagnostics:
            return
        self.console.print("[bold]Diagnostics:[/bold]")
        for d in report.diagnostics:
            self.console.print(
                f"  [dim]-[/dim] {d.kind} {escape(d.subject)}: {escape(d.detail)}",
                highlight=False,
            )
        self.console.print()

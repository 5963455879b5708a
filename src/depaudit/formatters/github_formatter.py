"""GitHub Actions formatter: workflow command annotations."""

from typing import List

from ..analysis.report import AnalysisReport
from .base import BaseFormatter


def _escape(message: str) -> str:
    # Workflow command data must not contain raw newlines or percent signs
    return message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


class GithubFormatter(BaseFormatter):
    """Output ``::error`` / ``::warning`` annotations, one per finding."""

    def render(self, report: AnalysisReport) -> None:
        print(self.format(report))

    def format(self, report: AnalysisReport) -> str:
        lines: List[str] = []
        for v in report.violations:
            lines.append(
                f"::error title={v.kind.label}::"
                + _escape(f"[{v.configuration}] {v.kind.label}: {v.coordinate}")
            )
        for v in report.warnings:
            lines.append(
                f"::warning title={v.kind.label}::"
                + _escape(f"[{v.configuration}] {v.kind.label}: {v.coordinate}")
            )
        for c in report.compile_only:
            lines.append(
                "::warning title=compileOnlyDeclaredArtifacts::"
                + _escape(f"[{c.configuration}] compile-only {c.coordinate} is not referenced")
            )
        for s in report.superfluous:
            lines.append(
                "::warning title=superfluousDeclaredArtifacts::"
                + _escape(f"[{s.configuration}] {s.coordinate} is provided by {s.aggregator}")
            )
        for s in report.stale_permits:
            lines.append(
                "::warning title=stalePermit::"
                + _escape(f"[{s.configuration}] permit {s.permit} suppresses nothing")
            )
        for d in report.diagnostics:
            lines.append(f"::notice title={d.kind}::" + _escape(f"{d.subject}: {d.detail}"))
        return "\n".join(lines)

"""Violation Reporter: merges per-configuration results into one report.

The text rendering follows the layout build tools print for dependency
analysis::

    Dependency analysis found issues.
    [main]
    usedUndeclaredArtifacts
     - org.example:lib:1.0

Every collection in the report is sorted, so two runs over unchanged
input render byte-identical text.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..config import AnalysisConfig
from ..models import (
    CompileOnlyDeclaration,
    ConfigurationResult,
    Diagnostic,
    StalePermit,
    SuperfluousDeclaration,
    Violation,
    ViolationKind,
)

FOUND_ISSUES = "Dependency analysis found issues."
NO_ISSUES = "No dependency issues found."
COMPILE_ONLY_LABEL = "compileOnlyDeclaredArtifacts"
SUPERFLUOUS_LABEL = "superfluousDeclaredArtifacts"
STALE_PERMITS_LABEL = "stalePermits"


@dataclass(frozen=True)
class AnalysisReport:
    """Outcome of an analysis run.

    Attributes:
        violations: Failing violations, sorted by (configuration, kind, coordinate)
        warnings: Violations downgraded to warnings by the severity policy
        stale_permits: Permit entries that suppressed nothing
        superfluous: Declarations already covered by an aggregator in use
        compile_only: Compile-only artifacts the output does not reference,
            listed only when compile-only warnings are enabled
        diagnostics: Non-fatal problems (scan failures, duplicate classes)
        results: Per-configuration classification results, sorted by name
    """

    violations: Tuple[Violation, ...] = ()
    warnings: Tuple[Violation, ...] = ()
    stale_permits: Tuple[StalePermit, ...] = ()
    superfluous: Tuple[SuperfluousDeclaration, ...] = ()
    compile_only: Tuple[CompileOnlyDeclaration, ...] = ()
    diagnostics: Tuple[Diagnostic, ...] = ()
    results: Tuple[ConfigurationResult, ...] = ()

    @property
    def passed(self) -> bool:
        return not self.violations

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings or self.stale_permits or self.superfluous or self.compile_only)

    @property
    def warning_count(self) -> int:
        return (
            len(self.warnings)
            + len(self.stale_permits)
            + len(self.superfluous)
            + len(self.compile_only)
        )

    def result_for(self, configuration: str) -> Optional[ConfigurationResult]:
        for result in self.results:
            if result.configuration == configuration:
                return result
        return None

    def render_text(self) -> str:
        """Deterministic plain-text rendering of the report."""
        lines: List[str] = []
        if self.violations:
            lines.append(FOUND_ISSUES)
            lines.extend(_violation_lines(self.violations))
        else:
            lines.append(NO_ISSUES)

        if self.has_warnings:
            lines.append("")
            lines.append("Warnings")
            lines.extend(
                _warning_lines(
                    self.warnings, self.superfluous, self.stale_permits, self.compile_only
                )
            )

        if self.diagnostics:
            lines.append("")
            lines.append("Diagnostics")
            for diagnostic in self.diagnostics:
                lines.append(f" - {diagnostic.kind} {diagnostic.subject}: {diagnostic.detail}")

        return "\n".join(lines) + "\n"

    def to_dict(self) -> dict:
        return {
            "passed": self.passed,
            "violations": [v.to_dict() for v in self.violations],
            "warnings": [v.to_dict() for v in self.warnings],
            "stale_permits": [
                {
                    "configuration": s.configuration,
                    "kind": s.permit.kind.name,
                    "coordinate": str(s.permit.coordinate),
                }
                for s in self.stale_permits
            ],
            "superfluous": [
                {
                    "configuration": s.configuration,
                    "coordinate": str(s.coordinate),
                    "aggregator": str(s.aggregator),
                }
                for s in self.superfluous
            ],
            "compile_only": [
                {"configuration": c.configuration, "coordinate": str(c.coordinate)}
                for c in self.compile_only
            ],
            "diagnostics": [
                {"kind": d.kind, "subject": d.subject, "detail": d.detail}
                for d in self.diagnostics
            ],
            "configurations": {
                r.configuration: {
                    "used": sorted(str(c) for c in r.used),
                    "declared": sorted(str(c) for c in r.declared),
                    "effective_declared": sorted(str(c) for c in r.effective_declared),
                }
                for r in self.results
            },
        }


def build_report(
    results: Iterable[ConfigurationResult],
    config: Optional[AnalysisConfig] = None,
    diagnostics: Sequence[Diagnostic] = (),
) -> AnalysisReport:
    """Apply the severity policy and merge configuration results.

    Args:
        results: One classification result per configuration
        config: Severity policy source (defaults apply when omitted)
        diagnostics: Extra run-level diagnostics (e.g. duplicate classes)
    """
    config = config or AnalysisConfig()
    results = tuple(sorted(results, key=lambda r: r.configuration))

    failing: List[Violation] = []
    warnings: List[Violation] = []
    stale: List[StalePermit] = []
    superfluous: List[SuperfluousDeclaration] = []
    compile_only: List[CompileOnlyDeclaration] = []
    merged = set(diagnostics)

    for result in results:
        for violation in result.violations:
            if violation.kind is ViolationKind.USED_UNDECLARED:
                if config.ignore_used_undeclared:
                    continue
                target = warnings if config.warn_used_undeclared else failing
            else:
                target = warnings if config.warn_unused_declared else failing
            target.append(violation)
        if config.report_stale_permits:
            stale.extend(result.stale_permits)
        if config.report_superfluous:
            superfluous.extend(result.superfluous)
        if config.warn_compile_only:
            compile_only.extend(result.compile_only)
        merged.update(result.diagnostics)

    return AnalysisReport(
        violations=tuple(sorted(set(failing), key=lambda v: v.sort_key)),
        warnings=tuple(sorted(set(warnings), key=lambda v: v.sort_key)),
        stale_permits=tuple(sorted(set(stale), key=lambda s: s.sort_key)),
        superfluous=tuple(sorted(set(superfluous), key=lambda s: s.sort_key)),
        compile_only=tuple(sorted(set(compile_only), key=lambda c: c.sort_key)),
        diagnostics=tuple(sorted(merged, key=lambda d: d.sort_key)),
        results=results,
    )


def _group_by_configuration(items: Iterable, attr: str = "configuration") -> Dict[str, list]:
    grouped: Dict[str, list] = {}
    for item in items:
        grouped.setdefault(getattr(item, attr), []).append(item)
    return dict(sorted(grouped.items()))


def _violation_lines(violations: Sequence[Violation]) -> List[str]:
    lines: List[str] = []
    for configuration, items in _group_by_configuration(violations).items():
        lines.append(f"[{configuration}]")
        for kind in ViolationKind:
            coordinates = [v.coordinate for v in items if v.kind is kind]
            if coordinates:
                lines.append(kind.label)
                lines.extend(f" - {c}" for c in coordinates)
    return lines


def _warning_lines(
    warnings: Sequence[Violation],
    superfluous: Sequence[SuperfluousDeclaration],
    stale: Sequence[StalePermit],
    compile_only: Sequence[CompileOnlyDeclaration] = (),
) -> List[str]:
    names = sorted(
        {w.configuration for w in warnings}
        | {s.configuration for s in superfluous}
        | {s.configuration for s in stale}
        | {c.configuration for c in compile_only}
    )
    lines: List[str] = []
    for configuration in names:
        lines.append(f"[{configuration}]")
        for kind in ViolationKind:
            coordinates = [
                w.coordinate
                for w in warnings
                if w.configuration == configuration and w.kind is kind
            ]
            if coordinates:
                lines.append(kind.label)
                lines.extend(f" - {c}" for c in coordinates)
        unreferenced = [c.coordinate for c in compile_only if c.configuration == configuration]
        if unreferenced:
            lines.append(COMPILE_ONLY_LABEL)
            lines.extend(f" - {c}" for c in unreferenced)
        covered = [s for s in superfluous if s.configuration == configuration]
        if covered:
            lines.append(SUPERFLUOUS_LABEL)
            lines.extend(f" - {s.coordinate} (via {s.aggregator})" for s in covered)
        permits = [s.permit for s in stale if s.configuration == configuration]
        if permits:
            lines.append(STALE_PERMITS_LABEL)
            lines.extend(f" - {p}" for p in permits)
    return lines

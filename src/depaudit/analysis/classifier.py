"""Classification Engine: set differences between declared and used artifacts.

For one configuration::

    used_undeclared = used - effective_declared - permitted(ALLOW_UNDECLARED_USE)
    unused_declared = declared - used - aggregators_in_use - permitted(ALLOW_UNUSED_DECLARED)

An aggregator is "in use" when at least one artifact reachable from it is
used. POM-only aggregators are always in use. Compile-only artifacts cover
usages like declarations do but are never unused declarations; the ones
the output does not reference are collected separately.

Declarations inherited from an extended configuration are reported where
they are declared, never again in the child.
"""

from __future__ import annotations

from typing import FrozenSet, List, Tuple

from ..logging_config import get_logger, log_dependency_sets
from ..models import (
    ArtifactCoordinate,
    CompileOnlyDeclaration,
    ConfigurationResult,
    PermitKind,
    StalePermit,
    SuperfluousDeclaration,
    UsageResult,
    Violation,
    ViolationKind,
)
from .declarations import ConfigurationDeclarations

logger = get_logger(__name__)


def aggregators_in_use(
    declarations: ConfigurationDeclarations, used: FrozenSet[ArtifactCoordinate]
) -> FrozenSet[ArtifactCoordinate]:
    return frozenset(
        aggregator
        for aggregator, members in declarations.aggregators.items()
        if members & used or aggregator in declarations.implicit_aggregators
    )


def classify(declarations: ConfigurationDeclarations, usage: UsageResult) -> ConfigurationResult:
    """Classify one configuration's usage against its declarations.

    Args:
        declarations: Declarations and permits of the configuration
        usage: Output of the usage resolver for the same configuration

    Returns:
        ConfigurationResult with violations sorted by (configuration, kind,
        coordinate), stale permits and superfluous declarations.
    """
    name = declarations.name
    used = usage.used
    effective = declarations.effective_declared
    in_use = aggregators_in_use(declarations, used)

    undeclared_candidates = used - effective
    unused_candidates = declarations.declared - used - in_use - declarations.compile_only

    allowed_undeclared = declarations.permitted(PermitKind.ALLOW_UNDECLARED_USE)
    used_undeclared = undeclared_candidates - allowed_undeclared
    unused_declared = unused_candidates - declarations.permitted(PermitKind.ALLOW_UNUSED_DECLARED)

    violations = [Violation(name, c, ViolationKind.USED_UNDECLARED) for c in used_undeclared]
    violations += [Violation(name, c, ViolationKind.UNUSED_DECLARED) for c in unused_declared]
    violations.sort(key=lambda v: v.sort_key)
    compile_only = tuple(
        CompileOnlyDeclaration(name, c) for c in sorted(declarations.compile_only - used)
    )

    log_dependency_sets(
        logger,
        name,
        usedArtifacts=used,
        effectiveDeclaredArtifacts=effective,
        aggregatorsInUse=in_use,
        usedUndeclaredArtifacts=used_undeclared,
        unusedDeclaredArtifacts=unused_declared,
        compileOnlyDeclaredArtifacts=declarations.compile_only,
    )

    return ConfigurationResult(
        configuration=name,
        used=used,
        declared=declarations.declared,
        effective_declared=effective,
        violations=tuple(violations),
        stale_permits=_stale_permits(declarations, used, undeclared_candidates, unused_candidates),
        superfluous=_superfluous(declarations, in_use),
        diagnostics=usage.diagnostics,
        compile_only=compile_only,
    )


def _stale_permits(
    declarations: ConfigurationDeclarations,
    used: FrozenSet[ArtifactCoordinate],
    undeclared_candidates: FrozenSet[ArtifactCoordinate],
    unused_candidates: FrozenSet[ArtifactCoordinate],
) -> Tuple[StalePermit, ...]:
    """Permit entries that suppressed nothing."""
    stale: List[StalePermit] = []
    for permit in declarations.permits:
        if permit.kind is PermitKind.ALLOW_UNDECLARED_USE:
            suppressed = permit.coordinate in undeclared_candidates
        elif permit.kind is PermitKind.ALLOW_UNUSED_DECLARED:
            suppressed = permit.coordinate in unused_candidates
        else:
            # Undeclared aggregators never make it into ``aggregators``
            members = declarations.aggregators.get(permit.coordinate)
            suppressed = bool(members and members & used)
            suppressed = suppressed or permit.coordinate in declarations.implicit_aggregators
        if not suppressed:
            stale.append(StalePermit(declarations.name, permit))
    return tuple(sorted(stale, key=lambda s: s.sort_key))


def _superfluous(
    declarations: ConfigurationDeclarations, in_use: FrozenSet[ArtifactCoordinate]
) -> Tuple[SuperfluousDeclaration, ...]:
    """Own declarations already brought in by an aggregator in use."""
    found = []
    for aggregator in sorted(in_use):
        for coordinate in sorted(declarations.declared & declarations.aggregators[aggregator]):
            found.append(SuperfluousDeclaration(declarations.name, coordinate, aggregator))
    return tuple(sorted(found, key=lambda s: s.sort_key))

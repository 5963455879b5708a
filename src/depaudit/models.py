"""Data models for depaudit.

Everything here is an immutable value object: the analysis pipeline passes
them between phases and never mutates them after construction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, FrozenSet, Optional, Tuple

from .exceptions import InvalidCoordinateError


@dataclass(frozen=True, order=True)
class ArtifactCoordinate:
    """Unique identity of a dependency: ``group:name:version``."""

    group: str
    name: str
    version: str

    @classmethod
    def parse(cls, text: str) -> "ArtifactCoordinate":
        """Parse ``group:name:version``.

        Raises:
            InvalidCoordinateError: If the text does not have exactly three
                non-empty parts or contains whitespace.
        """
        if not isinstance(text, str):
            raise InvalidCoordinateError(repr(text), "coordinate must be a string")
        parts = text.split(":")
        if len(parts) != 3:
            raise InvalidCoordinateError(text)
        if any(not part or any(ch.isspace() for ch in part) for part in parts):
            raise InvalidCoordinateError(
                text, "coordinate parts must be non-empty without whitespace"
            )
        return cls(*parts)

    def __str__(self) -> str:
        return f"{self.group}:{self.name}:{self.version}"


@dataclass(frozen=True)
class Artifact:
    """A resolved dependency and the archive backing it.

    ``path`` is None for artifacts without compiled contents (POM-only
    platforms and BOM-style aggregators). ``dependencies`` lists the direct
    children of this artifact in the resolved graph.
    """

    coordinate: ArtifactCoordinate
    path: Optional[Path] = None
    dependencies: Tuple[ArtifactCoordinate, ...] = ()


@dataclass(frozen=True)
class ClassReference:
    """A class name seen in bytecode, tagged with the class that referenced it."""

    class_name: str
    referenced_from: str


@dataclass(frozen=True)
class Configuration:
    """A named dependency bucket (``main``, ``test``, ``runtime`` ...)."""

    name: str
    declared: FrozenSet[ArtifactCoordinate] = frozenset()
    artifacts: Tuple[Artifact, ...] = ()
    outputs: Tuple[Path, ...] = ()
    extends: Tuple[str, ...] = ()
    compile_only: FrozenSet[ArtifactCoordinate] = frozenset()

    def artifact_map(self) -> Dict[ArtifactCoordinate, Artifact]:
        return {a.coordinate: a for a in self.artifacts}


class PermitKind(Enum):
    ALLOW_UNDECLARED_USE = "used_undeclared"
    ALLOW_UNUSED_DECLARED = "unused_declared"
    ALLOW_AGGREGATOR_USE = "aggregator"


@dataclass(frozen=True)
class PermitEntry:
    coordinate: ArtifactCoordinate
    kind: PermitKind

    @property
    def sort_key(self) -> tuple:
        return (self.kind.value, self.coordinate)

    def __str__(self) -> str:
        return f"{self.kind.name}({self.coordinate})"


class ViolationKind(Enum):
    """Violation kinds, declared in report order."""

    USED_UNDECLARED = "usedUndeclaredArtifacts"
    UNUSED_DECLARED = "unusedDeclaredArtifacts"

    @property
    def rank(self) -> int:
        return list(ViolationKind).index(self)

    @property
    def label(self) -> str:
        return self.value


@dataclass(frozen=True)
class Violation:
    """A dependency hygiene finding for one configuration and artifact."""

    configuration: str
    coordinate: ArtifactCoordinate
    kind: ViolationKind

    @property
    def sort_key(self) -> tuple:
        return (self.configuration, self.kind.rank, self.coordinate)

    def to_dict(self) -> dict:
        return {
            "configuration": self.configuration,
            "kind": self.kind.name,
            "coordinate": str(self.coordinate),
        }


@dataclass(frozen=True)
class Diagnostic:
    """A non-fatal problem met during analysis (scan failures, duplicate classes)."""

    kind: str
    subject: str
    detail: str

    @property
    def sort_key(self) -> tuple:
        return (self.kind, self.subject, self.detail)


SCAN_FAILURE = "scan_failure"
DUPLICATE_CLASS = "duplicate_class"


@dataclass(frozen=True)
class StalePermit:
    """A permit entry that suppressed nothing in its configuration."""

    configuration: str
    permit: PermitEntry

    @property
    def sort_key(self) -> tuple:
        return (self.configuration,) + self.permit.sort_key


@dataclass(frozen=True)
class SuperfluousDeclaration:
    """A declared artifact already provided by a declared aggregator in use."""

    configuration: str
    coordinate: ArtifactCoordinate
    aggregator: ArtifactCoordinate

    @property
    def sort_key(self) -> tuple:
        return (self.configuration, self.coordinate, self.aggregator)


@dataclass(frozen=True)
class CompileOnlyDeclaration:
    """A compile-only artifact the compiled output never references."""

    configuration: str
    coordinate: ArtifactCoordinate

    @property
    def sort_key(self) -> tuple:
        return (self.configuration, self.coordinate)


@dataclass(frozen=True)
class UsageResult:
    """Artifacts referenced by one configuration's compiled output."""

    used: FrozenSet[ArtifactCoordinate]
    evidence: Dict[ArtifactCoordinate, Tuple[ClassReference, ...]] = field(
        default_factory=dict, compare=False
    )
    classes_scanned: int = 0
    diagnostics: Tuple[Diagnostic, ...] = ()


@dataclass(frozen=True)
class ConfigurationResult:
    """Classification outcome for a single configuration."""

    configuration: str
    used: FrozenSet[ArtifactCoordinate]
    declared: FrozenSet[ArtifactCoordinate]
    effective_declared: FrozenSet[ArtifactCoordinate]
    violations: Tuple[Violation, ...] = ()
    stale_permits: Tuple[StalePermit, ...] = ()
    superfluous: Tuple[SuperfluousDeclaration, ...] = ()
    diagnostics: Tuple[Diagnostic, ...] = ()
    compile_only: Tuple[CompileOnlyDeclaration, ...] = ()

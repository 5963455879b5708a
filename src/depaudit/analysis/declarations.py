"""Declaration Model: what the user declared and which exceptions they permit.

Built once, before any scanning, from the configurations and their permit
lists, then handed to the classifier as an immutable value. All
user-caused problems (unknown configuration names, extension cycles) are
raised here so a run never starts on a broken declaration set.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple

from ..exceptions import ConfigurationError, UnknownConfigurationError
from ..logging_config import get_logger
from ..models import Artifact, ArtifactCoordinate, Configuration, PermitEntry, PermitKind

logger = get_logger(__name__)


@dataclass(frozen=True)
class ConfigurationDeclarations:
    """Declarations and permits of one configuration, with extension applied.

    Attributes:
        name: Configuration name
        declared: Coordinates declared directly in this configuration
        inherited: Coordinates declared by configurations this one extends,
            including the members of their aggregators
        permits: This configuration's own permit entries (not inherited)
        aggregators: Permitted, declared aggregators and implicit POM
            aggregators mapped to every artifact reachable from them in the
            resolved graph
        ancestors: Names of the configurations this one extends, transitively
        implicit_aggregators: Declared POM-only artifacts with dependencies;
            they aggregate without a permit and always count as used
        compile_only: Compile-only coordinates; they cover usages but are
            never reported as unused declarations
    """

    name: str
    declared: FrozenSet[ArtifactCoordinate] = frozenset()
    inherited: FrozenSet[ArtifactCoordinate] = frozenset()
    permits: FrozenSet[PermitEntry] = frozenset()
    aggregators: Mapping[ArtifactCoordinate, FrozenSet[ArtifactCoordinate]] = field(
        default_factory=dict, compare=False
    )
    ancestors: Tuple[str, ...] = ()
    implicit_aggregators: FrozenSet[ArtifactCoordinate] = frozenset()
    compile_only: FrozenSet[ArtifactCoordinate] = frozenset()

    @property
    def effective_declared(self) -> FrozenSet[ArtifactCoordinate]:
        """Declared set used to suppress used-undeclared findings."""
        covered = set(self.declared) | set(self.inherited) | set(self.compile_only)
        for members in self.aggregators.values():
            covered |= members
        return frozenset(covered)

    def permitted(self, kind: PermitKind) -> FrozenSet[ArtifactCoordinate]:
        return frozenset(p.coordinate for p in self.permits if p.kind is kind)

    def permits_of(self, kind: PermitKind) -> Tuple[PermitEntry, ...]:
        return tuple(sorted((p for p in self.permits if p.kind is kind), key=lambda p: p.sort_key))


@dataclass(frozen=True)
class DeclarationModel:
    """Immutable declarations for every configuration of a run."""

    configurations: Mapping[str, ConfigurationDeclarations] = field(default_factory=dict)

    def for_configuration(self, name: str) -> ConfigurationDeclarations:
        try:
            return self.configurations[name]
        except KeyError:
            raise UnknownConfigurationError(name, self.configurations, context="analysis")

    def names(self) -> List[str]:
        return sorted(self.configurations)

    @classmethod
    def build(
        cls,
        configurations: Iterable[Configuration],
        permits: Optional[Mapping[str, Iterable[PermitEntry]]] = None,
    ) -> "DeclarationModel":
        """Validate and assemble the declaration model.

        Args:
            configurations: All configurations taking part in the run
            permits: Permit entries keyed by configuration name

        Raises:
            ConfigurationError: On duplicate configuration names or an
                extension cycle
            UnknownConfigurationError: If ``extends`` or the permit lists
                name a configuration that does not exist
        """
        by_name: Dict[str, Configuration] = {}
        for configuration in configurations:
            if configuration.name in by_name:
                raise ConfigurationError(f"Duplicate configuration name '{configuration.name}'")
            by_name[configuration.name] = configuration

        for configuration in by_name.values():
            for parent in configuration.extends:
                if parent not in by_name:
                    raise UnknownConfigurationError(
                        parent, by_name, context=f"extends of '{configuration.name}'"
                    )

        permits = {name: frozenset(entries) for name, entries in (permits or {}).items()}
        for name in permits:
            if name not in by_name:
                raise UnknownConfigurationError(name, by_name)

        own_aggregators: Dict[str, Dict[ArtifactCoordinate, FrozenSet[ArtifactCoordinate]]] = {}
        implicit: Dict[str, FrozenSet[ArtifactCoordinate]] = {}
        ancestry: Dict[str, Tuple[str, ...]] = {}
        for name in sorted(by_name):
            configuration = by_name[name]
            ancestors = ancestry[name] = _ancestors(name, by_name)

            graph: Dict[ArtifactCoordinate, Artifact] = {}
            for source in (name,) + ancestors:
                for coordinate, artifact in by_name[source].artifact_map().items():
                    graph.setdefault(coordinate, artifact)

            declared_here = configuration.declared.union(
                *(by_name[parent].declared for parent in ancestors)
            )
            aggregators: Dict[ArtifactCoordinate, FrozenSet[ArtifactCoordinate]] = {}
            for permit in permits.get(name, frozenset()):
                if permit.kind is not PermitKind.ALLOW_AGGREGATOR_USE:
                    continue
                if permit.coordinate not in declared_here:
                    logger.debug(
                        f"[{name}] aggregator {permit.coordinate} is not declared; ignoring"
                    )
                    continue
                aggregators[permit.coordinate] = reachable_from(permit.coordinate, graph)

            # POM-only artifacts with dependencies aggregate without a permit
            implicit[name] = frozenset(
                coordinate
                for coordinate in configuration.declared
                if is_pom_aggregator(graph.get(coordinate))
            )
            for coordinate in implicit[name]:
                aggregators.setdefault(coordinate, reachable_from(coordinate, graph))
            own_aggregators[name] = aggregators

        result: Dict[str, ConfigurationDeclarations] = {}
        for name in sorted(by_name):
            configuration = by_name[name]
            ancestors = ancestry[name]
            inherited = set()
            for parent in ancestors:
                inherited |= by_name[parent].declared
                for members in own_aggregators[parent].values():
                    inherited |= members

            result[name] = ConfigurationDeclarations(
                name=name,
                declared=frozenset(configuration.declared),
                inherited=frozenset(inherited),
                permits=permits.get(name, frozenset()),
                aggregators=own_aggregators[name],
                ancestors=ancestors,
                implicit_aggregators=implicit[name],
                compile_only=frozenset(configuration.compile_only),
            )
            logger.debug(
                f"[{name}] declared={sorted(map(str, configuration.declared))} "
                f"inherited={sorted(map(str, inherited))} "
                f"aggregators={sorted(map(str, own_aggregators[name]))} "
                f"compile_only={sorted(map(str, configuration.compile_only))}"
            )

        return cls(configurations=result)


def is_pom_aggregator(artifact: Optional[Artifact]) -> bool:
    """True for an artifact without an archive that still pulls in dependencies."""
    return artifact is not None and artifact.path is None and bool(artifact.dependencies)


def reachable_from(
    root: ArtifactCoordinate, graph: Mapping[ArtifactCoordinate, Artifact]
) -> FrozenSet[ArtifactCoordinate]:
    """Every artifact reachable from ``root`` through dependency edges, excluding root."""
    seen = set()
    queue = deque([root])
    while queue:
        current = queue.popleft()
        artifact = graph.get(current)
        if artifact is None:
            continue
        for child in artifact.dependencies:
            if child not in seen and child != root:
                seen.add(child)
                queue.append(child)
    return frozenset(seen)


def _ancestors(name: str, by_name: Mapping[str, Configuration]) -> Tuple[str, ...]:
    """Transitive ``extends`` closure in discovery order.

    Raises:
        ConfigurationError: If the extension graph has a cycle through ``name``.
    """
    order: List[str] = []
    seen = set()

    def _visit(current: str, path: Tuple[str, ...]) -> None:
        for parent in by_name[current].extends:
            if parent in path:
                cycle = " -> ".join(path + (parent,))
                raise ConfigurationError(f"Configuration extension cycle: {cycle}")
            if parent not in seen:
                seen.add(parent)
                order.append(parent)
            _visit(parent, path + (parent,))

    _visit(name, (name,))
    return tuple(order)

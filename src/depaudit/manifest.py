"""Analysis manifest: a TOML description of a resolved build.

A manifest stands in for the build tool's dependency resolver. It lists
the artifact catalog, the configurations with their declarations and
compiled outputs, and the per-configuration permit lists::

    [artifacts."org.example:lib:1.0"]
    path = "libs/lib-1.0.jar"            # relative to the manifest
    dependencies = ["org.example:core:1.0"]

    [artifacts."org.example:platform:1.0"]  # POM-only: no path
    dependencies = ["org.example:lib:1.0"]

    [configurations.main]
    declared = ["org.example:platform:1.0"]
    compile_only = ["org.example:annotations:1.0"]
    outputs = ["build/classes/main"]

    [configurations.test]
    extends = ["main"]
    declared = []
    outputs = ["build/classes/test"]

    [permits.main]
    aggregator = ["org.example:platform:1.0"]

When ``resolved`` is omitted from a configuration, the resolved set is
every artifact reachable from its own and inherited declarations and from
its own ``compile_only`` list. Compile-only artifacts are always part of
their configuration's resolved set and are not inherited.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Mapping, Set, Tuple

from .analysis.declarations import DeclarationModel
from .config import load_toml_file
from .exceptions import (
    ConfigurationError,
    ManifestError,
    ResolutionFailure,
    UnknownConfigurationError,
)
from .logging_config import get_logger
from .models import Artifact, ArtifactCoordinate, Configuration, PermitEntry, PermitKind

logger = get_logger(__name__)

_TOP_LEVEL_KEYS = {"artifacts", "configurations", "permits"}
_ARTIFACT_KEYS = {"path", "dependencies"}
_CONFIGURATION_KEYS = {"declared", "compile_only", "outputs", "extends", "resolved"}
_PERMIT_KEYS = {kind.value: kind for kind in PermitKind}


@dataclass(frozen=True)
class Manifest:
    """A loaded analysis manifest.

    Attributes:
        path: Location of the manifest file
        configurations: Resolved configurations, sorted by name
        permits: Permit entries keyed by configuration name
    """

    path: Path
    configurations: Tuple[Configuration, ...] = ()
    permits: Mapping[str, FrozenSet[PermitEntry]] = field(default_factory=dict)

    def configuration(self, name: str) -> Configuration:
        for configuration in self.configurations:
            if configuration.name == name:
                return configuration
        known = [c.name for c in self.configurations]
        raise UnknownConfigurationError(name, known, context="manifest lookup")

    def declaration_model(self) -> DeclarationModel:
        return DeclarationModel.build(self.configurations, self.permits)


def load_manifest(path: Path) -> Manifest:
    """Load and validate an analysis manifest.

    Raises:
        ManifestError: If the file is missing, not TOML, or structurally invalid
        InvalidCoordinateError: If a coordinate is not ``group:name:version``
        UnknownConfigurationError: If ``extends`` or a permit table names an
            unknown configuration
        ResolutionFailure: If a declared, resolved or dependency coordinate
            is missing from the artifact catalog
    """
    path = Path(path)
    if not path.is_file():
        raise ManifestError(path, "file not found")
    try:
        data = load_toml_file(path)
    except ConfigurationError:
        raise
    except Exception as e:
        raise ManifestError(path, f"not valid TOML: {e}")

    _check_keys(path, "manifest", data, _TOP_LEVEL_KEYS)
    base = path.parent

    catalog = _load_catalog(path, base, _table(path, "artifacts", data.get("artifacts", {})))
    raw_configurations = _table(path, "configurations", data.get("configurations", {}))
    raw_permits = _table(path, "permits", data.get("permits", {}))

    specs: Dict[str, Dict[str, Any]] = {}
    for name, body in raw_configurations.items():
        body = _table(path, f"configurations.{name}", body)
        _check_keys(path, f"configurations.{name}", body, _CONFIGURATION_KEYS)
        specs[name] = body

    declared_by_name: Dict[str, FrozenSet[ArtifactCoordinate]] = {}
    compile_only_by_name: Dict[str, FrozenSet[ArtifactCoordinate]] = {}
    extends_by_name: Dict[str, Tuple[str, ...]] = {}
    for name, body in specs.items():
        declared = _coordinates(path, f"configurations.{name}.declared", body.get("declared", []))
        for coordinate in declared:
            _require_in_catalog(coordinate, catalog, name)
        declared_by_name[name] = frozenset(declared)
        compile_only = _coordinates(
            path, f"configurations.{name}.compile_only", body.get("compile_only", [])
        )
        for coordinate in compile_only:
            _require_in_catalog(coordinate, catalog, name)
        compile_only_by_name[name] = frozenset(compile_only)
        extends = tuple(_strings(path, f"configurations.{name}.extends", body.get("extends", [])))
        for parent in extends:
            if parent not in specs:
                raise UnknownConfigurationError(parent, specs, context=f"extends of '{name}'")
        extends_by_name[name] = extends

    configurations: List[Configuration] = []
    for name in sorted(specs):
        body = specs[name]
        if "resolved" in body:
            resolved = _coordinates(path, f"configurations.{name}.resolved", body["resolved"])
            for coordinate in resolved:
                _require_in_catalog(coordinate, catalog, name)
            resolved_set = set(resolved) | _closure(compile_only_by_name[name], catalog, name)
        else:
            roots: Set[ArtifactCoordinate] = set(compile_only_by_name[name])
            for source in _with_parents(name, extends_by_name):
                roots |= declared_by_name[source]
            resolved_set = _closure(roots, catalog, name)

        outputs = tuple(
            (base / entry).resolve()
            for entry in _strings(path, f"configurations.{name}.outputs", body.get("outputs", []))
        )
        configurations.append(
            Configuration(
                name=name,
                declared=declared_by_name[name],
                artifacts=tuple(catalog[c] for c in sorted(resolved_set)),
                outputs=outputs,
                extends=extends_by_name[name],
                compile_only=compile_only_by_name[name],
            )
        )
        logger.debug(f"Manifest configuration {name}: {len(resolved_set)} resolved artifact(s)")

    permits: Dict[str, FrozenSet[PermitEntry]] = {}
    for name, body in sorted(raw_permits.items()):
        if name not in specs:
            raise UnknownConfigurationError(name, specs, context="permit list")
        body = _table(path, f"permits.{name}", body)
        _check_keys(path, f"permits.{name}", body, set(_PERMIT_KEYS))
        entries = set()
        for key, kind in _PERMIT_KEYS.items():
            for coordinate in _coordinates(path, f"permits.{name}.{key}", body.get(key, [])):
                entries.add(PermitEntry(coordinate, kind))
        permits[name] = frozenset(entries)

    return Manifest(path=path, configurations=tuple(configurations), permits=permits)


def _load_catalog(
    path: Path, base: Path, raw: Mapping[str, Any]
) -> Dict[ArtifactCoordinate, Artifact]:
    catalog: Dict[ArtifactCoordinate, Artifact] = {}
    for text, body in raw.items():
        coordinate = ArtifactCoordinate.parse(text)
        body = _table(path, f"artifacts.{text}", body)
        _check_keys(path, f"artifacts.{text}", body, _ARTIFACT_KEYS)
        archive = body.get("path")
        if archive is not None and not isinstance(archive, str):
            raise ManifestError(path, f"artifacts.{text}.path must be a string")
        dependencies = _coordinates(
            path, f"artifacts.{text}.dependencies", body.get("dependencies", [])
        )
        catalog[coordinate] = Artifact(
            coordinate=coordinate,
            path=(base / archive).resolve() if archive else None,
            dependencies=tuple(dependencies),
        )

    for artifact in catalog.values():
        for child in artifact.dependencies:
            if child not in catalog:
                raise ResolutionFailure(
                    str(child), f"dependency of {artifact.coordinate} is not in the catalog"
                )
    return catalog


def _closure(
    roots: Set[ArtifactCoordinate], catalog: Mapping[ArtifactCoordinate, Artifact], name: str
) -> Set[ArtifactCoordinate]:
    seen: Set[ArtifactCoordinate] = set()
    stack = sorted(roots)
    while stack:
        current = stack.pop()
        if current in seen:
            continue
        _require_in_catalog(current, catalog, name)
        seen.add(current)
        stack.extend(catalog[current].dependencies)
    return seen


def _with_parents(name: str, extends_by_name: Mapping[str, Tuple[str, ...]]) -> List[str]:
    # Cycles are reported by DeclarationModel.build; here they just stop the walk
    order: List[str] = []
    stack = [name]
    while stack:
        current = stack.pop()
        if current in order:
            continue
        order.append(current)
        stack.extend(extends_by_name.get(current, ()))
    return order


def _require_in_catalog(
    coordinate: ArtifactCoordinate,
    catalog: Mapping[ArtifactCoordinate, Artifact],
    configuration: str,
) -> None:
    if coordinate not in catalog:
        raise ResolutionFailure(str(coordinate), "not in the artifact catalog", configuration)


def _table(path: Path, where: str, value: Any) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise ManifestError(path, f"{where} must be a table")
    return value


def _check_keys(path: Path, where: str, table: Mapping[str, Any], allowed: Set[str]) -> None:
    unknown = sorted(set(table) - allowed)
    if unknown:
        raise ManifestError(
            path,
            f"unknown key(s) in {where}: {', '.join(unknown)} "
            f"(allowed: {', '.join(sorted(allowed))})",
        )


def _strings(path: Path, where: str, value: Any) -> List[str]:
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ManifestError(path, f"{where} must be a list of strings")
    return value


def _coordinates(path: Path, where: str, value: Any) -> List[ArtifactCoordinate]:
    return [ArtifactCoordinate.parse(text) for text in _strings(path, where, value)]

"""Artifact Index: which resolved artifact owns each class.

Ownership is best-effort. When two artifacts ship the same class (shaded
jars, split packages) the artifact whose coordinate sorts first keeps it
and a ``duplicate_class`` diagnostic is recorded, unless the strict policy
is selected, in which case the configuration fails.
"""

from __future__ import annotations

import os
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from ..cache import ArtifactClassCache
from ..exceptions import ArchiveError, DuplicateClassError, ResolutionFailure
from ..logging_config import get_logger
from ..models import DUPLICATE_CLASS, Artifact, ArtifactCoordinate, Diagnostic
from ..scanning.archive import list_classes

logger = get_logger(__name__)

# Default worker count: use CPU count, capped at 8 to avoid overwhelming I/O
DEFAULT_WORKERS = min(os.cpu_count() or 4, 8)

# Below this many archives, threads cost more than they save
PARALLEL_THRESHOLD = 4


@dataclass(frozen=True)
class ArtifactIndex:
    """Mapping of class name to owning artifact for one configuration."""

    class_owner: Mapping[str, ArtifactCoordinate]
    classes: Mapping[ArtifactCoordinate, Tuple[str, ...]] = field(default_factory=dict)
    diagnostics: Tuple[Diagnostic, ...] = ()

    def owner_of(self, class_name: str) -> Optional[ArtifactCoordinate]:
        return self.class_owner.get(class_name)

    def classes_of(self, coordinate: ArtifactCoordinate) -> Tuple[str, ...]:
        return self.classes.get(coordinate, ())

    def __len__(self) -> int:
        return len(self.class_owner)


def build_artifact_index(
    artifacts: Iterable[Artifact],
    configuration: Optional[str] = None,
    workers: Optional[int] = None,
    strict: bool = False,
    cache: Optional[ArtifactClassCache] = None,
) -> ArtifactIndex:
    """Build the class ownership map for a resolved artifact set.

    Args:
        artifacts: Resolved artifacts of the configuration
        configuration: Configuration name, used in error messages
        workers: Thread count for archive listing (None = auto)
        strict: Fail on duplicate class ownership instead of keeping the
            first-seen owner
        cache: Shared listing cache; a private one is used when omitted

    Raises:
        ResolutionFailure: If an archive is missing or unreadable
        DuplicateClassError: If ``strict`` and two artifacts share a class
    """
    cache = cache or ArtifactClassCache()

    ordered: List[Artifact] = []
    seen = set()
    for artifact in sorted(artifacts, key=lambda a: a.coordinate):
        if artifact.coordinate in seen:
            continue
        seen.add(artifact.coordinate)
        ordered.append(artifact)

    listings = _list_all(ordered, configuration, workers or DEFAULT_WORKERS, cache)

    class_owner: Dict[str, ArtifactCoordinate] = {}
    # (owner, duplicate) -> classes both provide
    duplicates: Dict[Tuple[ArtifactCoordinate, ArtifactCoordinate], List[str]] = defaultdict(list)

    # Merge in coordinate order so first-seen ownership never depends on
    # which archive finished listing first
    for artifact in ordered:
        coordinate = artifact.coordinate
        for class_name in listings[coordinate]:
            owner = class_owner.get(class_name)
            if owner is None:
                class_owner[class_name] = coordinate
                continue
            if strict:
                raise DuplicateClassError(class_name, str(owner), str(coordinate))
            duplicates[(owner, coordinate)].append(class_name)

    diagnostics = []
    for (owner, duplicate), class_names in sorted(duplicates.items(), key=lambda item: item[0]):
        detail = (
            f"{len(class_names)} class(es) also provided by {owner}, "
            f"e.g. {class_names[0]}; keeping {owner}"
        )
        logger.warning(f"Duplicate classes in {duplicate}: {detail}")
        diagnostics.append(Diagnostic(DUPLICATE_CLASS, str(duplicate), detail))

    logger.debug(
        f"Built artifact class map for {configuration or '<anonymous>'}: "
        f"{len(class_owner)} classes in {len(ordered)} artifacts"
    )
    return ArtifactIndex(
        class_owner=class_owner,
        classes={a.coordinate: listings[a.coordinate] for a in ordered},
        diagnostics=tuple(diagnostics),
    )


def _list_all(
    artifacts: List[Artifact],
    configuration: Optional[str],
    workers: int,
    cache: ArtifactClassCache,
) -> Dict[ArtifactCoordinate, Tuple[str, ...]]:
    def _list(artifact: Artifact) -> Tuple[str, ...]:
        if artifact.path is None:
            # POM-only artifacts contribute no classes
            return ()
        try:
            return cache.classes_for(artifact.path, list_classes)
        except ArchiveError as e:
            raise ResolutionFailure(str(artifact.coordinate), e.reason, configuration) from e

    listings: Dict[ArtifactCoordinate, Tuple[str, ...]] = {}

    if workers == 1 or len(artifacts) < PARALLEL_THRESHOLD:
        for artifact in artifacts:
            listings[artifact.coordinate] = _list(artifact)
        return listings

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {executor.submit(_list, a): a for a in artifacts}
        try:
            for future in as_completed(futures):
                listings[futures[future].coordinate] = future.result()
        except ResolutionFailure:
            for pending in futures:
                pending.cancel()
            raise

    return listings

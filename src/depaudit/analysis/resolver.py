"""Usage Resolver: compiled output -> artifacts it actually uses."""

from __future__ import annotations

from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, FrozenSet, List, Optional, Set, Tuple

from ..exceptions import ClassFileFormatError
from ..logging_config import get_logger
from ..models import (
    SCAN_FAILURE,
    ArtifactCoordinate,
    ClassReference,
    Configuration,
    Diagnostic,
    UsageResult,
)
from ..scanning.archive import iter_class_files
from ..scanning.base import UsageExtractor
from ..scanning.classfile import ClassFileUsageExtractor
from .index import DEFAULT_WORKERS, ArtifactIndex

logger = get_logger(__name__)

# Class files per configuration below which scanning stays on one thread
PARALLEL_THRESHOLD = 32

# (origin, references or None, failure reason)
_ScanOutcome = Tuple[str, Optional[FrozenSet[ClassReference]], Optional[str]]


def resolve_usage(
    configuration: Configuration,
    index: ArtifactIndex,
    extractor: Optional[UsageExtractor] = None,
    workers: Optional[int] = None,
) -> UsageResult:
    """Compute the artifacts referenced by a configuration's compiled output.

    References to the project's own classes and to classes no artifact
    owns (JDK, unresolved) are dropped: they are not dependency usages.
    A class file that cannot be parsed becomes a ``scan_failure``
    diagnostic and the scan continues.

    Raises:
        ArchiveError: If a compiled output location exists but is unreadable.
    """
    extractor = extractor or ClassFileUsageExtractor()
    workers = workers or DEFAULT_WORKERS

    class_files: List[Tuple[str, str, bytes]] = []
    diagnostics: List[Diagnostic] = []
    for output in configuration.outputs:

        def _unreadable(class_name: str, reason: str, output=output) -> None:
            diagnostics.append(Diagnostic(SCAN_FAILURE, f"{output}!{class_name}", reason))

        for class_name, data in iter_class_files(output, on_entry_error=_unreadable):
            class_files.append((class_name, f"{output}!{class_name}", data))
    project_classes: Set[str] = {name for name, _, _ in class_files}

    def _scan(item: Tuple[str, str, bytes]) -> _ScanOutcome:
        _, origin, data = item
        try:
            return origin, extractor.extract(data, origin), None
        except ClassFileFormatError as e:
            return origin, None, e.reason

    outcomes: List[_ScanOutcome] = []
    if workers == 1 or len(class_files) < PARALLEL_THRESHOLD:
        outcomes = [_scan(item) for item in class_files]
    else:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(_scan, item) for item in class_files]
            for future in as_completed(futures):
                outcomes.append(future.result())

    evidence: Dict[ArtifactCoordinate, Set[ClassReference]] = defaultdict(set)
    for origin, references, failure in outcomes:
        if references is None:
            logger.warning(f"Skipping unparsable class {origin} in {configuration.name}: {failure}")
            diagnostics.append(Diagnostic(SCAN_FAILURE, origin, failure or "unknown error"))
            continue
        for reference in references:
            if reference.class_name in project_classes:
                continue
            owner = index.owner_of(reference.class_name)
            if owner is not None:
                evidence[owner].add(reference)

    used = frozenset(evidence)
    logger.debug(
        f"[{configuration.name}] scanned {len(class_files)} classes; "
        f"used artifacts: {sorted(str(c) for c in used)}"
    )
    for coordinate in sorted(evidence):
        classes = sorted({ref.class_name for ref in evidence[coordinate]})
        logger.debug(f"[{configuration.name}] {coordinate} used via {classes}")

    return UsageResult(
        used=used,
        evidence={
            coordinate: tuple(
                sorted(refs, key=lambda ref: (ref.class_name, ref.referenced_from))
            )
            for coordinate, refs in sorted(evidence.items(), key=lambda item: item[0])
        },
        classes_scanned=len(class_files),
        diagnostics=tuple(sorted(diagnostics, key=lambda d: d.sort_key)),
    )

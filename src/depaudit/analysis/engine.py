"""Analysis pipeline: index -> resolve -> classify -> report.

``analyze`` is a pure function of its inputs. It reads archives and
compiled output but never mutates them, and the only state it can leave
behind is the optional persistent class-listing cache.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable, List, Mapping, Optional, Union

from ..cache import ArtifactClassCache
from ..config import AnalysisConfig
from ..logging_config import get_logger
from ..models import Configuration, ConfigurationResult, PermitEntry
from ..scanning.base import UsageExtractor
from ..scanning.classfile import ClassFileUsageExtractor
from .classifier import classify
from .declarations import DeclarationModel
from .index import build_artifact_index
from .report import AnalysisReport, build_report
from .resolver import resolve_usage

logger = get_logger(__name__)

Declarations = Union[DeclarationModel, Mapping[str, Iterable[PermitEntry]], None]


def analyze(
    configurations: Iterable[Configuration],
    declarations: Declarations = None,
    config: Optional[AnalysisConfig] = None,
    extractor: Optional[UsageExtractor] = None,
    cache: Optional[ArtifactClassCache] = None,
) -> AnalysisReport:
    """Run dependency analysis over every configuration.

    Configurations are processed in name order; work inside a
    configuration (archive listing, class parsing) runs on a thread pool.

    Args:
        configurations: Resolved configurations to analyze
        declarations: A prebuilt DeclarationModel, or permit entries keyed
            by configuration name from which one is built
        config: Analysis settings (defaults when omitted)
        extractor: Usage extractor (the bundled class-file reader when omitted)
        cache: Shared archive listing cache

    Returns:
        AnalysisReport; ``report.passed`` is False iff a failing violation
        was found.

    Raises:
        ConfigurationError: If the declarations are inconsistent
        ResolutionFailure: If an artifact archive cannot be read, or two
            artifacts share a class under the ``fail`` duplicate policy
        ArchiveError: If a compiled output location is unreadable
    """
    config = config or AnalysisConfig()
    configurations = list(configurations)
    if isinstance(declarations, DeclarationModel):
        model = declarations
    else:
        model = DeclarationModel.build(configurations, declarations)

    extractor = extractor or ClassFileUsageExtractor()
    owns_cache = cache is None
    if cache is None:
        cache = ArtifactClassCache(cache_dir=config.cache_dir, enabled=config.cache_enabled)

    results: List[ConfigurationResult] = []
    try:
        for configuration in sorted(configurations, key=lambda c: c.name):
            results.append(_analyze_configuration(configuration, model, config, extractor, cache))
    finally:
        if owns_cache:
            cache.close()

    report = build_report(results, config)
    logger.info(
        f"Analyzed {len(results)} configuration(s): {len(report.violations)} violation(s), "
        f"{report.warning_count} warning(s)"
    )
    return report


def _analyze_configuration(
    configuration: Configuration,
    model: DeclarationModel,
    config: AnalysisConfig,
    extractor: UsageExtractor,
    cache: ArtifactClassCache,
) -> ConfigurationResult:
    name = configuration.name
    declarations = model.for_configuration(name)
    logger.debug(f"[{name}] analyzing {len(configuration.artifacts)} resolved artifact(s)")

    index = build_artifact_index(
        configuration.artifacts,
        configuration=name,
        workers=config.workers,
        strict=config.strict_duplicates,
        cache=cache,
    )
    usage = resolve_usage(configuration, index, extractor=extractor, workers=config.workers)
    result = classify(declarations, usage)

    if index.diagnostics:
        merged = sorted(set(result.diagnostics) | set(index.diagnostics), key=lambda d: d.sort_key)
        result = replace(result, diagnostics=tuple(merged))
    return result

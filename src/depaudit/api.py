"""Public API for depaudit.

``analyze`` (re-exported from :mod:`depaudit.analysis`) is the pure entry
point for drivers that already hold resolved configurations. This module
adds the manifest-driven variant used by the CLI.

Example:
    >>> from depaudit import analyze_manifest
    >>>
    >>> report = analyze_manifest("build/depaudit.toml")
    >>> report.passed
    True
    >>>
    >>> # With customization
    >>> report = analyze_manifest(
    ...     "build/depaudit.toml",
    ...     warn_unused_declared=True,
    ...     duplicate_classes="fail",
    ... )
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

from .analysis import AnalysisReport, analyze
from .cache import ArtifactClassCache
from .config import load_config
from .logging_config import get_logger
from .manifest import load_manifest

logger = get_logger(__name__)


def analyze_manifest(
    manifest_path: Union[str, Path],
    config_file: Optional[Path] = None,
    cache: Optional[ArtifactClassCache] = None,
    **overrides,
) -> AnalysisReport:
    """Load a manifest and analyze every configuration it describes.

    Args:
        manifest_path: Path to the analysis manifest (TOML)
        config_file: Optional explicit settings file
        cache: Shared archive listing cache (one is created from the
            settings when omitted)
        **overrides: Settings overrides (e.g. workers=4, warn_used_undeclared=True)

    Returns:
        AnalysisReport for the whole manifest

    Raises:
        ConfigurationError: If the settings or the manifest are invalid
        ResolutionFailure: If an artifact cannot be read or resolved
    """
    config = load_config(config_file=config_file, **overrides)
    logger.debug(f"Configuration loaded: {config}")

    manifest = load_manifest(Path(manifest_path))
    logger.info(
        f"Loaded manifest {manifest.path} with {len(manifest.configurations)} configuration(s)"
    )

    return analyze(
        manifest.configurations,
        manifest.declaration_model(),
        config=config,
        cache=cache,
    )

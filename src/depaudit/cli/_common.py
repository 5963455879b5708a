"""Shared CLI helpers."""

from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.markup import escape

from ..config import AnalysisConfig, load_config

console = Console()


def resolve_config(
    config: Optional[Path] = None,
    workers: Optional[int] = None,
    strict_duplicates: bool = False,
    warn_used_undeclared: bool = False,
    warn_unused_declared: bool = False,
    ignore_used_undeclared: bool = False,
    warn_compile_only: bool = False,
    cache: Optional[bool] = None,
    verbose: bool = False,
    quiet: bool = False,
) -> AnalysisConfig:
    """Build settings from CLI options.

    Flags left at their defaults are not passed on, so values from config
    files and the environment still apply.
    """
    overrides = {}
    if workers is not None:
        overrides["workers"] = workers
    if strict_duplicates:
        overrides["duplicate_classes"] = "fail"
    if warn_used_undeclared:
        overrides["warn_used_undeclared"] = True
    if warn_unused_declared:
        overrides["warn_unused_declared"] = True
    if ignore_used_undeclared:
        overrides["ignore_used_undeclared"] = True
    if warn_compile_only:
        overrides["warn_compile_only"] = True
    if cache is not None:
        overrides["cache_enabled"] = cache
    if verbose:
        overrides["verbose"] = True
    if quiet:
        overrides["quiet"] = True
    return load_config(config_file=config, **overrides)


def print_error(error: Exception) -> None:
    console.print(f"[red]Error:[/red] {escape(str(error))}")

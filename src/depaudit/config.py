"""Configuration loading and management for depaudit.

Configuration sources are merged in priority order:
    1. Defaults (defined in AnalysisConfig)
    2. Global config (~/.depaudit.toml)
    3. Project config (./depaudit.toml)
    4. Explicit config file
    5. Environment variables (DEPAUDIT_* prefix)
    6. Overrides (passed as kwargs, typically from CLI flags)

Example:
    >>> config = load_config(verbose=True, duplicate_classes="fail")
    >>> config.verbosity
    'verbose'
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal, Optional, get_type_hints

from .exceptions import InvalidConfigError, ConfigurationError

Verbosity = Literal["quiet", "normal", "verbose"]
DuplicatePolicy = Literal["first_seen", "fail"]

_DUPLICATE_POLICIES = ("first_seen", "fail")
_VERBOSITIES = ("quiet", "normal", "verbose")


@dataclass(frozen=True)
class AnalysisConfig:
    """Settings for one analysis run.

    Attributes:
        Performance tuning:
            workers: Number of scanning threads (None = auto-detect)

        Resolution:
            duplicate_classes: What to do when two artifacts provide the same
                class. ``first_seen`` keeps the owner that sorts first and
                records a diagnostic; ``fail`` aborts the configuration.

        Severity policy:
            warn_used_undeclared: Report used-undeclared artifacts as warnings
            warn_unused_declared: Report unused-declared artifacts as warnings
            ignore_used_undeclared: Drop used-undeclared findings entirely
            report_stale_permits: Warn about permits that suppress nothing
            report_superfluous: Warn about declarations covered by an aggregator
            warn_compile_only: List compile-only artifacts the output never
                references (they are never unused-declared violations)

        Caching:
            cache_enabled: Persist archive class listings between runs
            cache_dir: Directory for the persistent cache

        Output control:
            verbosity: Logging verbosity level
    """

    # Performance tuning
    workers: Optional[int] = None  # None = auto-detect from CPU cores

    # Resolution
    duplicate_classes: DuplicatePolicy = "first_seen"

    # Severity policy
    warn_used_undeclared: bool = False
    warn_unused_declared: bool = False
    ignore_used_undeclared: bool = False
    report_stale_permits: bool = True
    report_superfluous: bool = True
    warn_compile_only: bool = False

    # Caching
    cache_enabled: bool = False
    cache_dir: str = ".depaudit-cache"

    # Output control
    verbosity: Verbosity = "normal"

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.workers is not None and self.workers < 1:
            raise InvalidConfigError("workers", self.workers, "must be at least 1")
        if self.duplicate_classes not in _DUPLICATE_POLICIES:
            raise InvalidConfigError(
                "duplicate_classes",
                self.duplicate_classes,
                f"expected one of {', '.join(_DUPLICATE_POLICIES)}",
            )
        if self.verbosity not in _VERBOSITIES:
            raise InvalidConfigError(
                "verbosity", self.verbosity, f"expected one of {', '.join(_VERBOSITIES)}"
            )
        if not self.cache_dir:
            raise InvalidConfigError("cache_dir", self.cache_dir, "must not be empty")

    @property
    def strict_duplicates(self) -> bool:
        return self.duplicate_classes == "fail"


DEFAULT_CONFIG = AnalysisConfig()


def load_config(config_file: Optional[Path] = None, **overrides) -> AnalysisConfig:
    """Load configuration with auto-discovery and merging.

    Args:
        config_file: Optional explicit config file path
        **overrides: Direct overrides (typically from CLI flags). ``verbose``
            and ``quiet`` booleans are translated to ``verbosity``; None
            values are ignored so unset CLI options do not mask file values.

    Returns:
        Validated AnalysisConfig instance

    Raises:
        ConfigurationError: If a config file is invalid or missing
    """
    merged: dict = {}

    global_config = Path.home() / ".depaudit.toml"
    if global_config.exists():
        merged.update(_read_config_section(global_config))

    project_config = Path.cwd() / "depaudit.toml"
    if project_config.exists():
        merged.update(_read_config_section(project_config))

    if config_file is not None:
        if not config_file.exists():
            raise ConfigurationError(f"Config file not found: {config_file}")
        merged.update(_read_config_section(config_file))

    merged.update(_load_env_vars())

    if "verbose" in overrides:
        if overrides["verbose"]:
            overrides["verbosity"] = "verbose"
        del overrides["verbose"]
    if "quiet" in overrides:
        if overrides["quiet"]:
            overrides["verbosity"] = "quiet"
        del overrides["quiet"]

    merged.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return AnalysisConfig(**merged)
    except TypeError as e:
        # Unknown field in config
        raise ConfigurationError(f"Invalid configuration: {e}")


def _read_config_section(path: Path) -> dict:
    """Read settings from a TOML file.

    Settings may live at the top level or under a ``[depaudit]`` table.
    """
    try:
        data = load_toml_file(path)
    except ConfigurationError:
        raise
    except Exception as e:
        raise ConfigurationError(f"Invalid config file '{path}': {e}")
    section = data.get("depaudit", data)
    if not isinstance(section, dict):
        raise ConfigurationError(f"Invalid config file '{path}': [depaudit] must be a table")
    return dict(section)


def _load_env_vars() -> dict[str, Any]:
    """Load configuration from DEPAUDIT_* environment variables.

    Supported environment variables mirror the AnalysisConfig fields, e.g.
    DEPAUDIT_WORKERS, DEPAUDIT_DUPLICATE_CLASSES, DEPAUDIT_CACHE_ENABLED,
    DEPAUDIT_WARN_UNUSED_DECLARED.

    Returns:
        Dict of field_name -> parsed_value for any DEPAUDIT_* vars found.
    """
    type_hints = get_type_hints(AnalysisConfig)

    result: dict[str, Any] = {}

    for field_name in AnalysisConfig.__dataclass_fields__:
        env_key = f"DEPAUDIT_{field_name.upper()}"
        env_value = os.environ.get(env_key)

        if env_value is None:
            continue

        type_hint = type_hints.get(field_name)
        if type_hint is None:
            continue

        try:
            parsed = _parse_env_value(env_value, type_hint)
            if parsed is not None:
                result[field_name] = parsed
        except ValueError as e:
            raise InvalidConfigError(env_key, env_value, str(e))

    return result


def _parse_env_value(value: str, type_hint: Any) -> Any:
    """Parse environment variable string to the correct type.

    Raises:
        ValueError: If value can't be parsed to expected type
    """
    origin = getattr(type_hint, "__origin__", None)

    # Optional[X] is Union[X, None]
    args = getattr(type_hint, "__args__", ())
    if type(None) in args:
        non_none_types = [t for t in args if t is not type(None)]
        if non_none_types:
            type_hint = non_none_types[0]
            origin = getattr(type_hint, "__origin__", None)

    if type_hint is bool:
        lower = value.lower()
        if lower in ("true", "1", "yes", "on"):
            return True
        elif lower in ("false", "0", "no", "off"):
            return False
        else:
            raise ValueError(f"expected true/false, got '{value}'")

    if type_hint is int:
        return int(value)

    # String (including Literal types like Verbosity)
    if type_hint is str or origin is Literal:
        return value

    return None


def load_toml_file(path: Path) -> dict:
    """Load TOML file and return parsed dict.

    Raises:
        ConfigurationError: If no TOML parser is available
        Exception: If TOML parsing fails
    """
    try:
        # Python 3.11+ has tomllib in stdlib
        import tomllib
    except ModuleNotFoundError:
        try:
            # Fallback to tomli for Python 3.9-3.10
            import tomli as tomllib  # type: ignore
        except ImportError:
            raise ConfigurationError(
                "TOML support requires Python 3.11+ or 'tomli' package. "
                "Install with: pip install tomli"
            )

    with open(path, "rb") as f:
        return tomllib.load(f)

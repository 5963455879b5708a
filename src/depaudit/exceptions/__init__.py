"""Exception hierarchy for depaudit."""

from .analysis import (
    AnalysisError,
    ArchiveError,
    ClassFileFormatError,
    DuplicateClassError,
    ResolutionFailure,
)
from .base import DepauditError
from .config import (
    ConfigurationError,
    InvalidConfigError,
    InvalidCoordinateError,
    ManifestError,
    UnknownConfigurationError,
)

__all__ = [
    "DepauditError",
    "AnalysisError",
    "ResolutionFailure",
    "DuplicateClassError",
    "ArchiveError",
    "ClassFileFormatError",
    "ConfigurationError",
    "InvalidConfigError",
    "InvalidCoordinateError",
    "UnknownConfigurationError",
    "ManifestError",
]

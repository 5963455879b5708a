"""Analysis-related exceptions: artifact resolution, archives, class files."""

from pathlib import Path
from typing import Optional

from .base import DepauditError


class AnalysisError(DepauditError):
    """Base class for analysis-related errors."""
    pass


class ResolutionFailure(AnalysisError):
    """Raised when a configuration or one of its artifacts cannot be resolved.

    Fatal for the owning configuration: an artifact whose contents cannot be
    read cannot be trusted for usage attribution.
    """

    def __init__(self, coordinate: str, reason: str, configuration: Optional[str] = None):
        details = {"coordinate": coordinate, "reason": reason}
        if configuration is not None:
            details["configuration"] = configuration
        super().__init__(f"Cannot resolve artifact {coordinate}", details=details)
        self.coordinate = coordinate
        self.reason = reason
        self.configuration = configuration


class DuplicateClassError(ResolutionFailure):
    """Raised when two artifacts provide the same class under the strict policy."""

    def __init__(self, class_name: str, owner: str, duplicate: str):
        super().__init__(
            duplicate,
            f"class {class_name} is already provided by {owner}",
        )
        self.class_name = class_name
        self.owner = owner
        self.duplicate = duplicate


class ArchiveError(AnalysisError):
    """Raised when a jar or class directory cannot be read."""

    def __init__(self, path: Path, reason: str):
        super().__init__(
            f"Cannot read archive: {path}",
            details={"path": str(path), "reason": reason},
        )
        self.path = path
        self.reason = reason


class ClassFileFormatError(AnalysisError):
    """Raised when class file bytes cannot be parsed."""

    def __init__(self, reason: str, origin: str = "<unknown>"):
        super().__init__(
            f"Malformed class file: {origin}",
            details={"origin": origin, "reason": reason},
        )
        self.reason = reason
        self.origin = origin

"""Configuration exceptions: settings, manifests, permit declarations."""

from pathlib import Path
from typing import Any, Iterable

from .base import DepauditError


class ConfigurationError(DepauditError):
    """Base class for configuration-related errors."""

    pass


class InvalidConfigError(ConfigurationError):
    """Raised when configuration values are invalid."""

    def __init__(self, key: str, value: Any, reason: str):
        super().__init__(
            f"Invalid configuration for {key}: {value}",
            details={"key": key, "value": str(value), "reason": reason},
        )
        self.key = key
        self.value = value
        self.reason = reason


class InvalidCoordinateError(ConfigurationError):
    """Raised when an artifact coordinate is not ``group:name:version``."""

    def __init__(self, text: str, reason: str = "expected group:name:version"):
        super().__init__(
            f"Malformed artifact coordinate: {text!r}",
            details={"reason": reason},
        )
        self.text = text
        self.reason = reason


class UnknownConfigurationError(ConfigurationError):
    """Raised when a permit list or ``extends`` names a configuration that does not exist."""

    def __init__(self, name: str, known: Iterable[str], context: str = "permit list"):
        known_sorted = sorted(known)
        super().__init__(
            f"Unknown configuration '{name}' referenced by {context}",
            details={"known": ", ".join(known_sorted) or "<none>"},
        )
        self.name = name
        self.known = known_sorted
        self.context = context


class ManifestError(ConfigurationError):
    """Raised when an analysis manifest is unreadable or has an invalid structure."""

    def __init__(self, path: Path, reason: str):
        super().__init__(
            f"Invalid manifest: {path}",
            details={"path": str(path), "reason": reason},
        )
        self.path = path
        self.reason = reason

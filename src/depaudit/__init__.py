"""
depaudit - dependency usage analysis for JVM builds

Reads compiled class files, attributes every referenced class to the
artifact that provides it, and reports artifacts that are used without
being declared or declared without being used.
"""

__version__ = "0.1.0"

from .analysis import AnalysisReport, DeclarationModel, analyze
from .api import analyze_manifest
from .config import AnalysisConfig, load_config
from .manifest import Manifest, load_manifest
from .models import (
    Artifact,
    ArtifactCoordinate,
    Configuration,
    PermitEntry,
    PermitKind,
    Violation,
    ViolationKind,
)

__all__ = [
    "analyze",  # Pure entry point over resolved configurations
    "analyze_manifest",  # Manifest-driven entry point
    "AnalysisConfig",
    "AnalysisReport",
    "Artifact",
    "ArtifactCoordinate",
    "Configuration",
    "DeclarationModel",
    "Manifest",
    "PermitEntry",
    "PermitKind",
    "Violation",
    "ViolationKind",
    "load_config",
    "load_manifest",
]

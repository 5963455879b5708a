"""Dependency analysis pipeline."""

from .classifier import aggregators_in_use, classify
from .declarations import ConfigurationDeclarations, DeclarationModel, reachable_from
from .engine import analyze
from .index import ArtifactIndex, build_artifact_index
from .report import AnalysisReport, build_report
from .resolver import resolve_usage

__all__ = [
    "analyze",
    "AnalysisReport",
    "ArtifactIndex",
    "ConfigurationDeclarations",
    "DeclarationModel",
    "aggregators_in_use",
    "build_artifact_index",
    "build_report",
    "classify",
    "reachable_from",
    "resolve_usage",
]

"""Base formatter interface for depaudit output rendering."""

from abc import ABC, abstractmethod

from ..analysis.report import AnalysisReport


class BaseFormatter(ABC):
    """Abstract base class for output formatters."""

    @abstractmethod
    def render(self, report: AnalysisReport) -> None:
        """Render the report to stdout/stderr as appropriate."""

    @abstractmethod
    def format(self, report: AnalysisReport) -> str:
        """Return formatted string representation of the report."""

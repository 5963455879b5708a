"""Plain text formatter: the deterministic report, nothing else."""

from ..analysis.report import AnalysisReport
from .base import BaseFormatter


class TextFormatter(BaseFormatter):
    """Print ``AnalysisReport.render_text()`` verbatim."""

    def render(self, report: AnalysisReport) -> None:
        print(self.format(report), end="")

    def format(self, report: AnalysisReport) -> str:
        return report.render_text()

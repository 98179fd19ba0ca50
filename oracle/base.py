"""Capability interfaces for the external language-model collaborators."""

from typing import Protocol

from core.models import IncidentRecord, IncidentReport, OracleJudgment


class SimilarityOracle(Protocol):
    def compare(self, report: IncidentReport, candidates: list[IncidentRecord]) -> list[OracleJudgment]:
        """
        Judge how likely the report describes the same event as each candidate.
        Best-effort: may return fewer judgments than candidates, raise, or stall.
        """
        ...


class SeverityAnalyzer(Protocol):
    def analyze(self, report: IncidentReport) -> dict:
        """Analysis blob with at least a valid "severity"; must not raise."""
        ...

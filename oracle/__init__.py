"""Language-model collaborators: the similarity oracle and the severity analyzer."""

from oracle.base import SimilarityOracle, SeverityAnalyzer
from oracle.similarity import OpenAISimilarityOracle, build_similarity_oracle, parse_judgments
from oracle.analyzer import ReportAnalyzer, build_analyzer, default_analysis, parse_analysis

__all__ = [
    "SimilarityOracle",
    "SeverityAnalyzer",
    "OpenAISimilarityOracle",
    "build_similarity_oracle",
    "parse_judgments",
    "ReportAnalyzer",
    "build_analyzer",
    "default_analysis",
    "parse_analysis",
]

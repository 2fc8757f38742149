"""Pipeline services: classification, scoring, history, summary, commentary and reports"""

from repo_insights.services.analyst import AnalysisService, LLMError
from repo_insights.services.classifier import RepoClassifier
from repo_insights.services.fallback import generate_template_fallback
from repo_insights.services.history_manager import HistoryError, HistoryManager, apply_rankings
from repo_insights.services.report import ReportGenerator
from repo_insights.services.scorer import ScoreCalculator
from repo_insights.services.summary_builder import SummaryBuilder

__all__ = [
    "AnalysisService",
    "HistoryError",
    "HistoryManager",
    "LLMError",
    "ReportGenerator",
    "RepoClassifier",
    "ScoreCalculator",
    "SummaryBuilder",
    "apply_rankings",
    "generate_template_fallback",
]

"""Pipeline data models"""

from repo_insights.models.history import History, RepoHistory
from repo_insights.models.repository import (
    ClassifiedRepo,
    RepoMetadata,
    ScoredRepo,
    format_repo_key,
    format_repo_url,
    parse_repo_key,
)
from repo_insights.models.summary import (
    CategoryStats,
    DarkHorseInfo,
    HighlightComment,
    LanguageStats,
    LLMOutput,
    MetaInfo,
    NewReposInfo,
    RepeaterInfo,
    SummaryJSON,
    TopRepoInfo,
)

__all__ = [
    "RepoMetadata",
    "ClassifiedRepo",
    "ScoredRepo",
    "RepoHistory",
    "History",
    "MetaInfo",
    "CategoryStats",
    "LanguageStats",
    "NewReposInfo",
    "DarkHorseInfo",
    "RepeaterInfo",
    "TopRepoInfo",
    "SummaryJSON",
    "HighlightComment",
    "LLMOutput",
    "format_repo_key",
    "format_repo_url",
    "parse_repo_key",
]

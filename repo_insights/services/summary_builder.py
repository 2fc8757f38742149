"""Aggregates the ranked top-N and streak history into the run summary."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
import logging
from typing import Callable, Sequence

from repo_insights.config.app_config import ReportSettings
from repo_insights.models.history import History
from repo_insights.models.repository import ScoredRepo
from repo_insights.models.summary import (
    CategoryStats,
    DarkHorseInfo,
    LanguageStats,
    MetaInfo,
    NewReposInfo,
    RepeaterInfo,
    SummaryJSON,
    TopRepoInfo,
)

logger = logging.getLogger(__name__)

REPEATER_MIN_WEEKS = 2


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SummaryBuilder:
    """Builds SummaryJSON; stateless apart from settings and the clock."""

    def __init__(self, settings: ReportSettings, now: Callable[[], datetime] = _utcnow):
        self.settings = settings
        self._now = now

    def build_summary(
        self,
        top_repos: Sequence[ScoredRepo],
        history: History,
        run_date: str,
    ) -> SummaryJSON:
        summary = SummaryJSON(
            meta=self.build_meta(run_date),
            categories=self.aggregate_categories(top_repos),
            languages=self.aggregate_languages(top_repos),
            new_repos=self.identify_new_repos(top_repos),
            dark_horses=self.identify_dark_horses(top_repos),
            repeaters=self.identify_repeaters(top_repos, history),
            top_repos=self.build_top_repos(top_repos),
        )
        logger.info(
            f"Built summary for {run_date}: {len(summary.top_repos)} repos, "
            f"{len(summary.categories)} categories, {len(summary.dark_horses)} dark horses, "
            f"{len(summary.repeaters)} repeaters, {summary.new_repos.count} new"
        )
        return summary

    def build_meta(self, run_date: str) -> MetaInfo:
        return MetaInfo(
            run_date=run_date,
            window_days=self.settings.window_days,
            short_window_days=self.settings.short_window_days,
            top_n=self.settings.top_n,
            filter_domain=self.settings.filter_domain,
        )

    @staticmethod
    def aggregate_categories(repos: Sequence[ScoredRepo]) -> list[CategoryStats]:
        """Count, mean Heat_7 and mean score per primary category ("" = uncategorized)."""
        totals: dict[str, list[int]] = {}
        for repo in repos:
            bucket = totals.setdefault(repo.repo.primary_category, [0, 0, 0])
            bucket[0] += 1
            bucket[1] += repo.heat_7
            bucket[2] += repo.score

        return [
            CategoryStats(
                name=name,
                count=count,
                avg_heat_7=heat_sum / count,
                avg_score=score_sum / count,
            )
            for name, (count, heat_sum, score_sum) in totals.items()
        ]

    @staticmethod
    def aggregate_languages(repos: Sequence[ScoredRepo]) -> list[LanguageStats]:
        counts: dict[str, int] = {}
        for repo in repos:
            language = repo.metadata.language
            counts[language] = counts.get(language, 0) + 1
        return [LanguageStats(name=name, count=count) for name, count in counts.items()]

    def identify_new_repos(self, repos: Sequence[ScoredRepo]) -> NewReposInfo:
        """Repos created after now - new_repo_threshold_days; unknown creation dates never count."""
        threshold_days = self.settings.new_repo_threshold_days
        cutoff = self._now() - timedelta(days=threshold_days)

        keys = [
            repo.key
            for repo in repos
            if repo.metadata.created_at is not None and repo.metadata.created_at > cutoff
        ]
        return NewReposInfo(count=len(keys), threshold_days=threshold_days, repos=keys)

    def identify_dark_horses(self, repos: Sequence[ScoredRepo]) -> list[DarkHorseInfo]:
        threshold = self.settings.dark_horse_score_threshold
        return [
            DarkHorseInfo(
                repo_key=repo.key,
                repo_name=repo.metadata.name,
                url=repo.metadata.url,
                score=repo.score,
                heat_30=repo.heat_30,
                heat_7=repo.heat_7,
                category=repo.repo.primary_category,
            )
            for repo in repos
            if repo.score >= threshold
        ]

    @staticmethod
    def identify_repeaters(repos: Sequence[ScoredRepo], history: History) -> list[RepeaterInfo]:
        repeaters: list[RepeaterInfo] = []
        for repo in repos:
            entry = history.get(repo.key)
            if entry is None or entry.weeks_in_top < REPEATER_MIN_WEEKS:
                continue
            repeaters.append(
                RepeaterInfo(
                    repo_key=repo.key,
                    repo_name=repo.metadata.name,
                    url=repo.metadata.url,
                    weeks_in_top=entry.weeks_in_top,
                    current_heat_7=repo.heat_7,
                    category=repo.repo.primary_category,
                )
            )
        return repeaters

    @staticmethod
    def build_top_repos(repos: Sequence[ScoredRepo]) -> list[TopRepoInfo]:
        return [
            TopRepoInfo(
                rank=rank,
                repo_key=repo.key,
                repo_name=repo.metadata.name,
                url=repo.metadata.url,
                category=repo.repo.primary_category,
                language=repo.metadata.language,
                heat_7=repo.heat_7,
                heat_30=repo.heat_30,
                score=repo.score,
                description=repo.metadata.description,
            )
            for rank, repo in enumerate(repos, start=1)
        ]

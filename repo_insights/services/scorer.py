"""Score calculation and ranking for classified repositories"""

from __future__ import annotations

import logging
import math
from typing import Sequence

from repo_insights.models.repository import ClassifiedRepo, ScoredRepo

logger = logging.getLogger(__name__)

TODAY_WEIGHT = 0.6
WEEK_WEIGHT = 0.3
MONTH_WEIGHT = 0.1


class ScoreCalculator:
    """Turns upstream star counters into heat metrics and a composite score"""

    def __init__(self, window_days: int = 30, short_window_days: int = 7):
        self.window_days = window_days
        self.short_window_days = short_window_days

    @staticmethod
    def calculate_score(stars_today: int, stars_this_week: int, stars_this_month: int) -> int:
        """
        Calculate the weighted composite score

        Weekly and monthly totals are converted to daily rates before
        weighting so the three terms are comparable:

            floor(0.6 * today + 0.3 * (week / 7) + 0.1 * (month / 30))

        Example: today=100, week=350, month=900 -> floor(60 + 15 + 3) = 78

        Args:
            stars_today: Stars gained today
            stars_this_week: Stars gained this week
            stars_this_month: Stars gained this month

        Returns:
            Integer score (truncated, not rounded)
        """
        daily_rate = float(stars_today)
        weekly_avg_rate = stars_this_week / 7.0
        monthly_avg_rate = stars_this_month / 30.0

        value = (
            daily_rate * TODAY_WEIGHT
            + weekly_avg_rate * WEEK_WEIGHT
            + monthly_avg_rate * MONTH_WEIGHT
        )
        return math.floor(value)

    def calculate_scores(self, repos: Sequence[ClassifiedRepo]) -> list[ScoredRepo]:
        """
        Compute Heat_7, Heat_30 and Score for every repository

        Heat values are the upstream weekly/monthly counters passed through
        unchanged.

        Args:
            repos: Classified repositories

        Returns:
            ScoredRepo list in input order
        """
        scored: list[ScoredRepo] = []

        for repo in repos:
            meta = repo.metadata
            score = self.calculate_score(meta.stars_today, meta.stars_this_week, meta.stars_this_month)

            logger.debug(
                f"Scored '{repo.key}': today={meta.stars_today}, "
                f"week={meta.stars_this_week}, month={meta.stars_this_month}, "
                f"score={score}"
            )

            scored.append(
                ScoredRepo(
                    repo=repo,
                    total_stars=meta.stars,
                    heat_7=meta.stars_this_week,
                    heat_30=meta.stars_this_month,
                    score=score,
                )
            )

        return scored

    @staticmethod
    def rank_repositories(scored: Sequence[ScoredRepo]) -> list[ScoredRepo]:
        """Stable sort by Heat_30 desc, then Score desc. The input is left untouched."""
        return sorted(scored, key=lambda repo: (-repo.heat_30, -repo.score))

    def rank_and_select_top(self, scored: Sequence[ScoredRepo], top_n: int) -> list[ScoredRepo]:
        """
        Rank repositories and keep the first top_n

        Args:
            scored: Scored repositories in input order
            top_n: Maximum number of repositories to keep

        Returns:
            At most top_n repositories; fewer when the input is shorter
        """
        ranked = self.rank_repositories(scored)
        return ranked[:max(top_n, 0)]

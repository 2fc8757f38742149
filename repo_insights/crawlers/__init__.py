"""Trending data crawlers"""

from repo_insights.crawlers.base import BaseCrawler
from repo_insights.crawlers.trending import (
    TrendingCrawler,
    TrendingFetchError,
    parse_trending_page,
    save_raw,
)

__all__ = [
    "BaseCrawler",
    "TrendingCrawler",
    "TrendingFetchError",
    "parse_trending_page",
    "save_raw",
]

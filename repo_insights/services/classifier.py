"""Keyword-based filtering and categorization of trending repositories"""

from __future__ import annotations

import logging
from typing import Iterable

from repo_insights.config.app_config import KeywordConfig
from repo_insights.models.repository import ClassifiedRepo, RepoMetadata

logger = logging.getLogger(__name__)

TOKEN_PUNCTUATION = ".,;:!?()[]{}\"'"
STEM_MIN_LENGTH = 4


def build_search_text(repo: RepoMetadata) -> str:
    """Lowercase name, description and topics joined by single spaces."""
    parts = [repo.name, repo.description, *repo.topics]
    return " ".join(parts).lower()


def matches_keyword(text: str, keyword: str) -> bool:
    """
    Check whether a keyword occurs in the search text

    Hyphenated keywords ("machine-learning") are matched as plain substrings.
    Single words are matched per whitespace token (punctuation trimmed) on
    exact match, naive plural (keyword + "s") or, for keywords of four or
    more characters, prefix stem ("agent" matches "agentic").

    Args:
        text: Search text
        keyword: Keyword to look for

    Returns:
        True if the keyword matches
    """
    keyword = keyword.lower()
    text = text.lower()

    if "-" in keyword:
        return keyword in text

    for token in text.split():
        word = token.strip(TOKEN_PUNCTUATION)

        if word == keyword or word == keyword + "s":
            return True

        if len(keyword) >= STEM_MIN_LENGTH and word.startswith(keyword):
            return True

    return False


def count_matches(text: str, keywords: Iterable[str]) -> int:
    return sum(1 for keyword in keywords if matches_keyword(text, keyword))


class RepoClassifier:
    """Filters repositories by include/exclude rules and assigns categories"""

    def __init__(self, keywords: KeywordConfig):
        self.keywords = keywords

    def classify(self, repos: Iterable[RepoMetadata]) -> list[ClassifiedRepo]:
        """
        Keep repositories that match an include keyword and no exclude keyword

        Args:
            repos: Raw scraped repositories, in scrape order

        Returns:
            ClassifiedRepo list in input order (dropped repos are omitted)
        """
        classified: list[ClassifiedRepo] = []
        dropped = 0

        for repo in repos:
            text = build_search_text(repo)

            if not self.matches_include(text) or self.matches_exclude(text):
                dropped += 1
                continue

            categories = self.assign_categories(text)
            classified.append(
                ClassifiedRepo(
                    metadata=repo,
                    categories=tuple(categories),
                    primary_category=self.select_primary_category(text, categories),
                    match_score=self.calculate_match_score(text),
                )
            )

        logger.debug(f"Classified repositories: kept={len(classified)}, dropped={dropped}")
        return classified

    def matches_include(self, text: str) -> bool:
        return any(matches_keyword(text, keyword) for keyword in self.keywords.include)

    def matches_exclude(self, text: str) -> bool:
        return any(matches_keyword(text, keyword) for keyword in self.keywords.exclude)

    def assign_categories(self, text: str) -> list[str]:
        """Every category with at least one matching keyword, in declared order."""
        return [
            name
            for name, keywords in self.keywords.categories.items()
            if any(matches_keyword(text, keyword) for keyword in keywords)
        ]

    def select_primary_category(self, text: str, categories: list[str]) -> str:
        """Category with the most keyword hits; ties go to the first declared."""
        if not categories:
            return ""

        primary = categories[0]
        best = 0
        for name in categories:
            matches = count_matches(text, self.keywords.categories.get(name, ()))
            if matches > best:
                best = matches
                primary = name

        return primary

    def calculate_match_score(self, text: str) -> int:
        # A keyword listed under include and a category is counted once per list
        score = count_matches(text, self.keywords.include)
        for keywords in self.keywords.categories.values():
            score += count_matches(text, keywords)
        return score

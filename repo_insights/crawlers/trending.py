"""GitHub Trending crawler: scrapes daily/weekly/monthly pages per language"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from datetime import date
import json
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, Sequence
from urllib.parse import quote

from bs4 import BeautifulSoup
import httpx

from repo_insights.config.settings import Settings, settings as default_settings
from repo_insights.crawlers.base import BaseCrawler
from repo_insights.models.repository import RepoMetadata, parse_timestamp, format_repo_url
from repo_insights.utils.helpers import format_date, normalize_whitespace, parse_star_count

PERIODS = ("daily", "weekly", "monthly")


class TrendingFetchError(Exception):
    """Raised when no trending data could be retrieved for any language."""


@dataclass(slots=True)
class TrendingEntry:
    """One repository row parsed from a trending page."""

    owner: str
    name: str
    description: str
    language: str
    stars: int
    forks: int
    period_stars: int

    @property
    def key(self) -> str:
        return f"{self.owner}/{self.name}"


def parse_trending_page(html: str, default_language: str = "") -> list[TrendingEntry]:
    """
    Parse the repository rows of a GitHub trending page

    Rows without a well-formed /owner/name link are skipped.

    Args:
        html: Page HTML
        default_language: Language used when a row does not show one

    Returns:
        Parsed entries in page order
    """
    soup = BeautifulSoup(html, "html.parser")
    entries: list[TrendingEntry] = []

    for article in soup.select("article.Box-row"):
        repo_link = article.select_one("h2 a")
        if repo_link is None:
            continue

        parts = (repo_link.get("href") or "").strip().strip("/").split("/")
        if len(parts) != 2 or not all(parts):
            continue

        description_elem = article.select_one("p")
        language_elem = article.select_one("[itemprop='programmingLanguage']")
        stars_elem = article.select_one("a[href$='/stargazers']")
        forks_elem = article.select_one("a[href$='/forks']")
        period_elem = article.select_one("span.d-inline-block.float-sm-right")

        entries.append(
            TrendingEntry(
                owner=parts[0],
                name=parts[1],
                description=normalize_whitespace(description_elem.get_text(" ", strip=True)) if description_elem else "",
                language=normalize_whitespace(language_elem.get_text(" ", strip=True)) if language_elem else default_language,
                stars=parse_star_count(stars_elem.get_text(" ", strip=True)) if stars_elem else 0,
                forks=parse_star_count(forks_elem.get_text(" ", strip=True)) if forks_elem else 0,
                period_stars=parse_star_count(period_elem.get_text(" ", strip=True)) if period_elem else 0,
            )
        )

    return entries


def merge_periods(
    daily: Sequence[TrendingEntry],
    weekly: Sequence[TrendingEntry],
    monthly: Sequence[TrendingEntry],
) -> list[RepoMetadata]:
    """Combine the three period listings into one record per repo, first-seen order."""
    merged: dict[str, dict[str, Any]] = {}

    for period, entries in zip(PERIODS, (daily, weekly, monthly)):
        for entry in entries:
            record = merged.setdefault(
                entry.key,
                {
                    "owner": entry.owner,
                    "name": entry.name,
                    "url": format_repo_url(entry.owner, entry.name),
                    "description": entry.description,
                    "language": entry.language,
                    "stars": entry.stars,
                    "forks": entry.forks,
                    "stars_today": 0,
                    "stars_this_week": 0,
                    "stars_this_month": 0,
                },
            )
            record["stars"] = max(record["stars"], entry.stars)
            record["forks"] = max(record["forks"], entry.forks)
            if not record["description"]:
                record["description"] = entry.description
            if period == "daily":
                record["stars_today"] = entry.period_stars
            elif period == "weekly":
                record["stars_this_week"] = entry.period_stars
            else:
                record["stars_this_month"] = entry.period_stars

    return [RepoMetadata(**record) for record in merged.values()]


def deduplicate_repos(repos: Sequence[RepoMetadata]) -> list[RepoMetadata]:
    """Drop repeated repo keys, keeping the first occurrence."""
    seen: set[str] = set()
    unique: list[RepoMetadata] = []
    for repo in repos:
        if repo.key in seen:
            continue
        seen.add(repo.key)
        unique.append(repo)
    return unique


def save_raw(repos: Sequence[RepoMetadata], day: date, data_dir: str | Path = "data") -> Path:
    """
    Save scraped repositories to data/trending_raw/YYYY-MM-DD.json

    Args:
        repos: Repositories to save
        day: Scrape date used for the file name
        data_dir: Root data directory

    Returns:
        Path of the written file

    Raises:
        ValueError: If repos is empty
    """
    if not repos:
        raise ValueError("cannot save empty repository list")

    directory = Path(data_dir) / "trending_raw"
    directory.mkdir(parents=True, exist_ok=True)
    filepath = directory / f"{format_date(day)}.json"

    with open(filepath, "w", encoding="utf-8") as f:
        json.dump([repo.to_dict() for repo in repos], f, ensure_ascii=False, indent=2)

    return filepath


class TrendingCrawler(BaseCrawler):
    """Crawler for GitHub Trending pages, one language at a time"""

    def __init__(
        self,
        languages: Sequence[str],
        *,
        settings: Settings = default_settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleeper: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        super().__init__(settings)
        self.languages = list(languages)
        self.max_retries = max(1, settings.CRAWL_MAX_RETRIES)
        self._transport = transport
        self._sleep = sleeper

    async def crawl(self) -> list[RepoMetadata]:
        """
        Fetch trending repositories for every configured language

        Languages are fetched concurrently (bounded by MAX_CONCURRENT_REQUESTS).
        A language that keeps failing is logged and skipped.

        Returns:
            Deduplicated RepoMetadata list

        Raises:
            TrendingFetchError: If no language produced any repository
        """
        self.log_start()
        self.logger.info(f"Fetching trending repositories for languages: {self.languages}")

        semaphore = asyncio.Semaphore(max(1, self.settings.MAX_CONCURRENT_REQUESTS))
        all_repos: list[RepoMetadata] = []
        last_error: Optional[BaseException] = None

        async with self._client() as client:
            results = await asyncio.gather(
                *(self._fetch_language(client, semaphore, language) for language in self.languages),
                return_exceptions=True,
            )

            for language, result in zip(self.languages, results):
                if isinstance(result, BaseException):
                    last_error = result
                    self.logger.error(f"Failed to fetch trending for {language or 'all languages'}: {result}")
                    continue
                all_repos.extend(result)

            if not all_repos:
                error = TrendingFetchError(
                    f"failed to fetch trending data for any language: {last_error}" if last_error else "no trending data retrieved"
                )
                self.log_error(error)
                raise error from last_error

            repos = deduplicate_repos(all_repos)
            if len(repos) != len(all_repos):
                self.logger.debug(f"Deduplicated repositories: {len(all_repos)} -> {len(repos)}")

            if self.settings.GITHUB_TOKEN:
                repos = await self._enrich(client, semaphore, repos)

        self.log_end(len(repos))
        return repos

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers={
                "User-Agent": self.user_agent,
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            },
            timeout=self.settings.HTTP_TIMEOUT_SECONDS,
            follow_redirects=True,
            transport=self._transport,
        )

    def _page_url(self, language: str) -> str:
        base = self.settings.TRENDING_BASE_URL.rstrip("/")
        if not language:
            return base
        return f"{base}/{quote(language.lower(), safe='')}"

    async def _fetch_page(self, client: httpx.AsyncClient, language: str, period: str) -> list[TrendingEntry]:
        response = await client.get(self._page_url(language), params={"since": period})
        response.raise_for_status()
        return parse_trending_page(response.text, default_language=language)

    async def _fetch_language(
        self,
        client: httpx.AsyncClient,
        semaphore: asyncio.Semaphore,
        language: str,
    ) -> list[RepoMetadata]:
        last_error: Optional[Exception] = None

        async with semaphore:
            for attempt in range(1, self.max_retries + 1):
                try:
                    pages = [await self._fetch_page(client, language, period) for period in PERIODS]
                except httpx.HTTPError as e:
                    last_error = e
                    self.logger.warning(f"Fetch attempt {attempt}/{self.max_retries} failed for {language}: {e}")
                    if attempt < self.max_retries:
                        await self._sleep(self.delay * attempt)
                    continue

                repos = merge_periods(*pages)
                self.logger.debug(f"Fetched {len(repos)} trending repositories for {language}")
                return repos

        raise TrendingFetchError(
            f"failed to fetch trending for {language} after {self.max_retries} attempts: {last_error}"
        )

    async def _enrich(
        self,
        client: httpx.AsyncClient,
        semaphore: asyncio.Semaphore,
        repos: list[RepoMetadata],
    ) -> list[RepoMetadata]:
        """Fill created_at, topics, stars and forks from the GitHub REST API."""

        async def enrich_one(repo: RepoMetadata) -> RepoMetadata:
            url = f"{self.settings.GITHUB_API_URL.rstrip('/')}/repos/{repo.owner}/{repo.name}"
            headers = {
                "Authorization": f"Bearer {self.settings.GITHUB_TOKEN}",
                "Accept": "application/vnd.github+json",
            }
            async with semaphore:
                try:
                    response = await client.get(url, headers=headers)
                    response.raise_for_status()
                    payload = response.json()
                except (httpx.HTTPError, ValueError) as e:
                    self.logger.warning(f"Failed to enrich {repo.key}: {e}")
                    return repo

            return replace(
                repo,
                topics=tuple(payload.get("topics") or repo.topics),
                stars=int(payload.get("stargazers_count") or repo.stars),
                forks=int(payload.get("forks_count") or repo.forks),
                created_at=parse_timestamp(payload.get("created_at")) or repo.created_at,
            )

        return list(await asyncio.gather(*(enrich_one(repo) for repo in repos)))

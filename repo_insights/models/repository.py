"""Repository records flowing through the classify -> score pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

GITHUB_BASE_URL = "https://github.com"


def format_repo_key(owner: str, name: str) -> str:
    """Build the canonical "owner/name" repo key."""
    return f"{owner}/{name}"


def format_repo_url(owner: str, name: str) -> str:
    return f"{GITHUB_BASE_URL}/{owner}/{name}"


def parse_repo_key(key: str) -> tuple[str, str]:
    """
    Split a repo key into owner and name

    Args:
        key: Repo key in "owner/name" form

    Returns:
        Tuple of (owner, name)

    Raises:
        ValueError: If the key does not contain exactly one "/" or a half is empty
    """
    parts = key.split("/")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise ValueError(f"invalid repo key format: {key}")
    return parts[0], parts[1]


def parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        # fromisoformat() only accepts a trailing "Z" on 3.11+
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class RepoMetadata:
    """Raw facts scraped for a single trending repository."""

    owner: str
    name: str
    url: str = ""
    description: str = ""
    language: str = ""
    topics: tuple[str, ...] = ()
    stars: int = 0
    forks: int = 0
    stars_today: int = 0
    stars_this_week: int = 0
    stars_this_month: int = 0
    created_at: Optional[datetime] = None

    @property
    def key(self) -> str:
        return format_repo_key(self.owner, self.name)

    def to_dict(self) -> dict[str, Any]:
        return {
            "owner": self.owner,
            "name": self.name,
            "url": self.url,
            "description": self.description,
            "language": self.language,
            "topics": list(self.topics),
            "stars": self.stars,
            "forks": self.forks,
            "stars_today": self.stars_today,
            "stars_this_week": self.stars_this_week,
            "stars_this_month": self.stars_this_month,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RepoMetadata":
        return cls(
            owner=data["owner"],
            name=data["name"],
            url=data.get("url") or format_repo_url(data["owner"], data["name"]),
            description=data.get("description") or "",
            language=data.get("language") or "",
            topics=tuple(data.get("topics") or ()),
            stars=int(data.get("stars") or 0),
            forks=int(data.get("forks") or 0),
            stars_today=int(data.get("stars_today") or 0),
            stars_this_week=int(data.get("stars_this_week") or 0),
            stars_this_month=int(data.get("stars_this_month") or 0),
            created_at=parse_timestamp(data.get("created_at")),
        )

    def __repr__(self) -> str:
        return f"<RepoMetadata {self.key} ({self.stars_this_month} stars/month)>"


@dataclass(frozen=True)
class ClassifiedRepo:
    """Repository that passed keyword filtering, with its category assignment."""

    metadata: RepoMetadata
    categories: tuple[str, ...] = field(default_factory=tuple)
    primary_category: str = ""
    match_score: int = 0

    @property
    def key(self) -> str:
        return self.metadata.key


@dataclass(frozen=True)
class ScoredRepo:
    """Ranking unit: a classified repository plus its heat and score metrics."""

    repo: ClassifiedRepo
    total_stars: int
    heat_7: int
    heat_30: int
    score: int

    @property
    def key(self) -> str:
        return self.repo.key

    @property
    def metadata(self) -> RepoMetadata:
        return self.repo.metadata

"""Aggregate summary handed to the LLM prompt builder and report renderer."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

from pydantic import BaseModel, field_validator


@dataclass(slots=True)
class MetaInfo:
    run_date: str
    window_days: int
    short_window_days: int
    top_n: int
    filter_domain: str


@dataclass(slots=True)
class CategoryStats:
    name: str
    count: int
    avg_heat_7: float
    avg_score: float


@dataclass(slots=True)
class LanguageStats:
    name: str
    count: int


@dataclass(slots=True)
class NewReposInfo:
    count: int
    threshold_days: int
    repos: list[str] = field(default_factory=list)


@dataclass(slots=True)
class DarkHorseInfo:
    repo_key: str
    repo_name: str
    url: str
    score: int
    heat_30: int
    heat_7: int
    category: str


@dataclass(slots=True)
class RepeaterInfo:
    repo_key: str
    repo_name: str
    url: str
    weeks_in_top: int
    current_heat_7: int
    category: str


@dataclass(slots=True)
class TopRepoInfo:
    rank: int
    repo_key: str
    repo_name: str
    url: str
    category: str
    language: str
    heat_7: int
    heat_30: int
    score: int
    description: str


@dataclass(slots=True)
class SummaryJSON:
    """Read-only view of one run; rebuilt from scratch every invocation."""

    meta: MetaInfo
    categories: list[CategoryStats]
    languages: list[LanguageStats]
    new_repos: NewReposInfo
    dark_horses: list[DarkHorseInfo]
    repeaters: list[RepeaterInfo]
    top_repos: list[TopRepoInfo]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class HighlightComment(BaseModel):
    repo: str
    comment: str
    tone: str = "neutral-analytical"


class LLMOutput(BaseModel):
    """Validated commentary returned by the LLM (or the template fallback)."""

    intro: str
    category_notes: dict[str, str] = {}
    dark_horse_notes: str = ""
    repeaters_notes: str = ""
    highlights: list[HighlightComment] = []

    @field_validator("intro")
    @classmethod
    def validate_intro(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("intro is required")
        return cleaned

    @field_validator("category_notes", mode="before")
    @classmethod
    def default_category_notes(cls, value: Any) -> Any:
        return value or {}

    @field_validator("highlights", mode="before")
    @classmethod
    def default_highlights(cls, value: Any) -> Any:
        return value or []

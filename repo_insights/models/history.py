"""Cross-run streak state persisted between pipeline runs."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any


def _require_str(data: dict[str, Any], field_name: str) -> str:
    value = data[field_name]
    if not isinstance(value, str):
        raise TypeError(f"{field_name} must be a string, got {value!r}")
    return value


@dataclass(slots=True)
class RepoHistory:
    """Consecutive top-N appearances of a single repository."""

    weeks_in_top: int
    last_seen_report: str
    last_seen_date: str
    first_seen_report: str
    first_seen_date: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "weeks_in_top": self.weeks_in_top,
            "last_seen_report": self.last_seen_report,
            "last_seen_date": self.last_seen_date,
            "first_seen_report": self.first_seen_report,
            "first_seen_date": self.first_seen_date,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RepoHistory":
        weeks_in_top = data["weeks_in_top"]
        if isinstance(weeks_in_top, bool) or not isinstance(weeks_in_top, int):
            raise TypeError(f"weeks_in_top must be an integer, got {weeks_in_top!r}")
        return cls(
            weeks_in_top=weeks_in_top,
            last_seen_report=_require_str(data, "last_seen_report"),
            last_seen_date=_require_str(data, "last_seen_date"),
            first_seen_report=_require_str(data, "first_seen_report"),
            first_seen_date=_require_str(data, "first_seen_date"),
        )


@dataclass(slots=True)
class History:
    """Repo key -> RepoHistory map plus the id of the last processed report."""

    entries: dict[str, RepoHistory] = field(default_factory=dict)
    latest_report: str = ""

    def get(self, repo_key: str) -> RepoHistory | None:
        return self.entries.get(repo_key)

    def __contains__(self, repo_key: object) -> bool:
        return repo_key in self.entries

    def __len__(self) -> int:
        return len(self.entries)

    def copy(self) -> "History":
        return History(
            entries={key: replace(entry) for key, entry in self.entries.items()},
            latest_report=self.latest_report,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "latest_report": self.latest_report,
            "history": {key: entry.to_dict() for key, entry in self.entries.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "History":
        if not isinstance(data, dict):
            raise TypeError("history document must be a JSON object")
        raw_entries = data.get("history") or {}
        if not isinstance(raw_entries, dict):
            raise TypeError("'history' must be a JSON object keyed by repo")
        return cls(
            entries={key: RepoHistory.from_dict(value) for key, value in raw_entries.items()},
            latest_report=_require_str(data, "latest_report") if "latest_report" in data else "",
        )

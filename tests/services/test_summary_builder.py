from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from repo_insights.config.app_config import ReportSettings
from repo_insights.models.history import History, RepoHistory
from repo_insights.models.repository import ClassifiedRepo, RepoMetadata, ScoredRepo
from repo_insights.services.summary_builder import SummaryBuilder

NOW = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)


def _settings(**overrides) -> ReportSettings:
    data = {
        "window_days": 30,
        "short_window_days": 7,
        "top_n": 10,
        "report_language": "English",
        "filter_domain": "AI",
        "dark_horse_score_threshold": 100,
        "new_repo_threshold_days": 90,
    }
    data.update(overrides)
    return ReportSettings.model_validate(data)


def _scored(
    name: str,
    category: str,
    language: str,
    heat_7: int,
    score: int,
    created_at: Optional[datetime] = None,
) -> ScoredRepo:
    metadata = RepoMetadata(
        owner="acme",
        name=name,
        url=f"https://github.com/acme/{name}",
        description=f"{name} description",
        language=language,
        created_at=created_at,
    )
    return ScoredRepo(
        repo=ClassifiedRepo(metadata=metadata, categories=(category,), primary_category=category),
        total_stars=1000,
        heat_7=heat_7,
        heat_30=heat_7 * 3,
        score=score,
    )


def _builder(**overrides) -> SummaryBuilder:
    return SummaryBuilder(_settings(**overrides), now=lambda: NOW)


def test_aggregate_categories_averages_in_first_seen_order() -> None:
    repos = [
        _scored("a", "Agents", "Python", heat_7=100, score=10),
        _scored("b", "LLM", "Go", heat_7=50, score=5),
        _scored("c", "Agents", "Python", heat_7=300, score=31),
    ]

    stats = SummaryBuilder.aggregate_categories(repos)

    assert [(s.name, s.count) for s in stats] == [("Agents", 2), ("LLM", 1)]
    assert stats[0].avg_heat_7 == 200
    assert stats[0].avg_score == 20.5


def test_aggregate_languages_counts_per_language() -> None:
    repos = [
        _scored("a", "Agents", "Python", 1, 1),
        _scored("b", "LLM", "Rust", 1, 1),
        _scored("c", "LLM", "Python", 1, 1),
    ]

    stats = SummaryBuilder.aggregate_languages(repos)

    assert [(s.name, s.count) for s in stats] == [("Python", 2), ("Rust", 1)]


def test_new_repos_use_injected_clock_and_skip_unknown_dates() -> None:
    repos = [
        _scored("fresh", "LLM", "Python", 1, 1, created_at=NOW - timedelta(days=10)),
        _scored("old", "LLM", "Python", 1, 1, created_at=NOW - timedelta(days=400)),
        _scored("unknown", "LLM", "Python", 1, 1),
    ]

    info = _builder().identify_new_repos(repos)

    assert info.count == 1
    assert info.repos == ["acme/fresh"]
    assert info.threshold_days == 90


def test_dark_horses_include_threshold_boundary() -> None:
    repos = [
        _scored("below", "LLM", "Python", 1, 99),
        _scored("equal", "LLM", "Python", 1, 100),
        _scored("above", "Agents", "Python", 7, 250),
    ]

    dark_horses = _builder().identify_dark_horses(repos)

    assert [d.repo_key for d in dark_horses] == ["acme/equal", "acme/above"]
    assert dark_horses[1].heat_30 == 21
    assert dark_horses[1].category == "Agents"


def test_repeaters_require_two_or_more_weeks() -> None:
    repos = [
        _scored("once", "LLM", "Python", 1, 1),
        _scored("twice", "LLM", "Python", 40, 1),
        _scored("untracked", "LLM", "Python", 1, 1),
    ]
    history = History(
        entries={
            "acme/once": RepoHistory(1, "r2", "d2", "r2", "d2"),
            "acme/twice": RepoHistory(2, "r2", "d2", "r1", "d1"),
        },
        latest_report="r2",
    )

    repeaters = SummaryBuilder.identify_repeaters(repos, history)

    assert len(repeaters) == 1
    assert repeaters[0].repo_key == "acme/twice"
    assert repeaters[0].weeks_in_top == 2
    assert repeaters[0].current_heat_7 == 40


def test_build_summary_ranks_from_one_and_copies_meta() -> None:
    repos = [
        _scored("first", "LLM", "Python", 90, 30),
        _scored("second", "Agents", "Go", 60, 20),
    ]

    summary = _builder(top_n=2).build_summary(repos, History(), "2024-03-10")

    assert summary.meta.run_date == "2024-03-10"
    assert summary.meta.top_n == 2
    assert summary.meta.filter_domain == "AI"
    assert [(r.rank, r.repo_key) for r in summary.top_repos] == [(1, "acme/first"), (2, "acme/second")]
    assert summary.top_repos[1].language == "Go"
    assert summary.repeaters == []
    assert summary.to_dict()["top_repos"][0]["description"] == "first description"


def test_build_summary_on_empty_input() -> None:
    summary = _builder().build_summary([], History(), "2024-03-10")

    assert summary.categories == []
    assert summary.languages == []
    assert summary.top_repos == []
    assert summary.new_repos.count == 0

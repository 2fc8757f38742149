from __future__ import annotations

import asyncio
from datetime import date, datetime, timezone
import json
from pathlib import Path
from typing import Sequence

import pytest

from repo_insights.config.app_config import AppConfig
from repo_insights.config.settings import Settings
from repo_insights.crawlers.base import BaseCrawler
from repo_insights.crawlers.trending import TrendingFetchError
from repo_insights.models.history import History, RepoHistory
from repo_insights.models.repository import RepoMetadata
from repo_insights.orchestrator import (
    PipelineError,
    PipelineOrchestrator,
    generate_daily_report_id,
    generate_weekly_report_id,
)
from repo_insights.services.analyst import AnalysisService
from repo_insights.services.history_manager import HistoryError, HistoryManager

NOW = datetime(2024, 3, 10, 9, 0, tzinfo=timezone.utc)

REPOS = [
    RepoMetadata(
        owner="acme",
        name="swarm",
        url="https://github.com/acme/swarm",
        description="Autonomous agent framework",
        language="Python",
        stars_today=200,
        stars_this_week=1400,
        stars_this_month=6000,
    ),
    RepoMetadata(
        owner="beta",
        name="llmkit",
        url="https://github.com/beta/llmkit",
        description="LLM serving toolkit",
        language="Go",
        stars_today=20,
        stars_this_week=140,
        stars_this_month=900,
    ),
    RepoMetadata(
        owner="gamma",
        name="webapp",
        url="https://github.com/gamma/webapp",
        description="A web framework",
        language="Go",
        stars_today=500,
        stars_this_week=3000,
        stars_this_month=9000,
    ),
]


class FakeCrawler(BaseCrawler):
    def __init__(self, repos: Sequence[RepoMetadata], error: Exception | None = None):
        super().__init__(Settings(GITHUB_TOKEN=None, LLM_API_KEY=None))
        self.repos = list(repos)
        self.error = error

    async def crawl(self) -> list[RepoMetadata]:
        if self.error is not None:
            raise self.error
        return self.repos


class BrokenSaveHistoryManager(HistoryManager):
    def save_history(self, history: History) -> None:
        raise HistoryError("failed to write history file (disk full)", self.history_path)


def _config() -> AppConfig:
    return AppConfig.model_validate(
        {
            "languages": ["python", "go"],
            "keywords": {
                "include": ["agent", "llm"],
                "exclude": ["tutorial"],
                "categories": {"Agents": ["agent", "autonomous"], "LLM": ["llm", "serving"]},
            },
            "settings": {
                "window_days": 30,
                "short_window_days": 7,
                "top_n": 5,
                "report_language": "English",
                "filter_domain": "AI",
                "dark_horse_score_threshold": 150,
            },
            "llm": {
                "base_url": "https://api.openai.com/v1",
                "model": "gpt-4o-mini",
                "max_retries": 1,
                "role_description": "You are a technology analyst.",
            },
        }
    )


def _settings(tmp_path: Path) -> Settings:
    return Settings(
        DATA_DIR=str(tmp_path / "data"),
        REPORTS_DIR=str(tmp_path / "reports"),
        HISTORY_FILE=str(tmp_path / "data" / "history.json"),
        LLM_API_KEY=None,
        GITHUB_TOKEN=None,
    )


def _orchestrator(tmp_path: Path, repos: Sequence[RepoMetadata] = REPOS, **kwargs) -> PipelineOrchestrator:
    return PipelineOrchestrator(
        _config(),
        _settings(tmp_path),
        crawler_factory=lambda _languages: FakeCrawler(repos),
        now=lambda: NOW,
        **kwargs,
    )


async def _no_sleep(_seconds: float) -> None:
    return None


def test_run_writes_report_summary_raw_and_history(tmp_path: Path) -> None:
    stats = asyncio.run(_orchestrator(tmp_path).run("2024-03-week10"))

    assert stats["success"] is True
    assert stats["report_id"] == "2024-03-week10"
    assert stats["llm_used"] is False
    assert stats["warnings"] == []
    assert set(stats["steps"]) == {"fetch", "classify", "score", "history", "summary", "analysis", "report"}
    assert stats["steps"]["classify"]["classified_count"] == 2

    report = Path(stats["report_path"]).read_text(encoding="utf-8")
    assert report.startswith("# AI GitHub Trending Report - 2024-03-week10")
    assert "[swarm](https://github.com/acme/swarm)" in report
    assert "webapp" not in report
    assert "This report analyzes the top 5 AI repositories" in report

    summary = json.loads(Path(stats["summary_path"]).read_text(encoding="utf-8"))
    assert [repo["repo_key"] for repo in summary["top_repos"]] == ["acme/swarm", "beta/llmkit"]
    assert [dh["repo_key"] for dh in summary["dark_horses"]] == ["acme/swarm"]

    assert Path(stats["raw_path"]) == tmp_path / "data" / "trending_raw" / "2024-03-10.json"
    history = json.loads((tmp_path / "data" / "history.json").read_text(encoding="utf-8"))
    assert history["latest_report"] == "2024-03-week10"
    assert history["history"]["acme/swarm"]["weeks_in_top"] == 1


def test_second_run_reports_repeaters(tmp_path: Path) -> None:
    asyncio.run(_orchestrator(tmp_path).run("2024-03-week10"))
    stats = asyncio.run(_orchestrator(tmp_path).run("2024-03-week11"))

    summary = json.loads(Path(stats["summary_path"]).read_text(encoding="utf-8"))
    assert {rep["repo_key"]: rep["weeks_in_top"] for rep in summary["repeaters"]} == {
        "acme/swarm": 2,
        "beta/llmkit": 2,
    }
    assert "## Consecutive Appearances" in Path(stats["report_path"]).read_text(encoding="utf-8")


def test_history_save_failure_is_not_fatal(tmp_path: Path) -> None:
    manager = BrokenSaveHistoryManager(tmp_path / "data" / "history.json")

    stats = asyncio.run(_orchestrator(tmp_path, history_manager=manager).run("r1"))

    assert stats["success"] is True
    assert any("failed to save history" in warning for warning in stats["warnings"])
    assert Path(stats["report_path"]).exists()


def test_corrupt_history_is_left_untouched(tmp_path: Path) -> None:
    history_path = tmp_path / "data" / "history.json"
    history_path.parent.mkdir(parents=True)
    history_path.write_text("{corrupt", encoding="utf-8")

    stats = asyncio.run(_orchestrator(tmp_path).run("r1"))

    assert stats["success"] is True
    assert any("failed to load history" in warning for warning in stats["warnings"])
    assert history_path.read_text(encoding="utf-8") == "{corrupt"
    assert Path(stats["report_path"]).exists()
    assert stats["steps"]["history"]["tracked_count"] == 2


def test_non_utf8_history_is_not_fatal_and_left_untouched(tmp_path: Path) -> None:
    history_path = tmp_path / "data" / "history.json"
    history_path.parent.mkdir(parents=True)
    history_path.write_bytes(b"\xff\xfe garbage")

    stats = asyncio.run(_orchestrator(tmp_path).run("r1"))

    assert stats["success"] is True
    assert any("failed to load history" in warning for warning in stats["warnings"])
    assert history_path.read_bytes() == b"\xff\xfe garbage"


def test_run_date_before_first_seen_keeps_stored_history(tmp_path: Path) -> None:
    history_path = tmp_path / "data" / "history.json"
    HistoryManager(history_path).save_history(
        History(
            entries={
                "acme/swarm": RepoHistory(
                    weeks_in_top=1,
                    last_seen_report="future",
                    last_seen_date="2024-04-01",
                    first_seen_report="future",
                    first_seen_date="2024-04-01",
                )
            },
            latest_report="future",
        )
    )
    before = history_path.read_text(encoding="utf-8")

    stats = asyncio.run(_orchestrator(tmp_path).run("r1"))

    assert stats["success"] is True
    assert any("failed to update history" in warning for warning in stats["warnings"])
    assert history_path.read_text(encoding="utf-8") == before


@pytest.mark.parametrize("report_id", ["../escape", "nested/id"])
def test_report_id_with_path_separator_is_rejected(tmp_path: Path, report_id: str) -> None:
    with pytest.raises(PipelineError, match="report id"):
        asyncio.run(_orchestrator(tmp_path).run(report_id))

    assert not (tmp_path / "escape.md").exists()
    assert not (tmp_path / "reports").exists()
    assert not (tmp_path / "data").exists()


def test_empty_classification_raises(tmp_path: Path) -> None:
    orchestrator = _orchestrator(tmp_path, repos=[REPOS[2]])

    with pytest.raises(PipelineError, match="no repositories matched filter criteria"):
        asyncio.run(orchestrator.run("r1"))

    assert not (tmp_path / "reports").exists()


def test_fetch_failure_raises(tmp_path: Path) -> None:
    orchestrator = PipelineOrchestrator(
        _config(),
        _settings(tmp_path),
        crawler_factory=lambda _languages: FakeCrawler([], error=TrendingFetchError("no trending data retrieved")),
        now=lambda: NOW,
    )

    with pytest.raises(PipelineError, match="failed to fetch trending data"):
        asyncio.run(orchestrator.run("r1"))


def test_llm_output_used_when_available(tmp_path: Path) -> None:
    async def llm_ok(_prompt: str) -> dict[str, object]:
        return {"intro": "Agents led the week.", "category_notes": {"Agents": "One standout project."}}

    service = AnalysisService(_config().llm, llm_call=llm_ok, sleeper=_no_sleep)

    stats = asyncio.run(_orchestrator(tmp_path, analysis_service=service).run("r1"))

    report = Path(stats["report_path"]).read_text(encoding="utf-8")
    assert stats["llm_used"] is True
    assert "Agents led the week." in report
    assert "One standout project." in report


def test_llm_failure_falls_back_to_template(tmp_path: Path) -> None:
    async def llm_down(_prompt: str) -> str:
        raise ConnectionError("upstream unavailable")

    service = AnalysisService(_config().llm, llm_call=llm_down, sleeper=_no_sleep)

    stats = asyncio.run(_orchestrator(tmp_path, analysis_service=service).run("r1"))

    assert stats["success"] is True
    assert stats["llm_used"] is False
    assert any("LLM call failed" in warning for warning in stats["warnings"])
    assert "This report analyzes the top 5 AI repositories" in Path(stats["report_path"]).read_text(encoding="utf-8")


def test_report_id_defaults_to_run_date(tmp_path: Path) -> None:
    stats = asyncio.run(_orchestrator(tmp_path).run())

    assert stats["report_id"] == "2024-03-10"
    assert Path(stats["report_path"]).name == "2024-03-10.md"


def test_report_id_formats() -> None:
    assert generate_daily_report_id(date(2024, 3, 10)) == "2024-03-10"
    assert generate_weekly_report_id(date(2024, 3, 10)) == "2024-03-week10"
    assert generate_weekly_report_id(date(2024, 1, 1)) == "2024-01-week1"

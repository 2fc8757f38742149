"""End-to-end pipeline: fetch -> classify -> score -> history -> summary -> commentary -> report."""

from __future__ import annotations

from datetime import date, datetime, timezone
import json
import logging
from pathlib import Path
import time
from typing import Any, Callable, Optional, Sequence

from repo_insights.config.app_config import AppConfig
from repo_insights.config.settings import Settings, settings as default_settings
from repo_insights.crawlers.base import BaseCrawler
from repo_insights.crawlers.trending import TrendingCrawler, TrendingFetchError, save_raw
from repo_insights.models.history import History
from repo_insights.models.repository import ScoredRepo
from repo_insights.models.summary import LLMOutput, SummaryJSON
from repo_insights.services.analyst import AnalysisService, LLMError
from repo_insights.services.classifier import RepoClassifier
from repo_insights.services.fallback import generate_template_fallback
from repo_insights.services.history_manager import HistoryError, HistoryManager, apply_rankings
from repo_insights.services.report import ReportGenerator, validate_report_id
from repo_insights.services.scorer import ScoreCalculator
from repo_insights.services.summary_builder import SummaryBuilder
from repo_insights.utils.helpers import format_date

logger = logging.getLogger(__name__)

STEP_FETCH = "fetch"
STEP_CLASSIFY = "classify"
STEP_SCORE = "score"
STEP_HISTORY = "history"
STEP_SUMMARY = "summary"
STEP_ANALYSIS = "analysis"
STEP_REPORT = "report"


class PipelineError(Exception):
    """Raised when a pipeline step fails in a way that prevents producing a report."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_daily_report_id(day: date) -> str:
    """Daily report ID: YYYY-MM-DD"""
    return format_date(day)


def generate_weekly_report_id(day: date) -> str:
    """Weekly report ID: YYYY-MM-weekN, using the ISO year and week number"""
    iso_year, iso_week, _ = day.isocalendar()
    return f"{iso_year}-{day.month:02d}-week{iso_week}"


class PipelineOrchestrator:
    """Runs one report generation end to end"""

    def __init__(
        self,
        config: AppConfig,
        settings: Settings = default_settings,
        *,
        crawler_factory: Optional[Callable[[Sequence[str]], BaseCrawler]] = None,
        analysis_service: Optional[AnalysisService] = None,
        history_manager: Optional[HistoryManager] = None,
        report_generator: Optional[ReportGenerator] = None,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.config = config
        self.settings = settings
        self._crawler_factory = crawler_factory or (
            lambda languages: TrendingCrawler(languages, settings=settings)
        )
        self._analysis_service = analysis_service
        self._history_manager = history_manager or HistoryManager(settings.HISTORY_FILE)
        self._report_generator = report_generator or ReportGenerator(
            config.settings,
            config.keywords,
            reports_dir=settings.REPORTS_DIR,
        )
        self._now = now
        self.data_dir = Path(settings.DATA_DIR)

    async def run(self, report_id: Optional[str] = None) -> dict[str, Any]:
        """
        Execute the full pipeline

        Only a failed fetch, an empty classification or a failed report
        write abort the run. Raw data, history and summary backup failures
        are recorded as warnings.

        Args:
            report_id: Report identifier; a daily ID is generated when omitted

        Returns:
            Run statistics (success, report_id, report_path, summary_path,
            per-step durations and counts, warnings)

        Raises:
            PipelineError: If a fatal step fails
        """
        started = self._now()
        report_id = report_id or generate_daily_report_id(started.date())
        try:
            validate_report_id(report_id)
        except ValueError as e:
            raise PipelineError(str(e)) from e
        run_date = format_date(started)

        run_stats: dict[str, Any] = {
            "success": False,
            "report_id": report_id,
            "run_date": run_date,
            "started_at": started.isoformat(),
            "report_path": None,
            "summary_path": None,
            "raw_path": None,
            "llm_used": False,
            "steps": {},
            "warnings": [],
        }
        logger.info(f"Pipeline started: report_id={report_id}")
        pipeline_start = time.monotonic()

        # 1. Fetch trending repositories
        step_start = time.monotonic()
        crawler = self._crawler_factory(self.config.languages)
        try:
            repos = await crawler.crawl()
        except TrendingFetchError as e:
            logger.error(f"Failed to fetch trending data: {e}")
            raise PipelineError(f"failed to fetch trending data: {e}") from e

        try:
            run_stats["raw_path"] = str(save_raw(repos, started.date(), self.data_dir))
        except (OSError, ValueError) as e:
            self._warn(run_stats, f"failed to save raw trending data: {e}")
        self._record_step(run_stats, STEP_FETCH, step_start, repo_count=len(repos))

        # 2. Classify
        step_start = time.monotonic()
        classified = RepoClassifier(self.config.keywords).classify(repos)
        self._record_step(run_stats, STEP_CLASSIFY, step_start, classified_count=len(classified))
        if not classified:
            raise PipelineError("no repositories matched filter criteria")

        # 3. Score and rank
        step_start = time.monotonic()
        report_settings = self.config.settings
        calculator = ScoreCalculator(report_settings.window_days, report_settings.short_window_days)
        top_repos = calculator.rank_and_select_top(
            calculator.calculate_scores(classified),
            report_settings.top_n,
        )
        self._record_step(run_stats, STEP_SCORE, step_start, top_count=len(top_repos))

        # 4. History (best effort)
        step_start = time.monotonic()
        history = self._update_history(run_stats, top_repos, report_id, run_date)
        self._record_step(run_stats, STEP_HISTORY, step_start, tracked_count=len(history))

        # 5. Summary
        step_start = time.monotonic()
        summary = SummaryBuilder(report_settings, now=self._now).build_summary(top_repos, history, run_date)
        self._record_step(run_stats, STEP_SUMMARY, step_start)

        # 6. Commentary
        step_start = time.monotonic()
        llm_output = await self._generate_commentary(run_stats, summary)
        self._record_step(run_stats, STEP_ANALYSIS, step_start, llm_used=run_stats["llm_used"])

        # 7. Report
        step_start = time.monotonic()
        content = self._report_generator.generate_report(summary, llm_output, report_id, self.config.languages)
        try:
            report_path = self._report_generator.save_report(content, report_id, now=self._now())
        except (OSError, ValueError) as e:
            logger.error(f"Failed to save report {report_id}: {e}")
            raise PipelineError(f"failed to save report {report_id}: {e}") from e
        run_stats["report_path"] = str(report_path)
        self._record_step(run_stats, STEP_REPORT, step_start)

        # 8. Summary backup
        try:
            run_stats["summary_path"] = str(self.save_summary_backup(summary, report_id))
        except OSError as e:
            self._warn(run_stats, f"failed to save summary backup: {e}")

        run_stats["success"] = True
        run_stats["duration_seconds"] = round(time.monotonic() - pipeline_start, 3)
        logger.info(
            f"Pipeline completed: report_id={report_id}, duration={run_stats['duration_seconds']}s, "
            f"warnings={len(run_stats['warnings'])}"
        )
        return run_stats

    def _update_history(
        self,
        run_stats: dict[str, Any],
        top_repos: Sequence[ScoredRepo],
        report_id: str,
        run_date: str,
    ) -> History:
        try:
            previous = self._history_manager.load_history()
        except HistoryError as e:
            # leave the unreadable file on disk for manual repair
            self._warn(run_stats, f"failed to load history, existing file left untouched: {e}")
            return apply_rankings(History(), top_repos, report_id, run_date)

        try:
            history = apply_rankings(previous, top_repos, report_id, run_date)
        except ValueError as e:
            self._warn(run_stats, f"failed to update history: {e}")
            return previous

        try:
            self._history_manager.save_history(history)
        except HistoryError as e:
            self._warn(run_stats, f"failed to save history: {e}")

        return history

    async def _generate_commentary(self, run_stats: dict[str, Any], summary: SummaryJSON) -> LLMOutput:
        service = self._analysis_service
        if service is None:
            if not self.settings.LLM_API_KEY:
                logger.warning("LLM_API_KEY not set, using template fallback")
                return generate_template_fallback(summary)
            service = AnalysisService(self.config.llm, self.settings.LLM_API_KEY)

        try:
            output = await service.generate_analysis(summary, self.config.settings.report_language)
        except LLMError as e:
            self._warn(run_stats, f"LLM call failed, using template fallback: {e}")
            return generate_template_fallback(summary)

        run_stats["llm_used"] = True
        return output

    def save_summary_backup(self, summary: SummaryJSON, report_id: str) -> Path:
        """Write the summary to {DATA_DIR}/summaries/{report_id}.json"""
        directory = self.data_dir / "summaries"
        directory.mkdir(parents=True, exist_ok=True)
        filepath = directory / f"{report_id}.json"
        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(summary.to_dict(), f, ensure_ascii=False, indent=2)
        return filepath

    @staticmethod
    def _warn(run_stats: dict[str, Any], message: str) -> None:
        logger.warning(message)
        run_stats["warnings"].append(message)

    @staticmethod
    def _record_step(run_stats: dict[str, Any], step: str, step_start: float, **stats: Any) -> None:
        duration = round(time.monotonic() - step_start, 3)
        run_stats["steps"][step] = {"duration_seconds": duration, **stats}
        logger.info(f"Step {step} completed in {duration}s {stats if stats else ''}".rstrip())

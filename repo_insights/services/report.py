"""Markdown report rendering"""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from pathlib import Path
from typing import Optional, Sequence

from repo_insights.config.app_config import KeywordConfig, ReportSettings
from repo_insights.models.summary import (
    DarkHorseInfo,
    HighlightComment,
    LLMOutput,
    MetaInfo,
    RepeaterInfo,
    SummaryJSON,
    TopRepoInfo,
)
from repo_insights.utils.helpers import (
    format_number,
    sanitize_description,
    sanitize_markdown,
    sanitize_repo_name,
    sanitize_url,
)

logger = logging.getLogger(__name__)

UNCATEGORIZED = "Uncategorized"


def validate_report_id(report_id: str) -> None:
    """Reject report IDs that would resolve outside the reports directory"""
    if not report_id or report_id in (".", ".."):
        raise ValueError(f"invalid report id: {report_id!r}")
    if "/" in report_id or "\\" in report_id:
        raise ValueError(f"report id must not contain path separators: {report_id!r}")


def _category_label(name: str) -> str:
    return name or UNCATEGORIZED


def _repo_link(name: str, url: str) -> str:
    return f"[{sanitize_repo_name(name)}]({sanitize_url(url)})"


class ReportGenerator:
    """Combines SummaryJSON and LLM commentary into a Markdown report"""

    def __init__(
        self,
        settings: ReportSettings,
        keywords: KeywordConfig,
        reports_dir: str | Path = "reports",
    ):
        self.settings = settings
        self.keywords = keywords
        self.reports_dir = Path(reports_dir)

    def generate_report(
        self,
        summary: SummaryJSON,
        llm_output: LLMOutput,
        report_id: str,
        languages: Sequence[str],
    ) -> str:
        """
        Render the full report

        Dark horse, repeater and highlight sections are omitted when empty.

        Args:
            summary: Aggregated run summary
            llm_output: Commentary (LLM or template fallback)
            report_id: Report identifier used in the title
            languages: Tracked languages listed in the header

        Returns:
            Markdown document without the generation footer
        """
        sections = [
            self.format_header(summary.meta, report_id, languages),
            "## Overview\n\n" + sanitize_markdown(llm_output.intro),
            self.format_top_table(summary.top_repos, summary.meta.top_n),
            self.format_category_breakdown(summary, llm_output),
        ]

        if summary.dark_horses:
            sections.append(self.format_dark_horses(summary.dark_horses, llm_output.dark_horse_notes))
        if summary.repeaters:
            sections.append(self.format_repeaters(summary.repeaters, llm_output.repeaters_notes))
        if llm_output.highlights:
            sections.append(self.format_highlights(llm_output.highlights))

        sections.append(self.format_methodology(summary.meta))

        return "\n\n".join(section.rstrip("\n") for section in sections)

    def format_header(self, meta: MetaInfo, report_id: str, languages: Sequence[str]) -> str:
        title = f"{meta.filter_domain} GitHub Trending Report - {report_id}".strip()
        language_list = ", ".join(language or "All" for language in languages)
        return (
            f"# {title}\n\n"
            f"**Report Date**: {meta.run_date}  \n"
            f"**Analysis Window**: {meta.window_days} days  \n"
            f"**Languages Tracked**: {language_list}  \n"
            f"**Top N**: {meta.top_n}"
        )

    @staticmethod
    def format_top_table(repos: Sequence[TopRepoInfo], top_n: int) -> str:
        lines = [
            f"## Top {top_n} Repositories",
            "",
            "| Rank | Repository | Category | Language | Heat_7 | Heat_30 | Score |",
            "|------|------------|----------|----------|--------|---------|-------|",
        ]
        for repo in repos:
            lines.append(
                f"| {repo.rank} | {_repo_link(repo.repo_name, repo.url)} "
                f"| {sanitize_markdown(_category_label(repo.category))} | {sanitize_markdown(repo.language)} "
                f"| {format_number(repo.heat_7)} | {format_number(repo.heat_30)} | {format_number(repo.score)} |"
            )
        return "\n".join(lines)

    @staticmethod
    def format_category_breakdown(summary: SummaryJSON, llm_output: LLMOutput) -> str:
        repos_by_category: dict[str, list[TopRepoInfo]] = {}
        for repo in summary.top_repos:
            repos_by_category.setdefault(repo.category, []).append(repo)

        lines = ["## Category Breakdown", ""]
        for stats in summary.categories:
            lines.append(f"### {_category_label(stats.name)} ({stats.count} projects)")
            lines.append("")

            note = llm_output.category_notes.get(stats.name, "")
            if note:
                lines.append(sanitize_markdown(note))
                lines.append("")

            lines.append(f"**Average Heat_7**: {format_number(int(stats.avg_heat_7))}  ")
            lines.append(f"**Average Score**: {format_number(int(stats.avg_score))}  ")
            lines.append("")

            for repo in repos_by_category.get(stats.name, []):
                entry = f"- {_repo_link(repo.repo_name, repo.url)}"
                description = sanitize_description(repo.description)
                if description:
                    entry += f" - {description}"
                lines.append(entry)
            lines.append("")

        return "\n".join(lines)

    @staticmethod
    def format_dark_horses(dark_horses: Sequence[DarkHorseInfo], notes: str) -> str:
        lines = ["## Dark Horse Projects", ""]
        if notes:
            lines.extend([sanitize_markdown(notes), ""])
        lines.extend([
            "| Repository | Score | Heat_30 | Heat_7 | Category |",
            "|------------|-------|---------|--------|----------|",
        ])
        for dh in dark_horses:
            lines.append(
                f"| {_repo_link(dh.repo_name, dh.url)} | {format_number(dh.score)} "
                f"| {format_number(dh.heat_30)} | {format_number(dh.heat_7)} "
                f"| {sanitize_markdown(_category_label(dh.category))} |"
            )
        return "\n".join(lines)

    @staticmethod
    def format_repeaters(repeaters: Sequence[RepeaterInfo], notes: str) -> str:
        lines = ["## Consecutive Appearances", ""]
        if notes:
            lines.extend([sanitize_markdown(notes), ""])
        lines.extend([
            "| Repository | Weeks in Top | Category | Current Heat_7 |",
            "|------------|--------------|----------|----------------|",
        ])
        for rep in repeaters:
            lines.append(
                f"| {_repo_link(rep.repo_name, rep.url)} | {rep.weeks_in_top} "
                f"| {sanitize_markdown(_category_label(rep.category))} | {format_number(rep.current_heat_7)} |"
            )
        return "\n".join(lines)

    @staticmethod
    def format_highlights(highlights: Sequence[HighlightComment]) -> str:
        lines = ["## Highlighted Repositories", ""]
        for highlight in highlights:
            lines.extend([f"### {sanitize_repo_name(highlight.repo)}", "", sanitize_markdown(highlight.comment), ""])
        return "\n".join(lines)

    def format_methodology(self, meta: MetaInfo) -> str:
        include_keywords = ", ".join(self.keywords.include)
        exclude_keywords = ", ".join(self.keywords.exclude)
        categories = ", ".join(self.keywords.categories)

        return f"""## Methodology

**Data Sources**:
- GitHub Trending pages (daily, weekly and monthly listings)
- GitHub REST API repository metadata (when a token is configured)

**Metrics**:
- Heat_{meta.short_window_days}: Stars gained in the last {meta.short_window_days} days
- Heat_{meta.window_days}: Stars gained in the last {meta.window_days} days
- Score: Weighted combination of daily, weekly and monthly star rates
  - Formula: floor(0.6 × stars_today + 0.3 × (stars_week / 7) + 0.1 × (stars_month / 30))
  - Emphasizes recent activity (60%) while considering sustained trends (40%)

**Filtering**:
- Include keywords: {include_keywords}
- Exclude keywords: {exclude_keywords}
- Categories: {categories}

**Ranking**:
1. Sort by Heat_30 (descending)
2. Tie-break by Score (descending)
3. Select top {meta.top_n}

**Limitations**:
- Trending data limited to GitHub's trending algorithm
- Repository creation dates are only known when GitHub API enrichment is enabled
- LLM-generated commentary is interpretive, not prescriptive
- Weekly snapshots may miss short-lived trends"""

    def save_report(self, content: str, report_id: str, now: Optional[datetime] = None) -> Path:
        """
        Write the report to {reports_dir}/{report_id}.md with a generation footer

        Raises:
            ValueError: If report_id is not a plain file name
            OSError: If the directory or file cannot be written
        """
        validate_report_id(report_id)
        self.reports_dir.mkdir(parents=True, exist_ok=True)
        filepath = self.reports_dir / f"{report_id}.md"

        generated_at = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
        timestamp = generated_at.strftime("%Y-%m-%dT%H:%M:%SZ")

        with open(filepath, "w", encoding="utf-8") as f:
            f.write(f"{content}\n\n---\n*Generated at: {timestamp}*\n")

        logger.info(f"Report saved to {filepath}")
        return filepath

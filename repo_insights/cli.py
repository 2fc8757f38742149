"""Command line entry point"""

from __future__ import annotations

import argparse
import asyncio
from datetime import datetime, timezone
import logging
import sys
from typing import Optional, Sequence

from repo_insights import __version__
from repo_insights.config.app_config import ConfigError, load_config
from repo_insights.config.settings import Settings, settings as default_settings
from repo_insights.orchestrator import (
    PipelineError,
    PipelineOrchestrator,
    generate_daily_report_id,
    generate_weekly_report_id,
)
from repo_insights.utils.logger import parse_log_level, setup_logger

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="repo-insights",
        description="Generate a Markdown report of trending GitHub repositories in a filtered domain.",
        epilog=(
            "environment: GITHUB_TOKEN enables GitHub API enrichment; "
            "LLM_API_KEY enables LLM commentary (template text otherwise)"
        ),
    )
    parser.add_argument("--config", default=None, help="Path to configuration directory (default: config)")
    parser.add_argument("--report-id", default="", help="Custom report ID (default: auto-generated)")
    parser.add_argument("--weekly", action="store_true", help="Use week-based report ID format (YYYY-MM-weekN)")
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["debug", "info", "warn", "warning", "error"],
        help="Log level (default: info)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def resolve_report_id(report_id: str, weekly: bool, now: Optional[datetime] = None) -> str:
    """Explicit ID wins, then weekly, then daily"""
    if report_id:
        return report_id
    today = (now or datetime.now(timezone.utc)).date()
    if weekly:
        return generate_weekly_report_id(today)
    return generate_daily_report_id(today)


def main(argv: Optional[Sequence[str]] = None, settings: Settings = default_settings) -> int:
    args = build_parser().parse_args(argv)

    setup_logger("", level=parse_log_level(args.log_level or settings.LOG_LEVEL))
    logger.info(f"Starting {settings.APP_NAME} v{__version__}")

    config_dir = args.config or settings.CONFIG_DIR
    try:
        config = load_config(config_dir)
    except ConfigError as e:
        logger.error(f"Failed to load configuration: {e}")
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    problems = config.validate_semantics()
    if problems:
        logger.error(f"Configuration validation failed with {len(problems)} errors")
        for problem in problems:
            print(f"Configuration error: {problem}", file=sys.stderr)
        return 1

    if not settings.GITHUB_TOKEN:
        logger.warning("GITHUB_TOKEN not set - repository creation dates and topics will be unavailable")
    if not settings.LLM_API_KEY:
        logger.warning("LLM_API_KEY not set - will use template-based report")

    report_id = resolve_report_id(args.report_id, args.weekly)
    logger.info(f"Using report ID {report_id}")

    orchestrator = PipelineOrchestrator(config, settings)
    try:
        result = asyncio.run(orchestrator.run(report_id))
    except PipelineError as e:
        logger.error(f"Pipeline execution failed: {e}")
        print(f"Pipeline failed: {e}", file=sys.stderr)
        return 1

    print("\nReport generated successfully")
    print(f"  Report ID: {result['report_id']}")
    print(f"  Report file: {result['report_path']}")
    if result["summary_path"]:
        print(f"  Summary backup: {result['summary_path']}")
    for warning in result["warnings"]:
        print(f"  Warning: {warning}")
    return 0


if __name__ == "__main__":
    sys.exit(main())

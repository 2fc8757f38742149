"""Persistent streak tracking for repositories appearing in consecutive top-N runs."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Sequence

from repo_insights.models.history import History, RepoHistory
from repo_insights.models.repository import ScoredRepo

logger = logging.getLogger(__name__)


class HistoryError(Exception):
    """Raised when the history file cannot be read, parsed or written."""

    def __init__(self, message: str, path: str | Path):
        super().__init__(f"{message}: {path}")
        self.path = str(path)


def apply_rankings(
    history: History,
    current_top: Sequence[ScoredRepo],
    report_id: str,
    report_date: str,
) -> History:
    """
    Advance every streak by one run and drop broken streaks.

    Keys in ``current_top`` that are already tracked get ``weeks_in_top + 1``
    and fresh ``last_seen_*`` values; new keys start at 1 with first == last.
    Tracked keys missing from ``current_top`` are removed, so a repository that
    re-enters later starts over. Returns a new History; the input is not modified.

    Raises:
        ValueError: If report_date is earlier than a tracked entry's first_seen_date
    """
    # YYYY-MM-DD dates compare lexically
    for repo in current_top:
        existing = history.entries.get(repo.key)
        if existing is not None and report_date < existing.first_seen_date:
            raise ValueError(
                f"report date {report_date} is earlier than first_seen_date "
                f"{existing.first_seen_date} of {repo.key}"
            )

    updated = history.copy()
    current_keys = {repo.key for repo in current_top}

    for repo in current_top:
        key = repo.key
        existing = updated.entries.get(key)
        if existing is not None:
            existing.weeks_in_top += 1
            existing.last_seen_report = report_id
            existing.last_seen_date = report_date
            logger.debug(f"Updated {key} in history: weeks_in_top={existing.weeks_in_top}")
        else:
            updated.entries[key] = RepoHistory(
                weeks_in_top=1,
                last_seen_report=report_id,
                last_seen_date=report_date,
                first_seen_report=report_id,
                first_seen_date=report_date,
            )
            logger.debug(f"Added {key} to history")

    removed = [key for key in updated.entries if key not in current_keys]
    for key in removed:
        weeks = updated.entries.pop(key).weeks_in_top
        logger.debug(f"Removed {key} from history (streak broken after {weeks} runs)")

    updated.latest_report = report_id

    logger.info(
        f"Updated history for report {report_id}: current_top={len(current_top)}, "
        f"tracked={len(updated.entries)}, removed={len(removed)}"
    )
    return updated


class HistoryManager:
    """Owns the history file: load, update and atomic save."""

    def __init__(self, history_path: str | Path):
        self.history_path = Path(history_path)

    def load_history(self) -> History:
        """
        Load history from disk.

        A missing file is the normal first-run state and yields an empty
        History. A file that exists but cannot be read or parsed raises
        HistoryError instead of being silently replaced.
        """
        if not self.history_path.exists():
            logger.info(f"History file {self.history_path} does not exist, starting with empty history")
            return History()

        try:
            with open(self.history_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise HistoryError(f"failed to parse history file ({e})", self.history_path) from e
        except UnicodeDecodeError as e:
            raise HistoryError(f"history file is not valid UTF-8 ({e})", self.history_path) from e
        except OSError as e:
            raise HistoryError(f"failed to read history file ({e})", self.history_path) from e

        try:
            history = History.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise HistoryError(f"malformed history file ({e!r})", self.history_path) from e

        logger.info(f"Loaded history from {self.history_path}: {len(history.entries)} tracked repos")
        return history

    def update_history(
        self,
        current_top: Sequence[ScoredRepo],
        report_id: str,
        report_date: str,
    ) -> History:
        """Load the stored history and apply this run's top-N. The caller persists the result."""
        history = self.load_history()
        return apply_rankings(history, current_top, report_id, report_date)

    def save_history(self, history: History) -> None:
        """
        Write history as indented JSON.

        The document is written to a temporary file in the target directory
        and moved over the old file with os.replace, so an interrupted write
        never leaves a truncated history behind.
        """
        directory = self.history_path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise HistoryError(f"failed to create history directory ({e})", directory) from e

        payload = json.dumps(history.to_dict(), indent=2, ensure_ascii=False)

        tmp_path: str | None = None
        try:
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{self.history_path.name}.",
                suffix=".tmp",
                dir=directory,
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.history_path)
            tmp_path = None
        except OSError as e:
            raise HistoryError(f"failed to write history file ({e})", self.history_path) from e
        finally:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)

        logger.info(f"Saved history to {self.history_path}: {len(history.entries)} tracked repos")

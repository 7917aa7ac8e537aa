"""Append-only JSONL journal of deploy attempts."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from dataproc_deploy._constants import DEFAULT_OUTPUT_DIR

from .records import Outcome, SubmissionRecord, Target

logger = logging.getLogger(__name__)

DEFAULT_JOURNAL_DIR = Path(DEFAULT_OUTPUT_DIR) / "journal"


class Journal:
    """Deploy history, one ``<target key>.jsonl`` file per target cluster.

    Records are appended in attempt order and never rewritten, so the
    file for a cluster reads as its submission history.
    """

    def __init__(self, journal_dir: Path | str = DEFAULT_JOURNAL_DIR):
        self.journal_dir = Path(journal_dir)

    def path_for(self, target: Target) -> Path:
        return self.journal_dir / f"{target.key}.jsonl"

    def append(self, record: SubmissionRecord) -> Path:
        """Append a record to its target's file and return that path."""
        self.journal_dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for(record.target)
        with open(path, "a") as f:
            f.write(json.dumps(record.to_dict(), default=str) + "\n")
        logger.debug("Journaled %s attempt %s to %s", record.outcome.value, record.record_id, path)
        return path

    def history(self, target_key: str) -> list[SubmissionRecord]:
        """Return the records of one target, oldest first."""
        path = self.journal_dir / f"{target_key}.jsonl"
        if not path.exists():
            return []
        return list(_read_records(path))

    def targets(self) -> list[dict[str, Any]]:
        """Summarize every journaled target, most recently deployed first."""
        if not self.journal_dir.exists():
            return []

        summaries = []
        for path in self.journal_dir.glob("*.jsonl"):
            records = list(_read_records(path))
            if not records:
                continue
            last = records[-1]
            summaries.append(
                {
                    "key": path.stem,
                    "target": last.target,
                    "attempts": len(records),
                    "accepted": sum(1 for r in records if r.outcome == Outcome.ACCEPTED),
                    "last_outcome": last.outcome,
                    "last_job_id": last.job_id,
                    "last_recorded": last.recorded_at,
                }
            )
        summaries.sort(key=lambda s: s["last_recorded"], reverse=True)
        return summaries


def _read_records(path: Path) -> Iterator[SubmissionRecord]:
    with open(path) as f:
        for line_no, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                yield SubmissionRecord.from_dict(json.loads(line))
            except (ValueError, KeyError, TypeError):
                logger.warning("Skipping malformed journal line %s:%d", path, line_no)

"""Deploy history journal for dataproc-deploy."""

from .journal import DEFAULT_JOURNAL_DIR, Journal
from .records import Outcome, SubmissionRecord, Target, config_fingerprint

__all__ = [
    "DEFAULT_JOURNAL_DIR",
    "Journal",
    "Outcome",
    "SubmissionRecord",
    "Target",
    "config_fingerprint",
]

"""Dataproc client module for dataproc-deploy."""

from .client import (
    ClientSetupError,
    DataprocClient,
    DataprocError,
    ParseError,
    SubmissionError,
    get_dataproc_client,
)
from .wait import (
    ExecutionContext,
    WaitCancelled,
    WaitError,
    WaitTimeout,
    wait_for_operation,
)

__all__ = [
    # Client
    "DataprocClient",
    "get_dataproc_client",
    # Errors
    "DataprocError",
    "ClientSetupError",
    "SubmissionError",
    "ParseError",
    "WaitError",
    "WaitTimeout",
    "WaitCancelled",
    # Wait
    "ExecutionContext",
    "wait_for_operation",
]

"""Blocking wait on Dataproc long-running operations.

The wait polls the operation and sleeps on the execution context's
cancel event, so a cancel from another thread or a signal handler
wakes it immediately.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any

from google.api_core.exceptions import GoogleAPIError
from google.api_core.operation import Operation

from .client import DataprocError

logger = logging.getLogger(__name__)


class WaitError(DataprocError):
    """Raised when a wait operation fails."""

    pass


class WaitTimeout(WaitError):
    """Raised when a wait operation times out."""

    pass


class WaitCancelled(WaitError):
    """Raised when the execution context is cancelled during a wait."""

    pass


class ExecutionContext:
    """Cancellation flag plus optional deadline for one deploy call.

    Usage::

        ctx = ExecutionContext(timeout_seconds=600)
        signal.signal(signal.SIGINT, lambda *_: ctx.cancel())
        engine.deploy(context=ctx)
    """

    def __init__(self, timeout_seconds: float | None = None) -> None:
        self._cancel_event = threading.Event()
        self.timeout_seconds = timeout_seconds
        self.deadline = time.monotonic() + timeout_seconds if timeout_seconds is not None else None

    def cancel(self) -> None:
        """Request cancellation; wakes any pending wait."""
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def remaining(self) -> float | None:
        """Seconds until the deadline, or None when there is no deadline."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    @property
    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def sleep(self, seconds: float) -> None:
        """Sleep up to ``seconds``, returning early on cancel or deadline."""
        remaining = self.remaining()
        if remaining is not None:
            seconds = min(seconds, remaining)
        self._cancel_event.wait(seconds)


def wait_for_operation(
    operation: Operation,
    context: ExecutionContext | None = None,
    poll_interval: float = 2.0,
    description: str = "operation",
) -> Any:
    """Block until a long-running operation completes.

    Args:
        operation: Operation handle returned by the service
        context: Execution context carrying cancellation and deadline
        poll_interval: Seconds between polls
        description: Description for logging and error messages

    Returns:
        The operation result

    Raises:
        WaitCancelled: If the context is cancelled before completion
        WaitTimeout: If the context deadline passes before completion
        WaitError: If polling fails or the operation completes with an error
    """
    context = context or ExecutionContext()
    start_time = time.monotonic()
    attempts = 0

    while True:
        elapsed = time.monotonic() - start_time
        if context.cancelled:
            raise WaitCancelled(f"Cancelled after {elapsed:.1f}s waiting for {description}")
        if context.expired:
            raise WaitTimeout(f"Timeout after {elapsed:.1f}s waiting for {description}")

        attempts += 1
        try:
            done = operation.done()
        except GoogleAPIError as e:
            raise WaitError(f"Polling {description} failed: {e}") from e

        if done:
            logger.debug("%s done after %d poll(s), %.1fs", description, attempts, elapsed)
            break

        logger.debug("%s pending (attempt %d, %.1fs)", description, attempts, elapsed)
        context.sleep(poll_interval)

    try:
        return operation.result()
    except GoogleAPIError as e:
        raise WaitError(f"{description} failed: {e}") from e

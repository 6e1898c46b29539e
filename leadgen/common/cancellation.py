"""
Cooperative cancellation for search runs.

A CancellationToken is created per run and handed to every suspension point
(job polling, enrichment batches, analysis retries). Stopping a run flips the
token; each component observes it and returns its partial result.
"""

import threading


class CancellationToken:
    """Thread-safe "is this run still active" flag."""

    def __init__(self) -> None:
        self._cancelled = threading.Event()

    @property
    def is_active(self) -> bool:
        return not self._cancelled.is_set()

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        """Mark the run inactive. Idempotent."""
        self._cancelled.set()

    def wait(self, seconds: float) -> bool:
        """
        Sleep up to `seconds`, waking early on cancellation.

        Returns:
            True if the run is still active after the wait.
        """
        if seconds > 0:
            self._cancelled.wait(seconds)
        return self.is_active

    def sleep(self, seconds: float) -> None:
        """Sleep hook with the signature tenacity expects."""
        self.wait(seconds)

"""
Human-readable progress lines for search runs.

Every stage reports what it is doing through a ProgressReporter so operators
can tell "found nothing" apart from "a stage degraded".

Usage:
    progress = ProgressReporter(on_progress, run_id="abc123")
    progress.emit("[STAGE 1] Discovering candidates...")

    with StageContext(progress, "STAGE 2", "Contact enrichment") as ctx:
        # ... do work ...
        ctx.add_metadata("enriched", 4)
"""

import logging
import time
from typing import Any, Callable, Dict, List, Optional

ProgressCallback = Callable[[str], None]

logger = logging.getLogger(__name__)


class ProgressReporter:
    """
    One-way progress sink wrapper.

    Lines are always logged. The caller's callback is invoked best-effort:
    a sink that raises is logged and ignored, never blocking the run.
    """

    def __init__(
        self,
        callback: Optional[ProgressCallback] = None,
        run_id: Optional[str] = None,
        keep_history: bool = False,
    ):
        self.callback = callback
        self.run_id = run_id
        self.keep_history = keep_history
        self.lines: List[str] = []

    def emit(self, line: str) -> None:
        """Send one progress line."""
        if self.run_id:
            logger.info(f"[run:{self.run_id[:8]}] {line}")
        else:
            logger.info(line)

        if self.keep_history:
            self.lines.append(line)

        if self.callback is None:
            return
        try:
            self.callback(line)
        except Exception as e:
            logger.warning(f"Progress sink raised, ignoring: {e}")

    __call__ = emit


class StageContext:
    """
    Context manager for automatic stage timing.

    Emits a start line on entry, and on exit either a completion line with
    duration and metadata or a failure line (the exception is re-raised).
    """

    def __init__(self, progress: ProgressReporter, tag: str, description: str):
        self.progress = progress
        self.tag = tag
        self.description = description
        self.metadata: Dict[str, Any] = {}
        self._start_time: float = 0

    def __enter__(self) -> "StageContext":
        self._start_time = time.time()
        self.progress.emit(f"[{self.tag}] {self.description}...")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        duration_ms = int((time.time() - self._start_time) * 1000)

        if exc_type is not None:
            self.progress.emit(f"[{self.tag}] ❌ {self.description} failed after {duration_ms}ms: {exc_val}")
            return False

        details = ", ".join(f"{k}={v}" for k, v in self.metadata.items())
        suffix = f" ({details})" if details else ""
        self.progress.emit(f"[{self.tag}] ✅ {self.description} done in {duration_ms}ms{suffix}")
        return False

    def add_metadata(self, key: str, value: Any) -> None:
        """Add metadata to be included in the completion line."""
        self.metadata[key] = value

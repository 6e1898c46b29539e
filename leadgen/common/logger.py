"""
Logging setup for search runs.

Messages from pipeline components carry the run id and stage as a prefix so
the lines of one search can be grepped out of a shared log:

    2025-01-01 10:00:00 [INFO] leadgen.orchestrator: [run:1a2b3c4d] [orchestrator] Stop requested

DEBUG_MODE=true (or the CLI --debug flag) turns on DEBUG for pipeline loggers.
"""

import logging
import os
import sys
from typing import Any, MutableMapping, Optional, TextIO, Tuple

_debug_mode = os.getenv("DEBUG_MODE", "false").lower() == "true"

LOG_FORMATS = {
    "simple": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    "json": '{"time": "%(asctime)s", "level": "%(levelname)s", "name": "%(name)s", "message": "%(message)s"}',
}


def set_global_debug_mode(enabled: bool) -> None:
    global _debug_mode
    _debug_mode = enabled


def is_debug_mode() -> bool:
    return _debug_mode


class PipelineLogger(logging.LoggerAdapter):
    """Logger adapter that tags every message with the run id and stage."""

    def __init__(
        self,
        name: str,
        run_id: Optional[str] = None,
        stage: Optional[str] = None,
        debug_mode: Optional[bool] = None,
    ):
        super().__init__(logging.getLogger(name), {"run_id": run_id, "stage": stage})
        self.run_id = run_id
        self.stage = stage
        self.debug_mode = is_debug_mode() if debug_mode is None else debug_mode
        if self.debug_mode:
            self.logger.setLevel(logging.DEBUG)

    def with_stage(self, stage: str) -> "PipelineLogger":
        """Same logger and run, another stage tag."""
        return PipelineLogger(self.logger.name, self.run_id, stage, self.debug_mode)

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        tags = []
        if self.run_id:
            tags.append(f"[run:{self.run_id[:8]}]")
        if self.stage:
            tags.append(f"[{self.stage}]")
        if tags:
            msg = f"{' '.join(tags)} {msg}"
        return msg, kwargs


def setup_logging(level: str = "INFO", format: str = "simple", stream: Optional[TextIO] = None) -> None:
    """
    Configure the root logger with a single stream handler (stderr by default).

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR)
        format: "simple" or "json"
        stream: Output stream, stdout is kept free for CLI results
    """
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(
        logging.Formatter(LOG_FORMATS.get(format, LOG_FORMATS["simple"]), datefmt="%Y-%m-%d %H:%M:%S")
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(getattr(logging, level.upper(), logging.INFO))


def get_logger(
    name: str,
    run_id: Optional[str] = None,
    stage: Optional[str] = None,
    debug_mode: Optional[bool] = None,
) -> PipelineLogger:
    return PipelineLogger(name, run_id, stage, debug_mode)

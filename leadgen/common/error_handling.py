"""
Degraded-stage bookkeeping for search runs.

Most stage failures are not errors from the caller's point of view: a failed
contact batch or an unavailable research job only means less data. Each one
is recorded as a StageError in the run's ErrorCollector and returned on the
SearchSession, so "found nothing" can be told apart from "a stage degraded".
"""

import logging
from collections import Counter
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Callable, Dict, List, Optional, TypeVar

T = TypeVar("T")

SEVERITIES = ("critical", "high", "medium", "low")


@dataclass
class StageError:
    """One degraded or failed stage operation."""

    stage: str  # discovery, enrichment, research, analysis, decision_makers, setup
    operation: str  # e.g. "attempt_2", "contact_batch_1", "analyze:Clínica Sol"
    severity: str
    message: str
    recoverable: bool = True
    exception_type: Optional[str] = None
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ErrorCollector:
    """Per-run list of StageErrors."""

    def __init__(self):
        self.errors: List[StageError] = []

    def add_error(
        self,
        stage: str,
        operation: str,
        message: str,
        severity: str = "medium",
        recoverable: bool = True,
        exception: Optional[BaseException] = None,
    ) -> StageError:
        if severity not in SEVERITIES:
            raise ValueError(f"Unknown severity: {severity}")
        error = StageError(
            stage=stage,
            operation=operation,
            severity=severity,
            message=message,
            recoverable=recoverable,
            exception_type=type(exception).__name__ if exception is not None else None,
        )
        self.errors.append(error)
        return error

    def has_critical_errors(self) -> bool:
        return any(e.severity == "critical" and not e.recoverable for e in self.errors)

    def get_error_messages(self) -> List[str]:
        return [e.message for e in self.errors]

    def summary(self) -> Dict[str, Any]:
        """Counts by severity and by stage."""
        severities = Counter(e.severity for e in self.errors)
        return {
            "total": len(self.errors),
            "by_severity": {s: severities.get(s, 0) for s in SEVERITIES},
            "by_stage": dict(Counter(e.stage for e in self.errors)),
            "recoverable": sum(e.recoverable for e in self.errors),
            "non_recoverable": sum(not e.recoverable for e in self.errors),
        }


def stage_operation(
    operation_name: str,
    stage: str = "unknown",
    fallback_value: Any = None,
    log_success: bool = False,
):
    """
    Run a best-effort stage operation: any exception is logged at WARNING and
    `fallback_value` is returned instead.

    Usage:
        @stage_operation("deep research", stage="research", fallback_value="")
        def research(self, lead):
            ...
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        logger = logging.getLogger(func.__module__)

        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                logger.warning(f"[{stage}] {operation_name} failed, using fallback: {e}")
                return fallback_value
            if log_success:
                logger.info(f"[{stage}] {operation_name} completed")
            return result

        return wrapper

    return decorator

"""
Exception taxonomy for the lead generation pipeline.

Only SetupError (and unexpected discovery failures) ever reach the top of a
run. Every other error is caught at its stage boundary and turned into a
skip, a fallback value, or an early loop exit.
"""

from typing import Optional


class LeadGenError(Exception):
    """Base class for all pipeline errors."""


class SetupError(LeadGenError):
    """Raised before any remote work when required configuration is missing."""


class JobError(LeadGenError):
    """Base class for remote job failures."""

    def __init__(self, job_type: str, message: str, run_id: Optional[str] = None):
        self.job_type = job_type
        self.run_id = run_id
        super().__init__(message)


class JobStartError(JobError):
    """Raised when the job service rejects a submission."""

    def __init__(self, job_type: str, status_code: int, detail: str = ""):
        self.status_code = status_code
        self.detail = detail
        super().__init__(
            job_type,
            f"Error starting job {job_type}: HTTP {status_code} {detail[:200]}".rstrip(),
        )


class JobExecutionError(JobError):
    """Raised when a remote job reaches a failed or aborted terminal state."""

    def __init__(self, job_type: str, status: str, run_id: Optional[str] = None):
        self.status = status
        super().__init__(job_type, f"Job {job_type} finished with status {status}", run_id)


class JobTimeoutError(JobError):
    """Raised when a remote job is still running after the poll budget."""

    def __init__(self, job_type: str, polls: int, run_id: Optional[str] = None):
        self.polls = polls
        super().__init__(
            job_type, f"Job {job_type} did not finish after {polls} status checks", run_id
        )


class InterpretationError(LeadGenError):
    """Query interpretation failed. Never surfaced: replaced by the fallback intent."""


class AnalysisError(LeadGenError):
    """A single analysis attempt failed (call error, empty reply or invalid payload)."""

"""
RemoteJobRunner: run one remote job to completion.

Submits a job, polls its status at a fixed interval until it reaches a
terminal state, then fetches the result set. Polling observes the run's
CancellationToken: once the run is stopped the runner returns an empty list
and makes no further remote calls.
"""

import logging
from typing import Any, Dict, List, Optional

from leadgen.common.cancellation import CancellationToken
from leadgen.common.config import PipelinePolicy
from leadgen.common.errors import JobExecutionError, JobTimeoutError
from leadgen.common.progress import ProgressReporter
from leadgen.services.job_service import JobService, JobState


class RemoteJobRunner:
    """Submit, poll and fetch remote jobs for a single search run."""

    def __init__(
        self,
        service: JobService,
        token: CancellationToken,
        progress: Optional[ProgressReporter] = None,
        policy: Optional[PipelinePolicy] = None,
    ):
        self.service = service
        self.token = token
        self.progress = progress or ProgressReporter()
        self.policy = policy or PipelinePolicy()
        self.logger = logging.getLogger(__name__)
        self.jobs_started = 0

    def run(self, job_type: str, payload: Dict[str, Any], label: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Run a job and return its records.

        Args:
            job_type: Remote job (actor) identifier
            payload: Job input
            label: Human-friendly name for progress lines (defaults to job_type)

        Returns:
            Result records, or [] if the run was cancelled while waiting

        Raises:
            JobStartError: submission rejected
            JobExecutionError: job ended FAILED / ABORTED
            JobTimeoutError: job still running after policy.max_polls checks
        """
        name = label or job_type
        if not self.token.is_active:
            self.logger.info(f"Run inactive, not starting {name}")
            return []

        handle = self.service.submit(job_type, payload)
        self.jobs_started += 1
        self.progress.emit(f"[JOBS] {name} started (run: {handle.run_id})")

        finished = False
        for poll in range(1, self.policy.max_polls + 1):
            if not self.token.wait(self.policy.poll_interval_seconds):
                self.progress.emit(f"[JOBS] {name} abandoned: search stopped")
                return []

            state = self.service.status(handle.run_id)
            self.logger.debug(f"{name} poll {poll}: {state.value}")

            if state == JobState.SUCCEEDED:
                finished = True
                break
            if state in (JobState.FAILED, JobState.ABORTED):
                self.progress.emit(f"[JOBS] ❌ {name} {state.value}")
                raise JobExecutionError(job_type, state.value.upper(), handle.run_id)

            if poll % self.policy.poll_log_every == 0:
                elapsed = poll * self.policy.poll_interval_seconds
                self.progress.emit(f"[JOBS] {name} still running ({elapsed:.0f}s elapsed)")

        if not finished:
            self.progress.emit(f"[JOBS] ❌ {name} timed out after {self.policy.max_polls} checks")
            raise JobTimeoutError(job_type, self.policy.max_polls, handle.run_id)

        if not self.token.is_active:
            return []

        records = self.service.fetch(handle.result_handle)
        self.logger.info(f"{name} returned {len(records)} records")
        return records

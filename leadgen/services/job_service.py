"""
Remote job service clients.

The pipeline never scrapes anything itself: discovery, contact lookup and
secondary search all run as remote jobs ("actors") on a job platform that
exposes submit / status / fetch. ApifyJobService talks to the Apify REST API.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol

import requests
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from leadgen.common.config import Config
from leadgen.common.errors import JobError, JobStartError

logger = logging.getLogger(__name__)


class JobState(str, Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    ABORTED = "aborted"

    @property
    def is_terminal(self) -> bool:
        return self is not JobState.PENDING


@dataclass(frozen=True)
class JobHandle:
    """Identifiers assigned by the job platform on submission."""
    run_id: str
    result_handle: str


class JobService(Protocol):
    """Interface of the job submission / poll / fetch collaborator."""

    def submit(self, job_type: str, payload: Dict[str, Any]) -> JobHandle:
        ...

    def status(self, run_id: str) -> JobState:
        ...

    def fetch(self, result_handle: str) -> List[Dict[str, Any]]:
        ...


# Apify run statuses -> JobState
APIFY_STATUS_MAP = {
    "READY": JobState.PENDING,
    "RUNNING": JobState.PENDING,
    "TIMING-OUT": JobState.PENDING,
    "ABORTING": JobState.PENDING,
    "SUCCEEDED": JobState.SUCCEEDED,
    "FAILED": JobState.FAILED,
    "TIMED-OUT": JobState.FAILED,
    "ABORTED": JobState.ABORTED,
}


class ApifyJobService:
    """
    Job service backed by the Apify REST API (v2).

    Endpoints:
        POST /acts/{actorId}/runs          start a run
        GET  /actor-runs/{runId}           run status
        GET  /datasets/{datasetId}/items   result items
    """

    def __init__(
        self,
        token: str,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.token = token
        self.base_url = (base_url or Config.APIFY_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else Config.HTTP_TIMEOUT_SECONDS
        self.session = session or requests.Session()
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def actor_path(job_type: str) -> str:
        """Apify expects "username~actor-name" in URLs for named actors."""
        return job_type.replace("/", "~")

    def submit(self, job_type: str, payload: Dict[str, Any]) -> JobHandle:
        url = f"{self.base_url}/acts/{self.actor_path(job_type)}/runs"
        try:
            response = self.session.post(
                url,
                params={"token": self.token},
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise JobStartError(job_type, 0, str(e)) from e

        if not response.ok:
            raise JobStartError(job_type, response.status_code, response.text)

        data = response.json().get("data") or {}
        run_id = data.get("id")
        dataset_id = data.get("defaultDatasetId")
        if not run_id or not dataset_id:
            raise JobStartError(job_type, response.status_code, "response missing run or dataset id")

        self.logger.debug(f"Started {job_type}: run={run_id} dataset={dataset_id}")
        return JobHandle(run_id=run_id, result_handle=dataset_id)

    def status(self, run_id: str) -> JobState:
        try:
            data = self._get_json(f"{self.base_url}/actor-runs/{run_id}")
        except requests.RequestException as e:
            raise JobError("status", f"Status check failed for run {run_id}: {e}", run_id) from e

        raw_status = ((data or {}).get("data") or {}).get("status", "")
        state = APIFY_STATUS_MAP.get(str(raw_status).upper())
        if state is None:
            self.logger.warning(f"Unknown Apify status {raw_status!r} for run {run_id}, treating as pending")
            return JobState.PENDING
        return state

    def fetch(self, result_handle: str) -> List[Dict[str, Any]]:
        try:
            items = self._get_json(
                f"{self.base_url}/datasets/{result_handle}/items",
                params={"clean": "true", "format": "json"},
            )
        except requests.RequestException as e:
            raise JobError("fetch", f"Fetching dataset {result_handle} failed: {e}") from e

        if not isinstance(items, list):
            self.logger.warning(f"Dataset {result_handle} returned {type(items).__name__}, expected list")
            return []
        return [item for item in items if isinstance(item, dict)]

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=5),
        retry=retry_if_exception_type(requests.RequestException),
        reraise=True,
    )
    def _get_json(self, url: str, params: Optional[Dict[str, str]] = None) -> Any:
        query = {"token": self.token}
        if params:
            query.update(params)
        response = self.session.get(url, params=query, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

"""
Global fixtures for all unit tests.

This conftest provides autouse fixtures that prevent real external service calls:
- Environment variable isolation (no real Apify / OpenAI credentials)
- Zero-wait pipeline policy for fast polling and retries

These fixtures apply automatically to ALL tests in tests/unit/.
"""

import os
import sys
from pathlib import Path

import pytest

# tests/ for the shared fixtures package, project root for leadgen
sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from fixtures.fake_services import FakeJobService, FakeTextGenerator
from leadgen.common.cancellation import CancellationToken
from leadgen.common.config import Config, PipelinePolicy
from leadgen.common.error_handling import ErrorCollector
from leadgen.common.progress import ProgressReporter
from leadgen.services.job_runner import RemoteJobRunner


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch):
    """
    Isolate test environment from real credentials and configurations.

    Config reads the environment at import time, so the class attributes are
    patched too.
    """
    for name in ("APIFY_API_TOKEN", "APIFY_API_KEY", "OPENAI_API_KEY"):
        monkeypatch.delenv(name, raising=False)
    for name in list(os.environ):
        if name.startswith("LEADGEN_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(Config, "APIFY_API_TOKEN", "")
    monkeypatch.setattr(Config, "OPENAI_API_KEY", "")
    monkeypatch.setattr(Config, "SEARCH_LANGUAGE", "es")
    monkeypatch.setattr(Config, "DEFAULT_LOCATION", "España")


@pytest.fixture
def policy():
    """Policy with no waiting between polls or retries."""
    return PipelinePolicy(poll_interval_seconds=0, analysis_backoff_seconds=0)


@pytest.fixture
def token():
    return CancellationToken()


@pytest.fixture
def progress():
    return ProgressReporter(keep_history=True)


@pytest.fixture
def errors():
    return ErrorCollector()


@pytest.fixture
def job_service():
    return FakeJobService()


@pytest.fixture
def generator():
    return FakeTextGenerator()


@pytest.fixture
def runner(job_service, token, progress, policy):
    return RemoteJobRunner(job_service, token, progress, policy)

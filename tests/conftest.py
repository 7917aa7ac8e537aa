"""Shared fixtures for dataproc-deploy test suite."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from google.cloud import dataproc_v1

from dataproc_deploy.config import DeployConfig


def make_config(**overrides) -> DeployConfig:
    """Create a DeployConfig with sensible defaults for testing.

    This is the canonical config factory for tests. Prefer this over
    hand-building dicts so that new required fields are handled in one place.
    """
    base: dict = {
        "region": "us-central1",
        "cluster_name": "c1",
        "project_id": "p1",
        "main_class": "com.example.Main",
        "job_uri": "gs://bucket/job.jar",
    }
    base.update(overrides)
    return DeployConfig(**base)


def make_job(
    driver_output_uri: str = "gs://out-bucket/out.txt",
    job_id: str = "job-123",
) -> dataproc_v1.Job:
    """Build the Job message Dataproc returns once a submission is accepted."""
    return dataproc_v1.Job(
        reference=dataproc_v1.JobReference(job_id=job_id),
        driver_output_resource_uri=driver_output_uri,
    )


class StubOperation:
    """Minimal stand-in for ``google.api_core.operation.Operation``.

    Reports done after ``pending_polls`` calls to ``done()``; never
    completes when ``pending_polls`` is None.
    """

    def __init__(self, result=None, error: Exception | None = None, pending_polls: int | None = 0):
        self._result = result
        self._error = error
        self._pending_polls = pending_polls
        self.polls = 0

    def done(self) -> bool:
        self.polls += 1
        if self._pending_polls is None:
            return False
        return self.polls > self._pending_polls

    def result(self):
        if self._error is not None:
            raise self._error
        return self._result


@pytest.fixture(autouse=True)
def _no_default_project(monkeypatch):
    """Keep the developer's GOOGLE_PROJECT_ID out of config validation."""
    monkeypatch.delenv("GOOGLE_PROJECT_ID", raising=False)


@pytest.fixture
def default_config() -> DeployConfig:
    """A default DeployConfig for tests that don't care about specifics."""
    return make_config()


@pytest.fixture
def mock_dataproc_client():
    """Pre-configured mock DataprocClient whose submission completes immediately."""
    client = MagicMock()
    client.endpoint = "us-central1-dataproc.googleapis.com:443"
    client.submit_job.return_value = StubOperation(result=make_job())
    return client

"""Tests for the deployment engine and Spark job submission.

Covers:
- build_properties: per-role prefixes, no cross-contamination
- build_submit_request: request shape
- parse_driver_output_uri: bucket/path split, ParseError
- DeploymentEngine: end-to-end against a stub client, dry-run, failure paths
"""

from __future__ import annotations

import threading
import time
from unittest.mock import MagicMock, patch

import pytest

from dataproc_deploy.config import ConfigValidationError, EnvRole
from dataproc_deploy.dataproc import (
    ClientSetupError,
    ExecutionContext,
    ParseError,
    SubmissionError,
    WaitCancelled,
    WaitError,
)
from dataproc_deploy.deploy import (
    DeploymentEngine,
    DeploymentStatus,
    build_properties,
    build_submit_request,
    parse_driver_output_uri,
)
from tests.conftest import StubOperation, make_config, make_job

# ===========================================================================
# build_properties
# ===========================================================================


class TestBuildProperties:
    """Tests for the Spark property bag."""

    def test_empty_maps_produce_no_properties(self, default_config):
        assert build_properties(default_config) == {}

    def test_master_variable(self):
        cfg = make_config(master_env_variables={"FOO": "bar"})
        assert build_properties(cfg) == {"spark.yarn.appMasterEnv.FOO": "bar"}

    def test_all_roles(self):
        cfg = make_config(
            master_env_variables={"A": "1"},
            driver_env_variables={"B": "2"},
            executor_env_variables={"C": "3"},
        )
        assert build_properties(cfg) == {
            "spark.yarn.appMasterEnv.A": "1",
            "spark.driverEnv.B": "2",
            "spark.executorEnv.C": "3",
        }

    @pytest.mark.parametrize(
        "master,driver,executor",
        [
            ({"X": "m"}, {"X": "d"}, {"X": "e"}),
            ({"A": "1", "B": "2"}, {}, {"C": "3"}),
            ({}, {"ONLY": "driver"}, {}),
            ({}, {}, {"E1": "a", "E2": "b", "E3": "c"}),
        ],
    )
    def test_one_entry_per_variable_without_cross_contamination(self, master, driver, executor):
        cfg = make_config(
            master_env_variables=master,
            driver_env_variables=driver,
            executor_env_variables=executor,
        )
        props = build_properties(cfg)

        assert len(props) == len(master) + len(driver) + len(executor)
        for role, variables in (
            (EnvRole.MASTER, master),
            (EnvRole.DRIVER, driver),
            (EnvRole.EXECUTOR, executor),
        ):
            scoped = {
                k[len(role.property_prefix) + 1 :]: v
                for k, v in props.items()
                if k.startswith(role.property_prefix + ".")
            }
            assert scoped == variables

    def test_values_unchanged(self):
        cfg = make_config(driver_env_variables={"URL": "jdbc:postgresql://db:5432/x?a=b"})
        assert build_properties(cfg)["spark.driverEnv.URL"] == "jdbc:postgresql://db:5432/x?a=b"


# ===========================================================================
# build_submit_request
# ===========================================================================


class TestBuildSubmitRequest:
    """Tests for the SubmitJobRequest built from config."""

    def test_request_shape(self):
        cfg = make_config(master_env_variables={"FOO": "bar"})
        request = build_submit_request(cfg)

        assert request.project_id == "p1"
        assert request.region == "us-central1"
        assert request.job.placement.cluster_name == "c1"
        spark_job = request.job.spark_job
        assert spark_job.main_class == "com.example.Main"
        assert list(spark_job.jar_file_uris) == ["gs://bucket/job.jar"]
        assert dict(spark_job.properties) == {"spark.yarn.appMasterEnv.FOO": "bar"}

    def test_arguments_passed_as_args(self):
        cfg = make_config(arguments=["--date", "2026-01-01"])
        request = build_submit_request(cfg)
        assert list(request.job.spark_job.args) == ["--date", "2026-01-01"]

    def test_explicit_properties_used(self, default_config):
        request = build_submit_request(default_config, {"spark.executorEnv.K": "v"})
        assert dict(request.job.spark_job.properties) == {"spark.executorEnv.K": "v"}


# ===========================================================================
# parse_driver_output_uri
# ===========================================================================


class TestParseDriverOutputUri:
    """Tests for driver output URI parsing."""

    def test_bucket_and_path(self):
        location = parse_driver_output_uri("gs://my-bucket/logs/output.txt")
        assert location.bucket == "my-bucket"
        assert location.path == "logs/output.txt"
        assert location.uri == "gs://my-bucket/logs/output.txt"

    def test_dataproc_style_uri(self):
        location = parse_driver_output_uri(
            "gs://dataproc-staging-us-central1-123/"
            "google-cloud-dataproc-metainfo/abc/jobs/j1/driveroutput"
        )
        assert location.bucket == "dataproc-staging-us-central1-123"
        assert location.path.endswith("jobs/j1/driveroutput")

    @pytest.mark.parametrize(
        "uri",
        [
            "my-bucket/logs/output.txt",
            "s3://my-bucket/logs/output.txt",
            "gs://my-bucket",
            "gs://my-bucket/",
            "",
        ],
    )
    def test_mismatch_raises(self, uri):
        with pytest.raises(ParseError):
            parse_driver_output_uri(uri)


# ===========================================================================
# DeploymentEngine
# ===========================================================================


class TestDeploymentEngine:
    """End-to-end deploy against a stub Dataproc client."""

    def _progress(self):
        events: list[tuple[str, DeploymentStatus, str]] = []

        def callback(component, status, message):
            events.append((component, status, message))

        return events, callback

    def test_end_to_end(self, mock_dataproc_client):
        cfg = make_config(master_env_variables={"FOO": "bar"})
        events, callback = self._progress()

        engine = DeploymentEngine(cfg, dataproc_client=mock_dataproc_client, poll_interval=0)
        result = engine.deploy(progress_callback=callback)

        assert result.status == DeploymentStatus.SUCCESS
        assert result.component == "spark-job"
        assert result.details["properties"] == {"spark.yarn.appMasterEnv.FOO": "bar"}
        assert result.job_id == "job-123"
        assert result.driver_output_bucket == "out-bucket"
        assert result.driver_output_path == "out.txt"

        request = mock_dataproc_client.submit_job.call_args.args[0]
        assert request.project_id == "p1"
        assert request.job.placement.cluster_name == "c1"
        assert dict(request.job.spark_job.properties) == {"spark.yarn.appMasterEnv.FOO": "bar"}

        messages = [m for _, _, m in events]
        assert messages == [
            "Deploying Spark Job",
            "Region: us-central1",
            "Cluster Name: c1",
            "Spark Job Deployed",
        ]
        assert events[-1][1] == DeploymentStatus.SUCCESS

    def test_injected_client_not_closed(self, default_config, mock_dataproc_client):
        DeploymentEngine(default_config, dataproc_client=mock_dataproc_client).deploy()
        mock_dataproc_client.close.assert_not_called()

    @patch("dataproc_deploy.dataproc.get_dataproc_client")
    def test_creates_and_closes_regional_client(self, mock_get, default_config):
        client = MagicMock()
        client.submit_job.return_value = StubOperation(result=make_job())
        mock_get.return_value = client

        DeploymentEngine(default_config, poll_interval=0).deploy()

        mock_get.assert_called_once_with("us-central1")
        client.close.assert_called_once()

    @patch("dataproc_deploy.dataproc.get_dataproc_client")
    def test_client_setup_error_propagates(self, mock_get, default_config):
        mock_get.side_effect = ClientSetupError("no credentials")
        events, callback = self._progress()

        with pytest.raises(ClientSetupError):
            DeploymentEngine(default_config).deploy(progress_callback=callback)

        assert events[-1][1] == DeploymentStatus.FAILED
        assert "no credentials" in events[-1][2]

    def test_submission_error_propagates(self, default_config, mock_dataproc_client):
        mock_dataproc_client.submit_job.side_effect = SubmissionError("rejected")
        events, callback = self._progress()

        with pytest.raises(SubmissionError):
            DeploymentEngine(default_config, dataproc_client=mock_dataproc_client).deploy(
                progress_callback=callback
            )
        assert all(status != DeploymentStatus.SUCCESS for _, status, _ in events)

    def test_wait_error_propagates(self, default_config, mock_dataproc_client):
        from google.api_core.exceptions import InternalServerError

        mock_dataproc_client.submit_job.return_value = StubOperation(
            error=InternalServerError("boom")
        )
        with pytest.raises(WaitError):
            DeploymentEngine(default_config, dataproc_client=mock_dataproc_client).deploy()

    def test_unparseable_driver_output_raises(self, default_config, mock_dataproc_client):
        mock_dataproc_client.submit_job.return_value = StubOperation(
            result=make_job(driver_output_uri="hdfs://namenode/out")
        )
        events, callback = self._progress()

        with pytest.raises(ParseError, match="hdfs://namenode/out"):
            DeploymentEngine(default_config, dataproc_client=mock_dataproc_client).deploy(
                progress_callback=callback
            )
        assert "Spark Job Deployed" not in [m for _, _, m in events]

    def test_missing_project_fails_before_submit(self, mock_dataproc_client):
        cfg = make_config(project_id="")
        with pytest.raises(ConfigValidationError, match="project_id"):
            DeploymentEngine(cfg, dataproc_client=mock_dataproc_client).deploy()
        mock_dataproc_client.submit_job.assert_not_called()

    def test_cancel_during_wait(self, default_config, mock_dataproc_client):
        mock_dataproc_client.submit_job.return_value = StubOperation(pending_polls=None)
        ctx = ExecutionContext()
        threading.Timer(0.1, ctx.cancel).start()

        engine = DeploymentEngine(
            default_config, dataproc_client=mock_dataproc_client, poll_interval=30
        )
        start = time.monotonic()
        with pytest.raises(WaitCancelled):
            engine.deploy(context=ctx)
        assert time.monotonic() - start < 5

    @patch("dataproc_deploy.dataproc.get_dataproc_client")
    def test_dry_run_never_contacts_dataproc(self, mock_get):
        cfg = make_config(executor_env_variables={"K": "v"})
        result = DeploymentEngine(cfg, dry_run=True).deploy()

        assert result.status == DeploymentStatus.SUCCESS
        assert "Would submit" in result.message
        assert result.details["properties"] == {"spark.executorEnv.K": "v"}
        assert result.job_id is None
        mock_get.assert_not_called()

"""Spark job submission for dataproc-deploy.

Translates a DeployConfig into a Dataproc ``SubmitJobRequest``, submits
it, waits for the service to acknowledge the job and reads the driver
output location from the response.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from google.cloud import dataproc_v1

from dataproc_deploy.config import ConfigError, ConfigValidationError, DeployConfig, EnvRole
from dataproc_deploy.dataproc import (
    DataprocError,
    ExecutionContext,
    ParseError,
    wait_for_operation,
)

from .engine import DeploymentResult, DeploymentStatus, ProgressCallback

if TYPE_CHECKING:
    from .engine import DeploymentEngine

logger = logging.getLogger(__name__)

COMPONENT = "spark-job"

_GCS_URI_RE = re.compile(r"gs://(.+?)/(.+)")


@dataclass(frozen=True)
class GcsLocation:
    """A Cloud Storage object location."""

    bucket: str
    path: str

    @property
    def uri(self) -> str:
        return f"gs://{self.bucket}/{self.path}"


def build_properties(config: DeployConfig) -> dict[str, str]:
    """Build the Spark property bag from the per-role environment variables.

    Each variable ``NAME`` of a role becomes ``<role prefix>.NAME``.
    """
    properties: dict[str, str] = {}
    for role in EnvRole:
        for key, value in config.env_variables(role).items():
            properties[f"{role.property_prefix}.{key}"] = value
    return properties


def build_submit_request(
    config: DeployConfig,
    properties: dict[str, str] | None = None,
) -> dataproc_v1.SubmitJobRequest:
    """Build the Dataproc job submission request for a config."""
    if properties is None:
        properties = build_properties(config)

    return dataproc_v1.SubmitJobRequest(
        project_id=config.project_id,
        region=config.region,
        job=dataproc_v1.Job(
            placement=dataproc_v1.JobPlacement(cluster_name=config.cluster_name),
            spark_job=dataproc_v1.SparkJob(
                main_class=config.main_class,
                properties=properties,
                jar_file_uris=[config.job_uri],
                args=list(config.arguments),
            ),
        ),
    )


def parse_driver_output_uri(uri: str) -> GcsLocation:
    """Split a ``gs://bucket/path`` URI into bucket and object path.

    Raises:
        ParseError: If the URI does not have that shape
    """
    match = _GCS_URI_RE.match(uri or "")
    if match is None:
        raise ParseError(f"Driver output URI {uri!r} does not match gs://<bucket>/<path>")
    return GcsLocation(bucket=match.group(1), path=match.group(2))


def _no_progress(component: str, status: DeploymentStatus, message: str) -> None:
    pass


class SparkJobDeployer:
    """Submits the configured Spark job to a Dataproc cluster."""

    def __init__(self, engine: DeploymentEngine):
        self.engine = engine
        self.config = engine.config

    def deploy(
        self,
        context: ExecutionContext | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> DeploymentResult:
        """Submit the job and wait until Dataproc acknowledges it."""
        start = time.time()
        report = progress_callback or _no_progress
        cfg = self.config

        report(COMPONENT, DeploymentStatus.IN_PROGRESS, "Deploying Spark Job")
        report(COMPONENT, DeploymentStatus.IN_PROGRESS, f"Region: {cfg.region}")
        report(COMPONENT, DeploymentStatus.IN_PROGRESS, f"Cluster Name: {cfg.cluster_name}")

        properties = build_properties(cfg)

        if self.engine.dry_run:
            return DeploymentResult(
                component=COMPONENT,
                status=DeploymentStatus.SUCCESS,
                message=f"Would submit Spark job {cfg.main_class} to cluster {cfg.cluster_name}",
                details={"properties": properties, "job_uri": cfg.job_uri},
            )

        try:
            if not cfg.project_id:
                raise ConfigValidationError(
                    "project_id is not set and $GOOGLE_PROJECT_ID is empty"
                )

            request = build_submit_request(cfg, properties)
            logger.debug(
                "Submitting %s (%s) to %s/%s with %d properties",
                cfg.main_class,
                cfg.job_uri,
                cfg.project_id,
                cfg.cluster_name,
                len(properties),
            )
            operation = self.engine.client.submit_job(request)
            job = wait_for_operation(
                operation,
                context=context,
                poll_interval=self.engine.poll_interval,
                description=f"Spark job submission to {cfg.cluster_name}",
            )
            location = parse_driver_output_uri(job.driver_output_resource_uri)
        except (ConfigError, DataprocError) as e:
            report(COMPONENT, DeploymentStatus.FAILED, f"Spark job deployment failed: {e}")
            raise

        job_id = job.reference.job_id or None
        logger.info("Spark job %s accepted, driver output at %s", job_id, location.uri)
        report(COMPONENT, DeploymentStatus.SUCCESS, "Spark Job Deployed")

        return DeploymentResult(
            component=COMPONENT,
            status=DeploymentStatus.SUCCESS,
            message=f"Spark job {job_id or cfg.main_class} submitted to {cfg.cluster_name}",
            elapsed_seconds=time.time() - start,
            details={"properties": properties, "driver_output_uri": location.uri},
            job_id=job_id,
            driver_output_bucket=location.bucket,
            driver_output_path=location.path,
        )

"""Deployment module for dataproc-deploy."""

from .engine import DeploymentEngine, DeploymentResult, DeploymentStatus, ProgressCallback
from .spark_job import (
    GcsLocation,
    SparkJobDeployer,
    build_properties,
    build_submit_request,
    parse_driver_output_uri,
)

__all__ = [
    "DeploymentEngine",
    "DeploymentResult",
    "DeploymentStatus",
    "ProgressCallback",
    "SparkJobDeployer",
    "GcsLocation",
    "build_properties",
    "build_submit_request",
    "parse_driver_output_uri",
]

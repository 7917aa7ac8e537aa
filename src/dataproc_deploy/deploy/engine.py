"""Deployment engine for dataproc-deploy."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from dataproc_deploy.config import DeployConfig
from dataproc_deploy.dataproc import DataprocClient, ExecutionContext

logger = logging.getLogger(__name__)


class DeploymentStatus(Enum):
    """Status of a deployment step."""

    IN_PROGRESS = "in_progress"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class DeploymentResult:
    """Result of a deployment.

    ``job_id`` and the driver output location are filled from the
    acknowledged job; they stay None for dry runs.
    """

    component: str
    status: DeploymentStatus
    message: str
    elapsed_seconds: float = 0.0
    details: dict[str, Any] = field(default_factory=dict)
    job_id: str | None = None
    driver_output_bucket: str | None = None
    driver_output_path: str | None = None


ProgressCallback = Callable[[str, DeploymentStatus, str], None]


class DeploymentEngine:
    """Runs a Spark job deployment against a Dataproc cluster.

    The engine owns the Dataproc client. An injected client is used
    as-is and never closed by the engine; otherwise one is created on
    first use for the configured region.
    """

    def __init__(
        self,
        config: DeployConfig,
        dataproc_client: DataprocClient | None = None,
        dry_run: bool = False,
        poll_interval: float = 2.0,
    ):
        """Initialize deployment engine.

        Args:
            config: Validated deploy configuration
            dataproc_client: Dataproc client (created on demand if not provided)
            dry_run: If True, build the request without contacting Dataproc
            poll_interval: Seconds between operation polls while waiting
        """
        self.config = config
        self.dry_run = dry_run
        self.poll_interval = poll_interval
        self._client = dataproc_client
        self._owns_client = dataproc_client is None

    @property
    def client(self) -> DataprocClient:
        """Dataproc client, created for the configured region on first use.

        Raises:
            ClientSetupError: If the client cannot be constructed
        """
        if self._client is None:
            from dataproc_deploy.dataproc import get_dataproc_client

            self._client = get_dataproc_client(self.config.region)
        return self._client

    def deploy(
        self,
        context: ExecutionContext | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> DeploymentResult:
        """Submit the configured Spark job and wait for acknowledgment.

        Args:
            context: Execution context for cancellation and deadline
            progress_callback: Receives (component, status, message) steps

        Returns:
            DeploymentResult for the submitted job

        Raises:
            ConfigValidationError: If project_id is still unset
            DataprocError: If client setup, submission, wait or parsing fails
        """
        from .spark_job import SparkJobDeployer

        try:
            return SparkJobDeployer(self).deploy(context, progress_callback)
        finally:
            self.close()

    def close(self) -> None:
        """Close the Dataproc client if the engine created it."""
        if self._owns_client and self._client is not None:
            try:
                self._client.close()
            except Exception as e:
                logger.debug("Error closing Dataproc client: %s", e)
            self._client = None

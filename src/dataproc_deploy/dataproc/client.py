"""Dataproc job controller client for dataproc-deploy."""

from __future__ import annotations

import logging
from typing import Any

from google.api_core.client_options import ClientOptions
from google.api_core.exceptions import GoogleAPIError
from google.api_core.operation import Operation
from google.auth.exceptions import GoogleAuthError
from google.cloud import dataproc_v1

from dataproc_deploy._constants import DATAPROC_ENDPOINT_TEMPLATE

logger = logging.getLogger(__name__)


class DataprocError(Exception):
    """Base exception for Dataproc errors."""

    pass


class ClientSetupError(DataprocError):
    """Raised when the Dataproc job client cannot be constructed."""

    pass


class SubmissionError(DataprocError):
    """Raised when the service rejects a job submission."""

    pass


class ParseError(DataprocError):
    """Raised when the driver output URI is not a gs://bucket/path URI."""

    pass


class DataprocClient:
    """Dataproc client for job submission.

    This client wraps ``google.cloud.dataproc_v1.JobControllerClient``
    bound to a regional endpoint.
    """

    def __init__(self, region: str, endpoint: str = "", credentials: Any = None):
        """Initialize Dataproc client.

        Args:
            region: Dataproc region the client talks to
            endpoint: API endpoint override (defaults to the regional endpoint)
            credentials: google-auth credentials (defaults to ADC)

        Raises:
            ClientSetupError: If the underlying client cannot be created
        """
        self.region = region
        self.endpoint = endpoint or DATAPROC_ENDPOINT_TEMPLATE.format(region=region)

        logger.debug("Creating Dataproc job client for %s", self.endpoint)
        try:
            self._client = dataproc_v1.JobControllerClient(
                credentials=credentials,
                client_options=ClientOptions(api_endpoint=self.endpoint),
            )
        except (GoogleAuthError, GoogleAPIError, ValueError) as e:
            raise ClientSetupError(
                f"Error creating the job client for {self.endpoint}: {e}"
            ) from e

    def submit_job(self, request: dataproc_v1.SubmitJobRequest) -> Operation:
        """Submit a job and return the long-running operation handle.

        Raises:
            SubmissionError: If the submit call fails
        """
        try:
            return self._client.submit_job_as_operation(request=request)
        except GoogleAPIError as e:
            raise SubmissionError(
                f"Job submission to cluster {request.job.placement.cluster_name} failed: {e}"
            ) from e

    def close(self) -> None:
        """Close the underlying transport."""
        self._client.transport.close()

    def __enter__(self) -> DataprocClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


def get_dataproc_client(region: str, endpoint: str = "") -> DataprocClient:
    """Get a Dataproc client for a region.

    Args:
        region: Dataproc region
        endpoint: Optional endpoint override

    Returns:
        DataprocClient instance
    """
    return DataprocClient(region=region, endpoint=endpoint)
